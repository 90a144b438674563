"""
Django Admin configuration for the pricing app.
Catalog, rules, promotions and bundles are maintained here.
"""

from django.contrib import admin
from django.db.models import Q
from django.utils import timezone
from django.utils.html import format_html

from apps.pricing.domain.validity import RuleValidityEvaluator
from apps.pricing.infrastructure.persistence.models import (
    BundleItem,
    Category,
    ExchangeRate,
    Product,
    ProductBundle,
    Promotion,
    ScheduledPrice,
)
from apps.pricing.infrastructure.persistence.repositories import (
    ExchangeRateRepository,
    ScheduledPriceRepository,
    to_domain_bundle,
    to_domain_rule,
)

METADATA_FIELDSET = ('Metadata', {
    'fields': ('id', 'created_at', 'updated_at'),
    'classes': ('collapse',)
})


def status_badge(valid):
    if valid:
        return format_html('<span style="color: green; font-weight: bold;">{}</span>', '● Yes')
    return format_html('<span style="color: red;">{}</span>', '○ No')


class ActivationActionsMixin:
    """Bulk activate / deactivate for models with an `active` flag."""

    @admin.action(description='Activate selected')
    def activate(self, request, queryset):
        updated = queryset.update(active=True)
        self.message_user(request, f'{updated} row(s) activated.')

    @admin.action(description='Deactivate selected')
    def deactivate(self, request, queryset):
        updated = queryset.update(active=False)
        self.message_user(request, f'{updated} row(s) deactivated.')


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'created_at')
    search_fields = ('name',)
    readonly_fields = ('id', 'created_at', 'updated_at')


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin interface for Product model."""

    list_display = (
        'code',
        'name',
        'category',
        'selling_price_xof',
        'selling_price_eur',
        'selling_price_usd',
        'get_active_rules',
    )
    list_filter = ('category',)
    search_fields = ('code', 'name')
    readonly_fields = ('id', 'created_at', 'updated_at')
    ordering = ('code',)

    fieldsets = (
        ('Product', {
            'fields': ('code', 'name', 'category')
        }),
        ('Base selling prices', {
            'fields': ('selling_price_xof', 'selling_price_eur', 'selling_price_usd')
        }),
        METADATA_FIELDSET,
    )

    def get_active_rules(self, obj):
        return ScheduledPriceRepository.count_active_for_product(obj.id)
    get_active_rules.short_description = 'Active rules'


@admin.register(ExchangeRate)
class ExchangeRateAdmin(ActivationActionsMixin, admin.ModelAdmin):
    """Admin interface for ExchangeRate model."""

    list_display = ('currency', 'rate_to_xof', 'effective_date', 'expiry_date', 'active', 'source')
    list_filter = ('currency', 'active')
    search_fields = ('currency', 'source')
    readonly_fields = ('id', 'created_at', 'updated_at')
    date_hierarchy = 'effective_date'
    ordering = ('-effective_date', 'currency')
    actions = ['activate', 'deactivate', 'expire_today']

    fieldsets = (
        ('Exchange Rate', {
            'fields': ('currency', 'rate_to_xof', 'effective_date', 'expiry_date', 'active')
        }),
        ('Source', {
            'fields': ('source', 'notes')
        }),
        METADATA_FIELDSET,
    )

    @admin.action(description='Expire selected rates today')
    def expire_today(self, request, queryset):
        today = timezone.localdate()
        expired = 0
        for rate in queryset.filter(Q(expiry_date__isnull=True) | Q(expiry_date__gt=today)):
            ExchangeRateRepository.expire(rate, today)
            expired += 1
        self.message_user(request, f'{expired} rate(s) expired.')


@admin.register(ScheduledPrice)
class ScheduledPriceAdmin(ActivationActionsMixin, admin.ModelAdmin):
    """Admin interface for ScheduledPrice model."""

    list_display = (
        'name',
        'product',
        'price_type',
        'amount',
        'percentage',
        'priority',
        'period_type',
        'active',
        'get_valid_now',
    )
    list_filter = ('price_type', 'period_type', 'active', 'currency')
    search_fields = ('name', 'product__code', 'product__name')
    readonly_fields = ('id', 'created_at', 'updated_at')
    ordering = ('-priority', 'name')
    actions = ['activate', 'deactivate']

    fieldsets = (
        ('Rule', {
            'fields': ('name', 'description', 'product', 'period_type', 'priority', 'active')
        }),
        ('Adjustment', {
            'fields': ('price_type', 'amount', 'percentage', 'currency')
        }),
        ('Validity', {
            'fields': ('valid_from', 'valid_until', 'time_from', 'time_until', 'days_of_week'),
            'description': 'Days of week: comma separated, e.g. MONDAY,FRIDAY. Empty means every day.'
        }),
        ('Notes', {
            'fields': ('notes',),
            'classes': ('collapse',)
        }),
        METADATA_FIELDSET,
    )

    def get_valid_now(self, obj):
        """Whether the rule is in force right now."""
        return status_badge(RuleValidityEvaluator.is_valid(to_domain_rule(obj).window, timezone.localtime()))
    get_valid_now.short_description = 'Valid now'


@admin.register(Promotion)
class PromotionAdmin(ActivationActionsMixin, admin.ModelAdmin):
    """Admin interface for Promotion model."""

    list_display = (
        'code',
        'name',
        'discount_type',
        'discount_value',
        'start_date',
        'end_date',
        'get_usage',
        'stackable',
        'active',
    )
    list_filter = ('discount_type', 'active', 'stackable', 'apply_to_all_products')
    search_fields = ('code', 'name')
    readonly_fields = ('id', 'usage_count', 'created_at', 'updated_at')
    filter_horizontal = ('applicable_products', 'applicable_categories')
    ordering = ('stacking_order', 'code')
    actions = ['activate', 'deactivate']

    fieldsets = (
        ('Promotion', {
            'fields': ('code', 'name', 'description', 'start_date', 'end_date', 'active')
        }),
        ('Discount', {
            'fields': (
                'discount_type',
                'discount_value',
                'minimum_purchase_amount',
                'maximum_discount_amount',
            )
        }),
        ('Stacking and usage', {
            'fields': ('stackable', 'stacking_order', 'usage_limit', 'usage_count')
        }),
        ('Applicability', {
            'fields': ('apply_to_all_products', 'applicable_products', 'applicable_categories')
        }),
        ('Terms', {
            'fields': ('terms',),
            'classes': ('collapse',)
        }),
        METADATA_FIELDSET,
    )

    def get_usage(self, obj):
        if obj.usage_limit is None:
            return f"{obj.usage_count} / ∞"
        return f"{obj.usage_count} / {obj.usage_limit}"
    get_usage.short_description = 'Usage'


class BundleItemInline(admin.TabularInline):
    model = BundleItem
    extra = 1
    fields = ('product', 'quantity', 'optional', 'substitutable', 'substitution_group', 'display_order')
    ordering = ('display_order',)


@admin.register(ProductBundle)
class ProductBundleAdmin(ActivationActionsMixin, admin.ModelAdmin):
    """Admin interface for ProductBundle model with daily counter management."""

    list_display = (
        'bundle_code',
        'name',
        'bundle_type',
        'bundle_price_xof',
        'discount_percentage',
        'get_daily_sales',
        'active',
        'get_available_now',
    )
    list_filter = ('bundle_type', 'active', 'time_restricted')
    search_fields = ('bundle_code', 'name')
    readonly_fields = ('id', 'today_sold_count', 'created_at', 'updated_at')
    inlines = [BundleItemInline]
    ordering = ('bundle_code',)
    actions = ['activate', 'deactivate', 'reset_daily_counts']

    fieldsets = (
        ('Bundle', {
            'fields': ('bundle_code', 'name', 'description', 'category', 'bundle_type', 'active')
        }),
        ('Pricing', {
            'fields': ('bundle_price_xof', 'bundle_price_eur', 'bundle_price_usd', 'discount_percentage'),
            'description': 'An explicit price wins over the discount percentage for that currency.'
        }),
        ('Availability', {
            'fields': (
                'valid_from',
                'valid_until',
                'time_restricted',
                'start_time',
                'end_time',
                'daily_limit',
                'today_sold_count',
            ),
            'description': 'Start and end times use HH:MM.'
        }),
        METADATA_FIELDSET,
    )

    def get_daily_sales(self, obj):
        if obj.daily_limit is None:
            return f"{obj.today_sold_count}"
        return f"{obj.today_sold_count} / {obj.daily_limit}"
    get_daily_sales.short_description = 'Sold today'

    def get_available_now(self, obj):
        """Whether the bundle can be sold right now."""
        reason = RuleValidityEvaluator.bundle_unavailability(to_domain_bundle(obj), timezone.localtime())
        return status_badge(reason is None)
    get_available_now.short_description = 'Available now'

    @admin.action(description='Reset daily sold counts')
    def reset_daily_counts(self, request, queryset):
        updated = queryset.update(today_sold_count=0)
        self.message_user(request, f'{updated} bundle(s) reset.')
