"""
Django ORM models for persistence.
Catalog, rates and bundle counters as stored in the database.
"""

import uuid
from django.core.validators import RegexValidator
from django.db import models


class BaseModel(models.Model):

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class CurrencyCode(models.TextChoices):
    XOF = "XOF", "Franc CFA"
    EUR = "EUR", "Euro"
    USD = "USD", "US Dollar"


class Category(BaseModel):

    name = models.CharField(max_length=100, unique=True)

    class Meta:
        verbose_name_plural = "categories"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Product(BaseModel):

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    category = models.ForeignKey(
        Category,
        related_name="products",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    selling_price_xof = models.DecimalField(max_digits=19, decimal_places=2, null=True, blank=True)
    selling_price_eur = models.DecimalField(max_digits=19, decimal_places=2, null=True, blank=True)
    selling_price_usd = models.DecimalField(max_digits=19, decimal_places=2, null=True, blank=True)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} - {self.name}"

    def selling_price(self, currency: str):
        return getattr(self, f"selling_price_{currency.lower()}")


class ExchangeRate(BaseModel):
    """
    Rate to XOF for one currency, effective from a date.
    Historical rows are kept for audit; only `active` and `expiry_date` change.
    """

    currency = models.CharField(max_length=3, choices=CurrencyCode.choices)
    rate_to_xof = models.DecimalField(max_digits=16, decimal_places=6)
    effective_date = models.DateField(db_index=True)
    expiry_date = models.DateField(null=True, blank=True)
    active = models.BooleanField(default=True)
    source = models.CharField(max_length=500, blank=True)
    notes = models.CharField(max_length=1000, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["currency", "effective_date"],
                name="unique_rate_per_currency_and_date",
            )
        ]
        ordering = ["-effective_date"]

    def __str__(self):
        return f"{self.currency} | {self.effective_date} | {self.rate_to_xof}"


class PriceTypeChoice(models.TextChoices):
    FIXED = "FIXED", "Fixed price"
    DISCOUNT = "DISCOUNT", "Discount"
    MARKUP = "MARKUP", "Markup"


class PeriodTypeChoice(models.TextChoices):
    DAILY = "DAILY", "Daily"
    WEEKLY = "WEEKLY", "Weekly"
    SEASONAL = "SEASONAL", "Seasonal"
    PROMOTIONAL = "PROMOTIONAL", "Promotional"
    SPECIAL_EVENT = "SPECIAL_EVENT", "Special event"


class ScheduledPrice(BaseModel):

    name = models.CharField(max_length=200)
    description = models.CharField(max_length=500, blank=True)
    product = models.ForeignKey(
        Product,
        related_name="scheduled_prices",
        on_delete=models.CASCADE,
    )
    price_type = models.CharField(max_length=20, choices=PriceTypeChoice.choices, default=PriceTypeChoice.FIXED)
    amount = models.DecimalField(max_digits=19, decimal_places=2, null=True, blank=True)
    percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, choices=CurrencyCode.choices, default=CurrencyCode.XOF)
    valid_from = models.DateField(null=True, blank=True)
    valid_until = models.DateField(null=True, blank=True)
    time_from = models.TimeField(null=True, blank=True)
    time_until = models.TimeField(null=True, blank=True)
    days_of_week = models.CharField(
        max_length=100,
        blank=True,
        help_text="Comma separated day names, e.g. MONDAY,TUESDAY. Empty = every day.",
    )
    priority = models.IntegerField(
        default=0,
        help_text="Higher number wins when several rules apply at the same time.",
    )
    period_type = models.CharField(max_length=20, choices=PeriodTypeChoice.choices, default=PeriodTypeChoice.PROMOTIONAL)
    active = models.BooleanField(default=True, db_index=True)
    notes = models.CharField(max_length=500, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["valid_from", "valid_until"], name="idx_scheduled_price_dates"),
        ]
        ordering = ["-priority", "name"]

    def __str__(self):
        return f"{self.name} ({self.price_type}, priority={self.priority})"


class DiscountTypeChoice(models.TextChoices):
    PERCENTAGE = "PERCENTAGE", "Percentage"
    FIXED_AMOUNT = "FIXED_AMOUNT", "Fixed amount"


class Promotion(BaseModel):

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    description = models.CharField(max_length=1000, blank=True)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    discount_type = models.CharField(
        max_length=20,
        choices=DiscountTypeChoice.choices,
        default=DiscountTypeChoice.PERCENTAGE,
    )
    discount_value = models.DecimalField(max_digits=19, decimal_places=2)
    minimum_purchase_amount = models.DecimalField(max_digits=19, decimal_places=2, null=True, blank=True)
    maximum_discount_amount = models.DecimalField(max_digits=19, decimal_places=2, null=True, blank=True)
    active = models.BooleanField(default=True)
    stackable = models.BooleanField(default=False)
    stacking_order = models.PositiveSmallIntegerField(
        default=0,
        help_text="Lower number applies first when stackable promotions combine.",
    )
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    apply_to_all_products = models.BooleanField(default=False)
    applicable_products = models.ManyToManyField(Product, related_name="promotions", blank=True)
    applicable_categories = models.ManyToManyField(Category, related_name="promotions", blank=True)
    terms = models.CharField(max_length=1000, blank=True)

    class Meta:
        ordering = ["stacking_order", "code"]

    def __str__(self):
        return f"{self.code} ({self.discount_type} {self.discount_value})"


class BundleTypeChoice(models.TextChoices):
    MENU = "MENU", "Menu"
    COMBO = "COMBO", "Combo"
    FORMULA = "FORMULA", "Formula"


WALL_CLOCK_VALIDATOR = RegexValidator(
    r"^([01]\d|2[0-3]):[0-5]\d$",
    "Use 24-hour HH:MM with leading zeros, e.g. 06:00.",
)


class ProductBundle(BaseModel):

    bundle_code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    description = models.CharField(max_length=1000, blank=True)
    category = models.ForeignKey(
        Category,
        related_name="bundles",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    bundle_price_xof = models.DecimalField(
        max_digits=19,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Leave empty to price the bundle from its items minus the discount percentage.",
    )
    bundle_price_eur = models.DecimalField(max_digits=19, decimal_places=2, null=True, blank=True)
    bundle_price_usd = models.DecimalField(max_digits=19, decimal_places=2, null=True, blank=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    bundle_type = models.CharField(max_length=50, choices=BundleTypeChoice.choices, default=BundleTypeChoice.MENU)
    valid_from = models.DateTimeField(null=True, blank=True)
    valid_until = models.DateTimeField(null=True, blank=True)
    active = models.BooleanField(default=True, db_index=True)
    time_restricted = models.BooleanField(default=False)
    start_time = models.CharField(
        max_length=5, blank=True, validators=[WALL_CLOCK_VALIDATOR], help_text="HH:MM, e.g. 06:00"
    )
    end_time = models.CharField(
        max_length=5, blank=True, validators=[WALL_CLOCK_VALIDATOR], help_text="HH:MM, e.g. 11:00"
    )
    daily_limit = models.PositiveIntegerField(null=True, blank=True)
    today_sold_count = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["bundle_code"]

    def __str__(self):
        return f"{self.bundle_code} - {self.name}"


class BundleItem(BaseModel):

    bundle = models.ForeignKey(
        ProductBundle,
        related_name="items",
        on_delete=models.CASCADE,
    )
    product = models.ForeignKey(
        Product,
        related_name="bundle_items",
        on_delete=models.PROTECT,
    )
    quantity = models.PositiveIntegerField(default=1)
    optional = models.BooleanField(default=False)
    display_order = models.IntegerField(default=0)
    notes = models.CharField(max_length=500, blank=True)
    substitutable = models.BooleanField(default=False)
    substitution_group = models.CharField(max_length=50, blank=True)

    class Meta:
        ordering = ["display_order"]

    def __str__(self):
        return f"{self.quantity}x {self.product.name}"
