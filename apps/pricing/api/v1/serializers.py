"""
Serializers for the pricing bounded context.
Handles validation and transformation between API and ORM layers.
"""

from decimal import Decimal

from django.utils import timezone
from rest_framework import serializers

from apps.pricing.domain.validity import RuleValidityEvaluator
from apps.pricing.infrastructure.persistence.models import (
    BundleItem,
    CurrencyCode,
    ExchangeRate,
    Product,
    ProductBundle,
    Promotion,
    ScheduledPrice,
)
from apps.pricing.infrastructure.persistence.repositories import to_domain_rule


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = [
            "id",
            "code",
            "name",
            "category",
            "selling_price_xof",
            "selling_price_eur",
            "selling_price_usd",
        ]
        read_only_fields = fields


class ExchangeRateSerializer(serializers.ModelSerializer):
    class Meta:
        model = ExchangeRate
        fields = [
            "id",
            "currency",
            "rate_to_xof",
            "effective_date",
            "expiry_date",
            "active",
            "source",
            "created_at",
        ]
        read_only_fields = fields


class ScheduledPriceSerializer(serializers.ModelSerializer):
    currently_valid = serializers.SerializerMethodField()

    class Meta:
        model = ScheduledPrice
        fields = [
            "id",
            "name",
            "product",
            "price_type",
            "amount",
            "percentage",
            "currency",
            "valid_from",
            "valid_until",
            "time_from",
            "time_until",
            "days_of_week",
            "priority",
            "period_type",
            "active",
            "currently_valid",
        ]
        read_only_fields = fields

    def get_currently_valid(self, obj) -> bool:
        return RuleValidityEvaluator.is_valid(to_domain_rule(obj).window, timezone.localtime())


class PromotionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Promotion
        fields = [
            "id",
            "code",
            "name",
            "discount_type",
            "discount_value",
            "minimum_purchase_amount",
            "maximum_discount_amount",
            "start_date",
            "end_date",
            "active",
            "stackable",
            "stacking_order",
            "usage_limit",
            "usage_count",
            "apply_to_all_products",
            "applicable_products",
            "applicable_categories",
        ]
        read_only_fields = fields


class BundleItemSerializer(serializers.ModelSerializer):
    product_code = serializers.CharField(source="product.code", read_only=True)

    class Meta:
        model = BundleItem
        fields = [
            "product",
            "product_code",
            "quantity",
            "optional",
            "substitutable",
            "substitution_group",
            "display_order",
        ]
        read_only_fields = fields


class ProductBundleSerializer(serializers.ModelSerializer):
    items = BundleItemSerializer(many=True, read_only=True)

    class Meta:
        model = ProductBundle
        fields = [
            "id",
            "bundle_code",
            "name",
            "bundle_type",
            "bundle_price_xof",
            "bundle_price_eur",
            "bundle_price_usd",
            "discount_percentage",
            "valid_from",
            "valid_until",
            "active",
            "time_restricted",
            "start_time",
            "end_time",
            "daily_limit",
            "today_sold_count",
            "items",
        ]
        read_only_fields = fields


# Query parameters


class PriceQuerySerializer(serializers.Serializer):
    currency = serializers.ChoiceField(choices=CurrencyCode.choices, default=CurrencyCode.XOF)
    at = serializers.DateTimeField(required=False)

    def to_internal_value(self, data):
        data = data.copy()
        if data.get("currency"):
            data["currency"] = data["currency"].upper()
        return super().to_internal_value(data)


class ConvertQuerySerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=19, decimal_places=2, min_value=Decimal("0"))
    source_currency = serializers.ChoiceField(choices=CurrencyCode.choices)
    currency = serializers.ChoiceField(choices=CurrencyCode.choices, default=CurrencyCode.XOF)
    at = serializers.DateTimeField(required=False)

    def to_internal_value(self, data):
        data = data.copy()
        for key in ("source_currency", "currency"):
            if data.get(key):
                data[key] = data[key].upper()
        return super().to_internal_value(data)


class PromotionQuerySerializer(PriceQuerySerializer):
    amount = serializers.DecimalField(max_digits=19, decimal_places=2, min_value=Decimal("0"))
    product_id = serializers.UUIDField(required=False)
    category_id = serializers.UUIDField(required=False)


# Results


class MoneySerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=19, decimal_places=2)
    currency = serializers.CharField()


class ProductPriceSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    price = MoneySerializer()
    native_price = MoneySerializer()
    priced_at = serializers.DateTimeField()
    rule_id = serializers.CharField(allow_null=True)
    rule_name = serializers.CharField(allow_null=True)
    warnings = serializers.ListField(child=serializers.CharField())


class BundlePriceSerializer(serializers.Serializer):
    bundle_id = serializers.CharField()
    price = MoneySerializer()
    separate_price = MoneySerializer()
    savings = MoneySerializer()
    priced_at = serializers.DateTimeField()


class AppliedPromotionSerializer(serializers.Serializer):
    promotion_id = serializers.CharField()
    code = serializers.CharField()
    discount = MoneySerializer()


class PromotionalPriceSerializer(serializers.Serializer):
    original = MoneySerializer()
    amount = MoneySerializer()
    total_discount = MoneySerializer()
    priced_at = serializers.DateTimeField()
    applied_promotions = AppliedPromotionSerializer(many=True)


class ConversionSerializer(serializers.Serializer):
    source = MoneySerializer()
    converted = MoneySerializer()
    valuation_date = serializers.DateField()
