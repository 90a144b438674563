import pytest
from datetime import datetime
from decimal import Decimal

from django.http import QueryDict
from django.utils import timezone

from apps.pricing.api.v1.serializers import (
    BundlePriceSerializer,
    PriceQuerySerializer,
    PromotionQuerySerializer,
    ScheduledPriceSerializer,
)
from apps.pricing.application.dto import BundlePriceDTO, MoneyDTO
from apps.pricing.domain.models import Weekday
from apps.pricing.infrastructure.persistence.models import Product, ScheduledPrice


class TestPriceQuerySerializer:
    """Tests for query parameter validation."""

    def test_defaults_to_xof(self):
        serializer = PriceQuerySerializer(data=QueryDict(""))

        assert serializer.is_valid()
        assert serializer.validated_data["currency"] == "XOF"
        assert "at" not in serializer.validated_data

    def test_currency_case_insensitive(self):
        serializer = PriceQuerySerializer(data=QueryDict("currency=usd"))

        assert serializer.is_valid()
        assert serializer.validated_data["currency"] == "USD"

    def test_unknown_currency(self):
        serializer = PriceQuerySerializer(data=QueryDict("currency=GBP"))

        assert not serializer.is_valid()
        assert "currency" in serializer.errors

    def test_naive_instant_made_aware(self):
        serializer = PriceQuerySerializer(data=QueryDict("at=2024-06-01T12:00:00"))

        assert serializer.is_valid()
        assert timezone.is_aware(serializer.validated_data["at"])

    def test_promotion_query_requires_amount(self):
        serializer = PromotionQuerySerializer(data=QueryDict("currency=XOF"))

        assert not serializer.is_valid()
        assert "amount" in serializer.errors

    def test_promotion_query_rejects_negative_amount(self):
        serializer = PromotionQuerySerializer(data=QueryDict("amount=-5"))

        assert not serializer.is_valid()


@pytest.mark.django_db
class TestScheduledPriceSerializer:

    def test_currently_valid_follows_days_of_week(self):
        product = Product.objects.create(code="P1", name="P1", selling_price_xof=Decimal("100"))
        today = Weekday(timezone.localtime().weekday()).name
        other_days = [day.name for day in Weekday if day.name != today]
        today_rule = ScheduledPrice.objects.create(name="Today", product=product, amount=Decimal("1"),
                                                   days_of_week=today)
        other_rule = ScheduledPrice.objects.create(name="Other", product=product, amount=Decimal("1"),
                                                   days_of_week=",".join(other_days))

        assert ScheduledPriceSerializer(today_rule).data["currently_valid"] is True
        assert ScheduledPriceSerializer(other_rule).data["currently_valid"] is False


class TestBundlePriceSerializer:

    def test_money_fields(self):
        dto = BundlePriceDTO(
            bundle_id="b1",
            price=MoneyDTO(Decimal("900"), "XOF"),
            separate_price=MoneyDTO(Decimal("1000"), "XOF"),
            savings=MoneyDTO(Decimal("100"), "XOF"),
            priced_at=timezone.make_aware(datetime(2024, 6, 1, 12, 0)),
        )

        data = BundlePriceSerializer(dto).data

        assert data["price"] == {"amount": "900.00", "currency": "XOF"}
        assert data["savings"]["amount"] == "100.00"
