import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from apps.pricing.infrastructure.persistence.models import (
    BundleItem,
    Category,
    ExchangeRate,
    Product,
    ProductBundle,
    Promotion,
    ScheduledPrice,
)


BASE_URL = "/api/v1/pricing"
AT = "2024-06-01T12:00:00"


@pytest.fixture
def api_client():
    """DRF API client."""
    return APIClient()


@pytest.fixture
def category(db):
    return Category.objects.create(name="Snacks")


@pytest.fixture
def products(db, category):
    """Three products priced 500, 300 and 200 XOF."""
    return [
        Product.objects.create(code=code, name=code.title(), category=category, selling_price_xof=Decimal(price))
        for code, price in (("SANDWICH", "500"), ("JUICE", "300"), ("COOKIE", "200"))
    ]


@pytest.fixture
def eur_rate(db):
    return ExchangeRate.objects.create(
        currency="EUR",
        rate_to_xof=Decimal("655.957"),
        effective_date=date(2024, 1, 1),
        source="BCEAO",
    )


@pytest.fixture
def menu(db, products):
    bundle = ProductBundle.objects.create(bundle_code="MENU", name="Menu", discount_percentage=Decimal("10"))
    for order, product in enumerate(products):
        BundleItem.objects.create(bundle=bundle, product=product, display_order=order)
    return bundle


@pytest.mark.django_db
class TestProductPrice:
    """Tests for GET /products/{id}/price/."""

    def test_base_price_without_rule(self, api_client, products):
        response = api_client.get(f"{BASE_URL}/products/{products[0].id}/price/", {"at": AT})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["price"] == {"amount": "500.00", "currency": "XOF"}
        assert response.data["rule_id"] is None

    def test_scheduled_discount(self, api_client, products):
        """Test a 10% rule valid at the requested instant is applied."""
        rule = ScheduledPrice.objects.create(
            name="Summer",
            product=products[0],
            price_type="DISCOUNT",
            percentage=Decimal("10"),
            priority=5,
            valid_from=date(2024, 1, 1),
            valid_until=date(2024, 12, 31),
        )

        response = api_client.get(f"{BASE_URL}/products/{products[0].id}/price/", {"at": AT})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["price"]["amount"] == "450.00"
        assert response.data["rule_id"] == str(rule.id)
        assert response.data["rule_name"] == "Summer"

    def test_rule_outside_window_ignored(self, api_client, products):
        ScheduledPrice.objects.create(
            name="Winter",
            product=products[0],
            price_type="FIXED",
            amount=Decimal("100"),
            valid_from=date(2024, 12, 1),
        )

        response = api_client.get(f"{BASE_URL}/products/{products[0].id}/price/", {"at": AT})

        assert response.data["price"]["amount"] == "500.00"

    def test_converted_to_eur(self, api_client, products, eur_rate):
        response = api_client.get(f"{BASE_URL}/products/{products[0].id}/price/", {"at": AT, "currency": "eur"})

        assert response.status_code == status.HTTP_200_OK
        # 500 / 655.957
        assert response.data["price"] == {"amount": "0.76", "currency": "EUR"}
        assert response.data["native_price"] == {"amount": "500.00", "currency": "XOF"}

    def test_missing_rate_is_unprocessable(self, api_client, products):
        response = api_client.get(f"{BASE_URL}/products/{products[0].id}/price/", {"at": AT, "currency": "USD"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "No active exchange rate for USD" in response.data["error"]

    def test_unsupported_currency(self, api_client, products):
        response = api_client.get(f"{BASE_URL}/products/{products[0].id}/price/", {"currency": "GBP"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "currency" in response.data["error"]

    def test_invalid_instant(self, api_client, products):
        response = api_client.get(f"{BASE_URL}/products/{products[0].id}/price/", {"at": "yesterday"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "at" in response.data["error"]

    def test_unknown_product(self, api_client, db):
        response = api_client.get(f"{BASE_URL}/products/{uuid4()}/price/")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_scheduled_prices_of_product(self, api_client, products):
        ScheduledPrice.objects.create(name="Low", product=products[0], amount=Decimal("400"), priority=1)
        ScheduledPrice.objects.create(name="High", product=products[0], amount=Decimal("450"), priority=9)
        ScheduledPrice.objects.create(name="Other", product=products[1], amount=Decimal("1"))

        response = api_client.get(f"{BASE_URL}/products/{products[0].id}/scheduled-prices/")

        assert response.status_code == status.HTTP_200_OK
        assert [rule["name"] for rule in response.data] == ["High", "Low"]

    def test_misconfigured_rule_reports_warning(self, api_client, products):
        ScheduledPrice.objects.create(name="Broken", product=products[0], price_type="DISCOUNT")

        response = api_client.get(f"{BASE_URL}/products/{products[0].id}/price/", {"at": AT})

        assert response.data["price"]["amount"] == "500.00"
        assert len(response.data["warnings"]) == 1


@pytest.mark.django_db
class TestBundleEndpoints:
    """Tests for bundle pricing and availability."""

    def test_discounted_bundle_price(self, api_client, menu):
        """Test 500 + 300 + 200 with 10% off is 900 and saves 100."""
        response = api_client.get(f"{BASE_URL}/bundles/{menu.id}/price/", {"at": AT})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["price"]["amount"] == "900.00"
        assert response.data["separate_price"]["amount"] == "1000.00"
        assert response.data["savings"]["amount"] == "100.00"

    def test_daily_limit_reached_is_conflict(self, api_client, menu):
        menu.daily_limit = 50
        menu.today_sold_count = 50
        menu.save()

        response = api_client.get(f"{BASE_URL}/bundles/{menu.id}/price/", {"at": AT})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["reason"] == "daily-limit-reached"

    def test_outside_time_window_is_conflict(self, api_client, menu):
        menu.time_restricted = True
        menu.start_time = "06:00"
        menu.end_time = "11:00"
        menu.save()

        response = api_client.get(f"{BASE_URL}/bundles/{menu.id}/price/", {"at": AT})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["reason"] == "outside-time-window"

    def test_bundle_in_eur_without_rate(self, api_client, menu):
        response = api_client.get(f"{BASE_URL}/bundles/{menu.id}/price/", {"at": AT, "currency": "EUR"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_available_bundles(self, api_client, menu, products):
        sold_out = ProductBundle.objects.create(bundle_code="SOLDOUT", name="Sold out", daily_limit=1, today_sold_count=1)
        BundleItem.objects.create(bundle=sold_out, product=products[0])

        response = api_client.get(f"{BASE_URL}/bundles/available/", {"at": AT})

        assert response.status_code == status.HTTP_200_OK
        assert [b["bundle_code"] for b in response.data] == ["MENU"]

    def test_retrieve_bundle_with_items(self, api_client, menu):
        response = api_client.get(f"{BASE_URL}/bundles/{menu.id}/")

        assert response.status_code == status.HTTP_200_OK
        assert [item["product_code"] for item in response.data["items"]] == ["SANDWICH", "JUICE", "COOKIE"]


@pytest.mark.django_db
class TestPromotionApply:
    """Tests for GET /promotions/apply/."""

    def make_promotion(self, code, **kwargs):
        defaults = dict(
            name=code.title(),
            start_date=timezone.make_aware(datetime(2024, 1, 1)),
            end_date=timezone.make_aware(datetime(2024, 12, 31, 23, 59)),
            discount_value=Decimal("10"),
            apply_to_all_products=True,
        )
        defaults.update(kwargs)
        return Promotion.objects.create(code=code, **defaults)

    def test_apply_percentage(self, api_client):
        promotion = self.make_promotion("TEN")

        response = api_client.get(f"{BASE_URL}/promotions/apply/", {"amount": "1000", "at": AT})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["amount"]["amount"] == "900.00"
        assert response.data["total_discount"]["amount"] == "100.00"
        assert response.data["applied_promotions"][0]["promotion_id"] == str(promotion.id)

    def test_stackable_promotions(self, api_client):
        self.make_promotion("FIRST", stackable=True, stacking_order=1, discount_type="FIXED_AMOUNT",
                            discount_value=Decimal("100"))
        self.make_promotion("SECOND", stackable=True, stacking_order=2)

        response = api_client.get(f"{BASE_URL}/promotions/apply/", {"amount": "1000", "at": AT})

        assert [p["code"] for p in response.data["applied_promotions"]] == ["FIRST", "SECOND"]
        assert response.data["amount"]["amount"] == "810.00"

    def test_category_targeting(self, api_client, products, category):
        promotion = self.make_promotion("SNACKS", apply_to_all_products=False)
        promotion.applicable_categories.add(category)

        targeted = api_client.get(
            f"{BASE_URL}/promotions/apply/",
            {"amount": "500", "at": AT, "product_id": str(products[0].id)},
        )
        untargeted = api_client.get(f"{BASE_URL}/promotions/apply/", {"amount": "500", "at": AT})

        assert targeted.data["amount"]["amount"] == "450.00"
        assert untargeted.data["applied_promotions"] == []

    def test_amount_required(self, api_client, db):
        response = api_client.get(f"{BASE_URL}/promotions/apply/")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "amount" in response.data["error"]

    def test_running_promotions(self, api_client):
        self.make_promotion("LATE", stacking_order=2)
        self.make_promotion("EARLY", stacking_order=1)
        self.make_promotion("OFF", active=False)

        response = api_client.get(f"{BASE_URL}/promotions/running/", {"at": AT})

        assert response.status_code == status.HTTP_200_OK
        assert [p["code"] for p in response.data] == ["EARLY", "LATE"]

    def test_no_promotion_running_after_end_date(self, api_client):
        self.make_promotion("TEN")

        response = api_client.get(f"{BASE_URL}/promotions/running/", {"at": "2025-01-15T12:00:00"})

        assert response.data == []


@pytest.mark.django_db
class TestReadOnlyListings:

    def test_exchange_rates(self, api_client, eur_rate):
        response = api_client.get(f"{BASE_URL}/exchange-rates/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]["currency"] == "EUR"
        assert response.data[0]["rate_to_xof"] == "655.957000"

    def test_scheduled_prices_flag_validity(self, api_client, products):
        ScheduledPrice.objects.create(name="Always", product=products[0], amount=Decimal("1"))
        ScheduledPrice.objects.create(name="Off", product=products[0], amount=Decimal("1"), active=False)

        response = api_client.get(f"{BASE_URL}/scheduled-prices/")

        validity = {row["name"]: row["currently_valid"] for row in response.data}
        assert validity == {"Always": True, "Off": False}

    def test_catalog_is_read_only(self, api_client, db):
        response = api_client.post(f"{BASE_URL}/products/", {"code": "NEW", "name": "New"})

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED


@pytest.mark.django_db
class TestConvert:
    """Tests for GET /exchange-rates/convert/."""

    def test_eur_to_xof(self, api_client, eur_rate):
        """Test 10 EUR at 655.957 is 6559.57 XOF."""
        response = api_client.get(
            f"{BASE_URL}/exchange-rates/convert/",
            {"amount": "10", "source_currency": "EUR", "at": "2024-03-01T10:00:00"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["converted"] == {"amount": "6559.57", "currency": "XOF"}
        assert response.data["valuation_date"] == "2024-03-01"

    def test_rate_not_yet_effective(self, api_client, eur_rate):
        response = api_client.get(
            f"{BASE_URL}/exchange-rates/convert/",
            {"amount": "10", "source_currency": "EUR", "at": "2023-12-31T10:00:00"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_source_currency_required(self, api_client, db):
        response = api_client.get(f"{BASE_URL}/exchange-rates/convert/", {"amount": "10"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "source_currency" in response.data["error"]
