import pytest
from decimal import Decimal
from uuid import uuid4

from apps.pricing.domain.adjustments import PriceAdjustmentCalculator
from apps.pricing.domain.models import Currency, Money, PriceType


BASE = Money(Decimal("1000"), Currency.XOF)


class TestApply:
    """Tests for PriceAdjustmentCalculator.apply."""

    def test_fixed_replaces_base(self):
        result = PriceAdjustmentCalculator.apply(BASE, PriceType.FIXED, amount=Decimal("750"))

        assert result == Money(Decimal("750"), Currency.XOF)

    @pytest.mark.parametrize("price_type,amount,percentage,expected", [
        (PriceType.DISCOUNT, None, Decimal("10"), Decimal("900")),
        (PriceType.DISCOUNT, Decimal("150"), None, Decimal("850")),
        (PriceType.MARKUP, None, Decimal("20"), Decimal("1200")),
        (PriceType.MARKUP, Decimal("50"), None, Decimal("1050")),
    ])
    def test_discount_and_markup(self, price_type, amount, percentage, expected):
        result = PriceAdjustmentCalculator.apply(BASE, price_type, amount, percentage)

        assert result.amount == expected
        assert result.currency == Currency.XOF

    def test_percentage_wins_over_amount(self):
        """Test the percentage is used when both are configured."""
        result = PriceAdjustmentCalculator.apply(BASE, PriceType.DISCOUNT, Decimal("500"), Decimal("10"))

        assert result.amount == Decimal("900")

    def test_discount_never_below_zero(self):
        result = PriceAdjustmentCalculator.apply(BASE, PriceType.DISCOUNT, amount=Decimal("1500"))

        assert result.amount == Decimal("0")

    def test_percentage_rounded_half_up(self):
        """Test the percentage adjustment is rounded to 2 decimals."""
        base = Money(Decimal("9.99"), Currency.EUR)
        result = PriceAdjustmentCalculator.apply(base, PriceType.DISCOUNT, percentage=Decimal("15"))

        # 9.99 * 15% = 1.4985 -> 1.50
        assert result.amount == Decimal("8.49")

    @pytest.mark.parametrize("price_type", [PriceType.FIXED, PriceType.DISCOUNT, PriceType.MARKUP, "LEGACY"])
    def test_misconfigured_returns_base(self, price_type):
        assert PriceAdjustmentCalculator.apply(BASE, price_type) == BASE


class TestCheck:
    """Tests for PriceAdjustmentCalculator.check."""

    def test_valid_configurations(self):
        assert PriceAdjustmentCalculator.check(PriceType.FIXED, amount=Decimal("1")) is None
        assert PriceAdjustmentCalculator.check(PriceType.DISCOUNT, percentage=Decimal("5")) is None
        assert PriceAdjustmentCalculator.check(PriceType.MARKUP, amount=Decimal("5")) is None

    def test_fixed_without_amount(self):
        rule_id = uuid4()
        warning = PriceAdjustmentCalculator.check(PriceType.FIXED, percentage=Decimal("10"), rule_id=rule_id)

        assert warning.rule_id == rule_id
        assert warning.price_type == "FIXED"
        assert "no amount" in warning.message

    def test_discount_without_values(self):
        warning = PriceAdjustmentCalculator.check(PriceType.DISCOUNT)

        assert "neither amount nor percentage" in warning.message

    def test_unknown_price_type(self):
        warning = PriceAdjustmentCalculator.check("LEGACY", amount=Decimal("1"))

        assert warning.price_type == "LEGACY"
        assert "Unknown price type" in warning.message
