from decimal import Decimal
from typing import Optional
from uuid import UUID

from apps.pricing.domain.models import (
    InvalidRuleConfiguration,
    Money,
    PriceType,
    round_money,
)


HUNDRED = Decimal("100")


class PriceAdjustmentCalculator:
    """
    Applies a FIXED / DISCOUNT / MARKUP adjustment to a base price.

    Percentages take precedence over amounts for DISCOUNT and MARKUP.
    Percentage adjustments are rounded HALF_UP to 2 decimals before being
    applied. A configuration with nothing to apply leaves the base untouched;
    use ``check`` to detect it.
    """

    @staticmethod
    def apply(
        base: Money,
        price_type: PriceType | str,
        amount: Optional[Decimal] = None,
        percentage: Optional[Decimal] = None,
    ) -> Money:
        if price_type == PriceType.FIXED:
            if amount is None:
                return base
            return Money(amount, base.currency)

        if price_type == PriceType.DISCOUNT:
            if percentage is not None:
                return Money(base.amount - round_money(base.amount * percentage / HUNDRED), base.currency)
            if amount is not None:
                return Money(max(base.amount - amount, Decimal("0")), base.currency)
            return base

        if price_type == PriceType.MARKUP:
            if percentage is not None:
                return Money(base.amount + round_money(base.amount * percentage / HUNDRED), base.currency)
            if amount is not None:
                return Money(base.amount + amount, base.currency)
            return base

        return base

    @staticmethod
    def check(
        price_type: PriceType | str,
        amount: Optional[Decimal] = None,
        percentage: Optional[Decimal] = None,
        rule_id: Optional[UUID] = None,
    ) -> Optional[InvalidRuleConfiguration]:
        """Describe why ``apply`` would fall back to the base price, if it would."""
        label = price_type.value if isinstance(price_type, PriceType) else str(price_type)

        if price_type not in (PriceType.FIXED, PriceType.DISCOUNT, PriceType.MARKUP):
            return InvalidRuleConfiguration(rule_id, label, f"Unknown price type '{label}'")
        if price_type == PriceType.FIXED and amount is None:
            return InvalidRuleConfiguration(rule_id, label, "FIXED rule has no amount")
        if amount is None and percentage is None:
            return InvalidRuleConfiguration(rule_id, label, f"{label} rule has neither amount nor percentage")
        return None
