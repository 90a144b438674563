"""
Data Transfer Objects for the application layer.
DTOs decouple internal domain models from external API contracts.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from apps.pricing.domain.models import (
    AppliedPromotion,
    Money,
    ProductPriceQuote,
    PromotionalPrice,
)


@dataclass
class MoneyDTO:
    """Amount with its currency code."""
    amount: Decimal
    currency: str

    @classmethod
    def from_money(cls, money: Money) -> "MoneyDTO":
        return cls(amount=money.amount, currency=money.currency.value)


@dataclass
class ProductPriceDTO:
    """Resolved product price."""
    product_id: str
    price: MoneyDTO
    native_price: MoneyDTO
    priced_at: datetime
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_quote(cls, quote: ProductPriceQuote, priced_at: datetime) -> "ProductPriceDTO":
        return cls(
            product_id=str(quote.product_id),
            price=MoneyDTO.from_money(quote.price),
            native_price=MoneyDTO.from_money(quote.native_price),
            priced_at=priced_at,
            rule_id=str(quote.rule.id) if quote.rule else None,
            rule_name=quote.rule.name if quote.rule else None,
            warnings=[warning.message for warning in quote.warnings],
        )


@dataclass
class BundlePriceDTO:
    """Resolved bundle price with savings against buying items separately."""
    bundle_id: str
    price: MoneyDTO
    separate_price: MoneyDTO
    savings: MoneyDTO
    priced_at: datetime


@dataclass
class AppliedPromotionDTO:
    promotion_id: str
    code: str
    discount: MoneyDTO

    @classmethod
    def from_applied(cls, applied: AppliedPromotion) -> "AppliedPromotionDTO":
        return cls(
            promotion_id=str(applied.promotion_id),
            code=applied.code,
            discount=MoneyDTO.from_money(applied.discount),
        )


@dataclass
class PromotionalPriceDTO:
    """Amount before and after promotions."""
    original: MoneyDTO
    amount: MoneyDTO
    total_discount: MoneyDTO
    priced_at: datetime
    applied_promotions: List[AppliedPromotionDTO] = field(default_factory=list)

    @classmethod
    def from_result(cls, result: PromotionalPrice, priced_at: datetime) -> "PromotionalPriceDTO":
        return cls(
            original=MoneyDTO.from_money(result.original),
            amount=MoneyDTO.from_money(result.amount),
            total_discount=MoneyDTO.from_money(result.total_discount),
            priced_at=priced_at,
            applied_promotions=[AppliedPromotionDTO.from_applied(a) for a in result.applied],
        )


@dataclass
class UsageReservationResultDTO:
    """Result DTO for the post-sale counter update task."""
    success: bool
    reserved_promotions: List[str]
    rejected_promotions: List[str]
    reserved_bundles: List[str]
    rejected_bundles: List[str]
