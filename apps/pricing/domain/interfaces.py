from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from apps.pricing.domain.models import (
    Currency,
    ExchangeRate,
    ProductBundle,
    Promotion,
    ScheduledPriceRule,
)


class PricingCatalog(ABC):
    """Read-only access to the records price resolution works on."""

    @abstractmethod
    def get_exchange_rates(self, currency: Currency) -> List[ExchangeRate]:
        pass

    @abstractmethod
    def get_scheduled_rules(self, product_id: UUID) -> List[ScheduledPriceRule]:
        pass

    @abstractmethod
    def get_base_price(self, product_id: UUID, currency: Currency) -> Decimal | None:
        pass

    @abstractmethod
    def get_product_category(self, product_id: UUID) -> UUID | None:
        pass

    @abstractmethod
    def get_active_promotions(self) -> List[Promotion]:
        pass

    @abstractmethod
    def get_bundle(self, bundle_id: UUID) -> ProductBundle | None:
        pass

    @abstractmethod
    def get_active_bundles(self) -> List[ProductBundle]:
        pass


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        pass


class UsageReservation(ABC):
    """
    Counter mutations that sit next to price resolution.
    Implementations must check the limit and increment atomically.
    """

    @abstractmethod
    def try_reserve_promotion(self, promotion_id: UUID) -> bool:
        pass

    @abstractmethod
    def try_reserve_bundle(self, bundle_id: UUID) -> bool:
        pass

    @abstractmethod
    def reset_bundle_daily_counts(self) -> int:
        pass
