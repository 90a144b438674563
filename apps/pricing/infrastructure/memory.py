"""
In-memory catalog and counters.
Useful for:
- Testing resolvers without a database
- Pricing previews built from records that are not saved yet
"""

import dataclasses
import threading
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from apps.pricing.domain.interfaces import PricingCatalog, UsageReservation
from apps.pricing.domain.models import (
    Currency,
    ExchangeRate,
    ProductBundle,
    Promotion,
    ScheduledPriceRule,
)


class InMemoryPricingCatalog(PricingCatalog):

    def __init__(
        self,
        rates: Iterable[ExchangeRate] = (),
        rules: Iterable[ScheduledPriceRule] = (),
        promotions: Iterable[Promotion] = (),
        bundles: Iterable[ProductBundle] = (),
    ):
        self.rates: List[ExchangeRate] = list(rates)
        self.rules: List[ScheduledPriceRule] = list(rules)
        self.promotions: Dict[UUID, Promotion] = {p.id: p for p in promotions}
        self.bundles: Dict[UUID, ProductBundle] = {b.id: b for b in bundles}
        self.base_prices: Dict[UUID, Dict[Currency, Decimal]] = {}
        self.categories: Dict[UUID, UUID] = {}

    def add_product(self, product_id: UUID, category_id: Optional[UUID] = None, **prices: Decimal) -> None:
        """Register base prices, e.g. ``add_product(pid, XOF=Decimal("1000"))``."""
        self.base_prices[product_id] = {Currency.parse(code): Decimal(value) for code, value in prices.items()}
        if category_id is not None:
            self.categories[product_id] = category_id

    def get_exchange_rates(self, currency: Currency) -> List[ExchangeRate]:
        return [rate for rate in self.rates if rate.currency == currency]

    def get_scheduled_rules(self, product_id: UUID) -> List[ScheduledPriceRule]:
        return [rule for rule in self.rules if rule.product_id == product_id]

    def get_base_price(self, product_id: UUID, currency: Currency) -> Decimal | None:
        return self.base_prices.get(product_id, {}).get(currency)

    def get_product_category(self, product_id: UUID) -> UUID | None:
        return self.categories.get(product_id)

    def get_active_promotions(self) -> List[Promotion]:
        return [promotion for promotion in self.promotions.values() if promotion.active]

    def get_bundle(self, bundle_id: UUID) -> ProductBundle | None:
        return self.bundles.get(bundle_id)

    def get_active_bundles(self) -> List[ProductBundle]:
        return [bundle for bundle in self.bundles.values() if bundle.active]


class InMemoryUsageReservation(UsageReservation):
    """Counters kept on an InMemoryPricingCatalog, guarded by a lock."""

    def __init__(self, catalog: InMemoryPricingCatalog):
        self.catalog = catalog
        self._lock = threading.Lock()

    def try_reserve_promotion(self, promotion_id: UUID) -> bool:
        with self._lock:
            promotion = self.catalog.promotions.get(promotion_id)
            if promotion is None or not promotion.active or promotion.usage_exhausted:
                return False
            count = promotion.usage_count + 1
            active = promotion.usage_limit is None or count < promotion.usage_limit
            self.catalog.promotions[promotion_id] = dataclasses.replace(promotion, usage_count=count, active=active)
            return True

    def try_reserve_bundle(self, bundle_id: UUID) -> bool:
        with self._lock:
            bundle = self.catalog.bundles.get(bundle_id)
            if bundle is None:
                return False
            if bundle.daily_limit is not None and bundle.today_sold_count >= bundle.daily_limit:
                return False
            self.catalog.bundles[bundle_id] = dataclasses.replace(bundle, today_sold_count=bundle.today_sold_count + 1)
            return True

    def reset_bundle_daily_counts(self) -> int:
        with self._lock:
            for bundle_id, bundle in self.catalog.bundles.items():
                self.catalog.bundles[bundle_id] = dataclasses.replace(bundle, today_sold_count=0)
            return len(self.catalog.bundles)
