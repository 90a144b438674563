"""
Domain services - price resolution.

Every resolver is stateless: it reads the catalog on each call and never
mutates rule, rate or counter state. Failures that are normal business
outcomes (no exchange rate, bundle not on sale) are returned as typed
results rather than raised.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from apps.pricing.domain.adjustments import HUNDRED, PriceAdjustmentCalculator
from apps.pricing.domain.interfaces import Clock, PricingCatalog
from apps.pricing.domain.models import (
    REFERENCE_CURRENCY,
    AppliedPromotion,
    BundleUnavailable,
    Currency,
    DiscountType,
    Money,
    PriceType,
    ProductBundle,
    ProductPriceQuote,
    Promotion,
    PromotionalPrice,
    RateNotFound,
    ScheduledPriceRule,
    ScheduledResolution,
    UnavailableReason,
    round_money,
)
from apps.pricing.domain.validity import RuleValidityEvaluator

logger = logging.getLogger(__name__)


class ExchangeRateResolver:
    """Looks up rate-to-XOF values and converts amounts between currencies."""

    def __init__(self, catalog: PricingCatalog):
        self.catalog = catalog

    def resolve_rate(self, currency: Currency, as_of: date) -> Decimal | RateNotFound:
        """
        Rate to XOF for ``currency`` on ``as_of``.

        Among active records already effective and not yet expired, the one
        with the latest effective date wins. XOF is always 1.

        Example:
            >>> resolver.resolve_rate(Currency.EUR, date(2024, 3, 1))
            Decimal('655.957000')
        """
        if currency == REFERENCE_CURRENCY:
            return Decimal("1")

        candidates = [rate for rate in self.catalog.get_exchange_rates(currency) if rate.covers(as_of)]
        if not candidates:
            logger.warning("No exchange rate for %s on %s", currency.value, as_of)
            return RateNotFound(currency, as_of)

        best = max(candidates, key=lambda rate: rate.effective_date)
        return best.rate_to_xof

    def convert(self, money: Money, target: Currency, as_of: date) -> Money | RateNotFound:
        """Convert through XOF; the result is rounded HALF_UP to 2 decimals."""
        if money.currency == target:
            return money

        amount_xof = money.amount
        if money.currency != REFERENCE_CURRENCY:
            from_rate = self.resolve_rate(money.currency, as_of)
            if isinstance(from_rate, RateNotFound):
                return from_rate
            amount_xof = money.amount * from_rate

        if target == REFERENCE_CURRENCY:
            return Money(round_money(amount_xof), target)

        to_rate = self.resolve_rate(target, as_of)
        if isinstance(to_rate, RateNotFound):
            return to_rate
        return Money(round_money(amount_xof / to_rate), target)


class ScheduledPriceResolver:
    """Picks the winning scheduled price rule for a product and applies it."""

    def __init__(self, catalog: PricingCatalog, rates: Optional[ExchangeRateResolver] = None):
        self.catalog = catalog
        self.rates = rates if rates is not None else ExchangeRateResolver(catalog)

    @staticmethod
    def _ranking(rule: ScheduledPriceRule):
        # priority desc, then most specific window, then rule id asc
        return (-rule.priority, -RuleValidityEvaluator.specificity(rule.window), str(rule.id))

    def valid_rules(self, product_id: UUID, instant: datetime) -> List[ScheduledPriceRule]:
        """Rules in force at ``instant``, winner first."""
        rules = [
            rule for rule in self.catalog.get_scheduled_rules(product_id)
            if RuleValidityEvaluator.is_valid(rule.window, instant)
        ]
        return sorted(rules, key=self._ranking)

    def select_rule(self, product_id: UUID, instant: datetime) -> Optional[ScheduledPriceRule]:
        rules = self.valid_rules(product_id, instant)
        return rules[0] if rules else None

    def base_price(self, product_id: UUID, currency: Currency) -> Money:
        amount = self.catalog.get_base_price(product_id, currency)
        if amount is None:
            logger.warning("Product %s has no base price in %s, using 0", product_id, currency.value)
            return Money.zero(currency)
        return Money(amount, currency)

    def _rule_amount(self, rule: ScheduledPriceRule, base: Money, instant: datetime) -> Decimal | None | RateNotFound:
        """The rule's amount expressed in the currency of ``base``."""
        if rule.amount is None or rule.percentage is not None:
            return rule.amount
        if rule.price_type == PriceType.FIXED or rule.currency == base.currency:
            return rule.amount
        converted = self.rates.convert(Money(rule.amount, rule.currency), base.currency, instant.date())
        if isinstance(converted, RateNotFound):
            return converted
        return converted.amount

    def resolve(
        self,
        product_id: UUID,
        base_currency: Currency,
        instant: datetime,
    ) -> ScheduledResolution | RateNotFound:
        """
        Apply the winning rule to the product's stored price in ``base_currency``.

        A FIXED rule replaces the price with its amount in the rule's own
        currency. Discount and markup amounts are first converted into
        ``base_currency``; percentages need no conversion.
        """
        base = self.base_price(product_id, base_currency)
        rule = self.select_rule(product_id, instant)
        if rule is None:
            return ScheduledResolution(price=base, base_price=base)

        warnings = ()
        problem = PriceAdjustmentCalculator.check(rule.price_type, rule.amount, rule.percentage, rule.id)
        if problem is not None:
            logger.warning("Scheduled price rule %s ignored: %s", rule.id, problem.message)
            warnings = (problem,)

        if rule.price_type == PriceType.FIXED and rule.amount is not None:
            price = Money(rule.amount, rule.currency)
        else:
            amount = self._rule_amount(rule, base, instant)
            if isinstance(amount, RateNotFound):
                return amount
            price = PriceAdjustmentCalculator.apply(base, rule.price_type, amount, rule.percentage)

        logger.debug(
            "Effective price for product %s: %s %s (base: %s, rule: %s)",
            product_id, price.amount, price.currency.value, base.amount, rule.name or rule.id,
        )
        return ScheduledResolution(price=price, base_price=base, rule=rule, warnings=warnings)


class PromotionResolver:
    """
    Applies promotion discounts to an amount.

    Eligible promotions are ordered by (stacking_order, code). The first
    non-stackable promotion whose minimum purchase is met is applied alone;
    otherwise every stackable promotion applies in order, each on the amount
    left by the previous one.
    """

    def __init__(self, catalog: PricingCatalog):
        self.catalog = catalog

    def eligible(
        self,
        instant: datetime,
        product_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
    ) -> List[Promotion]:
        if product_id is not None and category_id is None:
            category_id = self.catalog.get_product_category(product_id)

        promotions = [
            promotion for promotion in self.catalog.get_active_promotions()
            if promotion.active
            and promotion.start_date <= instant <= promotion.end_date
            and not promotion.usage_exhausted
            and promotion.applies_to(product_id, category_id)
        ]
        return sorted(promotions, key=lambda promotion: (promotion.stacking_order, promotion.code))

    @staticmethod
    def meets_minimum(promotion: Promotion, amount: Money) -> bool:
        minimum = promotion.minimum_purchase_amount
        return minimum is None or amount.amount >= minimum

    @staticmethod
    def calculate_discount(promotion: Promotion, amount: Money) -> Money:
        if promotion.discount_type == DiscountType.PERCENTAGE:
            discount = round_money(amount.amount * promotion.discount_value / HUNDRED)
            cap = promotion.maximum_discount_amount
            if cap is not None and discount > cap:
                discount = cap
        else:
            discount = min(promotion.discount_value, amount.amount)
        return Money(max(discount, Decimal("0")), amount.currency)

    def resolve(
        self,
        amount: Money,
        instant: datetime,
        product_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
    ) -> PromotionalPrice:
        candidates = [
            promotion for promotion in self.eligible(instant, product_id, category_id)
            if self.meets_minimum(promotion, amount)
        ]

        exclusive = next((promotion for promotion in candidates if not promotion.stackable), None)
        to_apply = [exclusive] if exclusive is not None else candidates

        running = amount
        applied = []
        for promotion in to_apply:
            discount = self.calculate_discount(promotion, running)
            running = running - discount
            applied.append(AppliedPromotion(promotion.id, promotion.code, discount))

        if applied:
            logger.debug("Promotions %s applied to %s: %s", [a.code for a in applied], amount.amount, running.amount)
        return PromotionalPrice(original=amount, amount=running, applied=applied)


def resolve_product_in_currency(
    scheduled: ScheduledPriceResolver,
    rates: ExchangeRateResolver,
    product_id: UUID,
    currency: Currency,
    instant: datetime,
) -> ProductPriceQuote | RateNotFound:
    """
    Scheduled price of a product expressed in ``currency``.

    The rule is applied to the stored price in ``currency`` when the product
    has one, else to its XOF price. The native price is that result, or the
    amount of a winning FIXED rule in the rule's currency.
    """
    if scheduled.catalog.get_base_price(product_id, currency) is not None:
        native = currency
    else:
        native = REFERENCE_CURRENCY

    resolution = scheduled.resolve(product_id, native, instant)
    if isinstance(resolution, RateNotFound):
        return resolution
    converted = rates.convert(resolution.price, currency, instant.date())
    if isinstance(converted, RateNotFound):
        return converted

    return ProductPriceQuote(
        product_id=product_id,
        price=converted,
        native_price=resolution.price,
        rule=resolution.rule,
        warnings=resolution.warnings,
    )


class BundlePriceComposer:
    """Prices bundles from an explicit price or from their discounted items."""

    def __init__(self, catalog: PricingCatalog, scheduled: ScheduledPriceResolver, rates: ExchangeRateResolver):
        self.catalog = catalog
        self.scheduled = scheduled
        self.rates = rates

    def _load(self, bundle_id: UUID) -> ProductBundle | BundleUnavailable:
        bundle = self.catalog.get_bundle(bundle_id)
        if bundle is None:
            return BundleUnavailable(bundle_id, UnavailableReason.NOT_FOUND)
        return bundle

    def check_availability(self, bundle: ProductBundle, instant: datetime) -> Optional[BundleUnavailable]:
        reason = RuleValidityEvaluator.bundle_unavailability(bundle, instant)
        if reason is None:
            return None
        return BundleUnavailable(bundle.id, reason)

    def _separate_price(self, bundle: ProductBundle, currency: Currency, instant: datetime) -> Money | RateNotFound:
        total = Money.zero(currency)
        for item in bundle.items:
            quote = resolve_product_in_currency(self.scheduled, self.rates, item.product_id, currency, instant)
            if isinstance(quote, RateNotFound):
                return quote
            total = total + quote.price.times(item.quantity)
        return total

    def _bundle_price(self, bundle: ProductBundle, currency: Currency, instant: datetime) -> Money | RateNotFound:
        explicit = bundle.explicit_price(currency)
        if explicit is not None:
            return explicit

        separate = self._separate_price(bundle, currency, instant)
        if isinstance(separate, RateNotFound):
            return separate

        if bundle.discount_percentage and bundle.discount_percentage > 0:
            discount = round_money(separate.amount * bundle.discount_percentage / HUNDRED)
            return Money(separate.amount - discount, currency)
        return separate

    def calculate_separate_price(
        self,
        bundle_id: UUID,
        currency: Currency,
        instant: datetime,
    ) -> Money | BundleUnavailable | RateNotFound:
        """What the items would cost bought one by one. Ignores availability."""
        bundle = self._load(bundle_id)
        if isinstance(bundle, BundleUnavailable):
            return bundle
        return self._separate_price(bundle, currency, instant)

    def resolve(self, bundle_id: UUID, currency: Currency, instant: datetime) -> Money | BundleUnavailable | RateNotFound:
        bundle = self._load(bundle_id)
        if isinstance(bundle, BundleUnavailable):
            return bundle

        unavailable = self.check_availability(bundle, instant)
        if unavailable is not None:
            logger.info("Bundle %s unavailable: %s", bundle.code, unavailable.reason.value)
            return unavailable

        return self._bundle_price(bundle, currency, instant)

    def savings(self, bundle_id: UUID, currency: Currency, instant: datetime) -> Money | BundleUnavailable | RateNotFound:
        """Separate price minus bundle price, for display."""
        bundle = self._load(bundle_id)
        if isinstance(bundle, BundleUnavailable):
            return bundle

        separate = self._separate_price(bundle, currency, instant)
        if isinstance(separate, RateNotFound):
            return separate
        price = self._bundle_price(bundle, currency, instant)
        if isinstance(price, RateNotFound):
            return price
        return separate - price

    def available_bundles(self, instant: datetime) -> List[ProductBundle]:
        return [
            bundle for bundle in self.catalog.get_active_bundles()
            if RuleValidityEvaluator.bundle_unavailability(bundle, instant) is None
        ]


class PriceResolutionService:
    """
    Entry point for cart pricing, catalog display and reporting.

    Product prices go scheduled rule -> currency conversion; promotions are
    folded in only for cart lines. Bundles are priced by the composer and do
    not combine with line-item promotions.
    """

    def __init__(self, catalog: PricingCatalog, clock: Clock):
        self.catalog = catalog
        self.clock = clock
        self.rates = ExchangeRateResolver(catalog)
        self.scheduled = ScheduledPriceResolver(catalog, self.rates)
        self.promotions = PromotionResolver(catalog)
        self.bundles = BundlePriceComposer(catalog, self.scheduled, self.rates)

    def _instant(self, instant: Optional[datetime]) -> datetime:
        return instant if instant is not None else self.clock.now()

    def quote_product_price(
        self,
        product_id: UUID,
        currency: Currency,
        instant: Optional[datetime] = None,
    ) -> ProductPriceQuote | RateNotFound:
        return resolve_product_in_currency(self.scheduled, self.rates, product_id, currency, self._instant(instant))

    def resolve_product_price(
        self,
        product_id: UUID,
        currency: Currency,
        instant: Optional[datetime] = None,
    ) -> Money | RateNotFound:
        quote = self.quote_product_price(product_id, currency, instant)
        if isinstance(quote, RateNotFound):
            return quote
        return quote.price

    def resolve_bundle_price(
        self,
        bundle_id: UUID,
        currency: Currency,
        instant: Optional[datetime] = None,
    ) -> Money | BundleUnavailable | RateNotFound:
        return self.bundles.resolve(bundle_id, currency, self._instant(instant))

    def resolve_promotional_price(
        self,
        amount: Money,
        instant: Optional[datetime] = None,
        product_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
    ) -> PromotionalPrice:
        return self.promotions.resolve(amount, self._instant(instant), product_id, category_id)

    def price_cart_line(
        self,
        product_id: UUID,
        currency: Currency,
        quantity: int = 1,
        instant: Optional[datetime] = None,
    ) -> PromotionalPrice | RateNotFound:
        """Line total (unit price x quantity) with promotions applied."""
        instant = self._instant(instant)
        unit = self.resolve_product_price(product_id, currency, instant)
        if isinstance(unit, RateNotFound):
            return unit
        return self.promotions.resolve(unit.times(quantity), instant, product_id=product_id)
