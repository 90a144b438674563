"""
Repository pattern implementation.
Abstracts database access to decouple domain logic from persistence.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List
from uuid import UUID

from django.db import transaction
from django.db.models import F, Q

from apps.pricing.domain import models as domain
from apps.pricing.domain.interfaces import PricingCatalog, UsageReservation
from apps.pricing.infrastructure.persistence.models import (
    ExchangeRate,
    Product,
    ProductBundle,
    Promotion,
    ScheduledPrice,
)

logger = logging.getLogger(__name__)


def to_domain_rate(row: ExchangeRate) -> domain.ExchangeRate:
    return domain.ExchangeRate(
        id=row.id,
        currency=domain.Currency(row.currency),
        rate_to_xof=row.rate_to_xof,
        effective_date=row.effective_date,
        expiry_date=row.expiry_date,
        active=row.active,
        source=row.source,
    )


def to_domain_rule(row: ScheduledPrice) -> domain.ScheduledPriceRule:
    try:
        price_type = domain.PriceType(row.price_type)
    except ValueError:
        # kept as-is; the calculator treats unknown types as a no-op
        price_type = row.price_type

    return domain.ScheduledPriceRule(
        id=row.id,
        product_id=row.product_id,
        name=row.name,
        price_type=price_type,
        amount=row.amount,
        percentage=row.percentage,
        currency=domain.Currency(row.currency),
        window=domain.ValidityWindow(
            active=row.active,
            valid_from=row.valid_from,
            valid_until=row.valid_until,
            time_from=row.time_from,
            time_until=row.time_until,
            days_of_week=domain.parse_weekdays(row.days_of_week),
        ),
        priority=row.priority,
        period_type=domain.PeriodType(row.period_type),
    )


def to_domain_promotion(row: Promotion) -> domain.Promotion:
    return domain.Promotion(
        id=row.id,
        code=row.code,
        name=row.name,
        discount_type=domain.DiscountType(row.discount_type),
        discount_value=row.discount_value,
        start_date=row.start_date,
        end_date=row.end_date,
        minimum_purchase_amount=row.minimum_purchase_amount,
        maximum_discount_amount=row.maximum_discount_amount,
        active=row.active,
        stackable=row.stackable,
        apply_to_all_products=row.apply_to_all_products,
        product_ids=frozenset(p.id for p in row.applicable_products.all()),
        category_ids=frozenset(c.id for c in row.applicable_categories.all()),
        usage_limit=row.usage_limit,
        usage_count=row.usage_count,
        stacking_order=row.stacking_order,
    )


def to_domain_bundle(row: ProductBundle) -> domain.ProductBundle:
    prices = {}
    for currency in domain.Currency:
        amount = getattr(row, f"bundle_price_{currency.value.lower()}")
        if amount is not None:
            prices[currency] = amount

    return domain.ProductBundle(
        id=row.id,
        code=row.bundle_code,
        name=row.name,
        items=tuple(
            domain.BundleItem(
                product_id=item.product_id,
                quantity=item.quantity,
                optional=item.optional,
                substitutable=item.substitutable,
                substitution_group=item.substitution_group,
                display_order=item.display_order,
            )
            for item in row.items.all()
        ),
        prices=prices,
        discount_percentage=row.discount_percentage or Decimal("0"),
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        active=row.active,
        time_restricted=row.time_restricted,
        start_time=row.start_time or None,
        end_time=row.end_time or None,
        daily_limit=row.daily_limit,
        today_sold_count=row.today_sold_count,
    )


class DjangoPricingCatalog(PricingCatalog):
    """PricingCatalog backed by the ORM. Every call hits the database."""

    def get_exchange_rates(self, currency: domain.Currency) -> List[domain.ExchangeRate]:
        rows = ExchangeRate.objects.filter(currency=currency.value, active=True)
        return [to_domain_rate(row) for row in rows]

    def get_scheduled_rules(self, product_id: UUID) -> List[domain.ScheduledPriceRule]:
        rows = ScheduledPrice.objects.filter(product_id=product_id, active=True)
        return [to_domain_rule(row) for row in rows]

    def get_base_price(self, product_id: UUID, currency: domain.Currency) -> Decimal | None:
        product = Product.objects.filter(pk=product_id).first()
        if product is None:
            return None
        return product.selling_price(currency.value)

    def get_product_category(self, product_id: UUID) -> UUID | None:
        return Product.objects.filter(pk=product_id).values_list("category_id", flat=True).first()

    def get_active_promotions(self) -> List[domain.Promotion]:
        rows = Promotion.objects.filter(active=True).prefetch_related("applicable_products", "applicable_categories")
        return [to_domain_promotion(row) for row in rows]

    def get_bundle(self, bundle_id: UUID) -> domain.ProductBundle | None:
        row = ProductBundle.objects.prefetch_related("items").filter(pk=bundle_id).first()
        return to_domain_bundle(row) if row else None

    def get_active_bundles(self) -> List[domain.ProductBundle]:
        rows = ProductBundle.objects.filter(active=True).prefetch_related("items")
        return [to_domain_bundle(row) for row in rows]


class DjangoUsageReservation(UsageReservation):
    """
    Limit checks and increments happen in one conditional UPDATE, so two
    concurrent sales can never both take the last unit.
    """

    def try_reserve_promotion(self, promotion_id: UUID) -> bool:
        with transaction.atomic():
            updated = (
                Promotion.objects
                .filter(pk=promotion_id, active=True)
                .filter(Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit")))
                .update(usage_count=F("usage_count") + 1)
            )
            if not updated:
                return False

            exhausted = (
                Promotion.objects
                .filter(pk=promotion_id, usage_limit__isnull=False, usage_count__gte=F("usage_limit"))
                .update(active=False)
            )
            if exhausted:
                logger.info("Promotion %s usage limit reached, deactivated", promotion_id)
        return True

    def try_reserve_bundle(self, bundle_id: UUID) -> bool:
        updated = (
            ProductBundle.objects
            .filter(pk=bundle_id)
            .filter(Q(daily_limit__isnull=True) | Q(today_sold_count__lt=F("daily_limit")))
            .update(today_sold_count=F("today_sold_count") + 1)
        )
        return updated == 1

    def reset_bundle_daily_counts(self) -> int:
        count = ProductBundle.objects.update(today_sold_count=0)
        logger.info("Reset daily sold counts for %s bundles", count)
        return count


class ScheduledPriceRepository:
    """Repository for ScheduledPrice aggregate."""

    @staticmethod
    def get_for_product(product_id: UUID) -> List[ScheduledPrice]:
        """Get all rules of a product, highest priority first."""
        return list(ScheduledPrice.objects.filter(product_id=product_id).order_by("-priority", "name"))

    @staticmethod
    def count_active_for_product(product_id: UUID) -> int:
        return ScheduledPrice.objects.filter(product_id=product_id, active=True).count()


class PromotionRepository:
    """Repository for Promotion aggregate."""

    @staticmethod
    def get_running(now: datetime) -> List[Promotion]:
        """Active promotions whose date range contains ``now``, in stacking order."""
        return list(
            Promotion.objects
            .filter(active=True, start_date__lte=now, end_date__gte=now)
            .order_by("stacking_order", "code")
        )


class ExchangeRateRepository:
    """Repository for ExchangeRate aggregate."""

    @staticmethod
    def expire(rate: ExchangeRate, expiry_date: date) -> ExchangeRate:
        """Close a rate instead of deleting it; history stays for audit."""
        rate.expiry_date = expiry_date
        rate.save(update_fields=["expiry_date", "updated_at"])
        logger.info("Exchange rate %s for %s expired on %s", rate.id, rate.currency, expiry_date)
        return rate
