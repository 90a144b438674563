"""
Celery tasks for background processing.
"""

import logging
from dataclasses import asdict
from typing import Dict, List, Optional
from uuid import UUID

from celery import shared_task

from apps.pricing.application.dto import UsageReservationResultDTO
from apps.pricing.domain.interfaces import UsageReservation
from apps.pricing.infrastructure.persistence.repositories import DjangoUsageReservation

logger = logging.getLogger(__name__)


def get_reservation() -> UsageReservation:
    return DjangoUsageReservation()


@shared_task(name="reset_bundle_daily_counts")
def reset_bundle_daily_counts() -> Dict:
    """
    Reset every bundle's today_sold_count to 0.

    Scheduled at midnight by celery beat (see CELERY_BEAT_SCHEDULE).
    """
    reset = get_reservation().reset_bundle_daily_counts()
    return {
        "success": True,
        "bundles_reset": reset,
    }


@shared_task(name="record_sale_usage")
def record_sale_usage(
    promotion_ids: Optional[List[str]] = None,
    bundle_ids: Optional[List[str]] = None,
) -> Dict:
    """
    Count a completed sale against promotion usage limits and bundle daily limits.

    Each id is reserved with an atomic check-and-increment. Ids that hit their
    limit (or do not exist) are reported as rejected; the caller decides
    whether to void the sale line.

    Args:
        promotion_ids: Promotions applied to the sale
        bundle_ids: Bundles sold, one entry per unit

    Returns:
        Dict with reserved and rejected ids
    """
    reservation = get_reservation()
    result = UsageReservationResultDTO(
        success=True,
        reserved_promotions=[],
        rejected_promotions=[],
        reserved_bundles=[],
        rejected_bundles=[],
    )

    for promotion_id in promotion_ids or []:
        if reservation.try_reserve_promotion(UUID(str(promotion_id))):
            result.reserved_promotions.append(str(promotion_id))
        else:
            result.rejected_promotions.append(str(promotion_id))

    for bundle_id in bundle_ids or []:
        if reservation.try_reserve_bundle(UUID(str(bundle_id))):
            result.reserved_bundles.append(str(bundle_id))
        else:
            result.rejected_bundles.append(str(bundle_id))

    if result.rejected_promotions or result.rejected_bundles:
        result.success = False
        logger.warning(
            "Sale usage over limit: promotions=%s bundles=%s",
            result.rejected_promotions,
            result.rejected_bundles,
        )

    return asdict(result)
