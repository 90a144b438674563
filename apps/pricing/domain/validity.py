"""
Temporal validity checks for scheduled price rules and bundles.
"""

from datetime import datetime
from typing import Optional

from apps.pricing.domain.models import ProductBundle, UnavailableReason, ValidityWindow


class RuleValidityEvaluator:
    """
    Decides whether a rule is in force at a given instant.

    Checks run in a fixed order and stop at the first failure:
    1. active flag
    2. date range, both bounds inclusive
    3. time of day; a single bound leaves the other side open
    4. day of week, when a set is configured
    """

    @staticmethod
    def is_valid(window: ValidityWindow, instant: datetime) -> bool:
        if not window.active:
            return False

        today = instant.date()
        if window.valid_from is not None and today < window.valid_from:
            return False
        if window.valid_until is not None and today > window.valid_until:
            return False

        current_time = instant.time()
        if window.time_from is not None and current_time < window.time_from:
            return False
        if window.time_until is not None and current_time > window.time_until:
            return False

        if window.days_of_week and instant.weekday() not in window.days_of_week:
            return False

        return True

    @staticmethod
    def specificity(window: ValidityWindow) -> int:
        """Number of configured constraints, used to break priority ties."""
        constraints = (
            window.valid_from,
            window.valid_until,
            window.time_from,
            window.time_until,
        )
        score = sum(1 for value in constraints if value is not None)
        if window.days_of_week:
            score += 1
        return score

    @staticmethod
    def bundle_unavailability(bundle: ProductBundle, instant: datetime) -> Optional[UnavailableReason]:
        """
        Return why a bundle cannot be sold at ``instant``, or None when it can.

        Order: active, date range, time-of-day window, daily limit.
        """
        if not bundle.active:
            return UnavailableReason.INACTIVE

        if bundle.valid_from is not None and instant < bundle.valid_from:
            return UnavailableReason.OUT_OF_DATE_RANGE
        if bundle.valid_until is not None and instant > bundle.valid_until:
            return UnavailableReason.OUT_OF_DATE_RANGE

        if bundle.time_restricted and bundle.start_time and bundle.end_time:
            # Wall-clock strings compare lexically ("06:00" < "11:00")
            current = f"{instant.hour:02d}:{instant.minute:02d}"
            if current < bundle.start_time or current > bundle.end_time:
                return UnavailableReason.OUTSIDE_TIME_WINDOW

        if bundle.daily_limit is not None and bundle.today_sold_count >= bundle.daily_limit:
            return UnavailableReason.DAILY_LIMIT_REACHED

        return None
