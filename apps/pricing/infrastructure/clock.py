from datetime import datetime

from django.utils import timezone

from apps.pricing.domain.interfaces import Clock


class SystemClock(Clock):
    """Current wall-clock time in the configured TIME_ZONE."""

    def now(self) -> datetime:
        return timezone.localtime()


class FixedClock(Clock):
    """Always returns the same instant. Useful for tests and replays."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant
