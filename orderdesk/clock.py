from datetime import datetime, timedelta, timezone

from .config import BUSINESS_UTC_OFFSET_HOURS


class SystemClock:
    """Wall clock in the business's local time (naive, like delivery slots)"""

    def __init__(self, utc_offset_hours: int = BUSINESS_UTC_OFFSET_HOURS):
        self.offset = timedelta(hours=utc_offset_hours)

    def now(self) -> datetime:
        return (datetime.now(timezone.utc) + self.offset).replace(tzinfo=None)


def get_clock() -> SystemClock:
    """FastAPI dependency; tests override it with a frozen clock"""
    return SystemClock()
