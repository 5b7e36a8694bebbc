"""
Clock abstraction

Session eviction and folio dates read time through a clock object so tests
can freeze or advance it.
"""
from datetime import datetime, timedelta, tzinfo
from typing import Optional

from dateutil import tz

from helpdesk.config import get_settings

settings = get_settings()


def local_zone(name: Optional[str] = None) -> tzinfo:
    """Resolve the helpdesk's local timezone (defaults to settings.local_timezone)"""
    zone = tz.gettz(name or settings.local_timezone)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name or settings.local_timezone}")
    return zone


class Clock:
    """Wall clock returning timezone-aware datetimes"""

    def now(self) -> datetime:
        return datetime.now(tz.UTC)

    def local_now(self, zone: Optional[tzinfo] = None) -> datetime:
        return self.now().astimezone(zone or local_zone())


class FrozenClock(Clock):
    """Manually driven clock for tests and replays"""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2026, 1, 6, 18, 0, tzinfo=tz.UTC)
        if self._now.tzinfo is None:
            self._now = self._now.replace(tzinfo=tz.UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)

    def set(self, value: datetime) -> None:
        self._now = value if value.tzinfo else value.replace(tzinfo=tz.UTC)
