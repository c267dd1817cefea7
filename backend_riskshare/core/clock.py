"""
Injectable clock with an explicit time zone.

Day boundaries are local midnights in the clock's zone. On DST transition days
the interval [00:00, next 00:00) is 23 or 25 hours long.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo


class Clock:
    """Wall clock bound to one time zone."""

    def __init__(self, tz: tzinfo | str = "UTC") -> None:
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def localize(self, value: datetime) -> datetime:
        """Attach the clock's zone to naive datetimes; convert aware ones."""
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)

    def day_start(self, day: date) -> datetime:
        return datetime.combine(day, time(0), tzinfo=self.tz)

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """Return the aware [start, end) interval covering the calendar day."""
        return self.day_start(day), self.day_start(day + timedelta(days=1))

    def date_of(self, value: datetime) -> date:
        """Calendar date of a timestamp in the clock's zone."""
        return self.localize(value).date()


class FixedClock(Clock):
    """Clock frozen at a given instant; for tests and reproducible runs."""

    def __init__(self, now: datetime, tz: tzinfo | str = "UTC") -> None:
        super().__init__(tz)
        self._now = self.localize(now)

    def now(self) -> datetime:
        return self._now
