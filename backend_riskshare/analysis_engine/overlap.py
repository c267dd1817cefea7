"""
Overlap of a time interval with one calendar day.

overlap = max(0, min(day_end, end) - max(day_begin, begin)), computed on
absolute timestamps so DST days (23h/25h) are measured correctly.
"""

from __future__ import annotations

from datetime import date, datetime

from backend_riskshare.core.clock import Clock

MS_PER_MINUTE = 60 * 1000
MS_PER_WEEK = 7 * 24 * 60 * MS_PER_MINUTE


class OverlapCalculator:
    """Pure day-overlap arithmetic in the clock's time zone."""

    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    def overlap_ms(self, begin: datetime, end: datetime, day: date) -> float:
        day_begin, day_end = self.clock.day_bounds(day)
        begin_ts = self.clock.localize(begin).timestamp()
        end_ts = self.clock.localize(end).timestamp()
        lo = max(day_begin.timestamp(), begin_ts)
        hi = min(day_end.timestamp(), end_ts)
        return max(0.0, (hi - lo) * 1000.0)

    def overlap_minutes(self, begin: datetime, end: datetime, day: date) -> float:
        return self.overlap_ms(begin, end, day) / MS_PER_MINUTE

    def overlap_weeks(self, begin: datetime, end: datetime, day: date) -> float:
        """Overlap as a fraction of a week; cohabitation multipliers are per week."""
        return self.overlap_ms(begin, end, day) / MS_PER_WEEK
