"""
District incidence lookup.

Incidence is keyed by district id, date and age group ("all" for the total).
Missing dates fall back to the nearest earlier date; if the district has no
earlier data, the earliest known date is used. A district without any data
raises UnresolvedRiskError.

load_directory() reads the bulk download layout:
    <root>/<YYYY-MM-DD>/resultSum.csv            (IdLandkreis, Landkreis, Inzidenz)
    <root>/<YYYY-MM-DD>/resultByAltersgruppe.csv (IdLandkreis, Landkreis, Inzidenz, Altersgruppe)
"""

from __future__ import annotations

import bisect
import csv
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path

from backend_riskshare.analysis_engine.calculator import DistrictIncidence
from backend_riskshare.core.exceptions import UnresolvedRiskError
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

AGE_GROUP_ALL = "all"
AGE_GROUPS = (
    "A00-A04",
    "A05-A14",
    "A15-A34",
    "A35-A59",
    "A60-A79",
    "A80+",
    "unbekannt",
    AGE_GROUP_ALL,
)

SUM_FILE = "resultSum.csv"
BY_AGE_FILE = "resultByAltersgruppe.csv"

POPULATION_BASE = 100_000
"""Incidence figures are normalized to 100k inhabitants."""
DEFAULT_POSITIVE_CASE_PERCENTAGE = 7.0
TREND_LOOKBACK_DAYS = 7


@dataclass
class District:
    id: str
    name: str
    incidence_by_date: dict[date, dict[str, float]] = field(default_factory=dict)


class DistrictIncidenceStore:
    """In-memory incidence table with date fallback."""

    def __init__(self) -> None:
        self.districts: dict[str, District] = {}

    def add(
        self,
        district_id: str,
        day: date,
        incidence: float,
        *,
        age_group: str = AGE_GROUP_ALL,
        name: str | None = None,
    ) -> None:
        district = self.districts.get(district_id)
        if district is None:
            district = District(id=district_id, name=name or district_id)
            self.districts[district_id] = district
        district.incidence_by_date.setdefault(day, {})[age_group] = float(incidence)

    def name(self, district_id: str) -> str:
        district = self.districts.get(district_id)
        return district.name if district else district_id

    def choices(self) -> list[tuple[str, str]]:
        """(id, name) pairs, sorted by name."""
        return sorted(((d.id, d.name) for d in self.districts.values()), key=lambda c: c[1])

    def _resolve_date(self, district: District, day: date, age_group: str) -> date:
        dates = sorted(d for d, groups in district.incidence_by_date.items() if age_group in groups)
        if not dates:
            raise UnresolvedRiskError(
                f"No incidence data for district {district.id!r}, age group {age_group!r}"
            )
        if day in district.incidence_by_date and age_group in district.incidence_by_date[day]:
            return day
        idx = bisect.bisect_left(dates, day)
        fallback = dates[idx - 1] if idx > 0 else dates[0]
        logger.info(
            "incidence_date_fallback",
            district_id=district.id,
            requested=day.isoformat(),
            used=fallback.isoformat(),
            age_group=age_group,
        )
        return fallback

    def incidence(self, district_id: str, day: date, age_group: str = AGE_GROUP_ALL) -> float:
        """
        Weekly cases per 100k for the district on `day`.

        Raises:
            UnresolvedRiskError: the district (or age group) has no data at all.
        """
        district = self.districts.get(district_id)
        if district is None:
            raise UnresolvedRiskError(f"Unknown district {district_id!r}")
        resolved = self._resolve_date(district, day, age_group)
        return district.incidence_by_date[resolved][age_group]

    def data_for_calculator(
        self, district_id: str, day: date, age_group: str = AGE_GROUP_ALL
    ) -> DistrictIncidence:
        """Build calculator input: current incidence and its change versus a week earlier."""
        cases_now = self.incidence(district_id, day, age_group)
        cases_before = self.incidence(district_id, day - timedelta(days=TREND_LOOKBACK_DAYS), age_group)
        percentage = cases_now / (cases_before + 1) * 100 - 100
        return DistrictIncidence(
            district_id=district_id,
            date=day,
            cases_past_week=cases_now,
            cases_increasing_percentage=percentage,
            population=POPULATION_BASE,
            positive_case_percentage=DEFAULT_POSITIVE_CASE_PERCENTAGE,
        )

    def load_file(self, path: Path, day: date, *, has_age_groups: bool) -> int:
        """Load one CSV; returns number of rows added. Rows with bad numbers are skipped."""
        added = 0
        with path.open(newline="", encoding="utf-8") as f:
            for row in csv.DictReader(f):
                district_id = (row.get("IdLandkreis") or "").strip()
                if not district_id:
                    continue
                try:
                    value = float(row.get("Inzidenz") or "")
                except ValueError:
                    logger.debug("incidence_row_skipped", path=str(path), district_id=district_id)
                    continue
                age_group = (row.get("Altersgruppe") or "").strip() if has_age_groups else AGE_GROUP_ALL
                if not age_group:
                    continue
                self.add(district_id, day, value, age_group=age_group, name=(row.get("Landkreis") or "").strip() or None)
                added += 1
        return added

    def load_directory(self, root: Path) -> int:
        """Load every <YYYY-MM-DD>/ subdirectory under root; returns rows loaded."""
        if not root.is_dir():
            logger.warning("incidence_dir_missing", path=str(root))
            return 0
        total = 0
        for sub in sorted(p for p in root.iterdir() if p.is_dir()):
            try:
                day = date.fromisoformat(sub.name)
            except ValueError:
                continue
            for filename, has_age_groups in ((SUM_FILE, False), (BY_AGE_FILE, True)):
                path = sub / filename
                if path.is_file():
                    total += self.load_file(path, day, has_age_groups=has_age_groups)
        logger.info("incidence_loaded", path=str(root), rows=total, districts=len(self.districts))
        return total
