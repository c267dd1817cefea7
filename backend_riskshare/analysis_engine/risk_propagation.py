"""
Risk propagation: turn activities and cohabitations into a contagiousness series.

1. Incoming risk for each of the last 43 days (offsets 42..0 before today):
   sum of activity and cohabitation contributions overlapping that day.
2. Outgoing risk for each of the last 29 days (offsets 0..28): convolution of
   incoming risk with the fixed transmission-probability kernel.

Series are returned newest first: days[offset] is `offset` days before today.
The window sizes are part of the certificate exchange and must not change;
peers have to agree on them to interoperate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Mapping, Sequence

from backend_riskshare.analysis_engine.calculator import (
    INTERACTION_ONE_TIME,
    INTERACTION_PARTNER,
    INTERACTION_REPEATED,
    PointCalculator,
)
from backend_riskshare.analysis_engine.models import (
    Activity,
    AnalysisDay,
    Cohabitation,
    Location,
    SeriesSummary,
)
from backend_riskshare.analysis_engine.overlap import OverlapCalculator
from backend_riskshare.analysis_engine.person_risk import PersonRiskResolver
from backend_riskshare.core.clock import Clock
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

INCOMING_WINDOW_DAYS = 43
OUTGOING_WINDOW_DAYS = 29

TRANSMISSION_PROB: tuple[float, ...] = (
    0, 0.045, 0.13, 0.245, 0.35, 0.375, 0.34, 0.25, 0.15, 0.075, 0.025, 0.01, 0.001, 0,
)
"""
Probability of transmitting, indexed by days since infection (Ferretti et al.,
"Quantifying SARS-CoV-2 transmission suggests epidemic control with digital
contact tracing", Fig. 2). Index 0 is the day of infection.
"""


@dataclass
class IncomingRisk:
    """Per-offset incoming risk and error flags (index == days before today)."""

    risk: list[float]
    has_error: list[bool]


def convolve(incoming: Sequence[float], days: int = OUTGOING_WINDOW_DAYS) -> list[float]:
    """
    outgoing[offset] = sum(incoming[i] * TRANSMISSION_PROB[i - offset]) for
    0 <= i - offset < len(TRANSMISSION_PROB). Index 0 is today.
    """
    kernel_len = len(TRANSMISSION_PROB)
    outgoing: list[float] = []
    for offset in range(days):
        total = 0.0
        for days_since_infection in range(kernel_len):
            incoming_offset = offset + days_since_infection
            if incoming_offset >= len(incoming):
                break
            total += incoming[incoming_offset] * TRANSMISSION_PROB[days_since_infection]
        outgoing.append(total)
    return outgoing


def summarize_series(days: Sequence[AnalysisDay]) -> SeriesSummary:
    """Min/max outgoing risk. Error days are reported, not silently folded in."""
    if not days:
        return SeriesSummary(min_outgoing_risk=0.0, max_outgoing_risk=0.0, has_error=False)
    values = [d.outgoing_risk for d in days]
    error_days = tuple(d.date for d in days if d.has_error)
    return SeriesSummary(
        min_outgoing_risk=min(values),
        max_outgoing_risk=max(values),
        has_error=bool(error_days),
        error_days=error_days,
    )


class RiskPropagationEngine:
    """Computes the incoming and outgoing risk series for one profile."""

    def __init__(
        self,
        resolver: PersonRiskResolver,
        calculator: PointCalculator,
        locations: Mapping[str, Location],
        clock: Clock,
    ) -> None:
        self.resolver = resolver
        self.calculator = calculator
        self.locations = locations
        self.clock = clock
        self.overlap = OverlapCalculator(clock)

    def _activity_district(self, activity: Activity) -> str | None:
        if activity.district_id:
            return activity.district_id
        location = self.locations.get(activity.location_id) if activity.location_id else None
        return location.district_id if location else None

    def activity_risk(
        self,
        activity: Activity,
        overlap_minutes: float,
        exclude_person_id: str | None = None,
    ) -> float | None:
        """
        Risk taken on during `overlap_minutes` of the activity, or None if any
        participant's risk is unresolved or the calculator rejects the
        attributes. Person risks are taken on the activity's begin date.
        Only an activity with nobody left after exclusion skips the calculator.
        """
        begin_day = self.clock.date_of(activity.begin)
        person_risk = 0.0
        participants = activity.unknown_person_count
        if activity.unknown_person_count > 0:
            district_id = self._activity_district(activity)
            if district_id is None:
                logger.warning("activity_risk_no_district", activity_id=activity.id)
                return None
            per_unknown = self.resolver.resolve_profile_risk(
                activity.unknown_person_risk_profile, district_id, begin_day
            )
            if per_unknown is None:
                logger.info("activity_risk_unknown_persons_unresolved", activity_id=activity.id)
                return None
            person_risk = activity.unknown_person_count * per_unknown

        for person_id in activity.known_person_ids:
            if person_id == exclude_person_id:
                continue
            participants += 1
            risk = self.resolver.resolve_risk(person_id, begin_day)
            if risk is None:
                logger.info("activity_risk_person_unresolved", activity_id=activity.id, person_id=person_id)
                return None
            person_risk += risk

        if participants == 0:
            return 0.0

        attributes = {
            **activity.attributes(),
            "interaction": INTERACTION_ONE_TIME,
            "duration": overlap_minutes,
        }
        multiplier = self.calculator.calculate_activity_risk(attributes)
        if multiplier is None:
            logger.info("activity_risk_rejected", activity_id=activity.id, title=activity.title)
            return None
        return person_risk * multiplier

    def cohabitation_risk(self, cohabitation: Cohabitation, overlap_weeks: float, day: date) -> float | None:
        person_risk = self.resolver.resolve_risk(cohabitation.person_id, day)
        if person_risk is None:
            logger.info(
                "cohabitation_risk_person_unresolved",
                cohabitation_id=cohabitation.id,
                person_id=cohabitation.person_id,
            )
            return None
        interaction = INTERACTION_PARTNER if cohabitation.sleeping_together else INTERACTION_REPEATED
        multiplier = self.calculator.calculate_activity_risk({"interaction": interaction})
        if multiplier is None:
            logger.info("cohabitation_risk_rejected", cohabitation_id=cohabitation.id)
            return None
        return person_risk * multiplier * overlap_weeks

    def compute_incoming(
        self,
        activities: Iterable[Activity],
        cohabitations: Iterable[Cohabitation],
        exclude_person_id: str | None = None,
    ) -> IncomingRisk:
        """Incoming risk per offset 0..42. Unresolved contributions flag the day but do not stop the sum."""
        activities = list(activities)
        cohabitations = [c for c in cohabitations if c.person_id != exclude_person_id]
        today = self.clock.today()
        risk = [0.0] * INCOMING_WINDOW_DAYS
        has_error = [False] * INCOMING_WINDOW_DAYS

        for offset in range(INCOMING_WINDOW_DAYS - 1, -1, -1):
            day = today - timedelta(days=offset)
            for activity in activities:
                minutes = self.overlap.overlap_minutes(activity.begin, activity.end, day)
                if minutes <= 0:
                    continue
                contribution = self.activity_risk(activity, minutes, exclude_person_id)
                if contribution is None:
                    has_error[offset] = True
                else:
                    risk[offset] += contribution

            for cohabitation in cohabitations:
                weeks = self.overlap.overlap_weeks(cohabitation.begin, cohabitation.end, day)
                if weeks <= 0:
                    continue
                contribution = self.cohabitation_risk(cohabitation, weeks, day)
                if contribution is None:
                    has_error[offset] = True
                else:
                    risk[offset] += contribution
        return IncomingRisk(risk=risk, has_error=has_error)

    def compute_series(
        self,
        activities: Iterable[Activity],
        cohabitations: Iterable[Cohabitation],
        exclude_person_id: str | None = None,
    ) -> list[AnalysisDay]:
        """
        Return the 29-day series, newest first.

        With exclude_person_id, that person's own contributions are left out:
        the series describes risk from everyone else, for a certificate meant
        for that very person.
        """
        self.resolver.reset()
        incoming = self.compute_incoming(activities, cohabitations, exclude_person_id)
        outgoing = convolve(incoming.risk)
        today = self.clock.today()
        days = [
            AnalysisDay(
                date=today - timedelta(days=offset),
                incoming_risk=incoming.risk[offset],
                outgoing_risk=outgoing[offset],
                has_error=incoming.has_error[offset],
            )
            for offset in range(OUTGOING_WINDOW_DAYS)
        ]
        error_count = sum(1 for d in days if d.has_error)
        logger.info(
            "risk_series_computed",
            days=len(days),
            error_days=error_count,
            excluded_person=exclude_person_id,
            max_outgoing_risk=round(max(d.outgoing_risk for d in days), 4),
        )
        return days
