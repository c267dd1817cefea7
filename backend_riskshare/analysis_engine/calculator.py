"""
Point calculator: how risky one interaction is, and how risky one person is.

The engine only depends on the PointCalculator protocol. MultiplierCalculator
is the bundled implementation, built on microCOVID-style multiplier tables:

- Person risk is expressed in risk points (expected infections per million),
  derived from district incidence and scaled by a risk-profile multiplier.
- Activity risk is a dimensionless multiplier: the chance that one contact
  with a given person risk transmits, for the given setting and duration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Protocol

from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

INTERACTION_ONE_TIME = "one_time"
INTERACTION_REPEATED = "repeated"
INTERACTION_PARTNER = "partner"

# Per hour for one-time contacts, per week for repeated/partner contacts
INTERACTION_MULTIPLIER: dict[str, float] = {
    INTERACTION_ONE_TIME: 0.06,
    INTERACTION_REPEATED: 0.3,
    INTERACTION_PARTNER: 0.48,
}

SETTING_MULTIPLIER: dict[str, float] = {
    "indoor": 1.0,
    "filtered": 0.5,
    "transit": 0.25,
    "outdoor": 0.05,
}

DISTANCE_MULTIPLIER: dict[str, float] = {
    "intimate": 5.0,
    "close": 2.0,
    "normal": 1.0,
    "six_ft": 0.5,
    "ten_ft": 0.25,
}

YOUR_MASK_MULTIPLIER: dict[str, float] = {
    "none": 1.0,
    "thin": 1.0,
    "basic": 0.66,
    "surgical": 0.5,
    "filtered": 0.5,
    "n95": 0.33,
    "n95_sealed": 0.16,
}

THEIR_MASK_MULTIPLIER: dict[str, float] = {
    "none": 1.0,
    "thin": 1.0,
    "basic": 0.33,
    "surgical": 0.25,
    "filtered": 0.25,
    "n95": 0.16,
    "n95_sealed": 0.08,
}

VOICE_MULTIPLIER: dict[str, float] = {
    "silent": 0.2,
    "normal": 1.0,
    "loud": 5.0,
}

# Relative to an average person in the same district
RISK_PROFILE_MULTIPLIER: dict[str, float] = {
    "average": 1.0,
    "decreased": 0.5,
    "strict_distancing": 0.2,
    "living_alone": 0.1,
    "contact_works": 2.0,
    "frontline": 5.0,
}

# Known-positive contacts bypass the district model entirely
HAS_COVID_PROFILE = "has_covid"
HAS_COVID_POINTS = 1_000_000.0

ONE_TIME_MAX_HOURS = 24.0
MAX_ACTIVITY_MULTIPLIER = 1.0
"""A single interaction can at most transmit with certainty."""


@dataclass(frozen=True)
class DistrictIncidence:
    """Incidence figures for one district on one date, in calculator units."""

    district_id: str
    date: date
    cases_past_week: float
    """Reported cases in the past week per `population` inhabitants."""
    cases_increasing_percentage: float
    population: int = 100_000
    positive_case_percentage: float = 7.0


class PointCalculator(Protocol):
    """Narrow interface the engine consumes; None means the inputs were rejected."""

    def calculate_activity_risk(self, attributes: Mapping[str, Any]) -> float | None: ...

    def calculate_person_risk(self, risk_profile: str, incidence: DistrictIncidence) -> float | None: ...


class MultiplierCalculator:
    """
    Table-driven calculator.

    Underreporting is estimated from the test positivity rate; the trend
    adjustment extrapolates the weekly increase half a week ahead.
    """

    def __init__(self, underreporting_base: float = 2.0) -> None:
        self.underreporting_base = underreporting_base

    def _underreporting_factor(self, positive_case_percentage: float) -> float:
        positivity = max(0.0, min(100.0, positive_case_percentage)) / 100.0
        return self.underreporting_base + 10.0 * positivity ** 0.5

    def calculate_person_risk(self, risk_profile: str, incidence: DistrictIncidence) -> float | None:
        if risk_profile == HAS_COVID_PROFILE:
            return HAS_COVID_POINTS
        multiplier = RISK_PROFILE_MULTIPLIER.get(risk_profile)
        if multiplier is None:
            logger.warning("calculator_unknown_risk_profile", risk_profile=risk_profile)
            return None
        if incidence.population <= 0 or incidence.cases_past_week < 0:
            logger.warning(
                "calculator_invalid_incidence",
                district_id=incidence.district_id,
                cases_past_week=incidence.cases_past_week,
                population=incidence.population,
            )
            return None
        trend = 1.0 + max(-50.0, min(100.0, incidence.cases_increasing_percentage)) / 200.0
        prevalence = (
            incidence.cases_past_week / incidence.population
            * self._underreporting_factor(incidence.positive_case_percentage)
            * trend
        )
        return min(HAS_COVID_POINTS, prevalence * 1_000_000.0 * multiplier)

    def calculate_activity_risk(self, attributes: Mapping[str, Any]) -> float | None:
        """
        Return the transmission multiplier for one contact.

        attributes: interaction (one_time | repeated | partner), duration in
        minutes for one_time, plus setting/distance/your_mask/their_mask/voice
        for one_time interactions. Repeated and partner interactions are
        per-week figures where the contact details do not apply.
        """
        interaction = attributes.get("interaction", INTERACTION_ONE_TIME)
        base = INTERACTION_MULTIPLIER.get(interaction)
        if base is None:
            logger.warning("calculator_unknown_interaction", interaction=interaction)
            return None
        if interaction != INTERACTION_ONE_TIME:
            return base

        duration = attributes.get("duration")
        if duration is None or duration < 0:
            logger.warning("calculator_invalid_duration", duration=duration)
            return None
        hours = min(ONE_TIME_MAX_HOURS, duration / 60.0)

        tables = (
            ("setting", SETTING_MULTIPLIER),
            ("distance", DISTANCE_MULTIPLIER),
            ("your_mask", YOUR_MASK_MULTIPLIER),
            ("their_mask", THEIR_MASK_MULTIPLIER),
            ("voice", VOICE_MULTIPLIER),
        )
        multiplier = base * hours
        for key, table in tables:
            value = attributes.get(key)
            factor = table.get(value) if isinstance(value, str) else None
            if factor is None:
                logger.warning("calculator_unknown_attribute", attribute=key, value=value)
                return None
            multiplier *= factor
        return min(MAX_ACTIVITY_MULTIPLIER, multiplier)
