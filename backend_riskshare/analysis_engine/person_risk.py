"""
Resolve the daily risk contribution of one person.

Order of resolution for a known person on a day:
1. A peer-linked person with an imported certificate covering that calendar
   day returns the certificate's outgoing risk.
2. Otherwise the point calculator is asked, using the person's risk profile
   and the incidence of their district on that day.
None means unresolved; the engine turns it into has_error for the day.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Mapping

from backend_riskshare.analysis_engine.calculator import PointCalculator
from backend_riskshare.analysis_engine.district_data import DistrictIncidenceStore
from backend_riskshare.analysis_engine.models import Person
from backend_riskshare.core.exceptions import UnresolvedRiskError
from backend_riskshare.exchange.codec import RiskCertificate
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

CertificateSource = Callable[[Person], RiskCertificate | None]


def _no_certificates(person: Person) -> RiskCertificate | None:
    return None


class PersonRiskResolver:
    """
    Per-pass memoizing resolver. Call reset() before each propagation pass so
    freshly synced certificates are picked up.
    """

    def __init__(
        self,
        persons: Mapping[str, Person],
        districts: DistrictIncidenceStore,
        calculator: PointCalculator,
        certificates: CertificateSource | None = None,
    ) -> None:
        self.persons = persons
        self.districts = districts
        self.calculator = calculator
        self.certificates = certificates or _no_certificates
        self._risk_cache: dict[tuple[str, date], float | None] = {}
        self._profile_cache: dict[tuple[str, str, date], float | None] = {}
        self._certificate_cache: dict[str, RiskCertificate | None] = {}

    def reset(self) -> None:
        self._risk_cache.clear()
        self._profile_cache.clear()
        self._certificate_cache.clear()

    def _certificate_for(self, person: Person) -> RiskCertificate | None:
        if person.id not in self._certificate_cache:
            self._certificate_cache[person.id] = self.certificates(person)
        return self._certificate_cache[person.id]

    def resolve_profile_risk(self, risk_profile: str, district_id: str, day: date) -> float | None:
        """Risk of a non-specific person with the given profile living in the district."""
        key = (risk_profile, district_id, day)
        if key in self._profile_cache:
            return self._profile_cache[key]
        try:
            incidence = self.districts.data_for_calculator(district_id, day)
        except UnresolvedRiskError as e:
            logger.warning("person_risk_no_incidence", district_id=district_id, day=day.isoformat(), error=str(e))
            risk = None
        else:
            risk = self.calculator.calculate_person_risk(risk_profile, incidence)
            if risk is None:
                logger.warning(
                    "person_risk_rejected",
                    risk_profile=risk_profile,
                    district_id=district_id,
                    day=day.isoformat(),
                )
        self._profile_cache[key] = risk
        return risk

    def resolve_risk(self, person_id: str, day: date) -> float | None:
        """Risk of a specific known person on a calendar day, or None if unresolved."""
        key = (person_id, day)
        if key in self._risk_cache:
            return self._risk_cache[key]

        person = self.persons.get(person_id)
        if person is None:
            logger.warning("person_risk_unknown_person", person_id=person_id)
            self._risk_cache[key] = None
            return None

        risk: float | None = None
        if person.peer is not None:
            certificate = self._certificate_for(person)
            if certificate is not None:
                risk = certificate.risk_on(day)
                if risk is None:
                    logger.debug(
                        "person_risk_certificate_miss",
                        person_id=person_id,
                        day=day.isoformat(),
                        anchor=certificate.anchor_date.isoformat(),
                    )
        if risk is None:
            risk = self.resolve_profile_risk(person.risk_profile, person.district_id, day)
        self._risk_cache[key] = risk
        return risk
