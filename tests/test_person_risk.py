"""
Tests for PersonRiskResolver: certificate lookup, calculator fallback, memoization.
"""

from __future__ import annotations

from datetime import date, timedelta

from backend_riskshare.analysis_engine.district_data import DistrictIncidenceStore
from backend_riskshare.analysis_engine.models import PeerLink, Person
from backend_riskshare.analysis_engine.person_risk import PersonRiskResolver
from backend_riskshare.exchange.codec import RiskCertificate

from conftest import DISTRICT

ANCHOR = date(2021, 1, 19)
PEER = Person(
    id="bob",
    name="Bob",
    risk_profile="average",
    district_id=DISTRICT,
    peer=PeerLink(peer_id="bob", public_key="-----BEGIN PUBLIC KEY-----"),
)
PLAIN = Person(id="carl", name="Carl", risk_profile="average", district_id=DISTRICT)


def _certificate() -> RiskCertificate:
    return RiskCertificate(anchor_date=ANCHOR, risks=tuple(float(i) for i in range(29)))


class CountingSource:
    def __init__(self, certificate):
        self.certificate = certificate
        self.calls = 0

    def __call__(self, person):
        self.calls += 1
        return self.certificate


def test_certificate_risk_used_for_covered_day(districts, calculator):
    source = CountingSource(_certificate())
    resolver = PersonRiskResolver({"bob": PEER}, districts, calculator, certificates=source)
    assert resolver.resolve_risk("bob", ANCHOR) == 0.0
    assert resolver.resolve_risk("bob", ANCHOR - timedelta(days=5)) == 5.0
    assert calculator.person_calls == 0


def test_day_outside_certificate_falls_back_to_calculator(districts, calculator):
    resolver = PersonRiskResolver({"bob": PEER}, districts, calculator, certificates=CountingSource(_certificate()))
    assert resolver.resolve_risk("bob", ANCHOR + timedelta(days=1)) == 100.0
    assert resolver.resolve_risk("bob", ANCHOR - timedelta(days=40)) == 100.0


def test_missing_certificate_falls_back_to_calculator(districts, calculator):
    resolver = PersonRiskResolver({"bob": PEER}, districts, calculator, certificates=CountingSource(None))
    assert resolver.resolve_risk("bob", ANCHOR) == 100.0


def test_person_without_peer_never_reads_certificates(districts, calculator):
    source = CountingSource(_certificate())
    resolver = PersonRiskResolver({"carl": PLAIN}, districts, calculator, certificates=source)
    assert resolver.resolve_risk("carl", ANCHOR) == 100.0
    assert source.calls == 0


def test_unknown_person_is_unresolved(districts, calculator):
    resolver = PersonRiskResolver({}, districts, calculator)
    assert resolver.resolve_risk("nobody", ANCHOR) is None


def test_district_without_data_is_unresolved(calculator):
    person = Person(id="dora", name="Dora", risk_profile="average", district_id="00000")
    resolver = PersonRiskResolver({"dora": person}, DistrictIncidenceStore(), calculator)
    assert resolver.resolve_risk("dora", ANCHOR) is None


def test_rejected_profile_is_unresolved(districts, calculator):
    person = Person(id="eve", name="Eve", risk_profile="reject", district_id=DISTRICT)
    resolver = PersonRiskResolver({"eve": person}, districts, calculator)
    assert resolver.resolve_risk("eve", ANCHOR) is None


def test_results_are_memoized_per_pass(districts, calculator):
    source = CountingSource(None)
    resolver = PersonRiskResolver({"bob": PEER, "carl": PLAIN}, districts, calculator, certificates=source)
    for _ in range(3):
        resolver.resolve_risk("bob", ANCHOR)
        resolver.resolve_risk("carl", ANCHOR)
        resolver.resolve_risk("bob", ANCHOR - timedelta(days=1))
    assert source.calls == 1
    # Same profile and district on the same day is computed once, the other day once more
    assert calculator.person_calls == 2

    resolver.reset()
    resolver.resolve_risk("bob", ANCHOR)
    assert source.calls == 2
