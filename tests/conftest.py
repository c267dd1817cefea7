"""
Pytest fixtures for RiskShare tests.

Fixed clock in Europe/Berlin, a stub point calculator with round numbers,
session-scoped RSA keypairs (generation is slow), and an in-process message
store served through FastAPI's TestClient.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping

import pytest

from backend_riskshare.analysis_engine.calculator import INTERACTION_ONE_TIME, DistrictIncidence
from backend_riskshare.analysis_engine.district_data import DistrictIncidenceStore
from backend_riskshare.core.clock import FixedClock

TZ = "Europe/Berlin"
TODAY = date(2021, 1, 20)
DISTRICT = "09162"


class StubCalculator:
    """person risk: 100 per person; one-time contact: 0.5; per week: 0.3 / 0.6."""

    def __init__(self, person_risk: float = 100.0, one_time: float = 0.5) -> None:
        self.person_risk = person_risk
        self.one_time = one_time
        self.person_calls = 0

    def calculate_person_risk(self, risk_profile: str, incidence: DistrictIncidence) -> float | None:
        self.person_calls += 1
        if risk_profile == "reject":
            return None
        return self.person_risk

    def calculate_activity_risk(self, attributes: Mapping[str, Any]) -> float | None:
        interaction = attributes.get("interaction")
        if interaction == INTERACTION_ONE_TIME:
            if attributes.get("setting") == "reject":
                return None
            return self.one_time
        if interaction == "partner":
            return 0.6
        return 0.3


def berlin(*args: int) -> datetime:
    """Aware datetime in the test time zone."""
    from zoneinfo import ZoneInfo

    return datetime(*args, tzinfo=ZoneInfo(TZ))


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2021, 1, 20, 12, 0), tz=TZ)


@pytest.fixture
def calculator() -> StubCalculator:
    return StubCalculator()


@pytest.fixture
def districts() -> DistrictIncidenceStore:
    store = DistrictIncidenceStore()
    store.add(DISTRICT, date(2020, 12, 1), 120.0, name="München")
    store.add(DISTRICT, date(2021, 1, 1), 150.0, name="München")
    return store


@pytest.fixture(scope="session")
def keypair_a():
    from backend_riskshare.exchange.keystore import generate_keypair

    return generate_keypair()


@pytest.fixture(scope="session")
def keypair_b():
    from backend_riskshare.exchange.keystore import generate_keypair

    return generate_keypair()


@pytest.fixture(scope="session")
def keypair_c():
    from backend_riskshare.exchange.keystore import generate_keypair

    return generate_keypair()


@pytest.fixture
def message_server():
    """TestClient over a fresh in-memory message store."""
    from fastapi.testclient import TestClient

    from backend_riskshare.api_server.server import MemoryMessageStore, create_app

    store = MemoryMessageStore()
    with TestClient(create_app(store)) as client:
        yield client


@pytest.fixture
def transport(message_server):
    from backend_riskshare.exchange.transport import HttpTransport

    return HttpTransport("http://testserver/", client=message_server)
