"""
Tests for profile persistence: JSON round-trip, export ordering, certificate cache.
"""

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from backend_riskshare.analysis_engine.models import (
    Activity,
    AnalysisDay,
    Cohabitation,
    Location,
    PeerLink,
    Person,
)
from backend_riskshare.profile.store import ProfileData, ProfileStore, list_profiles, validate_name

from conftest import DISTRICT, TODAY, berlin


def _sample_data() -> ProfileData:
    data = ProfileData()
    data.add_person(Person("bob", "Bob", "average", DISTRICT, peer=PeerLink("bob", "PEM")))
    data.add_person(Person("carol", "Carol", "frontline", DISTRICT))
    data.add_location(Location("office", "Office", DISTRICT, city="München"))
    data.add_activity(
        Activity(
            "a1",
            "Lunch",
            berlin(2021, 1, 10, 12),
            berlin(2021, 1, 10, 13),
            setting="outdoor",
            location_id="office",
            known_person_ids=["bob"],
            unknown_person_count=3,
        )
    )
    data.add_cohabitation(
        Cohabitation("c1", "carol", berlin(2021, 1, 1), berlin(2021, 1, 15), sleeping_together=True)
    )
    return data


def test_save_and_load_round_trip(tmp_path):
    store = ProfileStore(tmp_path, "alice")
    store.create()
    store.save(_sample_data())

    loaded = store.load()
    assert loaded.persons["bob"].peer == PeerLink("bob", "PEM")
    assert loaded.persons["carol"].peer is None
    assert loaded.locations["office"].city == "München"
    activity = loaded.activities["a1"]
    assert activity.begin == berlin(2021, 1, 10, 12)
    assert activity.known_person_ids == ["bob"]
    assert activity.unknown_person_count == 3
    assert loaded.cohabitations["c1"].sleeping_together is True
    assert [p.id for p in loaded.linked_persons()] == ["bob"]


def test_missing_profile_loads_empty(tmp_path):
    data = ProfileStore(tmp_path, "nobody").load()
    assert data.persons == {}
    assert data.activities == {}


def test_non_list_file_rejected(tmp_path):
    store = ProfileStore(tmp_path, "alice")
    store.create()
    (store.directory / "persons.json").write_text('{"id": "bob"}')
    with pytest.raises(ValueError):
        store.load()


def test_export_is_oldest_first(tmp_path):
    store = ProfileStore(tmp_path, "alice")
    days = [AnalysisDay(TODAY - timedelta(days=i), outgoing_risk=float(i)) for i in range(29)]
    path = store.write_export(days)
    rows = json.loads(path.read_text())
    assert len(rows) == 29
    assert rows[0] == {"date": (TODAY - timedelta(days=28)).isoformat(), "contagiosity": 28.0}
    assert rows[-1] == {"date": TODAY.isoformat(), "contagiosity": 0.0}


def test_certificate_payload_cache(tmp_path):
    store = ProfileStore(tmp_path, "alice")
    assert store.load_certificate_payload("bob") is None
    store.save_certificate_payload("bob", b"\x01\x02")
    assert store.certificate_path("bob") == store.imports_dir / "bob.risk"
    assert store.load_certificate_payload("bob") == b"\x01\x02"


@pytest.mark.parametrize("name", ["", "../etc", "a/b", ".hidden", "x" * 65])
def test_unsafe_names_rejected(tmp_path, name):
    with pytest.raises(ValueError):
        validate_name(name)
    with pytest.raises(ValueError):
        ProfileStore(tmp_path, "alice").certificate_path(name)


def test_list_profiles_skips_incidence(tmp_path):
    for name in ("bob", "alice", "incidence"):
        (tmp_path / name).mkdir()
    (tmp_path / "notes.txt").write_text("x")
    assert list_profiles(tmp_path) == ["alice", "bob"]
    assert list_profiles(tmp_path / "missing") == []
