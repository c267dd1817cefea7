"""
Tests for the command line: printing the cached certificate of a linked peer.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from backend_riskshare.analysis_engine.models import AnalysisDay, PeerLink, Person
from backend_riskshare.exchange.channel import PeerExchangeChannel
from backend_riskshare.exchange.keystore import KeyStore
from backend_riskshare.profile.store import ProfileData, ProfileStore

from conftest import DISTRICT, TODAY, TZ
from main import main


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    data = tmp_path / "data"
    monkeypatch.setenv("RISKSHARE_DATA_DIR", str(data))
    monkeypatch.setenv("RISKSHARE_TIMEZONE", TZ)
    monkeypatch.delenv("RISKSHARE_SEAL_SCHEME", raising=False)
    monkeypatch.delenv("RISKSHARE_SYNC_INTERVAL_SEC", raising=False)
    monkeypatch.delenv("RISKSHARE_HTTP_TIMEOUT_SEC", raising=False)
    return data


@pytest.fixture
def bob_store(data_dir, keypair_a, keypair_b) -> ProfileStore:
    data = ProfileData()
    data.add_person(Person("alice", "Alice", "average", DISTRICT, peer=PeerLink("alice", keypair_a.public_pem)))
    data.add_person(Person("carol", "Carol", "average", DISTRICT))
    store = ProfileStore(data_dir, "bob")
    store.create()
    store.save(data)
    KeyStore(store.directory).save(keypair_b)
    return store


def _sync_from_alice(tmp_path, store: ProfileStore, keypair_a, keypair_b) -> None:
    sender = KeyStore(tmp_path / "keys" / "alice")
    sender.save(keypair_a)
    series = [AnalysisDay(TODAY - timedelta(days=i), outgoing_risk=float(i)) for i in range(29)]
    store.save_certificate_payload("alice", PeerExchangeChannel(sender).export_for(keypair_b.public_pem, series))


def test_peer_prints_cached_certificate(tmp_path, bob_store, keypair_a, keypair_b, capsys):
    _sync_from_alice(tmp_path, bob_store, keypair_a, keypair_b)

    assert main(["peer", "bob", "alice"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "certificate from Alice, anchored 2021-01-20"
    assert lines[1].split() == ["date", "incoming", "outgoing", "error"]
    # Oldest first, same layout as compute
    assert lines[2].split() == [(TODAY - timedelta(days=28)).isoformat(), "0.0", "28.0"]
    assert lines[-2].split() == [TODAY.isoformat(), "0.0", "0.0"]
    assert lines[-1] == "min 0.0 / max 28.0"


def test_peer_without_certificate(bob_store, capsys):
    assert main(["peer", "bob", "alice"]) == 1
    assert "no readable certificate" in capsys.readouterr().out


def test_peer_with_unreadable_certificate(bob_store, capsys):
    bob_store.save_certificate_payload("alice", b"\x00" * 512)
    assert main(["peer", "bob", "alice"]) == 1
    assert "no readable certificate" in capsys.readouterr().out


@pytest.mark.parametrize("person_id", ["carol", "nobody"])
def test_peer_requires_linked_person(bob_store, person_id, capsys):
    assert main(["peer", "bob", person_id]) == 1
    assert "not a linked person" in capsys.readouterr().out
