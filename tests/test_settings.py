"""
Tests for environment-driven settings.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from backend_riskshare.config import get_settings
from backend_riskshare.config.env import DEFAULT_BASE_URL


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "RISKSHARE_BASE_URL",
        "RISKSHARE_DATA_DIR",
        "RISKSHARE_TIMEZONE",
        "RISKSHARE_SYNC_INTERVAL_SEC",
        "RISKSHARE_HTTP_TIMEOUT_SEC",
        "RISKSHARE_SEAL_SCHEME",
        "RISKSHARE_STORE_DIR",
        "API_HOST",
        "API_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = get_settings()
    assert settings.base_url == DEFAULT_BASE_URL
    assert settings.data_dir == Path("data")
    assert settings.incidence_dir == Path("data/incidence/output")
    assert settings.sync_interval_sec == 3600.0
    assert settings.http_timeout_sec is None
    assert settings.seal_scheme == "pss"
    assert settings.store_dir is None


def test_overrides(clean_env, tmp_path):
    clean_env.setenv("RISKSHARE_BASE_URL", "http://localhost:9000")
    clean_env.setenv("RISKSHARE_DATA_DIR", str(tmp_path))
    clean_env.setenv("RISKSHARE_HTTP_TIMEOUT_SEC", "2.5")
    clean_env.setenv("RISKSHARE_SEAL_SCHEME", "LEGACY")
    clean_env.setenv("RISKSHARE_STORE_DIR", str(tmp_path / "messages"))
    settings = get_settings()
    assert settings.base_url == "http://localhost:9000/"
    assert settings.data_dir == tmp_path
    assert settings.http_timeout_sec == 2.5
    assert settings.seal_scheme == "legacy"
    assert settings.store_dir == tmp_path / "messages"


@pytest.mark.parametrize(
    "name,value",
    [("RISKSHARE_SEAL_SCHEME", "none"), ("RISKSHARE_SYNC_INTERVAL_SEC", "hourly")],
)
def test_invalid_values_rejected(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ValueError):
        get_settings()
