"""
Environment variable loading for RiskShare.

- RISKSHARE_BASE_URL: shared message store (default: the public exchange host)
- RISKSHARE_DATA_DIR: root directory for profiles and incidence data
- RISKSHARE_TIMEZONE: IANA zone used for day boundaries
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

# Project root: config is backend_riskshare/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_HOST = "home.dystonse.org"
DEFAULT_PORT = 26843
DEFAULT_BASE_URL = f"http://{DEFAULT_HOST}:{DEFAULT_PORT}/"
DEFAULT_TIMEZONE = "Europe/Berlin"


def load_riskshare_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    from dotenv import load_dotenv

    load_dotenv(_ENV_PATH, override=False)


def get_env_str(name: str, default: str) -> str:
    """Return a stripped env value, or default when unset or blank."""
    load_riskshare_env()
    raw = (os.getenv(name) or "").strip()
    return raw or default


def get_env_float(name: str, default: float | None) -> float | None:
    """Return env value as float; default when unset. Invalid values raise ValueError."""
    load_riskshare_env()
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def get_base_url() -> str:
    """Base URL of the shared message store, always with a trailing slash."""
    url = get_env_str("RISKSHARE_BASE_URL", DEFAULT_BASE_URL)
    return url if url.endswith("/") else url + "/"


def get_data_dir() -> Path:
    return Path(get_env_str("RISKSHARE_DATA_DIR", "data"))
