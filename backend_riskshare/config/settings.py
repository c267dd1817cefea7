"""
Application settings.

Responsibilities:
- Collect configuration from environment variables and .env.
- Validate values and provide defaults for optional ones.
- Expose a typed, immutable Settings object used by the CLI, the
  periodic sync runner and the message server.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from backend_riskshare.config.env import (
    DEFAULT_TIMEZONE,
    get_base_url,
    get_data_dir,
    get_env_float,
    get_env_str,
)

SEAL_SCHEMES = ("pss", "legacy")
DEFAULT_SYNC_INTERVAL_SEC = 3600.0


@dataclass(frozen=True)
class Settings:
    """Resolved runtime configuration."""

    base_url: str
    data_dir: Path
    timezone: str = DEFAULT_TIMEZONE
    sync_interval_sec: float = DEFAULT_SYNC_INTERVAL_SEC
    http_timeout_sec: float | None = None
    """None means no timeout; a stalled request only blocks the sync thread."""
    seal_scheme: str = "pss"
    api_host: str = "0.0.0.0"
    api_port: int = 26843
    store_dir: Path | None = None
    """Message server storage; None keeps messages in memory."""

    @property
    def incidence_dir(self) -> Path:
        return self.data_dir / "incidence" / "output"


def get_settings() -> Settings:
    """
    Return the current application settings read from the environment.

    Raises:
        ValueError: if a numeric value cannot be parsed or the seal scheme is unknown.
    """
    scheme = get_env_str("RISKSHARE_SEAL_SCHEME", "pss").lower()
    if scheme not in SEAL_SCHEMES:
        raise ValueError(f"RISKSHARE_SEAL_SCHEME must be one of {SEAL_SCHEMES}, got {scheme!r}")
    store_dir = get_env_str("RISKSHARE_STORE_DIR", "")
    return Settings(
        base_url=get_base_url(),
        data_dir=get_data_dir(),
        timezone=get_env_str("RISKSHARE_TIMEZONE", DEFAULT_TIMEZONE),
        sync_interval_sec=get_env_float("RISKSHARE_SYNC_INTERVAL_SEC", DEFAULT_SYNC_INTERVAL_SEC),
        http_timeout_sec=get_env_float("RISKSHARE_HTTP_TIMEOUT_SEC", None),
        seal_scheme=scheme,
        api_host=get_env_str("API_HOST", "0.0.0.0"),
        api_port=int(get_env_str("API_PORT", "26843")),
        store_dir=Path(store_dir) if store_dir else None,
    )
