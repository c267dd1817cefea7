"""
structlog setup shared by the CLI, the sync worker and the message server.

Every record carries event_type, level, logger and an ISO UTC timestamp.
Key material never reaches the sink: PEM blocks and raw payload bytes are
replaced by short markers before rendering. Output goes to stderr so CLI
commands can print their results on stdout.

    LOG_LEVEL   DEBUG | INFO (default) | WARNING | ERROR
    LOG_FORMAT  json (default) | console

No backend_riskshare imports here; every other module imports this one.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

RISK_DECIMALS = 4
_PEM_MARKER = "-----BEGIN"


def _level_from_env() -> int:
    return getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO)


def _format_from_env() -> str:
    return os.getenv("LOG_FORMAT", "json").strip().lower()


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _scrub(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Hide keys and payloads, shorten risk floats."""
    for key, value in event_dict.items():
        if isinstance(value, (bytes, bytearray)):
            event_dict[key] = f"<{len(value)} bytes>"
        elif isinstance(value, str) and _PEM_MARKER in value:
            event_dict[key] = "<pem>"
        elif isinstance(value, float) and key != "timestamp":
            event_dict[key] = round(value, RISK_DECIMALS)
    return event_dict


def configure_logging(level: int | None = None, fmt: str | None = None) -> None:
    """(Re)configure structlog; arguments override LOG_LEVEL / LOG_FORMAT."""
    level = _level_from_env() if level is None else level
    fmt = _format_from_env() if fmt is None else fmt
    renderer: Any
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.format_exc_info,
            _event_type,
            _scrub,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger with the module name bound:

        logger = get_logger(__name__)
        logger.info("certificate_synced", peer_id="bob", anchor="2021-01-20")
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_profile(profile: str) -> structlog.BoundLogger:
    """Logger carrying the profile name on every record."""
    return get_logger("backend_riskshare.profile").bind(profile=profile)
