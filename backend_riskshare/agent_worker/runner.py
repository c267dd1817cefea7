"""
Periodic certificate sync - hourly loop fetching every linked peer's certificate.

- run_periodic_sync(): blocking loop until stop_event is set.
- start_periodic_sync(): same loop in a daemon thread.
- stop_periodic_sync(): set the event and join, bounded by SHUTDOWN_JOIN_TIMEOUT_SEC.

No locking against concurrent computations: certificate files are replaced
atomically, so readers see the old or the new file (last successful write wins).
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from backend_riskshare.profile.service import ProfileService, SyncResult
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

DEFAULT_SYNC_INTERVAL_SEC = 3600.0
MIN_SYNC_INTERVAL_SEC = 1.0
SHUTDOWN_JOIN_TIMEOUT_SEC = 15.0


@dataclass
class PeriodicSyncConfig:
    interval_sec: float = DEFAULT_SYNC_INTERVAL_SEC
    max_ticks: int | None = None
    """Stop after this many ticks; None runs until stop_event is set."""


def run_sync_tick(service_factory: Callable[[], ProfileService]) -> SyncResult:
    """
    One sync pass. The profile is reloaded each tick so newly linked peers
    are picked up without restarting the worker.
    """
    service = service_factory()
    return service.sync_peers()


def run_periodic_sync(
    service_factory: Callable[[], ProfileService],
    config: PeriodicSyncConfig,
    stop_event: threading.Event,
) -> int:
    """
    Run sync ticks every interval_sec until stop_event is set. A failing tick
    is logged and the loop continues. Returns the number of ticks run.
    """
    interval = max(MIN_SYNC_INTERVAL_SEC, config.interval_sec)
    logger.info("periodic_sync_started", interval_sec=interval)
    tick_count = 0
    while not stop_event.is_set():
        tick_start = time.monotonic()
        tick_count += 1
        try:
            result = run_sync_tick(service_factory)
            logger.info(
                "periodic_sync_tick_done",
                tick=tick_count,
                updated=len(result.updated),
                missing=len(result.missing),
                failed=len(result.failed),
            )
        except Exception as e:
            logger.exception("periodic_sync_tick_failed", tick=tick_count, error=str(e))
        if config.max_ticks is not None and tick_count >= config.max_ticks:
            break
        # Sleep until next tick; wake periodically to check stop_event
        deadline = tick_start + interval
        while not stop_event.is_set() and time.monotonic() < deadline:
            stop_event.wait(timeout=min(1.0, max(0, deadline - time.monotonic())))
    logger.info("periodic_sync_stopped", tick_count=tick_count)
    return tick_count


def start_periodic_sync(
    service_factory: Callable[[], ProfileService],
    config: PeriodicSyncConfig | None = None,
) -> tuple[threading.Thread, threading.Event]:
    """Start the sync loop in a daemon thread; set the returned event to stop it."""
    stop_event = threading.Event()
    thread = threading.Thread(
        target=run_periodic_sync,
        args=(service_factory, config or PeriodicSyncConfig(), stop_event),
        name="periodic-sync",
        daemon=True,
    )
    thread.start()
    return thread, stop_event


def stop_periodic_sync(
    thread: threading.Thread,
    stop_event: threading.Event,
    timeout: float = SHUTDOWN_JOIN_TIMEOUT_SEC,
) -> bool:
    """Signal the loop and wait for the current tick to finish. Returns False if it is still running."""
    stop_event.set()
    thread.join(timeout=timeout)
    if thread.is_alive():
        logger.warning("periodic_sync_stop_timeout", timeout_sec=timeout)
        return False
    return True
