"""
Agent worker package - background refresh of peer certificates.

Runs on its own schedule, separate from interactive computations. A stalled
download only delays the next tick.
"""

from backend_riskshare.agent_worker.runner import (
    PeriodicSyncConfig,
    run_periodic_sync,
    start_periodic_sync,
    stop_periodic_sync,
)

__all__ = ["PeriodicSyncConfig", "run_periodic_sync", "start_periodic_sync", "stop_periodic_sync"]
