"""
Structured logging for RiskShare: get_logger(__name__) in every module,
bind_profile(name) where a profile is in scope.
"""

from backend_riskshare.riskshare_logging.logger import bind_profile, configure_logging, get_logger

__all__ = ["bind_profile", "configure_logging", "get_logger"]
