"""
Profile package - per-profile persistence and the service that wires the
risk engine to the peer exchange.
"""

from backend_riskshare.profile.store import ProfileData, ProfileStore, list_profiles

__all__ = ["ProfileData", "ProfileStore", "list_profiles"]
