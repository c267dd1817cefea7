"""
Domain models for the risk engine.

Activities, cohabitations and persons are owned by the profile store and
consumed read-only here. AnalysisDay is derived and never persisted except
through export.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any


@dataclass(frozen=True)
class PeerLink:
    """Linkage of a known person to a remote peer running their own profile."""

    peer_id: str
    """Stable identifier; names the cached certificate file under imports/."""
    public_key: str
    """Peer's RSA public key, SPKI PEM."""


@dataclass
class Location:
    id: str
    title: str
    district_id: str
    city: str = ""


@dataclass
class Person:
    """A known contact. With a peer link, risk comes from imported certificates first."""

    id: str
    name: str
    risk_profile: str
    district_id: str
    peer: PeerLink | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Person:
        peer = data.get("peer")
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            risk_profile=data["risk_profile"],
            district_id=data["district_id"],
            peer=PeerLink(**peer) if peer else None,
        )


@dataclass
class Activity:
    """One-time social activity in [begin, end)."""

    id: str
    title: str
    begin: datetime
    end: datetime
    setting: str = "indoor"
    distance: str = "normal"
    your_mask: str = "none"
    their_mask: str = "none"
    voice: str = "normal"
    location_id: str | None = None
    known_person_ids: list[str] = field(default_factory=list)
    unknown_person_count: int = 0
    unknown_person_risk_profile: str = "average"
    district_id: str | None = None
    """Overrides the location's district for unknown-person risk when set."""

    def __post_init__(self) -> None:
        if (self.begin.tzinfo is None) != (self.end.tzinfo is None):
            raise ValueError(f"Activity {self.id!r}: begin and end must both be naive or both be aware")
        if self.begin >= self.end:
            raise ValueError(f"Activity {self.id!r}: begin must be before end")
        if self.unknown_person_count < 0:
            raise ValueError(f"Activity {self.id!r}: unknown_person_count must be >= 0")

    def attributes(self) -> dict[str, Any]:
        """Categorical attributes handed to the point calculator."""
        return {
            "setting": self.setting,
            "distance": self.distance,
            "your_mask": self.your_mask,
            "their_mask": self.their_mask,
            "voice": self.voice,
        }

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["begin"] = self.begin.isoformat()
        data["end"] = self.end.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Activity:
        data = dict(data)
        data["begin"] = datetime.fromisoformat(data["begin"])
        data["end"] = datetime.fromisoformat(data["end"])
        data["known_person_ids"] = list(data.get("known_person_ids") or [])
        return cls(**data)


@dataclass
class Cohabitation:
    """Living together with one known person over [begin, end]."""

    id: str
    person_id: str
    begin: datetime
    end: datetime
    sleeping_together: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["begin"] = self.begin.isoformat()
        data["end"] = self.end.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Cohabitation:
        return cls(
            id=data["id"],
            person_id=data["person_id"],
            begin=datetime.fromisoformat(data["begin"]),
            end=datetime.fromisoformat(data["end"]),
            sleeping_together=bool(data.get("sleeping_together", False)),
        )


@dataclass
class AnalysisDay:
    """One day of the derived series. has_error marks the risk values as unreliable."""

    date: date
    incoming_risk: float = 0.0
    outgoing_risk: float = 0.0
    has_error: bool = False


@dataclass(frozen=True)
class SeriesSummary:
    """Min/max over a series; has_error means the bounds are not trustworthy."""

    min_outgoing_risk: float
    max_outgoing_risk: float
    has_error: bool
    error_days: tuple[date, ...] = ()
