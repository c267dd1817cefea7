"""
Per-profile persistence.

Layout under <data_dir>/<profile>/:
    persons.json, locations.json, activities.json, cohabitations.json
    private.key, public.key
    imports/<peer_id>.risk    sealed certificate bytes as received
    export.json               plain series, oldest first: [{"date", "contagiosity"}]

Every write replaces the whole file atomically; there are no partial updates.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from backend_riskshare.analysis_engine.models import (
    Activity,
    AnalysisDay,
    Cohabitation,
    Location,
    Person,
)
from backend_riskshare.core.files import atomic_write
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

INCIDENCE_DIR_NAME = "incidence"
IMPORTS_DIR_NAME = "imports"
CERTIFICATE_SUFFIX = ".risk"
EXPORT_FILE = "export.json"
_SAFE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")


def validate_name(name: str, kind: str = "name") -> str:
    """Profile and peer names double as file names; keep them path-safe."""
    if not _SAFE_NAME.match(name or ""):
        raise ValueError(f"Invalid {kind} {name!r}: use letters, digits, '_', '-', '.'")
    return name


def list_profiles(data_dir: Path) -> list[str]:
    if not data_dir.is_dir():
        return []
    return sorted(
        p.name for p in data_dir.iterdir() if p.is_dir() and p.name != INCIDENCE_DIR_NAME
    )


@dataclass
class ProfileData:
    persons: dict[str, Person] = field(default_factory=dict)
    locations: dict[str, Location] = field(default_factory=dict)
    activities: dict[str, Activity] = field(default_factory=dict)
    cohabitations: dict[str, Cohabitation] = field(default_factory=dict)

    def add_person(self, person: Person) -> None:
        self.persons[person.id] = person

    def add_location(self, location: Location) -> None:
        self.locations[location.id] = location

    def add_activity(self, activity: Activity) -> None:
        self.activities[activity.id] = activity

    def add_cohabitation(self, cohabitation: Cohabitation) -> None:
        self.cohabitations[cohabitation.id] = cohabitation

    def linked_persons(self) -> list[Person]:
        return [p for p in self.persons.values() if p.peer is not None]


class ProfileStore:
    """Reads and writes one profile directory."""

    def __init__(self, data_dir: Path, name: str) -> None:
        self.name = validate_name(name, "profile name")
        self.directory = Path(data_dir) / name

    @property
    def imports_dir(self) -> Path:
        return self.directory / IMPORTS_DIR_NAME

    def _path(self, kind: str) -> Path:
        return self.directory / f"{kind}.json"

    def _load_list(self, kind: str) -> list[dict[str, Any]]:
        path = self._path(kind)
        if not path.is_file():
            return []
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{path} must hold a JSON list")
        return data

    def _save_list(self, kind: str, items: list[dict[str, Any]]) -> None:
        atomic_write(self._path(kind), json.dumps(items, indent=2, ensure_ascii=False).encode("utf-8"))

    def create(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def load(self) -> ProfileData:
        data = ProfileData()
        for item in self._load_list("persons"):
            data.add_person(Person.from_dict(item))
        for item in self._load_list("locations"):
            data.add_location(Location(**item))
        for item in self._load_list("activities"):
            data.add_activity(Activity.from_dict(item))
        for item in self._load_list("cohabitations"):
            data.add_cohabitation(Cohabitation.from_dict(item))
        logger.debug(
            "profile_loaded",
            profile=self.name,
            persons=len(data.persons),
            activities=len(data.activities),
            cohabitations=len(data.cohabitations),
        )
        return data

    def save(self, data: ProfileData) -> None:
        self._save_list("persons", [p.to_dict() for p in data.persons.values()])
        self._save_list("locations", [vars(loc).copy() for loc in data.locations.values()])
        self._save_list("activities", [a.to_dict() for a in data.activities.values()])
        self._save_list("cohabitations", [c.to_dict() for c in data.cohabitations.values()])

    def certificate_path(self, peer_id: str) -> Path:
        return self.imports_dir / f"{validate_name(peer_id, 'peer id')}{CERTIFICATE_SUFFIX}"

    def save_certificate_payload(self, peer_id: str, payload: bytes) -> None:
        atomic_write(self.certificate_path(peer_id), payload)

    def load_certificate_payload(self, peer_id: str) -> bytes | None:
        path = self.certificate_path(peer_id)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write_export(self, days: Sequence[AnalysisDay]) -> Path:
        """Plain (unencrypted) export of the series, oldest day first."""
        rows = [
            {"date": d.date.isoformat(), "contagiosity": d.outgoing_risk}
            for d in sorted(days, key=lambda d: d.date)
        ]
        path = self.directory / EXPORT_FILE
        atomic_write(path, json.dumps(rows, indent=2).encode("utf-8"))
        return path
