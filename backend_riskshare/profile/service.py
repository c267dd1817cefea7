"""
ProfileService - compute, export and sync for one profile.

Wires the profile store, incidence data, point calculator and clock into the
risk engine, and the engine's output into the peer exchange channel.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from backend_riskshare.analysis_engine.calculator import MultiplierCalculator, PointCalculator
from backend_riskshare.analysis_engine.district_data import DistrictIncidenceStore
from backend_riskshare.analysis_engine.models import AnalysisDay, Person
from backend_riskshare.analysis_engine.person_risk import PersonRiskResolver
from backend_riskshare.analysis_engine.risk_propagation import RiskPropagationEngine
from backend_riskshare.core.clock import Clock
from backend_riskshare.core.exceptions import (
    CryptoError,
    FormatError,
    NotFoundError,
    TransportError,
)
from backend_riskshare.exchange.channel import PeerExchangeChannel
from backend_riskshare.exchange.codec import RiskCertificate
from backend_riskshare.profile.store import ProfileData, ProfileStore
from backend_riskshare.riskshare_logging import bind_profile


@dataclass
class ExportResult:
    published: list[str] = field(default_factory=list)
    """Peer ids whose certificate was transmitted."""
    failed: dict[str, str] = field(default_factory=dict)
    """Peer id -> error message."""


@dataclass
class SyncResult:
    updated: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


class ProfileService:
    def __init__(
        self,
        store: ProfileStore,
        channel: PeerExchangeChannel,
        districts: DistrictIncidenceStore,
        *,
        calculator: PointCalculator | None = None,
        clock: Clock | None = None,
        data: ProfileData | None = None,
    ) -> None:
        self.store = store
        self.channel = channel
        self.districts = districts
        self.calculator = calculator or MultiplierCalculator()
        self.clock = clock or Clock()
        self.data = data if data is not None else store.load()
        self.logger = bind_profile(store.name)

    def load_certificate(self, person: Person) -> RiskCertificate | None:
        """Decrypt the cached certificate of a linked peer; None if absent or unreadable."""
        if person.peer is None:
            return None
        payload = self.store.load_certificate_payload(person.peer.peer_id)
        if payload is None:
            return None
        try:
            return self.channel.import_from(person.peer.public_key, payload)
        except (CryptoError, FormatError) as e:
            self.logger.warning("certificate_import_failed", peer_id=person.peer.peer_id, error=str(e))
            return None

    def engine(self) -> RiskPropagationEngine:
        resolver = PersonRiskResolver(
            self.data.persons,
            self.districts,
            self.calculator,
            certificates=self.load_certificate,
        )
        return RiskPropagationEngine(resolver, self.calculator, self.data.locations, self.clock)

    def compute_series(self, exclude_person_id: str | None = None) -> list[AnalysisDay]:
        return self.engine().compute_series(
            self.data.activities.values(),
            self.data.cohabitations.values(),
            exclude_person_id=exclude_person_id,
        )

    def export(self) -> ExportResult:
        """
        Write the plain export, then publish one exclusive certificate per
        linked peer. A failing peer does not stop the others.
        """
        result = ExportResult()
        self.store.write_export(self.compute_series())
        for person in self.data.linked_persons():
            peer_id = person.peer.peer_id
            try:
                series = self.compute_series(exclude_person_id=person.id)
                message_id = self.channel.publish(person.peer.public_key, series)
            except (CryptoError, FormatError, TransportError) as e:
                self.logger.warning("certificate_export_failed", peer_id=peer_id, error=str(e))
                result.failed[peer_id] = str(e)
                continue
            self.logger.info("certificate_exported", peer_id=peer_id, message_id=message_id)
            result.published.append(peer_id)
        return result

    def sync_peers(self) -> SyncResult:
        """
        Fetch each linked peer's certificate. The download is validated by
        importing it before the cached file is replaced, so a bad download
        leaves the previous certificate in place.
        """
        result = SyncResult()
        for person in self.data.linked_persons():
            peer_id = person.peer.peer_id
            try:
                payload = self.channel.fetch(person.peer.public_key)
                certificate = self.channel.import_from(person.peer.public_key, payload)
            except NotFoundError:
                self.logger.info("certificate_not_published", peer_id=peer_id)
                result.missing.append(peer_id)
                continue
            except (CryptoError, FormatError, TransportError) as e:
                self.logger.warning("certificate_sync_failed", peer_id=peer_id, error=str(e))
                result.failed[peer_id] = str(e)
                continue
            self.store.save_certificate_payload(peer_id, payload)
            self.logger.info(
                "certificate_synced",
                peer_id=peer_id,
                anchor=certificate.anchor_date.isoformat(),
            )
            result.updated.append(peer_id)
        return result
