"""
PeerExchangeChannel - one profile's endpoint of the certificate exchange.

Export: encode -> encrypt for recipient -> seal with own key -> transmit
under compute_message_id(own, recipient).
Import: retrieve under compute_message_id(sender, own) -> unseal with the
sender's key -> decrypt with own key -> decode.
"""

from __future__ import annotations

from typing import Sequence

from backend_riskshare.analysis_engine.models import AnalysisDay
from backend_riskshare.core.exceptions import TransportError
from backend_riskshare.exchange.codec import RiskCertificate, decode, encode
from backend_riskshare.exchange.keystore import KeyStore
from backend_riskshare.exchange.sealing import (
    SCHEME_PSS,
    compute_message_id,
    load_public_key,
    seal,
    unseal,
)
from backend_riskshare.exchange.transport import Transport
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)


class PeerExchangeChannel:
    def __init__(
        self,
        key_store: KeyStore,
        transport: Transport | None = None,
        *,
        seal_scheme: str = SCHEME_PSS,
    ) -> None:
        self.key_store = key_store
        self.transport = transport
        self.seal_scheme = seal_scheme

    @property
    def public_pem(self) -> str:
        return self.key_store.public_pem

    def outbound_message_id(self, recipient_public_pem: str) -> str:
        """Id this profile pushes a certificate for the recipient under."""
        return compute_message_id(self.public_pem, recipient_public_pem)

    def inbound_message_id(self, sender_public_pem: str) -> str:
        """Id this profile pulls the sender's certificate from."""
        return compute_message_id(sender_public_pem, self.public_pem)

    def export_for(
        self,
        recipient_public_pem: str,
        series: RiskCertificate | Sequence[AnalysisDay],
    ) -> bytes:
        """Encode, encrypt for the recipient and seal. Raises FormatError or CryptoError."""
        plaintext = encode(series)
        keypair = self.key_store.load_or_create()
        payload = seal(
            plaintext,
            keypair.private_key,
            load_public_key(recipient_public_pem),
            scheme=self.seal_scheme,
        )
        logger.debug("certificate_sealed", scheme=self.seal_scheme, size=len(payload))
        return payload

    def import_from(self, sender_public_pem: str, payload: bytes) -> RiskCertificate:
        """Unseal, decrypt and decode. Raises CryptoError or FormatError."""
        keypair = self.key_store.load_or_create()
        plaintext = unseal(payload, load_public_key(sender_public_pem), keypair.private_key)
        certificate = decode(plaintext)
        logger.debug(
            "certificate_unsealed",
            anchor=certificate.anchor_date.isoformat(),
            days=len(certificate.risks),
        )
        return certificate

    def _require_transport(self) -> Transport:
        if self.transport is None:
            raise TransportError("No transport configured for this channel")
        return self.transport

    def transmit(self, message_id: str, payload: bytes) -> None:
        self._require_transport().transmit(message_id, payload)

    def retrieve(self, message_id: str) -> bytes:
        """Raises NotFoundError if nothing is stored, TransportError on other failures."""
        return self._require_transport().retrieve(message_id)

    def publish(self, recipient_public_pem: str, series: RiskCertificate | Sequence[AnalysisDay]) -> str:
        """export_for + transmit; returns the message id used."""
        payload = self.export_for(recipient_public_pem, series)
        message_id = self.outbound_message_id(recipient_public_pem)
        self.transmit(message_id, payload)
        return message_id

    def fetch(self, sender_public_pem: str) -> bytes:
        """Retrieve the sealed payload the sender left for this profile."""
        return self.retrieve(self.inbound_message_id(sender_public_pem))
