"""
Peer risk exchange - certificate codec, keypair, sealing, transport.

A risk certificate is a fixed-layout binary encoding of a 29-day outgoing
risk series. It is encrypted for one recipient, sealed by the sender and
delivered through a shared message store addressed by a deterministic id.
"""

from backend_riskshare.exchange.channel import PeerExchangeChannel
from backend_riskshare.exchange.codec import RiskCertificate, decode, encode
from backend_riskshare.exchange.keystore import KeyStore
from backend_riskshare.exchange.sealing import compute_message_id

__all__ = [
    "KeyStore",
    "PeerExchangeChannel",
    "RiskCertificate",
    "compute_message_id",
    "decode",
    "encode",
]
