"""
Tests for certificate sealing (OAEP + PSS seal, legacy textbook seal) and message ids.
"""

from __future__ import annotations

import pytest

from backend_riskshare.core.exceptions import CryptoError
from backend_riskshare.exchange.sealing import (
    SCHEME_LEGACY,
    SCHEME_PSS,
    canonical_public_pem,
    compute_message_id,
    load_public_key,
    raw_private_encrypt,
    raw_public_decrypt,
    seal,
    unseal,
)

PLAINTEXT = b"MCA\x01" + bytes(63)


def test_message_id_push_equals_pull(keypair_a, keypair_b):
    pushed_by_a = compute_message_id(keypair_a.public_pem, keypair_b.public_pem)
    pulled_by_b = compute_message_id(keypair_a.public_pem, keypair_b.public_pem)
    reverse = compute_message_id(keypair_b.public_pem, keypair_a.public_pem)
    assert pushed_by_a == pulled_by_b
    assert pushed_by_a != reverse
    assert len(pushed_by_a) == 64
    int(pushed_by_a, 16)


def test_message_id_is_sha256_of_both_pems(keypair_a, keypair_b):
    import hashlib

    expected = hashlib.sha256((keypair_a.public_pem + keypair_b.public_pem).encode()).hexdigest()
    assert compute_message_id(keypair_a.public_pem, keypair_b.public_pem) == expected


def test_canonical_pem_is_stable(keypair_a):
    assert canonical_public_pem(keypair_a.public_pem) == keypair_a.public_pem
    assert canonical_public_pem(keypair_a.public_pem.encode()) == keypair_a.public_pem


def test_invalid_public_key_raises():
    with pytest.raises(CryptoError):
        load_public_key("not a key")


def test_pss_seal_round_trip(keypair_a, keypair_b):
    payload = seal(PLAINTEXT, keypair_a.private_key, keypair_b.public_key, scheme=SCHEME_PSS)
    assert len(payload) == 512
    assert unseal(payload, keypair_a.public_key, keypair_b.private_key) == PLAINTEXT


def test_legacy_seal_round_trip(keypair_a, keypair_b):
    for _ in range(5):
        payload = seal(PLAINTEXT, keypair_a.private_key, keypair_b.public_key, scheme=SCHEME_LEGACY)
        assert len(payload) == 256
        assert unseal(payload, keypair_a.public_key, keypair_b.private_key) == PLAINTEXT


def test_textbook_rsa_inverts(keypair_a):
    n = keypair_a.public_key.public_numbers().n
    block = (n // 3).to_bytes(256, "big")
    sealed = raw_private_encrypt(keypair_a.private_key, block)
    assert raw_public_decrypt(keypair_a.public_key, sealed, 256) == block


def test_textbook_rsa_rejects_block_above_modulus(keypair_a):
    with pytest.raises(CryptoError):
        raw_private_encrypt(keypair_a.private_key, b"\xff" * 256)


@pytest.mark.parametrize("scheme", [SCHEME_PSS, SCHEME_LEGACY])
def test_wrong_recipient_key_fails(keypair_a, keypair_b, keypair_c, scheme):
    payload = seal(PLAINTEXT, keypair_a.private_key, keypair_b.public_key, scheme=scheme)
    with pytest.raises(CryptoError):
        unseal(payload, keypair_a.public_key, keypair_c.private_key)


@pytest.mark.parametrize("scheme", [SCHEME_PSS, SCHEME_LEGACY])
def test_wrong_sender_key_fails(keypair_a, keypair_b, keypair_c, scheme):
    payload = seal(PLAINTEXT, keypair_a.private_key, keypair_b.public_key, scheme=scheme)
    with pytest.raises(CryptoError):
        unseal(payload, keypair_c.public_key, keypair_b.private_key)


def test_tampered_pss_payload_fails(keypair_a, keypair_b):
    payload = bytearray(seal(PLAINTEXT, keypair_a.private_key, keypair_b.public_key))
    payload[10] ^= 0x01
    with pytest.raises(CryptoError):
        unseal(bytes(payload), keypair_a.public_key, keypair_b.private_key)


def test_payload_of_unexpected_length_fails(keypair_a, keypair_b):
    with pytest.raises(CryptoError, match="expected"):
        unseal(b"\x00" * 100, keypair_a.public_key, keypair_b.private_key)


def test_unknown_scheme_fails(keypair_a, keypair_b):
    with pytest.raises(CryptoError):
        seal(PLAINTEXT, keypair_a.private_key, keypair_b.public_key, scheme="rot13")
