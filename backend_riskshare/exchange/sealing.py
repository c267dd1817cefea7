"""
Certificate encryption, sealing and message ids.

Two passes, as in the exchange contract:
1. Encrypt the certificate for the recipient: RSA-OAEP with SHA-256.
2. Seal the ciphertext with the sender's private key.

Seal schemes:
- "pss": ciphertext || RSA-PSS(SHA-256) signature over the ciphertext.
- "legacy": textbook RSA (no padding) of the ciphertext with the sender's
  private key. Malleable and only kept to talk to peers that still use it.
  The ciphertext must be smaller than the sender's modulus, so export
  re-encrypts (OAEP is randomized) until it is.

Import tells the schemes apart by payload length.
"""

from __future__ import annotations

import hashlib

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from backend_riskshare.core.exceptions import CryptoError
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

SCHEME_PSS = "pss"
SCHEME_LEGACY = "legacy"
LEGACY_MAX_ATTEMPTS = 64

_OAEP = padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA256()), algorithm=hashes.SHA256(), label=None)
_PSS = padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.MAX_LENGTH)


def load_public_key(pem: str | bytes) -> rsa.RSAPublicKey:
    """Parse an SPKI PEM public key; raises CryptoError if it is not an RSA key."""
    data = pem.encode("utf-8") if isinstance(pem, str) else pem
    try:
        key = serialization.load_pem_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"Invalid public key: {e}") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise CryptoError("Public key is not an RSA key")
    return key


def public_key_pem(key: rsa.RSAPublicKey) -> str:
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


def canonical_public_pem(pem: str | bytes) -> str:
    """Re-serialize a public key so whitespace differences do not change message ids."""
    return public_key_pem(load_public_key(pem))


def compute_message_id(sender_public_pem: str, recipient_public_pem: str) -> str:
    """
    Hex SHA-256 over sender PEM then recipient PEM.

    The sender pushes under compute_message_id(own, recipient); the recipient
    pulls under compute_message_id(peer, own). Both yield the same id.
    """
    digest = hashlib.sha256()
    digest.update(canonical_public_pem(sender_public_pem).encode("utf-8"))
    digest.update(canonical_public_pem(recipient_public_pem).encode("utf-8"))
    return digest.hexdigest()


def _key_bytes(key: rsa.RSAPublicKey | rsa.RSAPrivateKey) -> int:
    return (key.key_size + 7) // 8


def oaep_encrypt(public_key: rsa.RSAPublicKey, plaintext: bytes) -> bytes:
    try:
        return public_key.encrypt(plaintext, _OAEP)
    except ValueError as e:
        raise CryptoError(f"OAEP encryption failed: {e}") from e


def oaep_decrypt(private_key: rsa.RSAPrivateKey, ciphertext: bytes) -> bytes:
    try:
        return private_key.decrypt(ciphertext, _OAEP)
    except ValueError as e:
        raise CryptoError(f"OAEP decryption failed (wrong key or corrupt ciphertext): {e}") from e


def raw_private_encrypt(private_key: rsa.RSAPrivateKey, block: bytes) -> bytes:
    """Textbook RSA with the private exponent; block must be modulus-sized and below n."""
    numbers = private_key.private_numbers()
    n = numbers.public_numbers.n
    size = _key_bytes(private_key)
    if len(block) != size:
        raise CryptoError(f"Raw RSA block must be {size} bytes, got {len(block)}")
    m = int.from_bytes(block, "big")
    if m >= n:
        raise CryptoError("Data too large for modulus")
    return pow(m, numbers.d, n).to_bytes(size, "big")


def raw_public_decrypt(public_key: rsa.RSAPublicKey, block: bytes, out_size: int) -> bytes:
    """Inverse of raw_private_encrypt using the public exponent."""
    numbers = public_key.public_numbers()
    size = _key_bytes(public_key)
    if len(block) != size:
        raise CryptoError(f"Sealed block must be {size} bytes, got {len(block)}")
    s = int.from_bytes(block, "big")
    if s >= numbers.n:
        raise CryptoError("Sealed block larger than sender modulus")
    m = pow(s, numbers.e, numbers.n)
    try:
        return m.to_bytes(out_size, "big")
    except OverflowError as e:
        raise CryptoError("Unsealed block does not fit recipient key size") from e


def sign_pss(private_key: rsa.RSAPrivateKey, data: bytes) -> bytes:
    return private_key.sign(data, _PSS, hashes.SHA256())


def verify_pss(public_key: rsa.RSAPublicKey, signature: bytes, data: bytes) -> None:
    try:
        public_key.verify(signature, data, _PSS, hashes.SHA256())
    except InvalidSignature as e:
        raise CryptoError("Seal signature does not verify against sender key") from e


def seal(
    plaintext: bytes,
    sender_private_key: rsa.RSAPrivateKey,
    recipient_public_key: rsa.RSAPublicKey,
    scheme: str = SCHEME_PSS,
) -> bytes:
    """Encrypt for the recipient, then seal with the sender's key."""
    if scheme == SCHEME_PSS:
        ciphertext = oaep_encrypt(recipient_public_key, plaintext)
        return ciphertext + sign_pss(sender_private_key, ciphertext)
    if scheme == SCHEME_LEGACY:
        n = sender_private_key.private_numbers().public_numbers.n
        sender_size = _key_bytes(sender_private_key)
        if _key_bytes(recipient_public_key) != sender_size:
            raise CryptoError("Legacy seal needs sender and recipient keys of equal size")
        for attempt in range(1, LEGACY_MAX_ATTEMPTS + 1):
            ciphertext = oaep_encrypt(recipient_public_key, plaintext)
            if int.from_bytes(ciphertext, "big") < n:
                if attempt > 1:
                    logger.debug("legacy_seal_reencrypted", attempts=attempt)
                return raw_private_encrypt(sender_private_key, ciphertext)
        raise CryptoError("Could not produce a ciphertext below the sender modulus")
    raise CryptoError(f"Unknown seal scheme {scheme!r}")


def unseal(
    payload: bytes,
    sender_public_key: rsa.RSAPublicKey,
    recipient_private_key: rsa.RSAPrivateKey,
) -> bytes:
    """
    Verify/reverse the seal and decrypt the certificate.

    Raises:
        CryptoError: bad length, bad signature, wrong key or corrupt ciphertext.
    """
    sender_size = _key_bytes(sender_public_key)
    recipient_size = _key_bytes(recipient_private_key)
    if len(payload) == recipient_size + sender_size:
        ciphertext, signature = payload[:recipient_size], payload[recipient_size:]
        verify_pss(sender_public_key, signature, ciphertext)
    elif len(payload) == sender_size:
        ciphertext = raw_public_decrypt(sender_public_key, payload, recipient_size)
    else:
        raise CryptoError(
            f"Sealed payload has {len(payload)} bytes; expected {sender_size} (legacy) "
            f"or {recipient_size + sender_size} (pss)"
        )
    return oaep_decrypt(recipient_private_key, ciphertext)
