"""
Long-lived RSA keypair for one profile.

private.key (PKCS8 PEM) and public.key (SPKI PEM) live in the profile
directory. Missing files trigger generation on first use; after that the
pair is read-only and safe to share between threads.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from backend_riskshare.core.exceptions import CryptoError
from backend_riskshare.core.files import atomic_write
from backend_riskshare.exchange.sealing import public_key_pem
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

PRIVATE_KEY_FILE = "private.key"
PUBLIC_KEY_FILE = "public.key"
KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537


@dataclass(frozen=True)
class KeyPair:
    private_key: rsa.RSAPrivateKey
    public_pem: str

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self.private_key.public_key()


def generate_keypair(key_size: int = KEY_SIZE) -> KeyPair:
    private_key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)
    return KeyPair(private_key=private_key, public_pem=public_key_pem(private_key.public_key()))


class KeyStore:
    """Lazily loads or creates the profile keypair under `directory`."""

    def __init__(self, directory: Path, key_size: int = KEY_SIZE) -> None:
        self.directory = Path(directory)
        self.key_size = key_size
        self._keypair: KeyPair | None = None
        self._lock = threading.Lock()

    @property
    def private_path(self) -> Path:
        return self.directory / PRIVATE_KEY_FILE

    @property
    def public_path(self) -> Path:
        return self.directory / PUBLIC_KEY_FILE

    def _load(self) -> KeyPair:
        data = self.private_path.read_bytes()
        try:
            private_key = serialization.load_pem_private_key(data, password=None)
        except (ValueError, TypeError) as e:
            raise CryptoError(f"Cannot parse {self.private_path}: {e}") from e
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise CryptoError(f"{self.private_path} does not hold an RSA key")
        return KeyPair(private_key=private_key, public_pem=public_key_pem(private_key.public_key()))

    def save(self, keypair: KeyPair) -> None:
        """Persist a keypair (replacing files) and use it from now on."""
        private_pem = keypair.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        atomic_write(self.private_path, private_pem, mode=0o600)
        atomic_write(self.public_path, keypair.public_pem.encode("ascii"))
        self._keypair = keypair
        logger.info("keypair_written", directory=str(self.directory))

    def _create(self) -> KeyPair:
        logger.info("keypair_generating", directory=str(self.directory), key_size=self.key_size)
        keypair = generate_keypair(self.key_size)
        self.save(keypair)
        return keypair

    def load_or_create(self) -> KeyPair:
        """
        Return the keypair, generating and persisting it if no private key exists.

        Raises:
            CryptoError: the private key file exists but cannot be parsed. An
                unreadable identity is not silently replaced.
        """
        if self._keypair is not None:
            return self._keypair
        with self._lock:
            if self._keypair is None:
                try:
                    self._keypair = self._load()
                except FileNotFoundError:
                    logger.info("keypair_missing", directory=str(self.directory))
                    self._keypair = self._create()
        return self._keypair

    @property
    def public_pem(self) -> str:
        return self.load_or_create().public_pem
