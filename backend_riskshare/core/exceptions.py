"""
Application-level exceptions.

Computation-level failures are absorbed into AnalysisDay.has_error; codec and
crypto failures abort a single import/export; transport failures are logged
by the caller. None of them should take down the host process.
"""

from __future__ import annotations


class RiskShareError(Exception):
    """Base class for all RiskShare errors."""


class FormatError(RiskShareError):
    """Risk certificate bytes do not match the expected layout (magic, version, length)."""


class CryptoError(RiskShareError):
    """Key mismatch, padding failure, bad signature or corrupt ciphertext."""


class UnresolvedRiskError(RiskShareError):
    """A person's or district's risk could not be computed."""


class TransportError(RiskShareError):
    """Non-200 status or network failure talking to the message store."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(TransportError):
    """No message stored under the requested message id."""
