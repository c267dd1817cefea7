"""
Risk certificate binary codec (little-endian).

    offset 0      b"MCA"         magic
    offset 3      uint8          version (1)
    offset 4      uint32         anchor date, Unix seconds at midnight UTC
    offset 8      uint8          day count (29 for version 1)
    offset 9+2*i  uint16         outgoing risk for anchor date - i

The anchor is the most recent day covered. Risk values are rounded and
clamped to 0..65535 on encode.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Sequence

from backend_riskshare.analysis_engine.models import AnalysisDay
from backend_riskshare.core.exceptions import FormatError

MAGIC = b"MCA"
VERSION = 1
DAY_COUNT_V1 = 29
HEADER = struct.Struct("<3sBIB")
RISK = struct.Struct("<H")
HEADER_SIZE = HEADER.size  # 9
MAX_RISK = 0xFFFF
SECONDS_PER_DAY = 86400
_EPOCH = date(1970, 1, 1)


def _anchor_to_seconds(anchor: date) -> int:
    seconds = (anchor - _EPOCH).days * SECONDS_PER_DAY
    if not 0 <= seconds <= 0xFFFFFFFF:
        raise FormatError(f"Anchor date {anchor.isoformat()} does not fit in uint32 seconds")
    return seconds


def _seconds_to_anchor(seconds: int) -> date:
    # Peers anchoring at local midnight are off by the UTC offset; round to the nearest day.
    return _EPOCH + timedelta(days=round(seconds / SECONDS_PER_DAY))


def quantize(risk: float) -> int:
    """Round and clamp a risk value into the uint16 range; NaN becomes 0, infinities clamp."""
    if math.isnan(risk):
        return 0
    if math.isinf(risk):
        return MAX_RISK if risk > 0 else 0
    return int(min(MAX_RISK, max(0, round(risk))))


@dataclass(frozen=True)
class RiskCertificate:
    """Immutable outgoing-risk series; risks[i] belongs to anchor_date - i."""

    anchor_date: date
    risks: tuple[float, ...]
    version: int = VERSION

    @classmethod
    def from_series(cls, days: Sequence[AnalysisDay]) -> RiskCertificate:
        """Build from a newest-first series; uses the first 29 days."""
        if len(days) < DAY_COUNT_V1:
            raise ValueError(f"Series needs at least {DAY_COUNT_V1} days, got {len(days)}")
        window = days[:DAY_COUNT_V1]
        anchor = window[0].date
        for i, day in enumerate(window):
            if day.date != anchor - timedelta(days=i):
                raise ValueError(f"Series is not consecutive newest-first at index {i}: {day.date}")
        return cls(anchor_date=anchor, risks=tuple(d.outgoing_risk for d in window))

    @property
    def dates(self) -> list[date]:
        return [self.anchor_date - timedelta(days=i) for i in range(len(self.risks))]

    def risk_on(self, day: date | datetime) -> float | None:
        """Outgoing risk for the calendar day, or None if outside the certificate."""
        if isinstance(day, datetime):
            day = day.date()
        index = (self.anchor_date - day).days
        if 0 <= index < len(self.risks):
            return float(self.risks[index])
        return None

    def to_days(self) -> list[AnalysisDay]:
        """Newest-first AnalysisDay list; incoming risk is not part of the certificate."""
        return [
            AnalysisDay(date=d, incoming_risk=0.0, outgoing_risk=float(r), has_error=False)
            for d, r in zip(self.dates, self.risks)
        ]


def encode(certificate: RiskCertificate | Sequence[AnalysisDay]) -> bytes:
    """Serialize to exactly 9 + 2 * day_count bytes."""
    if not isinstance(certificate, RiskCertificate):
        certificate = RiskCertificate.from_series(certificate)
    if certificate.version != VERSION:
        raise FormatError(f"Can only write version {VERSION}, got {certificate.version}")
    if len(certificate.risks) != DAY_COUNT_V1:
        raise FormatError(f"Version {VERSION} requires {DAY_COUNT_V1} days, got {len(certificate.risks)}")
    out = bytearray(HEADER.pack(MAGIC, VERSION, _anchor_to_seconds(certificate.anchor_date), len(certificate.risks)))
    for risk in certificate.risks:
        out += RISK.pack(quantize(risk))
    return bytes(out)


def decode(data: bytes) -> RiskCertificate:
    """
    Parse certificate bytes.

    Raises:
        FormatError: wrong magic, unsupported version, or length inconsistent with day count.
    """
    if len(data) < HEADER_SIZE:
        raise FormatError(f"Certificate too short: {len(data)} bytes")
    magic, version, anchor_seconds, day_count = HEADER.unpack_from(data, 0)
    if magic != MAGIC:
        raise FormatError(f"Magic bytes at the beginning are wrong: {magic!r}")
    if version != VERSION:
        raise FormatError(f"Can only read version {VERSION}, but version is {version}")
    if day_count != DAY_COUNT_V1:
        raise FormatError(f"Version {VERSION} requires {DAY_COUNT_V1} days, header declares {day_count}")
    expected = HEADER_SIZE + RISK.size * day_count
    if len(data) != expected:
        raise FormatError(f"Certificate length {len(data)} does not match {day_count} days ({expected} bytes)")
    risks = tuple(
        float(RISK.unpack_from(data, HEADER_SIZE + RISK.size * i)[0]) for i in range(day_count)
    )
    return RiskCertificate(anchor_date=_seconds_to_anchor(anchor_seconds), risks=risks, version=version)
