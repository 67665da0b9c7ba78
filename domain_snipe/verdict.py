"""Availability verdicts and the per-domain scan result."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum

from domain_snipe.types import CheckMethod


class VerdictKind(Enum):
    AVAILABLE = "available"
    REGISTERED = "registered"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    expiry: date | None = None
    registrar: str | None = None
    reason: str | None = None
    rate_limited: bool = False

    @classmethod
    def available(cls) -> "Verdict":
        return cls(VerdictKind.AVAILABLE)

    @classmethod
    def registered(cls, expiry: date | None = None, registrar: str | None = None) -> "Verdict":
        return cls(VerdictKind.REGISTERED, expiry=expiry, registrar=registrar)

    @classmethod
    def unknown(cls, reason: str, *, rate_limited: bool = False) -> "Verdict":
        return cls(VerdictKind.UNKNOWN, reason=reason, rate_limited=rate_limited)

    @property
    def is_available(self) -> bool:
        return self.kind == VerdictKind.AVAILABLE

    @property
    def is_registered(self) -> bool:
        return self.kind == VerdictKind.REGISTERED

    @property
    def is_unknown(self) -> bool:
        return self.kind == VerdictKind.UNKNOWN

    def days_until_expiry(self, today: date | None = None) -> int | None:
        if self.expiry is None:
            return None
        return (self.expiry - (today or datetime.now(UTC).date())).days

    def expires_within(self, days: int, today: date | None = None) -> bool:
        """True for registered domains whose expiry is known and at most `days` away.

        Already-expired domains (negative remaining days) count as within.
        """
        remaining = self.days_until_expiry(today)
        return self.is_registered and remaining is not None and remaining <= days


@dataclass
class ScanResult:
    domain: str
    verdict: Verdict
    protocol_used: CheckMethod | None
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))
