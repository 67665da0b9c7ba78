"""Shared typed aliases for probe results and persisted records."""

from typing import Literal, NotRequired, TypeAlias, TypedDict

CheckMethod = Literal["RDAP", "WHOIS"]
VerdictName = Literal["available", "registered", "unknown"]
ModeKind = Literal["full", "pronounceable", "words", "readable"]
ProtocolPreference = Literal["rdap", "whois"]


class ResultRecord(TypedDict):
    domain: str
    verdict: VerdictName
    expiry: str | None
    registrar: NotRequired[str | None]
    reason: NotRequired[str | None]
    checkedAt: str
    protocolUsed: CheckMethod | None


class ModeRecord(TypedDict):
    kind: ModeKind
    length: int
    alphanumeric: bool


class RateConfigRecord(TypedDict):
    concurrency: int
    batchDelayMs: int


class SuggestionRecord(TypedDict, total=False):
    domain: str
    score: float
    rationale: str


ResultRecords: TypeAlias = list[ResultRecord]
