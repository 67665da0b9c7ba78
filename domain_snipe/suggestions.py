"""Availability checks for an externally supplied list of domain suggestions."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from domain_snipe.errors import ConfigError, ValidationError
from domain_snipe.scheduler import RateLimitConfig, RateLimitedScheduler
from domain_snipe.state import ScanCheckpoint
from domain_snipe.types import SuggestionRecord
from domain_snipe.validator import split_domain, validate
from domain_snipe.verdict import ScanResult

logger = logging.getLogger(__name__)


@dataclass
class SuggestionResult:
    domain: str
    score: float | None
    rationale: str | None
    result: ScanResult


def parse_suggestions(data) -> list[SuggestionRecord]:
    """Normalize suggestion JSON into records.

    Accepts a list (or an object with a "suggestions" list) whose entries are
    either domain strings or objects with `domain`, `score` and `rationale`.
    """
    if isinstance(data, dict):
        data = data.get("suggestions")
    if not isinstance(data, list):
        raise ConfigError("Suggestions must be a JSON list or an object with a 'suggestions' list")

    records: list[SuggestionRecord] = []
    for entry in data:
        if isinstance(entry, str):
            entry = {"domain": entry}
        if not isinstance(entry, dict) or not isinstance(entry.get("domain"), str):
            logger.warning("Dropping suggestion without a domain: %r", entry)
            continue
        record: SuggestionRecord = {"domain": entry["domain"]}
        score = entry.get("score")
        if isinstance(score, (int, float)) and not isinstance(score, bool):
            record["score"] = float(score)
        if isinstance(entry.get("rationale"), str):
            record["rationale"] = entry["rationale"]
        records.append(record)
    return records


def load_suggestions(path: Path) -> list[SuggestionRecord]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Could not read suggestions file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path} is not valid JSON: {exc}") from exc
    return parse_suggestions(data)


def _sort_key(result: SuggestionResult):
    return (result.score is None, -(result.score or 0.0), result.domain)


async def check_suggestions(
    records: Iterable[SuggestionRecord],
    probe: Callable[[str], Awaitable[ScanResult]],
    rate_config: RateLimitConfig | None = None,
    *,
    scheduler: RateLimitedScheduler | None = None,
    cancel: asyncio.Event | None = None,
) -> list[SuggestionResult]:
    """Probe every valid suggestion and return results sorted by score, best first.

    Invalid and duplicate domains are dropped with a warning. Suggestions
    without a score sort last.
    """
    valid: list[SuggestionRecord] = []
    seen: set[str] = set()
    for record in records:
        try:
            label, tld = split_domain(record["domain"])
            validate(label, tld, alphanumeric=True)
        except ValidationError as exc:
            logger.warning("Dropping invalid suggestion %s", exc)
            continue
        domain = f"{label}.{tld}"
        if domain in seen:
            continue
        seen.add(domain)
        valid.append({**record, "domain": domain})

    scheduler = scheduler or RateLimitedScheduler(rate_config or RateLimitConfig())

    async def _probe(record: SuggestionRecord) -> ScanResult:
        return await probe(record["domain"])

    results: list[SuggestionResult] = []
    async for batch in scheduler.run(valid, _probe, cancel):
        for record, result in batch:
            results.append(SuggestionResult(
                domain=record["domain"],
                score=record.get("score"),
                rationale=record.get("rationale"),
                result=result,
            ))
    return sorted(results, key=_sort_key)


def suggestions_checkpoint(
    results: list[SuggestionResult], rate_config: RateLimitConfig
) -> ScanCheckpoint:
    """A completed checkpoint holding every suggestion result, so it can be rechecked later."""
    tlds = sorted({split_domain(r.domain)[1] for r in results})
    checkpoint = ScanCheckpoint(mode=None, tlds=tlds, rate_config=rate_config)
    for r in results:
        checkpoint.record(r.result, keep_registered=True)
    checkpoint.cursor = checkpoint.total = len(results)
    checkpoint.completed = True
    return checkpoint
