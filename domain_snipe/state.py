"""Durable scan checkpoints: atomic JSON persistence, locking and rechecks."""

import asyncio
import contextlib
import errno
import hashlib
import json
import logging
import os
import tempfile
from collections.abc import Awaitable, Callable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path

from domain_snipe.candidates import ScanMode
from domain_snipe.errors import (
    CheckpointMismatchError,
    CheckpointSchemaError,
    PersistenceError,
    ScanLockedError,
)
from domain_snipe.scheduler import RateLimitConfig, RateLimitedScheduler
from domain_snipe.types import ResultRecord
from domain_snipe.verdict import ScanResult, Verdict, VerdictKind

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
DEFAULT_OUTPUT_DIR = Path("output")
DEFAULT_EXPIRING_DAYS = 7

FIELD_SCHEMA_VERSION = "schemaVersion"
FIELD_MODE = "mode"
FIELD_TLDS = "tlds"
FIELD_RATE_CONFIG = "rateConfig"
FIELD_WORDLIST_DIGEST = "wordlistDigest"
FIELD_TIMESTAMP = "timestamp"
FIELD_CREATED_AT = "createdAt"
FIELD_UPDATED_AT = "updatedAt"
FIELD_CURSOR = "cursor"
FIELD_TOTAL = "total"
FIELD_CHECKED_COUNT = "checkedCount"
FIELD_REGISTERED_COUNT = "registeredCount"
FIELD_COMPLETED = "completed"
FIELD_RECHECK_HISTORY = "recheckHistory"
FIELD_RESULTS = "results"

FIELD_DOMAIN = "domain"
FIELD_VERDICT = "verdict"
FIELD_EXPIRY = "expiry"
FIELD_REGISTRAR = "registrar"
FIELD_REASON = "reason"
FIELD_CHECKED_AT = "checkedAt"
FIELD_PROTOCOL_USED = "protocolUsed"

REQUIRED_FIELDS = (
    FIELD_SCHEMA_VERSION,
    FIELD_TLDS,
    FIELD_RATE_CONFIG,
    FIELD_CURSOR,
    FIELD_RESULTS,
)


def _now() -> datetime:
    return datetime.now(UTC)


def result_to_record(result: ScanResult) -> ResultRecord:
    verdict = result.verdict
    return {
        FIELD_DOMAIN: result.domain,
        FIELD_VERDICT: verdict.kind.value,
        FIELD_EXPIRY: verdict.expiry.isoformat() if verdict.expiry else None,
        FIELD_REGISTRAR: verdict.registrar,
        FIELD_REASON: verdict.reason,
        FIELD_CHECKED_AT: result.checked_at.isoformat(),
        FIELD_PROTOCOL_USED: result.protocol_used,
    }


def record_to_result(record: ResultRecord) -> ScanResult:
    kind = VerdictKind(record[FIELD_VERDICT])
    expiry = record.get(FIELD_EXPIRY)
    verdict = Verdict(
        kind=kind,
        expiry=date.fromisoformat(expiry) if expiry else None,
        registrar=record.get(FIELD_REGISTRAR),
        reason=record.get(FIELD_REASON),
    )
    return ScanResult(
        domain=record[FIELD_DOMAIN],
        verdict=verdict,
        protocol_used=record.get(FIELD_PROTOCOL_USED),
        checked_at=datetime.fromisoformat(record[FIELD_CHECKED_AT]),
    )


@dataclass
class ScanCheckpoint:
    """Progress and recorded results of one scan.

    `mode` is None for checkpoints built from an external suggestion list.
    `cursor` counts candidate positions fully processed, so resuming at
    `cursor` never skips or repeats a candidate.
    """

    mode: ScanMode | None
    tlds: list[str]
    rate_config: RateLimitConfig
    cursor: int = 0
    total: int = 0
    results: list[ScanResult] = field(default_factory=list)
    checked_count: int = 0
    registered_count: int = 0
    completed: bool = False
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    recheck_history: list[dict] = field(default_factory=list)
    schema_version: int = SCHEMA_VERSION
    wordlist_digest: str | None = None

    def matches(
        self,
        mode: ScanMode | None,
        tlds: Sequence[str],
        rate_config: RateLimitConfig,
        wordlist_digest: str | None = None,
    ) -> bool:
        return (
            self.mode == mode
            and self.tlds == list(tlds)
            and self.rate_config.to_record() == rate_config.to_record()
            and self.wordlist_digest == wordlist_digest
        )

    def record(
        self,
        result: ScanResult,
        *,
        expiring_days: int = DEFAULT_EXPIRING_DAYS,
        keep_registered: bool = False,
        today: date | None = None,
    ) -> bool:
        """Count `result` and keep it if it is worth keeping. Returns True if kept.

        Available and Unknown results are always kept; Registered ones only
        when expiring within `expiring_days` (or `keep_registered`).
        """
        self.checked_count += 1
        verdict = result.verdict
        if verdict.is_registered:
            self.registered_count += 1
            if not keep_registered and not verdict.expires_within(expiring_days, today):
                return False
        self.results.append(result)
        return True

    @property
    def available(self) -> list[ScanResult]:
        return [r for r in self.results if r.verdict.is_available]

    def expiring(self, days: int, today: date | None = None) -> list[ScanResult]:
        return [r for r in self.results if r.verdict.expires_within(days, today)]

    @property
    def unknown(self) -> list[ScanResult]:
        return [r for r in self.results if r.verdict.is_unknown]

    def to_dict(self) -> dict:
        return {
            FIELD_SCHEMA_VERSION: self.schema_version,
            FIELD_MODE: self.mode.to_record() if self.mode else None,
            FIELD_TLDS: list(self.tlds),
            FIELD_RATE_CONFIG: self.rate_config.to_record(),
            FIELD_WORDLIST_DIGEST: self.wordlist_digest,
            FIELD_TIMESTAMP: self.updated_at.isoformat(),
            FIELD_CREATED_AT: self.created_at.isoformat(),
            FIELD_UPDATED_AT: self.updated_at.isoformat(),
            FIELD_CURSOR: self.cursor,
            FIELD_TOTAL: self.total,
            FIELD_CHECKED_COUNT: self.checked_count,
            FIELD_REGISTERED_COUNT: self.registered_count,
            FIELD_COMPLETED: self.completed,
            FIELD_RECHECK_HISTORY: list(self.recheck_history),
            FIELD_RESULTS: [result_to_record(r) for r in self.results],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScanCheckpoint":
        """Rebuild a checkpoint, raising CheckpointSchemaError on anything unexpected."""
        if not isinstance(data, dict):
            raise CheckpointSchemaError("checkpoint is not a JSON object")
        missing = [f for f in REQUIRED_FIELDS if f not in data]
        if missing:
            raise CheckpointSchemaError(f"checkpoint is missing {', '.join(missing)}")
        version = data[FIELD_SCHEMA_VERSION]
        if version != SCHEMA_VERSION:
            raise CheckpointSchemaError(
                f"checkpoint schema version {version!r} is not supported (expected {SCHEMA_VERSION})"
            )

        try:
            mode_record = data.get(FIELD_MODE)
            created_at = datetime.fromisoformat(data.get(FIELD_CREATED_AT) or data[FIELD_TIMESTAMP])
            return cls(
                mode=ScanMode.from_record(mode_record) if mode_record else None,
                tlds=[str(t) for t in data[FIELD_TLDS]],
                rate_config=RateLimitConfig.from_record(data[FIELD_RATE_CONFIG]),
                cursor=int(data[FIELD_CURSOR]),
                total=int(data.get(FIELD_TOTAL, 0)),
                results=[record_to_result(r) for r in data[FIELD_RESULTS]],
                checked_count=int(data.get(FIELD_CHECKED_COUNT, 0)),
                registered_count=int(data.get(FIELD_REGISTERED_COUNT, 0)),
                completed=bool(data.get(FIELD_COMPLETED, False)),
                created_at=created_at,
                updated_at=datetime.fromisoformat(data.get(FIELD_UPDATED_AT) or created_at.isoformat()),
                recheck_history=list(data.get(FIELD_RECHECK_HISTORY) or []),
                wordlist_digest=data.get(FIELD_WORDLIST_DIGEST),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise CheckpointSchemaError(f"checkpoint is malformed: {exc}") from exc


@dataclass
class RecheckReport:
    path: Path
    rechecked: int = 0
    changed: int = 0
    kept_on_error: int = 0
    now_available: int = 0
    now_registered: int = 0
    timestamp: datetime = field(default_factory=_now)

    def to_history_entry(self, threshold_days: int) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "expiringDays": threshold_days,
            "rechecked": self.rechecked,
            "changed": self.changed,
            "keptOnError": self.kept_on_error,
            "nowAvailable": self.now_available,
            "nowRegistered": self.now_registered,
        }


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class ScanStateStore:
    """Reads and writes checkpoint files under `directory`.

    Saves are atomic (temp file in the same directory, fsync, os.replace),
    so a crash mid-write leaves the previous checkpoint intact.
    """

    def __init__(self, directory: Path | str = DEFAULT_OUTPUT_DIR):
        self.directory = Path(directory)

    def path_for(self, mode: ScanMode, tlds: Sequence[str], wordlist_digest: str | None = None) -> Path:
        tld_part = "-".join(tlds)
        if len(tld_part) > 40:
            tld_part = f"{len(tlds)}tlds-{hashlib.sha1(tld_part.encode()).hexdigest()[:8]}"
        if wordlist_digest:
            tld_part += f"_wl{wordlist_digest[:8]}"
        return self.directory / f"snipe_{mode.slug}_{tld_part}.json"

    def save(self, checkpoint: ScanCheckpoint, path: Path) -> None:
        checkpoint.updated_at = _now()
        payload = json.dumps(checkpoint.to_dict(), indent=2) + "\n"

        path = Path(path)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as f:
                tmp_name = f.name
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise PersistenceError(f"Could not write checkpoint {path}: {exc}") from exc
        logger.debug("Checkpoint saved to %s (cursor %d)", path, checkpoint.cursor)

    def load(self, path: Path) -> ScanCheckpoint:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Could not read checkpoint {path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CheckpointSchemaError(f"{path} is not valid JSON: {exc}") from exc
        return ScanCheckpoint.from_dict(data)

    def load_matching(
        self,
        path: Path,
        mode: ScanMode | None,
        tlds: Sequence[str],
        rate_config: RateLimitConfig,
        wordlist_digest: str | None = None,
    ) -> ScanCheckpoint:
        checkpoint = self.load(path)
        if not checkpoint.matches(mode, tlds, rate_config, wordlist_digest):
            raise CheckpointMismatchError(
                f"{path} was created for different scan parameters; use --fresh to start over"
            )
        return checkpoint

    @contextlib.contextmanager
    def lock(self, path: Path) -> Iterator[Path]:
        """Hold an advisory PID lock next to `path` for the duration of the block.

        A lock left behind by a dead process is reclaimed.
        """
        lock_path = Path(f"{path}.lock")
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(2):
            try:
                fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                try:
                    pid = int(lock_path.read_text().strip() or "0")
                except (OSError, ValueError):
                    pid = 0
                if pid and _pid_alive(pid):
                    raise ScanLockedError(f"{path} is locked by running process {pid}") from None
                logger.warning("Reclaiming stale lock %s (pid %s)", lock_path, pid or "unknown")
                with contextlib.suppress(FileNotFoundError):
                    lock_path.unlink()
                continue
            except OSError as exc:
                raise PersistenceError(f"Could not create lock {lock_path}: {exc}") from exc
            with os.fdopen(fd, "w") as f:
                f.write(str(os.getpid()))
            break
        else:
            raise ScanLockedError(f"Could not acquire lock {lock_path}")

        try:
            yield lock_path
        finally:
            try:
                lock_path.unlink()
            except OSError as exc:
                if exc.errno != errno.ENOENT:
                    logger.warning("Could not remove lock %s: %s", lock_path, exc)

    async def recheck(
        self,
        path: Path,
        probe: Callable[[str], Awaitable[ScanResult]],
        scheduler: RateLimitedScheduler,
        threshold_days: int = DEFAULT_EXPIRING_DAYS,
        *,
        cancel: asyncio.Event | None = None,
        today: date | None = None,
    ) -> RecheckReport:
        """Re-probe Available results and Registered ones expiring within `threshold_days`.

        Results are replaced in place. An Unknown answer keeps the prior
        verdict. The checkpoint is saved after every batch.
        """
        path = Path(path)
        report = RecheckReport(path=path)
        with self.lock(path):
            checkpoint = self.load(path)
            targets = [
                i for i, r in enumerate(checkpoint.results)
                if r.verdict.is_available or r.verdict.expires_within(threshold_days, today)
            ]
            logger.info("Rechecking %d of %d results in %s", len(targets), len(checkpoint.results), path)

            async def _probe(index: int) -> ScanResult:
                return await probe(checkpoint.results[index].domain)

            async for batch in scheduler.run(targets, _probe, cancel):
                for index, fresh in batch:
                    report.rechecked += 1
                    prior = checkpoint.results[index]
                    if fresh.verdict.is_unknown:
                        report.kept_on_error += 1
                        continue
                    if (fresh.verdict.kind, fresh.verdict.expiry) != (prior.verdict.kind, prior.verdict.expiry):
                        report.changed += 1
                        if fresh.verdict.is_available:
                            report.now_available += 1
                        elif prior.verdict.is_available:
                            report.now_registered += 1
                    checkpoint.results[index] = fresh
                self.save(checkpoint, path)

            checkpoint.recheck_history.append(report.to_history_entry(threshold_days))
            self.save(checkpoint, path)
        return report
