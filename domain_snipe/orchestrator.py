"""Ties candidate generation, probing, scheduling and checkpoints into a scan."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeAlias

from domain_snipe.candidates import CandidateSource, DomainCandidate, ScanMode
from domain_snipe.errors import PersistenceError, ValidationError
from domain_snipe.scheduler import Batch, RateLimitConfig, RateLimitedScheduler
from domain_snipe.state import DEFAULT_EXPIRING_DAYS, RecheckReport, ScanCheckpoint, ScanStateStore
from domain_snipe.validator import validate
from domain_snipe.verdict import ScanResult

logger = logging.getLogger(__name__)

ProbeFn: TypeAlias = Callable[[str], Awaitable[ScanResult]]
PositionedCandidate: TypeAlias = tuple[int, DomainCandidate]


@dataclass
class ScanParams:
    mode: ScanMode
    tlds: list[str]
    rate_config: RateLimitConfig = field(default_factory=RateLimitConfig)
    expiring_days: int = DEFAULT_EXPIRING_DAYS
    keep_registered: bool = False
    state_path: Path | None = None
    words: list[str] | None = None


@dataclass
class ScanProgress:
    cursor: int
    total: int
    checked: int
    available: int
    registered: int
    unknown: int
    expiring: int
    batch_size: int = 0

    @classmethod
    def from_checkpoint(cls, checkpoint: ScanCheckpoint, expiring_days: int, batch_size: int = 0) -> "ScanProgress":
        return cls(
            cursor=checkpoint.cursor,
            total=checkpoint.total,
            checked=checkpoint.checked_count,
            available=len(checkpoint.available),
            registered=checkpoint.registered_count,
            unknown=len(checkpoint.unknown),
            expiring=len(checkpoint.expiring(expiring_days)),
            batch_size=batch_size,
        )


class ScanOrchestrator:
    """Runs scans and rechecks against a ScanStateStore.

    Args:
        store: Where checkpoints live.
        probe: Coroutine function returning a ScanResult for a domain.
        scheduler: Optional scheduler; by default one is built from each
            scan's rate config.
        on_progress: Optional callback invoked after every committed batch.
    """

    def __init__(
        self,
        store: ScanStateStore,
        probe: ProbeFn,
        scheduler: RateLimitedScheduler | None = None,
        on_progress: Callable[[ScanProgress], None] | None = None,
    ):
        self.store = store
        self.probe = probe
        self.scheduler = scheduler
        self.on_progress = on_progress

    def _scheduler_for(self, rate_config: RateLimitConfig) -> RateLimitedScheduler:
        return self.scheduler or RateLimitedScheduler(rate_config)

    def _open_checkpoint(
        self, path: Path, params: ScanParams, digest: str | None, *, resume: bool, fresh: bool
    ) -> ScanCheckpoint:
        if path.exists():
            if resume:
                checkpoint = self.store.load_matching(
                    path, params.mode, params.tlds, params.rate_config, digest
                )
                logger.info("Resuming %s at position %d", path, checkpoint.cursor)
                return checkpoint
            if not fresh:
                raise PersistenceError(
                    f"{path} already exists; pass --resume to continue it or --fresh to start over"
                )
            logger.info("Discarding existing checkpoint %s", path)
        elif resume:
            logger.info("No checkpoint at %s, starting a new scan", path)
        return ScanCheckpoint(
            mode=params.mode, tlds=list(params.tlds), rate_config=params.rate_config, wordlist_digest=digest
        )

    @staticmethod
    def _valid_candidates(
        source: CandidateSource, cursor: int, alphanumeric: bool
    ) -> Iterator[PositionedCandidate]:
        for position, candidate in source.iter_from(cursor):
            try:
                validate(candidate.label, candidate.tld, alphanumeric=alphanumeric)
            except ValidationError as exc:
                logger.debug("Skipping %s", exc)
                continue
            yield position, candidate

    def _commit(self, checkpoint: ScanCheckpoint, path: Path, batch: Batch, params: ScanParams) -> None:
        for _, result in batch:
            checkpoint.record(
                result, expiring_days=params.expiring_days, keep_registered=params.keep_registered
            )
        checkpoint.cursor = batch.items[-1][0] + 1
        self.store.save(checkpoint, path)
        if self.on_progress is not None:
            self.on_progress(ScanProgress.from_checkpoint(checkpoint, params.expiring_days, len(batch.items)))

    async def scan(
        self,
        params: ScanParams,
        *,
        resume: bool = False,
        fresh: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> ScanCheckpoint:
        """Scan every candidate of `params.mode` x `params.tlds`, checkpointing each batch.

        Returns the checkpoint as last saved. When `cancel` is set the
        in-flight batch completes and is saved before returning.
        """
        source = CandidateSource(params.mode, params.tlds, params.words)
        digest = source.wordlist_digest
        path = Path(params.state_path or self.store.path_for(params.mode, params.tlds, digest))

        with self.store.lock(path):
            checkpoint = self._open_checkpoint(path, params, digest, resume=resume, fresh=fresh)
            checkpoint.total = source.total
            if checkpoint.completed:
                logger.info("Scan in %s is already complete", path)
                return checkpoint

            logger.info(
                "Scanning %s across %d TLD(s): %d positions left",
                params.mode.describe(), len(params.tlds), checkpoint.total - checkpoint.cursor,
            )
            scheduler = self._scheduler_for(params.rate_config)
            items = self._valid_candidates(source, checkpoint.cursor, params.mode.alphanumeric)

            async def _probe(item: PositionedCandidate) -> ScanResult:
                return await self.probe(item[1].domain)

            async for batch in scheduler.run(items, _probe, cancel):
                self._commit(checkpoint, path, batch, params)
                logger.info(
                    "Batch done: cursor %d/%d, %d available so far",
                    checkpoint.cursor, checkpoint.total, len(checkpoint.available),
                )

            if cancel is not None and cancel.is_set():
                logger.info("Scan interrupted at position %d; resume with --resume", checkpoint.cursor)
            else:
                checkpoint.cursor = checkpoint.total
                checkpoint.completed = True
                logger.info("Scan complete: %d checked", checkpoint.checked_count)
            self.store.save(checkpoint, path)
            return checkpoint

    async def recheck(
        self,
        path: Path,
        threshold_days: int = DEFAULT_EXPIRING_DAYS,
        rate_config: RateLimitConfig | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> RecheckReport:
        scheduler = self._scheduler_for(rate_config or RateLimitConfig())
        return await self.store.recheck(Path(path), self.probe, scheduler, threshold_days, cancel=cancel)
