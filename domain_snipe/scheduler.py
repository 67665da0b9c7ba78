"""Batch-at-a-time rate shaping for availability probes."""

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from domain_snipe.errors import ConfigError
from domain_snipe.types import RateConfigRecord
from domain_snipe.verdict import ScanResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONCURRENCY = 20
DEFAULT_BATCH_DELAY_MS = 500
DEFAULT_REQUEUE_LIMIT = 2
DEFAULT_MAX_BACKOFF_MS = 60_000
MIN_BACKOFF_MS = 250


@dataclass(frozen=True)
class RateLimitConfig:
    concurrency: int = DEFAULT_CONCURRENCY
    batch_delay_ms: int = DEFAULT_BATCH_DELAY_MS
    requeue_limit: int = DEFAULT_REQUEUE_LIMIT
    max_backoff_ms: int = DEFAULT_MAX_BACKOFF_MS

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ConfigError(f"Concurrency must be at least 1, got {self.concurrency}")
        if self.batch_delay_ms < 0:
            raise ConfigError(f"Batch delay cannot be negative, got {self.batch_delay_ms}")
        if self.requeue_limit < 0:
            raise ConfigError("Requeue limit cannot be negative")

    def to_record(self) -> RateConfigRecord:
        return {"concurrency": self.concurrency, "batchDelayMs": self.batch_delay_ms}

    @classmethod
    def from_record(cls, record: RateConfigRecord) -> "RateLimitConfig":
        return cls(concurrency=int(record["concurrency"]), batch_delay_ms=int(record["batchDelayMs"]))


@dataclass
class Batch(Generic[T]):
    """One fully-resolved batch: `results[i]` is the outcome for `items[i]`."""

    items: list[T]
    results: list[ScanResult] = field(default_factory=list)
    requeued: int = 0

    def __iter__(self) -> Iterator[tuple[T, ScanResult]]:
        return iter(zip(self.items, self.results))

    @property
    def rate_limited(self) -> int:
        return sum(1 for r in self.results if r.verdict.rate_limited)


class RateLimitedScheduler:
    """Drives a probe over items in bounded, sequential batches.

    At most `concurrency` probes are in flight; a batch is yielded only once
    every member has resolved, and the next batch starts after
    `batch_delay_ms` plus any throttling backoff. Cancellation is checked
    between batches, so the in-flight batch always drains.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or RateLimitConfig()
        self._sleep = sleep
        self.backoff_ms = 0

    def _grow_backoff(self) -> None:
        floor = max(self.config.batch_delay_ms, MIN_BACKOFF_MS)
        self.backoff_ms = min(max(self.backoff_ms * 2, floor), self.config.max_backoff_ms)

    async def _probe_batch(
        self, items: list[T], probe_fn: Callable[[T], Awaitable[ScanResult]]
    ) -> Batch[T]:
        results = list(await asyncio.gather(*(probe_fn(item) for item in items)))
        batch = Batch(items, results)
        if not batch.rate_limited:
            self.backoff_ms = 0
            return batch

        for round_ in range(self.config.requeue_limit):
            throttled = [i for i, r in enumerate(batch.results) if r.verdict.rate_limited]
            if not throttled:
                break
            self._grow_backoff()
            logger.warning(
                "%d probe(s) throttled, requeueing after %d ms (round %d)",
                len(throttled), self.backoff_ms, round_ + 1,
            )
            await self._sleep(self.backoff_ms / 1000)
            retried = await asyncio.gather(*(probe_fn(items[i]) for i in throttled))
            for i, result in zip(throttled, retried):
                batch.results[i] = result
            batch.requeued += len(throttled)

        if not batch.rate_limited and batch.requeued == 0:
            self.backoff_ms = 0
        elif self.backoff_ms == 0:
            self._grow_backoff()
        return batch

    async def run(
        self,
        items: Iterable[T],
        probe_fn: Callable[[T], Awaitable[ScanResult]],
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[Batch[T]]:
        """Yield one Batch per group of at most `concurrency` items, in order."""
        iterator = iter(items)
        chunk = list(itertools.islice(iterator, self.config.concurrency))
        while chunk:
            yield await self._probe_batch(chunk, probe_fn)

            if cancel is not None and cancel.is_set():
                break
            chunk = list(itertools.islice(iterator, self.config.concurrency))
            if not chunk:
                break
            delay_ms = self.config.batch_delay_ms + self.backoff_ms
            if delay_ms:
                await self._sleep(delay_ms / 1000)
            if cancel is not None and cancel.is_set():
                break
