"""Batch inserter — resilient, rate-aware writes into the vector store.

The store enforces per-call payload limits and soft rate limits, and
resets connections when too many writes arrive at once.  Records are
therefore written in small fixed-size batches through a bounded worker
pool, with a short delay between dispatches and exponential backoff on
transient failures.

The outcome of every batch is recorded in an :class:`InsertionReport`.
:meth:`BatchInserter.insert` returns the report when every batch landed,
and raises :class:`~ragette.exceptions.PartialIngestionError` or
:class:`~ragette.exceptions.StoreWriteError` otherwise.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from ragette.exceptions import PartialIngestionError, StoreWriteError, TransientStoreError
from ragette.retrieval.models import ChunkRecord

if TYPE_CHECKING:
    from ragette.config import Settings
    from ragette.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Batch:
    """A contiguous slice of records written in a single store call."""

    index: int
    records: tuple[ChunkRecord, ...]

    @property
    def size(self) -> int:
        return len(self.records)


@dataclass
class BatchOutcome:
    """What happened to one batch."""

    index: int
    size: int
    attempts: int = 0
    succeeded: bool = False
    error: str | None = None


@dataclass
class InsertionReport:
    """Per-batch results of one :meth:`BatchInserter.insert` call."""

    outcomes: list[BatchOutcome] = field(default_factory=list)

    @property
    def failed_indices(self) -> list[int]:
        return [o.index for o in self.outcomes if not o.succeeded]

    @property
    def records_inserted(self) -> int:
        return sum(o.size for o in self.outcomes if o.succeeded)

    @property
    def records_failed(self) -> int:
        return sum(o.size for o in self.outcomes if not o.succeeded)

    @property
    def all_succeeded(self) -> bool:
        return all(o.succeeded for o in self.outcomes)

    @property
    def none_succeeded(self) -> bool:
        return bool(self.outcomes) and not any(o.succeeded for o in self.outcomes)


def partition(records: Sequence[ChunkRecord], batch_size: int) -> list[Batch]:
    """Split *records* into consecutive batches of at most *batch_size*."""
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [
        Batch(index=i, records=tuple(records[start : start + batch_size]))
        for i, start in enumerate(range(0, len(records), batch_size))
    ]


class BatchInserter:
    """Drives batched upserts with bounded concurrency and retries.

    Parameters
    ----------
    store:
        Target vector store.
    batch_size:
        Records per upsert call.  Kept well below the store's documented
        maximum because larger payloads get rejected under nominal limits.
    max_concurrency:
        Upsert calls allowed in flight at once.
    max_attempts:
        Attempts per batch, first try included.
    backoff_initial / backoff_max:
        Exponential backoff bounds in seconds.
    inter_batch_delay:
        Pause before each dispatch, in seconds.
    max_retry_seconds:
        Wall-clock ceiling on retrying a single batch.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        *,
        batch_size: int = 20,
        max_concurrency: int = 5,
        max_attempts: int = 5,
        backoff_initial: float = 0.5,
        backoff_max: float = 8.0,
        inter_batch_delay: float = 0.05,
        max_retry_seconds: float = 120.0,
    ) -> None:
        if batch_size < 1 or max_concurrency < 1 or max_attempts < 1:
            raise ValueError("batch_size, max_concurrency and max_attempts must be >= 1")
        self._store = store
        self.batch_size = batch_size
        self.max_concurrency = max_concurrency
        self.max_attempts = max_attempts
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.inter_batch_delay = inter_batch_delay
        self.max_retry_seconds = max_retry_seconds

    @classmethod
    def from_settings(cls, store: VectorStoreBase, settings: Settings) -> BatchInserter:
        return cls(
            store,
            batch_size=settings.insert_batch_size,
            max_concurrency=settings.insert_max_concurrency,
            max_attempts=settings.insert_max_attempts,
            backoff_initial=settings.insert_backoff_initial,
            backoff_max=settings.insert_backoff_max,
            inter_batch_delay=settings.insert_inter_batch_delay,
            max_retry_seconds=settings.insert_max_retry_seconds,
        )

    def partition(self, records: Sequence[ChunkRecord]) -> list[Batch]:
        return partition(records, self.batch_size)

    async def insert(self, records: Sequence[ChunkRecord]) -> InsertionReport:
        """Write *records* and return once every batch has settled.

        Raises
        ------
        PartialIngestionError
            Some batches were written, others failed permanently.
        StoreWriteError
            No batch was written.
        """
        batches = self.partition(records)
        report = InsertionReport(outcomes=[BatchOutcome(index=b.index, size=b.size) for b in batches])
        if not batches:
            return report

        logger.info(
            "Inserting %d record(s) in %d batch(es) of <= %d, concurrency=%d",
            len(records),
            len(batches),
            self.batch_size,
            self.max_concurrency,
        )
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def worker(batch: Batch) -> None:
            async with semaphore:
                if self.inter_batch_delay:
                    await asyncio.sleep(self.inter_batch_delay)
                await self._insert_batch(batch, report.outcomes[batch.index])

        await asyncio.gather(*(worker(b) for b in batches))

        if report.all_succeeded:
            logger.info("Inserted %d record(s) in %d batch(es)", report.records_inserted, len(batches))
            return report

        logger.error(
            "Batch insertion incomplete: %d record(s) stored, %d lost, failed batches %s",
            report.records_inserted,
            report.records_failed,
            report.failed_indices,
        )
        if report.none_succeeded:
            raise StoreWriteError(report)
        raise PartialIngestionError(report)

    async def _insert_batch(self, batch: Batch, outcome: BatchOutcome) -> None:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientStoreError),
            stop=stop_after_attempt(self.max_attempts) | stop_after_delay(self.max_retry_seconds),
            wait=wait_exponential(multiplier=self.backoff_initial, max=self.backoff_max),
            before_sleep=lambda state: logger.warning(
                "Batch %d attempt %d/%d failed transiently, backing off",
                batch.index,
                state.attempt_number,
                self.max_attempts,
            ),
        )

        async def call() -> None:
            outcome.attempts += 1
            await self._store.upsert(batch.records)

        try:
            await retrying(call)
        except RetryError as exc:
            outcome.error = repr(exc.last_attempt.exception())
            logger.error("Batch %d gave up after %d attempt(s): %s", batch.index, outcome.attempts, outcome.error)
            return
        except Exception as exc:
            # Non-transient, or not a StoreError at all: recorded, never retried.
            outcome.error = repr(exc)
            logger.error("Batch %d failed permanently: %s", batch.index, outcome.error)
            return
        outcome.succeeded = True
        logger.debug("Batch %d stored (%d record(s), %d attempt(s))", batch.index, batch.size, outcome.attempts)
