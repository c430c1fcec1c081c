"""Chunked, bounded-concurrency application of a write plan.

Responsibilities of this stage:
- write records chunk by chunk, strictly in order, with at most
  ``concurrency`` writes in flight inside a chunk
- isolate failures per record so one bad row never aborts the run
- report progress after each chunk and honour cancellation between chunks

The engine never classifies; hand it ``Classification.write_plan()``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sawitsync.domain.errors import WriteFailure
from sawitsync.domain.model import DiffStatus, ImportState

from .run import ImportProgress, ImportRun

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from sawitsync.domain.model import ClassifiedRecord, WrittenRecord
    from sawitsync.domain.ports import RecordWriter

    from .run import CancellationToken, ProgressCallback

log = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50
DEFAULT_CONCURRENCY = 5


@dataclass(slots=True, frozen=True, kw_only=True)
class WriteOutcome:
    record: ClassifiedRecord
    written: WrittenRecord | None = None
    error: WriteFailure | None = None


class ChunkedApplyEngine:
    def __init__(
        self,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if concurrency < 1:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        self.chunk_size = chunk_size
        self.concurrency = concurrency

    def apply(
        self,
        records: Sequence[ClassifiedRecord],
        writer: RecordWriter,
        *,
        run: ImportRun | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
        after_chunk: Callable[[], None] | None = None,
    ) -> ImportRun:
        """Blocking wrapper around :meth:`apply_async`."""

        return asyncio.run(
            self.apply_async(
                records,
                writer,
                run=run,
                on_progress=on_progress,
                cancellation=cancellation,
                after_chunk=after_chunk,
            )
        )

    async def apply_async(
        self,
        records: Sequence[ClassifiedRecord],
        writer: RecordWriter,
        *,
        run: ImportRun | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
        after_chunk: Callable[[], None] | None = None,
    ) -> ImportRun:
        if run is None:
            run = ImportRun()
            run.transition(ImportState.VALIDATING)
        if run.state is not ImportState.APPLYING:
            run.transition(ImportState.APPLYING)

        pending: list[ClassifiedRecord] = []
        for record in records:
            if record.status is DiffStatus.DUPLICATE:
                run.duplicate += 1
            else:
                pending.append(record)

        total = len(pending)
        processed = 0
        log.info(
            "Applying %s record(s) in chunks of %s (concurrency %s)",
            total,
            self.chunk_size,
            self.concurrency,
        )

        for start in range(0, total, self.chunk_size):
            if cancellation is not None and cancellation.cancelled:
                run.cancelled = True
                run.skipped += total - processed
                log.warning("Import cancelled; %s record(s) not attempted", total - processed)
                break

            chunk = pending[start : start + self.chunk_size]
            for outcome in await self._apply_chunk(chunk, writer):
                if outcome.error is not None:
                    run.record_failure(
                        outcome.error.natural_key,
                        outcome.error.message,
                        row_number=outcome.record.candidate.row_number,
                    )
                elif outcome.written is not None:
                    run.record_written(outcome.written)

            processed += len(chunk)
            if after_chunk is not None:
                after_chunk()
            if on_progress is not None:
                on_progress(ImportProgress(processed, total, ImportState.APPLYING))

        run.transition(ImportState.DONE)
        log.info("Apply finished: written=%s, failed=%s", run.written, run.failed)
        return run

    async def _apply_chunk(
        self,
        chunk: Sequence[ClassifiedRecord],
        writer: RecordWriter,
    ) -> list[WriteOutcome]:
        queue: asyncio.Queue[tuple[int, ClassifiedRecord]] = asyncio.Queue()
        for index, record in enumerate(chunk):
            queue.put_nowait((index, record))

        workers = [
            asyncio.create_task(_drain(queue, writer))
            for _ in range(min(self.concurrency, len(chunk)))
        ]
        # each worker owns its outcome list; fold them only once the chunk settles
        batches = await asyncio.gather(*workers)
        ordered = sorted(
            (item for batch in batches for item in batch),
            key=lambda item: item[0],
        )
        return [outcome for _, outcome in ordered]


async def _drain(
    queue: asyncio.Queue[tuple[int, ClassifiedRecord]],
    writer: RecordWriter,
) -> list[tuple[int, WriteOutcome]]:
    outcomes: list[tuple[int, WriteOutcome]] = []
    while True:
        try:
            index, record = queue.get_nowait()
        except asyncio.QueueEmpty:
            return outcomes
        outcomes.append((index, await _write_one(record, writer)))


async def _write_one(record: ClassifiedRecord, writer: RecordWriter) -> WriteOutcome:
    try:
        written = await writer(record)
    except Exception as exc:  # noqa: BLE001
        message = str(exc) or type(exc).__name__
        log.warning("Write failed for %s: %s", "|".join(record.natural_key), message)
        return WriteOutcome(record=record, error=WriteFailure(record.natural_key, message))
    return WriteOutcome(record=record, written=written)


def with_retry(
    writer: RecordWriter,
    *,
    attempts: int = 3,
    delay_seconds: float = 1.0,
    retry_on: tuple[type[Exception], ...] = (Exception,),
) -> RecordWriter:
    """Retry a failing write up to ``attempts`` times with a linearly growing delay."""

    if attempts < 1:
        raise ValueError(f"attempts must be positive, got {attempts}")

    async def retrying(record: ClassifiedRecord) -> WrittenRecord:
        attempt = 1
        while True:
            try:
                return await writer(record)
            except retry_on as exc:
                if attempt >= attempts:
                    raise
                log.debug(
                    "Retrying %s after attempt %s/%s: %s",
                    "|".join(record.natural_key),
                    attempt,
                    attempts,
                    exc,
                )
                await asyncio.sleep(delay_seconds * attempt)
                attempt += 1

    return retrying


def with_timeout(writer: RecordWriter, seconds: float) -> RecordWriter:
    async def bounded(record: ClassifiedRecord) -> WrittenRecord:
        async with asyncio.timeout(seconds):
            return await writer(record)

    return bounded


def sync_writer(
    write: Callable[[ClassifiedRecord], WrittenRecord],
    *,
    offload: bool = False,
) -> RecordWriter:
    """Adapt a blocking write function.

    With ``offload`` the call runs in a worker thread; otherwise it runs on
    the event loop, which serialises writes but keeps thread-bound resources
    (SQLite connections, sessions) on one thread.
    """

    async def adapted(record: ClassifiedRecord) -> WrittenRecord:
        if offload:
            return await asyncio.to_thread(write, record)
        return write(record)

    return adapted
