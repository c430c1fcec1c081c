from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from sawitsync.domain.model import (
    ClassifiedRecord,
    DiffStatus,
    ImportState,
    RecordType,
    WriteAction,
    WrittenRecord,
)
from sawitsync.domain.reconciliation import (
    CancellationToken,
    ChunkedApplyEngine,
    ImportProgress,
    ImportRun,
    sync_writer,
    with_retry,
    with_timeout,
)
from tests.helpers.reconciliation import FakeRecordStore, bound, transport_candidate

if TYPE_CHECKING:
    from sawitsync.domain.model import NaturalKey


def _plan(count: int) -> list[ClassifiedRecord]:
    return [
        ClassifiedRecord(
            candidate=bound(
                transport_candidate(row_number=index + 2, block_no=f"A{index:02d}"),
                company_id="c1",
                estate_id="e1",
            ),
            status=DiffStatus.NEW,
        )
        for index in range(1, count + 1)
    ]


def test_one_failing_write_does_not_stop_the_others() -> None:
    plan = _plan(5)
    store = FakeRecordStore(failing_keys=[plan[2].natural_key])

    run = ChunkedApplyEngine(chunk_size=2, concurrency=2).apply(plan, store.write)

    assert run.state is ImportState.DONE
    assert run.written == 4
    assert run.failed == 1
    failure = run.failures[0]
    assert failure.natural_key == plan[2].natural_key
    assert failure.row_number == 5
    assert failure.message == "backend unavailable"
    assert failure.stage is ImportState.APPLYING


def test_failure_inside_a_full_chunk_leaves_later_chunks_running() -> None:
    plan = _plan(6)
    store = FakeRecordStore(failing_keys=[plan[2].natural_key])
    run = ImportRun(record_type=RecordType.TRANSPORT)
    after_each_chunk: list[tuple[int, int]] = []

    ChunkedApplyEngine(chunk_size=5, concurrency=5).apply(
        plan,
        store.write,
        run=run,
        after_chunk=lambda: after_each_chunk.append((run.written, run.failed)),
    )

    assert after_each_chunk == [(4, 1), (5, 1)]
    assert [failure.natural_key for failure in run.failures] == [plan[2].natural_key]
    assert plan[5].natural_key in {written.natural_key for written in run.written_records}
    assert run.state is ImportState.DONE


def test_chunks_run_in_order_and_report_progress() -> None:
    plan = _plan(5)
    store = FakeRecordStore()
    progress: list[ImportProgress] = []

    run = ChunkedApplyEngine(chunk_size=2, concurrency=1).apply(
        plan,
        store.write,
        on_progress=progress.append,
    )

    assert [record.natural_key for record in store.writes] == [r.natural_key for r in plan]
    assert [(item.processed, item.total) for item in progress] == [(2, 5), (4, 5), (5, 5)]
    assert progress[-1].percentage == 100
    assert [written.natural_key for written in run.written_records] == [
        record.natural_key for record in plan
    ]


def test_concurrency_is_bounded_within_a_chunk() -> None:
    in_flight = 0
    peak = 0

    async def writer(record: ClassifiedRecord) -> WrittenRecord:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return WrittenRecord(
            natural_key=record.natural_key,
            record_id="x",
            action=WriteAction.INSERT,
        )

    run = ChunkedApplyEngine(chunk_size=10, concurrency=3).apply(_plan(10), writer)

    assert run.written == 10
    assert peak == 3


def test_cancellation_stops_between_chunks() -> None:
    plan = _plan(6)
    store = FakeRecordStore()
    token = CancellationToken()

    run = ChunkedApplyEngine(chunk_size=2, concurrency=2).apply(
        plan,
        store.write,
        cancellation=token,
        after_chunk=token.cancel,
    )

    assert run.state is ImportState.DONE
    assert run.cancelled is True
    assert run.written == 2
    assert run.skipped == 4
    assert len(store.writes) == 2


def test_duplicates_are_counted_not_written() -> None:
    plan = _plan(2)
    plan[1].status = DiffStatus.DUPLICATE
    store = FakeRecordStore()

    run = ChunkedApplyEngine().apply(plan, store.write)

    assert run.duplicate == 1
    assert run.written == 1
    assert len(store.writes) == 1


def test_engine_rejects_non_positive_settings() -> None:
    with pytest.raises(ValueError, match="chunk_size"):
        ChunkedApplyEngine(chunk_size=0)
    with pytest.raises(ValueError, match="concurrency"):
        ChunkedApplyEngine(concurrency=0)


def test_with_retry_recovers_from_transient_failures() -> None:
    (record,) = _plan(1)
    attempts: list[NaturalKey] = []

    async def flaky(item: ClassifiedRecord) -> WrittenRecord:
        attempts.append(item.natural_key)
        if len(attempts) < 3:
            raise ConnectionError("reset by peer")
        return WrittenRecord(
            natural_key=item.natural_key,
            record_id="r1",
            action=WriteAction.INSERT,
        )

    run = ChunkedApplyEngine().apply(
        [record],
        with_retry(flaky, attempts=3, delay_seconds=0),
    )

    assert run.written == 1
    assert len(attempts) == 3


def test_with_retry_gives_up_after_last_attempt() -> None:
    (record,) = _plan(1)
    store = FakeRecordStore(failing_keys=[record.natural_key])

    run = ChunkedApplyEngine().apply(
        [record],
        with_retry(store.write, attempts=2, delay_seconds=0),
    )

    assert run.failed == 1
    assert len(store.writes) == 2


def test_with_retry_rejects_zero_attempts() -> None:
    with pytest.raises(ValueError, match="attempts"):
        with_retry(FakeRecordStore().write, attempts=0)


def test_with_timeout_turns_slow_writes_into_failures() -> None:
    (record,) = _plan(1)

    async def slow(item: ClassifiedRecord) -> WrittenRecord:
        await asyncio.sleep(1)
        return WrittenRecord(
            natural_key=item.natural_key,
            record_id="r1",
            action=WriteAction.INSERT,
        )

    run = ChunkedApplyEngine().apply([record], with_timeout(slow, 0.01))

    assert run.failed == 1
    assert run.failures[0].message == "TimeoutError"


def test_sync_writer_adapts_blocking_functions() -> None:
    plan = _plan(2)
    calls: list[NaturalKey] = []

    def write(record: ClassifiedRecord) -> WrittenRecord:
        calls.append(record.natural_key)
        return WrittenRecord(
            natural_key=record.natural_key,
            record_id=f"r{len(calls)}",
            action=WriteAction.INSERT,
        )

    inline = ChunkedApplyEngine(concurrency=1).apply(plan, sync_writer(write))
    threaded = ChunkedApplyEngine(concurrency=1).apply(plan, sync_writer(write, offload=True))

    assert inline.written == 2
    assert threaded.written == 2
    assert calls == [record.natural_key for record in plan] * 2
