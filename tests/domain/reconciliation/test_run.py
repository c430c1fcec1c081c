from __future__ import annotations

import pytest

from sawitsync.domain.errors import InvalidTransitionError
from sawitsync.domain.model import ImportState, RecordType
from sawitsync.domain.reconciliation import CancellationToken, ImportProgress, ImportRun


def test_happy_path_transitions() -> None:
    run = ImportRun(record_type=RecordType.TRANSPORT)

    for state in (
        ImportState.VALIDATING,
        ImportState.CREATING_MASTERS,
        ImportState.APPLYING,
        ImportState.DONE,
    ):
        run.transition(state)

    assert run.finished is True


@pytest.mark.parametrize(
    ("path", "target"),
    [
        ((), ImportState.APPLYING),
        ((ImportState.VALIDATING, ImportState.APPLYING), ImportState.FAILED),
        ((ImportState.VALIDATING, ImportState.APPLYING, ImportState.DONE), ImportState.VALIDATING),
        ((ImportState.VALIDATING, ImportState.FAILED), ImportState.DONE),
    ],
)
def test_illegal_transitions_raise(path: tuple[ImportState, ...], target: ImportState) -> None:
    run = ImportRun()
    for state in path:
        run.transition(state)

    with pytest.raises(InvalidTransitionError) as excinfo:
        run.transition(target)

    assert excinfo.value.target is target
    assert run.state is (path[-1] if path else ImportState.IDLE)


def test_fail_records_reason_and_summary() -> None:
    run = ImportRun(record_type=RecordType.HARVEST)
    run.transition(ImportState.VALIDATING)

    run.fail("the sheet contains no data rows")

    assert run.state is ImportState.FAILED
    assert run.summary() == "harvest failed: the sheet contains no data rows"


def test_summary_lists_counters_and_cancellation() -> None:
    run = ImportRun(record_type=RecordType.TRANSPORT)
    run.transition(ImportState.VALIDATING)
    run.transition(ImportState.APPLYING)
    run.record_invalid(7, "bad date")
    run.record_failure(("2024-03-01",), "boom", row_number=9)
    run.cancelled = True
    run.skipped = 3
    run.transition(ImportState.DONE)

    summary = run.summary()

    assert summary.startswith("transport done: ")
    assert "invalid=1" in summary
    assert "failed=1" in summary
    assert "cancelled (skipped=3)" in summary
    assert run.failures[0].stage is ImportState.APPLYING
    assert run.invalid_rows[0].row_number == 7


def test_progress_percentage_handles_empty_totals() -> None:
    assert ImportProgress(0, 0, ImportState.APPLYING).percentage == 0
    assert ImportProgress(1, 3, ImportState.APPLYING).percentage == 33


def test_cancellation_token_is_sticky() -> None:
    token = CancellationToken()
    assert token.cancelled is False

    token.cancel()
    token.cancel()

    assert token.cancelled is True
