"""Import run aggregate: state machine, counters and report."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from sawitsync.domain.errors import InvalidTransitionError
from sawitsync.domain.model import ImportState, InvalidRow

if TYPE_CHECKING:
    from sawitsync.domain.model import MasterEntity, NaturalKey, RecordType, WrittenRecord

    from .classify import Classification
    from .resolve import SharedTargetWarning, UnresolvedName

_TRANSITIONS: Final[dict[ImportState, frozenset[ImportState]]] = {
    ImportState.IDLE: frozenset({ImportState.VALIDATING}),
    ImportState.VALIDATING: frozenset(
        {ImportState.CREATING_MASTERS, ImportState.APPLYING, ImportState.FAILED}
    ),
    ImportState.CREATING_MASTERS: frozenset({ImportState.APPLYING, ImportState.FAILED}),
    ImportState.APPLYING: frozenset({ImportState.DONE}),
    ImportState.DONE: frozenset(),
    ImportState.FAILED: frozenset(),
}


@dataclass(slots=True, frozen=True)
class ImportProgress:
    processed: int
    total: int
    stage: ImportState

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.processed * 100 / self.total)


type ProgressCallback = Callable[[ImportProgress], None]


@dataclass(slots=True, frozen=True, kw_only=True)
class RecordFailure:
    natural_key: NaturalKey
    message: str
    stage: ImportState
    row_number: int | None = None


class CancellationToken:
    """Cooperative cancellation flag, safe to set from another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(slots=True, kw_only=True)
class ImportRun:
    """Everything one import did, in memory only.

    A run always ends ``done`` (possibly with failures or cancelled) or
    ``failed`` with a human-readable ``reason``.
    """

    record_type: RecordType | None = None
    state: ImportState = ImportState.IDLE
    total_rows: int = 0

    new: int = 0
    updated: int = 0
    duplicate: int = 0
    superseded: int = 0
    written: int = 0
    failed: int = 0
    invalid: int = 0
    skipped: int = 0

    created_masters: list[MasterEntity] = field(default_factory=list["MasterEntity"])
    written_records: list[WrittenRecord] = field(default_factory=list["WrittenRecord"])
    failures: list[RecordFailure] = field(default_factory=list[RecordFailure])
    invalid_rows: list[InvalidRow] = field(default_factory=list[InvalidRow])
    unresolved: list[UnresolvedName] = field(default_factory=list["UnresolvedName"])
    warnings: list[SharedTargetWarning] = field(default_factory=list["SharedTargetWarning"])
    reason: str | None = None
    cancelled: bool = False

    def transition(self, target: ImportState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state, target)
        self.state = target

    def fail(self, reason: str) -> None:
        self.transition(ImportState.FAILED)
        self.reason = reason

    @property
    def finished(self) -> bool:
        return self.state in {ImportState.DONE, ImportState.FAILED}

    def record_classification(self, classification: Classification) -> None:
        self.new += len(classification.new)
        self.updated += len(classification.updated)
        self.duplicate += len(classification.duplicate)
        self.superseded += len(classification.superseded)

    def record_invalid(self, row_number: int, reason: str) -> None:
        self.invalid_rows.append(InvalidRow(row_number=row_number, reason=reason))
        self.invalid += 1

    def record_failure(
        self,
        natural_key: NaturalKey,
        message: str,
        *,
        row_number: int | None = None,
    ) -> None:
        self.failures.append(
            RecordFailure(
                natural_key=natural_key,
                message=message,
                stage=self.state,
                row_number=row_number,
            )
        )
        self.failed += 1

    def record_written(self, written: WrittenRecord) -> None:
        self.written_records.append(written)
        self.written += 1

    def summary(self) -> str:
        if self.state is ImportState.FAILED:
            return f"{self.record_type or 'import'} failed: {self.reason}"
        parts = [
            f"new={self.new}",
            f"updated={self.updated}",
            f"duplicate={self.duplicate}",
            f"superseded={self.superseded}",
            f"written={self.written}",
            f"failed={self.failed}",
            f"invalid={self.invalid}",
        ]
        if self.created_masters:
            parts.append(f"created_masters={len(self.created_masters)}")
        if self.cancelled:
            parts.append(f"cancelled (skipped={self.skipped})")
        return f"{self.record_type or 'import'} {self.state}: " + ", ".join(parts)
