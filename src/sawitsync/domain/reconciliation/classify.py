"""Batch diff classification of candidate records against persisted state.

Responsibilities of this stage:
- classify every candidate as NEW, UPDATED or DUPLICATE by natural key
- shadow earlier candidates of the same run so repeated keys never produce
  two writes
- produce a write plan with at most one record per natural key

Out of scope for this stage:
- fetching existing records (callers pass the result of one bulk lookup)
- writing anything
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING

from sawitsync.domain.model import (
    ClassifiedRecord,
    DiffStatus,
    FieldKind,
    key_component,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sawitsync.domain.model import (
        CandidateRecord,
        ExistingRecord,
        FieldSpec,
        FieldValue,
        NaturalKey,
        RecordSchema,
    )

type Comparable = str | Decimal | None


@dataclass(slots=True, kw_only=True)
class Classification:
    records: list[ClassifiedRecord] = field(default_factory=list[ClassifiedRecord])
    duplicate: list[ClassifiedRecord] = field(default_factory=list[ClassifiedRecord])
    superseded: list[ClassifiedRecord] = field(default_factory=list[ClassifiedRecord])
    plan: dict[NaturalKey, ClassifiedRecord] = field(
        default_factory=dict["NaturalKey", ClassifiedRecord]
    )

    @property
    def new(self) -> list[ClassifiedRecord]:
        return [record for record in self.plan.values() if record.status is DiffStatus.NEW]

    @property
    def updated(self) -> list[ClassifiedRecord]:
        return [record for record in self.plan.values() if record.status is DiffStatus.UPDATED]

    def write_plan(self) -> list[ClassifiedRecord]:
        """One record per natural key, in first-occurrence order, carrying the latest fields."""

        return list(self.plan.values())


def classify(
    candidates: Iterable[CandidateRecord],
    existing_by_key: Mapping[NaturalKey, ExistingRecord],
    *,
    schema: RecordSchema,
) -> Classification:
    """Classify candidates against ``existing_by_key``.

    A candidate whose key was already seen in this batch is compared against
    the shadow state (the earlier candidate, as superseded so far) rather than
    the stored record. Equal means DUPLICATE; different means UPDATED with
    ``supersedes`` set, and the planned write for that key takes its fields.
    """

    result = Classification()
    shadow: dict[NaturalKey, Mapping[str, FieldValue]] = {}

    for candidate in candidates:
        key = candidate.natural_key
        existing = existing_by_key.get(key)

        if key not in shadow:
            record = _classify_first(candidate, existing, schema)
            shadow[key] = candidate.fields
            result.records.append(record)
            if record.status is DiffStatus.DUPLICATE:
                result.duplicate.append(record)
            else:
                result.plan[key] = record
            continue

        changed = changed_fields(schema, shadow[key], candidate.fields)
        if not changed:
            record = ClassifiedRecord(
                candidate=candidate,
                status=DiffStatus.DUPLICATE,
                existing_id=existing.id if existing else None,
            )
            result.records.append(record)
            result.duplicate.append(record)
            continue

        shadow[key] = candidate.fields
        record = ClassifiedRecord(
            candidate=candidate,
            status=DiffStatus.UPDATED,
            existing_id=existing.id if existing else None,
            changed_fields=changed,
            supersedes=True,
        )
        result.records.append(record)

        planned = result.plan.get(key)
        if planned is None:
            # the first occurrence matched storage, so this one is a plain update
            result.plan[key] = ClassifiedRecord(
                candidate=candidate,
                status=DiffStatus.UPDATED,
                existing_id=existing.id if existing else None,
                changed_fields=_changed_against(schema, existing, candidate),
            )
        else:
            result.superseded.append(record)
            result.plan[key] = ClassifiedRecord(
                candidate=candidate,
                status=planned.status,
                existing_id=planned.existing_id,
                changed_fields=_changed_against(schema, existing, candidate),
                supersedes=True,
            )

    return result


def changed_fields(
    schema: RecordSchema,
    before: Mapping[str, FieldValue],
    after: Mapping[str, FieldValue],
) -> tuple[str, ...]:
    return tuple(
        spec.name
        for spec in schema.comparable_fields
        if comparable_value(spec, before.get(spec.name))
        != comparable_value(spec, after.get(spec.name))
    )


def comparable_value(spec: FieldSpec, value: object) -> Comparable:
    """Normalise a field value so equal business values compare equal.

    Blank text and missing values are the same. Numbers compare after
    rounding half-up to the field's precision.
    """

    if value is None:
        return None
    if spec.kind is FieldKind.NUMBER:
        return _quantize(value, spec.precision)
    if spec.kind is FieldKind.DATE and isinstance(value, date | datetime):
        return key_component(value)
    text = str(value).strip()
    return text or None


def _quantize(value: object, precision: int) -> Decimal | None:
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    if not isinstance(value, int | str | Decimal):
        return None
    try:
        return Decimal(value).quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None


def _classify_first(
    candidate: CandidateRecord,
    existing: ExistingRecord | None,
    schema: RecordSchema,
) -> ClassifiedRecord:
    if existing is None:
        return ClassifiedRecord(candidate=candidate, status=DiffStatus.NEW)
    changed = changed_fields(schema, existing.fields, candidate.fields)
    if not changed:
        return ClassifiedRecord(
            candidate=candidate,
            status=DiffStatus.DUPLICATE,
            existing_id=existing.id,
        )
    return ClassifiedRecord(
        candidate=candidate,
        status=DiffStatus.UPDATED,
        existing_id=existing.id,
        changed_fields=changed,
    )


def _changed_against(
    schema: RecordSchema,
    existing: ExistingRecord | None,
    candidate: CandidateRecord,
) -> tuple[str, ...]:
    if existing is None:
        return ()
    return changed_fields(schema, existing.fields, candidate.fields)
