"""Record schemas and the value types that flow through diffing and apply."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sawitsync.domain.model.enums import (
    DiffStatus,
    EntityType,
    FieldKind,
    RecordType,
    WriteAction,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

type FieldValue = str | Decimal | date | None
type NaturalKey = tuple[str, ...]


@dataclass(slots=True, frozen=True)
class FieldSpec:
    name: str
    kind: FieldKind = FieldKind.TEXT
    precision: int = 0


@dataclass(slots=True, frozen=True)
class ReferenceSpec:
    """Links a spreadsheet column naming a master entity to the id field it fills."""

    entity_type: EntityType
    id_field: str
    required: bool = True


@dataclass(slots=True, frozen=True, kw_only=True)
class RecordSchema:
    record_type: RecordType
    key_fields: tuple[FieldSpec, ...]
    comparable_fields: tuple[FieldSpec, ...]
    references: tuple[ReferenceSpec, ...]

    @property
    def key_names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.key_fields)

    @property
    def entity_types(self) -> tuple[EntityType, ...]:
        return tuple(ref.entity_type for ref in self.references)

    def reference(self, entity_type: EntityType) -> ReferenceSpec:
        for ref in self.references:
            if ref.entity_type is entity_type:
                return ref
        raise KeyError(f"{self.record_type} does not reference {entity_type}")

    def natural_key(self, fields: Mapping[str, FieldValue]) -> NaturalKey:
        return tuple(key_component(fields.get(spec.name)) for spec in self.key_fields)


def key_component(value: object) -> str:
    """Render a key field so equal business values produce equal key strings."""

    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value).strip()


@dataclass(slots=True, kw_only=True)
class CandidateRecord:
    """One parsed spreadsheet row, before and after reference resolution."""

    record_type: RecordType
    row_number: int
    fields: dict[str, FieldValue]
    references: dict[EntityType, str] = field(default_factory=dict[EntityType, str])
    natural_key: NaturalKey = ()


@dataclass(slots=True, frozen=True, kw_only=True)
class ExistingRecord:
    id: str
    natural_key: NaturalKey
    fields: Mapping[str, FieldValue]


@dataclass(slots=True, kw_only=True)
class ClassifiedRecord:
    candidate: CandidateRecord
    status: DiffStatus
    existing_id: str | None = None
    changed_fields: tuple[str, ...] = ()
    supersedes: bool = False

    @property
    def natural_key(self) -> NaturalKey:
        return self.candidate.natural_key

    @property
    def fields(self) -> dict[str, FieldValue]:
        return self.candidate.fields


@dataclass(slots=True, frozen=True, kw_only=True)
class WrittenRecord:
    natural_key: NaturalKey
    record_id: str
    action: WriteAction


TRANSPORT_SCHEMA = RecordSchema(
    record_type=RecordType.TRANSPORT,
    key_fields=(
        FieldSpec("date_panen", FieldKind.DATE),
        FieldSpec("date_angkut", FieldKind.DATE),
        FieldSpec("estate_id"),
        FieldSpec("division_id"),
        FieldSpec("block_no"),
    ),
    comparable_fields=(
        FieldSpec("company_id"),
        FieldSpec("no_spb"),
        FieldSpec("jumlah", FieldKind.NUMBER),
        FieldSpec("weight_kg", FieldKind.NUMBER, precision=2),
        FieldSpec("notes"),
    ),
    references=(
        ReferenceSpec(EntityType.COMPANY, "company_id"),
        ReferenceSpec(EntityType.ESTATE, "estate_id", required=False),
    ),
)

HARVEST_SCHEMA = RecordSchema(
    record_type=RecordType.HARVEST,
    key_fields=(
        FieldSpec("date_panen", FieldKind.DATE),
        FieldSpec("estate_id"),
        FieldSpec("division_id"),
        FieldSpec("block_no"),
    ),
    comparable_fields=(
        FieldSpec("no_tph"),
        FieldSpec("janjang_tbs", FieldKind.NUMBER),
        FieldSpec("janjang_kosong", FieldKind.NUMBER),
        FieldSpec("weight_kg", FieldKind.NUMBER, precision=2),
        FieldSpec("employee_name"),
        FieldSpec("mandor_name"),
        FieldSpec("notes"),
    ),
    references=(ReferenceSpec(EntityType.ESTATE, "estate_id"),),
)

SCHEMAS: dict[RecordType, RecordSchema] = {
    RecordType.TRANSPORT: TRANSPORT_SCHEMA,
    RecordType.HARVEST: HARVEST_SCHEMA,
}


@dataclass(slots=True, frozen=True, kw_only=True)
class InvalidRow:
    row_number: int
    reason: str


@dataclass(slots=True, kw_only=True)
class ParsedRows:
    """Spreadsheet rows split into usable candidates and rejected rows."""

    record_type: RecordType
    candidates: list[CandidateRecord] = field(default_factory=list[CandidateRecord])
    invalid_rows: list[InvalidRow] = field(default_factory=list[InvalidRow])
    missing_columns: tuple[str, ...] = ()

    @property
    def total_rows(self) -> int:
        return len(self.candidates) + len(self.invalid_rows)
