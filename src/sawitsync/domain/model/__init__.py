"""Domain model for import reconciliation."""

from __future__ import annotations

from sawitsync.domain.model.enums import (
    DiffStatus,
    EntityType,
    FieldKind,
    ImportState,
    RecordType,
    ResolutionSource,
    UnresolvedPolicy,
    WriteAction,
)
from sawitsync.domain.model.master import Alias, AliasChange, MasterEntity, normalize_alias_name
from sawitsync.domain.model.records import (
    HARVEST_SCHEMA,
    SCHEMAS,
    TRANSPORT_SCHEMA,
    CandidateRecord,
    ClassifiedRecord,
    ExistingRecord,
    FieldSpec,
    FieldValue,
    InvalidRow,
    NaturalKey,
    ParsedRows,
    RecordSchema,
    ReferenceSpec,
    WrittenRecord,
    key_component,
)

__all__ = [
    "HARVEST_SCHEMA",
    "SCHEMAS",
    "TRANSPORT_SCHEMA",
    "Alias",
    "AliasChange",
    "CandidateRecord",
    "ClassifiedRecord",
    "DiffStatus",
    "EntityType",
    "ExistingRecord",
    "FieldKind",
    "FieldSpec",
    "FieldValue",
    "InvalidRow",
    "ImportState",
    "MasterEntity",
    "NaturalKey",
    "ParsedRows",
    "RecordSchema",
    "RecordType",
    "ReferenceSpec",
    "ResolutionSource",
    "UnresolvedPolicy",
    "WriteAction",
    "WrittenRecord",
    "key_component",
    "normalize_alias_name",
]
