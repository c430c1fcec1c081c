"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    """Master data kinds that spreadsheet identifiers resolve to."""

    COMPANY = "company"
    ESTATE = "estate"


class RecordType(StrEnum):
    TRANSPORT = "transport"
    HARVEST = "harvest"


class ResolutionSource(StrEnum):
    ALIAS = "alias"
    EXACT = "exact"
    PREFIX = "prefix"
    FUZZY = "fuzzy"


class DiffStatus(StrEnum):
    NEW = "new"
    UPDATED = "updated"
    DUPLICATE = "duplicate"


class WriteAction(StrEnum):
    INSERT = "insert"
    UPDATE = "update"


class FieldKind(StrEnum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


class ImportState(StrEnum):
    IDLE = "idle"
    VALIDATING = "validating"
    CREATING_MASTERS = "creating_masters"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"


class UnresolvedPolicy(StrEnum):
    """What an import does with identifiers no stage could resolve."""

    FAIL = "fail"
    AUTO_CREATE = "auto_create"
