"""Exceptions raised by the reconciliation domain."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sawitsync.domain.model import EntityType, ImportState, NaturalKey


class ReconciliationError(Exception):
    """Base class for import reconciliation failures."""


class ParseContractViolation(ReconciliationError, ValueError):
    """A row is missing data the record schema cannot do without."""

    def __init__(self, message: str, *, row_number: int | None = None) -> None:
        super().__init__(message)
        self.row_number = row_number


class WriteFailure(ReconciliationError):
    """A single record write failed; carries the record's natural key."""

    def __init__(self, natural_key: NaturalKey, message: str) -> None:
        super().__init__(f"{'|'.join(natural_key)}: {message}")
        self.natural_key = natural_key
        self.message = message


class AliasPersistenceError(ReconciliationError):
    """Saving an alias failed."""


class AliasConflictError(AliasPersistenceError):
    """The alias already points at another master and overwrite was not requested."""

    def __init__(
        self,
        entity_type: EntityType,
        alias_name: str,
        *,
        existing_master_id: str,
        requested_master_id: str,
    ) -> None:
        super().__init__(
            f"{entity_type} alias {alias_name!r} already maps to {existing_master_id}; "
            f"refusing to repoint it to {requested_master_id} without overwrite"
        )
        self.entity_type = entity_type
        self.alias_name = alias_name
        self.existing_master_id = existing_master_id
        self.requested_master_id = requested_master_id


class InvalidTransitionError(ReconciliationError):
    def __init__(self, current: ImportState, target: ImportState) -> None:
        super().__init__(f"Import run cannot move from {current} to {target}")
        self.current = current
        self.target = target
