"""Ports the reconciliation engine uses to reach master data and record stores."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sawitsync.domain.model import ClassifiedRecord, WrittenRecord

if TYPE_CHECKING:
    from sawitsync.domain.model import (
        Alias,
        EntityType,
        ExistingRecord,
        MasterEntity,
        NaturalKey,
        RecordType,
    )
    from sawitsync.domain.reconciliation.aliases import AliasBatchResult


@runtime_checkable
class AliasStore(Protocol):
    """Durable memory of confirmed raw-name to master mappings."""

    def lookup(self, entity_type: EntityType, raw_name: str) -> str | None: ...

    def save(
        self,
        entity_type: EntityType,
        raw_name: str,
        master_id: str,
        *,
        overwrite: bool = False,
        confirmed_by: str | None = None,
    ) -> Alias: ...

    def save_batch(
        self,
        entity_type: EntityType,
        mappings: Mapping[str, str],
        *,
        overwrite: bool = False,
        confirmed_by: str | None = None,
    ) -> AliasBatchResult: ...

    def list_aliases(self, entity_type: EntityType | None = None) -> list[Alias]: ...


@runtime_checkable
class MasterEntitySource(Protocol):
    """Read and create access to canonical companies and estates."""

    def list_all(self, entity_type: EntityType) -> list[MasterEntity]: ...

    def create(self, entity_type: EntityType, name: str) -> MasterEntity: ...


@runtime_checkable
class ExistingRecordFinder(Protocol):
    """Bulk lookup of already persisted records by natural key."""

    def find_by_natural_keys(
        self,
        record_type: RecordType,
        keys: Iterable[NaturalKey],
    ) -> dict[NaturalKey, ExistingRecord]: ...


type RecordWriter = Callable[[ClassifiedRecord], Awaitable[WrittenRecord]]
