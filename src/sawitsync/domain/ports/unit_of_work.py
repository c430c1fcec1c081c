"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

    from sawitsync.domain.model import (
        Alias,
        AliasChange,
        EntityType,
        ExistingRecord,
        MasterEntity,
        NaturalKey,
        RecordType,
    )
    from sawitsync.domain.model.records import FieldValue


class MasterEntityRepository(Protocol):
    def add(self, entity: MasterEntity) -> None: ...

    def list_by_type(self, entity_type: EntityType) -> list[MasterEntity]: ...


class AliasRepository(Protocol):
    def get(self, entity_type: EntityType, alias_name: str) -> Alias | None: ...

    def add(self, alias: Alias) -> None: ...

    def add_change(self, change: AliasChange) -> None: ...

    def list_aliases(self, entity_type: EntityType | None = None) -> list[Alias]: ...

    def history(self, entity_type: EntityType, alias_name: str) -> list[AliasChange]: ...


class RecordRepository(Protocol):
    record_type: RecordType

    def find_by_natural_keys(
        self,
        keys: Iterable[NaturalKey],
    ) -> dict[NaturalKey, ExistingRecord]: ...

    def insert(self, natural_key: NaturalKey, fields: dict[str, FieldValue]) -> str: ...

    def update(self, record_id: str, fields: dict[str, FieldValue]) -> None: ...


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class ReconciliationRepositories(RepositoryCollection):
    """Repositories an import needs: master data, alias memory and both record families."""

    masters: MasterEntityRepository
    aliases: AliasRepository
    records: dict[RecordType, RecordRepository]


type ReconciliationUnitOfWork = UnitOfWork[ReconciliationRepositories]
