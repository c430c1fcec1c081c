"""Domain ports implemented on top of the SQLAlchemy unit of work.

Every operation opens its own unit of work, so each alias save, master
creation and record write commits (or rolls back) on its own.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from sawitsync.domain.errors import AliasPersistenceError
from sawitsync.domain.model import MasterEntity, WriteAction, WrittenRecord
from sawitsync.domain.reconciliation import save_alias_batch, sync_writer, upsert_alias

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from sawitsync.domain.model import (
        Alias,
        AliasChange,
        ClassifiedRecord,
        EntityType,
        ExistingRecord,
        NaturalKey,
        RecordType,
    )
    from sawitsync.domain.ports import RecordWriter
    from sawitsync.domain.ports.unit_of_work import ReconciliationUnitOfWork
    from sawitsync.domain.reconciliation import AliasBatchResult

    type UnitOfWorkFactory = Callable[[], ReconciliationUnitOfWork]

log = logging.getLogger(__name__)


class SqlAlchemyAliasStore:
    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def lookup(self, entity_type: EntityType, raw_name: str) -> str | None:
        with self._unit_of_work_factory() as uow:
            alias = uow.repositories.aliases.get(entity_type, raw_name)
            return alias.master_id if alias is not None else None

    def save(
        self,
        entity_type: EntityType,
        raw_name: str,
        master_id: str,
        *,
        overwrite: bool = False,
        confirmed_by: str | None = None,
    ) -> Alias:
        try:
            with self._unit_of_work_factory() as uow:
                aliases = uow.repositories.aliases
                alias, change = upsert_alias(
                    aliases.get(entity_type, raw_name),
                    entity_type=entity_type,
                    raw_name=raw_name,
                    master_id=master_id,
                    overwrite=overwrite,
                    confirmed_by=confirmed_by,
                )
                if change is None:
                    return alias
                aliases.add(alias)
                aliases.add_change(change)
                uow.commit()
        except SQLAlchemyError as exc:
            raise AliasPersistenceError(
                f"Could not save {entity_type} alias {raw_name!r}: {exc}"
            ) from exc
        log.debug("Saved %s alias %r -> %s", entity_type, alias.alias_name, master_id)
        return alias

    def save_batch(
        self,
        entity_type: EntityType,
        mappings: Mapping[str, str],
        *,
        overwrite: bool = False,
        confirmed_by: str | None = None,
    ) -> AliasBatchResult:
        return save_alias_batch(
            self,
            entity_type,
            mappings,
            overwrite=overwrite,
            confirmed_by=confirmed_by,
        )

    def list_aliases(self, entity_type: EntityType | None = None) -> list[Alias]:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.aliases.list_aliases(entity_type)

    def history(self, entity_type: EntityType, raw_name: str) -> list[AliasChange]:
        """Every creation and repoint of one alias, oldest first."""

        with self._unit_of_work_factory() as uow:
            return uow.repositories.aliases.history(entity_type, raw_name)


class SqlAlchemyMasterEntitySource:
    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def list_all(self, entity_type: EntityType) -> list[MasterEntity]:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.masters.list_by_type(entity_type)

    def create(self, entity_type: EntityType, name: str) -> MasterEntity:
        entity = MasterEntity(id=str(uuid.uuid4()), entity_type=entity_type, name=name)
        with self._unit_of_work_factory() as uow:
            uow.repositories.masters.add(entity)
            uow.commit()
        log.info("Created %s master %r (%s)", entity_type, name, entity.id)
        return entity


class SqlAlchemyRecordStore:
    """Existing-record lookup and per-record writes for one database."""

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def find_by_natural_keys(
        self,
        record_type: RecordType,
        keys: Iterable[NaturalKey],
    ) -> dict[NaturalKey, ExistingRecord]:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.records[record_type].find_by_natural_keys(keys)

    def write(self, record: ClassifiedRecord) -> WrittenRecord:
        candidate = record.candidate
        with self._unit_of_work_factory() as uow:
            repository = uow.repositories.records[candidate.record_type]
            if record.existing_id is None:
                record_id = repository.insert(record.natural_key, candidate.fields)
                action = WriteAction.INSERT
            else:
                repository.update(record.existing_id, candidate.fields)
                record_id = record.existing_id
                action = WriteAction.UPDATE
            uow.commit()
        return WrittenRecord(natural_key=record.natural_key, record_id=record_id, action=action)

    def writer(self) -> RecordWriter:
        # SQLite connections are thread-bound, so writes stay on the event loop
        return sync_writer(self.write)
