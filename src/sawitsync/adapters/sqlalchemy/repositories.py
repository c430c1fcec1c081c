"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final, cast

from sqlalchemy import select

from sawitsync.adapters.sqlalchemy.mappings import (
    RECORD_TABLES,
    alias_change_table,
    alias_table,
    master_entity_table,
)
from sawitsync.domain.model import (
    Alias,
    AliasChange,
    ExistingRecord,
    MasterEntity,
    normalize_alias_name,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.orm import Session

    from sawitsync.domain.model import EntityType, FieldValue, NaturalKey, RecordType

# stays well below SQLite's bound-parameter limit
_KEY_LOOKUP_BATCH: Final[int] = 500


class SqlAlchemyMasterEntityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: MasterEntity) -> None:
        self.session.add(entity)

    def list_by_type(self, entity_type: EntityType) -> list[MasterEntity]:
        stmt = (
            select(MasterEntity)
            .where(master_entity_table.c.entity_type == entity_type)
            .order_by(master_entity_table.c.created_at, master_entity_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyAliasRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, entity_type: EntityType, alias_name: str) -> Alias | None:
        name = normalize_alias_name(alias_name)
        if not name:
            return None
        return self.session.get(Alias, (entity_type, name))

    def add(self, alias: Alias) -> None:
        self.session.add(alias)

    def add_change(self, change: AliasChange) -> None:
        self.session.add(change)

    def list_aliases(self, entity_type: EntityType | None = None) -> list[Alias]:
        stmt = select(Alias).order_by(alias_table.c.entity_type, alias_table.c.alias_name)
        if entity_type is not None:
            stmt = stmt.where(alias_table.c.entity_type == entity_type)
        return list(self.session.execute(stmt).scalars())

    def history(self, entity_type: EntityType, alias_name: str) -> list[AliasChange]:
        stmt = (
            select(AliasChange)
            .where(alias_change_table.c.entity_type == entity_type)
            .where(alias_change_table.c.alias_name == normalize_alias_name(alias_name))
            .order_by(alias_change_table.c.changed_at, alias_change_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyRecordRepository:
    """Core-level access to one imported record table, keyed by natural key."""

    def __init__(self, session: Session, record_type: RecordType) -> None:
        self.session = session
        self.record_type = record_type
        self._table = RECORD_TABLES[record_type]
        self._field_names = tuple(
            column.name
            for column in self._table.columns
            if column.name not in {"id", "natural_key", "created_at", "updated_at"}
        )

    def find_by_natural_keys(
        self,
        keys: Iterable[NaturalKey],
    ) -> dict[NaturalKey, ExistingRecord]:
        serialized = sorted({serialize_key(key) for key in keys})
        found: dict[NaturalKey, ExistingRecord] = {}
        for start in range(0, len(serialized), _KEY_LOOKUP_BATCH):
            batch = serialized[start : start + _KEY_LOOKUP_BATCH]
            stmt = select(self._table).where(self._table.c.natural_key.in_(batch))
            for row in self.session.execute(stmt).mappings():
                natural_key = deserialize_key(row["natural_key"])
                found[natural_key] = ExistingRecord(
                    id=row["id"],
                    natural_key=natural_key,
                    fields={name: row[name] for name in self._field_names},
                )
        return found

    def insert(self, natural_key: NaturalKey, fields: dict[str, FieldValue]) -> str:
        record_id = str(uuid.uuid4())
        now = datetime.now(UTC)
        self.session.execute(
            self._table.insert().values(
                id=record_id,
                natural_key=serialize_key(natural_key),
                created_at=now,
                updated_at=now,
                **self._columns(fields),
            )
        )
        return record_id

    def update(self, record_id: str, fields: dict[str, FieldValue]) -> None:
        result = self.session.execute(
            self._table.update()
            .where(self._table.c.id == record_id)
            .values(updated_at=datetime.now(UTC), **self._columns(fields))
        )
        if cast("int", getattr(result, "rowcount", 0)) == 0:
            raise LookupError(f"{self.record_type} record {record_id} no longer exists")

    def _columns(self, fields: dict[str, FieldValue]) -> dict[str, FieldValue]:
        return {name: fields.get(name) for name in self._field_names}


def serialize_key(key: NaturalKey) -> str:
    return json.dumps(list(key), separators=(",", ":"))


def deserialize_key(value: str) -> NaturalKey:
    loaded_raw = json.loads(value)
    if not isinstance(loaded_raw, list):
        raise TypeError("Invalid key format")
    loaded = cast(list[object], loaded_raw)
    return tuple(str(item) for item in loaded)


if TYPE_CHECKING:
    from sawitsync.domain.ports import (
        AliasRepository,
        MasterEntityRepository,
        RecordRepository,
    )

    _session_stub = cast("Session", object())
    _master_repo: MasterEntityRepository = SqlAlchemyMasterEntityRepository(_session_stub)
    _alias_repo: AliasRepository = SqlAlchemyAliasRepository(_session_stub)
    _record_repo: RecordRepository = SqlAlchemyRecordRepository(
        _session_stub,
        cast("RecordType", "transport"),
    )
