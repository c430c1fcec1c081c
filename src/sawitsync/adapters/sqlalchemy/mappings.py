"""SQLAlchemy mapping metadata for master data, alias memory and imported records."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal
from functools import cache
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    orm,
)
from sqlalchemy.orm import configure_mappers

from sawitsync.domain.model import (
    HARVEST_SCHEMA,
    TRANSPORT_SCHEMA,
    Alias,
    AliasChange,
    EntityType,
    FieldKind,
    MasterEntity,
    RecordType,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from sawitsync.domain.model import FieldSpec, RecordSchema

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class DecimalText(TypeDecorator[Decimal]):
    """Exact decimals stored as text, since SQLite has no native decimal type."""

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return format(Decimal(value), "f")

    def process_result_value(self, value: str | None, dialect: Dialect) -> Decimal | None:
        _ = dialect
        if value is None:
            return None
        return Decimal(value)


def _enum_column_type(enum_cls: type[EntityType]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda members: [member.value for member in members],
        length=32,
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Master data -----------------------------------------------------------------

master_entity_table = Table(
    "master_entity",
    mapper_registry.metadata,
    Column("id", String(36), primary_key=True),
    Column("entity_type", _enum_column_type(EntityType), nullable=False),
    Column("name", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_master_entity_type", "entity_type"),
)

alias_table = Table(
    "alias",
    mapper_registry.metadata,
    Column("entity_type", _enum_column_type(EntityType), primary_key=True),
    Column("alias_name", String, primary_key=True),
    Column("master_id", String(36), nullable=False),
    Column("confirmed_by", String, nullable=True),
    Column("revision", Integer, nullable=False, default=1),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

alias_change_table = Table(
    "alias_change",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entity_type", _enum_column_type(EntityType), nullable=False),
    Column("alias_name", String, nullable=False),
    Column("previous_master_id", String(36), nullable=True),
    Column("master_id", String(36), nullable=False),
    Column("changed_by", String, nullable=True),
    Column("changed_at", UTCDateTime(), nullable=False),
    Index("ix_alias_change_alias", "entity_type", "alias_name"),
)

# Imported records ------------------------------------------------------------


def _field_column(spec: FieldSpec) -> Column[object]:
    if spec.kind is FieldKind.DATE:
        return Column(spec.name, Date, nullable=True)
    if spec.kind is FieldKind.NUMBER:
        return Column(spec.name, DecimalText(), nullable=True)
    return Column(spec.name, String, nullable=True)


def _record_table(name: str, schema: RecordSchema) -> Table:
    specs = {spec.name: spec for spec in (*schema.key_fields, *schema.comparable_fields)}
    return Table(
        name,
        mapper_registry.metadata,
        Column("id", String(36), primary_key=True),
        # JSON list of the key components, see repositories.serialize_key
        Column("natural_key", String, nullable=False),
        *(_field_column(spec) for spec in specs.values()),
        Column("created_at", UTCDateTime(), nullable=False),
        Column("updated_at", UTCDateTime(), nullable=False),
        UniqueConstraint("natural_key"),
    )


transport_record_table = _record_table("transport_record", TRANSPORT_SCHEMA)
harvest_record_table = _record_table("harvest_record", HARVEST_SCHEMA)

RECORD_TABLES: Final[dict[RecordType, Table]] = {
    RecordType.TRANSPORT: transport_record_table,
    RecordType.HARVEST: harvest_record_table,
}


@cache
def start_mappers() -> orm.registry:
    log.info("Starting mappers")

    mapper_registry.map_imperatively(MasterEntity, master_entity_table)
    mapper_registry.map_imperatively(Alias, alias_table)
    mapper_registry.map_imperatively(AliasChange, alias_change_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
