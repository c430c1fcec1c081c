"""SQLAlchemy adapter package for SawiSync."""

from __future__ import annotations

from .mappings import (
    RECORD_TABLES,
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .repositories import (
    SqlAlchemyAliasRepository,
    SqlAlchemyMasterEntityRepository,
    SqlAlchemyRecordRepository,
)
from .stores import SqlAlchemyAliasStore, SqlAlchemyMasterEntitySource, SqlAlchemyRecordStore
from .unit_of_work import (
    SqlAlchemyReconciliationUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "RECORD_TABLES",
    "SqlAlchemyAliasRepository",
    "SqlAlchemyAliasStore",
    "SqlAlchemyMasterEntityRepository",
    "SqlAlchemyMasterEntitySource",
    "SqlAlchemyReconciliationUnitOfWork",
    "SqlAlchemyRecordRepository",
    "SqlAlchemyRecordStore",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
