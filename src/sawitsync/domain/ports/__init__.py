"""Port definitions for the reconciliation domain."""

from __future__ import annotations

from .persistence import (
    AliasStore,
    ExistingRecordFinder,
    MasterEntitySource,
    RecordWriter,
)
from .unit_of_work import (
    AliasRepository,
    MasterEntityRepository,
    ReconciliationRepositories,
    ReconciliationUnitOfWork,
    RecordRepository,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AliasRepository",
    "AliasStore",
    "ExistingRecordFinder",
    "MasterEntityRepository",
    "MasterEntitySource",
    "ReconciliationRepositories",
    "ReconciliationUnitOfWork",
    "RecordRepository",
    "RecordWriter",
    "RepositoryCollection",
    "UnitOfWork",
]
