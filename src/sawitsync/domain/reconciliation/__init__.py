"""Import reconciliation stages: resolve, classify, apply."""

from __future__ import annotations

from sawitsync.domain.reconciliation.aliases import (
    AliasBatchError,
    AliasBatchResult,
    save_alias_batch,
    upsert_alias,
)
from sawitsync.domain.reconciliation.apply import (
    ChunkedApplyEngine,
    WriteOutcome,
    sync_writer,
    with_retry,
    with_timeout,
)
from sawitsync.domain.reconciliation.classify import Classification, classify
from sawitsync.domain.reconciliation.confirm import confirm_aliases, confirm_new_master
from sawitsync.domain.reconciliation.pipeline import ImportPipeline
from sawitsync.domain.reconciliation.registry import MasterDataCache
from sawitsync.domain.reconciliation.resolve import (
    EntityResolver,
    ResolutionReport,
    ResolvedName,
    SharedTargetWarning,
    Suggestion,
    UnresolvedName,
    fold_name,
    resolve_names,
)
from sawitsync.domain.reconciliation.run import (
    CancellationToken,
    ImportProgress,
    ImportRun,
    RecordFailure,
)

__all__ = [
    "AliasBatchError",
    "AliasBatchResult",
    "CancellationToken",
    "ChunkedApplyEngine",
    "Classification",
    "EntityResolver",
    "ImportPipeline",
    "ImportProgress",
    "ImportRun",
    "MasterDataCache",
    "RecordFailure",
    "ResolutionReport",
    "ResolvedName",
    "SharedTargetWarning",
    "Suggestion",
    "UnresolvedName",
    "WriteOutcome",
    "classify",
    "confirm_aliases",
    "confirm_new_master",
    "fold_name",
    "resolve_names",
    "save_alias_batch",
    "sync_writer",
    "upsert_alias",
    "with_retry",
    "with_timeout",
]
