"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from sawitsync.adapters.sawitrack import (
    SawiTrackAliasStore,
    SawiTrackClient,
    SawiTrackMasterEntitySource,
    SawiTrackRecordStore,
)
from sawitsync.adapters.spreadsheet import parse_rows, read_sheet
from sawitsync.adapters.sqlalchemy import (
    SqlAlchemyAliasStore,
    SqlAlchemyMasterEntitySource,
    SqlAlchemyReconciliationUnitOfWork,
    SqlAlchemyRecordStore,
    startup,
)
from sawitsync.adapters.sqlalchemy.unit_of_work import is_started
from sawitsync.config import get_import_config, get_sawitrack_config
from sawitsync.domain.model import SCHEMAS, RecordType
from sawitsync.domain.ports.unit_of_work import ReconciliationUnitOfWork
from sawitsync.domain.reconciliation import (
    ChunkedApplyEngine,
    EntityResolver,
    ImportPipeline,
    confirm_aliases,
    confirm_new_master,
    with_retry,
    with_timeout,
)
from sawitsync.domain.similarity import get_similarity

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager
    from pathlib import Path

    from sawitsync.config import ImportConfig
    from sawitsync.domain.model import (
        Alias,
        AliasChange,
        EntityType,
        MasterEntity,
        ParsedRows,
        UnresolvedPolicy,
    )
    from sawitsync.domain.ports import (
        AliasStore,
        ExistingRecordFinder,
        MasterEntitySource,
        RecordWriter,
    )
    from sawitsync.domain.reconciliation import AliasBatchResult, CancellationToken, ImportRun
    from sawitsync.domain.reconciliation.run import ProgressCallback

UnitOfWorkFactory = Callable[[], ReconciliationUnitOfWork]


log = getLogger(__name__)


class Backend(StrEnum):
    SQLITE = "sqlite"
    SAWITRACK = "sawitrack"


@dataclass(slots=True, kw_only=True)
class BackendStores:
    """The ports one import talks to, plus a way to open its record writer."""

    masters: MasterEntitySource
    aliases: AliasStore
    records: ExistingRecordFinder
    open_writer: Callable[[], AbstractAsyncContextManager[RecordWriter]]
    # the writer runs blocking calls on the event loop, where a timeout cannot fire
    blocking_writes: bool = False


def build_sql_stores(unit_of_work_factory: UnitOfWorkFactory | None = None) -> BackendStores:
    _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyReconciliationUnitOfWork
    records = SqlAlchemyRecordStore(effective_uow)

    @asynccontextmanager
    async def open_writer() -> AsyncIterator[RecordWriter]:
        yield records.writer()

    return BackendStores(
        masters=SqlAlchemyMasterEntitySource(effective_uow),
        aliases=SqlAlchemyAliasStore(effective_uow),
        records=records,
        open_writer=open_writer,
        blocking_writes=True,
    )


def build_sawitrack_stores(
    client: SawiTrackClient,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> BackendStores:
    """Dashboard-backed stores; estate aliases stay in the local database."""

    _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyReconciliationUnitOfWork
    records = SawiTrackRecordStore(client)

    @asynccontextmanager
    async def open_writer() -> AsyncIterator[RecordWriter]:
        async with client.record_session() as session:
            yield records.writer(session)

    return BackendStores(
        masters=SawiTrackMasterEntitySource(client),
        aliases=SawiTrackAliasStore(client, fallback=SqlAlchemyAliasStore(effective_uow)),
        records=records,
        open_writer=open_writer,
    )


def import_file(
    path: Path,
    record_type: RecordType,
    *,
    backend: Backend = Backend.SQLITE,
    policy: UnresolvedPolicy | None = None,
    config: ImportConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    client: SawiTrackClient | None = None,
    on_progress: ProgressCallback | None = None,
    cancellation: CancellationToken | None = None,
) -> ImportRun:
    """Import one spreadsheet of transport or harvest rows into ``backend``."""

    sheet = read_sheet(path)
    parsed = parse_rows(record_type, sheet.rows, headers=sheet.headers)

    if backend is Backend.SAWITRACK:
        effective_client = client or SawiTrackClient(get_sawitrack_config())
        with effective_client:
            stores = build_sawitrack_stores(
                effective_client,
                unit_of_work_factory=unit_of_work_factory,
            )
            return import_rows(
                parsed,
                record_type,
                stores=stores,
                policy=policy,
                config=config,
                on_progress=on_progress,
                cancellation=cancellation,
            )

    return import_rows(
        parsed,
        record_type,
        stores=build_sql_stores(unit_of_work_factory),
        policy=policy,
        config=config,
        on_progress=on_progress,
        cancellation=cancellation,
    )


def import_transport_file(
    path: Path,
    *,
    backend: Backend = Backend.SQLITE,
    policy: UnresolvedPolicy | None = None,
    config: ImportConfig | None = None,
) -> ImportRun:
    return import_file(path, RecordType.TRANSPORT, backend=backend, policy=policy, config=config)


def import_harvest_file(
    path: Path,
    *,
    backend: Backend = Backend.SQLITE,
    policy: UnresolvedPolicy | None = None,
    config: ImportConfig | None = None,
) -> ImportRun:
    return import_file(path, RecordType.HARVEST, backend=backend, policy=policy, config=config)


def import_rows(
    parsed: ParsedRows,
    record_type: RecordType,
    *,
    stores: BackendStores,
    policy: UnresolvedPolicy | None = None,
    config: ImportConfig | None = None,
    on_progress: ProgressCallback | None = None,
    cancellation: CancellationToken | None = None,
) -> ImportRun:
    """Run the reconciliation pipeline over already parsed rows."""

    effective_config = config or get_import_config()
    effective_policy = policy or effective_config.unresolved_policy
    log.info(
        "Starting %s import: rows=%s, policy=%s, chunk_size=%s, concurrency=%s",
        record_type,
        parsed.total_rows,
        effective_policy,
        effective_config.chunk_size,
        effective_config.concurrency,
    )

    async def run() -> ImportRun:
        async with stores.open_writer() as writer:
            pipeline = ImportPipeline(
                schema=SCHEMAS[record_type],
                masters=stores.masters,
                aliases=stores.aliases,
                records=stores.records,
                writer=_resilient_writer(
                    writer,
                    effective_config,
                    blocking=stores.blocking_writes,
                ),
                resolver=EntityResolver(
                    aliases=stores.aliases,
                    similarity=get_similarity(effective_config.similarity_metric),
                    threshold=effective_config.similarity_threshold,
                ),
                engine=ChunkedApplyEngine(
                    chunk_size=effective_config.chunk_size,
                    concurrency=effective_config.concurrency,
                ),
                policy=effective_policy,
            )
            return await pipeline.run_async(
                parsed,
                on_progress=on_progress,
                cancellation=cancellation,
            )

    result = asyncio.run(run())
    log.info("Finished %s import: %s", record_type, result.summary())
    return result


def confirm_alias(
    entity_type: EntityType,
    raw_name: str,
    master_id: str,
    *,
    confirmed_by: str,
    overwrite: bool = False,
    aliases: AliasStore | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AliasBatchResult:
    """Record an operator's decision that ``raw_name`` means ``master_id``."""

    effective_aliases = aliases or build_sql_stores(unit_of_work_factory).aliases
    log.info("Confirming %s alias %r -> %s", entity_type, raw_name, master_id)
    return confirm_aliases(
        effective_aliases,
        entity_type,
        {raw_name: master_id},
        confirmed_by=confirmed_by,
        overwrite=overwrite,
    )


def create_master(
    entity_type: EntityType,
    raw_names: list[str],
    *,
    confirmed_by: str,
    name: str | None = None,
    stores: BackendStores | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> tuple[MasterEntity, AliasBatchResult]:
    """Create a master entity and alias every given spelling to it."""

    effective_stores = stores or build_sql_stores(unit_of_work_factory)
    entity, result = confirm_new_master(
        effective_stores.masters,
        effective_stores.aliases,
        entity_type,
        raw_names,
        confirmed_by=confirmed_by,
        name=name,
    )
    log.info(
        "Finished master creation: %s %s, aliases saved=%s, errors=%s",
        entity_type,
        entity.id,
        len(result.saved),
        len(result.errors),
    )
    return entity, result


def list_aliases(
    entity_type: EntityType | None = None,
    *,
    aliases: AliasStore | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[Alias]:
    effective_aliases = aliases or build_sql_stores(unit_of_work_factory).aliases
    return effective_aliases.list_aliases(entity_type)


def alias_history(
    entity_type: EntityType,
    raw_name: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[AliasChange]:
    """Audit trail of one locally stored alias; dashboard aliases keep none."""

    effective_uow = unit_of_work_factory or SqlAlchemyReconciliationUnitOfWork
    _ensure_started()
    return SqlAlchemyAliasStore(effective_uow).history(entity_type, raw_name)


def list_masters(
    entity_type: EntityType,
    *,
    masters: MasterEntitySource | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[MasterEntity]:
    effective_masters = masters or build_sql_stores(unit_of_work_factory).masters
    return effective_masters.list_all(entity_type)


def _resilient_writer(
    writer: RecordWriter,
    config: ImportConfig,
    *,
    blocking: bool = False,
) -> RecordWriter:
    if config.write_timeout_seconds is not None and blocking:
        log.warning(
            "Ignoring write timeout of %ss: this backend writes synchronously",
            config.write_timeout_seconds,
        )
    elif config.write_timeout_seconds is not None:
        # the timeout bounds each attempt, not the retries as a whole
        writer = with_timeout(writer, config.write_timeout_seconds)
    return with_retry(
        writer,
        attempts=config.write_attempts,
        delay_seconds=config.retry_delay_seconds,
    )


def _ensure_started() -> None:
    if not is_started():
        startup()
