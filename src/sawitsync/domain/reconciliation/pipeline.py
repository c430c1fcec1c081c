"""End-to-end import: validate, resolve, (create masters), classify, apply."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sawitsync.domain.canonicalization import display_name
from sawitsync.domain.model import ImportState, UnresolvedPolicy

from .apply import ChunkedApplyEngine
from .classify import classify
from .registry import MasterDataCache
from .resolve import EntityResolver, fold_name
from .run import ImportProgress, ImportRun

if TYPE_CHECKING:
    from collections.abc import Callable

    from sawitsync.domain.model import CandidateRecord, EntityType, ParsedRows, RecordSchema
    from sawitsync.domain.ports import (
        AliasStore,
        ExistingRecordFinder,
        MasterEntitySource,
        RecordWriter,
    )

    from .resolve import UnresolvedName
    from .run import CancellationToken, ProgressCallback

log = logging.getLogger(__name__)

AUTO_CREATE_ACTOR = "auto-create"

type MasterIds = dict[EntityType, dict[str, str]]


@dataclass(slots=True, kw_only=True)
class ImportPipeline:
    """Wires the reconciliation stages for one record family.

    The pipeline owns no state between runs: every call to :meth:`run`
    prefetches a fresh :class:`MasterDataCache` and returns a new
    :class:`ImportRun`.
    """

    schema: RecordSchema
    masters: MasterEntitySource
    aliases: AliasStore
    records: ExistingRecordFinder
    writer: RecordWriter
    resolver: EntityResolver | None = None
    engine: ChunkedApplyEngine = field(default_factory=ChunkedApplyEngine)
    policy: UnresolvedPolicy = UnresolvedPolicy.FAIL

    def run(
        self,
        parsed: ParsedRows,
        *,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
        after_chunk: Callable[[], None] | None = None,
    ) -> ImportRun:
        """Blocking wrapper around :meth:`run_async`."""

        return asyncio.run(
            self.run_async(
                parsed,
                on_progress=on_progress,
                cancellation=cancellation,
                after_chunk=after_chunk,
            )
        )

    async def run_async(
        self,
        parsed: ParsedRows,
        *,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
        after_chunk: Callable[[], None] | None = None,
    ) -> ImportRun:
        run = ImportRun(record_type=self.schema.record_type)
        run.transition(ImportState.VALIDATING)
        run.total_rows = parsed.total_rows
        for invalid in parsed.invalid_rows:
            run.record_invalid(invalid.row_number, invalid.reason)
        _emit(on_progress, parsed.total_rows, parsed.total_rows, ImportState.VALIDATING)

        if not parsed.candidates:
            run.fail(_no_valid_rows_reason(parsed))
            log.warning("Import aborted: %s", run.reason)
            return run

        try:
            registry = MasterDataCache.prefetch(self.masters, self.schema.entity_types)
            master_ids = self._resolve(parsed.candidates, registry, run)
        except Exception as exc:
            log.exception("Could not load master data or aliases")
            run.fail(f"could not load master data: {exc}")
            return run

        if run.unresolved:
            if self.policy is UnresolvedPolicy.FAIL:
                run.fail(_unresolved_reason(run.unresolved))
                log.warning("Import aborted: %s", run.reason)
                return run
            run.transition(ImportState.CREATING_MASTERS)
            self._create_masters(run.unresolved, registry, master_ids, run, on_progress)

        candidates = self._bind_references(parsed.candidates, master_ids, run)
        try:
            existing = self.records.find_by_natural_keys(
                self.schema.record_type,
                {candidate.natural_key for candidate in candidates},
            )
        except Exception as exc:
            log.exception("Could not load existing %s records", self.schema.record_type)
            run.fail(f"could not load existing records: {exc}")
            return run

        run.transition(ImportState.APPLYING)
        classification = classify(candidates, existing, schema=self.schema)
        run.record_classification(classification)
        log.info(
            "Classified %s candidate(s): new=%s, updated=%s, duplicate=%s, superseded=%s",
            len(candidates),
            run.new,
            run.updated,
            run.duplicate,
            run.superseded,
        )

        result = await self.engine.apply_async(
            classification.write_plan(),
            self.writer,
            run=run,
            on_progress=on_progress,
            cancellation=cancellation,
            after_chunk=after_chunk,
        )
        log.info("Import finished: %s", result.summary())
        return result

    def _resolve(
        self,
        candidates: list[CandidateRecord],
        registry: MasterDataCache,
        run: ImportRun,
    ) -> MasterIds:
        resolver = self.resolver or EntityResolver(aliases=self.aliases)
        master_ids: MasterIds = {}
        for entity_type in self.schema.entity_types:
            names = [
                candidate.references[entity_type]
                for candidate in candidates
                if entity_type in candidate.references
            ]
            report = resolver.resolve(names, entity_type=entity_type, registry=registry)
            master_ids[entity_type] = {
                key: resolved.master_id for key, resolved in report.resolved.items()
            }
            run.unresolved.extend(report.unresolved)
            run.warnings.extend(report.warnings)
        return master_ids

    def _create_masters(
        self,
        unresolved: list[UnresolvedName],
        registry: MasterDataCache,
        master_ids: MasterIds,
        run: ImportRun,
        on_progress: ProgressCallback | None,
    ) -> None:
        total = len(unresolved)
        for index, group in enumerate(unresolved, start=1):
            name = display_name(group.raw_names[0])
            try:
                entity = self.masters.create(group.entity_type, name)
            except Exception:
                # rows referencing this group stay unbound and are reported as failures
                log.exception("Could not create %s master %r", group.entity_type, name)
                _emit(on_progress, index, total, ImportState.CREATING_MASTERS)
                continue

            registry.register_created(group.entity_type, name, entity)
            run.created_masters.append(entity)
            ids = master_ids.setdefault(group.entity_type, {})
            for raw_name in group.raw_names:
                ids[fold_name(raw_name)] = entity.id
            saved = self.aliases.save_batch(
                group.entity_type,
                dict.fromkeys(group.raw_names, entity.id),
                confirmed_by=AUTO_CREATE_ACTOR,
            )
            for error in saved.errors:
                log.warning("Alias %r not saved: %s", error.alias_name, error.error)
            log.info(
                "Created %s master %r (%s) with %s alias(es)",
                group.entity_type,
                entity.name,
                entity.id,
                len(saved.saved),
            )
            _emit(on_progress, index, total, ImportState.CREATING_MASTERS)

    def _bind_references(
        self,
        candidates: list[CandidateRecord],
        master_ids: MasterIds,
        run: ImportRun,
    ) -> list[CandidateRecord]:
        bound: list[CandidateRecord] = []
        for candidate in candidates:
            missing: list[str] = []
            for reference in self.schema.references:
                raw_name = candidate.references.get(reference.entity_type)
                if raw_name is None:
                    continue
                master_id = master_ids.get(reference.entity_type, {}).get(fold_name(raw_name))
                if master_id is None:
                    missing.append(f"{reference.entity_type} {raw_name!r}")
                    continue
                candidate.fields[reference.id_field] = master_id
            candidate.natural_key = self.schema.natural_key(candidate.fields)
            if missing:
                run.record_failure(
                    candidate.natural_key,
                    f"no master for {', '.join(missing)}",
                    row_number=candidate.row_number,
                )
                continue
            bound.append(candidate)
        return bound


def _emit(
    on_progress: ProgressCallback | None,
    processed: int,
    total: int,
    stage: ImportState,
) -> None:
    if on_progress is not None:
        on_progress(ImportProgress(processed, total, stage))


def _no_valid_rows_reason(parsed: ParsedRows) -> str:
    if parsed.total_rows == 0:
        return "the sheet contains no data rows"
    if parsed.missing_columns:
        return (
            f"all {parsed.total_rows} rows are unusable: missing required column(s) "
            f"{', '.join(parsed.missing_columns)}"
        )
    first = parsed.invalid_rows[0]
    return (
        f"all {parsed.total_rows} rows are invalid "
        f"(first: row {first.row_number}: {first.reason})"
    )


def _unresolved_reason(unresolved: list[UnresolvedName]) -> str:
    names = "; ".join(
        f"{group.entity_type} {', '.join(repr(name) for name in group.raw_names)}"
        for group in unresolved
    )
    return f"unresolved identifiers: {names}"
