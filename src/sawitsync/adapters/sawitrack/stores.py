"""Domain ports backed by the SawiTrack REST API."""

from __future__ import annotations

import logging
from datetime import date
from functools import partial
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from sawitsync.domain.canonicalization import display_name
from sawitsync.domain.errors import AliasConflictError, AliasPersistenceError
from sawitsync.domain.model import Alias, EntityType, RecordType, WriteAction, WrittenRecord
from sawitsync.domain.reconciliation import save_alias_batch

from .client import SawiTrackAPIError
from .translator import (
    angkut_body,
    angkut_to_existing,
    company_to_master,
    estate_to_master,
    panen_body,
    panen_to_existing,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sawitsync.adapters.http_resilience import ResilientClient
    from sawitsync.domain.model import (
        ClassifiedRecord,
        ExistingRecord,
        MasterEntity,
        NaturalKey,
    )
    from sawitsync.domain.ports import AliasStore, RecordWriter
    from sawitsync.domain.reconciliation import AliasBatchResult

    from .client import SawiTrackClient

log = logging.getLogger(__name__)

# failed calls, unreachable hosts and payloads that do not match the schema
_REMOTE_ERRORS = (SawiTrackAPIError, httpx.HTTPError, ValidationError)


class SawiTrackMasterEntitySource:
    def __init__(self, client: SawiTrackClient) -> None:
        self._client = client

    def list_all(self, entity_type: EntityType) -> list[MasterEntity]:
        if entity_type is EntityType.COMPANY:
            return [company_to_master(payload) for payload in self._client.list_companies()]
        return [estate_to_master(payload) for payload in self._client.list_estates()]

    def create(self, entity_type: EntityType, name: str) -> MasterEntity:
        if entity_type is EntityType.COMPANY:
            return company_to_master(self._client.create_company(name))
        # estates are keyed by their name in the dashboard
        return estate_to_master(self._client.create_estate(display_name(name), name))


class SawiTrackAliasStore:
    """Company aliases live in the dashboard; other entity types go to ``fallback``.

    The dashboard keeps no alias history, so repointing through this store
    leaves no audit trail beyond its ``updatedAt`` timestamp.
    """

    def __init__(self, client: SawiTrackClient, *, fallback: AliasStore) -> None:
        self._client = client
        self._fallback = fallback
        self._companies: dict[str, Alias] | None = None

    def lookup(self, entity_type: EntityType, raw_name: str) -> str | None:
        if entity_type is not EntityType.COMPANY:
            return self._fallback.lookup(entity_type, raw_name)
        alias = self._company_aliases().get(raw_name.strip())
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
        if entity_type is not EntityType.COMPANY:
            return self._fallback.save(
                entity_type,
                raw_name,
                master_id,
                overwrite=overwrite,
                confirmed_by=confirmed_by,
            )

        name = raw_name.strip()
        if not name:
            raise ValueError("Alias name must not be blank")
        try:
            aliases = self._company_aliases()
        except _REMOTE_ERRORS as exc:
            raise AliasPersistenceError(f"Could not load company aliases: {exc}") from exc
        existing = aliases.get(name)
        if existing is not None and existing.master_id == master_id:
            return existing
        if existing is not None and not overwrite:
            raise AliasConflictError(
                entity_type,
                name,
                existing_master_id=existing.master_id,
                requested_master_id=master_id,
            )

        try:
            response = self._client.save_company_aliases({name: master_id})
        except _REMOTE_ERRORS as exc:
            raise AliasPersistenceError(f"Could not save company alias {name!r}: {exc}") from exc
        if response.errors:
            raise AliasPersistenceError(response.errors[0].error)

        if existing is not None:
            existing.repoint(master_id, changed_by=confirmed_by)
            return existing
        alias = Alias(
            entity_type=EntityType.COMPANY,
            alias_name=name,
            master_id=master_id,
            confirmed_by=confirmed_by,
        )
        aliases[name] = alias
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
        aliases: list[Alias] = []
        if entity_type in {None, EntityType.COMPANY}:
            aliases.extend(sorted(self._company_aliases().values(), key=lambda a: a.alias_name))
        if entity_type is not EntityType.COMPANY:
            aliases.extend(
                alias
                for alias in self._fallback.list_aliases(entity_type)
                if alias.entity_type is not EntityType.COMPANY
            )
        return aliases

    def _company_aliases(self) -> dict[str, Alias]:
        if self._companies is None:
            loaded: dict[str, Alias] = {}
            for payload in self._client.list_company_aliases():
                alias = Alias(
                    entity_type=EntityType.COMPANY,
                    alias_name=payload.alias_name,
                    master_id=payload.company_id,
                )
                if payload.created_at is not None:
                    alias.created_at = payload.created_at
                if payload.updated_at is not None:
                    alias.updated_at = payload.updated_at
                loaded[alias.alias_name] = alias
            log.info("Loaded %s company alias(es) from SawiTrack", len(loaded))
            self._companies = loaded
        return self._companies


class SawiTrackRecordStore:
    """Existing-record lookup by harvest date and async record writes."""

    def __init__(self, client: SawiTrackClient) -> None:
        self._client = client

    def find_by_natural_keys(
        self,
        record_type: RecordType,
        keys: Iterable[NaturalKey],
    ) -> dict[NaturalKey, ExistingRecord]:
        wanted = set(keys)
        # date_panen leads both natural keys and is the filter the API offers
        dates = sorted({key[0] for key in wanted if key and key[0]})
        found: dict[NaturalKey, ExistingRecord] = {}
        for day in dates:
            for existing in self._records_on(record_type, date.fromisoformat(day)):
                if existing.natural_key in wanted:
                    found.setdefault(existing.natural_key, existing)
        log.info(
            "Matched %s of %s %s key(s) against SawiTrack across %s day(s)",
            len(found),
            len(wanted),
            record_type,
            len(dates),
        )
        return found

    async def write(self, session: ResilientClient, record: ClassifiedRecord) -> WrittenRecord:
        record_type = record.candidate.record_type
        body = (
            angkut_body(record.fields)
            if record_type is RecordType.TRANSPORT
            else panen_body(record.fields)
        )
        if record.existing_id is None:
            record_id = await self._client.create_record(session, record_type, body)
            action = WriteAction.INSERT
        else:
            await self._client.update_record(session, record_type, record.existing_id, body)
            record_id = record.existing_id
            action = WriteAction.UPDATE
        return WrittenRecord(natural_key=record.natural_key, record_id=record_id, action=action)

    def writer(self, session: ResilientClient) -> RecordWriter:
        return partial(self.write, session)

    def _records_on(self, record_type: RecordType, day: date) -> list[ExistingRecord]:
        if record_type is RecordType.TRANSPORT:
            converted = [
                angkut_to_existing(item) for item in self._client.list_angkut(date_panen=day)
            ]
        else:
            converted = [
                panen_to_existing(item) for item in self._client.list_panen(date_panen=day)
            ]
        return [item for item in converted if item is not None]
