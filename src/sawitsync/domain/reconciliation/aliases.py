"""Alias memory semantics shared by every alias store adapter."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sawitsync.domain.errors import AliasConflictError, AliasPersistenceError
from sawitsync.domain.model import Alias, AliasChange

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sawitsync.domain.model import EntityType
    from sawitsync.domain.ports import AliasStore

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AliasBatchError:
    alias_name: str
    error: str


@dataclass(slots=True)
class AliasBatchResult:
    """Outcome of a non-transactional batch save: each entry stands alone."""

    saved: list[Alias] = field(default_factory=list[Alias])
    errors: list[AliasBatchError] = field(default_factory=list[AliasBatchError])

    @property
    def ok(self) -> bool:
        return not self.errors


def upsert_alias(
    existing: Alias | None,
    *,
    entity_type: EntityType,
    raw_name: str,
    master_id: str,
    overwrite: bool = False,
    confirmed_by: str | None = None,
) -> tuple[Alias, AliasChange | None]:
    """Decide what saving ``raw_name -> master_id`` means given the stored alias.

    Returns the alias to persist and the audit record to append, or ``None``
    when the mapping is already stored. Repointing requires ``overwrite``.
    """

    if existing is None:
        return Alias.create(
            entity_type=entity_type,
            alias_name=raw_name,
            master_id=master_id,
            confirmed_by=confirmed_by,
        )
    if existing.master_id == master_id:
        return existing, None
    if not overwrite:
        raise AliasConflictError(
            entity_type,
            existing.alias_name,
            existing_master_id=existing.master_id,
            requested_master_id=master_id,
        )
    return existing, existing.repoint(master_id, changed_by=confirmed_by)


def save_alias_batch(
    store: AliasStore,
    entity_type: EntityType,
    mappings: Mapping[str, str],
    *,
    overwrite: bool = False,
    confirmed_by: str | None = None,
) -> AliasBatchResult:
    result = AliasBatchResult()
    for raw_name, master_id in mappings.items():
        try:
            alias = store.save(
                entity_type,
                raw_name,
                master_id,
                overwrite=overwrite,
                confirmed_by=confirmed_by,
            )
        except (AliasPersistenceError, ValueError) as exc:
            log.warning("Could not save %s alias %r: %s", entity_type, raw_name, exc)
            result.errors.append(AliasBatchError(alias_name=raw_name, error=str(exc)))
            continue
        result.saved.append(alias)
    return result
