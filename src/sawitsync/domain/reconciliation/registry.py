"""Run-scoped cache of master entities keyed by canonical name."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sawitsync.domain.canonicalization import canonicalize

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sawitsync.domain.model import EntityType, MasterEntity
    from sawitsync.domain.ports import MasterEntitySource

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _EntityIndex:
    by_key: dict[str, MasterEntity] = field(default_factory=dict[str, "MasterEntity"])
    by_id: dict[str, MasterEntity] = field(default_factory=dict[str, "MasterEntity"])
    keyed: list[tuple[str, MasterEntity]] = field(
        default_factory=list[tuple[str, "MasterEntity"]]
    )


@dataclass(slots=True)
class MasterDataCache:
    """Snapshot of master data for a single import run.

    Built once per run with :meth:`prefetch` and handed explicitly to every
    stage that needs it. Only the sequential master-creation stage mutates it
    (via :meth:`register_created`).
    """

    _indexes: dict[EntityType, _EntityIndex] = field(
        default_factory=dict["EntityType", _EntityIndex]
    )

    @classmethod
    def prefetch(
        cls,
        source: MasterEntitySource,
        entity_types: Iterable[EntityType],
    ) -> MasterDataCache:
        cache = cls()
        for entity_type in dict.fromkeys(entity_types):
            entities = source.list_all(entity_type)
            index = cache._index_for(entity_type)
            for entity in entities:
                cache._add(index, entity.name, entity)
            log.info("Prefetched %s %s master(s)", len(entities), entity_type)
        return cache

    def get(self, entity_type: EntityType, name: str) -> MasterEntity | None:
        index = self._indexes.get(entity_type)
        if index is None:
            return None
        return index.by_key.get(canonicalize(name))

    def get_by_id(self, entity_type: EntityType, master_id: str) -> MasterEntity | None:
        index = self._indexes.get(entity_type)
        if index is None:
            return None
        return index.by_id.get(master_id)

    def entities(self, entity_type: EntityType) -> tuple[MasterEntity, ...]:
        index = self._indexes.get(entity_type)
        if index is None:
            return ()
        return tuple(index.by_id.values())

    def keyed_entities(self, entity_type: EntityType) -> tuple[tuple[str, MasterEntity], ...]:
        """``(canonical_key, entity)`` pairs in prefetch/registration order."""

        index = self._indexes.get(entity_type)
        if index is None:
            return ()
        return tuple(index.keyed)

    def register_created(self, entity_type: EntityType, name: str, entity: MasterEntity) -> None:
        index = self._index_for(entity_type)
        self._add(index, name, entity)
        if entity.name != name:
            self._add(index, entity.name, entity)

    def _index_for(self, entity_type: EntityType) -> _EntityIndex:
        return self._indexes.setdefault(entity_type, _EntityIndex())

    @staticmethod
    def _add(index: _EntityIndex, name: str, entity: MasterEntity) -> None:
        if entity.id not in index.by_id:
            index.by_id[entity.id] = entity
        key = canonicalize(name)
        if not key:
            log.warning("Master %s has a blank canonical name (%r)", entity.id, name)
            return
        current = index.by_key.get(key)
        if current is None:
            index.by_key[key] = entity
            index.keyed.append((key, entity))
        elif current.id != entity.id:
            log.warning(
                "Masters %s and %s share canonical name %r; keeping %s",
                current.id,
                entity.id,
                key,
                current.id,
            )
