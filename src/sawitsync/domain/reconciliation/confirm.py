"""Explicit, human-confirmed changes to master data and alias memory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sawitsync.domain.canonicalization import display_name

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sawitsync.domain.model import EntityType, MasterEntity
    from sawitsync.domain.ports import AliasStore, MasterEntitySource

    from .aliases import AliasBatchResult
    from .registry import MasterDataCache

log = logging.getLogger(__name__)


def confirm_aliases(
    aliases: AliasStore,
    entity_type: EntityType,
    mappings: Mapping[str, str],
    *,
    confirmed_by: str,
    overwrite: bool = False,
) -> AliasBatchResult:
    """Remember ``raw name -> master id`` choices made by a reviewer."""

    result = aliases.save_batch(
        entity_type,
        mappings,
        overwrite=overwrite,
        confirmed_by=confirmed_by,
    )
    log.info(
        "%s confirmed %s %s alias(es), %s rejected",
        confirmed_by,
        len(result.saved),
        entity_type,
        len(result.errors),
    )
    return result


def confirm_new_master(
    masters: MasterEntitySource,
    aliases: AliasStore,
    entity_type: EntityType,
    raw_names: Sequence[str],
    *,
    confirmed_by: str,
    name: str | None = None,
    registry: MasterDataCache | None = None,
) -> tuple[MasterEntity, AliasBatchResult]:
    """Create a master for spellings nothing matched and alias all of them to it.

    ``name`` defaults to the display form of the first raw spelling. When a
    run-scoped ``registry`` is given the new master is registered there too.
    """

    spellings = [raw for raw in raw_names if isinstance(raw, str) and raw.strip()]
    if not spellings and not (name and name.strip()):
        raise ValueError("A new master needs a name or at least one raw spelling")

    master_name = display_name(name if name and name.strip() else spellings[0])
    entity = masters.create(entity_type, master_name)
    log.info("%s created %s master %r (%s)", confirmed_by, entity_type, entity.name, entity.id)
    if registry is not None:
        registry.register_created(entity_type, master_name, entity)

    result = aliases.save_batch(
        entity_type,
        dict.fromkeys(spellings, entity.id),
        confirmed_by=confirmed_by,
    )
    return entity, result
