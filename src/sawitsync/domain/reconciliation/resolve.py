"""Identifier resolution against master data.

Responsibilities of this stage:
- map each distinct raw identifier to a master id, trying alias memory first,
  then canonical exact match, prefix containment and finally fuzzy similarity
- collapse unresolved spellings that share a canonical key into one entry
- flag distinct spellings that landed on the same master through a loose match

Out of scope for this stage:
- creating masters or saving aliases (see ``confirm`` and ``pipeline``)
- any persistence side effect; resolution is read-only
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sawitsync.domain.canonicalization import canonicalize
from sawitsync.domain.model import ResolutionSource
from sawitsync.domain.similarity import levenshtein_ratio

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sawitsync.domain.model import EntityType, MasterEntity
    from sawitsync.domain.ports import AliasStore
    from sawitsync.domain.similarity import Similarity

    from .registry import MasterDataCache

log = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.70

_LOOSE_SOURCES = frozenset({ResolutionSource.PREFIX, ResolutionSource.FUZZY})


@dataclass(slots=True, frozen=True, kw_only=True)
class Suggestion:
    master_id: str
    master_name: str
    score: float


@dataclass(slots=True, frozen=True, kw_only=True)
class ResolvedName:
    raw_name: str
    entity_type: EntityType
    master_id: str
    master_name: str
    source: ResolutionSource
    score: float = 1.0


@dataclass(slots=True, frozen=True, kw_only=True)
class UnresolvedName:
    """Every raw spelling of one unknown identifier, with the closest master seen."""

    entity_type: EntityType
    canonical_key: str
    raw_names: tuple[str, ...]
    suggestion: Suggestion | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class SharedTargetWarning:
    """Distinct identifiers resolved to one master through prefix or fuzzy matching."""

    entity_type: EntityType
    master_id: str
    master_name: str
    raw_names: tuple[str, ...]

    def __str__(self) -> str:
        names = ", ".join(repr(name) for name in self.raw_names)
        return f"{self.entity_type} {names} all resolved to {self.master_name!r}"


@dataclass(slots=True, kw_only=True)
class ResolutionReport:
    """Per-type outcome; ``resolved`` is keyed by :func:`fold_name` of the raw spelling."""

    entity_type: EntityType
    resolved: dict[str, ResolvedName] = field(default_factory=dict[str, ResolvedName])
    unresolved: list[UnresolvedName] = field(default_factory=list[UnresolvedName])
    warnings: list[SharedTargetWarning] = field(default_factory=list[SharedTargetWarning])

    def master_id_for(self, raw_name: str) -> str | None:
        resolved = self.resolved.get(fold_name(raw_name))
        return resolved.master_id if resolved is not None else None


@dataclass(slots=True, frozen=True)
class _CanonicalMatch:
    master: MasterEntity | None
    source: ResolutionSource | None = None
    score: float = 0.0
    suggestion: Suggestion | None = None


def resolve_names(
    names: Iterable[str],
    *,
    entity_type: EntityType,
    registry: MasterDataCache,
    aliases: AliasStore,
    similarity: Similarity = levenshtein_ratio,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> ResolutionReport:
    """Resolve raw identifiers of one entity type.

    Matching order per distinct name:
    - stored alias for the verbatim (trimmed) spelling -> ``alias``
    - canonical key equals a master's canonical key -> ``exact``
    - one canonical key starts with the other -> ``prefix``
    - best similarity at or above ``threshold`` -> ``fuzzy``

    Canonical stages run once per canonical key. Ties in prefix or fuzzy
    matching go to the master that comes first in registry order.
    """

    report = ResolutionReport(entity_type=entity_type)
    matches: dict[str, _CanonicalMatch] = {}
    pending: dict[str, list[str]] = {}

    for raw_name in _distinct_names(names):
        resolved = _resolve_alias(raw_name, entity_type, registry, aliases)
        if resolved is None:
            key = canonicalize(raw_name)
            match = matches.get(key)
            if match is None:
                match = _match_canonical(key, entity_type, registry, similarity, threshold)
                matches[key] = match
            if match.master is None or match.source is None:
                pending.setdefault(key, []).append(raw_name)
                continue
            resolved = ResolvedName(
                raw_name=raw_name,
                entity_type=entity_type,
                master_id=match.master.id,
                master_name=match.master.name,
                source=match.source,
                score=match.score,
            )
        report.resolved[fold_name(raw_name)] = resolved

    report.unresolved = [
        UnresolvedName(
            entity_type=entity_type,
            canonical_key=key,
            raw_names=tuple(raw_names),
            suggestion=matches[key].suggestion,
        )
        for key, raw_names in pending.items()
    ]
    report.warnings = _shared_target_warnings(entity_type, report.resolved.values())

    log.info(
        "Resolved %s of %s %s identifier(s); %s unresolved group(s)",
        len(report.resolved),
        len(report.resolved) + sum(len(group.raw_names) for group in report.unresolved),
        entity_type,
        len(report.unresolved),
    )
    return report


@dataclass(slots=True, kw_only=True)
class EntityResolver:
    """Resolver bound to an alias store and a similarity strategy."""

    aliases: AliasStore
    similarity: Similarity = levenshtein_ratio
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD

    def __post_init__(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"Similarity threshold must be within [0, 1], got {self.threshold}")

    def resolve(
        self,
        names: Iterable[str],
        *,
        entity_type: EntityType,
        registry: MasterDataCache,
    ) -> ResolutionReport:
        return resolve_names(
            names,
            entity_type=entity_type,
            registry=registry,
            aliases=self.aliases,
            similarity=self.similarity,
            threshold=self.threshold,
        )


def fold_name(raw_name: str) -> str:
    """Key under which a raw spelling is de-duplicated within one batch."""

    return raw_name.strip().casefold()


def _distinct_names(names: Iterable[str]) -> list[str]:
    # first spelling wins among case variants
    seen: dict[str, str] = {}
    for name in names:
        if not isinstance(name, str):
            continue
        trimmed = name.strip()
        if trimmed:
            seen.setdefault(trimmed.casefold(), trimmed)
    return list(seen.values())


def _resolve_alias(
    raw_name: str,
    entity_type: EntityType,
    registry: MasterDataCache,
    aliases: AliasStore,
) -> ResolvedName | None:
    master_id = aliases.lookup(entity_type, raw_name)
    if master_id is None:
        return None
    master = registry.get_by_id(entity_type, master_id)
    if master is None:
        log.warning(
            "%s alias %r points at unknown master %s; falling back to matching",
            entity_type,
            raw_name,
            master_id,
        )
        return None
    return ResolvedName(
        raw_name=raw_name,
        entity_type=entity_type,
        master_id=master.id,
        master_name=master.name,
        source=ResolutionSource.ALIAS,
    )


def _match_canonical(
    key: str,
    entity_type: EntityType,
    registry: MasterDataCache,
    similarity: Similarity,
    threshold: float,
) -> _CanonicalMatch:
    if not key:
        return _CanonicalMatch(master=None)

    exact = registry.get(entity_type, key)
    if exact is not None:
        return _CanonicalMatch(master=exact, source=ResolutionSource.EXACT, score=1.0)

    candidates = registry.keyed_entities(entity_type)
    for master_key, master in candidates:
        if master_key.startswith(key) or key.startswith(master_key):
            return _CanonicalMatch(
                master=master,
                source=ResolutionSource.PREFIX,
                score=similarity(key, master_key),
            )

    best: MasterEntity | None = None
    best_score = 0.0
    for master_key, master in candidates:
        score = similarity(key, master_key)
        # strict comparison keeps the earliest master on ties
        if best is None or score > best_score:
            best, best_score = master, score

    if best is None:
        return _CanonicalMatch(master=None)
    if best_score >= threshold:
        return _CanonicalMatch(master=best, source=ResolutionSource.FUZZY, score=best_score)
    return _CanonicalMatch(
        master=None,
        suggestion=Suggestion(master_id=best.id, master_name=best.name, score=best_score),
    )


def _shared_target_warnings(
    entity_type: EntityType,
    resolved: Iterable[ResolvedName],
) -> list[SharedTargetWarning]:
    by_master: dict[str, list[ResolvedName]] = {}
    for item in resolved:
        by_master.setdefault(item.master_id, []).append(item)

    warnings: list[SharedTargetWarning] = []
    for master_id, group in by_master.items():
        keys = {canonicalize(item.raw_name) for item in group}
        if len(keys) < 2 or not any(item.source in _LOOSE_SOURCES for item in group):
            continue
        warning = SharedTargetWarning(
            entity_type=entity_type,
            master_id=master_id,
            master_name=group[0].master_name,
            raw_names=tuple(item.raw_name for item in group),
        )
        log.warning("Possible merge: %s", warning)
        warnings.append(warning)
    return warnings
