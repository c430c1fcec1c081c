"""Master entities and the alias memory that points spreadsheet spellings at them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sawitsync.domain.model.enums import EntityType


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class MasterEntity:
    """A canonical company or estate owned by the dashboard."""

    id: str
    entity_type: EntityType
    name: str
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(eq=False, kw_only=True)
class AliasChange:
    """Audit record written whenever an alias is created or repointed."""

    entity_type: EntityType
    alias_name: str
    previous_master_id: str | None
    master_id: str
    changed_by: str | None = None
    changed_at: datetime = field(default_factory=_utcnow)


@dataclass(eq=False, kw_only=True)
class Alias:
    """Confirmed mapping from a raw spreadsheet spelling to a master id.

    ``alias_name`` is stored trimmed but otherwise verbatim; lookups never
    canonicalize it.
    """

    entity_type: EntityType
    alias_name: str
    master_id: str
    confirmed_by: str | None = None
    revision: int = 1
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        self.alias_name = normalize_alias_name(self.alias_name)
        if not self.alias_name:
            raise ValueError("Alias name must not be blank")

    @classmethod
    def create(
        cls,
        *,
        entity_type: EntityType,
        alias_name: str,
        master_id: str,
        confirmed_by: str | None = None,
    ) -> tuple[Alias, AliasChange]:
        alias = cls(
            entity_type=entity_type,
            alias_name=alias_name,
            master_id=master_id,
            confirmed_by=confirmed_by,
        )
        change = AliasChange(
            entity_type=entity_type,
            alias_name=alias.alias_name,
            previous_master_id=None,
            master_id=master_id,
            changed_by=confirmed_by,
            changed_at=alias.created_at,
        )
        return alias, change

    def repoint(self, master_id: str, *, changed_by: str | None = None) -> AliasChange:
        """Move this alias to another master and return the audit record."""

        now = _utcnow()
        change = AliasChange(
            entity_type=self.entity_type,
            alias_name=self.alias_name,
            previous_master_id=self.master_id,
            master_id=master_id,
            changed_by=changed_by,
            changed_at=now,
        )
        self.master_id = master_id
        self.confirmed_by = changed_by
        self.revision += 1
        self.updated_at = now
        return change


def normalize_alias_name(raw: str) -> str:
    return raw.strip() if isinstance(raw, str) else ""
