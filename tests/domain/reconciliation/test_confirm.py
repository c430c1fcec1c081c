from __future__ import annotations

import pytest

from sawitsync.domain.model import EntityType
from sawitsync.domain.reconciliation import MasterDataCache, confirm_aliases, confirm_new_master
from tests.helpers.reconciliation import FakeAliasStore, FakeMasterSource, company


def test_confirm_aliases_records_operator() -> None:
    aliases = FakeAliasStore()

    result = confirm_aliases(
        aliases,
        EntityType.COMPANY,
        {"Sawit M.": "c1"},
        confirmed_by="rina",
    )

    assert result.ok
    assert result.saved[0].confirmed_by == "rina"
    assert aliases.lookup(EntityType.COMPANY, "Sawit M.") == "c1"


def test_confirm_aliases_repoints_only_with_overwrite() -> None:
    aliases = FakeAliasStore()
    aliases.save(EntityType.COMPANY, "SM", "c1")

    refused = confirm_aliases(aliases, EntityType.COMPANY, {"SM": "c2"}, confirmed_by="rina")
    accepted = confirm_aliases(
        aliases,
        EntityType.COMPANY,
        {"SM": "c2"},
        confirmed_by="rina",
        overwrite=True,
    )

    assert not refused.ok
    assert accepted.ok
    assert aliases.lookup(EntityType.COMPANY, "SM") == "c2"
    assert [change.previous_master_id for change in aliases.changes] == [None, "c1"]


def test_confirm_new_master_aliases_every_spelling() -> None:
    masters = FakeMasterSource(company("c1", "PT Sawit Makmur"))
    aliases = FakeAliasStore()
    registry = MasterDataCache.prefetch(masters, [EntityType.COMPANY])

    entity, result = confirm_new_master(
        masters,
        aliases,
        EntityType.COMPANY,
        ["PT Bukit Emas (baru)", "PT. Bukit Emas", "  "],
        confirmed_by="rina",
        registry=registry,
    )

    assert entity.name == "PT Bukit Emas"
    assert [alias.alias_name for alias in result.saved] == [
        "PT Bukit Emas (baru)",
        "PT. Bukit Emas",
    ]
    assert registry.get(EntityType.COMPANY, "bukit emas") is entity


def test_confirm_new_master_prefers_explicit_name() -> None:
    masters = FakeMasterSource()

    entity, result = confirm_new_master(
        masters,
        FakeAliasStore(),
        EntityType.ESTATE,
        [],
        confirmed_by="rina",
        name="Kebun Selatan",
    )

    assert entity.name == "Kebun Selatan"
    assert result.saved == []


def test_confirm_new_master_needs_a_name() -> None:
    with pytest.raises(ValueError, match="name"):
        confirm_new_master(
            FakeMasterSource(),
            FakeAliasStore(),
            EntityType.ESTATE,
            ["", "   "],
            confirmed_by="rina",
        )
