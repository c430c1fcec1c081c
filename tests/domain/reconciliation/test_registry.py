from __future__ import annotations

from sawitsync.domain.model import EntityType
from sawitsync.domain.reconciliation import MasterDataCache
from tests.helpers.reconciliation import FakeMasterSource, company, estate


def test_prefetch_loads_each_entity_type_once() -> None:
    source = FakeMasterSource(company("c1", "PT Sawit Makmur"), estate("e1", "Kebun Utara"))

    cache = MasterDataCache.prefetch(
        source,
        [EntityType.COMPANY, EntityType.ESTATE, EntityType.COMPANY],
    )

    assert source.list_calls == 2
    entity = cache.get(EntityType.COMPANY, "pt. sawit makmur")
    assert entity is not None
    assert entity.id == "c1"
    assert cache.get(EntityType.ESTATE, "PT Sawit Makmur") is None


def test_first_master_keeps_a_shared_canonical_name() -> None:
    cache = MasterDataCache.prefetch(
        FakeMasterSource(company("c1", "PT Sawit"), company("c2", "CV Sawit")),
        [EntityType.COMPANY],
    )

    entity = cache.get(EntityType.COMPANY, "Sawit")
    assert entity is not None
    assert entity.id == "c1"
    assert [item.id for item in cache.entities(EntityType.COMPANY)] == ["c1", "c2"]
    assert [key for key, _ in cache.keyed_entities(EntityType.COMPANY)] == ["sawit"]


def test_register_created_makes_new_master_visible_under_both_names() -> None:
    cache = MasterDataCache.prefetch(FakeMasterSource(), [EntityType.ESTATE])
    created = estate("e9", "Kebun Baru")

    cache.register_created(EntityType.ESTATE, "KEBUN BARU (lama)", created)

    assert cache.get(EntityType.ESTATE, "kebun baru") is created
    assert cache.get_by_id(EntityType.ESTATE, "e9") is created


def test_lookups_for_unknown_types_return_nothing() -> None:
    cache = MasterDataCache()

    assert cache.get(EntityType.COMPANY, "anything") is None
    assert cache.get_by_id(EntityType.COMPANY, "c1") is None
    assert cache.entities(EntityType.COMPANY) == ()
    assert cache.keyed_entities(EntityType.COMPANY) == ()
