from __future__ import annotations

from typing import cast

import pytest

from sawitsync.domain.model import EntityType, ResolutionSource
from sawitsync.domain.reconciliation import EntityResolver, fold_name, resolve_names
from sawitsync.domain.similarity import token_sort_ratio
from tests.helpers.reconciliation import FakeAliasStore, company, estate, registry_of


def test_spellings_differing_only_cosmetically_resolve_to_one_master() -> None:
    registry = registry_of(company("c1", "PT Sawit Makmur"))

    report = resolve_names(
        ["PT Sawit Makmur", "PT. Sawit Makmur", "Sawit Makmur (Persero)"],
        entity_type=EntityType.COMPANY,
        registry=registry,
        aliases=FakeAliasStore(),
    )

    assert {item.master_id for item in report.resolved.values()} == {"c1"}
    assert {item.source for item in report.resolved.values()} == {ResolutionSource.EXACT}
    assert report.unresolved == []
    assert report.warnings == []


def test_alias_memory_wins_over_canonical_matching() -> None:
    registry = registry_of(company("c1", "PT Sawit Makmur"), company("c2", "PT Sawit Jaya"))
    aliases = FakeAliasStore()
    aliases.save(EntityType.COMPANY, "Sawit Makmur", "c2")

    report = resolve_names(
        ["Sawit Makmur"],
        entity_type=EntityType.COMPANY,
        registry=registry,
        aliases=aliases,
    )

    resolved = report.resolved[fold_name("Sawit Makmur")]
    assert resolved.master_id == "c2"
    assert resolved.source is ResolutionSource.ALIAS


def test_alias_to_unknown_master_falls_back_to_matching() -> None:
    registry = registry_of(company("c1", "PT Sawit Makmur"))
    aliases = FakeAliasStore()
    aliases.save(EntityType.COMPANY, "PT Sawit Makmur", "deleted")

    report = resolve_names(
        ["PT Sawit Makmur"],
        entity_type=EntityType.COMPANY,
        registry=registry,
        aliases=aliases,
    )

    assert report.master_id_for("PT Sawit Makmur") == "c1"
    assert report.resolved[fold_name("PT Sawit Makmur")].source is ResolutionSource.EXACT


def test_prefix_containment_matches_either_direction() -> None:
    registry = registry_of(company("c1", "Sawit Makmur Abadi"), estate("e1", "Utara"))

    companies = resolve_names(
        ["PT Sawit Makmur"],
        entity_type=EntityType.COMPANY,
        registry=registry,
        aliases=FakeAliasStore(),
    )
    estates = resolve_names(
        ["Utara Blok Baru"],
        entity_type=EntityType.ESTATE,
        registry=registry,
        aliases=FakeAliasStore(),
    )

    assert companies.resolved[fold_name("PT Sawit Makmur")].source is ResolutionSource.PREFIX
    assert estates.master_id_for("Utara Blok Baru") == "e1"


def test_fuzzy_match_reports_similarity_score() -> None:
    registry = registry_of(estate("e1", "Kebun Utara"))

    report = resolve_names(
        ["Kebun Utama"],
        entity_type=EntityType.ESTATE,
        registry=registry,
        aliases=FakeAliasStore(),
    )

    resolved = report.resolved[fold_name("Kebun Utama")]
    assert resolved.source is ResolutionSource.FUZZY
    assert resolved.score == pytest.approx(10 / 11)


def test_fuzzy_threshold_is_inclusive() -> None:
    registry = registry_of(estate("e1", "abcdefghij"))

    at_threshold = resolve_names(
        ["abcdefgxyz"],
        entity_type=EntityType.ESTATE,
        registry=registry,
        aliases=FakeAliasStore(),
        threshold=0.70,
    )
    above_threshold = resolve_names(
        ["abcdefgxyz"],
        entity_type=EntityType.ESTATE,
        registry=registry,
        aliases=FakeAliasStore(),
        threshold=0.71,
    )

    assert at_threshold.master_id_for("abcdefgxyz") == "e1"
    assert above_threshold.master_id_for("abcdefgxyz") is None
    suggestion = above_threshold.unresolved[0].suggestion
    assert suggestion is not None
    assert suggestion.master_id == "e1"
    assert suggestion.score == pytest.approx(0.7)


def test_fuzzy_ties_go_to_earliest_master() -> None:
    registry = registry_of(estate("e1", "abcx"), estate("e2", "abcy"))

    report = resolve_names(
        ["abcz"],
        entity_type=EntityType.ESTATE,
        registry=registry,
        aliases=FakeAliasStore(),
    )

    assert report.master_id_for("abcz") == "e1"


def test_unresolved_spellings_are_grouped_by_canonical_key() -> None:
    registry = registry_of(company("c1", "PT Kelapa Hijau"))

    report = resolve_names(
        ["PT Baru Jaya", "PT. Baru Jaya", "Bukit Emas", "CV Baru Jaya"],
        entity_type=EntityType.COMPANY,
        registry=registry,
        aliases=FakeAliasStore(),
    )

    assert report.resolved == {}
    groups = {group.canonical_key: group.raw_names for group in report.unresolved}
    assert groups == {
        "baru jaya": ("PT Baru Jaya", "PT. Baru Jaya", "CV Baru Jaya"),
        "bukit emas": ("Bukit Emas",),
    }


def test_case_variants_are_looked_up_once_and_first_spelling_wins() -> None:
    registry = registry_of(estate("e1", "Kebun Utara"))
    aliases = FakeAliasStore()

    names = cast("list[str]", ["Kebun Utara", " KEBUN UTARA ", "kebun utara", "", None])

    report = resolve_names(
        names,
        entity_type=EntityType.ESTATE,
        registry=registry,
        aliases=aliases,
    )

    assert list(report.resolved) == ["kebun utara"]
    assert report.resolved["kebun utara"].raw_name == "Kebun Utara"
    assert report.master_id_for("KEBUN utara") == "e1"
    assert aliases.lookups == [(EntityType.ESTATE, "Kebun Utara")]


def test_distinct_names_landing_on_one_master_loosely_raise_a_warning() -> None:
    registry = registry_of(company("c1", "PT Sawit Makmur"))

    report = resolve_names(
        ["PT Sawit Makmur", "Sawit Makmur Abadi"],
        entity_type=EntityType.COMPANY,
        registry=registry,
        aliases=FakeAliasStore(),
    )

    assert len(report.warnings) == 1
    warning = report.warnings[0]
    assert warning.master_id == "c1"
    assert warning.raw_names == ("PT Sawit Makmur", "Sawit Makmur Abadi")


def test_entity_resolver_uses_configured_similarity() -> None:
    registry = registry_of(estate("e1", "Utara Kebun"))
    resolver = EntityResolver(aliases=FakeAliasStore(), similarity=token_sort_ratio)

    report = resolver.resolve(["Kebun Utara"], entity_type=EntityType.ESTATE, registry=registry)

    assert report.master_id_for("Kebun Utara") == "e1"
    assert report.resolved[fold_name("Kebun Utara")].source is ResolutionSource.FUZZY


def test_entity_resolver_rejects_threshold_outside_unit_interval() -> None:
    with pytest.raises(ValueError, match="threshold"):
        EntityResolver(aliases=FakeAliasStore(), threshold=1.5)


def test_fuzzy_match_just_below_threshold_stays_unresolved() -> None:
    # four substitutions in thirteen characters score 9/13, just under 0.70
    registry = registry_of(estate("e1", "abcdefghijklm"))

    report = resolve_names(
        ["abcdefghiwxyz"],
        entity_type=EntityType.ESTATE,
        registry=registry,
        aliases=FakeAliasStore(),
    )

    assert report.resolved == {}
    (unresolved,) = report.unresolved
    assert unresolved.raw_names == ("abcdefghiwxyz",)
    assert unresolved.suggestion is not None
    assert unresolved.suggestion.master_id == "e1"
    assert unresolved.suggestion.score == pytest.approx(9 / 13)
