from __future__ import annotations

from decimal import Decimal

from sawitsync.domain.model import HARVEST_SCHEMA, TRANSPORT_SCHEMA, DiffStatus
from sawitsync.domain.reconciliation import classify
from sawitsync.domain.reconciliation.classify import changed_fields, comparable_value
from tests.helpers.reconciliation import bound, existing_from, statuses, transport_candidate

_IDS = {"company_id": "c1", "estate_id": "e1"}


def test_unknown_key_is_new_and_identical_record_is_duplicate() -> None:
    stored = bound(transport_candidate(block_no="A01"), **_IDS)
    same = bound(transport_candidate(block_no="A01"), **_IDS)
    fresh = bound(transport_candidate(block_no="A02"), **_IDS)

    result = classify(
        [same, fresh],
        {stored.natural_key: existing_from(stored, "r1")},
        schema=TRANSPORT_SCHEMA,
    )

    assert statuses(result.records) == [DiffStatus.DUPLICATE, DiffStatus.NEW]
    assert result.records[0].existing_id == "r1"
    assert [record.natural_key for record in result.write_plan()] == [fresh.natural_key]


def test_changed_comparable_field_marks_update_with_field_names() -> None:
    stored = bound(transport_candidate(weight_kg="1500"), **_IDS)
    changed = bound(transport_candidate(weight_kg="1600", notes="revisi"), **_IDS)

    result = classify(
        [changed],
        {stored.natural_key: existing_from(stored, "r1")},
        schema=TRANSPORT_SCHEMA,
    )

    (record,) = result.write_plan()
    assert record.status is DiffStatus.UPDATED
    assert record.existing_id == "r1"
    assert record.changed_fields == ("weight_kg", "notes")


def test_numeric_noise_below_precision_is_not_a_change() -> None:
    stored = bound(transport_candidate(weight_kg="1500.001", jumlah="100"), **_IDS)
    noisy = bound(transport_candidate(weight_kg="1500.004", jumlah="100.0"), **_IDS)

    result = classify(
        [noisy],
        {stored.natural_key: existing_from(stored, "r1")},
        schema=TRANSPORT_SCHEMA,
    )

    assert statuses(result.records) == [DiffStatus.DUPLICATE]
    assert result.write_plan() == []


def test_repeated_key_in_batch_shadows_earlier_candidate() -> None:
    first = bound(transport_candidate(row_number=2, weight_kg="1000"), **_IDS)
    again = bound(transport_candidate(row_number=3, weight_kg="1000"), **_IDS)
    revised = bound(transport_candidate(row_number=4, weight_kg="1200"), **_IDS)

    result = classify([first, again, revised], {}, schema=TRANSPORT_SCHEMA)

    assert statuses(result.records) == [DiffStatus.NEW, DiffStatus.DUPLICATE, DiffStatus.UPDATED]
    assert result.records[2].supersedes is True
    assert result.superseded == [result.records[2]]
    (planned,) = result.write_plan()
    assert planned.status is DiffStatus.NEW
    assert planned.candidate.row_number == 4
    assert planned.fields["weight_kg"] == Decimal(1200)


def test_batch_update_after_stored_duplicate_becomes_single_update() -> None:
    stored = bound(transport_candidate(weight_kg="1000"), **_IDS)
    first = bound(transport_candidate(row_number=2, weight_kg="1000"), **_IDS)
    second = bound(transport_candidate(row_number=3, weight_kg="1100"), **_IDS)

    result = classify(
        [first, second],
        {stored.natural_key: existing_from(stored, "r1")},
        schema=TRANSPORT_SCHEMA,
    )

    assert statuses(result.records) == [DiffStatus.DUPLICATE, DiffStatus.UPDATED]
    (planned,) = result.write_plan()
    assert planned.status is DiffStatus.UPDATED
    assert planned.existing_id == "r1"
    assert planned.changed_fields == ("weight_kg",)
    assert planned.supersedes is False
    assert result.superseded == []


def test_new_then_changed_keeps_new_status_and_latest_fields() -> None:
    first = bound(transport_candidate(row_number=2, no_spb="SPB-1"), **_IDS)
    second = bound(transport_candidate(row_number=3, no_spb="SPB-2"), **_IDS)

    result = classify([first, second], {}, schema=TRANSPORT_SCHEMA)

    (planned,) = result.write_plan()
    assert planned.status is DiffStatus.NEW
    assert planned.fields["no_spb"] == "SPB-2"
    assert len(result.new) == 1
    assert result.updated == []


def test_blank_text_and_missing_values_compare_equal() -> None:
    assert changed_fields(HARVEST_SCHEMA, {"notes": "  "}, {"notes": None}) == ()
    assert changed_fields(HARVEST_SCHEMA, {"employee_name": "Budi"}, {}) == ("employee_name",)


def test_comparable_value_rounds_half_up_to_precision() -> None:
    (weight,) = (spec for spec in TRANSPORT_SCHEMA.comparable_fields if spec.name == "weight_kg")

    assert comparable_value(weight, "10.005") == Decimal("10.01")
    assert comparable_value(weight, 10.004) == Decimal("10.00")
    assert comparable_value(weight, "") is None
    assert comparable_value(weight, "n/a") is None
