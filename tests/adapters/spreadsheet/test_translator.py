from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sawitsync.adapters.spreadsheet import TransportRow, build_transport_notes, parse_rows
from sawitsync.domain.model import EntityType, RecordType


def _transport_row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "Tanggal Panen": "01/03/2024",
        "PT": "PT Sawit Makmur",
        "Estate": "Kebun Utara",
        "Divisi": "1",
        "Blok": "A01",
        "No. SPB": "SPB-1",
        "Jumlah": "100",
        "Netto (kg)": "1.500,5",
        "No Mobil": "BK 1234",
        "Supir": "Andi",
    }
    row.update(overrides)
    return row


def test_transport_row_becomes_candidate_with_references() -> None:
    parsed = parse_rows(RecordType.TRANSPORT, [_transport_row()])

    assert parsed.invalid_rows == []
    (candidate,) = parsed.candidates
    assert candidate.row_number == 2
    assert candidate.references == {
        EntityType.COMPANY: "PT Sawit Makmur",
        EntityType.ESTATE: "Kebun Utara",
    }
    assert candidate.fields["date_panen"] == date(2024, 3, 1)
    assert candidate.fields["date_angkut"] == date(2024, 3, 1)
    assert candidate.fields["jumlah"] == Decimal(100)
    assert candidate.fields["weight_kg"] == Decimal("1500.5")
    assert candidate.fields["notes"] == "no_mobil=BK 1234; supir=Andi; netto=1500.5; no_spb=SPB-1"


def test_transport_weight_falls_back_to_bunch_estimate() -> None:
    parsed = parse_rows(RecordType.TRANSPORT, [_transport_row(**{"Netto (kg)": None})])

    assert parsed.candidates[0].fields["weight_kg"] == Decimal(1500)


def test_transport_without_estate_uses_division_code() -> None:
    parsed = parse_rows(RecordType.TRANSPORT, [_transport_row(Estate="", Divisi="div2")])

    (candidate,) = parsed.candidates
    assert EntityType.ESTATE not in candidate.references
    assert candidate.fields["estate_id"] == "DIV2"


def test_bad_rows_are_reported_and_blank_rows_skipped() -> None:
    rows = [
        _transport_row(),
        {key: "" for key in _transport_row()},
        _transport_row(Blok=None),
        _transport_row(**{"Tanggal Panen": "31/02/2024"}),
        _transport_row(Jumlah="banyak"),
    ]

    parsed = parse_rows(RecordType.TRANSPORT, rows)

    assert len(parsed.candidates) == 1
    assert parsed.total_rows == 4
    reasons = {invalid.row_number: invalid.reason for invalid in parsed.invalid_rows}
    assert reasons[4] == "row 4 is missing required value(s): blok"
    assert "date_panen" in reasons[5]
    assert "unrecognised date" in reasons[5]
    assert "jumlah" in reasons[6]


def test_missing_required_column_invalidates_every_row() -> None:
    rows = [{"Tanggal Panen": "01/03/2024", "Blok": "A01"}, {"Tanggal Panen": "02/03/2024"}]

    parsed = parse_rows(RecordType.TRANSPORT, rows)

    assert parsed.candidates == []
    assert parsed.missing_columns == ("pt",)
    assert [invalid.row_number for invalid in parsed.invalid_rows] == [2, 3]


def test_harvest_row_maps_alternative_headers() -> None:
    row = {
        "Tanggal": datetime(2024, 3, 1, 7, 30),
        "Kebun": "Kebun Utara",
        "Divisi": 2,
        "Blok": "B02",
        "TPH": 14.0,
        "JJG": "50",
        "Berat": "750",
        "Mandor": "Pak Joko",
    }

    parsed = parse_rows(RecordType.HARVEST, [row])

    (candidate,) = parsed.candidates
    assert candidate.references == {EntityType.ESTATE: "Kebun Utara"}
    assert candidate.fields["date_panen"] == date(2024, 3, 1)
    assert candidate.fields["division_id"] == "2"
    assert candidate.fields["no_tph"] == "14"
    assert candidate.fields["janjang_tbs"] == Decimal(50)
    assert candidate.fields["janjang_kosong"] == Decimal(0)
    assert candidate.fields["weight_kg"] == Decimal(750)
    assert candidate.fields["mandor_name"] == "Pak Joko"


def test_number_formats_are_normalised() -> None:
    rows = [
        _transport_row(Blok="A01", Jumlah="1,234.5"),
        _transport_row(Blok="A02", Jumlah="1.234"),
        _transport_row(Blok="A03", Jumlah="1.234.567"),
        _transport_row(Blok="A04", Jumlah=" 12 "),
    ]

    parsed = parse_rows(RecordType.TRANSPORT, rows)

    assert [candidate.fields["jumlah"] for candidate in parsed.candidates] == [
        Decimal("1234.5"),
        Decimal("1.234"),
        Decimal(1234567),
        Decimal(12),
    ]


def test_build_transport_notes_skips_blank_cells() -> None:
    row = TransportRow(no_tiket="T-9", code="", tahun="2024")

    assert build_transport_notes(row) == "no_tiket=T-9; tahun=2024"
