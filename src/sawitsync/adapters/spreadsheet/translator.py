"""Translate spreadsheet rows into candidate records."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from sawitsync.domain.errors import ParseContractViolation
from sawitsync.domain.model import (
    CandidateRecord,
    EntityType,
    FieldValue,
    InvalidRow,
    ParsedRows,
    RecordType,
)

from .headers import HARVEST_COLUMNS, TRANSPORT_COLUMNS, ColumnSpec, map_columns
from .schema import HarvestRow, TransportRow

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

log = logging.getLogger(__name__)

FIRST_DATA_ROW = 2
AVERAGE_BUNCH_WEIGHT_KG: Final[Decimal] = Decimal(15)

COLUMNS: Final[dict[RecordType, tuple[ColumnSpec, ...]]] = {
    RecordType.TRANSPORT: TRANSPORT_COLUMNS,
    RecordType.HARVEST: HARVEST_COLUMNS,
}

# (field, note key) pairs in the order the dashboard renders them
_TRANSPORT_NOTE_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("no_mobil", "no_mobil"),
    ("nama_supir", "supir"),
    ("brondolan", "brondolan"),
    ("berat_di_kirim", "berat_di"),
    ("no_tiket", "no_tiket"),
    ("code", "code"),
    ("bruto", "bruto"),
    ("tarra", "tarra"),
    ("netto", "netto"),
    ("potongan", "poto"),
    ("berat", "berat"),
    ("tonase", "tonase"),
    ("jjg", "jjg"),
    ("tahun", "tahun"),
    ("no_spb", "no_spb"),
)


def parse_rows(
    record_type: RecordType,
    rows: Iterable[Mapping[str, object]],
    *,
    headers: Sequence[str] | None = None,
) -> ParsedRows:
    """Validate raw header-keyed rows.

    Blank rows are skipped silently. Every other row becomes either a
    :class:`CandidateRecord` or an :class:`InvalidRow` with a reason; this
    function never raises for bad data.
    """

    materialized = list(rows)
    sheet_headers = list(headers) if headers is not None else _headers_of(materialized)
    columns = COLUMNS[record_type]
    column_map = map_columns(sheet_headers, columns)
    missing = tuple(
        spec.primary for spec in columns if spec.required and spec.field not in column_map
    )

    parsed = ParsedRows(record_type=record_type, missing_columns=missing)
    for row_number, row in enumerate(materialized, start=FIRST_DATA_ROW):
        if _is_blank(row):
            continue
        if missing:
            parsed.invalid_rows.append(
                InvalidRow(
                    row_number=row_number,
                    reason=f"missing required column(s): {', '.join(missing)}",
                )
            )
            continue
        payload = {field: row.get(header) for field, header in column_map.items()}
        try:
            candidate = translate_row(record_type, payload, row_number=row_number)
        except ValidationError as exc:
            parsed.invalid_rows.append(
                InvalidRow(row_number=row_number, reason=_describe_validation_error(exc))
            )
            continue
        except ParseContractViolation as exc:
            parsed.invalid_rows.append(InvalidRow(row_number=row_number, reason=str(exc)))
            continue
        parsed.candidates.append(candidate)

    log.info(
        "Parsed %s %s row(s): %s valid, %s invalid",
        parsed.total_rows,
        record_type,
        len(parsed.candidates),
        len(parsed.invalid_rows),
    )
    return parsed


def translate_row(
    record_type: RecordType,
    payload: Mapping[str, object],
    *,
    row_number: int,
) -> CandidateRecord:
    if record_type is RecordType.TRANSPORT:
        return _transport_candidate(TransportRow.model_validate(payload), row_number)
    return _harvest_candidate(HarvestRow.model_validate(payload), row_number)


def build_transport_notes(row: TransportRow) -> str:
    """``key=value`` pairs joined by ``"; "``, skipping blank cells."""

    notes: list[str] = []
    for field, key in _TRANSPORT_NOTE_FIELDS:
        value = getattr(row, field)
        if value is None or value == "":
            continue
        rendered = format(value, "f") if isinstance(value, Decimal) else str(value)
        notes.append(f"{key}={rendered}")
    return "; ".join(notes)


def _transport_candidate(row: TransportRow, row_number: int) -> CandidateRecord:
    if (
        row.pt is None
        or row.date_panen is None
        or row.division_id is None
        or row.block_no is None
    ):
        raise _missing_values(
            row_number,
            pt=row.pt,
            tanggal=row.date_panen,
            divisi=row.division_id,
            blok=row.block_no,
        )

    jumlah = row.jumlah if row.jumlah is not None else Decimal(0)
    fields: dict[str, FieldValue] = {
        "date_panen": row.date_panen,
        "date_angkut": row.date_angkut,
        "division_id": row.division_id,
        "block_no": row.block_no,
        "no_spb": row.no_spb,
        "jumlah": jumlah,
        "weight_kg": _transport_weight(row, jumlah),
        "notes": build_transport_notes(row) or None,
    }
    references = {EntityType.COMPANY: row.pt}
    if row.estate:
        references[EntityType.ESTATE] = row.estate
    else:
        # without an estate cell the division code doubles as the estate id
        fields["estate_id"] = row.division_id.upper()
    return CandidateRecord(
        record_type=RecordType.TRANSPORT,
        row_number=row_number,
        fields=fields,
        references=references,
    )


def _harvest_candidate(row: HarvestRow, row_number: int) -> CandidateRecord:
    if (
        row.estate is None
        or row.date_panen is None
        or row.division_id is None
        or row.block_no is None
    ):
        raise _missing_values(
            row_number,
            estate=row.estate,
            tanggal=row.date_panen,
            divisi=row.division_id,
            blok=row.block_no,
        )

    fields: dict[str, FieldValue] = {
        "date_panen": row.date_panen,
        "division_id": row.division_id,
        "block_no": row.block_no,
        "no_tph": row.no_tph,
        "janjang_tbs": row.janjang_tbs if row.janjang_tbs is not None else Decimal(0),
        "janjang_kosong": row.janjang_kosong if row.janjang_kosong is not None else Decimal(0),
        "weight_kg": row.weight_kg if row.weight_kg is not None else Decimal(0),
        "employee_name": row.employee_name,
        "mandor_name": row.mandor_name,
        "notes": row.notes,
    }
    return CandidateRecord(
        record_type=RecordType.HARVEST,
        row_number=row_number,
        fields=fields,
        references={EntityType.ESTATE: row.estate},
    )


def _transport_weight(row: TransportRow, jumlah: Decimal) -> Decimal:
    if row.netto is not None:
        return row.netto
    if row.berat is not None:
        return row.berat
    return jumlah * AVERAGE_BUNCH_WEIGHT_KG


def _missing_values(row_number: int, **values: object) -> ParseContractViolation:
    missing = [name for name, value in values.items() if value is None]
    return ParseContractViolation(
        f"row {row_number} is missing required value(s): {', '.join(missing)}",
        row_number=row_number,
    )


def _headers_of(rows: Sequence[Mapping[str, object]]) -> list[str]:
    headers: dict[str, None] = {}
    for row in rows:
        for header in row:
            if header is not None:
                headers.setdefault(str(header), None)
    return list(headers)


def _is_blank(row: Mapping[str, object]) -> bool:
    return all(
        value is None or (isinstance(value, str) and not value.strip()) for value in row.values()
    )


def _describe_validation_error(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
