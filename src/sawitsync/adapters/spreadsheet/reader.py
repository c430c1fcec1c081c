"""Read CSV and Excel workbooks into header-keyed rows."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from openpyxl import load_workbook

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

log = logging.getLogger(__name__)

EXCEL_SUFFIXES = frozenset({".xlsx", ".xlsm"})
_CSV_DELIMITERS = ",;\t"


@dataclass(slots=True)
class SheetData:
    headers: list[str]
    rows: list[dict[str, object]] = field(default_factory=list[dict[str, object]])


class UnsupportedSheetError(ValueError):
    """Raised for files that are neither CSV nor a supported Excel workbook."""


def read_sheet(path: Path) -> SheetData:
    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return read_workbook(path)
    if suffix in {".csv", ".txt"}:
        return read_csv(path)
    raise UnsupportedSheetError(f"Unsupported spreadsheet type: {path.name}")


def read_csv(path: Path) -> SheetData:
    """Read a CSV export; BOMs are tolerated and the delimiter is sniffed."""

    with path.open(newline="", encoding="utf-8-sig") as handle:
        sample = handle.read(4096)
        handle.seek(0)
        try:
            dialect: type[csv.Dialect] | csv.Dialect = csv.Sniffer().sniff(
                sample, delimiters=_CSV_DELIMITERS
            )
        except csv.Error:
            dialect = csv.excel
        reader = csv.reader(handle, dialect)
        data = _from_rows(reader)
    log.info("Read %s row(s) from %s", len(data.rows), path)
    return data


def read_workbook(path: Path) -> SheetData:
    """Read the first worksheet of an Excel workbook (cached values, not formulas)."""

    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        worksheet = workbook.worksheets[0] if workbook.worksheets else None
        if worksheet is None:
            raise UnsupportedSheetError(f"Workbook {path.name} has no worksheet")
        data = _from_rows(worksheet.iter_rows(values_only=True))
    finally:
        workbook.close()
    log.info("Read %s row(s) from %s", len(data.rows), path)
    return data


def _from_rows(rows: Iterable[Iterable[object]]) -> SheetData:
    iterator = iter(rows)
    header_cells = next(iterator, None)
    if header_cells is None:
        return SheetData(headers=[])
    headers = [_header_text(cell) for cell in header_cells]
    data = SheetData(headers=[header for header in headers if header])
    for cells in iterator:
        values = list(cells)
        row: dict[str, object] = {}
        for index, header in enumerate(headers):
            if not header or header in row:
                continue
            row[header] = values[index] if index < len(values) else None
        data.rows.append(row)
    return data


def _header_text(cell: object) -> str:
    return "" if cell is None else str(cell).strip()
