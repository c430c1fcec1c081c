"""Spreadsheet source adapter: file readers, header contract and row translation."""

from __future__ import annotations

from .headers import (
    HARVEST_COLUMNS,
    TRANSPORT_COLUMNS,
    ColumnSpec,
    find_column,
    map_columns,
    normalize_column_name,
)
from .reader import SheetData, UnsupportedSheetError, read_csv, read_sheet, read_workbook
from .schema import HarvestRow, TransportRow
from .translator import build_transport_notes, parse_rows, translate_row

__all__ = [
    "HARVEST_COLUMNS",
    "TRANSPORT_COLUMNS",
    "ColumnSpec",
    "HarvestRow",
    "SheetData",
    "TransportRow",
    "UnsupportedSheetError",
    "build_transport_notes",
    "find_column",
    "map_columns",
    "normalize_column_name",
    "parse_rows",
    "read_csv",
    "read_sheet",
    "read_workbook",
    "translate_row",
]
