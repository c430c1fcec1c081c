from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import pytest
from openpyxl import Workbook

from sawitsync.adapters.spreadsheet import UnsupportedSheetError, read_csv, read_sheet

if TYPE_CHECKING:
    from pathlib import Path


def test_read_csv_handles_bom_and_semicolons(tmp_path: Path) -> None:
    path = tmp_path / "angkut.csv"
    path.write_text(
        "\ufeffTanggal Panen;PT;Blok\n01/03/2024;PT Sawit;A01\n02/03/2024;PT Sawit;A02\n",
        encoding="utf-8",
    )

    sheet = read_csv(path)

    assert sheet.headers == ["Tanggal Panen", "PT", "Blok"]
    assert sheet.rows[1] == {"Tanggal Panen": "02/03/2024", "PT": "PT Sawit", "Blok": "A02"}


def test_read_csv_pads_short_rows(tmp_path: Path) -> None:
    path = tmp_path / "panen.csv"
    path.write_text("Estate,Blok,Keterangan\nKebun Utara,B01\n", encoding="utf-8")

    sheet = read_sheet(path)

    assert sheet.rows == [{"Estate": "Kebun Utara", "Blok": "B01", "Keterangan": None}]


def test_read_workbook_uses_first_sheet_and_first_duplicate_header(tmp_path: Path) -> None:
    workbook = Workbook()
    worksheet = workbook.active
    assert worksheet is not None
    worksheet.append(["Tanggal", "Kebun", None, "Kebun", "Berat"])
    worksheet.append([datetime(2024, 3, 1), "Kebun Utara", "ignored", "Kebun Lain", 750])
    workbook.create_sheet("Lain").append(["Other"])
    path = tmp_path / "panen.xlsx"
    workbook.save(path)

    sheet = read_sheet(path)

    assert sheet.headers == ["Tanggal", "Kebun", "Kebun", "Berat"]
    (row,) = sheet.rows
    assert row == {"Tanggal": datetime(2024, 3, 1), "Kebun": "Kebun Utara", "Berat": 750}


def test_read_sheet_rejects_unknown_formats(tmp_path: Path) -> None:
    path = tmp_path / "angkut.pdf"
    path.write_bytes(b"%PDF")

    with pytest.raises(UnsupportedSheetError, match=r"angkut\.pdf"):
        read_sheet(path)


def test_empty_csv_has_no_headers(tmp_path: Path) -> None:
    path = tmp_path / "kosong.csv"
    path.write_text("", encoding="utf-8")

    sheet = read_csv(path)

    assert sheet.headers == []
    assert sheet.rows == []
