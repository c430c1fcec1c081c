"""Pydantic models describing one spreadsheet row per record family."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Final

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

_DATE_FORMATS: Final[tuple[str, ...]] = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d/%m/%y",
    "%d-%b-%y",
    "%d-%b-%Y",
    "%d %b %Y",
    "%d %B %Y",
)


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _to_text(value: object) -> str | None:
    value = _blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        # spreadsheet engines hand integer cells back as floats
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip() or None


def _to_date(value: object) -> date | None:
    value = _blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()  # noqa: DTZ007
        except ValueError:
            continue
    raise ValueError(f"unrecognised date {text!r}")


def _to_number(value: object) -> Decimal | None:
    """Parse ``1.234,5`` and ``1,234.5`` style numbers alike."""

    value = _blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    if isinstance(value, int | Decimal):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))

    text = str(value).replace(" ", "")
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(",") > 1:
        text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")
    try:
        number = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"expected a number, got {value!r}") from exc
    if not number.is_finite():
        raise ValueError(f"expected a finite number, got {value!r}")
    return number


class SheetRow(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TransportRow(SheetRow):
    date_panen: date | None = None
    date_angkut: date | None = None
    pt: str | None = None
    estate: str | None = None
    division_id: str | None = None
    block_no: str | None = None
    no_spb: str | None = None
    jumlah: Decimal | None = None
    netto: Decimal | None = None
    berat: Decimal | None = None

    tahun: str | None = None
    no_mobil: str | None = None
    nama_supir: str | None = None
    brondolan: str | None = None
    berat_di_kirim: str | None = None
    no_tiket: str | None = None
    code: str | None = None
    bruto: str | None = None
    tarra: str | None = None
    potongan: str | None = None
    tonase: str | None = None
    jjg: str | None = None

    _normalize_dates = field_validator("date_panen", "date_angkut", mode="before")(_to_date)
    _normalize_numbers = field_validator("jumlah", "netto", "berat", mode="before")(_to_number)
    _normalize_text = field_validator(
        "pt",
        "estate",
        "division_id",
        "block_no",
        "no_spb",
        "tahun",
        "no_mobil",
        "nama_supir",
        "brondolan",
        "berat_di_kirim",
        "no_tiket",
        "code",
        "bruto",
        "tarra",
        "potongan",
        "tonase",
        "jjg",
        mode="before",
    )(_to_text)

    @model_validator(mode="after")
    def _fill_missing_date(self) -> TransportRow:
        # harvest and haul dates stand in for each other when one is blank
        if self.date_panen is None:
            self.date_panen = self.date_angkut
        if self.date_angkut is None:
            self.date_angkut = self.date_panen
        return self


class HarvestRow(SheetRow):
    date_panen: date | None = None
    estate: str | None = None
    division_id: str | None = None
    block_no: str | None = None
    no_tph: str | None = None
    janjang_tbs: Decimal | None = None
    janjang_kosong: Decimal | None = None
    weight_kg: Decimal | None = None
    employee_name: str | None = None
    mandor_name: str | None = None
    notes: str | None = None

    _normalize_dates = field_validator("date_panen", mode="before")(_to_date)
    _normalize_numbers = field_validator(
        "janjang_tbs", "janjang_kosong", "weight_kg", mode="before"
    )(_to_number)
    _normalize_text = field_validator(
        "estate",
        "division_id",
        "block_no",
        "no_tph",
        "employee_name",
        "mandor_name",
        "notes",
        mode="before",
    )(_to_text)
