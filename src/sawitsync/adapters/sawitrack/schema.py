"""Pydantic models describing the SawiTrack REST payloads."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _to_date(value: object) -> object:
    # the dashboard serialises Date columns as full ISO timestamps
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


def _to_text(value: object) -> object:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(int(value)) if float(value).is_integer() else str(value)
    return _blank_to_none(value)


class SawiTrackBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CompanyPayload(SawiTrackBaseModel):
    id: str = Field(alias="_id")
    company_name: str
    created_at: datetime | None = Field(default=None, alias="createdAt")


class EstatePayload(SawiTrackBaseModel):
    id: str = Field(alias="_id")
    estate_name: str


class CompanyAliasPayload(SawiTrackBaseModel):
    id: str | None = Field(default=None, alias="_id")
    alias_name: str
    company_id: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @field_validator("company_id", mode="before")
    @classmethod
    def _unwrap_company(cls, value: object) -> object:
        # populated references arrive as the full company document
        if isinstance(value, dict) and "_id" in value:
            return value["_id"]
        return value


class AngkutPayload(SawiTrackBaseModel):
    id: str | None = Field(default=None, alias="_id")
    date_panen: date
    date_angkut: date
    company_id: str | None = Field(default=None, alias="companyId")
    estate_id: str = Field(alias="estateId")
    division_id: str
    block_no: str
    no_spb: str | None = None
    weight_kg: Decimal = Field(alias="weightKg")
    jumlah: Decimal = Decimal(0)
    notes: str | None = None

    _normalize_dates = field_validator("date_panen", "date_angkut", mode="before")(_to_date)
    _normalize_text = field_validator(
        "company_id", "division_id", "block_no", "no_spb", "notes", mode="before"
    )(_to_text)


class PanenPayload(SawiTrackBaseModel):
    id: str | None = Field(default=None, alias="_id")
    date_panen: date
    estate_id: str = Field(alias="estateId")
    division_id: str
    block_no: str
    no_tph: str | None = Field(default=None, alias="noTPH")
    weight_kg: Decimal = Field(alias="weightKg")
    janjang_tbs: Decimal = Field(default=Decimal(0), alias="janjangTBS")
    janjang_kosong: Decimal = Field(default=Decimal(0), alias="janjangKosong")
    employee_name: str | None = Field(default=None, alias="employeeName")
    mandor_name: str | None = Field(default=None, alias="mandorName")
    notes: str | None = None

    _normalize_dates = field_validator("date_panen", mode="before")(_to_date)
    _normalize_text = field_validator(
        "division_id",
        "block_no",
        "no_tph",
        "employee_name",
        "mandor_name",
        "notes",
        mode="before",
    )(_to_text)


class BatchAliasError(SawiTrackBaseModel):
    alias_name: str = Field(alias="aliasName")
    error: str


class BatchAliasResponse(SawiTrackBaseModel):
    saved: int = 0
    aliases: list[CompanyAliasPayload] = Field(default_factory=list[CompanyAliasPayload])
    errors: list[BatchAliasError] = Field(default_factory=list[BatchAliasError])
