"""Translate between SawiTrack documents and reconciliation records."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sawitsync.domain.model import (
    HARVEST_SCHEMA,
    TRANSPORT_SCHEMA,
    EntityType,
    ExistingRecord,
    MasterEntity,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sawitsync.domain.model import FieldValue

    from .schema import AngkutPayload, CompanyPayload, EstatePayload, PanenPayload


def company_to_master(payload: CompanyPayload) -> MasterEntity:
    entity = MasterEntity(id=payload.id, entity_type=EntityType.COMPANY, name=payload.company_name)
    if payload.created_at is not None:
        entity.created_at = payload.created_at
    return entity


def estate_to_master(payload: EstatePayload) -> MasterEntity:
    return MasterEntity(id=payload.id, entity_type=EntityType.ESTATE, name=payload.estate_name)


def angkut_to_existing(payload: AngkutPayload) -> ExistingRecord | None:
    if payload.id is None:
        return None
    fields: dict[str, FieldValue] = {
        "date_panen": payload.date_panen,
        "date_angkut": payload.date_angkut,
        "estate_id": payload.estate_id,
        "division_id": payload.division_id,
        "block_no": payload.block_no,
        "company_id": payload.company_id,
        "no_spb": payload.no_spb,
        "jumlah": payload.jumlah,
        "weight_kg": payload.weight_kg,
        "notes": payload.notes,
    }
    return ExistingRecord(
        id=payload.id,
        natural_key=TRANSPORT_SCHEMA.natural_key(fields),
        fields=fields,
    )


def panen_to_existing(payload: PanenPayload) -> ExistingRecord | None:
    if payload.id is None:
        return None
    fields: dict[str, FieldValue] = {
        "date_panen": payload.date_panen,
        "estate_id": payload.estate_id,
        "division_id": payload.division_id,
        "block_no": payload.block_no,
        "no_tph": payload.no_tph,
        "janjang_tbs": payload.janjang_tbs,
        "janjang_kosong": payload.janjang_kosong,
        "weight_kg": payload.weight_kg,
        "employee_name": payload.employee_name,
        "mandor_name": payload.mandor_name,
        "notes": payload.notes,
    }
    return ExistingRecord(
        id=payload.id,
        natural_key=HARVEST_SCHEMA.natural_key(fields),
        fields=fields,
    )


def angkut_body(fields: Mapping[str, FieldValue]) -> dict[str, object]:
    return {
        "date_panen": _json_value(fields.get("date_panen")),
        "date_angkut": _json_value(fields.get("date_angkut")),
        "companyId": fields.get("company_id"),
        "estateId": fields.get("estate_id"),
        "division_id": _division_value(fields.get("division_id")),
        "block_no": fields.get("block_no"),
        "no_spb": fields.get("no_spb"),
        "jumlah": _json_value(fields.get("jumlah")) or 0,
        "weightKg": _json_value(fields.get("weight_kg")) or 0,
        "notes": fields.get("notes"),
    }


def panen_body(fields: Mapping[str, FieldValue]) -> dict[str, object]:
    return {
        "date_panen": _json_value(fields.get("date_panen")),
        "estateId": fields.get("estate_id"),
        "division_id": _division_value(fields.get("division_id")),
        "block_no": fields.get("block_no"),
        "noTPH": fields.get("no_tph"),
        "janjangTBS": _json_value(fields.get("janjang_tbs")) or 0,
        "janjangKosong": _json_value(fields.get("janjang_kosong")) or 0,
        "weightKg": _json_value(fields.get("weight_kg")) or 0,
        "employeeName": fields.get("employee_name"),
        "mandorName": fields.get("mandor_name"),
        "notes": fields.get("notes"),
    }


def _json_value(value: FieldValue) -> object:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()


def _division_value(value: FieldValue) -> object:
    # divisions are numbered in the dashboard unless a sheet names them
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value
