"""Header normalisation contract for dashboard spreadsheets.

Exported sheets spell the same column many ways (``No. SPB``, ``NO_SPB``,
``nospb``). Headers are compared after dropping dots, underscores and all
whitespace and lower-casing; each field lists a primary spelling followed by
accepted alternatives, tried in order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

_WHITESPACE = re.compile(r"\s+")


@dataclass(slots=True, frozen=True)
class ColumnSpec:
    field: str
    primary: str
    alternatives: tuple[str, ...] = ()
    required: bool = False

    @property
    def spellings(self) -> tuple[str, ...]:
        return (self.primary, *self.alternatives)


def normalize_column_name(name: object) -> str:
    text = "" if name is None else str(name)
    text = text.replace(".", "").replace("_", "")
    return _WHITESPACE.sub("", text).lower()


def find_column(
    headers: Sequence[str],
    primary: str,
    alternatives: Sequence[str] = (),
) -> str | None:
    """Return the first header matching ``primary``, else the first alternative found."""

    normalized: dict[str, str] = {}
    for header in headers:
        normalized.setdefault(normalize_column_name(header), header)
    for spelling in (primary, *alternatives):
        header = normalized.get(normalize_column_name(spelling))
        if header is not None:
            return header
    return None


def map_columns(headers: Sequence[str], columns: Sequence[ColumnSpec]) -> dict[str, str]:
    """Map field names to the sheet headers that carry them."""

    mapping: dict[str, str] = {}
    for spec in columns:
        header = find_column(headers, spec.primary, spec.alternatives)
        if header is not None:
            mapping[spec.field] = header
    return mapping


TRANSPORT_COLUMNS: Final[tuple[ColumnSpec, ...]] = (
    ColumnSpec("date_panen", "tanggal panen", ("tgl panen", "date panen", "tglpanen")),
    ColumnSpec(
        "date_angkut",
        "tanggal angkut",
        ("tgl angkut", "date angkut", "tglangkut", "tanggal"),
    ),
    ColumnSpec("pt", "pt", ("perusahaan", "company"), required=True),
    ColumnSpec("estate", "estate", ("kebun",)),
    ColumnSpec("division_id", "divisi", ("division", "div")),
    ColumnSpec("block_no", "blok", ("block", "no blok", "noblok")),
    ColumnSpec(
        "no_spb",
        "no spb",
        ("spb", "nospb", "no.spb", "no tph", "tph", "notph", "no.tph"),
    ),
    ColumnSpec("tahun", "tahun", ("year",)),
    ColumnSpec(
        "no_mobil",
        "no mobil",
        ("nomor mobil", "no kendaraan", "nomobil", "no.mobil", "No. Kenderaan"),
    ),
    ColumnSpec("nama_supir", "nama supir", ("supir", "driver", "namasupir")),
    ColumnSpec("jumlah", "jumlah", ("jjg", "janjang", "jjgangkut")),
    ColumnSpec("brondolan", "brondolan(kg)", ("brondolan", "BRONDOLAN ( KG)")),
    ColumnSpec(
        "berat_di_kirim",
        "beratdikirim(kg)",
        ("berat di kirim", "beratdikirim", "beratdikirimkg"),
    ),
    ColumnSpec("no_tiket", "no tiket", ("no. tiket", "tiket", "notiket", "no.tiket")),
    ColumnSpec("code", "code", ("kode",)),
    ColumnSpec("bruto", "bruto(kg)", ("bruto", "brutokg")),
    ColumnSpec("tarra", "tarra(kg)", ("tarra", "tarrakg")),
    ColumnSpec("netto", "netto(kg)", ("netto", "nettokg")),
    ColumnSpec("potongan", "potongan", ("poto", "potong")),
    ColumnSpec("berat", "berat", ("weight", "Berat /BLOCK")),
    ColumnSpec(
        "tonase",
        "tonase/pengiriman",
        ("tonase", "tonase pengiriman", "tonasepengiriman"),
    ),
    ColumnSpec("jjg", "jjg/pengiriman", ("jjg pengiriman", "jjgpengiriman")),
)

HARVEST_COLUMNS: Final[tuple[ColumnSpec, ...]] = (
    ColumnSpec(
        "date_panen",
        "tanggal panen",
        ("tgl panen", "date panen", "tglpanen", "tanggal", "date"),
    ),
    ColumnSpec("estate", "estate", ("kebun",), required=True),
    ColumnSpec("division_id", "divisi", ("division", "div")),
    ColumnSpec("block_no", "blok", ("block", "no blok", "noblok")),
    ColumnSpec("no_tph", "no tph", ("tph", "notph", "no.tph")),
    ColumnSpec("janjang_tbs", "janjang tbs", ("jjg tbs", "tbs", "janjang", "jjg", "jumlah")),
    ColumnSpec("janjang_kosong", "janjang kosong", ("jjg kosong", "kosong")),
    ColumnSpec("weight_kg", "berat(kg)", ("berat", "weight", "kg", "tonase")),
    ColumnSpec("employee_name", "nama pemanen", ("pemanen", "karyawan", "employee")),
    ColumnSpec("mandor_name", "nama mandor", ("mandor",)),
    ColumnSpec("notes", "keterangan", ("catatan", "notes", "note")),
)
