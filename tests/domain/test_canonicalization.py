from __future__ import annotations

import pytest

from sawitsync.domain.canonicalization import canonicalize, display_name


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("PT Sawit Makmur", "sawit makmur"),
        ("PT. Sawit Makmur", "sawit makmur"),
        ("pt.sawit makmur", "sawit makmur"),
        ("  PT   SAWIT   Makmur  ", "sawit makmur"),
        ("CV. Maju Jaya", "maju jaya"),
        ("Sawit Makmur (Persero)", "sawit makmur"),
        ("PT Sawit Makmur (Kebun 2) Tbk", "sawit makmur tbk"),
        ("PTP Nusantara", "ptp nusantara"),
    ],
)
def test_canonicalize_strips_cosmetic_differences(raw: str, expected: str) -> None:
    assert canonicalize(raw) == expected


def test_canonicalize_returns_empty_for_non_strings() -> None:
    assert canonicalize(None) == ""
    assert canonicalize(42) == ""
    assert canonicalize("   ") == ""


def test_canonicalize_keeps_bare_prefix() -> None:
    assert canonicalize("PT") == "pt"
    assert canonicalize("PT.") == "pt."


@pytest.mark.parametrize(
    "raw",
    ["PT PT Sawit", "PT. CV Sawit", "cv (lama) pt sawit", "Kebun Utara", "PT.", ""],
)
def test_canonicalize_is_idempotent(raw: str) -> None:
    once = canonicalize(raw)

    assert canonicalize(once) == once


def test_display_name_keeps_casing_but_drops_qualifiers() -> None:
    assert display_name("  PT  Sawit Makmur (lama) ") == "PT Sawit Makmur"
