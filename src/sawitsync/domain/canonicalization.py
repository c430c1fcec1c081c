"""Canonical keys for free-text master data identifiers.

A canonical key is what two spellings of the same company or estate have in
common once cosmetic differences are removed: parenthetical qualifiers, case,
whitespace runs and a leading legal-entity prefix (``PT``/``CV``). Keys are
derived values only; they are never persisted.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Final

LEGAL_ENTITY_PREFIXES: Final[tuple[str, ...]] = ("pt", "cv")

_PARENTHETICAL = re.compile(r"\s*\([^)]*\)")
_LEGAL_PREFIX = re.compile(
    rf"^(?:{'|'.join(LEGAL_ENTITY_PREFIXES)})(?:\.\s*|\s+)",
)


def canonicalize(raw: object) -> str:
    """Return the canonical key for ``raw``.

    Never raises: anything that is not a string canonicalizes to ``""``.
    ``canonicalize(canonicalize(x)) == canonicalize(x)`` for every input.
    """

    if not isinstance(raw, str):
        return ""
    text = unicodedata.normalize("NFKC", raw).strip()
    text = _PARENTHETICAL.sub("", text)
    text = " ".join(text.casefold().split())
    return _strip_legal_prefix(text)


def display_name(raw: str) -> str:
    """Human-facing form of ``raw``: qualifiers dropped, casing kept."""

    text = _PARENTHETICAL.sub("", raw.strip())
    return " ".join(text.split())


def _strip_legal_prefix(text: str) -> str:
    # "PT PT Foo" and "PT Foo" must agree, so strip until no prefix leads.
    while True:
        match = _LEGAL_PREFIX.match(text)
        if match is None:
            return text
        rest = text[match.end() :].strip()
        if not rest:
            return text
        text = rest
