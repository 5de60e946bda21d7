# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Global product identifiers (GTIN / MPN / SKU).

Structured data is searched first, every object in document order including
``@graph`` members and nested Product/Offer objects. Labelled patterns over
body text fill whatever is still missing.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from llmvis.structured_data import iter_objects

_GTIN_KEYS = ("gtin", "gtin13", "gtin14", "gtin8", "gtin12")
_MPN_KEYS = ("mpn",)
_SKU_KEYS = ("sku", "productID")

_GTIN_TEXT_RE = re.compile(r"\b(?:GTIN|EAN|UPC)[:\s]*(\d{8,14})\b", re.IGNORECASE)
_MPN_TEXT_RE = re.compile(
    r"\b(?:MPN|Manufacturer\s*Part(?:\s*(?:Number|No\.?|#))?)[:\s]*([A-Z0-9][A-Z0-9-]+)",
    re.IGNORECASE,
)
_SKU_TEXT_RE = re.compile(r"\b(?:SKU|Item\s*#)[:\s]*([A-Z0-9][A-Z0-9-]+)", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class Identifiers:
    gtin: str | None = None
    mpn: str | None = None
    sku: str | None = None

    @property
    def any(self) -> bool:
        return bool(self.gtin or self.mpn or self.sku)


def _scalar(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(int(value)) if float(value).is_integer() else str(value)
    if isinstance(value, str):
        value = value.strip()
        return value[:64] if value else None
    return None


def _first(objects: list[dict], keys: tuple[str, ...]) -> str | None:
    for obj in objects:
        for key in keys:
            value = _scalar(obj.get(key))
            if value:
                return value
    return None


def _from_text(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(1) if match else None


def extract_identifiers(objects: Iterable[Any], body_text: str | None = None) -> Identifiers:
    """GTIN (gtin, gtin13, gtin14, gtin8, gtin12), MPN, SKU (sku, productID)."""
    flat = [obj for data in objects for obj in iter_objects(data)]
    gtin = _first(flat, _GTIN_KEYS)
    mpn = _first(flat, _MPN_KEYS)
    sku = _first(flat, _SKU_KEYS)

    if body_text:
        gtin = gtin or _from_text(_GTIN_TEXT_RE, body_text)
        mpn = mpn or _from_text(_MPN_TEXT_RE, body_text)
        sku = sku or _from_text(_SKU_TEXT_RE, body_text)

    return Identifiers(gtin=gtin, mpn=mpn, sku=sku)
