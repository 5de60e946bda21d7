# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Scoring weights and runtime settings.

Every point value used by the page and site scorers lives in ``ScoringWeights``.
Bump ``version`` whenever a value changes so stored scores stay comparable.

Tier tables are ``(threshold, points)`` pairs, checked top to bottom; the first
threshold the measured value reaches wins.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_DEFAULT_OLLAMA_URL = "http://localhost:11434"
_DEFAULT_OLLAMA_MODEL = "llama3.2"
_DEFAULT_OLLAMA_TIMEOUT = 30.0
_DEFAULT_MAX_PAGES = 1000


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Versioned point table for both scoring layers."""

    version: str = "2"

    # --- Page: identity (20) ---
    name_schema: int = 10
    name_h1: int = 8
    name_other: int = 5
    description_long: int = 5
    description_short: int = 3
    description_long_chars: int = 120
    description_short_chars: int = 50
    category_schema: int = 5
    category_text: int = 3

    # --- Page: pricing (15) ---
    price_schema: int = 12
    price_text: int = 10
    currency_schema: int = 3
    currency_text: int = 2

    # --- Page: availability (10) ---
    availability_schema: int = 10
    availability_text: int = 8
    availability_cta: int = 5

    # --- Page: reviews (20) ---
    rating_schema: int = 10
    rating_text: int = 8
    review_count_tiers: tuple[tuple[int, int], ...] = ((100, 10), (50, 8), (10, 6), (5, 4), (1, 2))

    # --- Page: identifiers (10), not additive ---
    gtin: int = 10
    mpn: int = 7
    sku: int = 5

    # --- Page: images (5) --- (min images, min alt ratio, points)
    image_tiers: tuple[tuple[int, float, int], ...] = ((3, 0.8, 5), (2, 0.5, 4), (1, 0.5, 3), (1, 0.0, 2))

    # --- Page: specifications (10) ---
    spec_tiers: tuple[tuple[int, int], ...] = ((5, 10), (3, 7), (1, 5))

    # --- Page: schema completeness bonus (10) ---
    bonus_product_offer_rating: int = 10
    bonus_product_offer: int = 8
    bonus_product: int = 5

    # --- Site: manifest (20) ---
    manifest_complete: int = 20
    manifest_partial: int = 12
    manifest_present: int = 5
    manifest_complete_sections: int = 4
    manifest_partial_sections: int = 2

    # --- Site: AI crawler access (15), per bot ---
    crawler_per_bot: int = 5

    # --- Site: sitemap (15), by discovered URL count (strictly greater) ---
    sitemap_tiers: tuple[tuple[int, int], ...] = ((100, 15), (20, 10), (0, 5))

    # --- Site: organization (15) ---
    org_name: int = 5
    org_logo: int = 4
    org_same_as: int = 4
    org_description: int = 2

    # --- Site: categories (10) ---
    category_each: int = 2
    category_max: int = 10

    # --- Site: brand consistency (10) ---
    brand_single: int = 10
    brand_few: int = 5
    brand_few_max: int = 3

    # --- Site: transport (10) ---
    https: int = 10

    # --- Labels, shared by both layers ---
    label_tiers: tuple[tuple[int, str], ...] = ((80, "Excellent"), (60, "Good"), (40, "Fair"))
    label_floor: str = "Poor"


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True, slots=True)
class DrafterSettings:
    """Connection settings for the optional local text-generation server."""

    base_url: str = _DEFAULT_OLLAMA_URL
    model: str = _DEFAULT_OLLAMA_MODEL
    timeout: float = _DEFAULT_OLLAMA_TIMEOUT
    temperature: float = 0.3
    top_p: float = 0.9
    max_tokens: int = 1000
    min_response_chars: int = 50

    @classmethod
    def from_env(cls) -> DrafterSettings:
        """Read LLMVIS_OLLAMA_URL / LLMVIS_OLLAMA_MODEL / LLMVIS_OLLAMA_TIMEOUT."""
        timeout = _env_float("LLMVIS_OLLAMA_TIMEOUT", _DEFAULT_OLLAMA_TIMEOUT)
        return cls(
            base_url=os.environ.get("LLMVIS_OLLAMA_URL", _DEFAULT_OLLAMA_URL).rstrip("/"),
            model=os.environ.get("LLMVIS_OLLAMA_MODEL", _DEFAULT_OLLAMA_MODEL),
            timeout=timeout,
        )


def max_pages() -> int:
    """Upper bound on pages per aggregation call (LLMVIS_MAX_PAGES)."""
    value = _env_float("LLMVIS_MAX_PAGES", _DEFAULT_MAX_PAGES)
    return max(1, int(value))


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default
