# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-page product extractability score (0-100).

Eight categories, each answering "could an LLM recover this fact?":

    identity 20 · pricing 15 · availability 10 · reviews 20
    identifiers 10 · images 5 · specifications 10 · schema bonus 10

Structured data earns the top tier of each item, text patterns the lower one.
Only product and collection pages are scored; every other type gets a typed
zero with ``is_applicable=False`` and the reason.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from llmvis import PageType
from llmvis.config import DEFAULT_WEIGHTS, ScoringWeights
from llmvis.extraction import ExtractedFacts, FactSource, tiered_points
from llmvis.identifiers import Identifiers
from llmvis.structured_data import SchemaFlags

logger = logging.getLogger(__name__)

SCORED_PAGE_TYPES = frozenset({PageType.PRODUCT, PageType.COLLECTION})

NOT_APPLICABLE_LABEL = "N/A"

# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ScoreItem:
    points: int
    max: int
    found: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 <= self.points <= self.max:
            raise ValueError(f"points {self.points} outside [0, {self.max}]")


@dataclass(frozen=True, slots=True)
class ScoreCategory:
    items: dict[str, ScoreItem]
    max_points: int

    @property
    def total_points(self) -> int:
        return min(self.max_points, sum(item.points for item in self.items.values()))


@dataclass(frozen=True, slots=True)
class PageContext:
    detected_type: PageType
    is_applicable: bool
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class PageScore:
    score: int
    label: str
    categories: dict[str, ScoreCategory]
    context: PageContext
    max: int = 100


@dataclass(frozen=True, slots=True)
class PageEvidence:
    """What the scorer needs about one page; built by ``aggregator.analyze_page``."""

    page_type: PageType
    facts: ExtractedFacts
    identifiers: Identifiers = field(default_factory=Identifiers)
    flags: SchemaFlags = field(default_factory=SchemaFlags)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def score_label(score: int, weights: ScoringWeights = DEFAULT_WEIGHTS) -> str:
    """Excellent / Good / Fair / Poor by threshold."""
    return next((label for threshold, label in weights.label_tiers if score >= threshold), weights.label_floor)


def _tier(value: float, tiers: tuple[tuple[int, int], ...]) -> int:
    return next((points for threshold, points in tiers if value >= threshold), 0)


def _item(points: int, max_points: int, **details: Any) -> ScoreItem:
    return ScoreItem(points=points, max=max_points, found=points > 0, details=details)


def _single(points: int, max_points: int, **details: Any) -> ScoreCategory:
    return ScoreCategory(items={"main": _item(points, max_points, **details)}, max_points=max_points)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def _identity(facts: ExtractedFacts, w: ScoringWeights) -> ScoreCategory:
    name = facts.name
    if not name.found:
        name_points = 0
    elif name.origin == "schema":
        name_points = w.name_schema
    elif name.origin == "h1":
        name_points = w.name_h1
    else:
        name_points = w.name_other

    desc_len = len(facts.description.value or "") if facts.description.found else 0
    if desc_len >= w.description_long_chars:
        desc_points = w.description_long
    elif desc_len >= w.description_short_chars:
        desc_points = w.description_short
    else:
        desc_points = 0

    category_points = tiered_points(facts.category, w.category_schema, w.category_text)

    name_max = w.name_schema
    desc_max = w.description_long
    category_max = w.category_schema
    return ScoreCategory(
        items={
            "product_name": _item(name_points, name_max, value=name.value, source=name.origin),
            "description": _item(desc_points, desc_max, length=desc_len),
            "category": _item(category_points, category_max, value=facts.category.value, source=facts.category.origin),
        },
        max_points=name_max + desc_max + category_max,
    )


def _pricing(facts: ExtractedFacts, w: ScoringWeights) -> ScoreCategory:
    price = facts.price
    price_points = tiered_points(price, w.price_schema, w.price_text)
    currency_points = 0
    if price.found and price.currency:
        currency_points = w.currency_schema if price.source is FactSource.STRUCTURED else w.currency_text
    return ScoreCategory(
        items={
            "price": _item(price_points, w.price_schema, value=price.value, source=str(price.source)),
            "currency": _item(currency_points, w.currency_schema, value=price.currency),
        },
        max_points=w.price_schema + w.currency_schema,
    )


def _availability(facts: ExtractedFacts, flags: SchemaFlags, w: ScoringWeights) -> ScoreCategory:
    availability = facts.availability
    if flags.has_offer:
        points, status, source = w.availability_schema, availability.status, "schema"
        if status == "unknown":
            status = "in_stock"
    elif availability.found:
        points, status, source = w.availability_text, availability.status, str(availability.source)
    elif facts.purchase_affordance.detected:
        points, status, source = w.availability_cta, "in_stock", "cta"
    else:
        points, status, source = 0, "unknown", None
    return _single(points, w.availability_schema, status=status, source=source)


def _reviews(facts: ExtractedFacts, w: ScoringWeights) -> ScoreCategory:
    rating = facts.rating
    rating_points = tiered_points(rating, w.rating_schema, w.rating_text)
    count_points = _tier(rating.count, w.review_count_tiers) if rating.count > 0 else 0
    count_max = w.review_count_tiers[0][1]
    return ScoreCategory(
        items={
            "rating": _item(rating_points, w.rating_schema, value=rating.value, source=str(rating.source)),
            "count": _item(count_points, count_max, value=rating.count),
        },
        max_points=w.rating_schema + count_max,
    )


def _identifiers(ids: Identifiers, w: ScoringWeights) -> ScoreCategory:
    # Not additive: the strongest identifier decides
    if ids.gtin:
        points = w.gtin
    elif ids.mpn:
        points = w.mpn
    elif ids.sku:
        points = w.sku
    else:
        points = 0
    return _single(
        points,
        w.gtin,
        gtin=ids.gtin,
        mpn=ids.mpn,
        sku=ids.sku,
        count=sum(1 for v in (ids.gtin, ids.mpn, ids.sku) if v),
    )


def _images(facts: ExtractedFacts, w: ScoringWeights) -> ScoreCategory:
    images = facts.images
    ratio = images.alt_ratio
    points = next(
        (pts for min_count, min_ratio, pts in w.image_tiers if images.count >= min_count and ratio >= min_ratio),
        0,
    )
    max_points = w.image_tiers[0][2]
    return _single(points, max_points, count=images.count, with_alt=images.with_alt, alt_ratio=round(ratio, 2))


def _specifications(facts: ExtractedFacts, w: ScoringWeights) -> ScoreCategory:
    specs = facts.specifications
    points = _tier(specs.count, w.spec_tiers) if specs.detected else 0
    return _single(points, w.spec_tiers[0][1], count=specs.count, source=specs.source)


def _schema_bonus(flags: SchemaFlags, w: ScoringWeights) -> ScoreCategory:
    if flags.has_product and flags.has_offer and flags.has_aggregate_rating:
        points = w.bonus_product_offer_rating
    elif flags.has_product and flags.has_offer:
        points = w.bonus_product_offer
    elif flags.has_product:
        points = w.bonus_product
    else:
        points = 0
    return _single(
        points,
        w.bonus_product_offer_rating,
        has_product_schema=flags.has_product,
        has_offer_schema=flags.has_offer,
        has_aggregate_rating=flags.has_aggregate_rating,
        is_complete=points == w.bonus_product_offer_rating,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def not_applicable(page_type: PageType) -> PageScore:
    """Typed zero score for page types that are not scored."""
    return PageScore(
        score=0,
        label=NOT_APPLICABLE_LABEL,
        categories={},
        context=PageContext(
            detected_type=page_type,
            is_applicable=False,
            reason=f"Scoring only applies to product/collection pages. This is a {page_type} page.",
        ),
    )


def score_page(page: PageEvidence, weights: ScoringWeights = DEFAULT_WEIGHTS) -> PageScore:
    """Score one page. Deterministic in its inputs."""
    if page.page_type not in SCORED_PAGE_TYPES:
        return not_applicable(page.page_type)

    facts = page.facts
    categories = {
        "identity": _identity(facts, weights),
        "pricing": _pricing(facts, weights),
        "availability": _availability(facts, page.flags, weights),
        "reviews": _reviews(facts, weights),
        "identifiers": _identifiers(page.identifiers, weights),
        "images": _images(facts, weights),
        "specifications": _specifications(facts, weights),
        "schema_bonus": _schema_bonus(page.flags, weights),
    }
    score = min(100, sum(c.total_points for c in categories.values()))
    return PageScore(
        score=score,
        label=score_label(score, weights),
        categories=categories,
        context=PageContext(detected_type=page.page_type, is_applicable=True),
    )
