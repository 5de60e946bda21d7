# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Product fact extraction: structured data first, visible text as fallback.

Cascade per fact: JSON-LD entity > text patterns over title + meta + H1 >
text patterns over body text. ``pick_best`` implements the structured-first
rule once; a fact read from structured data is never replaced by a text match.

Text patterns are plain regex families checked in order; the first family
with a usable match wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, TypeVar
from urllib.parse import unquote, urlsplit

from llmvis import PageSignals
from llmvis.sanitizer import sanitize_text
from llmvis.structured_data import (
    AggregateRating,
    Entity,
    Offer,
    Product,
    decode_entities,
    find_breadcrumbs,
    find_product,
)

logger = logging.getLogger(__name__)


class FactSource(StrEnum):
    STRUCTURED = "structured-data"
    TEXT = "text"
    NONE = "none"


# ---------------------------------------------------------------------------
# Fact records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Fact:
    """A single extracted value with provenance.

    ``origin`` is finer-grained than ``source``: schema, h1, og, title, meta,
    breadcrumb or url.
    """

    value: Any = None
    source: FactSource = FactSource.NONE
    raw_text: str | None = None
    origin: str | None = None

    @property
    def found(self) -> bool:
        return self.source is not FactSource.NONE and self.value not in (None, "")

    @classmethod
    def missing(cls) -> Fact:
        return cls()


@dataclass(frozen=True, slots=True)
class PriceFact:
    value: float | None = None
    currency: str | None = None
    source: FactSource = FactSource.NONE
    raw_text: str | None = None

    @property
    def found(self) -> bool:
        return self.source is not FactSource.NONE and self.value is not None


@dataclass(frozen=True, slots=True)
class AvailabilityFact:
    status: str = "unknown"  # in_stock | out_of_stock | preorder | unknown
    source: FactSource = FactSource.NONE
    raw_text: str | None = None

    @property
    def found(self) -> bool:
        return self.source is not FactSource.NONE and self.status != "unknown"


@dataclass(frozen=True, slots=True)
class RatingFact:
    value: float | None = None
    max_rating: float = 5.0
    count: int = 0
    source: FactSource = FactSource.NONE
    raw_text: str | None = None

    @property
    def found(self) -> bool:
        return self.source is not FactSource.NONE and self.value is not None


@dataclass(frozen=True, slots=True)
class SpecFact:
    detected: bool = False
    count: int = 0
    source: str | None = None  # table | list | schema


@dataclass(frozen=True, slots=True)
class ImageFact:
    count: int = 0
    with_alt: int = 0

    @property
    def alt_ratio(self) -> float:
        return self.with_alt / self.count if self.count > 0 else 0.0


@dataclass(frozen=True, slots=True)
class CtaFact:
    detected: bool = False
    buttons: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ExtractedFacts:
    name: Fact = field(default_factory=Fact)
    description: Fact = field(default_factory=Fact)
    category: Fact = field(default_factory=Fact)
    price: PriceFact = field(default_factory=PriceFact)
    availability: AvailabilityFact = field(default_factory=AvailabilityFact)
    rating: RatingFact = field(default_factory=RatingFact)
    brand: Fact = field(default_factory=Fact)
    specifications: SpecFact = field(default_factory=SpecFact)
    images: ImageFact = field(default_factory=ImageFact)
    purchase_affordance: CtaFact = field(default_factory=CtaFact)

    @property
    def name_origin(self) -> str | None:
        return self.name.origin


# ---------------------------------------------------------------------------
# Structured-first combinator
# ---------------------------------------------------------------------------


class _Findable(Protocol):
    @property
    def found(self) -> bool: ...


F = TypeVar("F", bound=_Findable)


def pick_best(structured: F, text: F, structured_points: int = 0, text_points: int = 0) -> tuple[F, int]:
    """Structured value if present, else text value; with the matching tier's points.

    When neither is present the text fact (a "missing" record) is returned with 0 points.
    """
    if structured.found:
        return structured, structured_points
    if text.found:
        return text, text_points
    return text, 0


def tiered_points(fact: Any, structured_points: int, text_points: int) -> int:
    """Points for an already-picked fact, by its provenance."""
    if not fact.found:
        return 0
    return structured_points if fact.source is FactSource.STRUCTURED else text_points


# ---------------------------------------------------------------------------
# Price
# ---------------------------------------------------------------------------

# Longest symbol first so "HK$" is not read as "$"
CURRENCY_SYMBOLS: tuple[tuple[str, str], ...] = (
    ("HK$", "HKD"),
    ("A$", "AUD"),
    ("C$", "CAD"),
    ("Rs", "INR"),
    ("$", "USD"),
    ("₹", "INR"),
    ("€", "EUR"),
    ("£", "GBP"),
    ("¥", "JPY"),
    ("₽", "RUB"),
    ("₩", "KRW"),
)

_AMOUNT = r"(\d[\d,]*(?:\.\d{1,2})?)"

# (pattern, amount group, explicit-code group or 0)
PRICE_PATTERNS: tuple[tuple[re.Pattern[str], int, int], ...] = (
    (re.compile(r"(HK\$|A\$|C\$|[$₹€£¥₽₩])\s*" + _AMOUNT), 2, 0),
    (re.compile(_AMOUNT + r"\s*(USD|INR|EUR|GBP|JPY|AUD|CAD|HKD)\b", re.IGNORECASE), 1, 2),
    (
        re.compile(r"(?:Our Price|Price|MRP|Cost|Sale)[:\s]*([$₹€£¥]|Rs\.?)\s*" + _AMOUNT, re.IGNORECASE),
        2,
        0,
    ),
    (re.compile(r"(?:₹|Rs\.?)\s*" + _AMOUNT), 1, 0),
)


def _parse_amount(raw: str) -> float | None:
    """``1,299`` → 1299.0; ``29,99`` (decimal comma) → 29.99."""
    if re.fullmatch(r"\d+,\d{2}", raw):
        raw = raw.replace(",", ".")
    else:
        raw = raw.replace(",", "")
    try:
        return float(raw)
    except ValueError:
        return None


def _currency_for(raw_text: str) -> str:
    return next((code for symbol, code in CURRENCY_SYMBOLS if symbol in raw_text), "USD")


def extract_price_from_text(text: str) -> PriceFact:
    """First positive price found by the ordered pattern families."""
    if not text:
        return PriceFact()
    for pattern, amount_group, code_group in PRICE_PATTERNS:
        for match in pattern.finditer(text):
            value = _parse_amount(match.group(amount_group))
            if value is None or value <= 0:
                continue
            raw = match.group(0).strip()
            currency = match.group(code_group).upper() if code_group else _currency_for(raw)
            return PriceFact(value=value, currency=currency, source=FactSource.TEXT, raw_text=raw)
    return PriceFact()


# ---------------------------------------------------------------------------
# Rating
# ---------------------------------------------------------------------------

_REVIEW_COUNT_RE = re.compile(r"(\d[\d,]*)\s*(?:reviews?|ratings?)\b", re.IGNORECASE)

RATING_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?<![\d.])(\d(?:\.\d+)?)\s*/\s*(10|5)(?![\d.]?\d)"),
    re.compile(r"(?<![\d.])(\d(?:\.\d+)?)\s+out\s+of\s+(\d+)(?![\d.]?\d)", re.IGNORECASE),
    re.compile(r"(?<![\d.])(\d(?:\.\d+)?)\s*(?:stars?\b|★)", re.IGNORECASE),
    re.compile(r"\b(?:rated|rating)[:\s]*(\d(?:\.\d+)?)", re.IGNORECASE),
)


def _review_count(text: str) -> int:
    match = _REVIEW_COUNT_RE.search(text)
    return int(match.group(1).replace(",", "")) if match else 0


def extract_rating_from_text(text: str) -> RatingFact:
    """Star glyphs (★ filled, ☆ empty) first, then numeric rating phrases."""
    if not text:
        return RatingFact()

    full = text.count("★")
    if full:
        total = full + text.count("☆")
        if 0 < total <= 5:
            return RatingFact(
                value=float(full),
                max_rating=float(total),
                count=_review_count(text),
                source=FactSource.TEXT,
                raw_text=text[:100],
            )

    for pattern in RATING_PATTERNS:
        for match in pattern.finditer(text):
            value = float(match.group(1))
            max_rating = float(match.group(2)) if pattern.groups > 1 else 5.0
            if value <= 0 or max_rating <= 0 or max_rating > 10 or value > max_rating:
                continue
            return RatingFact(
                value=value,
                max_rating=max_rating,
                count=_review_count(text),
                source=FactSource.TEXT,
                raw_text=match.group(0),
            )
    return RatingFact()


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------

# Checked in this order: out-of-stock wording also contains "available"
AVAILABILITY_PATTERNS: tuple[tuple[str, tuple[re.Pattern[str], ...]], ...] = (
    (
        "out_of_stock",
        tuple(
            re.compile(p, re.IGNORECASE)
            for p in (
                r"\bout\s*of\s*stock\b",
                r"\bsold\s*out\b",
                r"\bunavailable\b",
                r"\bcurrently\s*unavailable\b",
                r"\bnotify\s*me\b",
                r"\bwaitlist\b",
            )
        ),
    ),
    (
        "preorder",
        tuple(
            re.compile(p, re.IGNORECASE)
            for p in (
                r"\bpre[-\s]*order\b",
                r"\bcoming\s*soon\b",
                r"\bavailable\s*on\b.*\d",
            )
        ),
    ),
    (
        "in_stock",
        tuple(
            re.compile(p, re.IGNORECASE)
            for p in (
                r"\bin\s*stock\b",
                r"\bavailable\b",
                r"\badd\s*to\s*cart\b",
                r"\bbuy\s*now\b",
                r"\badd\s*to\s*bag\b",
                r"\bin\s*store\b",
                r"\bready\s*to\s*ship\b",
            )
        ),
    ),
)


def extract_availability_from_text(text: str) -> AvailabilityFact:
    if not text:
        return AvailabilityFact()
    for status, patterns in AVAILABILITY_PATTERNS:
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                return AvailabilityFact(status=status, source=FactSource.TEXT, raw_text=match.group(0))
    return AvailabilityFact()


# ---------------------------------------------------------------------------
# Brand
# ---------------------------------------------------------------------------

_BRAND_RE = re.compile(r"\b(?i:sold\s+by|brand|manufacturer|by)\b[:\s]+([A-Z][A-Za-z0-9&' ]{2,30})")


def extract_brand_from_text(text: str) -> Fact:
    """Label-prefixed brand ("Brand: Acme", "by Acme", "Sold by Acme")."""
    if not text:
        return Fact.missing()
    match = _BRAND_RE.search(text)
    if not match:
        return Fact.missing()
    value = match.group(1).strip()
    if len(value) < 3:
        return Fact.missing()
    return Fact(value=value, source=FactSource.TEXT, raw_text=match.group(0).strip(), origin="text")


# ---------------------------------------------------------------------------
# Category / specs / CTA / name
# ---------------------------------------------------------------------------


def _category_from_url(url: str) -> str | None:
    try:
        path = urlsplit(url).path
    except ValueError:
        return None
    segments = [unquote(s) for s in path.split("/") if s]
    if not segments:
        return None
    value = segments[-2 if len(segments) > 1 else 0].replace("-", " ").strip()
    return value or None


def extract_category(signals: PageSignals, entities: Sequence[Entity] = ()) -> Fact:
    """BreadcrumbList / product category > visible breadcrumbs > URL path segment."""
    crumbs = find_breadcrumbs(entities)
    if crumbs is not None:
        return Fact(value=crumbs.items[-1], source=FactSource.STRUCTURED, origin="schema")
    product = find_product(entities)
    if product is not None and product.category:
        return Fact(value=product.category, source=FactSource.STRUCTURED, origin="schema")
    visible = [b for b in (sanitize_text(c) for c in signals.breadcrumbs) if b]
    if visible:
        return Fact(value=visible[-1], source=FactSource.TEXT, origin="breadcrumb")
    from_url = _category_from_url(signals.url)
    if from_url:
        return Fact(value=from_url, source=FactSource.TEXT, origin="url")
    return Fact.missing()


def detect_specifications(signals: PageSignals, product: Product | None = None) -> SpecFact:
    """Tables first (rows when known), else list containers; product schema implies specs."""
    elements = signals.semantic_elements
    tables = elements.get("table", 0)
    lists = elements.get("ul", 0) + elements.get("ol", 0)

    count = 0
    source: str | None = None
    if tables > 0:
        count = max(tables, elements.get("tr", 0))
        source = "table"
    elif lists > 0:
        count = lists
        source = "list"

    if product is not None:
        source = "schema"
        count = max(count, product.spec_count, 1)

    return SpecFact(detected=count > 0, count=count, source=source)


PURCHASE_CTA_VOCABULARY: tuple[str, ...] = (
    "add to cart",
    "add to bag",
    "buy now",
    "shop now",
    "order now",
    "purchase",
    "checkout",
    "add to basket",
)


def detect_purchase_cta(text: str) -> CtaFact:
    lowered = text.lower() if text else ""
    found = tuple(phrase for phrase in PURCHASE_CTA_VOCABULARY if phrase in lowered)
    return CtaFact(detected=bool(found), buttons=found)


def extract_product_name(signals: PageSignals, product: Product | None = None) -> Fact:
    """Schema name > first H1 > og:title > <title>."""
    if product is not None and product.name:
        return Fact(value=product.name, source=FactSource.STRUCTURED, origin="schema")
    for origin, candidate in (
        ("h1", signals.h1_texts[0] if signals.h1_texts else ""),
        ("og", signals.open_graph.get("title", "")),
        ("title", signals.title),
    ):
        value = sanitize_text(candidate or "")
        if value:
            return Fact(value=value, source=FactSource.TEXT, origin=origin)
    return Fact.missing()


def _extract_description(signals: PageSignals, product: Product | None) -> Fact:
    if product is not None and product.description:
        return Fact(value=product.description, source=FactSource.STRUCTURED, origin="schema")
    for origin, candidate in (("meta", signals.meta_description), ("og", signals.open_graph.get("description", ""))):
        value = sanitize_text(candidate or "", max_len=2000)
        if value:
            return Fact(value=value, source=FactSource.TEXT, origin=origin)
    return Fact.missing()


# ---------------------------------------------------------------------------
# Structured readers
# ---------------------------------------------------------------------------


def _structured_offer(product: Product | None, entities: Sequence[Entity]) -> Offer | None:
    if product is not None and product.offer is not None:
        return product.offer
    return next((e for e in entities if isinstance(e, Offer)), None)


def _structured_rating(product: Product | None, entities: Sequence[Entity]) -> AggregateRating | None:
    if product is not None and product.aggregate_rating is not None:
        return product.aggregate_rating
    return next((e for e in entities if isinstance(e, AggregateRating)), None)


def _text_then_body(reader, corpus: str, body: str):
    """Run a text reader on the headline corpus, then on body text if nothing matched."""
    result = reader(corpus)
    if not result.found and body:
        result = reader(body)
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def text_corpus(signals: PageSignals) -> str:
    """Title + meta description + H1 texts: the headline text searched first."""
    return " ".join([signals.title or "", signals.meta_description or "", " ".join(signals.h1_texts)]).strip()


def extract(signals: PageSignals, entities: Sequence[Entity] | None = None) -> ExtractedFacts:
    """Extract all product facts from *signals*. Pure; never raises on page content."""
    if entities is None:
        entities = decode_entities(signals.structured_data)
    product = find_product(entities)
    corpus = text_corpus(signals)
    body = signals.body_text or ""

    # Price
    offer = _structured_offer(product, entities)
    structured_price = (
        PriceFact(value=offer.price, currency=offer.currency, source=FactSource.STRUCTURED)
        if offer is not None and offer.price is not None
        else PriceFact()
    )
    price, _ = pick_best(structured_price, _text_then_body(extract_price_from_text, corpus, body))

    # Availability
    structured_availability = (
        AvailabilityFact(status=offer.availability, source=FactSource.STRUCTURED)
        if offer is not None and offer.availability
        else AvailabilityFact()
    )
    availability, _ = pick_best(
        structured_availability, _text_then_body(extract_availability_from_text, corpus, body)
    )

    # Rating
    agg = _structured_rating(product, entities)
    structured_rating = (
        RatingFact(value=agg.value, max_rating=agg.best, count=agg.count, source=FactSource.STRUCTURED)
        if agg is not None and agg.value is not None
        else RatingFact()
    )
    rating, _ = pick_best(structured_rating, _text_then_body(extract_rating_from_text, corpus, body))
    if not rating.found:
        count = agg.count if agg is not None else 0
        if not count and product is not None:
            count = len(product.reviews)
        rating = RatingFact(count=count)

    # Brand
    structured_brand = (
        Fact(value=product.brand, source=FactSource.STRUCTURED, origin="schema")
        if product is not None and product.brand
        else Fact.missing()
    )
    brand, _ = pick_best(structured_brand, extract_brand_from_text(corpus))

    facts = ExtractedFacts(
        name=extract_product_name(signals, product),
        description=_extract_description(signals, product),
        category=extract_category(signals, entities),
        price=price,
        availability=availability,
        rating=rating,
        brand=brand,
        specifications=detect_specifications(signals, product),
        images=ImageFact(count=signals.images.total, with_alt=min(signals.images.with_alt, signals.images.total)),
        purchase_affordance=detect_purchase_cta(f"{corpus} {body}"),
    )
    logger.debug(
        "extracted facts for %s: price=%s/%s availability=%s/%s rating=%s/%s",
        signals.url,
        facts.price.value,
        facts.price.source,
        facts.availability.status,
        facts.availability.source,
        facts.rating.value,
        facts.rating.source,
    )
    return facts
