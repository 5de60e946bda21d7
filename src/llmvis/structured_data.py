# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Typed decoder for schema.org JSON-LD trees.

Raw JSON-LD is an untyped tree: ``@type`` may be a string, a list, or a
prefixed IRI; ``offers`` may be an Offer, a list of Offers or an AggregateOffer;
numbers arrive as strings with thousands separators. ``decode_entities`` walks
arrays, ``@graph`` containers and ``mainEntity`` wrappers and returns typed
records for the shapes scoring cares about. Unknown shapes are ignored and
malformed values decode to ``None``; nothing here raises on page content.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from llmvis.sanitizer import sanitize_text

logger = logging.getLogger(__name__)

_MAX_DEPTH = 6

PRODUCT_TYPES = frozenset({"Product", "IndividualProduct", "ProductGroup", "ProductModel", "SomeProducts"})
OFFER_TYPES = frozenset({"Offer", "AggregateOffer"})
ORGANIZATION_TYPES = frozenset(
    {
        "Organization",
        "Corporation",
        "OnlineStore",
        "OnlineBusiness",
        "LocalBusiness",
        "Store",
        "ClothingStore",
        "ElectronicsStore",
        "DepartmentStore",
        "Restaurant",
        "Hotel",
        "FoodEstablishment",
        "HealthAndBeautyBusiness",
        "NewsMediaOrganization",
    }
)
ARTICLE_TYPES = frozenset({"Article", "BlogPosting", "NewsArticle", "ReportageNewsArticle", "TechArticle"})

_AVAILABILITY = {
    "instock": "in_stock",
    "limitedavailability": "in_stock",
    "onlineonly": "in_stock",
    "instoreonly": "in_stock",
    "outofstock": "out_of_stock",
    "soldout": "out_of_stock",
    "discontinued": "out_of_stock",
    "preorder": "preorder",
    "presale": "preorder",
    "backorder": "preorder",
}

_GTIN_KEYS = ("gtin", "gtin13", "gtin14", "gtin8", "gtin12")
_SKU_KEYS = ("sku", "productID")


# --- Helpers ---


def _to_float(v: Any) -> float | None:
    if v is None or isinstance(v, bool):
        return None
    try:
        s = str(v).strip()
        if "." in s and "," in s and s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
        f = float(s)
    except (ValueError, TypeError):
        return None
    return f if math.isfinite(f) else None


def _to_int(v: Any) -> int | None:
    f = _to_float(v)
    return round(f) if f is not None else None


def _text(v: Any, max_len: int = 256) -> str | None:
    """First usable string from a JSON-LD value (string, list, or ``{name|@value}`` object)."""
    if isinstance(v, list):
        return next((t for item in v if (t := _text(item, max_len))), None)
    if isinstance(v, dict):
        inner = v.get("name", v.get("@value"))
        return _text(inner, max_len) if inner is not None else None
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        v = str(v)
    if isinstance(v, str):
        cleaned = sanitize_text(v, max_len=max_len)
        return cleaned or None
    return None


def _url(v: Any) -> str | None:
    """Image/logo URL from a string, list, or ImageObject."""
    if isinstance(v, list):
        return next((u for item in v if (u := _url(item))), None)
    if isinstance(v, dict):
        inner = v.get("url", v.get("contentUrl"))
        return _url(inner) if inner is not None else None
    if isinstance(v, str) and len(v) <= 2048 and v.startswith(("http://", "https://", "//", "/")):
        return v.strip()
    return None


def _short_type(value: str) -> str:
    return value.strip().rsplit("/", 1)[-1].rsplit(":", 1)[-1]


def schema_types(obj: Any) -> tuple[str, ...]:
    """Normalized ``@type`` names of a JSON-LD object (``schema:Product`` → ``Product``)."""
    if not isinstance(obj, dict):
        return ()
    raw = obj.get("@type")
    values = raw if isinstance(raw, list) else [raw]
    return tuple(_short_type(v) for v in values if isinstance(v, str) and v.strip())


def _has_type(obj: Any, names: frozenset[str]) -> bool:
    return any(t in names for t in schema_types(obj))


def normalize_availability(value: Any) -> str | None:
    """Map ``https://schema.org/InStock`` / ``InStock`` / ``in_stock`` to a stock status."""
    if not isinstance(value, str) or not value.strip():
        return None
    key = _short_type(value).replace("_", "").replace(" ", "").lower()
    return _AVAILABILITY.get(key)


def _first_key(obj: dict, keys: Sequence[str]) -> str | None:
    for key in keys:
        value = _text(obj.get(key), max_len=64)
        if value:
            return value
    return None


# --- Typed records ---


@dataclass(frozen=True, slots=True)
class Offer:
    price: float | None = None
    currency: str | None = None
    availability: str | None = None  # in_stock | out_of_stock | preorder


@dataclass(frozen=True, slots=True)
class AggregateRating:
    value: float | None = None
    best: float = 5.0
    count: int = 0


@dataclass(frozen=True, slots=True)
class Review:
    author: str | None = None
    rating: float | None = None


@dataclass(frozen=True, slots=True)
class Person:
    name: str | None = None
    job_title: str | None = None
    description: str | None = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.job_title)


@dataclass(frozen=True, slots=True)
class Organization:
    name: str | None = None
    url: str | None = None
    logo: str | None = None
    description: str | None = None
    same_as: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Product:
    name: str | None = None
    description: str | None = None
    brand: str | None = None
    image: str | None = None
    category: str | None = None
    offers: tuple[Offer, ...] = ()
    aggregate_rating: AggregateRating | None = None
    reviews: tuple[Review, ...] = ()
    gtin: str | None = None
    mpn: str | None = None
    sku: str | None = None
    spec_count: int = 0  # additionalProperty entries

    @property
    def offer(self) -> Offer | None:
        """First offer carrying a price, else the first offer."""
        return next((o for o in self.offers if o.price is not None), self.offers[0] if self.offers else None)


@dataclass(frozen=True, slots=True)
class Article:
    headline: str | None = None
    author: Person | Organization | None = None
    date_published: str | None = None
    date_modified: str | None = None


@dataclass(frozen=True, slots=True)
class BreadcrumbList:
    items: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FaqItem:
    question: str
    answer: str | None = None


@dataclass(frozen=True, slots=True)
class FAQPage:
    questions: tuple[FaqItem, ...] = ()


Entity = Product | Offer | AggregateRating | Review | Organization | Person | Article | BreadcrumbList | FAQPage


# --- Shape decoders ---


def decode_offer(obj: Any) -> Offer | None:
    """Offer or AggregateOffer (``lowPrice``, else first inner offer price)."""
    if not isinstance(obj, dict):
        return None
    price: float | None
    if "AggregateOffer" in schema_types(obj):
        low = obj.get("lowPrice")
        price = _to_float(low if low is not None else obj.get("price"))
        inner = obj.get("offers")
        if price is None and isinstance(inner, list) and inner and isinstance(inner[0], dict):
            price = _to_float(inner[0].get("price"))
    else:
        price = _to_float(obj.get("price"))
        if price is None and isinstance(obj.get("priceSpecification"), dict):
            price = _to_float(obj["priceSpecification"].get("price"))
    if price is not None and price <= 0:
        price = None

    currency = _text(obj.get("priceCurrency"), max_len=8)
    if currency is None and isinstance(obj.get("priceSpecification"), dict):
        currency = _text(obj["priceSpecification"].get("priceCurrency"), max_len=8)

    return Offer(
        price=price,
        currency=currency.upper() if currency else None,
        availability=normalize_availability(obj.get("availability")),
    )


def price_from_offers(offers: Any) -> Offer | None:
    """Handle offers polymorphism: Offer, [Offer], AggregateOffer."""
    decoded = _decode_offers(offers)
    return next((o for o in decoded if o.price is not None), decoded[0] if decoded else None)


def _decode_offers(offers: Any) -> tuple[Offer, ...]:
    items = offers if isinstance(offers, list) else [offers]
    return tuple(o for item in items if (o := decode_offer(item)) is not None)


def decode_aggregate_rating(obj: Any) -> AggregateRating | None:
    if not isinstance(obj, dict):
        return None
    value = _to_float(obj.get("ratingValue"))
    count = _to_int(obj.get("reviewCount"))
    if count is None:
        count = _to_int(obj.get("ratingCount"))
    best = _to_float(obj.get("bestRating"))
    if value is None and not count:
        return None
    return AggregateRating(value=value, best=best if best and best > 0 else 5.0, count=max(0, count or 0))


def decode_review(obj: Any) -> Review | None:
    if not isinstance(obj, dict):
        return None
    rating = obj.get("reviewRating")
    return Review(
        author=_text(obj.get("author"), max_len=200),
        rating=_to_float(rating.get("ratingValue")) if isinstance(rating, dict) else None,
    )


def decode_person(obj: Any) -> Person | None:
    if not isinstance(obj, dict):
        name = _text(obj, max_len=200)
        return Person(name=name) if name else None
    return Person(
        name=_text(obj.get("name"), max_len=200),
        job_title=_text(obj.get("jobTitle"), max_len=200),
        description=_text(obj.get("description"), max_len=1000),
    )


def decode_organization(obj: Any) -> Organization | None:
    if not isinstance(obj, dict):
        return None
    same_as = obj.get("sameAs")
    links = same_as if isinstance(same_as, list) else [same_as]
    return Organization(
        name=_text(obj.get("name"), max_len=200),
        url=_text(obj.get("url"), max_len=2048),
        logo=_url(obj.get("logo")) or _url(obj.get("image")),
        description=_text(obj.get("description"), max_len=1000),
        same_as=tuple(s.strip() for s in links if isinstance(s, str) and s.strip()),
    )


def decode_product(obj: Any) -> Product | None:
    if not isinstance(obj, dict):
        return None
    brand = obj.get("brand", obj.get("manufacturer"))
    reviews = obj.get("review", obj.get("reviews"))
    review_items = reviews if isinstance(reviews, list) else [reviews]
    props = obj.get("additionalProperty")
    return Product(
        name=_text(obj.get("name")),
        description=_text(obj.get("description"), max_len=2000),
        brand=_text(brand, max_len=200),
        image=_url(obj.get("image")),
        category=_text(obj.get("category"), max_len=200),
        offers=_decode_offers(obj.get("offers")),
        aggregate_rating=decode_aggregate_rating(obj.get("aggregateRating")),
        reviews=tuple(r for item in review_items if (r := decode_review(item)) is not None),
        gtin=_first_key(obj, _GTIN_KEYS),
        mpn=_first_key(obj, ("mpn",)),
        sku=_first_key(obj, _SKU_KEYS),
        spec_count=len(props) if isinstance(props, list) else (1 if isinstance(props, dict) else 0),
    )


def decode_article(obj: Any) -> Article | None:
    if not isinstance(obj, dict):
        return None
    author_raw = obj.get("author")
    if isinstance(author_raw, list):
        author_raw = author_raw[0] if author_raw else None
    author: Person | Organization | None
    if _has_type(author_raw, ORGANIZATION_TYPES):
        author = decode_organization(author_raw)
    else:
        author = decode_person(author_raw) if author_raw is not None else None
    return Article(
        headline=_text(obj.get("headline", obj.get("name"))),
        author=author,
        date_published=_text(obj.get("datePublished"), max_len=64),
        date_modified=_text(obj.get("dateModified"), max_len=64),
    )


def decode_breadcrumbs(obj: Any) -> BreadcrumbList | None:
    if not isinstance(obj, dict):
        return None
    elements = obj.get("itemListElement")
    if not isinstance(elements, list):
        return BreadcrumbList()
    ranked: list[tuple[float, int, str]] = []
    for idx, el in enumerate(elements):
        if not isinstance(el, dict):
            continue
        name = _text(el.get("name"), max_len=200)
        if name is None and isinstance(el.get("item"), dict):
            name = _text(el["item"].get("name"), max_len=200)
        if name:
            position = _to_float(el.get("position"))
            ranked.append((position if position is not None else float(idx), idx, name))
    ranked.sort()
    return BreadcrumbList(items=tuple(name for _, _, name in ranked))


def decode_faq(obj: Any) -> FAQPage | None:
    if not isinstance(obj, dict):
        return None
    main = obj.get("mainEntity")
    entries = main if isinstance(main, list) else [main]
    items: list[FaqItem] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        question = _text(entry.get("name"), max_len=500)
        if not question:
            continue
        answer = entry.get("acceptedAnswer")
        if isinstance(answer, list):
            answer = answer[0] if answer else None
        text = _text(answer.get("text"), max_len=2000) if isinstance(answer, dict) else None
        items.append(FaqItem(question=question, answer=text))
    return FAQPage(questions=tuple(items))


_DECODERS: tuple[tuple[frozenset[str], Any], ...] = (
    (PRODUCT_TYPES, decode_product),
    (ORGANIZATION_TYPES, decode_organization),
    (ARTICLE_TYPES, decode_article),
    (frozenset({"BreadcrumbList"}), decode_breadcrumbs),
    (frozenset({"FAQPage"}), decode_faq),
    (OFFER_TYPES, decode_offer),
    (frozenset({"AggregateRating"}), decode_aggregate_rating),
    (frozenset({"Review"}), decode_review),
    (frozenset({"Person"}), decode_person),
)


# --- Traversal ---


def iter_objects(data: Any, max_depth: int = _MAX_DEPTH) -> Iterator[dict]:
    """Yield every JSON object in *data*, depth-first in document order."""
    if max_depth <= 0:
        return
    if isinstance(data, list):
        for item in data:
            yield from iter_objects(item, max_depth - 1)
    elif isinstance(data, dict):
        yield data
        for value in data.values():
            if isinstance(value, (list, dict)):
                yield from iter_objects(value, max_depth - 1)


def _top_level(data: Any, max_depth: int = _MAX_DEPTH) -> Iterator[dict]:
    """Entity candidates: top-level objects, ``@graph`` members, ``mainEntity`` wrappers."""
    if max_depth <= 0:
        return
    if isinstance(data, list):
        for item in data:
            yield from _top_level(item, max_depth - 1)
        return
    if not isinstance(data, dict):
        return
    if "@graph" in data:
        yield from _top_level(data["@graph"], max_depth - 1)
        return
    yield data
    main = data.get("mainEntity")
    if isinstance(main, (dict, list)) and not _has_type(data, frozenset({"FAQPage"})):
        yield from _top_level(main, max_depth - 1)


def decode_entities(objects: Iterable[Any]) -> list[Entity]:
    """Decode JSON-LD trees into typed entities, in document order."""
    entities: list[Entity] = []
    for obj in _top_level(list(objects)):
        types = schema_types(obj)
        for names, decoder in _DECODERS:
            if any(t in names for t in types):
                entity = decoder(obj)
                if entity is not None:
                    entities.append(entity)
                break
    return entities


def find_product(entities: Iterable[Entity]) -> Product | None:
    return next((e for e in entities if isinstance(e, Product)), None)


def find_organization(entities: Iterable[Entity]) -> Organization | None:
    """First named organization, else the first one at all."""
    orgs = [e for e in entities if isinstance(e, Organization)]
    return next((o for o in orgs if o.name), orgs[0] if orgs else None)


def find_breadcrumbs(entities: Iterable[Entity]) -> BreadcrumbList | None:
    return next((e for e in entities if isinstance(e, BreadcrumbList) and e.items), None)


# --- Presence flags ---


@dataclass(frozen=True, slots=True)
class SchemaFlags:
    """Which schema.org shapes a page carries."""

    has_product: bool = False
    has_offer: bool = False
    has_aggregate_rating: bool = False
    has_review: bool = False
    has_organization: bool = False
    has_faq: bool = False
    has_breadcrumb: bool = False
    has_article: bool = False
    has_author: bool = False

    @classmethod
    def from_entities(cls, entities: Sequence[Entity]) -> SchemaFlags:
        products = [e for e in entities if isinstance(e, Product)]
        articles = [e for e in entities if isinstance(e, Article)]
        has_rating = any(p.aggregate_rating for p in products) or any(
            isinstance(e, AggregateRating) for e in entities
        )
        return cls(
            has_product=bool(products),
            has_offer=any(p.offers for p in products) or any(isinstance(e, Offer) for e in entities),
            has_aggregate_rating=has_rating,
            has_review=has_rating
            or any(p.reviews for p in products)
            or any(isinstance(e, Review) for e in entities),
            has_organization=any(isinstance(e, Organization) for e in entities),
            has_faq=any(isinstance(e, FAQPage) for e in entities),
            has_breadcrumb=any(isinstance(e, BreadcrumbList) for e in entities),
            has_article=bool(articles),
            has_author=any(a.author is not None for a in articles) or any(isinstance(e, Person) for e in entities),
        )

    @classmethod
    def from_objects(cls, objects: Iterable[Any]) -> SchemaFlags:
        return cls.from_entities(decode_entities(objects))
