# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""schema.org JSON-LD snippets proposed from what was extracted.

Product snippets are built from the page's extracted facts, so feeding a
generated snippet back through ``extraction.extract`` recovers the same name
and price. Breadcrumbs come from the URL path; FAQ items from existing FAQ
markup or quote-ready sentences.
"""

from __future__ import annotations

import json
import re
from typing import Any
from urllib.parse import unquote, urlsplit

from llmvis import PageType
from llmvis.analysis import GeneratedSchema, PageResult, SiteAnalysis
from llmvis.structured_data import FAQPage, Organization, Product, find_organization

SCHEMA_CONTEXT = "https://schema.org"

_AVAILABILITY_URLS = {
    "in_stock": "https://schema.org/InStock",
    "out_of_stock": "https://schema.org/OutOfStock",
    "preorder": "https://schema.org/PreOrder",
}

_FAQ_NAME_LIMIT = 60
_MAX_FAQ_ITEMS = 5
_MIN_FAQ_SNIPPETS = 3


def _confidence(missing: int, *, high_max: int = 0, medium_max: int = 2) -> str:
    if missing <= high_max:
        return "high"
    if missing <= medium_max:
        return "medium"
    return "low"


def _json_number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def _build(
    schema_type: str,
    json_ld: dict[str, Any],
    source_url: str,
    confidence: str,
    extracted: list[str],
    missing: list[str],
    suggestions: list[str],
) -> GeneratedSchema:
    return GeneratedSchema(
        schema_type=schema_type,
        json_ld=json_ld,
        json_string=json.dumps(json_ld, indent=2, ensure_ascii=False),
        confidence=confidence,
        source_url=source_url,
        fields_extracted=tuple(extracted),
        fields_missing=tuple(missing),
        suggestions=tuple(suggestions),
    )


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------


def _wants_product_schema(page: PageResult) -> bool:
    return (
        page.schema_flags.has_product
        or page.page_type is PageType.PRODUCT
        or "product" in page.signals.title.lower()
        or "/product" in page.url
    )


def generate_product_schema(page: PageResult) -> GeneratedSchema:
    facts = page.facts
    schema: dict[str, Any] = {"@context": SCHEMA_CONTEXT, "@type": "Product"}
    extracted: list[str] = []
    missing: list[str] = []
    suggestions: list[str] = []

    name = facts.name.value if facts.name.found else page.signals.title
    if name:
        schema["name"] = name
        extracted.append("name")
    else:
        missing.append("name")
        suggestions.append("Add a descriptive product title")

    if facts.description.found:
        schema["description"] = facts.description.value
        extracted.append("description")
    else:
        missing.append("description")
        suggestions.append("Add a product description")

    schema["url"] = page.url
    extracted.append("url")

    product = next((e for e in page.entities if isinstance(e, Product)), None)
    image = (product.image if product is not None else None) or page.signals.open_graph.get("image")
    if image:
        schema["image"] = image
        extracted.append("image")
    else:
        missing.append("image")
        suggestions.append("Add product images")

    if facts.brand.found:
        schema["brand"] = {"@type": "Brand", "name": facts.brand.value}
        extracted.append("brand")

    price = facts.price
    if price.found:
        offer: dict[str, Any] = {
            "@type": "Offer",
            "price": _json_number(price.value),
            "priceCurrency": price.currency or "USD",
        }
        availability = _AVAILABILITY_URLS.get(facts.availability.status)
        if availability:
            offer["availability"] = availability
        else:
            suggestions.append("Add stock availability to the offer")
        schema["offers"] = offer
        extracted.append("price")
    else:
        missing.append("price")
        suggestions.append("Add product pricing information")

    rating = facts.rating
    if rating.found:
        aggregate: dict[str, Any] = {
            "@type": "AggregateRating",
            "ratingValue": _json_number(rating.value),
            "bestRating": _json_number(rating.max_rating),
        }
        if rating.count > 0:
            aggregate["reviewCount"] = rating.count
        schema["aggregateRating"] = aggregate
        extracted.append("aggregateRating")

    ids = page.identifiers
    for key, value in (("gtin", ids.gtin), ("mpn", ids.mpn), ("sku", ids.sku)):
        if value:
            schema[key] = value
            extracted.append(key)
    if not ids.any:
        suggestions.append("Add a GTIN, MPN or SKU identifier")

    return _build("Product", schema, page.url, _confidence(len(missing)), extracted, missing, suggestions)


# ---------------------------------------------------------------------------
# BreadcrumbList
# ---------------------------------------------------------------------------


def _title_case(segment: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), unquote(segment).replace("-", " "))


def generate_breadcrumb_schema(page: PageResult) -> GeneratedSchema | None:
    parts = urlsplit(page.url)
    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        return None

    origin = f"{parts.scheme}://{parts.netloc}"
    items: list[dict[str, Any]] = [{"@type": "ListItem", "position": 1, "name": "Home", "item": origin}]
    for index, segment in enumerate(segments):
        items.append(
            {
                "@type": "ListItem",
                "position": index + 2,
                "name": _title_case(segment),
                "item": f"{origin}/{'/'.join(segments[: index + 1])}",
            }
        )
    schema = {"@context": SCHEMA_CONTEXT, "@type": "BreadcrumbList", "itemListElement": items}
    return _build("BreadcrumbList", schema, page.url, "high", ["breadcrumb items"], [], [])


# ---------------------------------------------------------------------------
# FAQPage
# ---------------------------------------------------------------------------


def _truncate(text: str, limit: int = _FAQ_NAME_LIMIT) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def generate_faq_schema(page: PageResult) -> GeneratedSchema | None:
    existing = next((e for e in page.entities if isinstance(e, FAQPage) and e.questions), None)
    if existing is not None:
        pairs = [(q.question, q.answer or q.question) for q in existing.questions[:_MAX_FAQ_ITEMS]]
        source = "FAQ items from existing markup"
    else:
        pairs = [(_truncate(s), s) for s in page.signals.quote_snippets[:_MAX_FAQ_ITEMS]]
        source = "FAQ items from content"
    if not pairs:
        return None

    schema = {
        "@context": SCHEMA_CONTEXT,
        "@type": "FAQPage",
        "mainEntity": [
            {"@type": "Question", "name": question, "acceptedAnswer": {"@type": "Answer", "text": answer}}
            for question, answer in pairs
        ],
    }
    return _build(
        "FAQPage",
        schema,
        page.url,
        "low",
        [source],
        [],
        ["Review auto-generated FAQ items for accuracy", "Add more specific questions"],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_schema_for_page(page: PageResult) -> list[GeneratedSchema]:
    """Product / BreadcrumbList / FAQPage snippets applicable to *page*."""
    schemas: list[GeneratedSchema] = []
    if _wants_product_schema(page):
        schemas.append(generate_product_schema(page))

    breadcrumb = generate_breadcrumb_schema(page)
    if breadcrumb is not None:
        schemas.append(breadcrumb)

    if page.schema_flags.has_faq or len(page.signals.quote_snippets) >= _MIN_FAQ_SNIPPETS:
        faq = generate_faq_schema(page)
        if faq is not None:
            schemas.append(faq)
    return schemas


def site_name_from_title(title: str) -> str:
    """Leading segment of a ``Name | Tagline`` / ``Name - Tagline`` title."""
    return re.split(r"\s+[-–—]\s+", title.split("|")[0])[0].strip()


def generate_organization_schema(analysis: SiteAnalysis) -> GeneratedSchema | None:
    """Organization snippet for the site, preferring existing Organization markup."""
    if not analysis.pages:
        return None
    main = next((p for p in analysis.pages if p.page_type is PageType.HOMEPAGE), analysis.pages[0])
    org: Organization | None = None
    for page in analysis.pages:
        org = find_organization(page.entities)
        if org is not None:
            break

    schema: dict[str, Any] = {
        "@context": SCHEMA_CONTEXT,
        "@type": "Organization",
        "url": analysis.main_url or main.url,
    }
    extracted = ["url"]
    missing: list[str] = []
    suggestions: list[str] = []

    name = (org.name if org else None) or site_name_from_title(main.signals.title)
    if name:
        schema["name"] = name
        extracted.append("name")
    else:
        schema["name"] = analysis.domain
        missing.append("name")
        suggestions.append("Add organization name")

    description = (org.description if org else None) or main.signals.meta_description
    if description:
        schema["description"] = description
        extracted.append("description")
    else:
        missing.append("description")
        suggestions.append("Add organization description")

    logo = (org.logo if org else None) or main.signals.open_graph.get("image")
    if logo:
        schema["logo"] = logo
        extracted.append("logo")
    else:
        missing.append("logo")
        suggestions.append("Add organization logo URL")

    if org is not None and org.same_as:
        schema["sameAs"] = list(org.same_as)
        extracted.append("sameAs")
    else:
        missing.append("sameAs (social profiles)")
        suggestions.append("Add social media profile URLs")

    confidence = _confidence(len(missing), high_max=1, medium_max=3)
    return _build("Organization", schema, schema["url"], confidence, extracted, missing, suggestions)
