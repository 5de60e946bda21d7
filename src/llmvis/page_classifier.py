# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""First-match page-type classifier.

Rules are evaluated in registry order and the first one that fires decides the
type. Only ``product`` and ``collection`` pages are scored for extractability,
so the order matters: a cart URL under ``/products/`` is still a cart.

URL rules look at the lower-cased path (product and collection rules also see
the query string). Two structured-data flags can promote a page: article
schema → blog, product schema → product.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import SplitResult, urlsplit

from llmvis import PageType
from llmvis.errors import InvalidUrlError

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _UrlView:
    path: str  # lower-cased, "" for bare origin
    target: str  # path + "?query" when present
    has_product_schema: bool
    has_article_schema: bool


@dataclass(frozen=True, slots=True)
class RuleDef:
    """A single classification rule; ``check`` receives the parsed URL view."""

    name: str
    page_type: PageType
    check: Callable[[_UrlView], bool]


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Result of page classification."""

    page_type: PageType
    rule: str  # name of the rule that fired ("fallback" when none did)


# ---------------------------------------------------------------------------
# URL patterns
# ---------------------------------------------------------------------------

PRODUCT_URL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/products?/"),
    re.compile(r"/p/"),
    re.compile(r"/dp/"),  # Amazon
    re.compile(r"/item/"),
    re.compile(r"/product-"),
    re.compile(r"[?&]product="),
    re.compile(r"/[a-z0-9-]+/p-[a-z0-9]+"),  # Myntra-style slug/p-<id>
)

COLLECTION_URL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/collections?/"),
    re.compile(r"/categories?/"),
    re.compile(r"/category/"),
    re.compile(r"/c/"),
    re.compile(r"/shop/"),
    re.compile(r"/catalog/"),
    re.compile(r"/department/"),
)

_CART_SEGMENTS = ("/cart", "/basket", "/checkout")
_BLOG_SEGMENTS = ("/blog/", "/news/", "/article/", "/post/")


def _matches_any(patterns: tuple[re.Pattern[str], ...], target: str) -> bool:
    return any(p.search(target) for p in patterns)


# ---------------------------------------------------------------------------
# Rule registry (order is significant)
# ---------------------------------------------------------------------------

RULES: tuple[RuleDef, ...] = (
    RuleDef("homepage_root", PageType.HOMEPAGE, check=lambda v: v.path in ("", "/")),
    RuleDef("cart_path", PageType.CART, check=lambda v: any(s in v.path for s in _CART_SEGMENTS)),
    RuleDef("search_path", PageType.SEARCH, check=lambda v: "/search" in v.path),
    RuleDef(
        "blog_path_or_article_schema",
        PageType.BLOG,
        check=lambda v: v.has_article_schema or any(s in v.path for s in _BLOG_SEGMENTS),
    ),
    RuleDef(
        "product_url_or_schema",
        PageType.PRODUCT,
        check=lambda v: v.has_product_schema or _matches_any(PRODUCT_URL_PATTERNS, v.target),
    ),
    RuleDef(
        "collection_url",
        PageType.COLLECTION,
        check=lambda v: _matches_any(COLLECTION_URL_PATTERNS, v.target),
    ),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def require_http_url(url: str) -> SplitResult:
    """Parse *url*, raising InvalidUrlError unless it is an absolute http(s) URL."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError("URL is empty", url=str(url))
    try:
        parts = urlsplit(url.strip())
    except ValueError as e:
        raise InvalidUrlError(f"Unparsable URL: {url!r}", url=url) from e
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise InvalidUrlError(f"Not an absolute http(s) URL: {url!r}", url=url)
    return parts


def classify_page(
    url: str,
    *,
    has_product_schema: bool = False,
    has_article_schema: bool = False,
) -> ClassificationResult:
    """Classify *url* and report which rule fired."""
    parts = require_http_url(url)
    path = parts.path.lower()
    target = f"{path}?{parts.query.lower()}" if parts.query else path
    view = _UrlView(
        path=path,
        target=target,
        has_product_schema=has_product_schema,
        has_article_schema=has_article_schema,
    )
    for rule in RULES:
        if rule.check(view):
            return ClassificationResult(page_type=rule.page_type, rule=rule.name)
    return ClassificationResult(page_type=PageType.OTHER, rule="fallback")


def classify(
    url: str,
    *,
    has_product_schema: bool = False,
    has_article_schema: bool = False,
) -> PageType:
    """Return the page type for *url*. Raises InvalidUrlError for non-http(s) input."""
    return classify_page(
        url,
        has_product_schema=has_product_schema,
        has_article_schema=has_article_schema,
    ).page_type


# ---------------------------------------------------------------------------
# Entered-URL type (what the user asked to analyze)
# ---------------------------------------------------------------------------


class UrlType(StrEnum):
    DOMAIN = "domain"
    PRODUCT = "product"
    COLLECTION = "collection"


@dataclass(frozen=True, slots=True)
class UrlTypeResult:
    url_type: UrlType
    domain: str

    @property
    def is_product_page(self) -> bool:
        return self.url_type is UrlType.PRODUCT


def detect_url_type(url: str) -> UrlTypeResult:
    """Map an entered URL to domain / product / collection by URL shape alone."""
    parts = require_http_url(url)
    path = parts.path.lower()
    domain = parts.hostname or ""
    target = f"{path}?{parts.query.lower()}" if parts.query else path
    if path in ("", "/"):
        return UrlTypeResult(UrlType.DOMAIN, domain)
    if _matches_any(PRODUCT_URL_PATTERNS, target):
        return UrlTypeResult(UrlType.PRODUCT, domain)
    if _matches_any(COLLECTION_URL_PATTERNS, target):
        return UrlTypeResult(UrlType.COLLECTION, domain)
    return UrlTypeResult(UrlType.DOMAIN, domain)
