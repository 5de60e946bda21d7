# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""LLM visibility: how extractable a site's content is for large language models.

Scores crawled pages on two layers:
- product extractability: can an LLM recover name, price, stock, rating, specs?
- site discoverability: can an LLM find and identify the site/brand at all?

Input is already-parsed page signals (see ``signals_builder`` for an lxml adapter).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

__version__ = "0.3.0"


class PageType(StrEnum):
    """Closed set of page types. Derived once per page."""

    PRODUCT = "product"
    COLLECTION = "collection"
    BLOG = "blog"
    HOMEPAGE = "homepage"
    SEARCH = "search"
    CART = "cart"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class HeadingCounts:
    h1: int = 0
    h2: int = 0
    h3: int = 0
    h4: int = 0
    h5: int = 0
    h6: int = 0

    @property
    def total(self) -> int:
        return self.h1 + self.h2 + self.h3 + self.h4 + self.h5 + self.h6


@dataclass(frozen=True, slots=True)
class ImageStats:
    total: int = 0
    with_alt: int = 0

    @property
    def without_alt(self) -> int:
        return max(0, self.total - self.with_alt)


@dataclass(frozen=True, slots=True)
class AuthorInfo:
    """Byline detected on a page (meta author, rel=author, JSON-LD Person)."""

    name: str | None = None
    author_type: str | None = None
    has_credentials: bool = False
    has_bio: bool = False

    @property
    def has_author(self) -> bool:
        return bool(self.name)


@dataclass(frozen=True, slots=True)
class PageSignals:
    """Everything the scoring core knows about one crawled page.

    Produced by an HTML-parsing collaborator; immutable per page.
    ``structured_data`` holds the decoded JSON-LD trees in document order.
    ``open_graph`` keys are stored without the ``og:`` prefix.
    """

    url: str
    title: str = ""
    meta_description: str = ""
    structured_data: tuple[Any, ...] = ()
    open_graph: dict[str, str] = field(default_factory=dict)
    headings: HeadingCounts = field(default_factory=HeadingCounts)
    h1_texts: tuple[str, ...] = ()
    images: ImageStats = field(default_factory=ImageStats)
    semantic_elements: dict[str, int] = field(default_factory=dict)
    body_text: str = ""
    internal_links: int = 0
    external_links: int = 0
    links: tuple[str, ...] = ()  # internal URLs, de-duplicated
    breadcrumbs: tuple[str, ...] = ()
    published_at: str | None = None
    modified_at: str | None = None
    author: AuthorInfo = field(default_factory=AuthorInfo)
    quote_snippets: tuple[str, ...] = ()

    @property
    def word_count(self) -> int:
        return len(self.body_text.split())

    @property
    def has_structured_data(self) -> bool:
        return len(self.structured_data) > 0
