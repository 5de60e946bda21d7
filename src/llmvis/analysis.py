# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Result types shared by the aggregator and the artifact generators."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from llmvis import PageSignals, PageType
from llmvis.extraction import ExtractedFacts
from llmvis.identifiers import Identifiers
from llmvis.page_scorer import PageScore
from llmvis.site_scorer import SiteScore
from llmvis.structured_data import Entity, SchemaFlags


@dataclass(frozen=True, slots=True)
class PageResult:
    """One analyzed page: signals in, classification + facts + score out."""

    signals: PageSignals
    page_type: PageType
    facts: ExtractedFacts
    identifiers: Identifiers
    schema_flags: SchemaFlags
    score: PageScore
    entities: tuple[Entity, ...] = ()

    @property
    def url(self) -> str:
        return self.signals.url


@dataclass(frozen=True, slots=True)
class CrawlFacts:
    """Site-level facts gathered by the crawler (outside this package)."""

    domain: str = ""
    main_url: str = ""
    robots_txt: str | None = None
    manifest_text: str | None = None  # contents of /llms.txt when found
    sitemap_urls: tuple[str, ...] = ()  # sitemap documents found
    sitemap_url_count: int | None = None  # page URLs listed in them; defaults to len(sitemap_urls)
    is_https: bool | None = None  # derived from the first page URL when None

    @property
    def has_sitemap(self) -> bool:
        return bool(self.sitemap_urls) or bool(self.sitemap_url_count)


class FactorStatus(StrEnum):
    GOOD = "good"
    WARNING = "warning"
    POOR = "poor"


@dataclass(frozen=True, slots=True)
class Factor:
    name: str
    score: int
    status: FactorStatus
    details: str


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True, slots=True)
class Recommendation:
    title: str
    description: str
    priority: Priority
    affected_pages: int


@dataclass(frozen=True, slots=True)
class SchemaCoverage:
    total_pages: int = 0
    pages_with_schema: int = 0
    pages_without_schema: int = 0
    product_pages: int = 0
    organization_pages: int = 0
    faq_pages: int = 0
    breadcrumb_pages: int = 0
    review_pages: int = 0
    aggregate_rating_pages: int = 0
    offer_pages: int = 0
    article_pages: int = 0
    pages_with_gtin: int = 0
    pages_with_mpn: int = 0
    pages_with_sku: int = 0


@dataclass(frozen=True, slots=True)
class ComparisonContext:
    percentile: int
    label: str
    compared_to: str = "typical e-commerce sites"


@dataclass(frozen=True, slots=True)
class DiscoveryPromptGroup:
    category: str
    prompts: tuple[str, ...]
    likelihood: str


@dataclass(frozen=True, slots=True)
class KeyPage:
    title: str
    url: str


@dataclass(frozen=True, slots=True)
class ManifestSections:
    tagline: str = ""
    products: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    about: str = ""
    key_pages: tuple[KeyPage, ...] = ()
    sitemap: str = ""


@dataclass(frozen=True, slots=True)
class Manifest:
    """Generated llms.txt."""

    content: str
    sections: ManifestSections
    warnings: tuple[str, ...] = ()
    confidence: str = "high"


@dataclass(frozen=True, slots=True)
class GeneratedSchema:
    """A JSON-LD snippet proposed for a page or the site."""

    schema_type: str
    json_ld: dict[str, Any]
    json_string: str
    confidence: str
    source_url: str
    fields_extracted: tuple[str, ...] = ()
    fields_missing: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Artifacts:
    manifest: Manifest | None = None
    homepage_schemas: tuple[GeneratedSchema, ...] = ()
    product_schemas: tuple[GeneratedSchema, ...] = ()
    organization_schema: GeneratedSchema | None = None


UNMEASURED_SIGNALS: tuple[str, ...] = (
    "training_data_inclusion",
    "domain_authority",
    "brand_recognition",
    "citation_density",
    "user_behavior",
    "external_mentions",
    "third_party_reviews",
)


@dataclass(frozen=True, slots=True)
class SiteAnalysis:
    """Complete result of one aggregation call."""

    main_url: str
    domain: str
    pages: tuple[PageResult, ...]
    crawl: CrawlFacts
    site_score: SiteScore
    product_score: int
    product_breakdown: PageScore | None
    aggregate_score: int
    factors: tuple[Factor, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()
    schema_coverage: SchemaCoverage = field(default_factory=SchemaCoverage)
    page_type_breakdown: dict[str, int] = field(default_factory=dict)
    comparison: dict[str, ComparisonContext] = field(default_factory=dict)
    discovery_prompts: tuple[DiscoveryPromptGroup, ...] = ()
    limitations: dict[str, bool] = field(default_factory=lambda: {name: False for name in UNMEASURED_SIGNALS})
    artifacts: Artifacts = field(default_factory=Artifacts)
    analyzed_url_type: str | None = None
    analyzed_single_product: bool = False
    scoring_version: str = ""

    @property
    def score(self) -> int:
        """Blended legacy score; the two layers are authoritative."""
        return self.aggregate_score
