# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-page analysis and site-level aggregation.

``analyze_page`` is pure: classify → decode structured data → extract facts
and identifiers → score. ``aggregate`` waits for every page result, then
computes the site discoverability layer once, derives factors,
recommendations and supplementary reports, and attaches generated artifacts.

Failed pages (``None`` entries, or pages whose URL is rejected) are dropped
with a warning; they never fail the whole aggregation.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import re
from collections.abc import Iterable, Sequence
from urllib.parse import urlsplit

import structlog

from llmvis import PageSignals, PageType
from llmvis.analysis import (
    Artifacts,
    ComparisonContext,
    CrawlFacts,
    DiscoveryPromptGroup,
    Factor,
    FactorStatus,
    PageResult,
    Priority,
    Recommendation,
    SchemaCoverage,
    SiteAnalysis,
)
from llmvis.config import DEFAULT_WEIGHTS, ScoringWeights, max_pages
from llmvis.errors import InvalidUrlError
from llmvis.extraction import extract
from llmvis.identifiers import extract_identifiers
from llmvis.manifest import generate_manifest
from llmvis.page_classifier import UrlTypeResult, classify, detect_url_type
from llmvis.page_scorer import PageEvidence, PageScore, score_page
from llmvis.schema_generator import generate_organization_schema, generate_schema_for_page
from llmvis.site_scorer import OrganizationRecord, SiteSignals, empty_site_score, score_site
from llmvis.structured_data import SchemaFlags, decode_entities, find_organization

logger = logging.getLogger(__name__)

META_DESCRIPTION_MIN_CHARS = 120
OPEN_GRAPH_MIN_KEYS = 4
MAX_BRAND_VARIANTS = 5
MAX_PRODUCT_SNIPPET_PAGES = 5
INFORMATIONAL_WORD_COUNT = 500

_TITLE_SEPARATOR_RE = re.compile(r"\s+[|\-–—]\s+|\|")


# ---------------------------------------------------------------------------
# Per page
# ---------------------------------------------------------------------------


def analyze_page(signals: PageSignals, weights: ScoringWeights = DEFAULT_WEIGHTS) -> PageResult:
    """Analyze one page. Raises InvalidUrlError when ``signals.url`` is not http(s)."""
    entities = tuple(decode_entities(signals.structured_data))
    flags = SchemaFlags.from_entities(entities)
    page_type = classify(
        signals.url,
        has_product_schema=flags.has_product,
        has_article_schema=flags.has_article,
    )
    facts = extract(signals, entities)
    identifiers = extract_identifiers(signals.structured_data, signals.body_text)
    score = score_page(
        PageEvidence(page_type=page_type, facts=facts, identifiers=identifiers, flags=flags),
        weights,
    )
    return PageResult(
        signals=signals,
        page_type=page_type,
        facts=facts,
        identifiers=identifiers,
        schema_flags=flags,
        score=score,
        entities=entities,
    )


def _collect(pages: Iterable[PageSignals | PageResult | None], weights: ScoringWeights) -> list[PageResult]:
    limit = max_pages()
    results: list[PageResult] = []
    for page in pages:
        if page is None:
            logger.warning("dropping failed page (no signals)")
            continue
        if len(results) >= limit:
            logger.warning("page limit reached (%d); remaining pages ignored", limit)
            break
        if isinstance(page, PageResult):
            results.append(page)
            continue
        try:
            results.append(analyze_page(page, weights))
        except InvalidUrlError as e:
            logger.warning("dropping page with invalid URL %r: %s", e.url, e)
    return results


# ---------------------------------------------------------------------------
# Site signals
# ---------------------------------------------------------------------------


def _organization_record(results: Sequence[PageResult]) -> OrganizationRecord | None:
    """Organization markup, filled in from the page that carries it (or the homepage)."""
    org_page = next((r for r in results if r.schema_flags.has_organization), None)
    if org_page is None:
        return None
    org = find_organization(org_page.entities)
    signals = org_page.signals
    return OrganizationRecord(
        name=(org.name if org else None) or signals.title or None,
        logo=(org.logo if org else None) or signals.open_graph.get("image") or None,
        same_as=org.same_as if org else (),
        description=(org.description if org else None) or signals.meta_description or None,
    )


def brand_variants(results: Sequence[PageResult]) -> tuple[str, ...]:
    """Distinct brand spellings: H1 texts plus the leading segment of each title.

    Spellings are compared exactly, so "Acme" and "ACME" count as two variants.
    """
    seen: dict[str, None] = {}
    for r in results:
        for h1 in r.signals.h1_texts:
            seen.setdefault(h1.strip(), None)
        if r.signals.title:
            seen.setdefault(_TITLE_SEPARATOR_RE.split(r.signals.title)[0].strip(), None)
    return tuple(b for b in seen if len(b) > 2)[:MAX_BRAND_VARIANTS]


def site_categories(results: Sequence[PageResult]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for r in results:
        for crumb in r.signals.breadcrumbs:
            if crumb.strip():
                seen.setdefault(crumb.strip(), None)
    return tuple(seen)


def _is_https(results: Sequence[PageResult], crawl: CrawlFacts) -> bool:
    if crawl.is_https is not None:
        return crawl.is_https
    url = crawl.main_url or (results[0].url if results else "")
    return url.lower().startswith("https://")


def build_site_signals(results: Sequence[PageResult], crawl: CrawlFacts) -> SiteSignals:
    count = crawl.sitemap_url_count if crawl.sitemap_url_count is not None else len(crawl.sitemap_urls)
    return SiteSignals(
        manifest_text=crawl.manifest_text,
        robots_txt=crawl.robots_txt,
        has_sitemap=crawl.has_sitemap,
        sitemap_url_count=count,
        organization=_organization_record(results),
        categories=site_categories(results),
        brand_variants=brand_variants(results),
        is_https=_is_https(results, crawl),
    )


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def product_extractability(results: Sequence[PageResult]) -> tuple[int, PageScore | None]:
    """Mean over product pages; the first page's score when there are none."""
    product_scores = [r.score for r in results if r.page_type is PageType.PRODUCT]
    if product_scores:
        mean = sum(s.score for s in product_scores) / len(product_scores)
        return round_half_up(mean), product_scores[0]
    if results:
        return results[0].score.score, results[0].score
    return 0, None


def comparison_context(score: int) -> ComparisonContext:
    """Rough percentile against typical e-commerce sites."""
    if score >= 80:
        percentile, label = 90 + min(10, score - 80), "Top 10%"
    elif score >= 60:
        percentile, label = 70 + (score - 60) / 20 * 20, "Top 30%"
    elif score >= 40:
        percentile, label = 40 + (score - 40) / 20 * 30, "Average"
    elif score >= 20:
        percentile, label = 15 + (score - 20) / 20 * 25, "Below Average"
    else:
        percentile, label = max(5, score), "Bottom 10%"
    return ComparisonContext(percentile=round_half_up(percentile), label=label)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def schema_coverage(results: Sequence[PageResult]) -> SchemaCoverage:
    total = len(results)
    with_schema = sum(1 for r in results if r.signals.has_structured_data)
    return SchemaCoverage(
        total_pages=total,
        pages_with_schema=with_schema,
        pages_without_schema=total - with_schema,
        product_pages=sum(1 for r in results if r.schema_flags.has_product),
        organization_pages=sum(1 for r in results if r.schema_flags.has_organization),
        faq_pages=sum(1 for r in results if r.schema_flags.has_faq),
        breadcrumb_pages=sum(1 for r in results if r.schema_flags.has_breadcrumb),
        review_pages=sum(1 for r in results if r.schema_flags.has_review),
        aggregate_rating_pages=sum(1 for r in results if r.schema_flags.has_aggregate_rating),
        offer_pages=sum(1 for r in results if r.schema_flags.has_offer),
        article_pages=sum(1 for r in results if r.schema_flags.has_article),
        pages_with_gtin=sum(1 for r in results if r.identifiers.gtin),
        pages_with_mpn=sum(1 for r in results if r.identifiers.mpn),
        pages_with_sku=sum(1 for r in results if r.identifiers.sku),
    )


def page_type_breakdown(results: Sequence[PageResult]) -> dict[str, int]:
    counts = {str(t): 0 for t in PageType}
    for r in results:
        counts[str(r.page_type)] += 1
    return counts


def _good_meta(r: PageResult) -> bool:
    return len(r.signals.meta_description or "") >= META_DESCRIPTION_MIN_CHARS


def _good_og(r: PageResult) -> bool:
    return len(r.signals.open_graph) >= OPEN_GRAPH_MIN_KEYS


def _good_h1(r: PageResult) -> bool:
    return r.signals.headings.h1 == 1


def _good_alt(r: PageResult) -> bool:
    return r.signals.images.total == 0 or r.signals.images.without_alt == 0


def _percent(part: int, total: int) -> int:
    return round_half_up(part / total * 100) if total else 0


def _band(part: int, total: int) -> FactorStatus:
    ratio = part / total if total else 0.0
    if ratio >= 0.8:
        return FactorStatus.GOOD
    if ratio >= 0.5:
        return FactorStatus.WARNING
    return FactorStatus.POOR


def build_factors(results: Sequence[PageResult], coverage: SchemaCoverage, crawl: CrawlFacts) -> tuple[Factor, ...]:
    """Fixed-order site factors. Empty when no page was analyzed."""
    total = len(results)
    if total == 0:
        return ()
    meta = sum(1 for r in results if _good_meta(r))
    og = sum(1 for r in results if _good_og(r))
    h1 = sum(1 for r in results if _good_h1(r))
    alt = sum(1 for r in results if _good_alt(r))
    with_schema = coverage.pages_with_schema
    sitemap_count = len(crawl.sitemap_urls)

    return (
        Factor(
            "Schema Coverage",
            _percent(with_schema, total),
            _band(with_schema, total),
            f"{with_schema}/{total} pages have structured data",
        ),
        Factor(
            "Product Schema",
            _percent(coverage.product_pages, total),
            FactorStatus.GOOD if coverage.product_pages else FactorStatus.POOR,
            f"Product schema on {coverage.product_pages} pages",
        ),
        Factor(
            "Review/Rating Schema",
            _percent(coverage.review_pages, total),
            FactorStatus.GOOD if coverage.review_pages else FactorStatus.WARNING,
            f"Review/rating schema on {coverage.review_pages} pages",
        ),
        Factor("Meta Descriptions", _percent(meta, total), _band(meta, total), f"{meta}/{total} pages have good meta descriptions"),
        Factor("Open Graph Tags", _percent(og, total), _band(og, total), f"{og}/{total} pages have OG tags"),
        Factor("Heading Structure", _percent(h1, total), _band(h1, total), f"{h1}/{total} pages have proper H1"),
        Factor("Image Alt Text", _percent(alt, total), _band(alt, total), f"{alt}/{total} pages have all images with alt"),
        Factor(
            "robots.txt",
            100 if crawl.robots_txt else 0,
            FactorStatus.GOOD if crawl.robots_txt else FactorStatus.POOR,
            "robots.txt found" if crawl.robots_txt else "No robots.txt",
        ),
        Factor(
            "Sitemap",
            100 if crawl.has_sitemap else 0,
            FactorStatus.GOOD if crawl.has_sitemap else FactorStatus.WARNING,
            f"Found {sitemap_count} sitemap(s)" if sitemap_count else "No sitemap found",
        ),
        Factor(
            "llms.txt",
            100 if crawl.manifest_text else 0,
            FactorStatus.GOOD if crawl.manifest_text else FactorStatus.WARNING,
            "llms.txt found - optimized for LLMs" if crawl.manifest_text else "No llms.txt (recommended for AI visibility)",
        ),
    )


def build_recommendations(
    results: Sequence[PageResult], coverage: SchemaCoverage, crawl: CrawlFacts
) -> tuple[Recommendation, ...]:
    """Fixed-order, independent recommendations. Empty when no page was analyzed."""
    total = len(results)
    if total == 0:
        return ()
    recs: list[Recommendation] = []
    meta = sum(1 for r in results if _good_meta(r))
    h1 = sum(1 for r in results if _good_h1(r))
    og = sum(1 for r in results if _good_og(r))

    if not crawl.manifest_text:
        recs.append(
            Recommendation(
                "Add llms.txt File",
                "Create an llms.txt file at your site root to provide structured information specifically "
                "for LLMs. This is becoming the standard for AI discoverability.",
                Priority.HIGH,
                0,
            )
        )
    if coverage.pages_without_schema > 0:
        recs.append(
            Recommendation(
                "Add Structured Data to More Pages",
                f"{coverage.pages_without_schema} pages are missing JSON-LD structured data. "
                "Add schema.org markup to improve discoverability.",
                Priority.HIGH,
                coverage.pages_without_schema,
            )
        )
    if coverage.product_pages == 0:
        recs.append(
            Recommendation(
                "Add Product Schema",
                "No product pages found with Product schema. This is critical for e-commerce LLM visibility.",
                Priority.HIGH,
                total,
            )
        )
    if coverage.organization_pages == 0:
        recs.append(
            Recommendation(
                "Add Organization Schema",
                "Add Organization or LocalBusiness schema to at least your homepage to establish brand identity.",
                Priority.MEDIUM,
                1,
            )
        )
    if meta < total:
        recs.append(
            Recommendation(
                "Improve Meta Descriptions",
                f"{total - meta} pages need better meta descriptions (120-160 characters).",
                Priority.HIGH,
                total - meta,
            )
        )
    if h1 < total:
        recs.append(
            Recommendation(
                "Fix Heading Structure",
                f"{total - h1} pages have missing or multiple H1 tags.",
                Priority.MEDIUM,
                total - h1,
            )
        )
    if coverage.faq_pages == 0:
        recs.append(
            Recommendation(
                "Add FAQ Schema",
                "No FAQ schema found. Add FAQ sections with schema markup to appear in AI-generated answers.",
                Priority.MEDIUM,
                0,
            )
        )
    if og < total:
        recs.append(
            Recommendation(
                "Add Open Graph Tags",
                f"{total - og} pages are missing complete OG tags.",
                Priority.LOW,
                total - og,
            )
        )
    return tuple(recs)


def discovery_prompts(results: Sequence[PageResult], domain: str) -> tuple[DiscoveryPromptGroup, ...]:
    """Questions a shopper might ask an assistant, grouped by intent."""
    brand = domain.split(".")[0].replace("-", " ") if domain else ""
    brand = brand or "this store"
    main_has_org = bool(results) and results[0].schema_flags.has_organization
    any_org = any(r.schema_flags.has_organization for r in results)

    groups = [
        DiscoveryPromptGroup(
            "Brand Discovery",
            (
                f"What is {brand}?",
                f"Tell me about {brand} online store",
                f"Is {brand} a legitimate website?",
                f"{brand} reviews and ratings",
            ),
            "high" if main_has_org else "medium",
        )
    ]
    if any(r.schema_flags.has_product for r in results):
        groups.append(
            DiscoveryPromptGroup(
                "Product Discovery",
                (
                    f"Best products on {brand}",
                    f"What does {brand} sell?",
                    f"{brand} product categories",
                    f"Popular items on {brand}",
                ),
                "high",
            )
        )
    groups.append(
        DiscoveryPromptGroup(
            "Comparison Shopping",
            (
                f"{brand} vs competitors",
                f"Is {brand} cheaper than Amazon?",
                f"Best place to buy [product] - does {brand} have it?",
                f"{brand} alternatives",
            ),
            "medium",
        )
    )
    groups.append(
        DiscoveryPromptGroup(
            "Trust & Credibility",
            (
                f"Is {brand} trustworthy?",
                f"{brand} customer service reviews",
                f"Has anyone bought from {brand}?",
                f"{brand} scam or legit",
            ),
            "high" if any_org else "medium",
        )
    )
    avg_words = sum(r.signals.word_count for r in results) / (len(results) or 1)
    if avg_words > INFORMATIONAL_WORD_COUNT:
        groups.append(
            DiscoveryPromptGroup(
                "Informational Queries",
                (
                    f"How to use products from {brand}",
                    f"{brand} buying guide",
                    f"What should I know before buying from {brand}",
                ),
                "medium",
            )
        )
    return tuple(groups)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _domain_of(crawl: CrawlFacts, results: Sequence[PageResult]) -> str:
    if crawl.domain:
        return crawl.domain
    url = crawl.main_url or (results[0].url if results else "")
    return (urlsplit(url).hostname or "") if url else ""


def _entered_url_type(url: str) -> UrlTypeResult | None:
    if not url:
        return None
    try:
        return detect_url_type(url)
    except InvalidUrlError as e:
        logger.warning("main URL not classifiable: %s", e)
        return None


def _artifacts(analysis: SiteAnalysis) -> Artifacts:
    pages = analysis.pages
    product_pages = [
        p for p in pages if p.schema_flags.has_product or "/product" in p.url
    ][:MAX_PRODUCT_SNIPPET_PAGES]
    return Artifacts(
        manifest=generate_manifest(analysis),
        homepage_schemas=tuple(generate_schema_for_page(pages[0])) if pages else (),
        product_schemas=tuple(s for p in product_pages for s in generate_schema_for_page(p)),
        organization_schema=generate_organization_schema(analysis),
    )


def aggregate(
    pages: Iterable[PageSignals | PageResult | None],
    crawl: CrawlFacts | None = None,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> SiteAnalysis:
    """Aggregate page results and crawl facts into one SiteAnalysis.

    Zero usable pages yields a degraded result: every score 0, empty lists.
    """
    crawl = crawl or CrawlFacts()
    results = _collect(pages, weights)
    domain = _domain_of(crawl, results)
    main_url = crawl.main_url or (results[0].url if results else "")

    with structlog.contextvars.bound_contextvars(domain=domain):
        if not results:
            logger.warning("no analyzable pages; returning empty analysis")
            return SiteAnalysis(
                main_url=main_url,
                domain=domain,
                pages=(),
                crawl=crawl,
                site_score=empty_site_score(),
                product_score=0,
                product_breakdown=None,
                aggregate_score=0,
                scoring_version=weights.version,
            )

        site_score = score_site(build_site_signals(results, crawl), weights)
        product_score, product_breakdown = product_extractability(results)
        coverage = schema_coverage(results)
        url_type = _entered_url_type(main_url)

        analysis = SiteAnalysis(
            main_url=main_url,
            domain=domain,
            pages=tuple(results),
            crawl=crawl,
            site_score=site_score,
            product_score=product_score,
            product_breakdown=product_breakdown,
            aggregate_score=round_half_up((site_score.score + product_score) / 2),
            factors=build_factors(results, coverage, crawl),
            recommendations=build_recommendations(results, coverage, crawl),
            schema_coverage=coverage,
            page_type_breakdown=page_type_breakdown(results),
            comparison={
                "site_discoverability": comparison_context(site_score.score),
                "product_extractability": comparison_context(product_score),
            },
            discovery_prompts=discovery_prompts(results, domain),
            analyzed_url_type=str(url_type.url_type) if url_type else None,
            analyzed_single_product=url_type is not None and url_type.is_product_page and len(results) == 1,
            scoring_version=weights.version,
        )
        analysis = dataclasses.replace(analysis, artifacts=_artifacts(analysis))
        logger.info(
            "aggregated %d pages: site=%d product=%d blended=%d",
            len(results),
            site_score.score,
            product_score,
            analysis.aggregate_score,
        )
        return analysis
