# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Site discoverability score (0-100): can an LLM find and identify the site at all?

    manifest (llms.txt) 20 · AI crawler access 15 · sitemap 15 · organization 15
    category presence 10 · brand consistency 10 · transport (HTTPS) 10

External mentions and domain authority matter for discoverability but cannot
be measured from a crawl; they are reported as informational entries only.

robots.txt evaluation follows RFC 9309 group matching via Protego: a bot obeys
its own ``User-agent`` group when one exists, otherwise the ``*`` group.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from protego import Protego

from llmvis.config import DEFAULT_WEIGHTS, ScoringWeights
from llmvis.page_scorer import ScoreItem, score_label

logger = logging.getLogger(__name__)

AI_CRAWLERS: tuple[str, ...] = ("OAI-SearchBot", "GPTBot", "ChatGPT-User")

NO_ROBOTS_DETAILS = "No robots.txt found - all crawlers allowed by default"
ALL_ALLOWED_DETAILS = "All AI crawlers allowed"

# Path checked for a full-site block ("Disallow: /" or "Disallow: /*")
_SITE_ROOT_PATH = "https://site.invalid/"

# Agent that matches no named group, so Protego answers for the "User-agent: *" group
_WILDCARD_AGENT = "llmvis-wildcard-check"

MANIFEST_SECTION_PATTERNS: dict[str, re.Pattern[str]] = {
    "tagline": re.compile(r"^>\s*.+", re.MULTILINE),
    "products": re.compile(r"^##\s*Products", re.MULTILINE | re.IGNORECASE),
    "categories": re.compile(r"^##\s*Categories", re.MULTILINE | re.IGNORECASE),
    "about": re.compile(r"^##\s*About", re.MULTILINE | re.IGNORECASE),
    "key_pages": re.compile(r"^##\s*Key\s*Pages", re.MULTILINE | re.IGNORECASE),
}


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OrganizationRecord:
    name: str | None = None
    logo: str | None = None
    same_as: tuple[str, ...] = ()
    description: str | None = None

    @property
    def has_name(self) -> bool:
        return bool(self.name)

    @property
    def has_logo(self) -> bool:
        return bool(self.logo)

    @property
    def has_same_as(self) -> bool:
        return bool(self.same_as)

    @property
    def has_description(self) -> bool:
        return bool(self.description)


@dataclass(frozen=True, slots=True)
class SiteSignals:
    """Site-level facts, built by the aggregator from crawl facts + pages."""

    manifest_text: str | None = None
    robots_txt: str | None = None
    has_sitemap: bool = False
    sitemap_url_count: int = 0
    organization: OrganizationRecord | None = None
    categories: tuple[str, ...] = ()
    brand_variants: tuple[str, ...] = ()
    is_https: bool = False


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CrawlerAccess:
    allowed: dict[str, bool]
    has_robots_txt: bool
    details: str

    @property
    def allows_oai_searchbot(self) -> bool:
        return self.allowed.get("OAI-SearchBot", True)

    @property
    def allows_gptbot(self) -> bool:
        return self.allowed.get("GPTBot", True)

    @property
    def allows_chatgpt_user(self) -> bool:
        return self.allowed.get("ChatGPT-User", True)


@dataclass(frozen=True, slots=True)
class InformationalSignal:
    """Unscored discoverability factor; reported with advice only."""

    importance: str
    weight: str
    recommendation: str
    measurable: bool = False


@dataclass(frozen=True, slots=True)
class SiteScore:
    score: int
    label: str
    categories: dict[str, ScoreItem] = field(default_factory=dict)
    informational: dict[str, InformationalSignal] = field(default_factory=dict)
    max: int = 100


INFORMATIONAL_SIGNALS: dict[str, InformationalSignal] = {
    "external_mentions": InformationalSignal(
        importance="high",
        weight="15%",
        recommendation=(
            "Get mentioned on Reddit, review sites, and forums. "
            "Third-party mentions are a strong signal for LLM discoverability."
        ),
    ),
    "domain_authority": InformationalSignal(
        importance="medium",
        weight="10%",
        recommendation="Build backlinks and get featured in Wikipedia and industry publications.",
    ),
}


# ---------------------------------------------------------------------------
# robots.txt / manifest checks
# ---------------------------------------------------------------------------


def check_ai_crawler_access(robots_txt: str | None) -> CrawlerAccess:
    """Whether each AI crawler may fetch the site root under *robots_txt*.

    Absent or empty robots.txt allows everything. A "User-agent: *" group that
    disallows the whole site blocks every AI crawler, whatever their own groups say.
    """
    if not robots_txt or not robots_txt.strip():
        return CrawlerAccess(
            allowed={bot: True for bot in AI_CRAWLERS},
            has_robots_txt=False,
            details=NO_ROBOTS_DETAILS,
        )

    robots = Protego.parse(robots_txt)
    site_blocked = not robots.can_fetch(_SITE_ROOT_PATH, _WILDCARD_AGENT)
    allowed = {bot: not site_blocked and bool(robots.can_fetch(_SITE_ROOT_PATH, bot)) for bot in AI_CRAWLERS}
    blocked = [f"{bot} blocked" for bot in AI_CRAWLERS if not allowed[bot]]
    if blocked:
        logger.info("robots.txt blocks AI crawlers: %s", ", ".join(blocked))
    return CrawlerAccess(
        allowed=allowed,
        has_robots_txt=True,
        details=", ".join(blocked) if blocked else ALL_ALLOWED_DETAILS,
    )


def manifest_sections_present(text: str | None) -> dict[str, bool]:
    """Which of the five canonical llms.txt sections *text* contains."""
    content = text or ""
    return {name: bool(pattern.search(content)) for name, pattern in MANIFEST_SECTION_PATTERNS.items()}


def evaluate_manifest_quality(text: str | None, weights: ScoringWeights = DEFAULT_WEIGHTS) -> str:
    """complete (≥4 sections) / partial (≥2) / minimal (present) / missing (absent)."""
    if not text or not text.strip():
        return "missing"
    count = sum(manifest_sections_present(text).values())
    if count >= weights.manifest_complete_sections:
        return "complete"
    if count >= weights.manifest_partial_sections:
        return "partial"
    return "minimal"


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def _manifest(text: str | None, w: ScoringWeights) -> ScoreItem:
    quality = evaluate_manifest_quality(text, w)
    points = {
        "complete": w.manifest_complete,
        "partial": w.manifest_partial,
        "minimal": w.manifest_present,
    }.get(quality, 0)
    sections = manifest_sections_present(text)
    return ScoreItem(
        points=points,
        max=w.manifest_complete,
        found=quality != "missing",
        details={
            "present": quality != "missing",
            "quality": quality,
            "has_content": len(text or "") > 50,
            "has_categories": sections["categories"],
            "has_products": sections["products"],
        },
    )


def _crawler_access(robots_txt: str | None, w: ScoringWeights) -> ScoreItem:
    access = check_ai_crawler_access(robots_txt)
    points = sum(w.crawler_per_bot for allowed in access.allowed.values() if allowed)
    return ScoreItem(
        points=points,
        max=w.crawler_per_bot * len(AI_CRAWLERS),
        found=points > 0,
        details={"allowed": dict(access.allowed), "has_robots_txt": access.has_robots_txt, "details": access.details},
    )


def _sitemap(signals: SiteSignals, w: ScoringWeights) -> ScoreItem:
    points = 0
    if signals.has_sitemap:
        *upper, (_, floor_points) = w.sitemap_tiers
        points = next((pts for threshold, pts in upper if signals.sitemap_url_count > threshold), floor_points)
    return ScoreItem(
        points=points,
        max=w.sitemap_tiers[0][1],
        found=signals.has_sitemap,
        details={"present": signals.has_sitemap, "url_count": signals.sitemap_url_count},
    )


def _organization(org: OrganizationRecord | None, w: ScoringWeights) -> ScoreItem:
    max_points = w.org_name + w.org_logo + w.org_same_as + w.org_description
    if org is None:
        return ScoreItem(points=0, max=max_points, details={"present": False})
    points = (
        (w.org_name if org.has_name else 0)
        + (w.org_logo if org.has_logo else 0)
        + (w.org_same_as if org.has_same_as else 0)
        + (w.org_description if org.has_description else 0)
    )
    details: dict[str, Any] = {
        "present": True,
        "has_name": org.has_name,
        "has_logo": org.has_logo,
        "has_same_as": org.has_same_as,
        "has_description": org.has_description,
    }
    return ScoreItem(points=points, max=max_points, found=True, details=details)


def _categories(categories: tuple[str, ...], w: ScoringWeights) -> ScoreItem:
    points = min(w.category_max, len(categories) * w.category_each)
    return ScoreItem(
        points=points,
        max=w.category_max,
        found=bool(categories),
        details={"categories": list(categories), "count": len(categories)},
    )


def _brand(variants: tuple[str, ...], w: ScoringWeights) -> ScoreItem:
    if len(variants) == 1:
        points = w.brand_single
    elif len(variants) <= w.brand_few_max:
        points = w.brand_few
    else:
        points = 0
    return ScoreItem(
        points=points,
        max=w.brand_single,
        found=bool(variants),
        details={
            "consistent": len(variants) <= 1,
            "variants": list(variants),
            "dominant_brand": variants[0] if variants else None,
        },
    )


def _transport(is_https: bool, w: ScoringWeights) -> ScoreItem:
    return ScoreItem(
        points=w.https if is_https else 0,
        max=w.https,
        found=is_https,
        details={"https": is_https},
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def score_site(signals: SiteSignals, weights: ScoringWeights = DEFAULT_WEIGHTS) -> SiteScore:
    """Score site-level discoverability. Deterministic in its inputs."""
    categories = {
        "manifest": _manifest(signals.manifest_text, weights),
        "ai_crawler_access": _crawler_access(signals.robots_txt, weights),
        "sitemap": _sitemap(signals, weights),
        "organization": _organization(signals.organization, weights),
        "category_presence": _categories(signals.categories, weights),
        "brand_consistency": _brand(signals.brand_variants, weights),
        "transport_health": _transport(signals.is_https, weights),
    }
    score = min(100, sum(item.points for item in categories.values()))
    return SiteScore(
        score=score,
        label=score_label(score, weights),
        categories=categories,
        informational=dict(INFORMATIONAL_SIGNALS),
    )


def empty_site_score() -> SiteScore:
    """Degraded default when there is nothing to score."""
    return SiteScore(score=0, label=DEFAULT_WEIGHTS.label_floor, informational=dict(INFORMATIONAL_SIGNALS))
