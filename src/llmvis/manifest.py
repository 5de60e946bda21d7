# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""llms.txt generation from an analyzed site, and the reverse parser.

Layout::

    # example.com
    > tagline

    ## Categories      (URL-derived, utility paths excluded)
    ## Products        (titles of pages carrying Product schema)
    ## About
    ## Key Pages       (- [title](url))
    ## Sitemap

Every fallback used while filling a section adds a warning; confidence drops
with the warning count (0 → high, ≤2 → medium, else low).
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit

from llmvis import PageType
from llmvis.analysis import KeyPage, Manifest, ManifestSections, PageResult, SiteAnalysis
from llmvis.sanitizer import clean_title, sanitize_text

logger = logging.getLogger(__name__)

MAX_PRODUCTS = 20
MAX_RENDERED_PRODUCTS = 15
MAX_CATEGORIES = 10
MAX_KEY_PAGES = 10
MIN_KEY_PAGES = 5

WARN_NO_TAGLINE = "Could not extract tagline from meta description or H1"
WARN_NO_PRODUCTS = "No product schema found - product list may be incomplete"
WARN_NO_ABOUT = "Limited organization information available"
WARN_FEW_KEY_PAGES = "Few structured pages found - key pages list may be incomplete"

UTILITY_SEGMENTS = frozenset(
    {
        "cart", "checkout", "account", "login", "register", "signup", "signin",
        "search", "contact", "help", "faq", "terms", "privacy", "policy",
        "shipping", "returns", "about", "careers", "jobs", "customer",
        "authentication", "redirect", "admin", "api", "wishlist", "compare",
        "order", "orders", "track", "feed", "rss", "atom", "sitemap", "robots",
        "collections", "products", "pages", "blogs", "blog", "news", "category", "categories",
    }
)  # fmt: skip

_CATEGORY_PARENTS = frozenset({"collections", "category", "categories"})
_PRODUCT_PARENTS = frozenset({"products", "product", "p"})

_FILE_SEGMENT_RE = re.compile(r"\.(html?|php|aspx?|xml|json|txt)$", re.IGNORECASE)
_NUMERIC_RE = re.compile(r"^[0-9]+$")
_HASH_RE = re.compile(r"^[a-f0-9]{8,}$", re.IGNORECASE)
_UUIDISH_RE = re.compile(r"^[a-f0-9-]{20,}$", re.IGNORECASE)

_EXCLUDED_KEY_PATHS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (r"/cart$", r"/checkout$", r"/search$", r"/account$", r"/login$", r"/authentication$", r"/redirect$")
) + (re.compile(r"/customer"),)


# ---------------------------------------------------------------------------
# Section builders
# ---------------------------------------------------------------------------


def _display_segment(segment: str) -> str:
    return segment[:1].upper() + segment[1:].replace("-", " ")


def categories_from_url(url: str) -> list[str]:
    """Category-like path segments of *url*, in path order."""
    path = urlsplit(url).path
    segments = [s for s in path.split("/") if s and not _FILE_SEGMENT_RE.search(s)]
    found: list[str] = []
    for i, seg in enumerate(segments):
        prev = segments[i - 1].lower() if i > 0 else ""
        lowered = seg.lower()
        normalized = re.sub(r"[-_]", "", lowered)

        if len(seg) <= 2 or _NUMERIC_RE.match(seg) or _HASH_RE.match(seg):
            continue
        if lowered in UTILITY_SEGMENTS or normalized in UTILITY_SEGMENTS:
            continue
        if any(word in normalized for word in ("sitemap", "redirect", "authentication")):
            continue

        if prev in _CATEGORY_PARENTS:
            found.append(_display_segment(seg))
        elif prev not in _PRODUCT_PARENTS and 3 <= len(seg) <= 50 and not _UUIDISH_RE.match(seg):
            found.append(_display_segment(seg))
    return found


def _main_page(pages: tuple[PageResult, ...]) -> PageResult | None:
    return next((p for p in pages if p.page_type is PageType.HOMEPAGE), pages[0] if pages else None)


def _is_key_page(page: PageResult) -> bool:
    path = urlsplit(page.url).path.lower()
    if any(pattern.search(path) for pattern in _EXCLUDED_KEY_PATHS):
        return False
    return page.signals.has_structured_data or page.schema_flags.has_product


def _sitemap_url(analysis: SiteAnalysis) -> str:
    if analysis.crawl.sitemap_urls:
        return analysis.crawl.sitemap_urls[0]
    if analysis.main_url:
        parts = urlsplit(analysis.main_url)
        if parts.scheme and parts.netloc:
            return f"{parts.scheme}://{parts.netloc}/sitemap.xml"
    return f"https://{analysis.domain}/sitemap.xml"


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


def render_manifest(domain: str, sections: ManifestSections) -> str:
    """Render *sections* in the canonical llms.txt layout."""
    lines = [f"# {domain}", f"> {sections.tagline}", ""]

    if sections.categories:
        lines.append("## Categories")
        lines.extend(f"- {cat}" for cat in sections.categories)
        lines.append("")

    if sections.products:
        lines.append("## Products")
        lines.extend(f"- {prod}" for prod in sections.products[:MAX_RENDERED_PRODUCTS])
        lines.append("")

    lines.extend(["## About", sections.about, ""])

    lines.append("## Key Pages")
    lines.extend(f"- [{p.title}]({p.url})" for p in sections.key_pages[:MAX_KEY_PAGES])
    lines.append("")

    lines.extend(["## Sitemap", f"- [Sitemap]({sections.sitemap})"])
    return "\n".join(lines) + "\n"


def manifest_confidence(warning_count: int) -> str:
    if warning_count == 0:
        return "high"
    if warning_count <= 2:
        return "medium"
    return "low"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_manifest(analysis: SiteAnalysis) -> Manifest:
    """Build llms.txt content for *analysis*. Never fails; gaps become warnings."""
    warnings: list[str] = []
    main = _main_page(analysis.pages)

    tagline = ""
    if main is not None:
        tagline = sanitize_text(main.signals.meta_description, max_len=500)
        if not tagline and main.signals.h1_texts:
            tagline = sanitize_text(main.signals.h1_texts[0], max_len=500)
    if not tagline:
        tagline = f"{analysis.domain} - E-commerce Website"
        warnings.append(WARN_NO_TAGLINE)

    products: list[str] = []
    categories: list[str] = []
    for page in analysis.pages:
        if page.schema_flags.has_product and page.signals.title:
            cleaned = clean_title(page.signals.title)
            if cleaned:
                products.append(cleaned)
        categories.extend(categories_from_url(page.url))
    products = _dedupe(products)
    categories = _dedupe(categories)

    if not products:
        warnings.append(WARN_NO_PRODUCTS)

    about = sanitize_text(main.signals.meta_description, max_len=1000) if main is not None else ""
    if not about:
        about = f"{analysis.domain} is an e-commerce website."
        warnings.append(WARN_NO_ABOUT)

    key_pages = tuple(
        KeyPage(title=clean_title(p.signals.title) or "Untitled", url=p.url)
        for p in analysis.pages
        if _is_key_page(p)
    )[:MAX_KEY_PAGES]
    if len(key_pages) < MIN_KEY_PAGES:
        warnings.append(WARN_FEW_KEY_PAGES)

    sections = ManifestSections(
        tagline=tagline,
        products=tuple(products[:MAX_PRODUCTS]),
        categories=tuple(categories[:MAX_CATEGORIES]),
        about=about,
        key_pages=key_pages,
        sitemap=_sitemap_url(analysis),
    )
    if warnings:
        logger.debug("manifest for %s generated with warnings: %s", analysis.domain, warnings)
    return Manifest(
        content=render_manifest(analysis.domain, sections),
        sections=sections,
        warnings=tuple(warnings),
        confidence=manifest_confidence(len(warnings)),
    )


_LINK_ITEM_RE = re.compile(r"^\[(?P<title>[^\]]*)\]\((?P<url>[^)\s]*)\)")
_HEADING_RE = re.compile(r"^##\s*(?P<name>.+?)\s*$")


def parse_manifest_sections(text: str | None) -> ManifestSections:
    """Parse llms.txt back into sections. Unknown sections are ignored."""
    if not text:
        return ManifestSections()

    tagline = ""
    current: str | None = None
    lists: dict[str, list[str]] = {"products": [], "categories": []}
    about_lines: list[str] = []
    key_pages: list[KeyPage] = []
    sitemap = ""

    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith(">") and not tagline and current is None:
            tagline = line[1:].strip()
            continue
        heading = _HEADING_RE.match(line)
        if heading:
            current = re.sub(r"\s+", "_", heading.group("name").strip().lower())
            continue
        if line.startswith("# "):
            current = None
            continue

        item = line[2:].strip() if line.startswith(("- ", "* ")) else None
        if current in lists and item:
            lists[current].append(item)
        elif current == "about":
            about_lines.append(line)
        elif current == "key_pages" and item:
            link = _LINK_ITEM_RE.match(item)
            if link:
                key_pages.append(KeyPage(title=link.group("title"), url=link.group("url")))
        elif current == "sitemap" and item and not sitemap:
            link = _LINK_ITEM_RE.match(item)
            sitemap = link.group("url") if link else item

    return ManifestSections(
        tagline=tagline,
        products=tuple(lists["products"]),
        categories=tuple(lists["categories"]),
        about=" ".join(about_lines),
        key_pages=tuple(key_pages),
        sitemap=sitemap,
    )
