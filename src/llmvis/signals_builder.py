# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Raw HTML → PageSignals.

Parses one fetched page with lxml (recovering parser) and lifts out the
signals the scoring core reads. JSON-LD blocks are parsed once here; a block
that is not valid JSON is skipped, never fatal.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from urllib.parse import unquote, urljoin, urlsplit

import lxml.html
from lxml import etree

from llmvis import AuthorInfo, HeadingCounts, ImageStats, PageSignals
from llmvis.page_classifier import require_http_url
from llmvis.sanitizer import sanitize_text
from llmvis.structured_data import iter_objects, schema_types

logger = logging.getLogger(__name__)

MAX_LINKS = 50
MAX_QUOTE_SNIPPETS = 5

SEMANTIC_TAGS: tuple[str, ...] = (
    "article", "section", "nav", "main", "aside", "header", "footer",
    "table", "tr", "ul", "ol",
)  # fmt: skip

_INVISIBLE_TAGS = ("script", "style", "noscript", "template")

_BREADCRUMB_XPATH = (
    "//nav[contains(translate(@aria-label, 'BREADCRUMB', 'breadcrumb'), 'breadcrumb')]//a"
    " | //*[contains(concat(' ', normalize-space(@class), ' '), ' breadcrumb ')]//a"
    " | //*[contains(@itemtype, 'BreadcrumbList')]//a"
)

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_SUBJECT_RE = re.compile(r"^(we|our|the|this|these|those|it|they|you|your|their|my|a|an)\b", re.IGNORECASE)
_FACTUAL_RE = re.compile(
    r"\b(is|are|was|were|have|has|had|offer|provide|feature|include|support|enable|help"
    r"|allow|ensure|guarantee|deliver|create|build|make)\b",
    re.IGNORECASE,
)
_ATTRIBUTION_RE = re.compile(r"\b(he|she|they|it)\s+(said|says|stated|mentioned|noted)\b", re.IGNORECASE)
_NUMERIC_SEGMENT_RE = re.compile(r"^[0-9]+$")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse(html: str | bytes) -> lxml.html.HtmlElement | None:
    raw = html.encode("utf-8") if isinstance(html, str) else html
    if not raw or not raw.strip():
        return None
    parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
    try:
        return lxml.html.document_fromstring(raw, parser=parser)
    except (etree.ParserError, etree.XMLSyntaxError) as e:
        logger.debug("unparsable HTML: %s", e)
        return None


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _attr(doc: lxml.html.HtmlElement, xpath: str) -> str:
    values = doc.xpath(xpath)
    return str(values[0]).strip() if values else ""


def _json_ld(doc: lxml.html.HtmlElement) -> tuple[Any, ...]:
    blocks: list[Any] = []
    for script in doc.xpath("//script[@type='application/ld+json']"):
        text = script.text or ""
        if not text.strip():
            continue
        try:
            blocks.append(json.loads(text))
        except json.JSONDecodeError as e:
            logger.debug("skipping malformed JSON-LD block: %s", e)
    return tuple(blocks)


def _open_graph(doc: lxml.html.HtmlElement) -> dict[str, str]:
    og: dict[str, str] = {}
    for meta in doc.xpath("//meta[starts-with(@property, 'og:')]"):
        key = meta.get("property", "")[3:]
        if key:
            og[key] = sanitize_text(meta.get("content", ""), max_len=2048)
    return og


def _body_text(doc: lxml.html.HtmlElement) -> str:
    body = doc.find("body")
    root = body if body is not None else doc
    for el in root.xpath(" | ".join(f"//{tag}" for tag in _INVISIBLE_TAGS)):
        el.drop_tree()
    return _collapse(" ".join(root.xpath(".//text()")))


def _bare_host(host: str | None) -> str:
    host = (host or "").lower()
    return host[4:] if host.startswith("www.") else host


def _links(doc: lxml.html.HtmlElement, url: str, domain: str) -> tuple[int, int, tuple[str, ...]]:
    site = _bare_host(domain)
    internal = external = 0
    seen: dict[str, None] = {}
    for href in doc.xpath("//a/@href"):
        try:
            target = urljoin(url, str(href).strip())
            parts = urlsplit(target)
        except ValueError:
            continue
        if parts.scheme not in ("http", "https"):
            continue
        if _bare_host(parts.hostname) == site:
            internal += 1
            seen.setdefault(target, None)
        else:
            external += 1
    return internal, external, tuple(seen)[:MAX_LINKS]


def _title_case(segment: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), segment.replace("-", " "))


def _breadcrumbs(doc: lxml.html.HtmlElement, url: str) -> tuple[str, ...]:
    crumbs = [_collapse(a.text_content()) for a in doc.xpath(_BREADCRUMB_XPATH)]
    crumbs = [c for c in crumbs if c]
    if crumbs:
        return tuple(crumbs)
    segments = [unquote(s) for s in urlsplit(url).path.split("/") if s]
    return tuple(_title_case(s) for s in segments if len(s) > 2 and not _NUMERIC_SEGMENT_RE.match(s))


def _dates(doc: lxml.html.HtmlElement, structured: tuple[Any, ...]) -> tuple[str | None, str | None]:
    published = (
        _attr(doc, "//meta[@property='article:published_time']/@content")
        or _attr(doc, "//meta[@itemprop='datePublished']/@content")
        or _attr(doc, "//time[@datetime]/@datetime")
        or None
    )
    modified = (
        _attr(doc, "//meta[@property='article:modified_time']/@content")
        or _attr(doc, "//meta[@itemprop='dateModified']/@content")
        or None
    )
    for obj in iter_objects(list(structured)):
        if published is None and isinstance(obj.get("datePublished"), str):
            published = obj["datePublished"]
        if modified is None and isinstance(obj.get("dateModified"), str):
            modified = obj["dateModified"]
        if "Product" in schema_types(obj):
            offers = obj.get("offers")
            if modified is None and isinstance(offers, dict) and isinstance(offers.get("priceValidUntil"), str):
                modified = offers["priceValidUntil"]
            if published is None and isinstance(obj.get("releaseDate"), str):
                published = obj["releaseDate"]
    return published, modified


def _author(doc: lxml.html.HtmlElement, structured: tuple[Any, ...]) -> AuthorInfo:
    name: str | None = None
    author_type: str | None = None
    has_credentials = False
    has_bio = False

    meta_author = _attr(doc, "//meta[@name='author']/@content")
    if meta_author:
        name = "Multiple authors" if meta_author.lower().startswith("multiple authors") else meta_author
        has_credentials = len(name) > 6

    rel_author = doc.xpath("//a[@rel='author']")
    if rel_author:
        name = _collapse(rel_author[0].text_content()) or name
        if "/author/" in rel_author[0].get("href", ""):
            author_type = "website"

    for obj in iter_objects(list(structured)):
        person: Any = None
        if "Person" in schema_types(obj) and "author" not in obj:
            person = obj
        elif "author" in obj:
            person = obj["author"][0] if isinstance(obj["author"], list) and obj["author"] else obj["author"]
        if isinstance(person, str) and person.strip():
            name = person.strip()
        elif isinstance(person, dict):
            name = str(person.get("name") or "Unknown")
            author_type = next(iter(schema_types(person)), "Unknown")
            has_credentials = bool(person.get("jobTitle") or person.get("credentials"))
            has_bio = bool(person.get("description"))

    return AuthorInfo(
        name=sanitize_text(name) if name else None,
        author_type=author_type,
        has_credentials=has_credentials,
        has_bio=has_bio,
    )


def quote_snippets(text: str) -> tuple[str, ...]:
    """Short, declarative, self-contained sentences an LLM could cite verbatim."""
    found: list[str] = []
    for raw in _SENTENCE_SPLIT_RE.split(_collapse(text)):
        sentence = raw.strip()
        words = len(sentence.split())
        if not 10 <= words <= 35 or len(sentence) <= 50:
            continue
        if not (_SUBJECT_RE.search(sentence) or _FACTUAL_RE.search(sentence)):
            continue
        if _ATTRIBUTION_RE.search(sentence):
            continue
        found.append(sentence)
        if len(found) >= MAX_QUOTE_SNIPPETS:
            break
    return tuple(found)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_signals(html: str | bytes | None, url: str, *, domain: str | None = None) -> PageSignals:
    """Parse *html* fetched from *url* into PageSignals.

    Raises InvalidUrlError for a non-http(s) *url*. Empty or unparsable HTML
    yields signals carrying only the URL.
    """
    parts = require_http_url(url)
    domain = domain or parts.hostname or ""

    doc = _parse(html or b"")
    if doc is None:
        logger.warning("no parsable HTML for %s", url)
        return PageSignals(url=url)

    structured = _json_ld(doc)
    h1_texts = tuple(t for t in (_collapse(h.text_content()) for h in doc.xpath("//h1")) if t)
    headings = HeadingCounts(**{f"h{n}": len(doc.xpath(f"//h{n}")) for n in range(1, 7)})
    images = ImageStats(total=len(doc.xpath("//img")), with_alt=len(doc.xpath("//img[@alt]")))
    semantic = {tag: len(doc.xpath(f"//{tag}")) for tag in SEMANTIC_TAGS}
    internal, external, links = _links(doc, url, domain)
    published, modified = _dates(doc, structured)
    author = _author(doc, structured)
    title = sanitize_text(doc.findtext(".//title") or "")
    # strips invisible elements from the tree; keep last
    body_text = _body_text(doc)

    return PageSignals(
        url=url,
        title=title,
        meta_description=sanitize_text(_attr(doc, "//meta[@name='description']/@content"), max_len=1000),
        structured_data=structured,
        open_graph=_open_graph(doc),
        headings=headings,
        h1_texts=tuple(sanitize_text(t) for t in h1_texts),
        images=images,
        semantic_elements=semantic,
        internal_links=internal,
        external_links=external,
        links=links,
        breadcrumbs=tuple(sanitize_text(c) for c in _breadcrumbs(doc, url)),
        published_at=published,
        modified_at=modified,
        author=author,
        body_text=body_text,
        quote_snippets=quote_snippets(body_text),
    )
