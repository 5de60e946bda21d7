# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Crawl dump input for the CLI.

A crawl dump is the JSON file an external crawler writes after fetching a
site: the resolved main URL, fetched pages (HTML or an error), plus robots.txt,
llms.txt and sitemap findings. Validated with pydantic before analysis.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, ValidationError

from llmvis import PageSignals
from llmvis.analysis import CrawlFacts
from llmvis.errors import CrawlInputError, InvalidUrlError
from llmvis.signals_builder import build_signals

logger = logging.getLogger(__name__)


class CrawledPage(BaseModel):
    """One fetched page. ``html`` is None when the fetch failed."""

    url: str = Field(..., description="Final URL of the page (after redirects)")
    html: str | None = Field(None, description="Raw HTML body")
    error: str | None = Field(None, description="Fetch error, when the page could not be retrieved")


class CrawlDump(BaseModel):
    """Everything the crawler collected for one site."""

    url: str = Field(..., description="Resolved main URL of the site")
    pages: list[CrawledPage] = Field(default_factory=list)
    robots_txt: str | None = Field(None, description="robots.txt body, if found")
    llms_txt: str | None = Field(None, description="llms.txt body, if found")
    sitemap_urls: list[str] = Field(default_factory=list, description="Sitemap documents found")
    sitemap_url_count: int | None = Field(None, ge=0, description="Page URLs listed across all sitemaps")


def load_crawl_dump(path: str | Path) -> CrawlDump:
    """Read and validate a crawl dump. Raises CrawlInputError on any failure."""
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise CrawlInputError(f"Cannot read crawl dump: {e.strerror or e}", path=str(p)) from e
    try:
        return CrawlDump.model_validate(json.loads(raw))
    except json.JSONDecodeError as e:
        raise CrawlInputError(f"Crawl dump is not valid JSON: {e.msg} (line {e.lineno})", path=str(p)) from e
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"]) or "<root>"
        raise CrawlInputError(f"Invalid crawl dump at {where}: {first['msg']}", path=str(p)) from e


def to_crawl_facts(dump: CrawlDump) -> CrawlFacts:
    parts = urlsplit(dump.url)
    return CrawlFacts(
        domain=parts.hostname or "",
        main_url=dump.url,
        robots_txt=dump.robots_txt,
        manifest_text=dump.llms_txt,
        sitemap_urls=tuple(dump.sitemap_urls),
        sitemap_url_count=dump.sitemap_url_count,
        is_https=parts.scheme == "https",
    )


def build_page_signals(dump: CrawlDump) -> list[PageSignals | None]:
    """Signals per crawled page; failed fetches and rejected URLs become None."""
    domain = urlsplit(dump.url).hostname
    signals: list[PageSignals | None] = []
    for page in dump.pages:
        if page.html is None:
            logger.warning("page %s was not fetched: %s", page.url, page.error or "no HTML")
            signals.append(None)
            continue
        try:
            signals.append(build_signals(page.html, page.url, domain=domain))
        except InvalidUrlError as e:
            logger.warning("skipping page: %s", e)
            signals.append(None)
    return signals
