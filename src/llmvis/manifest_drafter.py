# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Optional llms.txt drafting through a local Ollama-compatible server.

The templated manifest from ``llmvis.manifest`` stays authoritative; a draft
is an extra the caller may show alongside it. ``draft()`` never raises:
transport failures, non-2xx responses and unusable output come back as
``DraftResult(used_llm=False, error=...)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType

import httpx

from llmvis import PageType
from llmvis.analysis import KeyPage, SiteAnalysis
from llmvis.config import DrafterSettings
from llmvis.errors import ManifestDraftError

logger = logging.getLogger(__name__)

AVAILABILITY_TIMEOUT = 5.0
HOMEPAGE_EXCERPT_CHARS = 2000
MAX_DRAFT_KEY_PAGES = 10


@dataclass(frozen=True, slots=True)
class DraftRequest:
    domain: str
    brand_name: str = ""
    homepage_content: str = ""
    product_categories: tuple[str, ...] = ()
    key_pages: tuple[KeyPage, ...] = ()


@dataclass(frozen=True, slots=True)
class DraftResult:
    content: str
    used_llm: bool
    error: str | None = None


def build_prompt(request: DraftRequest) -> str:
    """Prompt asking for a bare llms.txt in the canonical section layout."""
    categories = "\n".join(request.product_categories) if request.product_categories else "Not detected"
    key_pages = "\n".join(f"- {p.title}: {p.url}" for p in request.key_pages)
    heading = request.brand_name or request.domain
    return f"""You are generating an llms.txt file for an e-commerce website. \
This file helps LLMs understand the website structure and content.

Website: {request.domain}
Brand: {request.brand_name}

Homepage content excerpt:
{request.homepage_content[:HOMEPAGE_EXCERPT_CHARS]}

Product categories:
{categories}

Key pages:
{key_pages}

Generate a concise llms.txt file in this EXACT format. \
Do not add any commentary, just the llms.txt content:

# {heading}

> {{One-line tagline describing what the brand sells - extract from homepage content}}

## Products
{{List main product categories, one per line starting with -}}

## Key Pages
{{List 3-5 important pages in format: [Page Title](full-url)}}

## About
{{2-3 sentences about the brand, what makes them unique, extracted from homepage}}

## Sitemap
https://{request.domain}/sitemap.xml

Now generate the llms.txt content:"""


def draft_request_from_analysis(analysis: SiteAnalysis) -> DraftRequest:
    """Collect drafting inputs from a finished analysis."""
    main = next((p for p in analysis.pages if p.page_type is PageType.HOMEPAGE), None)
    if main is None and analysis.pages:
        main = analysis.pages[0]
    manifest = analysis.artifacts.manifest
    sections = manifest.sections if manifest is not None else None
    return DraftRequest(
        domain=analysis.domain,
        brand_name=analysis.domain.split(".")[0].replace("-", " ") if analysis.domain else "",
        homepage_content=main.signals.body_text if main is not None else "",
        product_categories=sections.categories if sections is not None else (),
        key_pages=sections.key_pages[:MAX_DRAFT_KEY_PAGES] if sections is not None else (),
    )


class ManifestDrafter:
    """Synchronous client for ``/api/tags`` and ``/api/generate``.

    Pass *client* to reuse a configured ``httpx.Client`` (tests inject one
    backed by ``httpx.MockTransport``); otherwise one is created and owned here.
    """

    def __init__(self, settings: DrafterSettings | None = None, *, client: httpx.Client | None = None) -> None:
        self._settings = settings or DrafterSettings.from_env()
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=self._settings.base_url, timeout=self._settings.timeout)

    @property
    def settings(self) -> DrafterSettings:
        return self._settings

    def _url(self, path: str) -> str:
        return f"{self._settings.base_url.rstrip('/')}{path}"

    def is_available(self) -> bool:
        """True when the server answers ``GET /api/tags`` with 2xx."""
        try:
            response = self._client.get(self._url("/api/tags"), timeout=AVAILABILITY_TIMEOUT)
        except httpx.HTTPError as e:
            logger.debug("text-generation server unreachable: %s", e)
            return False
        return response.is_success

    def _generate(self, prompt: str) -> str:
        s = self._settings
        payload = {
            "model": s.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": s.temperature, "top_p": s.top_p, "num_predict": s.max_tokens},
        }
        try:
            response = self._client.post(self._url("/api/generate"), json=payload, timeout=s.timeout)
        except httpx.TimeoutException as e:
            raise ManifestDraftError(f"Request timed out after {s.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise ManifestDraftError(f"Request failed: {e}") from e

        if not response.is_success:
            raise ManifestDraftError(f"Server returned {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise ManifestDraftError("Server returned invalid JSON") from e

        content = data.get("response") if isinstance(data, dict) else None
        content = content.strip() if isinstance(content, str) else ""
        if len(content) < s.min_response_chars:
            raise ManifestDraftError("LLM response too short or empty")
        return content

    def draft(self, request: DraftRequest) -> DraftResult:
        """Draft llms.txt for *request*. Failures are reported, not raised."""
        try:
            content = self._generate(build_prompt(request))
        except ManifestDraftError as e:
            logger.warning("manifest draft failed for %s: %s", request.domain, e)
            return DraftResult(content="", used_llm=False, error=str(e))
        logger.info("manifest drafted for %s (%d chars)", request.domain, len(content))
        return DraftResult(content=content, used_llm=True)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ManifestDrafter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
