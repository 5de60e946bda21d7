# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""llmvis exception hierarchy.

All llmvis-specific errors inherit from LlmVisError, allowing callers
to catch the base class for any failure or specific subclasses
for targeted handling.

Malformed page content (bad JSON-LD, unparsable numbers) is never an error:
extraction degrades to "absent" instead.
"""

from __future__ import annotations


class LlmVisError(Exception):
    """Base exception for all llmvis errors."""


class InvalidUrlError(LlmVisError, ValueError):
    """URL is not an absolute http(s) URL. Caller error, propagated."""

    def __init__(self, message: str, *, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class CrawlInputError(LlmVisError):
    """Crawl dump could not be read or failed validation."""

    def __init__(self, message: str, *, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class ManifestDraftError(LlmVisError):
    """Text-generation backend failed or returned an unusable draft."""
