# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SiteAnalysis serialization: JSON and plain-text report formats.

Two output formats:
- JSON: structured data for programmatic consumption (enums → values)
- Text: short human-readable summary for the terminal
"""

from __future__ import annotations

import dataclasses
import json
from enum import Enum
from typing import Any

from llmvis.analysis import SiteAnalysis
from llmvis.page_scorer import score_label
from llmvis.sanitizer import sanitize_text

# PageSignals fields omitted unless the caller asks for the full dump
_BULKY_FIELDS = frozenset({"body_text", "structured_data", "links"})


def _plain(value: Any, *, full: bool) -> Any:
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: _plain(getattr(value, f.name), full=full)
            for f in dataclasses.fields(value)
            if full or f.name not in _BULKY_FIELDS
        }
    if isinstance(value, dict):
        return {str(k): _plain(v, full=full) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v, full=full) for v in value]
    return value


def to_dict(analysis: SiteAnalysis, *, full: bool = False) -> dict[str, Any]:
    """Serialize SiteAnalysis to a JSON-ready dictionary.

    Args:
        analysis: SiteAnalysis to serialize
        full: keep page body text, raw JSON-LD and link lists

    Returns:
        Plain dict/list/str/number tree
    """
    data = _plain(analysis, full=full)
    data["score"] = analysis.score
    return data


def to_json(analysis: SiteAnalysis, indent: int = 2, *, full: bool = False) -> str:
    """Serialize SiteAnalysis to a JSON string."""
    return json.dumps(to_dict(analysis, full=full), ensure_ascii=False, indent=indent)


def to_text(analysis: SiteAnalysis) -> str:
    """Serialize SiteAnalysis to a terminal report.

    Format:
        Domain: example.com
        Site discoverability: 55/100 (Fair)
        Product extractability: 47/100 (Fair)
        Blended score: 51/100

        ## Factors
        [good] Schema Coverage: 100 - 3/3 pages have structured data

        ## Recommendations
        [high] Add llms.txt File (0 pages)
    """
    site = analysis.site_score
    lines = [
        f"Domain: {sanitize_text(analysis.domain)}",
        f"Pages analyzed: {len(analysis.pages)}",
        f"Site discoverability: {site.score}/{site.max} ({site.label})",
        f"Product extractability: {analysis.product_score}/100 ({score_label(analysis.product_score)})",
        f"Blended score: {analysis.score}/100",
    ]

    if analysis.factors:
        lines += ["", "## Factors"]
        lines += [f"[{f.status}] {f.name}: {f.score} - {f.details}" for f in analysis.factors]

    if analysis.recommendations:
        lines += ["", "## Recommendations"]
        lines += [f"[{r.priority}] {r.title} ({r.affected_pages} pages)" for r in analysis.recommendations]

    manifest = analysis.artifacts.manifest
    if manifest is not None and manifest.warnings:
        lines += ["", f"## Manifest warnings (confidence: {manifest.confidence})"]
        lines += [f"- {w}" for w in manifest.warnings]

    return "\n".join(lines) + "\n"
