# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Text cleanup for values lifted out of crawled pages.

Extracted strings end up in generated artifacts (llms.txt, JSON-LD snippets)
that are themselves read by LLMs, so hidden Unicode and terminal escapes are
stripped before anything is stored.

1. sanitize_text(): short fields (names, titles, metadata values)
2. clean_title(): page titles destined for the manifest (payment-badge noise removed)
"""

from __future__ import annotations

import re

# Zero-width chars, bidi overrides, interlinear annotations, C0/C1 controls
_CONTROL_CHAR_RE = re.compile(
    r"[\u200B-\u200F\u202A-\u202E\u2060-\u2069\uFEFF\uFFF9-\uFFFB"
    r"\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F-\u009F]"
)

# ANSI escape sequences
_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")

_WHITESPACE_RE = re.compile(r"\s+")

# Payment badges and checkmarks that storefront themes render inside <title>/<h1>
_TITLE_NOISE_RE = re.compile(
    r"\b(?:American Express|Visa|Mastercard|Maestro|Google Pay|Apple Pay|PayPal|UPI|NetBanking"
    r"|Credit Card|Debit Card|Cash on Delivery|COD|RuPay|Diners Club|Discover|JCB)\b"
    r"|[✓✕]",
)

_EDGE_PUNCT_RE = re.compile(r"^[^\w]+|[^\w]+$")


def sanitize_text(text: str, max_len: int = 256) -> str:
    """Sanitize a short text field.

    - Strips Unicode control characters (zero-width, bidi overrides)
    - Removes ANSI escape sequences
    - Collapses all whitespace (including newlines) to single spaces
    - Truncates to max_len
    """
    if not text:
        return text

    text = _ANSI_ESCAPE_RE.sub("", text)
    text = _CONTROL_CHAR_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()

    if len(text) > max_len:
        text = text[:max_len].rstrip()

    return text


def clean_title(text: str) -> str:
    """Strip payment-provider badges and checkmarks, then trim edge punctuation."""
    if not text:
        return ""
    text = _TITLE_NOISE_RE.sub(" ", sanitize_text(text, max_len=512))
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return _EDGE_PUNCT_RE.sub("", text)
