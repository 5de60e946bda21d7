# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for llmvis.sanitizer: cleanup of text lifted out of crawled pages."""

import pytest

from llmvis.sanitizer import clean_title, sanitize_text


class TestSanitizeText:
    """Tests for sanitize_text (short field sanitization)."""

    # --- Basic functionality ---

    def test_passthrough_normal_text(self):
        assert sanitize_text("장바구니 담기") == "장바구니 담기"

    def test_passthrough_ascii(self):
        assert sanitize_text("Add to Cart") == "Add to Cart"

    def test_empty_string(self):
        assert sanitize_text("") == ""

    # --- Unicode control character removal ---

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Click\u200bhere", "Clickhere"),
            ("ab\u200ccd", "abcd"),
            ("ab\u200dcd", "abcd"),
            ("\ufeffhello", "hello"),
            ("text\u202eevil\u202c", "textevil"),
            ("a\ufff9b\ufffbc", "abc"),
            ("hello\x00world", "helloworld"),
            ("bell\x07ring", "bellring"),
        ],
        ids=["zwsp", "zwnj", "zwj", "bom", "bidi", "interlinear", "null", "c0"],
    )
    def test_strips_invisible(self, raw, expected):
        assert sanitize_text(raw) == expected

    # --- ANSI escape removal ---

    def test_strips_ansi_color(self):
        assert sanitize_text("\x1b[31mred text\x1b[0m") == "red text"

    def test_strips_complex_ansi(self):
        assert sanitize_text("\x1b[38;5;196mcolored\x1b[0m") == "colored"

    # --- Whitespace ---

    def test_collapses_newlines(self):
        assert sanitize_text("line1\nline2\r\nline3") == "line1 line2 line3"

    def test_collapses_multiple_spaces(self):
        assert sanitize_text("  a   b \t  c  ") == "a b c"

    # --- Length truncation ---

    def test_default_max_len(self):
        assert len(sanitize_text("x" * 300)) == 256

    def test_custom_max_len(self):
        assert len(sanitize_text("x" * 200, max_len=100)) == 100

    def test_truncation_does_not_leave_trailing_space(self):
        assert sanitize_text("abcd efgh", max_len=5) == "abcd"


class TestCleanTitle:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Acme Widget", "Acme Widget"),
            ("Acme Widget ✓ Visa Mastercard PayPal", "Acme Widget"),
            ("Buy Acme Widget | Google Pay Apple Pay", "Buy Acme Widget"),
            ("— Acme Widget —", "Acme Widget"),
            ("\u200bAcme\nWidget", "Acme Widget"),
            ("", ""),
        ],
        ids=["plain", "badges", "badges-after-separator", "edge-punct", "invisible", "empty"],
    )
    def test_cleanup(self, raw, expected):
        assert clean_title(raw) == expected
