# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for crawl dump loading and conversion."""

from __future__ import annotations

import json

import pytest

from llmvis import PageSignals
from llmvis.crawl_input import CrawlDump, build_page_signals, load_crawl_dump, to_crawl_facts
from llmvis.errors import CrawlInputError

HOME_HTML = "<html><head><title>Acme</title></head><body><h1>Acme</h1></body></html>"


def _write(tmp_path, payload) -> str:
    path = tmp_path / "crawl.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return str(path)


class TestLoadCrawlDump:
    def test_valid_dump(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "url": "https://shop.example.com/",
                "pages": [{"url": "https://shop.example.com/", "html": HOME_HTML}],
                "robots_txt": "User-agent: *\nAllow: /",
                "sitemap_urls": ["https://shop.example.com/sitemap.xml"],
                "sitemap_url_count": 42,
            },
        )
        dump = load_crawl_dump(path)
        assert dump.url == "https://shop.example.com/"
        assert dump.pages[0].html == HOME_HTML
        assert dump.pages[0].error is None
        assert dump.llms_txt is None
        assert dump.sitemap_url_count == 42

    def test_missing_file(self, tmp_path):
        with pytest.raises(CrawlInputError, match="Cannot read crawl dump") as exc_info:
            load_crawl_dump(tmp_path / "nope.json")
        assert exc_info.value.path.endswith("nope.json")

    def test_invalid_json(self, tmp_path):
        with pytest.raises(CrawlInputError, match="not valid JSON"):
            load_crawl_dump(_write(tmp_path, "{not json"))

    @pytest.mark.parametrize(
        "payload,where",
        [
            ({"pages": []}, "url"),
            ({"url": "https://a.test/", "pages": [{"html": "<p></p>"}]}, "pages.0.url"),
            ({"url": "https://a.test/", "sitemap_url_count": -1}, "sitemap_url_count"),
            ([], "<root>"),
        ],
        ids=["no-url", "page-without-url", "negative-count", "not-an-object"],
    )
    def test_validation_errors(self, tmp_path, payload, where):
        with pytest.raises(CrawlInputError, match=f"Invalid crawl dump at {where}:"):
            load_crawl_dump(_write(tmp_path, payload))


class TestToCrawlFacts:
    def test_fields(self):
        dump = CrawlDump(
            url="https://shop.example.com/",
            llms_txt="# Acme",
            sitemap_urls=["https://shop.example.com/sitemap.xml"],
        )
        facts = to_crawl_facts(dump)
        assert facts.domain == "shop.example.com"
        assert facts.main_url == "https://shop.example.com/"
        assert facts.manifest_text == "# Acme"
        assert facts.sitemap_urls == ("https://shop.example.com/sitemap.xml",)
        assert facts.sitemap_url_count is None
        assert facts.is_https is True

    def test_plain_http(self):
        assert to_crawl_facts(CrawlDump(url="http://shop.example.com/")).is_https is False


class TestBuildPageSignals:
    def test_pages_keep_order_and_failures(self):
        dump = CrawlDump.model_validate(
            {
                "url": "https://shop.example.com/",
                "pages": [
                    {"url": "https://shop.example.com/", "html": HOME_HTML},
                    {"url": "https://shop.example.com/gone", "error": "HTTP 404"},
                    {"url": "ftp://shop.example.com/file", "html": HOME_HTML},
                ],
            }
        )
        signals = build_page_signals(dump)
        assert len(signals) == 3
        assert isinstance(signals[0], PageSignals)
        assert signals[0].title == "Acme"
        assert signals[1] is None
        assert signals[2] is None

    def test_failed_page_logged(self, caplog):
        dump = CrawlDump.model_validate(
            {"url": "https://shop.example.com/", "pages": [{"url": "https://shop.example.com/x", "error": "timeout"}]}
        )
        with caplog.at_level("WARNING", logger="llmvis.crawl_input"):
            build_page_signals(dump)
        assert "timeout" in caplog.text
