# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for llms.txt generation and parsing."""

from __future__ import annotations

import dataclasses

import pytest

from llmvis.aggregator import aggregate
from llmvis.analysis import CrawlFacts, ManifestSections
from llmvis.manifest import (
    WARN_FEW_KEY_PAGES,
    WARN_NO_ABOUT,
    WARN_NO_PRODUCTS,
    WARN_NO_TAGLINE,
    categories_from_url,
    generate_manifest,
    manifest_confidence,
    parse_manifest_sections,
)
from llmvis.site_scorer import evaluate_manifest_quality
from tests._helpers import LONG_META, make_signals, product_page_signals


class TestCategoriesFromUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://shop.example.com/collections/summer-sale/products/red-shoe", ["Summer sale"]),
            ("https://shop.example.com/mens/shoes/12345", ["Mens", "Shoes"]),
            ("https://shop.example.com/cart", []),
            ("https://shop.example.com/sitemap.xml", []),
            ("https://shop.example.com/ab/deadbeefcafe", []),
            ("https://shop.example.com/", []),
        ],
        ids=["collection-parent", "plain-path", "utility", "file", "short-and-hash", "root"],
    )
    def test_segments(self, url, expected):
        assert categories_from_url(url) == expected


class TestConfidence:
    @pytest.mark.parametrize("warnings,expected", [(0, "high"), (1, "medium"), (2, "medium"), (3, "low"), (4, "low")])
    def test_tiers(self, warnings, expected):
        assert manifest_confidence(warnings) == expected

    def test_monotonic(self):
        order = {"high": 2, "medium": 1, "low": 0}
        levels = [order[manifest_confidence(n)] for n in range(6)]
        assert levels == sorted(levels, reverse=True)


class TestGenerateManifest:
    def test_bare_homepage_uses_fallbacks(self):
        analysis = aggregate([make_signals(url="https://shop.example.com/")])
        manifest = generate_manifest(analysis)
        assert manifest.warnings == (WARN_NO_TAGLINE, WARN_NO_PRODUCTS, WARN_NO_ABOUT, WARN_FEW_KEY_PAGES)
        assert manifest.confidence == "low"
        assert manifest.content.startswith("# shop.example.com\n> shop.example.com - E-commerce Website\n")
        assert manifest.sections.sitemap == "https://shop.example.com/sitemap.xml"

    def test_product_site(self):
        analysis = aggregate([product_page_signals()])
        manifest = generate_manifest(analysis)
        assert manifest.sections.tagline == LONG_META
        assert manifest.sections.products == ("Acme Widget | Acme",)
        assert manifest.warnings == (WARN_FEW_KEY_PAGES,)
        assert manifest.confidence == "medium"
        assert "- [Acme Widget | Acme](https://shop.example.com/products/widget)" in manifest.content

    def test_sitemap_from_crawl(self):
        crawl = CrawlFacts(sitemap_urls=("https://shop.example.com/sitemap_index.xml",))
        manifest = generate_manifest(aggregate([product_page_signals()], crawl))
        assert manifest.sections.sitemap == "https://shop.example.com/sitemap_index.xml"

    def test_utility_pages_not_key_pages(self):
        cart = dataclasses.replace(product_page_signals(), url="https://shop.example.com/cart")
        manifest = generate_manifest(aggregate([product_page_signals(), cart]))
        assert [p.url for p in manifest.sections.key_pages] == ["https://shop.example.com/products/widget"]

    def test_generated_manifest_scores_complete(self):
        manifest = generate_manifest(aggregate([product_page_signals()]))
        assert evaluate_manifest_quality(manifest.content) == "complete"


class TestParseManifest:
    def test_round_trip(self):
        pages = [
            make_signals(url="https://shop.example.com/", meta_description=LONG_META, structured_data=({"@type": "WebSite"},)),
            product_page_signals(url="https://shop.example.com/collections/widgets/products/widget"),
        ]
        manifest = generate_manifest(aggregate(pages))
        assert parse_manifest_sections(manifest.content) == manifest.sections

    def test_empty(self):
        assert parse_manifest_sections(None) == ManifestSections()
        assert parse_manifest_sections("") == ManifestSections()

    def test_unknown_sections_ignored(self):
        text = "# x\n> hello\n\n## Shipping\n- free\n\n## Products\n- Widget\n"
        sections = parse_manifest_sections(text)
        assert sections.tagline == "hello"
        assert sections.products == ("Widget",)
