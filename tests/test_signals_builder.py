# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for HTML → PageSignals."""

from __future__ import annotations

import pytest

from llmvis import PageSignals
from llmvis.errors import InvalidUrlError
from llmvis.signals_builder import MAX_QUOTE_SNIPPETS, build_signals, quote_snippets

URL = "https://shop.example.com/products/widget"

PRODUCT_HTML = """<!doctype html>
<html><head>
<title>Acme Widget | Acme</title>
<meta name="description" content="A sturdy widget machined from recycled aluminium.">
<meta property="og:title" content="Acme Widget">
<meta property="og:type" content="product">
<meta name="author" content="Jane Writer">
<script type="application/ld+json">
{"@context": "https://schema.org", "@type": "Product", "name": "Acme Widget",
 "offers": {"@type": "Offer", "price": "49.99", "priceCurrency": "USD", "priceValidUntil": "2026-12-31"}}
</script>
<script type="application/ld+json">{ not json </script>
<style>.hidden { color: red }</style>
</head><body>
<nav aria-label="Breadcrumb"><a href="/">Home</a> <a href="/collections/widgets">Widgets</a></nav>
<h1>Acme  Widget</h1>
<h2>Details</h2><h2>Reviews</h2>
<img src="a.png" alt="front"><img src="b.png">
<table><tr><td>Weight</td><td>1kg</td></tr><tr><td>Colour</td><td>Red</td></tr></table>
<p>Our widget is machined from a single block of recycled aluminium for lasting strength. Add to cart.</p>
<a href="/products/other">Other</a>
<a href="https://twitter.com/acme">Twitter</a>
<a href="mailto:hi@acme.test">Mail</a>
<time datetime="2025-01-02">Jan 2</time>
<script>var token = "do-not-index";</script>
</body></html>
"""


class TestBuildSignals:
    @pytest.fixture(scope="class")
    def signals(self) -> PageSignals:
        return build_signals(PRODUCT_HTML, URL)

    def test_head_fields(self, signals):
        assert signals.title == "Acme Widget | Acme"
        assert signals.meta_description == "A sturdy widget machined from recycled aluminium."
        assert signals.open_graph == {"title": "Acme Widget", "type": "product"}

    def test_malformed_json_ld_skipped(self, signals):
        assert len(signals.structured_data) == 1
        assert signals.structured_data[0]["name"] == "Acme Widget"

    def test_headings_and_images(self, signals):
        assert (signals.headings.h1, signals.headings.h2) == (1, 2)
        assert signals.h1_texts == ("Acme Widget",)
        assert (signals.images.total, signals.images.with_alt) == (2, 1)

    def test_semantic_elements(self, signals):
        assert signals.semantic_elements["table"] == 1
        assert signals.semantic_elements["tr"] == 2
        assert signals.semantic_elements["nav"] == 1
        assert signals.semantic_elements["article"] == 0

    def test_links(self, signals):
        assert signals.internal_links == 3
        assert signals.external_links == 1
        assert "https://shop.example.com/products/other" in signals.links
        assert not any(link.startswith("mailto:") for link in signals.links)

    def test_breadcrumbs_from_markup(self, signals):
        assert signals.breadcrumbs == ("Home", "Widgets")

    def test_dates(self, signals):
        assert signals.published_at == "2025-01-02"
        assert signals.modified_at == "2026-12-31"

    def test_meta_author(self, signals):
        assert signals.author.name == "Jane Writer"

    def test_body_text_excludes_invisible_elements(self, signals):
        assert "machined from a single block" in signals.body_text
        assert "do-not-index" not in signals.body_text
        assert "color: red" not in signals.body_text

    def test_quote_snippets(self, signals):
        assert any("machined from a single block" in s for s in signals.quote_snippets)

    def test_bytes_input(self):
        assert build_signals(PRODUCT_HTML.encode("utf-8"), URL).title == "Acme Widget | Acme"


class TestDegradedInput:
    @pytest.mark.parametrize("html", [None, "", "   \n", b""], ids=["none", "empty", "blank", "empty-bytes"])
    def test_empty_html(self, html):
        assert build_signals(html, URL) == PageSignals(url=URL)

    def test_invalid_url_raises(self):
        with pytest.raises(InvalidUrlError):
            build_signals(PRODUCT_HTML, "ftp://shop.example.com/x")

    def test_breadcrumbs_from_url_path(self):
        signals = build_signals("<html><body><p>hi</p></body></html>", "https://shop.example.com/collections/summer-sale/123")
        assert signals.breadcrumbs == ("Collections", "Summer Sale")

    def test_www_is_same_site(self):
        html = '<html><body><a href="https://www.shop.example.com/a">a</a></body></html>'
        signals = build_signals(html, "https://shop.example.com/")
        assert (signals.internal_links, signals.external_links) == (1, 0)

    def test_domain_override(self):
        html = '<html><body><a href="https://shop.example.com/a">a</a></body></html>'
        signals = build_signals(html, "https://shop.example.com/", domain="other.example")
        assert (signals.internal_links, signals.external_links) == (0, 1)


class TestAuthorFromJsonLd:
    def test_person_author(self):
        html = """<html><head><script type="application/ld+json">
        {"@type": "Article", "headline": "Care guide",
         "author": {"@type": "Person", "name": "Sam Lee", "jobTitle": "Editor"}}
        </script></head><body><p>x</p></body></html>"""
        author = build_signals(html, "https://shop.example.com/blog/care").author
        assert author.name == "Sam Lee"
        assert author.author_type == "Person"
        assert author.has_credentials
        assert not author.has_bio

    def test_multiple_authors(self):
        html = '<html><head><meta name="author" content="Multiple Authors: A, B"></head><body></body></html>'
        assert build_signals(html, URL).author.name == "Multiple authors"


class TestQuoteSnippets:
    def test_declarative_sentence_kept(self):
        text = "Our widgets are machined from a single block of recycled aluminium for strength."
        assert quote_snippets(text) == ("Our widgets are machined from a single block of recycled aluminium for strength",)

    def test_attributed_sentence_dropped(self):
        assert quote_snippets("They said the widget is the best one we have ever made in many years.") == ()

    def test_short_sentence_dropped(self):
        assert quote_snippets("We ship fast. It is good.") == ()

    def test_capped(self):
        sentence = "We build every widget by hand in our small workshop near the river Thames. "
        assert len(quote_snippets(sentence * 10)) == MAX_QUOTE_SNIPPETS
