# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the per-page product extractability score."""

from __future__ import annotations

import dataclasses

import pytest

from llmvis import PageType
from llmvis.aggregator import analyze_page
from llmvis.config import DEFAULT_WEIGHTS
from llmvis.extraction import extract
from llmvis.identifiers import Identifiers
from llmvis.page_scorer import (
    NOT_APPLICABLE_LABEL,
    PageEvidence,
    ScoreItem,
    not_applicable,
    score_label,
    score_page,
)
from llmvis.structured_data import SchemaFlags
from tests._helpers import LONG_META, make_signals, product_page_signals, wireless_mouse_signals


def _evidence(signals=None, page_type=PageType.PRODUCT, **kwargs) -> PageEvidence:
    facts = extract(signals or make_signals())
    return PageEvidence(page_type=page_type, facts=facts, **kwargs)


class TestLabels:
    @pytest.mark.parametrize(
        "score,label",
        [(100, "Excellent"), (80, "Excellent"), (79, "Good"), (60, "Good"), (40, "Fair"), (39, "Poor"), (0, "Poor")],
    )
    def test_thresholds(self, score, label):
        assert score_label(score) == label


class TestScoreItem:
    def test_points_above_max_rejected(self):
        with pytest.raises(ValueError):
            ScoreItem(points=11, max=10)

    def test_negative_points_rejected(self):
        with pytest.raises(ValueError):
            ScoreItem(points=-1, max=10)


class TestApplicability:
    @pytest.mark.parametrize(
        "page_type",
        [PageType.HOMEPAGE, PageType.BLOG, PageType.CART, PageType.SEARCH, PageType.OTHER],
    )
    def test_unscored_types(self, page_type):
        result = score_page(_evidence(wireless_mouse_signals(), page_type=page_type))
        assert result.score == 0
        assert result.label == NOT_APPLICABLE_LABEL
        assert result.categories == {}
        assert not result.context.is_applicable
        assert str(page_type) in result.context.reason

    def test_collection_is_scored(self):
        result = score_page(_evidence(wireless_mouse_signals(), page_type=PageType.COLLECTION))
        assert result.context.is_applicable
        assert result.score > 0

    def test_not_applicable_helper(self):
        assert not_applicable(PageType.BLOG).context.detected_type is PageType.BLOG


class TestTextOnlyPage:
    """No structured data: every fact comes from text at the lower tier."""

    @pytest.fixture
    def result(self):
        return score_page(_evidence(wireless_mouse_signals()))

    def test_total_and_label(self, result):
        assert result.score == 41
        assert result.label == "Fair"

    def test_categories(self, result):
        totals = {name: c.total_points for name, c in result.categories.items()}
        assert totals == {
            "identity": 10,
            "pricing": 12,
            "availability": 8,
            "reviews": 0,
            "identifiers": 0,
            "images": 4,
            "specifications": 7,
            "schema_bonus": 0,
        }

    def test_price_item_text_tier(self, result):
        price = result.categories["pricing"].items["price"]
        assert price.points == 10
        assert price.details["value"] == 29.99
        assert price.details["source"] == "text"


class TestFullyMarkedUpPage:
    def test_perfect_score(self):
        signals = product_page_signals(
            rating="4.6",
            review_count=230,
            gtin13="0012345678905",
            brand="Acme",
            description=LONG_META,
            category="Widgets",
        )
        result = analyze_page(signals).score
        assert result.score == 100
        assert result.label == "Excellent"
        assert all(c.total_points == c.max_points for c in result.categories.values())

    def test_missing_rating_loses_reviews_and_bonus(self):
        result = analyze_page(product_page_signals(gtin13="0012345678905")).score
        assert result.categories["reviews"].total_points == 0
        assert result.categories["schema_bonus"].total_points == 8


class TestIdentifiers:
    @pytest.mark.parametrize(
        "ids,points",
        [
            (Identifiers(gtin="0012345678905", mpn="AC-1"), 10),
            (Identifiers(mpn="AC-1", sku="W-9"), 7),
            (Identifiers(sku="W-9"), 5),
            (Identifiers(), 0),
        ],
        ids=["gtin+mpn", "mpn+sku", "sku", "none"],
    )
    def test_strongest_identifier_decides(self, ids, points):
        result = score_page(_evidence(identifiers=ids))
        assert result.categories["identifiers"].total_points == points


class TestAvailabilityTiers:
    def test_offer_schema_counts_as_in_stock(self):
        result = score_page(_evidence(flags=SchemaFlags(has_product=True, has_offer=True)))
        item = result.categories["availability"].items["main"]
        assert item.points == 10
        assert item.details["status"] == "in_stock"

    def test_cta_only(self):
        signals = make_signals(body_text="Add to basket")
        result = score_page(_evidence(signals))
        item = result.categories["availability"].items["main"]
        assert (item.points, item.details["source"]) == (5, "cta")


class TestReviewCountTiers:
    @pytest.mark.parametrize("count,points", [(150, 10), (60, 8), (10, 6), (5, 4), (1, 2)])
    def test_tiers(self, count, points):
        signals = make_signals(body_text=f"Rated 4.5 out of 5 from {count} reviews")
        result = score_page(_evidence(signals))
        items = result.categories["reviews"].items
        assert items["rating"].points == 8
        assert items["count"].points == points

    def test_support_hours_do_not_score(self):
        signals = make_signals(body_text="Free returns. Support 24/7.")
        result = analyze_page(signals).score
        assert result.categories["reviews"].total_points == 0


class TestBounds:
    def test_empty_page(self):
        result = score_page(_evidence())
        assert 0 <= result.score <= 100
        for category in result.categories.values():
            assert 0 <= category.total_points <= category.max_points

    def test_category_maxima_sum_to_100(self):
        result = score_page(_evidence())
        assert sum(c.max_points for c in result.categories.values()) == 100

    def test_custom_weights_respected(self):
        weights = dataclasses.replace(DEFAULT_WEIGHTS, price_text=6)
        result = score_page(_evidence(wireless_mouse_signals()), weights)
        assert result.categories["pricing"].items["price"].points == 6

    def test_deterministic(self):
        evidence = _evidence(wireless_mouse_signals())
        assert score_page(evidence) == score_page(evidence)
