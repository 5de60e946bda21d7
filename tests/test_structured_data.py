# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the typed JSON-LD decoder and schema presence flags."""

from __future__ import annotations

import pytest

from llmvis.structured_data import (
    AggregateRating,
    Article,
    BreadcrumbList,
    FAQPage,
    Offer,
    Organization,
    Person,
    Product,
    SchemaFlags,
    decode_entities,
    decode_offer,
    find_organization,
    find_product,
    normalize_availability,
    price_from_offers,
    schema_types,
)
from tests._helpers import organization_jsonld, product_jsonld


class TestSchemaTypes:
    @pytest.mark.parametrize(
        "obj,expected",
        [
            ({"@type": "Product"}, ("Product",)),
            ({"@type": ["Product", "Thing"]}, ("Product", "Thing")),
            ({"@type": "https://schema.org/Product"}, ("Product",)),
            ({"@type": "schema:Offer"}, ("Offer",)),
            ({}, ()),
            ("Product", ()),
        ],
        ids=["string", "list", "iri", "prefixed", "missing", "not-object"],
    )
    def test_normalized(self, obj, expected):
        assert schema_types(obj) == expected


class TestAvailability:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("https://schema.org/InStock", "in_stock"),
            ("http://schema.org/OutOfStock", "out_of_stock"),
            ("PreOrder", "preorder"),
            ("schema:SoldOut", "out_of_stock"),
            ("LimitedAvailability", "in_stock"),
            ("Mystery", None),
            (None, None),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_availability(raw) == expected


class TestOffers:
    def test_plain_offer(self):
        offer = decode_offer({"@type": "Offer", "price": "1,299.00", "priceCurrency": "usd"})
        assert offer == Offer(price=1299.0, currency="USD", availability=None)

    def test_decimal_comma(self):
        assert decode_offer({"@type": "Offer", "price": "1.299,50"}).price == 1299.5

    def test_aggregate_offer_low_price(self):
        offer = decode_offer({"@type": "AggregateOffer", "lowPrice": 10, "highPrice": 30, "priceCurrency": "EUR"})
        assert offer.price == 10.0
        assert offer.currency == "EUR"

    def test_aggregate_offer_inner_price(self):
        offer = decode_offer({"@type": "AggregateOffer", "offers": [{"@type": "Offer", "price": "15"}]})
        assert offer.price == 15.0

    def test_price_specification(self):
        offer = decode_offer({"@type": "Offer", "priceSpecification": {"price": 5, "priceCurrency": "GBP"}})
        assert (offer.price, offer.currency) == (5.0, "GBP")

    @pytest.mark.parametrize("price", ["free", "", None, 0, -3, True, "nan"], ids=repr)
    def test_unusable_price_is_absent(self, price):
        assert decode_offer({"@type": "Offer", "price": price}).price is None

    def test_price_from_offer_list_prefers_priced(self):
        offer = price_from_offers([{"@type": "Offer"}, {"@type": "Offer", "price": 7}])
        assert offer.price == 7.0

    def test_price_from_nothing(self):
        assert price_from_offers(None) is None
        assert price_from_offers([]) is None


class TestDecodeEntities:
    def test_product_with_offer_and_rating(self):
        data = product_jsonld(price=999, rating="4.5", review_count="1,234", brand={"@type": "Brand", "name": "Acme"})
        (product,) = decode_entities([data])
        assert isinstance(product, Product)
        assert product.name == "Acme Widget"
        assert product.brand == "Acme"
        assert product.offer.price == 999.0
        assert product.offer.availability == "in_stock"
        assert product.aggregate_rating == AggregateRating(value=4.5, best=5.0, count=1234)

    def test_graph_container(self):
        data = {"@context": "https://schema.org", "@graph": [organization_jsonld(), product_jsonld()]}
        entities = decode_entities([data])
        assert [type(e) for e in entities] == [Organization, Product]

    def test_top_level_list(self):
        entities = decode_entities([[product_jsonld(), {"@type": "BreadcrumbList", "itemListElement": []}]])
        assert isinstance(entities[0], Product)
        assert isinstance(entities[1], BreadcrumbList)

    def test_main_entity_wrapper(self):
        data = {"@type": "WebPage", "mainEntity": product_jsonld(name="Wrapped")}
        assert find_product(decode_entities([data])).name == "Wrapped"

    def test_unknown_shapes_ignored(self):
        assert decode_entities([{"@type": "WebSite", "name": "x"}, "junk", 42, None]) == []

    def test_breadcrumbs_sorted_by_position(self):
        data = {
            "@type": "BreadcrumbList",
            "itemListElement": [
                {"@type": "ListItem", "position": 2, "name": "Shoes"},
                {"@type": "ListItem", "position": 1, "item": {"name": "Home"}},
            ],
        }
        (crumbs,) = decode_entities([data])
        assert crumbs.items == ("Home", "Shoes")

    def test_faq(self):
        data = {
            "@type": "FAQPage",
            "mainEntity": [
                {"@type": "Question", "name": "Ships abroad?", "acceptedAnswer": {"@type": "Answer", "text": "Yes."}},
                {"@type": "Question", "name": ""},
            ],
        }
        (faq,) = decode_entities([data])
        assert isinstance(faq, FAQPage)
        assert len(faq.questions) == 1
        assert faq.questions[0].answer == "Yes."

    def test_article_with_person_author(self):
        data = {
            "@type": "BlogPosting",
            "headline": "Care guide",
            "author": {"@type": "Person", "name": "Sam", "jobTitle": "Editor"},
            "datePublished": "2024-01-02",
        }
        (article,) = decode_entities([data])
        assert isinstance(article, Article)
        assert article.author == Person(name="Sam", job_title="Editor", description=None)

    def test_organization_fields(self):
        org = find_organization(decode_entities([organization_jsonld()]))
        assert org.name == "Acme"
        assert org.logo == "https://shop.example.com/logo.png"
        assert len(org.same_as) == 2

    def test_local_business_is_organization(self):
        org = find_organization(decode_entities([{"@type": "LocalBusiness", "name": "Corner Shop"}]))
        assert org is not None and org.name == "Corner Shop"

    def test_identifiers_on_product(self):
        (product,) = decode_entities([product_jsonld(gtin13="0012345678905", mpn="AC-1", sku=12345)])
        assert (product.gtin, product.mpn, product.sku) == ("0012345678905", "AC-1", "12345")

    def test_additional_property_counts_specs(self):
        props = [{"@type": "PropertyValue", "name": f"p{i}", "value": i} for i in range(4)]
        (product,) = decode_entities([product_jsonld(additionalProperty=props)])
        assert product.spec_count == 4


class TestSchemaFlags:
    def test_empty(self):
        assert SchemaFlags.from_objects([]) == SchemaFlags()

    def test_full_product(self):
        flags = SchemaFlags.from_objects([product_jsonld(rating=4.2)])
        assert flags.has_product and flags.has_offer and flags.has_aggregate_rating and flags.has_review
        assert not flags.has_organization

    def test_product_without_offer(self):
        data = {"@type": "Product", "name": "Bare"}
        flags = SchemaFlags.from_objects([data])
        assert flags.has_product
        assert not flags.has_offer

    def test_site_level_shapes(self):
        flags = SchemaFlags.from_objects(
            [
                organization_jsonld(),
                {"@type": "FAQPage", "mainEntity": []},
                {"@type": "BreadcrumbList", "itemListElement": []},
                {"@type": "Article", "headline": "x", "author": "Kim"},
            ]
        )
        assert flags.has_organization and flags.has_faq and flags.has_breadcrumb
        assert flags.has_article and flags.has_author
