"""Tests for the DOM harvester's Python side."""

import pytest

from doubles import FakePage, make_tile
from price_compare.scrapers.dom_harvester import (
    EXTRACT_PRODUCTS_JS,
    dedupe_products,
    extract_products_from_page,
    is_plausible_product_name,
    product_key,
)


class TestProductNames:
    @pytest.mark.parametrize("name", ["Mug", "Vision Glass Set of 6", "x" * 200])
    def test_plausible_names(self, name):
        assert is_plausible_product_name(name) is True

    @pytest.mark.parametrize(
        "name",
        ["", None, "ab", "x" * 201, "var price = 10", ".product-card { }", "document.write"],
    )
    def test_rejected_names(self, name):
        assert is_plausible_product_name(name) is False


class TestDedupe:
    def test_same_url_kept_once(self):
        first = make_tile("Glass Bowl", "shop.example", "bowl")
        second = dict(first, name="Glass Bowl (Blue)")

        unique = dedupe_products([first, second])

        assert unique == [first]

    def test_name_and_image_identify_products_without_url(self):
        a = {"name": "Mug", "image": "https://cdn/mug.jpg"}
        b = {"name": "Mug", "image": "https://cdn/mug.jpg", "url": ""}
        c = {"name": "Mug", "image": "https://cdn/mug-2.jpg"}

        assert product_key(a) == "Mug-https://cdn/mug.jpg"
        assert dedupe_products([a, b, c]) == [a, c]


class TestExtractProductsFromPage:
    @pytest.mark.asyncio
    async def test_filters_and_dedupes_candidates(self):
        tiles = [
            make_tile("Glass Bowl", "shop.example", "bowl"),
            make_tile("Glass Bowl", "shop.example", "bowl"),
            dict(make_tile("Dinner Set", "shop.example", "set"), image="data:image/gif;base64,R0l"),
            dict(make_tile("Mug", "shop.example", "mug"), name="{{ product.title }}"),
            make_tile("Tea Cup", "shop.example", "cup"),
        ]
        page = FakePage(products_for=lambda url: tiles)

        products = await extract_products_from_page(page, "ShopCo", "₹")

        assert [p["name"] for p in products] == ["Glass Bowl", "Tea Cup"]

    @pytest.mark.asyncio
    async def test_passes_competitor_and_currency_to_page(self):
        calls = []

        class RecordingPage(FakePage):
            async def evaluate(self, script, arg=None):
                calls.append((script, arg))
                return None

        products = await extract_products_from_page(RecordingPage(), "ShopCo", "$")

        assert products == []
        assert calls == [(EXTRACT_PRODUCTS_JS, {"competitorName": "ShopCo", "currencySymbol": "$"})]
