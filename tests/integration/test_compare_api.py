"""Integration tests for the comparison HTTP API.

The application is built through create_app and the DI container; only the
browser-driven orchestrator and the selector detector are replaced.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import test_utils
from dependency_injector import providers

from price_compare.config import CacheConfig
from price_compare.core.container import Container
from price_compare.errors import BrowserLaunchError
from price_compare.main import create_app
from price_compare.models import DetectedSelectors, ScrapedProduct
from price_compare.services.cache_service import ComparisonCache
from price_compare.services.competitor_registry import YamlCompetitorRegistry

COMPETITORS_YML = """
competitors:
  - name: Zeta
    baseUrl: https://zeta.example
    searchUrl: https://zeta.example/search?q={query}
  - name: Alpha
    baseUrl: https://alpha.example
    searchUrl: https://alpha.example/find?term={query}
    isActive: false
"""


def _detected(confidence: int) -> DetectedSelectors:
    return DetectedSelectors(
        product_container=".product-card",
        product_name=".title",
        product_brand=".brand, span",
        product_price=".price",
        product_image="img",
        product_url="a",
        confidence=confidence,
        detected_product_count=6,
    )


@pytest.fixture
def orchestrator():
    orchestrator = MagicMock()
    orchestrator.scrape_competitors = AsyncMock(return_value=[])
    return orchestrator


@pytest.fixture
def detector():
    return AsyncMock(return_value=_detected(85))


@pytest.fixture
def container(tmp_path, orchestrator, detector, fake_redis):
    path = tmp_path / "competitors.yml"
    path.write_text(COMPETITORS_YML, encoding="utf-8")

    container = Container()
    container.competitor_registry.override(providers.Object(YamlCompetitorRegistry(path)))
    container.scrape_orchestrator.override(providers.Object(orchestrator))
    container.comparison_cache.override(
        providers.Object(ComparisonCache(CacheConfig(enabled=False), client=fake_redis))
    )
    container.selector_detector.override(providers.Object(detector))
    return container


@asynccontextmanager
async def _client(container):
    client = test_utils.TestClient(test_utils.TestServer(create_app(container)))
    await client.start_server()
    try:
        yield client
    finally:
        await client.close()


class TestSearchEndpoint:
    @pytest.mark.asyncio
    async def test_returns_ranked_results(self, container, orchestrator):
        products = [
            ScrapedProduct(
                name="Dinner Set 18 pcs",
                price=2499,
                price_text="₹2499",
                image="https://zeta.example/media/set.jpg",
                url="https://zeta.example/products/set",
                competitor="Zeta",
            ),
            ScrapedProduct(
                name="Dinner Set 12 pcs",
                price=1799,
                price_text="₹1799",
                image="https://zeta.example/media/set-12.jpg",
                competitor="Zeta",
            ),
        ]
        orchestrator.scrape_competitors.return_value = [
            {
                "competitor": "Zeta",
                "success": True,
                "products": products,
                "outcome": "completed",
                "pages_fetched": 1,
                "error": None,
                "processing_time_ms": 10,
            }
        ]

        async with _client(container) as client:
            resp = await client.post("/api/compare/search", json={"productName": "Dinner Set"})
            body = await resp.json()

        assert resp.status == 200
        assert body["success"] is True
        assert body["productName"] == "Dinner Set"
        assert body["totalResults"] == 2
        assert [r["priceText"] for r in body["results"]] == ["₹1799", "₹2499"]
        assert body["results"][0]["url"] is None
        active = orchestrator.scrape_competitors.await_args.args[1]
        assert [c.name for c in active] == ["Zeta"]

    @pytest.mark.asyncio
    async def test_blank_product_name(self, container, orchestrator):
        async with _client(container) as client:
            resp = await client.post("/api/compare/search", json={"productName": "  "})
            body = await resp.json()

        assert resp.status == 400
        assert body == {
            "success": False,
            "productName": "  ",
            "results": [],
            "totalResults": 0,
            "duration": "0.00s",
            "message": "Product name is required",
            "cachedCompetitors": [],
        }
        orchestrator.scrape_competitors.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_json_body(self, container):
        async with _client(container) as client:
            resp = await client.post("/api/compare/search", data="productName=mug")

        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_run_failure(self, container, orchestrator):
        orchestrator.scrape_competitors.side_effect = BrowserLaunchError("no chromium")

        async with _client(container) as client:
            resp = await client.post("/api/compare/search", json={"productName": "mug"})
            body = await resp.json()

        assert resp.status == 500
        assert body["success"] is False
        assert body["message"] == "Failed to compare products"


class TestDetectSelectorsEndpoint:
    @pytest.mark.asyncio
    async def test_confident_detection(self, container, detector):
        async with _client(container) as client:
            resp = await client.post(
                "/api/compare/detect-selectors", json={"searchUrl": " https://zeta.example/s?q=mug "}
            )
            body = await resp.json()

        assert resp.status == 200
        assert body["success"] is True
        assert body["confidence"] == 85
        assert body["selectors"]["productContainer"] == ".product-card"
        assert "confidence" not in body["selectors"]
        assert "warning" not in body
        detector.assert_awaited_once_with("https://zeta.example/s?q=mug")

    @pytest.mark.asyncio
    async def test_low_confidence_adds_warning(self, container, detector):
        detector.return_value = _detected(40)

        async with _client(container) as client:
            resp = await client.post(
                "/api/compare/detect-selectors", json={"searchUrl": "https://zeta.example/s"}
            )
            body = await resp.json()

        assert resp.status == 200
        assert body["warning"] == "Low confidence detection"
        assert body["message"] == "Selectors detected with low confidence. Please verify."

    @pytest.mark.asyncio
    async def test_nothing_detected(self, container, detector):
        detector.return_value = None

        async with _client(container) as client:
            resp = await client.post(
                "/api/compare/detect-selectors", json={"searchUrl": "https://zeta.example/s"}
            )
            body = await resp.json()

        assert resp.status == 400
        assert body["message"] == (
            "Could not detect selectors automatically. Please enter them manually."
        )

    @pytest.mark.asyncio
    async def test_missing_search_url(self, container, detector):
        async with _client(container) as client:
            resp = await client.post("/api/compare/detect-selectors", json={})
            body = await resp.json()

        assert resp.status == 400
        assert body["message"] == "Search URL is required"
        detector.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_detector_error(self, container, detector):
        detector.side_effect = RuntimeError("boom")

        async with _client(container) as client:
            resp = await client.post(
                "/api/compare/detect-selectors", json={"searchUrl": "https://zeta.example/s"}
            )

        assert resp.status == 500


class TestCompetitorsEndpoint:
    @pytest.mark.asyncio
    async def test_lists_all_competitors_by_name(self, container):
        async with _client(container) as client:
            resp = await client.get("/api/compare/competitors")
            body = await resp.json()

        assert resp.status == 200
        assert [c["name"] for c in body["competitors"]] == ["Alpha", "Zeta"]
        assert body["competitors"][0]["isActive"] is False
        assert body["competitors"][1]["searchUrl"] == "https://zeta.example/search?q={query}"

    @pytest.mark.asyncio
    async def test_broken_registry(self, container, tmp_path):
        broken = tmp_path / "broken.yml"
        broken.write_text("competitors: {name: x}", encoding="utf-8")
        container.competitor_registry.override(providers.Object(YamlCompetitorRegistry(broken)))

        async with _client(container) as client:
            resp = await client.get("/api/compare/competitors")
            body = await resp.json()

        assert resp.status == 500
        assert body["message"] == "Failed to fetch competitor configurations"
