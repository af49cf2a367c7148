"""Tests for the Redis comparison cache."""

import json
from datetime import UTC, datetime, timedelta

import pytest

from price_compare.config import CacheConfig
from price_compare.models import ComparisonCacheEntry, ScrapedProduct
from price_compare.services.cache_service import ComparisonCache, normalize_query


def _product(name: str, price: float = 499.0) -> ScrapedProduct:
    slug = name.lower().replace(" ", "-")
    return ScrapedProduct(
        name=name,
        price=price,
        price_text=f"₹{price:g}",
        image=f"https://myborosil.com/media/{slug}.jpg",
        url=f"https://myborosil.com/products/{slug}",
        competitor="Borosil",
    )


@pytest.fixture
def cache(cache_settings, fake_redis):
    return ComparisonCache(cache_settings, client=fake_redis)


class TestComparisonCache:
    @pytest.mark.asyncio
    async def test_query_is_normalized(self, cache):
        products = [_product("Glass Bowl"), _product("Glass Bowl Set", 899.0)]
        assert await cache.put("Glass Bowl", "Borosil", products) is True

        first = await cache.get("  Glass Bowl  ", "Borosil")
        second = await cache.get("glass bowl", "Borosil")

        assert first == products
        assert second == products

    @pytest.mark.asyncio
    async def test_competitors_are_cached_separately(self, cache):
        await cache.put("glass bowl", "Borosil", [_product("Glass Bowl")])

        assert await cache.get("glass bowl", "Jaypee") is None

    @pytest.mark.asyncio
    async def test_expired_entry_is_a_miss(self, cache, fake_redis):
        entry = ComparisonCacheEntry(
            search_query="glass bowl",
            competitor_name="Borosil",
            results=[_product("Glass Bowl")],
            expires_at=datetime.now(UTC) - timedelta(minutes=1),
        )
        fake_redis.store[cache.make_key("glass bowl", "Borosil")] = entry.model_dump_json(
            by_alias=True
        )

        assert await cache.get("glass bowl", "Borosil") is None

    @pytest.mark.asyncio
    async def test_stored_payload_uses_camel_case_and_ttl(self, cache, fake_redis):
        await cache.put("Glass Bowl", "Borosil", [_product("Glass Bowl")], ttl=120)

        key = cache.make_key("glass bowl", "Borosil")
        payload = json.loads(fake_redis.store[key])
        assert fake_redis.ttls[key] == 120
        assert payload["searchQuery"] == "glass bowl"
        assert payload["competitorName"] == "Borosil"
        assert payload["results"][0]["priceText"] == "₹499"
        assert "expiresAt" in payload

    @pytest.mark.asyncio
    async def test_malformed_payload_is_a_miss(self, cache, fake_redis):
        fake_redis.store[cache.make_key("mug", "Borosil")] = "{not json"

        assert await cache.get("mug", "Borosil") is None

    @pytest.mark.asyncio
    async def test_unavailable_redis_degrades_to_miss(self, cache, fake_redis):
        fake_redis.fail = True

        assert await cache.get("mug", "Borosil") is None
        assert await cache.put("mug", "Borosil", [_product("Mug Set")]) is False
        assert await cache.invalidate() == 0

    @pytest.mark.asyncio
    async def test_not_connected_cache_is_inert(self, cache_settings):
        cache = ComparisonCache(cache_settings)

        assert cache.connected is False
        assert await cache.get("mug", "Borosil") is None
        assert await cache.put("mug", "Borosil", []) is False
        assert await cache.get_stats() == {"connected": False, "enabled": True}

    @pytest.mark.asyncio
    async def test_disabled_cache_never_touches_redis(self, fake_redis):
        cache = ComparisonCache(CacheConfig(enabled=False), client=fake_redis)

        assert await cache.put("mug", "Borosil", [_product("Mug Set")]) is False
        assert fake_redis.store == {}
        assert await cache.connect() is False

    @pytest.mark.asyncio
    async def test_invalidate_by_query(self, cache, fake_redis):
        await cache.put("glass bowl", "Borosil", [_product("Glass Bowl")])
        await cache.put("glass bowl", "Jaypee", [_product("Glass Bowl")])
        await cache.put("mug", "Borosil", [_product("Mug Set")])

        assert await cache.invalidate(" Glass Bowl") == 2
        assert await cache.get("mug", "Borosil") is not None
        assert await cache.invalidate() == 1
        assert fake_redis.store == {}

    @pytest.mark.asyncio
    async def test_stats_and_close(self, cache, fake_redis):
        stats = await cache.get_stats()
        assert stats["connected"] is True
        assert stats["hit_rate"] == 0.75

        await cache.close()

        assert fake_redis.closed is True
        assert cache.connected is False

    def test_normalize_query(self):
        assert normalize_query("  Glass BOWL ") == "glass bowl"
