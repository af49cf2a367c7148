"""Redis-backed cache of per-competitor comparison results.

One entry holds the scraped products of one (query, competitor) pair. Entries
carry their own expiry time and are treated as absent once it has passed,
regardless of whether Redis has evicted them yet. The cache is an
optimization only: an unreachable or misbehaving Redis turns every lookup
into a miss and every write into a no-op.
"""

import hashlib
import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, cast

import redis.asyncio as redis
from pydantic import ValidationError

from ..config import CacheConfig, config
from ..models import ComparisonCacheEntry, ScrapedProduct

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis
else:
    AsyncRedis = Any

logger = logging.getLogger(__name__)

KEY_PREFIX = "price_compare:comparison"


def normalize_query(query: str) -> str:
    """Cache identity of a query: trimmed and lowercased."""
    return query.strip().lower()


def _hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class ComparisonCache:
    """Comparison result cache over Redis.

    Args:
        settings: Redis URL, TTL and the enabled switch.
        client: Already connected Redis client, mainly for tests.
    """

    def __init__(self, settings: CacheConfig | None = None, client: AsyncRedis | None = None):
        self.settings = settings or config.cache
        self._redis: AsyncRedis | None = client
        self._connected = client is not None

    @property
    def connected(self) -> bool:
        return self._connected

    def _get_client(self) -> AsyncRedis | None:
        """Return active Redis client if connected and enabled."""
        if not self.settings.enabled or not self._connected or self._redis is None:
            return None
        return self._redis

    async def connect(self) -> bool:
        """Connect to the Redis server.

        Returns:
            True if the connection succeeded, False otherwise.
        """
        if not self.settings.enabled:
            logger.info("Comparison cache disabled")
            return False

        try:
            client = cast(
                AsyncRedis,
                redis.from_url(
                    self.settings.redis_url,
                    decode_responses=True,
                    retry_on_timeout=True,
                    health_check_interval=30,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                ),
            )
            await client.ping()
            self._redis = client
            self._connected = True
            logger.info("Connected to Redis comparison cache")
            return True

        except Exception as e:
            logger.warning(f"Could not connect to Redis: {e}")
            self._connected = False
            return False

    @staticmethod
    def make_key(query: str, competitor: str) -> str:
        """Build the cache key of a (query, competitor) pair.

        Args:
            query: Search query, normalized before hashing.
            competitor: Competitor name.

        Returns:
            Hashed key under the comparison prefix.
        """
        return f"{KEY_PREFIX}:{_hash(normalize_query(query))}:{_hash(competitor.strip())}"

    async def get(self, query: str, competitor: str) -> list[ScrapedProduct] | None:
        """Get cached results for a query at one competitor.

        Args:
            query: Search query.
            competitor: Competitor name.

        Returns:
            Cached products in their original order, or None on a miss.
        """
        client = self._get_client()
        if client is None:
            return None

        try:
            cached = await client.get(self.make_key(query, competitor))
        except Exception as e:
            logger.warning(f"Error reading comparison cache: {e}")
            return None

        if not cached:
            logger.debug(f"Cache miss for {competitor}: {query!r}")
            return None

        try:
            entry = ComparisonCacheEntry.model_validate_json(cached)
        except ValidationError as e:
            logger.warning(f"Discarding malformed cache entry for {competitor}: {e}")
            return None

        if entry.is_expired():
            logger.debug(f"Cache entry for {competitor} expired at {entry.expires_at}")
            return None

        logger.debug(f"Cache hit for {competitor}: {query!r} ({len(entry.results)} products)")
        return entry.results

    async def put(
        self,
        query: str,
        competitor: str,
        results: list[ScrapedProduct],
        ttl: int | None = None,
    ) -> bool:
        """Store results for a query at one competitor.

        Args:
            query: Search query.
            competitor: Competitor name.
            results: Products to cache, order is preserved.
            ttl: Lifetime in seconds, defaults to the configured TTL.

        Returns:
            True if the entry was written.
        """
        client = self._get_client()
        if client is None:
            return False

        ttl = ttl if ttl is not None else self.settings.ttl_seconds
        now = datetime.now(UTC)
        entry = ComparisonCacheEntry(
            search_query=normalize_query(query),
            competitor_name=competitor,
            results=results,
            expires_at=now + timedelta(seconds=ttl),
            cached_at=now,
        )

        try:
            await client.setex(
                self.make_key(query, competitor),
                ttl,
                entry.model_dump_json(by_alias=True),
            )
            logger.debug(f"Cached {len(results)} products for {competitor}: {query!r}")
            return True

        except Exception as e:
            logger.warning(f"Error writing comparison cache: {e}")
            return False

    async def invalidate(self, query: str | None = None) -> int:
        """Delete cached entries.

        Args:
            query: Only drop entries of this query; all entries when None.

        Returns:
            Number of deleted keys.
        """
        client = self._get_client()
        if client is None:
            return 0

        if query is None:
            pattern = f"{KEY_PREFIX}:*"
        else:
            pattern = f"{KEY_PREFIX}:{_hash(normalize_query(query))}:*"

        try:
            keys = cast(list[str], await client.keys(pattern))
            if not keys:
                return 0
            deleted = int(await client.delete(*keys))
            logger.info(f"Deleted {deleted} comparison cache keys matching {pattern}")
            return deleted

        except Exception as e:
            logger.warning(f"Error invalidating comparison cache: {e}")
            return 0

    async def get_stats(self) -> dict[str, Any]:
        """Get Redis cache statistics."""
        client = self._get_client()
        if client is None:
            return {"connected": False, "enabled": self.settings.enabled}

        try:
            info = await client.info()
            hits = info.get("keyspace_hits", 0)
            misses = info.get("keyspace_misses", 0)
            return {
                "connected": True,
                "enabled": self.settings.enabled,
                "used_memory": info.get("used_memory_human", "N/A"),
                "keyspace_hits": hits,
                "keyspace_misses": misses,
                "hit_rate": hits / max(1, hits + misses),
            }

        except Exception as e:
            logger.warning(f"Error reading Redis stats: {e}")
            return {"connected": False, "enabled": self.settings.enabled, "error": str(e)}

    async def close(self) -> None:
        """Close the Redis connection."""
        client = self._redis
        if client is None:
            return
        try:
            await client.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.warning(f"Error closing Redis: {e}")
        finally:
            self._connected = False
            self._redis = None
