"""Global test configuration and fixtures.

Provides shared fixtures for all test levels: fast crawl settings, sample
competitor configurations, an in-memory Redis double and a factory for
Playwright browser doubles. The doubles themselves live in doubles.py.
"""

from collections.abc import Callable

import pytest

from doubles import BrowserFactory, FakePage, FakeRedis, make_competitor
from price_compare.config import CacheConfig, CrawlConfig


@pytest.fixture(autouse=True)
def test_environment(monkeypatch):
    """Setup test environment variables for all tests."""
    monkeypatch.setenv("PLAYWRIGHT_AUTO_INSTALL", "false")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("COMPETITORS_FILE", raising=False)
    yield


@pytest.fixture
def fast_crawl_settings():
    """Crawl heuristics with every deliberate wait removed."""
    return CrawlConfig(
        initial_wait_ms=0,
        scroll_wait_ms=0,
        max_scroll_attempts=6,
        stable_scroll_limit=2,
        page_scroll_wait_ms=0,
        challenge_wait_ms=0,
        min_paginated_timeout_ms=1000,
        detector_timeout_ms=1000,
    )


@pytest.fixture
def cache_settings():
    return CacheConfig(redis_url="redis://localhost:6399", ttl_seconds=3600, enabled=True)


@pytest.fixture
def sample_competitors():
    """Three generic competitors on distinct hosts."""
    return [
        make_competitor("Alpha", "alpha.example"),
        make_competitor("Beta", "beta.example"),
        make_competitor("Gamma", "gamma.example"),
    ]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def browser_factory():
    """Build a BrowserFactory from a page factory."""

    def build(page_factory: Callable[[], FakePage], fail_launch: bool = False) -> BrowserFactory:
        return BrowserFactory(page_factory, fail_launch=fail_launch)

    return build
