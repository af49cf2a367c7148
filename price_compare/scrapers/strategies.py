"""Crawl strategies for competitor search pages.

Two site families are handled:

- Generic: one search page whose results lazy-load while scrolling. The page
  is scrolled until the number of linked images stops growing, then the DOM
  is harvested once.
- Paginated: results are split across ?page=N style pages and may sit behind
  a bot-challenge interstitial. Pages are fetched in order, each harvested
  from the DOM, the embedded page state and intercepted JSON responses, until
  a page adds nothing new.
"""

import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from ..config import CrawlConfig
from ..models import CompetitorConfig, CrawlSettings
from .base import (
    ChallengeDetector,
    CrawlOutcome,
    CrawlResult,
    is_challenge_title,
    strategy_registry,
)
from .dom_harvester import (
    COUNT_LINKED_IMAGES_JS,
    SCROLL_TO_BOTTOM_JS,
    RawProduct,
    extract_products_from_page,
    product_key,
)
from .json_harvester import collect_products_from_json, extract_embedded_state
from .urls import set_query_param

logger = logging.getLogger(__name__)

PRODUCT_API_URL_RE = re.compile(r"search|catalog|product|listing|collection|graphql", re.IGNORECASE)


async def scroll_until_stable(page: Any, settings: CrawlConfig) -> int:
    """Scroll to the bottom repeatedly until lazy loading stops adding images.

    Args:
        page: Playwright page with the search results loaded.
        settings: Scroll limits and waits.

    Returns:
        Number of linked images visible when scrolling stopped.
    """
    previous_count = 0
    unchanged = 0

    for attempt in range(settings.max_scroll_attempts):
        await page.evaluate(SCROLL_TO_BOTTOM_JS)
        await page.wait_for_timeout(settings.scroll_wait_ms)

        current_count = await page.evaluate(COUNT_LINKED_IMAGES_JS)
        logger.debug(f"Scroll {attempt + 1}: found {current_count} images")

        if current_count == previous_count:
            unchanged += 1
            if unchanged >= settings.stable_scroll_limit:
                logger.debug(f"No new products after {unchanged} scrolls, stopping")
                break
        else:
            unchanged = 0

        previous_count = current_count

    return previous_count


class GenericStrategy:
    """Single search page with infinite scroll."""

    name = "generic"

    def supports(self, competitor: CompetitorConfig) -> bool:
        return True

    async def crawl(
        self,
        page: Any,
        competitor: CompetitorConfig,
        search_url: str,
        settings: CrawlConfig,
    ) -> CrawlResult:
        logger.info(f"Navigating to: {search_url}")
        await page.goto(search_url, wait_until="domcontentloaded", timeout=competitor.timeout)
        await page.wait_for_timeout(settings.initial_wait_ms)
        logger.info(f"Page loaded: {await page.title()}")

        visible = await scroll_until_stable(page, settings)
        logger.info(f"Finished scrolling {competitor.name}, {visible} images visible")

        products = await extract_products_from_page(
            page, competitor.name, settings.currency_symbol
        )
        return {"products": products, "outcome": "completed", "pages_fetched": 1}


class PaginatedStrategy:
    """Explicit pagination with challenge-page detection.

    Args:
        name: Site family name.
        crawl_settings: Pagination parameter, limits and harvest sources.
        host_pattern: Regex matched against the competitor's URLs, None for
            strategies built from an explicit competitor crawl setting.
        challenge_detector: Predicate over the page title.
    """

    def __init__(
        self,
        name: str,
        crawl_settings: CrawlSettings,
        host_pattern: str | None = None,
        challenge_detector: ChallengeDetector = is_challenge_title,
    ) -> None:
        self.name = name
        self.crawl_settings = crawl_settings
        self.host_re = re.compile(host_pattern, re.IGNORECASE) if host_pattern else None
        self.challenge_detector = challenge_detector

    def supports(self, competitor: CompetitorConfig) -> bool:
        if self.host_re is None:
            return False
        return bool(
            self.host_re.search(competitor.search_url) or self.host_re.search(competitor.base_url)
        )

    async def _passes_challenge(self, page: Any, settings: CrawlConfig) -> bool:
        """Wait out a challenge interstitial once; False if it persists."""
        title = await page.title()
        if not self.challenge_detector(title):
            return True

        logger.warning(f"Bot challenge detected ({title!r}), waiting before re-check")
        await page.wait_for_timeout(settings.challenge_wait_ms)
        title = await page.title()
        logger.info(f"Retry after challenge: {title}")
        return not self.challenge_detector(title)

    def _response_listener(
        self, collected: list[RawProduct], competitor: CompetitorConfig, settings: CrawlConfig
    ) -> Callable[[Any], Awaitable[None]]:
        """Build a response handler that harvests product JSON from API calls."""

        async def on_response(response: Any) -> None:
            content_type = response.headers.get("content-type", "")
            if "application/json" not in content_type:
                return
            if not PRODUCT_API_URL_RE.search(response.url):
                return
            try:
                payload = await response.json()
            except Exception as e:
                logger.debug(f"Unreadable JSON response from {response.url}: {e}")
                return
            collected.extend(
                collect_products_from_json(
                    payload, competitor.name, competitor.base_url, settings.currency_symbol
                )
            )

        return on_response

    async def _harvest_page(
        self,
        page: Any,
        competitor: CompetitorConfig,
        settings: CrawlConfig,
        network_products: list[RawProduct],
    ) -> list[RawProduct]:
        products = await extract_products_from_page(
            page, competitor.name, settings.currency_symbol
        )

        if self.crawl_settings.read_embedded_state:
            state = extract_embedded_state(await page.content())
            if state is not None:
                products += collect_products_from_json(
                    state, competitor.name, competitor.base_url, settings.currency_symbol
                )

        return products + network_products

    async def crawl(
        self,
        page: Any,
        competitor: CompetitorConfig,
        search_url: str,
        settings: CrawlConfig,
    ) -> CrawlResult:
        crawl_settings = self.crawl_settings
        nav_timeout = max(competitor.timeout, settings.min_paginated_timeout_ms)
        logger.info(
            f"Paginating {competitor.name} ({self.name}) up to {crawl_settings.max_pages} pages"
        )

        network_products: list[RawProduct] = []
        listener = None
        if crawl_settings.intercept_network:
            listener = self._response_listener(network_products, competitor, settings)
            page.on("response", listener)

        products: list[RawProduct] = []
        seen: set[str] = set()
        outcome: CrawlOutcome = "completed"
        pages_fetched = 0

        try:
            for page_num in range(1, crawl_settings.max_pages + 1):
                paged_url = set_query_param(search_url, crawl_settings.page_param, str(page_num))
                logger.info(f"Navigating to: {paged_url}")
                try:
                    await page.goto(paged_url, wait_until="domcontentloaded", timeout=nav_timeout)
                    await page.wait_for_timeout(settings.initial_wait_ms)
                    pages_fetched += 1

                    if crawl_settings.detect_challenge and not await self._passes_challenge(
                        page, settings
                    ):
                        logger.warning(f"Challenge persists for {competitor.name}, aborting")
                        outcome = "challenge_blocked"
                        break

                    for _ in range(crawl_settings.extra_scrolls):
                        await page.evaluate(SCROLL_TO_BOTTOM_JS)
                        await page.wait_for_timeout(settings.page_scroll_wait_ms)

                    combined = await self._harvest_page(
                        page, competitor, settings, network_products
                    )
                    before = len(products)
                    for product in combined:
                        key = product_key(product)
                        if key in seen:
                            continue
                        seen.add(key)
                        products.append(product)

                    added = len(products) - before
                    logger.info(f"Page {page_num}: +{added} products (total {len(products)})")
                    if added == 0:
                        break

                except Exception as e:
                    logger.error(f"Page {page_num} failed for {competitor.name}: {e}")
                    outcome = "partial" if products else "failed"
                    break
        finally:
            if listener is not None:
                page.remove_listener("response", listener)

        return {"products": products, "outcome": outcome, "pages_fetched": pages_fetched}


generic_strategy = GenericStrategy()

# Built-in site families
strategy_registry.register(
    PaginatedStrategy(
        "jaypee",
        CrawlSettings(strategy="paginated", page_param="p", max_pages=20, extra_scrolls=1),
        host_pattern=r"jaypeeplus\.com",
    )
)
strategy_registry.register(
    PaginatedStrategy(
        "borosil",
        CrawlSettings(
            strategy="paginated",
            page_param="page",
            max_pages=30,
            extra_scrolls=5,
            intercept_network=True,
            read_embedded_state=True,
            detect_challenge=True,
        ),
        host_pattern=r"myborosil\.com",
    )
)
strategy_registry.set_fallback(generic_strategy)


def select_strategy(competitor: CompetitorConfig) -> GenericStrategy | PaginatedStrategy:
    """Pick the crawl strategy for a competitor.

    Args:
        competitor: Competitor configuration.

    Returns:
        Strategy built from the competitor's explicit crawl settings, else
        the registered site family or the generic fallback.
    """
    if competitor.crawl is not None:
        if competitor.crawl.strategy == "paginated":
            return PaginatedStrategy(f"custom:{competitor.name}", competitor.crawl)
        return generic_strategy
    return strategy_registry.get_strategy_for(competitor)  # type: ignore[return-value]
