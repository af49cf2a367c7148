"""Scraping orchestration across configured competitors.

Runs one comparison query against every active competitor with a single
headless browser, isolating each competitor's failures from the others.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from pydantic import ValidationError

from ..config import CrawlConfig, config
from ..models import PRICE_NOT_AVAILABLE, CompetitorConfig, ScrapedProduct
from ..scrapers.dom_harvester import RawProduct
from ..scrapers.headless import HeadlessBrowser
from ..scrapers.price import extract_price
from ..scrapers.strategies import select_strategy
from ..scrapers.urls import absolutize, build_search_url
from .types import CompetitorScrapeResult

logger = logging.getLogger(__name__)


class CompetitorSource(Protocol):
    """Read contract of the competitor registry."""

    def list_active(self) -> list[CompetitorConfig]: ...


def normalize_products(
    raw_products: list[RawProduct], competitor: CompetitorConfig
) -> list[ScrapedProduct]:
    """Convert raw candidates into ranked-ready listings for one competitor.

    Resolves image and product links against the competitor's base URL,
    parses the price, tags the competitor, drops duplicates and applies the
    competitor's result cap.

    Args:
        raw_products: Candidates from the harvesters.
        competitor: Competitor the candidates came from.

    Returns:
        Normalized products in harvest order.
    """
    products: list[ScrapedProduct] = []
    seen: set[str] = set()

    for raw in raw_products:
        image = absolutize(raw.get("image"), competitor.base_url)
        if not image:
            continue

        price_text = raw.get("priceText") or PRICE_NOT_AVAILABLE
        try:
            product = ScrapedProduct(
                name=(raw.get("name") or "").strip(),
                brand_name=raw.get("brandName") or "",
                price=extract_price(price_text),
                price_text=price_text,
                image=image,
                url=absolutize(raw.get("url"), competitor.base_url),
                competitor=competitor.name,
            )
        except ValidationError as e:
            logger.debug(f"Skipping invalid product from {competitor.name}: {e}")
            continue

        if product.dedupe_key in seen:
            continue
        seen.add(product.dedupe_key)
        products.append(product)

        if competitor.max_results and len(products) >= competitor.max_results:
            break

    return products


class CompetitorScrapeOrchestrator:
    """Orchestrates a comparison query across competitors.

    Responsibilities:
    - Snapshot the active competitors once per run
    - Own one headless browser per run and one page per competitor
    - Pick the crawl strategy for each competitor
    - Normalize and de-duplicate harvested products
    - Record per-competitor failures without aborting the run

    Args:
        registry: Source of competitor configurations.
        browser_factory: Creates the browser owned by a run.
        settings: Crawl timing and limit heuristics.
    """

    def __init__(
        self,
        registry: CompetitorSource,
        browser_factory: Callable[[], HeadlessBrowser] = HeadlessBrowser,
        settings: CrawlConfig | None = None,
    ) -> None:
        self.registry = registry
        self.browser_factory = browser_factory
        self.settings = settings or config.crawl

    async def scrape_all_competitors(self, query: str) -> list[ScrapedProduct]:
        """Scrape every active competitor for a query.

        Args:
            query: Free-text product query.

        Returns:
            Products from all competitors, grouped by competitor in registry
            order. Empty when no competitor is active.

        Raises:
            BrowserLaunchError: If the headless browser cannot be started.
        """
        competitors = list(self.registry.list_active())
        if not competitors:
            logger.info("No active competitors configured")
            return []

        results = await self.scrape_competitors(query, competitors)
        return [product for result in results for product in result["products"]]

    async def scrape_competitors(
        self, query: str, competitors: list[CompetitorConfig]
    ) -> list[CompetitorScrapeResult]:
        """Scrape the given competitors sequentially with one browser.

        Args:
            query: Free-text product query.
            competitors: Competitors to scrape, in order.

        Returns:
            One result per competitor, in the same order.

        Raises:
            BrowserLaunchError: If the headless browser cannot be started.
        """
        if not competitors:
            return []

        logger.info(f"Scraping {len(competitors)} competitors for: {query!r}")
        results: list[CompetitorScrapeResult] = []

        async with self.browser_factory() as browser:
            for competitor in competitors:
                results.append(await self._scrape_competitor(browser, competitor, query))

        total = sum(len(result["products"]) for result in results)
        logger.info(f"Total products scraped for {query!r}: {total}")
        return results

    async def _scrape_competitor(
        self, browser: HeadlessBrowser, competitor: CompetitorConfig, query: str
    ) -> CompetitorScrapeResult:
        """Scrape one competitor in its own page; never raises on scrape errors."""
        start_time = datetime.now()
        result: CompetitorScrapeResult = {
            "competitor": competitor.name,
            "success": False,
            "products": [],
            "outcome": "failed",
            "pages_fetched": 0,
            "error": None,
            "processing_time_ms": 0,
        }

        try:
            search_url = build_search_url(competitor.search_url, query)
            strategy = select_strategy(competitor)
            logger.info(f"Scraping {competitor.name} with {strategy.name} strategy")

            async with browser.page() as page:
                crawl = await strategy.crawl(page, competitor, search_url, self.settings)

            result["outcome"] = crawl["outcome"]
            result["pages_fetched"] = crawl["pages_fetched"]
            result["products"] = normalize_products(crawl["products"], competitor)

            if crawl["outcome"] in ("completed", "partial"):
                result["success"] = True
            elif crawl["outcome"] == "challenge_blocked":
                result["error"] = "Blocked by bot challenge page"
            else:
                result["error"] = "No search page could be loaded"

            logger.info(
                f"Found {len(result['products'])} products from {competitor.name} "
                f"({crawl['outcome']})"
            )

        except Exception as e:
            result["error"] = str(e)
            logger.error(f"Error scraping {competitor.name}: {e}")

        finally:
            end_time = datetime.now()
            result["processing_time_ms"] = int((end_time - start_time).total_seconds() * 1000)

        return result
