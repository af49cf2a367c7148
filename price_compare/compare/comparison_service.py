"""Product comparison across competitors.

Serves a query from the per-competitor result cache where possible, scrapes
the remaining competitors, and ranks the merged listings by price.
"""

import logging
from datetime import datetime

from ..models import ComparisonResponse, ScrapedProduct
from ..services.cache_service import ComparisonCache
from . import messages
from .scraping_orchestrator import CompetitorScrapeOrchestrator, CompetitorSource

logger = logging.getLogger(__name__)


def rank_products(products: list[ScrapedProduct]) -> list[ScrapedProduct]:
    """Sort listings by ascending price; listings without a price go last.

    The sort is stable, so equal prices keep their competitor order.
    """
    return sorted(products, key=lambda product: (product.price <= 0, product.price))


def merge_products(groups: list[list[ScrapedProduct]]) -> list[ScrapedProduct]:
    """Concatenate per-competitor groups, dropping repeats within a competitor."""
    merged: list[ScrapedProduct] = []
    seen: set[tuple[str, str]] = set()
    for group in groups:
        for product in group:
            key = (product.competitor, product.dedupe_key)
            if key in seen:
                continue
            seen.add(key)
            merged.append(product)
    return merged


def _format_duration(start_time: datetime) -> str:
    return f"{(datetime.now() - start_time).total_seconds():.2f}s"


class ComparisonService:
    """Entry point of a comparison request.

    Args:
        registry: Source of competitor configurations.
        orchestrator: Scrapes competitors that are not cached.
        cache: Per-competitor result cache, None to always scrape.
    """

    def __init__(
        self,
        registry: CompetitorSource,
        orchestrator: CompetitorScrapeOrchestrator,
        cache: ComparisonCache | None = None,
    ) -> None:
        self.registry = registry
        self.orchestrator = orchestrator
        self.cache = cache

    async def compare(self, product_name: str | None) -> ComparisonResponse:
        """Compare a product across all active competitors.

        Args:
            product_name: Free-text product query.

        Returns:
            Ranked listings with timing, or a failure response with a
            user-facing message. Only cancellation propagates.
        """
        start_time = datetime.now()

        if not product_name or not product_name.strip():
            return ComparisonResponse(
                success=False,
                product_name=product_name or "",
                message=messages.PRODUCT_NAME_REQUIRED,
            )

        query = product_name.strip()
        logger.info(f"Starting product comparison for: {query!r}")

        try:
            competitors = list(self.registry.list_active())
            if not competitors:
                logger.info("No active competitors, nothing to compare")
                return ComparisonResponse(
                    success=True,
                    product_name=product_name,
                    duration=_format_duration(start_time),
                    message=messages.NO_PRODUCTS_FOUND,
                )

            groups: dict[str, list[ScrapedProduct]] = {}
            cached_competitors: list[str] = []
            to_scrape = []

            for competitor in competitors:
                cached = await self.cache.get(query, competitor.name) if self.cache else None
                if cached is not None:
                    groups[competitor.name] = cached
                    cached_competitors.append(competitor.name)
                else:
                    to_scrape.append(competitor)

            if cached_competitors:
                logger.info(f"Serving {', '.join(cached_competitors)} from cache")

            scraped = await self.orchestrator.scrape_competitors(query, to_scrape)

            for result in scraped:
                groups[result["competitor"]] = result["products"]
                if (
                    self.cache
                    and result["success"]
                    and result["outcome"] == "completed"
                    and result["products"]
                ):
                    await self.cache.put(query, result["competitor"], result["products"])

            results = rank_products(
                merge_products([groups.get(competitor.name, []) for competitor in competitors])
            )

        except Exception as e:
            logger.error(f"Error comparing products for {query!r}: {e}")
            return ComparisonResponse(
                success=False,
                product_name=product_name,
                duration=_format_duration(start_time),
                message=messages.COMPARE_FAILED,
            )

        duration = _format_duration(start_time)
        logger.info(f"Comparison completed in {duration} - Found {len(results)} products")

        if results:
            message = messages.COMPARE_COMPLETED.format(
                count=len(results), competitors=len(competitors)
            )
        else:
            message = messages.NO_PRODUCTS_FOUND

        return ComparisonResponse(
            success=True,
            product_name=product_name,
            results=results,
            total_results=len(results),
            duration=duration,
            message=message,
            cached_competitors=cached_competitors,
        )
