"""Crawl strategy protocol and the site-family dispatch registry.

Every competitor is crawled by exactly one strategy. The registry is the
single dispatch point: an explicit crawl variant on the competitor config
wins, otherwise the first registered strategy whose predicate accepts the
competitor is used, with the generic strategy as the fallback.
"""

import logging
import re
from collections.abc import Callable
from typing import Any, Literal, Protocol, TypedDict

from ..config import CrawlConfig
from ..models import CompetitorConfig
from .dom_harvester import RawProduct

logger = logging.getLogger(__name__)

CrawlOutcome = Literal["completed", "partial", "challenge_blocked", "failed"]

ChallengeDetector = Callable[[str], bool]

CHALLENGE_TITLE_RE = re.compile(r"just a moment|checking your browser", re.IGNORECASE)


def is_challenge_title(title: str) -> bool:
    """Default bot-challenge check on the page title.

    Matches the interstitial titles served by common anti-bot gateways.
    Site families with different interstitials plug in their own detector.
    """
    return bool(CHALLENGE_TITLE_RE.search(title or ""))


class CrawlResult(TypedDict):
    """Outcome of crawling one competitor's search results."""

    products: list[RawProduct]
    outcome: CrawlOutcome
    pages_fetched: int


class CrawlStrategy(Protocol):
    """Protocol implemented by every crawl strategy.

    Methods:
        supports: Check if the strategy handles a competitor.
        crawl: Load the search results and harvest raw products.
    """

    name: str

    def supports(self, competitor: CompetitorConfig) -> bool:
        """Check whether this strategy handles the competitor.

        Args:
            competitor: Competitor configuration.

        Returns:
            True if the strategy should crawl this competitor.
        """
        ...

    async def crawl(
        self,
        page: Any,
        competitor: CompetitorConfig,
        search_url: str,
        settings: CrawlConfig,
    ) -> CrawlResult:
        """Crawl a competitor's search results.

        Args:
            page: Playwright page owned by this crawl.
            competitor: Competitor configuration.
            search_url: Search URL with the query substituted.
            settings: Crawl timing and limit heuristics.

        Returns:
            Raw products with the crawl outcome.
        """
        ...


class StrategyRegistry:
    """Registry of crawl strategies keyed by site family.

    Strategies are consulted in registration order; the fallback handles
    every competitor no registered strategy claims.
    """

    def __init__(self) -> None:
        """Initialize empty strategy registry."""
        self._strategies: dict[str, CrawlStrategy] = {}
        self._fallback: CrawlStrategy | None = None
        self.logger = logging.getLogger(f"{__name__}.registry")

    def register(self, strategy: CrawlStrategy) -> None:
        """Register a site-family strategy.

        Args:
            strategy: Strategy instance implementing CrawlStrategy.
        """
        self._strategies[strategy.name] = strategy
        self.logger.info(f"Registered crawl strategy: {strategy.name}")

    def set_fallback(self, strategy: CrawlStrategy) -> None:
        """Set the strategy used when no site family matches."""
        self._fallback = strategy

    def get_strategy_for(self, competitor: CompetitorConfig) -> CrawlStrategy:
        """Find the strategy for a competitor.

        Args:
            competitor: Competitor configuration.

        Returns:
            Matching site-family strategy, else the fallback.

        Raises:
            LookupError: If nothing matches and no fallback is set.
        """
        for strategy in self._strategies.values():
            if strategy.supports(competitor):
                return strategy

        if self._fallback is None:
            raise LookupError(f"No crawl strategy for competitor: {competitor.name}")
        return self._fallback


# Global strategy registry instance
strategy_registry = StrategyRegistry()
