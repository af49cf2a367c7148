"""Competitor search page scraping package.

Contains the headless browser lifecycle, the markup-agnostic product
harvesters and the crawl strategies that drive them.

Architecture:
- CrawlStrategy: Unified interface for all crawl variants
- StrategyRegistry: Site-family dispatch with a generic fallback
- GenericStrategy: Single search page with infinite scroll
- PaginatedStrategy: ?page=N crawling with challenge detection
- dom_harvester / json_harvester: Product candidates from the DOM and JSON
- selector_detector: Advisory selector inference for onboarding
"""

from .base import CrawlResult, CrawlStrategy, strategy_registry
from .headless import HeadlessBrowser
from .strategies import GenericStrategy, PaginatedStrategy, select_strategy

__all__ = [
    "CrawlResult",
    "CrawlStrategy",
    "GenericStrategy",
    "HeadlessBrowser",
    "PaginatedStrategy",
    "select_strategy",
    "strategy_registry",
]
