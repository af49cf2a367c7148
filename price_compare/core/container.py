"""Dependency-injection container.

Wires the competitor registry, the comparison cache, the scrape orchestrator
and the comparison service together so the HTTP layer and tests can obtain
them without constructing the graph by hand.
"""

from dependency_injector import containers, providers

from price_compare.compare.comparison_service import ComparisonService
from price_compare.compare.scraping_orchestrator import CompetitorScrapeOrchestrator
from price_compare.config import config as app_config
from price_compare.scrapers.headless import HeadlessBrowser
from price_compare.scrapers.selector_detector import auto_detect_selectors
from price_compare.services.cache_service import ComparisonCache
from price_compare.services.competitor_registry import YamlCompetitorRegistry


class Container(containers.DeclarativeContainer):
    """DI container for the application."""

    settings = providers.Object(app_config)

    # Services
    competitor_registry = providers.Singleton(
        YamlCompetitorRegistry, path=settings.provided.competitors_path
    )
    comparison_cache = providers.Singleton(ComparisonCache, settings=settings.provided.cache)

    # Comparison components
    scrape_orchestrator = providers.Singleton(
        CompetitorScrapeOrchestrator,
        registry=competitor_registry,
        browser_factory=providers.Object(HeadlessBrowser),
        settings=settings.provided.crawl,
    )
    comparison_service = providers.Singleton(
        ComparisonService,
        registry=competitor_registry,
        orchestrator=scrape_orchestrator,
        cache=comparison_cache,
    )
    selector_detector = providers.Object(auto_detect_selectors)
