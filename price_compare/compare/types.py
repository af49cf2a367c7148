"""Typed structures shared across comparison components."""

from __future__ import annotations

from typing import TypedDict

from ..models import ScrapedProduct
from ..scrapers.base import CrawlOutcome


class CompetitorScrapeResult(TypedDict):
    """Outcome of scraping one competitor within a comparison run."""

    competitor: str
    success: bool
    products: list[ScrapedProduct]
    outcome: CrawlOutcome
    pages_fetched: int
    error: str | None
    processing_time_ms: int


class DetectSelectorsPayload(TypedDict, total=False):
    """Response body of the selector detection endpoint."""

    success: bool
    selectors: dict[str, str]
    confidence: int
    detectedProductCount: int
    message: str
    warning: str
