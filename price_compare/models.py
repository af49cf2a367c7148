"""Data models for the price comparison engine.

Defines Pydantic models for competitor configuration, scraped product
listings, cache entries, selector detection output and the comparison
response. External JSON uses camelCase field names, Python code uses
snake_case attributes.
"""

from datetime import UTC, datetime
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PRICE_NOT_AVAILABLE = "Price not available"


class CamelModel(BaseModel):
    """Base model serializing to and parsing from camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CompetitorSelectors(CamelModel):
    """CSS selector hints stored with a competitor configuration.

    Attributes:
        product_container: Selector matching one product tile.
        product_name: Selector for the product title inside a tile.
        product_brand: Selector for the brand label inside a tile.
        product_price: Selector for the price inside a tile.
        product_image: Selector for the product image inside a tile.
        product_url: Selector for the product link inside a tile.
    """

    product_container: str = ".product-item"
    product_name: str = ".product-name"
    product_brand: str = ".brand"
    product_price: str = ".product-price"
    product_image: str = ".product-image img"
    product_url: str = ".product-link"


class CrawlSettings(CamelModel):
    """Explicit crawl variant for a competitor.

    When set on a competitor it overrides the built-in site profile table.

    Attributes:
        strategy: "generic" (single page with infinite scroll) or "paginated".
        page_param: Query parameter carrying the page number.
        max_pages: Upper bound of pages fetched per query.
        extra_scrolls: Scroll+wait cycles performed on every page.
        intercept_network: Harvest JSON from matching network responses.
        read_embedded_state: Harvest the page-state JSON bundled in the HTML.
        detect_challenge: Check the page title for a bot-challenge interstitial.
    """

    strategy: Literal["generic", "paginated"] = "generic"
    page_param: str = "page"
    max_pages: int = Field(default=20, ge=1, le=50)
    extra_scrolls: int = Field(default=1, ge=0, le=20)
    intercept_network: bool = False
    read_embedded_state: bool = False
    detect_challenge: bool = False


class CompetitorConfig(CamelModel):
    """Per-competitor scraping configuration.

    Attributes:
        name: Unique competitor name, used to tag results.
        base_url: Site root used to resolve relative image and product URLs.
        search_url: Search URL template, may contain a {query} placeholder.
        selectors: Selector hints (bootstrapped by selector auto-detection).
        is_active: Inactive competitors are skipped by the orchestrator.
        max_results: Per-competitor result cap, 0 disables the cap.
        timeout: Navigation timeout in milliseconds.
        crawl: Optional explicit crawl variant.
    """

    name: str = Field(min_length=1)
    base_url: str
    search_url: str
    selectors: CompetitorSelectors = Field(default_factory=CompetitorSelectors)
    is_active: bool = True
    max_results: int = Field(default=0, ge=0)
    timeout: int = Field(default=30000, gt=0)
    crawl: CrawlSettings | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("competitor name must not be blank")
        return value

    @field_validator("base_url", "search_url")
    @classmethod
    def _require_absolute_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value.replace("{query}", "q"))
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"expected an absolute http(s) URL, got {value!r}")
        return value


class ScrapedProduct(CamelModel):
    """Normalized product listing scraped from a competitor.

    Attributes:
        name: Product title (3-200 chars).
        brand_name: Brand label, empty when unknown.
        price: Numeric price, 0 when the price could not be extracted.
        price_text: Raw price text as found on the page.
        image: Absolute image URL.
        url: Absolute product page URL, if known.
        competitor: Name of the competitor the listing came from.
    """

    name: str = Field(min_length=1)
    brand_name: str = ""
    price: float = 0.0
    price_text: str = PRICE_NOT_AVAILABLE
    image: str
    url: str | None = None
    competitor: str

    @property
    def dedupe_key(self) -> str:
        """Identity of the listing within one competitor's result set."""
        return self.url or f"{self.name}-{self.image}"


class ComparisonCacheEntry(CamelModel):
    """Cached results of one (query, competitor) scrape.

    Attributes:
        search_query: Normalized (lowercased, trimmed) query.
        competitor_name: Competitor the results belong to.
        results: Scraped products in their original order.
        expires_at: Absolute UTC time after which the entry is a miss.
        cached_at: When the entry was written.
    """

    search_query: str
    competitor_name: str
    results: list[ScrapedProduct] = Field(default_factory=list)
    expires_at: datetime
    cached_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the entry must be treated as absent."""
        now = now or datetime.now(UTC)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at <= now


class DetectedSelectors(CamelModel):
    """Advisory selector set inferred from a competitor search page.

    Attributes:
        product_container: Selector matching repeated product tiles.
        product_name: Selector for product titles.
        product_brand: Selector for brand labels.
        product_price: Selector for prices.
        product_image: Selector for product images.
        product_url: Selector for product links.
        confidence: Additive 0-100 score of how much was detected.
        detected_product_count: Number of tiles matched by the container.
    """

    product_container: str
    product_name: str
    product_brand: str
    product_price: str
    product_image: str
    product_url: str
    confidence: int = Field(ge=0, le=100)
    detected_product_count: int = 0


class ComparisonResponse(CamelModel):
    """Outcome of a comparison request.

    Attributes:
        success: False for validation or system-level failures.
        product_name: The query as submitted.
        results: Ranked, de-duplicated listings across competitors.
        total_results: Number of listings returned.
        duration: Wall time of the request, e.g. "4.21s".
        message: User-facing status message, if any.
        cached_competitors: Competitors served from the cache.
    """

    success: bool
    product_name: str = ""
    results: list[ScrapedProduct] = Field(default_factory=list)
    total_results: int = 0
    duration: str = "0.00s"
    message: str | None = None
    cached_competitors: list[str] = Field(default_factory=list)
