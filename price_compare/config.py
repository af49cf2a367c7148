"""Configuration management for the price comparison engine.

Handles all application configuration including environment variables, YAML
config files, and default settings. Provides structured configuration classes
for the headless browser, the crawl heuristics, the result cache and the HTTP
server.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class BrowserConfig(BaseSettings):
    """Headless browser launch settings.

    Attributes:
        executable_path: Local Chrome/Chromium binary; the Playwright-managed
            Chromium is used when unset.
        headless: Run the browser without a window.
        launch_timeout_ms: Maximum time to wait for the browser to start.
        user_agent: User agent presented to competitor sites.
        auto_install: Install Playwright's Chromium when it is missing.
    """

    model_config = SettingsConfigDict(populate_by_name=True)

    executable_path: str | None = Field(default=None, validation_alias="CHROME_EXECUTABLE_PATH")
    headless: bool = Field(default=True, validation_alias="BROWSER_HEADLESS")
    launch_timeout_ms: int = Field(default=120000, validation_alias="BROWSER_LAUNCH_TIMEOUT_MS")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, validation_alias="BROWSER_USER_AGENT")
    auto_install: bool = Field(default=True, validation_alias="PLAYWRIGHT_AUTO_INSTALL")


class CrawlConfig(BaseSettings):
    """Timing and limit heuristics for crawling search pages.

    Waits are deliberate delays for client-side rendering and lazy loading.

    Attributes:
        initial_wait_ms: Wait after navigating to a search page.
        scroll_wait_ms: Wait after each infinite-scroll step.
        max_scroll_attempts: Upper bound of infinite-scroll steps.
        stable_scroll_limit: Consecutive unchanged scrolls that end scrolling.
        page_scroll_wait_ms: Wait after each extra scroll on a paginated page.
        challenge_wait_ms: Extra wait before re-checking a challenge page.
        min_paginated_timeout_ms: Floor for navigation timeout of paginated sites.
        currency_symbol: Currency prefix recognised in price text.
        detector_timeout_ms: Navigation timeout for selector auto-detection.
    """

    model_config = SettingsConfigDict(env_prefix="CRAWL_")

    initial_wait_ms: int = 3000
    scroll_wait_ms: int = 2500
    max_scroll_attempts: int = 30
    stable_scroll_limit: int = 3
    page_scroll_wait_ms: int = 1500
    challenge_wait_ms: int = 8000
    min_paginated_timeout_ms: int = 60000
    currency_symbol: str = "₹"
    detector_timeout_ms: int = 30000


class CacheConfig(BaseSettings):
    """Comparison cache settings.

    Attributes:
        redis_url: Redis server URL.
        ttl_seconds: Lifetime of a cached (query, competitor) result set.
        enabled: Whether to read and write the cache at all.
    """

    model_config = SettingsConfigDict(populate_by_name=True)

    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")
    ttl_seconds: int = Field(default=21600, validation_alias="COMPARISON_CACHE_TTL")
    enabled: bool = Field(default=True, validation_alias="CACHE_ENABLED")


class ServerConfig(BaseSettings):
    """HTTP server settings.

    Attributes:
        listen_host: Interface the server binds to.
        port: Server port.
        log_level: Root logging level.
        competitors_file: YAML file holding competitor configurations.
    """

    model_config = SettingsConfigDict(populate_by_name=True)

    listen_host: str = Field(default="127.0.0.1", validation_alias="LISTEN_HOST")
    port: int = Field(default=8000, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    competitors_file: str | None = Field(default=None, validation_alias="COMPETITORS_FILE")


class Config:
    """Application configuration manager.

    Centralizes loading of environment variables, the optional crawl.yml
    overrides and default values. Provides typed access to configuration
    sections for the different application components.
    """

    def __init__(self, config_dir: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_dir: Path to configuration directory, defaults to price_compare/config.
        """
        if config_dir is None:
            config_dir = Path(__file__).parent / "config"

        self.config_dir = Path(config_dir)

        self.browser = BrowserConfig()
        self.server = ServerConfig()

        overrides = self._load_overrides()
        self.crawl = CrawlConfig(**(overrides.get("crawl") or {}))
        self.cache = CacheConfig(**(overrides.get("cache") or {}))

    def _load_overrides(self) -> dict[str, Any]:
        """Load crawl and cache overrides from YAML configuration.

        Returns:
            Mapping with optional 'crawl' and 'cache' sections.
        """
        crawl_path = self.config_dir / "crawl.yml"
        if not crawl_path.exists():
            return {}

        with open(crawl_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return data

    @property
    def competitors_path(self) -> Path:
        """Get the competitor registry file.

        Returns:
            COMPETITORS_FILE when set, else competitors.yml in the config directory.
        """
        if self.server.competitors_file:
            return Path(self.server.competitors_file)
        return self.config_dir / "competitors.yml"


# Global configuration instance
config = Config()
