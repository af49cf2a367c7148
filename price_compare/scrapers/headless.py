"""Headless browser lifecycle for crawling competitor search pages.

This module wraps Playwright's Chromium in a scoped resource: a browser is
started on entry and always torn down on exit, and every page handed out is
closed when its owner is done with it, including on errors and cancellation.

Key features:
- Local Chrome/Chromium executable or Playwright-managed Chromium
- Automatic Chromium installation when the managed binary is missing
- Automation markers hidden from competitor sites
- Tracker and media requests blocked to keep pages light
"""

import asyncio
import logging
import shlex
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from playwright.async_api import async_playwright

from ..config import BrowserConfig, config
from ..errors import BrowserLaunchError

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route
else:
    Browser = BrowserContext = Page = Playwright = Route = Any

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
    "--disable-extensions",
    "--disable-features=VizDisplayCompositor",
    "--disable-blink-features=AutomationControlled",
    "--window-size=1920,1080",
]

BLOCKED_DOMAINS = [
    "google-analytics",
    "googletagmanager",
    "doubleclick",
    "facebook.net",
    "adsystem",
    "hotjar",
]

STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {
    get: () => undefined,
});
window.chrome = { runtime: {} };
Object.defineProperty(navigator, 'languages', {
    get: () => ['en-US', 'en'],
});
"""


class HeadlessBrowser:
    """Headless browser owned by a single crawl run."""

    def __init__(self, settings: BrowserConfig | None = None) -> None:
        self.settings = settings or config.browser
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.playwright: Playwright | None = None
        self._install_attempted: bool = False

    async def __aenter__(self) -> "HeadlessBrowser":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.stop()

    async def start(self) -> None:
        """Start the headless browser.

        Raises:
            BrowserLaunchError: If Chromium cannot be launched.
        """
        try:
            self.playwright = await async_playwright().start()

            launch_options: dict[str, Any] = {
                "headless": self.settings.headless,
                "args": LAUNCH_ARGS,
                "timeout": self.settings.launch_timeout_ms,
            }
            if self.settings.executable_path:
                logger.info(f"Using Chrome at: {self.settings.executable_path}")
                launch_options["executable_path"] = self.settings.executable_path

            self.browser = await self.playwright.chromium.launch(**launch_options)
            self.context = await self.browser.new_context(
                user_agent=self.settings.user_agent,
                viewport={"width": 1920, "height": 1080},
                java_script_enabled=True,
                bypass_csp=True,
                locale="en-US",
            )
            await self.context.route("**/*", self._route_handler)

            logger.info("Headless browser started successfully")

        except asyncio.CancelledError:
            await self.stop()
            raise

        except Exception as e:
            logger.error(f"Failed to start headless browser: {e}")

            if (
                self.settings.auto_install
                and not self.settings.executable_path
                and not self._install_attempted
                and _needs_browser_install(str(e))
            ):
                logger.warning("Playwright browsers missing; attempting automatic installation...")
                self._install_attempted = True
                if await _ensure_playwright_browsers_installed():
                    logger.info("Playwright browsers installed successfully, retrying launch.")
                    await self.stop()
                    await self.start()
                    return

            await self.stop()
            raise BrowserLaunchError(f"Headless browser could not be launched: {e}") from e

    async def stop(self) -> None:
        """Stop the headless browser and cleanup resources."""
        try:
            if self.context:
                await self.context.close()
                self.context = None

            if self.browser:
                await self.browser.close()
                self.browser = None

            if self.playwright:
                await self.playwright.stop()
                self.playwright = None

            logger.debug("Headless browser stopped and cleaned up")

        except Exception as e:
            logger.warning(f"Error during browser cleanup: {e}")

    async def _route_handler(self, route: Route) -> None:
        """Block media, fonts and trackers; everything else loads normally."""
        request = route.request
        if request.resource_type in ("media", "font"):
            await route.abort()
        elif any(domain in request.url for domain in BLOCKED_DOMAINS):
            await route.abort()
        else:
            await route.continue_()

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Open a page that is closed when the block exits.

        Yields:
            A fresh page exclusively owned by the caller.
        """
        if self.context is None:
            raise RuntimeError("Browser not started. Call start() first.")

        page = await self.context.new_page()
        try:
            await page.add_init_script(STEALTH_SCRIPT)
            yield page
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.warning(f"Error closing page: {e}")


def _needs_browser_install(message: str) -> bool:
    lowered = message.lower()
    return "executable doesn't exist" in lowered or "playwright install" in lowered


async def _ensure_playwright_browsers_installed() -> bool:
    """Attempt to install Playwright Chromium binaries on demand."""
    try:
        cmd = ["playwright", "install", "chromium"]
        logger.info("Running %s", " ".join(shlex.quote(part) for part in cmd))
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        stdout, _ = await process.communicate()
        if stdout:
            logger.info(stdout.decode(errors="ignore"))
        if process.returncode == 0:
            return True

        logger.error("playwright install chromium exited with %s", process.returncode)
        return False
    except Exception as exc:
        logger.error(f"Automatic Playwright installation failed: {exc}")
        return False
