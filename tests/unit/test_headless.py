"""Tests for the headless browser lifecycle with Playwright mocked out."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from price_compare.config import BrowserConfig
from price_compare.errors import BrowserLaunchError
from price_compare.scrapers.headless import STEALTH_SCRIPT, HeadlessBrowser


def _playwright(launch_side_effect=None):
    page = MagicMock()
    page.add_init_script = AsyncMock()
    page.close = AsyncMock()

    context = MagicMock()
    context.route = AsyncMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(side_effect=launch_side_effect, return_value=browser)
    pw.stop = AsyncMock()

    factory = MagicMock()
    factory.return_value.start = AsyncMock(return_value=pw)
    return factory, pw, browser, context, page


class TestHeadlessBrowser:
    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        factory, pw, browser, context, _ = _playwright()
        settings = BrowserConfig(executable_path="/usr/bin/chromium", auto_install=False)

        with patch("price_compare.scrapers.headless.async_playwright", factory):
            async with HeadlessBrowser(settings) as headless:
                assert headless.context is context

        launch_kwargs = pw.chromium.launch.await_args.kwargs
        assert launch_kwargs["executable_path"] == "/usr/bin/chromium"
        assert launch_kwargs["headless"] is True
        context.route.assert_awaited_once()
        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        pw.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_launch_failure_raises_and_cleans_up(self):
        factory, pw, _, _, _ = _playwright(launch_side_effect=Exception("Executable doesn't exist"))
        settings = BrowserConfig(auto_install=False)

        with patch("price_compare.scrapers.headless.async_playwright", factory):
            with pytest.raises(BrowserLaunchError):
                await HeadlessBrowser(settings).start()

        pw.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_browser_is_installed_once(self):
        factory, pw, browser, _, _ = _playwright()
        pw.chromium.launch.side_effect = [Exception("Executable doesn't exist at /ms-playwright"), browser]
        installer = AsyncMock(return_value=True)

        with patch("price_compare.scrapers.headless.async_playwright", factory), patch(
            "price_compare.scrapers.headless._ensure_playwright_browsers_installed", installer
        ):
            headless = HeadlessBrowser(BrowserConfig(executable_path=None, auto_install=True))
            await headless.start()

        installer.assert_awaited_once()
        assert headless.browser is browser
        assert pw.chromium.launch.await_count == 2

    @pytest.mark.asyncio
    async def test_page_is_closed_on_error(self):
        factory, _, _, _, page = _playwright()

        with patch("price_compare.scrapers.headless.async_playwright", factory):
            async with HeadlessBrowser(BrowserConfig(auto_install=False)) as headless:
                with pytest.raises(RuntimeError):
                    async with headless.page() as opened:
                        assert opened is page
                        raise RuntimeError("crawl failed")

        page.add_init_script.assert_awaited_once_with(STEALTH_SCRIPT)
        page.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_page_is_closed_when_init_script_fails(self):
        factory, _, _, _, page = _playwright()
        page.add_init_script.side_effect = RuntimeError("Target closed")

        with patch("price_compare.scrapers.headless.async_playwright", factory):
            async with HeadlessBrowser(BrowserConfig(auto_install=False)) as headless:
                with pytest.raises(RuntimeError, match="Target closed"):
                    async with headless.page():
                        pass

        page.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_page_requires_started_browser(self):
        with pytest.raises(RuntimeError):
            async with HeadlessBrowser(BrowserConfig(auto_install=False)).page():
                pass

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "resource_type,url,aborted",
        [
            ("font", "https://shop.example/font.woff2", True),
            ("media", "https://shop.example/promo.mp4", True),
            ("script", "https://www.google-analytics.com/analytics.js", True),
            ("document", "https://shop.example/search?q=mug", False),
            ("image", "https://shop.example/media/mug.jpg", False),
        ],
    )
    async def test_route_handler(self, resource_type, url, aborted):
        route = MagicMock()
        route.request.resource_type = resource_type
        route.request.url = url
        route.abort = AsyncMock()
        route.continue_ = AsyncMock()

        await HeadlessBrowser(BrowserConfig(auto_install=False))._route_handler(route)

        assert route.abort.await_count == (1 if aborted else 0)
        assert route.continue_.await_count == (0 if aborted else 1)
