"""
Direct Playwright Client
========================

Launches the configured browser in-process and keeps one default page for
fixtures that only need a single session.

Usage:
    async with PlaywrightClient(headless=False) as client:
        browser = Browser(client.page)
        await browser.navigate("/login")
"""

import logging
from typing import Any, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from ui_tests.config import UiTestConfig, settings

logger = logging.getLogger(__name__)


class PlaywrightClient:
    """Owns the Playwright driver, one launched browser and a default page."""

    def __init__(
        self,
        browser_type: Optional[str] = None,
        headless: Optional[bool] = None,
        timeout: Optional[int] = None,
        config: Optional[UiTestConfig] = None,
    ):
        """
        Args:
            browser_type: chromium, firefox or webkit (default: PLAYWRIGHT_BROWSER)
            headless: None reads PLAYWRIGHT_HEADLESS
            timeout: default action timeout in ms for new contexts (default: UI_NAVIGATION_TIMEOUT_MS)
            config: settings to read the defaults from
        """
        self.config = config or settings
        self.browser_type = browser_type or self.config.browser_type
        self.headless = self.config.playwright_headless if headless is None else headless
        self.timeout = self.config.navigation_timeout_ms if timeout is None else timeout

        self._driver: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        self._driver = await async_playwright().start()
        launcher = getattr(self._driver, self.browser_type)
        self._browser = await launcher.launch(headless=self.headless)
        logger.info("Launched %s (headless=%s) for %s", self.browser_type, self.headless, self.config.base_url)

        self._context = await self.new_context(base_url=self.config.url(""))
        self._page = await self._context.new_page()

    async def new_context(self, **options: Any) -> BrowserContext:
        """Open an isolated context (own cookies and storage) with the default timeout applied."""
        if self._browser is None:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")
        context = await self._browser.new_context(**options)
        context.set_default_timeout(self.timeout)
        return context

    async def close(self) -> None:
        """Close page, context, browser and driver, innermost first."""
        for resource in (self._page, self._context, self._browser):
            if resource is not None:
                await resource.close()
        if self._driver is not None:
            await self._driver.stop()
        self._page = self._context = self._browser = self._driver = None

    def _require(self, value: Any, what: str) -> Any:
        if value is None:
            raise RuntimeError(f"Client not connected ({what} unavailable)")
        return value

    @property
    def browser(self) -> Browser:
        return self._require(self._browser, "browser")

    @property
    def context(self) -> BrowserContext:
        return self._require(self._context, "context")

    @property
    def page(self) -> Page:
        return self._require(self._page, "page")
