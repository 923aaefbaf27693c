"""Playwright browser lifecycle and scoped page handling."""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import structlog
from bs4 import BeautifulSoup
from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from refinery.config import settings
from refinery.utils.exceptions import NavigationError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Element that must be present before a page counts as loaded
BASELINE_SELECTOR = "body"

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]


class BrowserManager:
    """
    Owner of the single Chromium process shared by a pipeline run.

    The browser is launched lazily on the first ``open()`` and released by
    ``close()``, which the top-level run calls once in a ``finally`` block.
    """

    def __init__(self, headless: bool | None = None) -> None:
        self.headless = settings.browser_headless if headless is None else headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    async def open(self) -> Browser:
        """Return the shared browser, launching it on first use."""
        if self._browser is not None:
            return self._browser

        logger.info("browser_launching", headless=self.headless)
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=LAUNCH_ARGS,
            )
        except Exception as e:
            logger.error("browser_launch_failed", error=str(e))
            try:
                await self._playwright.stop()
            finally:
                self._playwright = None
            raise
        return self._browser

    async def close(self) -> None:
        """Close browser and stop Playwright. Safe to call more than once."""
        if self._browser is not None:
            logger.info("browser_closing")
            try:
                await self._browser.close()
            finally:
                self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            finally:
                self._playwright = None

    async def __aenter__(self) -> "BrowserManager":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()


class PageSession:
    """
    Open, configure, navigate, evaluate and dispose automated-browser pages.

    Every page returned by ``new_page`` holds browser resources and must be
    handed to ``dispose``; ``page()`` and ``load()`` do this on all exit paths.
    """

    def __init__(
        self,
        browser_manager: BrowserManager,
        timeout_ms: int | None = None,
        user_agent: str | None = None,
        viewport: tuple[int, int] | None = None,
    ) -> None:
        """
        Initialize page session.

        Args:
            browser_manager: Shared browser handle owned by the caller
            timeout_ms: Navigation timeout (defaults to settings.navigation_timeout_ms)
            user_agent: User-Agent string (defaults to settings.user_agent)
            viewport: (width, height) in pixels (defaults to settings viewport)
        """
        self.browser_manager = browser_manager
        self.timeout_ms = timeout_ms or settings.navigation_timeout_ms
        self.user_agent = user_agent or settings.user_agent
        self.viewport = viewport or (settings.viewport_width, settings.viewport_height)

    async def new_page(self) -> Page:
        """Create an isolated page (own context) with fixed UA, timeout and viewport."""
        browser = await self.browser_manager.open()
        width, height = self.viewport
        page = await browser.new_page(
            user_agent=self.user_agent,
            viewport={"width": width, "height": height},
        )
        page.set_default_timeout(self.timeout_ms)
        page.set_default_navigation_timeout(self.timeout_ms)
        return page

    async def navigate(self, page: Page, url: str) -> None:
        """
        Load ``url`` and wait for network quiescence and the baseline element.

        Raises:
            NavigationError: On timeout or network failure
        """
        try:
            response = await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
            await page.wait_for_selector(
                BASELINE_SELECTOR, state="attached", timeout=self.timeout_ms
            )
        except PlaywrightTimeoutError as e:
            logger.warning("navigation_timeout", url=url, timeout_ms=self.timeout_ms)
            raise NavigationError(url, f"timed out after {self.timeout_ms}ms") from e
        except PlaywrightError as e:
            logger.warning("navigation_failed", url=url, error=str(e))
            raise NavigationError(url, str(e)) from e

        logger.debug(
            "navigation_complete",
            url=url,
            status=response.status if response else None,
        )

    async def evaluate(self, page: Page, fn: Callable[..., T], *args: Any) -> T:
        """Run a pure extraction function against a snapshot of the loaded DOM."""
        html = await page.content()
        soup = BeautifulSoup(html, "html.parser")
        return fn(soup, *args)

    async def dispose(self, page: Page | None) -> None:
        """Close the page if it is still open."""
        if page is None or page.is_closed():
            return
        try:
            await page.close()
        except PlaywrightError as e:
            # Already torn down with its browser
            logger.debug("page_close_failed", error=str(e))

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Scoped page that is always disposed on exit."""
        page = await self.new_page()
        try:
            yield page
        finally:
            await self.dispose(page)

    async def load(self, url: str, fn: Callable[..., T], *args: Any) -> T:
        """Navigate a fresh scoped page to ``url`` and evaluate ``fn`` against it."""
        async with self.page() as page:
            await self.navigate(page, url)
            return await self.evaluate(page, fn, *args)
