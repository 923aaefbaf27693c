"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from refinery.config import Settings
from refinery.core.browser.page_session import PageSession


@pytest.fixture
def test_settings() -> Generator[Settings, None, None]:
    """
    Provide test configuration with overrides.

    Yields:
        Settings instance for testing
    """
    # Save original environment
    original_env = os.environ.copy()

    # Set test environment variables
    os.environ["LLM_API_KEY"] = "sk-test-key"
    os.environ["API_BASE_URL"] = "http://storage.test/api"
    os.environ["SOURCE_LISTING_URL"] = "https://blog.test/blogs/"
    os.environ["LOG_LEVEL"] = "DEBUG"

    settings = Settings(_env_file=None)

    yield settings

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


class FakePage:
    """Stand-in for a Playwright page serving canned HTML per URL."""

    def __init__(self, pages: dict[str, str], failing: set[str]) -> None:
        self.pages = pages
        self.failing = failing
        self.html = ""
        self.visited: list[str] = []
        self.closed = False
        self.timeout_ms: int | None = None

    def set_default_timeout(self, timeout: int) -> None:
        self.timeout_ms = timeout

    def set_default_navigation_timeout(self, timeout: int) -> None:
        self.timeout_ms = timeout

    async def goto(self, url: str, **kwargs):
        self.visited.append(url)
        if url in self.failing or url not in self.pages:
            raise PlaywrightTimeoutError(f"Timeout exceeded while loading {url}")
        self.html = self.pages[url]
        return None

    async def wait_for_selector(self, selector: str, **kwargs):
        return None

    async def content(self) -> str:
        return self.html

    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, pages: dict[str, str], failing: set[str]) -> None:
        self.pages = pages
        self.failing = failing
        self.opened: list[FakePage] = []
        self.new_page_kwargs: list[dict] = []

    async def new_page(self, **kwargs) -> FakePage:
        self.new_page_kwargs.append(kwargs)
        page = FakePage(self.pages, self.failing)
        self.opened.append(page)
        return page


class FakeBrowserManager:
    """Browser manager that hands out a FakeBrowser instead of Chromium."""

    def __init__(self, pages: dict[str, str] | None = None, failing: set[str] | None = None) -> None:
        self.browser = FakeBrowser(pages if pages is not None else {}, failing or set())
        self.closed = False

    @property
    def pages(self) -> dict[str, str]:
        return self.browser.pages

    @property
    def failing(self) -> set[str]:
        return self.browser.failing

    async def open(self) -> FakeBrowser:
        return self.browser

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def browser_manager() -> FakeBrowserManager:
    """Fake browser whose pages are configured per test."""
    return FakeBrowserManager()


@pytest.fixture
def page_session(browser_manager: FakeBrowserManager) -> PageSession:
    """Real PageSession driving the fake browser."""
    return PageSession(browser_manager, timeout_ms=5000, user_agent="test-agent", viewport=(800, 600))


def article_html(title: str, body: str, author: str | None = None, date: str | None = None) -> str:
    """Minimal blog article page."""
    meta = ""
    if author:
        meta += f'<span class="author">{author}</span>'
    if date:
        meta += f'<time datetime="{date}">Published</time>'
    return f"""
    <html><head><title>{title} | Blog</title></head>
    <body>
      <header><nav><a href="/">Home</a></nav></header>
      <article>
        <h1 class="entry-title">{title}</h1>
        {meta}
        <div class="entry-content"><p>{body}</p></div>
      </article>
      <footer>Copyright</footer>
    </body></html>
    """


def listing_html(links: list[str], pagination: str = "") -> str:
    """Listing page with one article card per link, newest first."""
    cards = "".join(
        f'<article class="post"><h2><a href="{href}">Post {href}</a></h2></article>'
        for href in links
    )
    return f"<html><body><main>{cards}</main>{pagination}</body></html>"


LONG_BODY = "Customer support chatbots answer questions around the clock. " * 5


@pytest.fixture
def make_article():
    """Factory for article page HTML."""
    return article_html


@pytest.fixture
def make_listing():
    """Factory for listing page HTML."""
    return listing_html


@pytest.fixture
def long_body() -> str:
    return LONG_BODY
