"""Browser lifecycle and page handling."""

from refinery.core.browser.page_session import BrowserManager, PageSession

__all__ = ["BrowserManager", "PageSession"]
