"""Discover comparison sources by filtering search-engine results."""

from urllib.parse import quote_plus, urlparse

import structlog
from bs4 import BeautifulSoup

from refinery.config import settings
from refinery.core.browser.page_session import PageSession
from refinery.core.extraction.selectors import (
    CONTENT_PATH_MARKERS,
    SEARCH_LINK_SELECTOR,
    SEARCH_RESULT_CONTAINERS,
    SEARCH_SNIPPET_SELECTOR,
    SEARCH_TITLE_SELECTOR,
    TRANSACTIONAL_PATH_MARKERS,
)
from refinery.core.models import SearchHit
from refinery.utils.exceptions import SearchFailure

logger = structlog.get_logger(__name__)


def parse_search_results(soup: BeautifulSoup, engine_host: str = "google.com") -> list[SearchHit]:
    """
    Parse result blocks of a search results page.

    The first container selector with any match decides the result blocks.
    A block needs an absolute link and a heading; links back to the search
    engine itself are skipped.
    """
    blocks = []
    for selector in SEARCH_RESULT_CONTAINERS:
        blocks = soup.select(selector)
        if blocks:
            break

    hits: list[SearchHit] = []
    for block in blocks:
        link = block.select_one(SEARCH_LINK_SELECTOR)
        heading = block.select_one(SEARCH_TITLE_SELECTOR)
        if link is None or heading is None:
            continue

        url = link.get("href", "").strip()
        title = heading.get_text(" ", strip=True)
        if not url or not title or engine_host in url:
            continue

        snippet_el = block.select_one(SEARCH_SNIPPET_SELECTOR)
        snippet = snippet_el.get_text(" ", strip=True) if snippet_el else None
        hits.append(SearchHit(title=title, url=url, snippet=snippet or None))

    return hits


class SearchDiscovery:
    """Find reference candidates for an article title."""

    def __init__(
        self,
        session: PageSession,
        url_template: str | None = None,
        max_results: int | None = None,
        excluded_domains: list[str] | None = None,
    ) -> None:
        self.session = session
        self.url_template = url_template or settings.search_url_template
        self.max_results = max_results or settings.search_max_results
        self.excluded_domains = [
            domain.lower()
            for domain in (
                excluded_domains
                if excluded_domains is not None
                else settings.search_excluded_domains
            )
        ]

    @property
    def engine_host(self) -> str:
        host = urlparse(self.url_template).netloc.lower()
        return host[4:] if host.startswith("www.") else host

    def search_url(self, query: str) -> str:
        return self.url_template.format(query=quote_plus(query))

    async def search(self, query: str) -> list[SearchHit]:
        """
        Search for ``query`` and parse the hits.

        Returns:
            Parsed hits, or an empty list on any failure
        """
        try:
            hits = await self._fetch_hits(query)
        except SearchFailure as e:
            logger.error("search_failed", query=query, error=str(e))
            return []

        logger.info("search_complete", query=query, results_found=len(hits))
        return hits

    async def _fetch_hits(self, query: str) -> list[SearchHit]:
        url = self.search_url(query)
        logger.info("searching", query=query, url=url)
        try:
            return await self.session.load(url, parse_search_results, self.engine_host)
        except Exception as e:
            raise SearchFailure(f"Search for {query!r} failed: {e}") from e

    def is_excluded(self, url: str) -> bool:
        lowered = url.lower()
        return any(domain in lowered for domain in self.excluded_domains)

    @staticmethod
    def is_content_like(url: str) -> bool:
        """Loose heuristic: article-ish path, or at least not a transactional one."""
        lowered = url.lower()
        if any(marker in lowered for marker in CONTENT_PATH_MARKERS):
            return True
        return not any(marker in lowered for marker in TRANSACTIONAL_PATH_MARKERS)

    def filter(self, hits: list[SearchHit]) -> list[SearchHit]:
        """Drop excluded domains and non-content pages, keep the first few in order."""
        kept = [
            hit
            for hit in hits
            if not self.is_excluded(hit.url) and self.is_content_like(hit.url)
        ]
        return kept[: self.max_results]

    async def search_and_filter(self, title: str) -> list[SearchHit]:
        """Search for an article title and return the usable reference candidates."""
        hits = await self.search(title)
        filtered = self.filter(hits)

        logger.info(
            "search_results_filtered",
            query=title,
            total_results=len(hits),
            filtered_results=len(filtered),
        )
        if not filtered:
            logger.warning("no_suitable_results", query=title)

        return filtered
