"""Scraper for the canonical source blog: pagination, listing and articles."""

import re
from enum import Enum
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup

from refinery.config import settings
from refinery.core.batch import BatchOutcome, BatchRunner
from refinery.core.browser.page_session import PageSession
from refinery.core.extraction.field_extractor import FieldExtractor
from refinery.core.extraction.selectors import (
    ARTICLE_CONTAINERS,
    ARTICLE_PATH_MARKERS,
    ARTICLE_TITLE_SELECTOR,
    LAST_PAGE_SYMBOLS,
    LAST_PAGE_WORD,
    MAIN_CONTENT_SELECTOR,
    PAGE_NUMBER_PATTERNS,
    PAGINATION_CONTAINERS,
    SOURCE_SELECTORS,
    FieldSelectors,
)
from refinery.core.models import ArticleLink, ExtractedArticle, ScrapeResult
from refinery.utils.exceptions import ExtractionFailure

logger = structlog.get_logger(__name__)

MISSING_FIELDS_ERROR = "Missing required fields: title or content"


class ScrapeStage(str, Enum):
    """Progress of a source scrape run."""

    IDLE = "idle"
    FOUND_LAST_PAGE = "found_last_page"
    LINKS_EXTRACTED = "links_extracted"
    COMPLETED = "completed"


def page_number(href: str) -> int | None:
    """Page number encoded in a pagination href, if any."""
    for pattern in PAGE_NUMBER_PATTERNS:
        match = re.search(pattern, href)
        if match:
            return int(match.group(1))
    return None


def find_last_page_href(soup: BeautifulSoup) -> str | None:
    """
    Find the href of the last listing page.

    An explicit "last" marker beats any numbered link; otherwise the highest
    page number wins, read from the href or the numeric label. Without a
    pagination container every anchor is scanned for page-path links.

    Returns:
        The href as found in the document, or None when there is no pagination
    """
    container = None
    for selector in PAGINATION_CONTAINERS:
        container = soup.select_one(selector)
        if container is not None:
            break

    if container is None:
        best_page, best_href = 1, None
        for anchor in soup.select("a[href]"):
            href = anchor.get("href", "")
            number = page_number(href)
            if number is not None and number > best_page:
                best_page, best_href = number, href
        return best_href

    best_page, best_href = 1, None
    for anchor in container.select("a[href]"):
        href = anchor.get("href", "")
        if not href:
            continue
        label = anchor.get_text(strip=True)
        if label in LAST_PAGE_SYMBOLS or LAST_PAGE_WORD in label.lower():
            return href

        candidates = [page_number(href)]
        if label.isdigit():
            candidates.append(int(label))
        for number in candidates:
            if number is not None and number > best_page:
                best_page, best_href = number, href

    return best_href


def collect_article_links(soup: BeautifulSoup, page_url: str) -> list[ArticleLink]:
    """
    Collect article links from a listing page in document order.

    The first container selector with any match decides the article
    groupings. If none match, anchors inside the main content area whose path
    looks like an article are used instead.
    """
    raw: list[tuple[str, str | None]] = []

    containers = []
    for selector in ARTICLE_CONTAINERS:
        containers = soup.select(selector)
        if containers:
            break

    if containers:
        for container in containers:
            anchor = container.select_one("a[href]")
            if anchor is None:
                continue
            heading = container.select_one(ARTICLE_TITLE_SELECTOR)
            title = heading.get_text(" ", strip=True) if heading else anchor.get_text(" ", strip=True)
            raw.append((anchor.get("href", ""), title or None))
    else:
        main = soup.select_one(MAIN_CONTENT_SELECTOR)
        if main is not None:
            for anchor in main.select("a[href]"):
                href = anchor.get("href", "")
                if any(marker in href for marker in ARTICLE_PATH_MARKERS):
                    raw.append((href, anchor.get_text(" ", strip=True) or None))

    links: list[ArticleLink] = []
    seen: set[str] = set()
    for href, title in raw:
        href = href.strip()
        if not href or href.startswith("#"):
            continue
        url = urljoin(page_url, href)
        if url in seen:
            continue
        seen.add(url)
        links.append(ArticleLink(url=url, title=title))

    return links


def previous_page_url(page_url: str, listing_url: str) -> str | None:
    """URL of the listing page before ``page_url``, or None on the first page."""
    number = page_number(page_url)
    if number is None or number <= 1:
        return None
    if number == 2:
        return listing_url
    for pattern in PAGE_NUMBER_PATTERNS:
        match = re.search(pattern, page_url)
        if match:
            start, end = match.span(1)
            return page_url[:start] + str(number - 1) + page_url[end:]
    return None


class SourceScraper:
    """
    Scrape the oldest articles of the canonical blog.

    Stages: IDLE -> FOUND_LAST_PAGE -> LINKS_EXTRACTED -> COMPLETED.
    """

    def __init__(
        self,
        session: PageSession,
        listing_url: str | None = None,
        articles_to_scrape: int | None = None,
        backfill_from_previous_page: bool | None = None,
        extractor: FieldExtractor | None = None,
        selectors: FieldSelectors = SOURCE_SELECTORS,
    ) -> None:
        self.session = session
        self.listing_url = listing_url or settings.source_listing_url
        self.articles_to_scrape = articles_to_scrape or settings.articles_to_scrape
        self.backfill_from_previous_page = (
            backfill_from_previous_page
            if backfill_from_previous_page is not None
            else settings.backfill_from_previous_page
        )
        self.extractor = extractor or FieldExtractor()
        self.selectors = selectors
        self.runner = BatchRunner(label="source_articles")
        self.stage = ScrapeStage.IDLE

    async def locate_last_page(self) -> str:
        """
        Find the last listing page; the listing root when there is no pagination.

        Raises:
            NavigationError: If the listing root cannot be loaded
        """
        logger.info("locating_last_page", url=self.listing_url)
        href = await self.session.load(self.listing_url, find_last_page_href)

        if not href:
            logger.warning("no_pagination_found", url=self.listing_url)
            last_page = self.listing_url
        else:
            last_page = urljoin(self.listing_url, href)
            logger.info("last_page_found", url=last_page)

        self.stage = ScrapeStage.FOUND_LAST_PAGE
        return last_page

    async def extract_article_links(
        self, page_url: str, count: int | None = None
    ) -> list[ArticleLink]:
        """
        Return the last ``count`` article links of a listing page.

        Listings run newest-first, so the tail holds the oldest articles.
        """
        count = count or self.articles_to_scrape
        links = await self.session.load(page_url, collect_article_links, page_url)

        if len(links) < count and self.backfill_from_previous_page:
            previous = previous_page_url(page_url, self.listing_url)
            if previous:
                logger.info(
                    "backfilling_from_previous_page",
                    page=page_url,
                    previous=previous,
                    found=len(links),
                    wanted=count,
                )
                earlier = await self.session.load(previous, collect_article_links, previous)
                known = {link.url for link in links}
                links = [link for link in earlier if link.url not in known] + links

        selected = links[-count:] if links else []
        logger.info(
            "article_links_extracted",
            page=page_url,
            total=len(links),
            selected=len(selected),
        )
        self.stage = ScrapeStage.LINKS_EXTRACTED
        return selected

    async def scrape_one(self, url: str) -> ScrapeResult[ExtractedArticle]:
        """Scrape one article page; failures are returned, never raised."""
        logger.info("scraping_article", url=url)
        try:
            fields = await self.session.load(url, self.extractor.extract_article, self.selectors)
        except Exception as e:
            logger.error("article_scrape_failed", url=url, error=str(e))
            return ScrapeResult.fail(str(e))

        if not fields["title"] or not fields["body"]:
            logger.warning(
                "article_missing_fields",
                url=url,
                has_title=bool(fields["title"]),
                has_body=bool(fields["body"]),
            )
            return ScrapeResult.fail(MISSING_FIELDS_ERROR)

        article = ExtractedArticle(
            title=fields["title"],
            body=fields["body"],
            source_url=url,
            author=fields["author"],
            published_at=fields["published_at"],
        )
        logger.info(
            "article_scraped",
            url=url,
            title=article.title[:50],
            body_length=len(article.body),
        )
        return ScrapeResult.ok(article)

    async def scrape_batch(self, links: list[ArticleLink]) -> BatchOutcome[ExtractedArticle]:
        """Scrape each link independently; one failure never stops the rest."""

        async def scrape_or_raise(link: ArticleLink) -> ExtractedArticle:
            result = await self.scrape_one(link.url)
            if not result.success or result.data is None:
                raise ExtractionFailure(result.error or "Unknown error")
            return result.data

        outcome = await self.runner.run(links, scrape_or_raise, identify=lambda link: link.url)
        self.stage = ScrapeStage.COMPLETED
        return outcome

    async def scrape_oldest(self, count: int | None = None) -> BatchOutcome[ExtractedArticle]:
        """Locate the last page, select its oldest links and scrape them."""
        count = count or self.articles_to_scrape
        last_page = await self.locate_last_page()
        links = await self.extract_article_links(last_page, count)

        if not links:
            logger.warning("no_articles_found", page=last_page)
            self.stage = ScrapeStage.COMPLETED
            return BatchOutcome()

        return await self.scrape_batch(links)
