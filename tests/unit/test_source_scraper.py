"""Unit tests for the source blog scraper."""

import pytest
from bs4 import BeautifulSoup

from refinery.core.scraping.source_scraper import (
    MISSING_FIELDS_ERROR,
    ScrapeStage,
    SourceScraper,
    collect_article_links,
    find_last_page_href,
    page_number,
    previous_page_url,
)

LISTING = "https://blog.test/blogs/"


def soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def pagination(*anchors: tuple[str, str]) -> str:
    inner = "".join(f'<a href="{href}">{label}</a>' for href, label in anchors)
    return f'<div class="pagination">{inner}</div>'


@pytest.fixture
def scraper(page_session):
    return SourceScraper(
        page_session,
        listing_url=LISTING,
        articles_to_scrape=5,
        backfill_from_previous_page=True,
    )


class TestPagination:
    """Tests for last-page discovery helpers."""

    @pytest.mark.parametrize(
        ("href", "expected"),
        [
            ("/blogs/page/15/", 15),
            ("/blogs/?page=3", 3),
            ("/blogs/?cat=2&paged=7", 7),
            ("/blogs/post-about-pages/", None),
        ],
    )
    def test_page_number(self, href, expected):
        assert page_number(href) == expected

    def test_highest_number_wins(self):
        doc = soup(
            pagination(
                ("/blogs/page/2/", "2"),
                ("/blogs/page/15/", "15"),
                ("/blogs/page/2/", "Next »"),
            )
        )

        assert find_last_page_href(doc) == "/blogs/page/15/"

    def test_last_marker_beats_numbers(self):
        doc = soup(
            pagination(
                ("/blogs/page/2/", "2"),
                ("/blogs/page/3/", "3"),
                ("/blogs/page/40/", "Last"),
            )
        )

        assert find_last_page_href(doc) == "/blogs/page/40/"

    def test_double_chevron_marks_last_page(self):
        doc = soup(pagination(("/blogs/page/9/", "9"), ("/blogs/?page=12", "»")))

        assert find_last_page_href(doc) == "/blogs/?page=12"

    def test_numeric_label_used_when_href_has_no_number(self):
        doc = soup(pagination(("/blogs/older", "8"), ("/blogs/page/3/", "3")))

        assert find_last_page_href(doc) == "/blogs/older"

    def test_anchor_scan_without_pagination_container(self):
        doc = soup(
            '<a href="/blogs/page/2/">older</a><a href="/blogs/page/6/">oldest</a>'
            '<a href="/about">About</a>'
        )

        assert find_last_page_href(doc) == "/blogs/page/6/"

    def test_no_pagination(self):
        assert find_last_page_href(soup('<a href="/about">About</a>')) is None

    def test_previous_page_url(self):
        assert previous_page_url(f"{LISTING}page/15/", LISTING) == f"{LISTING}page/14/"
        assert previous_page_url(f"{LISTING}?page=5", LISTING) == f"{LISTING}?page=4"
        assert previous_page_url(f"{LISTING}page/2/", LISTING) == LISTING
        assert previous_page_url(LISTING, LISTING) is None


class TestCollectArticleLinks:
    """Tests for listing link collection."""

    def test_links_in_document_order_resolved(self, make_listing):
        doc = soup(make_listing(["/blogs/a/", "/blogs/b/", "https://blog.test/blogs/c/"]))

        links = collect_article_links(doc, f"{LISTING}page/3/")

        assert [link.url for link in links] == [
            "https://blog.test/blogs/a/",
            "https://blog.test/blogs/b/",
            "https://blog.test/blogs/c/",
        ]
        assert links[0].title == "Post /blogs/a/"

    def test_duplicates_and_fragments_skipped(self, make_listing):
        doc = soup(make_listing(["/blogs/a/", "#comments", "/blogs/a/"]))

        links = collect_article_links(doc, LISTING)

        assert [link.url for link in links] == ["https://blog.test/blogs/a/"]

    def test_main_content_fallback(self):
        doc = soup(
            "<main><ul><li><a href='/blog/one'>One</a></li>"
            "<li><a href='/about'>About</a></li></ul></main>"
        )

        links = collect_article_links(doc, LISTING)

        assert [link.url for link in links] == ["https://blog.test/blog/one"]

    def test_no_links(self):
        assert collect_article_links(soup("<p>Empty</p>"), LISTING) == []


class TestSourceScraper:
    """Tests for the SourceScraper workflow."""

    @pytest.mark.asyncio
    async def test_locate_last_page(self, scraper, browser_manager, make_listing):
        browser_manager.pages[LISTING] = make_listing(
            ["/blogs/new/"], pagination(("/blogs/page/2/", "2"), ("/blogs/page/15/", "15"))
        )

        last_page = await scraper.locate_last_page()

        assert last_page == f"{LISTING}page/15/"
        assert scraper.stage is ScrapeStage.FOUND_LAST_PAGE

    @pytest.mark.asyncio
    async def test_locate_last_page_without_pagination(self, scraper, browser_manager, make_listing):
        browser_manager.pages[LISTING] = make_listing(["/blogs/only/"])

        assert await scraper.locate_last_page() == LISTING

    @pytest.mark.asyncio
    async def test_selects_last_n_links(self, scraper, browser_manager, make_listing):
        page = f"{LISTING}page/15/"
        browser_manager.pages[page] = make_listing([f"/blogs/p{i}/" for i in range(1, 7)])

        links = await scraper.extract_article_links(page, 5)

        assert [link.url for link in links] == [
            f"https://blog.test/blogs/p{i}/" for i in range(2, 7)
        ]
        assert scraper.stage is ScrapeStage.LINKS_EXTRACTED

    @pytest.mark.asyncio
    async def test_backfills_from_previous_page(self, scraper, browser_manager, make_listing):
        last = f"{LISTING}page/15/"
        previous = f"{LISTING}page/14/"
        browser_manager.pages[last] = make_listing(["/blogs/b1/", "/blogs/b2/"])
        browser_manager.pages[previous] = make_listing(
            ["/blogs/a1/", "/blogs/a2/", "/blogs/a3/", "/blogs/a4/"]
        )

        links = await scraper.extract_article_links(last, 5)

        assert [link.url.rsplit("/", 2)[-2] for link in links] == ["a2", "a3", "a4", "b1", "b2"]

    @pytest.mark.asyncio
    async def test_no_backfill_when_disabled(self, page_session, browser_manager, make_listing):
        scraper = SourceScraper(
            page_session, listing_url=LISTING, backfill_from_previous_page=False
        )
        last = f"{LISTING}page/15/"
        browser_manager.pages[last] = make_listing(["/blogs/b1/", "/blogs/b2/"])

        links = await scraper.extract_article_links(last, 5)

        assert len(links) == 2
        assert len(browser_manager.browser.opened) == 1

    @pytest.mark.asyncio
    async def test_scrape_one_success(self, scraper, browser_manager, make_article, long_body):
        url = "https://blog.test/blogs/chatbots/"
        browser_manager.pages[url] = make_article("Chatbots", long_body, author="Ann")

        result = await scraper.scrape_one(url)

        assert result.success
        assert result.data.title == "Chatbots"
        assert result.data.source_url == url
        assert result.data.author == "Ann"
        assert result.data.is_complete()

    @pytest.mark.asyncio
    async def test_scrape_one_missing_fields(self, scraper, browser_manager):
        url = "https://blog.test/blogs/empty/"
        browser_manager.pages[url] = "<html><body><p>Nothing</p></body></html>"

        result = await scraper.scrape_one(url)

        assert not result.success
        assert result.error == MISSING_FIELDS_ERROR

    @pytest.mark.asyncio
    async def test_scrape_one_navigation_failure(self, scraper, browser_manager):
        url = "https://blog.test/blogs/slow/"
        browser_manager.failing.add(url)

        result = await scraper.scrape_one(url)

        assert not result.success
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_scrape_oldest_isolates_failures(
        self, scraper, browser_manager, make_listing, make_article, long_body
    ):
        """Five links where the 2nd and 4th time out: 3 succeed, 2 fail."""
        last = f"{LISTING}page/3/"
        hrefs = [f"/blogs/post-{i}/" for i in range(1, 6)]
        browser_manager.pages[LISTING] = make_listing(
            ["/blogs/newest/"], pagination(("/blogs/page/3/", "3"))
        )
        browser_manager.pages[last] = make_listing(hrefs)
        for i, href in enumerate(hrefs, start=1):
            url = f"https://blog.test{href}"
            if i in (2, 4):
                browser_manager.failing.add(url)
            else:
                browser_manager.pages[url] = make_article(f"Post {i}", long_body)

        outcome = await scraper.scrape_oldest(5)

        assert [article.title for article in outcome.succeeded] == ["Post 1", "Post 3", "Post 5"]
        assert outcome.failed_identifiers == [
            "https://blog.test/blogs/post-2/",
            "https://blog.test/blogs/post-4/",
        ]
        assert outcome.total == 5
        assert scraper.stage is ScrapeStage.COMPLETED
        assert all(page.closed for page in browser_manager.browser.opened)

    @pytest.mark.asyncio
    async def test_scrape_oldest_with_empty_listing(self, scraper, browser_manager):
        browser_manager.pages[LISTING] = "<html><body><p>No posts yet</p></body></html>"

        outcome = await scraper.scrape_oldest()

        assert outcome.total == 0
        assert scraper.stage is ScrapeStage.COMPLETED
