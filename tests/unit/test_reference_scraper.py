"""Unit tests for the reference scraper."""

import pytest

from refinery.core.scraping.reference_scraper import ReferenceScraper, truncate


@pytest.fixture
def scraper(page_session):
    return ReferenceScraper(page_session, max_chars=10000)


def test_truncate_short_text_unchanged():
    assert truncate("short", 10) == "short"


def test_truncate_exact_length_unchanged():
    assert truncate("x" * 10, 10) == "x" * 10


def test_truncate_long_text_adds_ellipsis():
    assert truncate("abcdefghij", 4) == "abcd..."


class TestReferenceScraper:
    """Tests for ReferenceScraper."""

    @pytest.mark.asyncio
    async def test_long_body_truncated_to_cap(self, scraper, browser_manager):
        url = "https://ref.test/guide"
        body = "a" * 15000
        browser_manager.pages[url] = (
            f"<html><body><article><h1>Guide</h1><p>{body}</p></article></body></html>"
        )

        result = await scraper.scrape_one(url)

        assert result.success
        assert len(result.data.body) == 10003
        assert result.data.body.endswith("...")
        assert result.data.source_url == url

    @pytest.mark.asyncio
    async def test_falls_back_to_document_body(self, scraper, browser_manager):
        url = "https://ref.test/plain"
        text = "Support teams use automation to answer common questions. " * 4
        browser_manager.pages[url] = (
            f"<html><head><title>Plain</title></head><body><div>{text}</div></body></html>"
        )

        result = await scraper.scrape_one(url)

        assert result.success
        assert result.data.title == "Plain"
        assert result.data.body == text.strip()

    @pytest.mark.asyncio
    async def test_missing_title_fails(self, scraper, browser_manager):
        url = "https://ref.test/untitled"
        browser_manager.pages[url] = "<html><body><div>Some text</div></body></html>"

        result = await scraper.scrape_one(url)

        assert not result.success
        assert result.error == "Missing required fields: title or content"

    @pytest.mark.asyncio
    async def test_scrape_many_drops_failures(self, scraper, browser_manager):
        good = ["https://ref.test/one", "https://ref.test/three"]
        bad = "https://ref.test/two"
        for index, url in enumerate(good):
            browser_manager.pages[url] = (
                f"<html><body><article><h1>Ref {index}</h1>"
                f"<p>{'content ' * 40}</p></article></body></html>"
            )
        browser_manager.failing.add(bad)

        references = await scraper.scrape_many([good[0], bad, good[1]])

        assert [reference.source_url for reference in references] == good
        assert [reference.title for reference in references] == ["Ref 0", "Ref 1"]

    @pytest.mark.asyncio
    async def test_scrape_many_empty(self, scraper):
        assert await scraper.scrape_many([]) == []
