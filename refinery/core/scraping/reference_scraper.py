"""Scraper for third-party reference articles."""

import structlog

from refinery.config import settings
from refinery.core.batch import BatchRunner
from refinery.core.browser.page_session import PageSession
from refinery.core.extraction.field_extractor import FieldExtractor
from refinery.core.extraction.selectors import REFERENCE_SELECTORS, FieldSelectors
from refinery.core.models import ReferenceDocument, ScrapeResult
from refinery.utils.exceptions import ExtractionFailure

logger = structlog.get_logger(__name__)

ELLIPSIS = "..."


def truncate(text: str, max_chars: int) -> str:
    """Cut ``text`` to ``max_chars`` and mark the cut with an ellipsis."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + ELLIPSIS


class ReferenceScraper:
    """
    Fetch best-effort reference content from arbitrary URLs.

    Uses broader selector candidates than the source scraper and falls back
    to the whole document body. Failures are logged and dropped since
    references only enrich the enhancement.
    """

    def __init__(
        self,
        session: PageSession,
        max_chars: int | None = None,
        extractor: FieldExtractor | None = None,
        selectors: FieldSelectors = REFERENCE_SELECTORS,
    ) -> None:
        self.session = session
        self.max_chars = max_chars or settings.reference_max_chars
        self.extractor = extractor or FieldExtractor()
        self.selectors = selectors
        self.runner = BatchRunner(label="references")

    async def scrape_one(self, url: str) -> ScrapeResult[ReferenceDocument]:
        """Scrape one reference page; failures are returned, never raised."""
        logger.info("scraping_reference", url=url)
        try:
            fields = await self.session.load(url, self.extractor.extract_article, self.selectors)
        except Exception as e:
            logger.error("reference_scrape_failed", url=url, error=str(e))
            return ScrapeResult.fail(str(e))

        title, body = fields["title"], fields["body"]
        if not title or not body:
            logger.warning(
                "reference_missing_fields",
                url=url,
                has_title=bool(title),
                has_body=bool(body),
            )
            return ScrapeResult.fail("Missing required fields: title or content")

        document = ReferenceDocument(
            title=title,
            body=truncate(body, self.max_chars),
            source_url=url,
        )
        logger.info(
            "reference_scraped",
            url=url,
            title_length=len(document.title),
            body_length=len(document.body),
        )
        return ScrapeResult.ok(document)

    async def scrape_many(self, urls: list[str]) -> list[ReferenceDocument]:
        """Scrape each URL in turn and return only the successes."""

        async def scrape_or_raise(url: str) -> ReferenceDocument:
            result = await self.scrape_one(url)
            if not result.success or result.data is None:
                raise ExtractionFailure(result.error or "Unknown error")
            return result.data

        outcome = await self.runner.run(urls, scrape_or_raise)

        for failure in outcome.failed:
            logger.warning(
                "reference_dropped", url=failure.identifier, error=failure.error
            )

        logger.info(
            "references_scraped",
            attempted=len(urls),
            successful=outcome.success_count,
        )
        return outcome.succeeded
