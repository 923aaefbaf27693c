"""End-to-end acquisition and enhancement pipeline orchestrator."""

from dataclasses import dataclass, field
from uuid import uuid4

import structlog

from refinery.config import settings
from refinery.core.batch import BatchOutcome
from refinery.core.browser.page_session import BrowserManager, PageSession
from refinery.core.enhancement.enhancer import Enhancer
from refinery.core.models import ArticleRecord, EnhancedRecord
from refinery.core.scraping.reference_scraper import ReferenceScraper
from refinery.core.scraping.source_scraper import SourceScraper
from refinery.core.search.discovery import SearchDiscovery
from refinery.storage.api_client import StorageClient
from refinery.utils.exceptions import GenerationFailure, NavigationError, StorageError
from refinery.utils.logging import bind_run_context

logger = structlog.get_logger(__name__)


@dataclass
class StageFailure:
    """A failed item, with the stage it failed in and why."""

    stage: str
    identifier: str
    error: str


@dataclass
class RunSummary:
    """Per-stage counts and per-item failure reasons of a pipeline run."""

    scraped: int = 0
    stored: int = 0
    enhanced: int = 0
    skipped: int = 0
    failures: list[StageFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def record_failure(self, stage: str, identifier: str, error: str) -> None:
        self.failures.append(StageFailure(stage=stage, identifier=identifier, error=error))

    def record_outcome(self, stage: str, outcome: BatchOutcome) -> None:
        for failure in outcome.failed:
            self.record_failure(stage, failure.identifier, failure.error)

    def failures_for(self, stage: str) -> list[StageFailure]:
        return [failure for failure in self.failures if failure.stage == stage]

    def merge(self, other: "RunSummary") -> "RunSummary":
        return RunSummary(
            scraped=self.scraped + other.scraped,
            stored=self.stored + other.stored,
            enhanced=self.enhanced + other.enhanced,
            skipped=self.skipped + other.skipped,
            failures=self.failures + other.failures,
        )


class RefineryPipeline:
    """
    Coordinate scraping, storage, reference discovery and enhancement.

    Data flow:
    1. SourceScraper extracts the oldest articles of the source blog
    2. StorageClient persists them
    3. For each stored article, SearchDiscovery finds references
    4. ReferenceScraper fetches reference content
    5. Enhancer generates the enhanced body, stored against the original id

    Everything runs sequentially on one browser. Item failures are recorded in
    the RunSummary and never stop the remaining items.
    """

    def __init__(
        self,
        storage: StorageClient,
        source_scraper: SourceScraper,
        reference_scraper: ReferenceScraper,
        discovery: SearchDiscovery,
        enhancer: Enhancer | None = None,
    ) -> None:
        self.storage = storage
        self.source_scraper = source_scraper
        self.reference_scraper = reference_scraper
        self.discovery = discovery
        self._enhancer = enhancer

    @classmethod
    def build(
        cls,
        browser_manager: BrowserManager,
        storage: StorageClient,
        enhancer: Enhancer | None = None,
    ) -> "RefineryPipeline":
        """Wire the default components around one shared browser."""
        session = PageSession(browser_manager)
        return cls(
            storage=storage,
            source_scraper=SourceScraper(session),
            reference_scraper=ReferenceScraper(session),
            discovery=SearchDiscovery(session),
            enhancer=enhancer,
        )

    @property
    def enhancer(self) -> Enhancer:
        # Created on demand so scrape-only runs need no LLM credentials
        if self._enhancer is None:
            self._enhancer = Enhancer()
        return self._enhancer

    async def scrape_and_store(self, count: int | None = None) -> RunSummary:
        """Scrape the oldest source articles and persist them."""
        summary = RunSummary()

        logger.info("phase_scrape_started", count=count or settings.articles_to_scrape)
        try:
            scraped = await self.source_scraper.scrape_oldest(count)
        except NavigationError as e:
            logger.error("listing_unreachable", url=e.url, error=str(e))
            summary.record_failure("listing", e.url, str(e))
            return summary

        summary.scraped = scraped.success_count
        summary.record_outcome("scrape", scraped)

        if not scraped.succeeded:
            logger.warning("no_articles_scraped")
            return summary

        logger.info("phase_store_started", count=scraped.success_count)
        stored = await self.storage.create_articles(scraped.succeeded)
        summary.stored = stored.success_count
        summary.record_outcome("store", stored)

        logger.info(
            "phase_scrape_complete",
            scraped=summary.scraped,
            stored=summary.stored,
            failed=summary.failed,
        )
        return summary

    async def enhance_article(self, record: ArticleRecord) -> EnhancedRecord:
        """
        Find references for one stored article, enhance it and store the result.

        Raises:
            GenerationFailure: When every generation attempt fails
            StorageError: When the enhanced record cannot be stored
        """
        hits = await self.discovery.search_and_filter(record.title)
        references = await self.reference_scraper.scrape_many([hit.url for hit in hits])
        document = await self.enhancer.enhance(record, references)
        return await self.storage.create_enhanced(record.id, document)

    async def enhance_stored(
        self,
        max_articles: int | None = None,
        skip_existing: bool = True,
    ) -> RunSummary:
        """
        Enhance stored articles one by one, continuing past failures.

        A failure to list stored articles ends the phase early; it is recorded
        under the "list" stage and the partial summary is still returned.
        """
        summary = RunSummary()
        processed = 0

        logger.info("phase_enhance_started", max_articles=max_articles)
        try:
            async for record in self.storage.iter_all_articles():
                if max_articles is not None and processed >= max_articles:
                    break
                processed += 1
                await self._enhance_record(record, summary, skip_existing)
        except StorageError as e:
            logger.error("article_listing_failed", processed=processed, error=str(e))
            summary.record_failure("list", str(self.storage.base_url), str(e))

        logger.info(
            "phase_enhance_complete",
            enhanced=summary.enhanced,
            skipped=summary.skipped,
            failed=summary.failed,
        )
        return summary

    async def _enhance_record(
        self, record: ArticleRecord, summary: RunSummary, skip_existing: bool
    ) -> None:
        identifier = f"{record.id}:{record.source_url}"

        if skip_existing:
            try:
                existing = await self.storage.get_enhanced(record.id)
            except StorageError as e:
                summary.record_failure("enhance", identifier, str(e))
                return
            if existing is not None:
                logger.info("enhancement_exists", article_id=record.id)
                summary.skipped += 1
                return

        try:
            await self.enhance_article(record)
        except GenerationFailure as e:
            logger.error("enhancement_failed", article_id=record.id, error=str(e))
            summary.record_failure("generate", identifier, str(e))
            return
        except StorageError as e:
            logger.error("enhanced_store_failed", article_id=record.id, error=str(e))
            summary.record_failure("store_enhanced", identifier, str(e))
            return

        summary.enhanced += 1

    async def run(self, count: int | None = None, max_articles: int | None = None) -> RunSummary:
        """Full run: scrape and store, then enhance everything stored."""
        scraped = await self.scrape_and_store(count)
        enhanced = await self.enhance_stored(max_articles=max_articles)
        return scraped.merge(enhanced)


async def execute(
    mode: str = "run",
    count: int | None = None,
    max_articles: int | None = None,
    enhancer: Enhancer | None = None,
    browser_manager: BrowserManager | None = None,
    storage: StorageClient | None = None,
) -> RunSummary:
    """
    Run the pipeline with a single browser and storage lifecycle.

    Args:
        mode: "scrape", "enhance" or "run"
        count: Oldest articles to scrape (defaults to settings)
        max_articles: Cap on stored articles to enhance
        enhancer: Optional pre-built Enhancer
        browser_manager: Optional browser handle (created if not provided)
        storage: Optional storage client (created if not provided)

    Returns:
        RunSummary for the run
    """
    if mode not in {"scrape", "enhance", "run"}:
        raise ValueError(f"Unknown mode: {mode}")

    browser_manager = browser_manager or BrowserManager()
    storage = storage or StorageClient()
    pipeline = RefineryPipeline.build(browser_manager, storage, enhancer=enhancer)
    bind_run_context(run_id=uuid4().hex[:8], mode=mode)

    try:
        if mode == "scrape":
            return await pipeline.scrape_and_store(count)
        if mode == "enhance":
            return await pipeline.enhance_stored(max_articles=max_articles)
        return await pipeline.run(count=count, max_articles=max_articles)
    finally:
        await browser_manager.close()
        await storage.close()
        logger.info("pipeline_resources_released")
