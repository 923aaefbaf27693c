"""Client for the article storage API.

The storage service owns persistence and idempotency: it rejects a second
article with the same source URL and a second enhanced record for the same
original. This client maps those responses onto the storage exceptions.
"""

from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

from refinery.config import settings
from refinery.core.batch import BatchOutcome, BatchRunner
from refinery.core.models import (
    ArticleRecord,
    EnhancedDocument,
    EnhancedRecord,
    ExtractedArticle,
)
from refinery.utils.exceptions import (
    StorageConflictError,
    StorageError,
    StorageNotFoundError,
)

logger = structlog.get_logger(__name__)


class StorageClient:
    """Async HTTP client for creating and reading article records."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize storage client.

        Args:
            base_url: API root (defaults to settings.api_base_url)
            timeout: Request timeout in seconds (defaults to settings.api_timeout_seconds)
            transport: Optional httpx transport, used by tests
        """
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.api_timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self.runner = BatchRunner(label="store_articles")

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "StorageClient":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise StorageError(f"{method} {path} failed: {e}") from e

        if response.is_success:
            return response.json() if response.content else None

        message = _error_message(response)
        status = response.status_code
        if status == 404:
            raise StorageNotFoundError(message, status_code=status)
        if status == 409 or (status == 400 and "already exists" in message.lower()):
            raise StorageConflictError(message, status_code=status)
        raise StorageError(f"{method} {path} returned {status}: {message}", status_code=status)

    async def create_article(self, article: ExtractedArticle) -> ArticleRecord:
        """
        Persist a scraped article.

        Raises:
            StorageConflictError: If an article with the same source URL exists
            StorageError: On any other API failure
        """
        logger.info("storing_article", title=article.title[:50], url=article.source_url)
        payload = await self._request(
            "POST",
            "/articles",
            json={
                "title": article.title,
                "content": article.body,
                "author": article.author,
                "publication_date": article.published_at,
                "source_url": article.source_url,
            },
        )
        record = ArticleRecord.from_api(payload)
        logger.info("article_stored", id=record.id, url=record.source_url)
        return record

    async def create_articles(
        self, articles: list[ExtractedArticle]
    ) -> BatchOutcome[ArticleRecord]:
        """Persist each article independently, keyed by source URL."""
        return await self.runner.run(
            articles,
            self.create_article,
            identify=lambda article: article.source_url,
        )

    async def get_article(self, article_id: int) -> ArticleRecord | None:
        try:
            payload = await self._request("GET", f"/articles/{article_id}")
        except StorageNotFoundError:
            return None
        return ArticleRecord.from_api(payload)

    async def list_articles(self, page: int = 1, limit: int = 10) -> tuple[list[ArticleRecord], int]:
        """
        Fetch one page of stored articles.

        Returns:
            Tuple of (records, total_pages)
        """
        payload = await self._request(
            "GET", "/articles", params={"page": page, "limit": limit}
        )
        records = [ArticleRecord.from_api(item) for item in payload.get("data") or []]
        total_pages = int((payload.get("pagination") or {}).get("totalPages", 1) or 1)
        return records, total_pages

    async def iter_all_articles(self, limit: int = 100) -> AsyncIterator[ArticleRecord]:
        """Yield every stored article, walking the API's pages."""
        page = 1
        while True:
            records, total_pages = await self.list_articles(page=page, limit=limit)
            for record in records:
                yield record
            if page >= total_pages or not records:
                break
            page += 1

    async def create_enhanced(
        self, original_id: int, document: EnhancedDocument
    ) -> EnhancedRecord:
        """
        Attach an enhanced document to its original article.

        Raises:
            StorageNotFoundError: If the original article does not exist
            StorageConflictError: If an enhanced record already exists for it
        """
        logger.info(
            "storing_enhanced_article",
            original_id=original_id,
            reference_count=len(document.reference_urls),
        )
        payload = await self._request(
            "POST",
            "/enhanced-articles",
            json={
                "original_article_id": original_id,
                "enhanced_content": document.enhanced_body,
                "reference_urls": document.reference_urls,
            },
        )
        record = EnhancedRecord.from_api(payload)
        logger.info("enhanced_article_stored", id=record.id, original_id=record.original_id)
        return record

    async def get_enhanced(self, original_id: int) -> EnhancedDocument | None:
        """Return the enhanced document for an original, or None if there is none."""
        try:
            payload = await self._request("GET", f"/articles/{original_id}/enhanced")
        except StorageNotFoundError:
            return None
        return EnhancedRecord.from_api(payload).to_document()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)
