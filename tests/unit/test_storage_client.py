"""Unit tests for the storage API client."""

import json

import httpx
import pytest

from refinery.core.models import EnhancedDocument, ExtractedArticle
from refinery.storage.api_client import StorageClient
from refinery.utils.exceptions import (
    StorageConflictError,
    StorageError,
    StorageNotFoundError,
)

BASE_URL = "http://storage.test/api"


def article_payload(article_id: int, url: str = "https://blog.test/blogs/a/") -> dict:
    return {
        "id": article_id,
        "title": f"Article {article_id}",
        "content": "Body",
        "author": None,
        "publication_date": None,
        "source_url": url,
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:00:00Z",
    }


def client_for(handler) -> StorageClient:
    return StorageClient(base_url=BASE_URL, timeout=5.0, transport=httpx.MockTransport(handler))


@pytest.fixture
def article():
    return ExtractedArticle(
        title="Article 1",
        body="Body",
        source_url="https://blog.test/blogs/a/",
        author="Ann",
        published_at="2022-02-02",
    )


class TestArticles:
    """Tests for original article endpoints."""

    @pytest.mark.asyncio
    async def test_create_article_sends_api_shape(self, article):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=article_payload(1))

        async with client_for(handler) as client:
            record = await client.create_article(article)

        assert seen["method"] == "POST"
        assert seen["path"] == "/api/articles"
        assert seen["body"] == {
            "title": "Article 1",
            "content": "Body",
            "author": "Ann",
            "publication_date": "2022-02-02",
            "source_url": "https://blog.test/blogs/a/",
        }
        assert record.id == 1
        assert record.body == "Body"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "body"),
        [
            (409, {"message": "Duplicate source_url"}),
            (400, {"error": "Article with this source URL already exists"}),
        ],
    )
    async def test_duplicate_maps_to_conflict(self, article, status, body):
        async with client_for(lambda request: httpx.Response(status, json=body)) as client:
            with pytest.raises(StorageConflictError) as exc_info:
                await client.create_article(article)

        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_other_errors_map_to_storage_error(self, article):
        async with client_for(lambda request: httpx.Response(500, text="boom")) as client:
            with pytest.raises(StorageError) as exc_info:
                await client.create_article(article)

        assert not isinstance(exc_info.value, StorageConflictError)
        assert "500" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_maps_to_storage_error(self, article):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as client:
            with pytest.raises(StorageError, match="connection refused"):
                await client.create_article(article)

    @pytest.mark.asyncio
    async def test_create_articles_isolates_conflicts(self, article):
        second = ExtractedArticle(
            title="Article 2", body="Body", source_url="https://blog.test/blogs/b/"
        )

        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            if payload["source_url"] == article.source_url:
                return httpx.Response(409, json={"message": "exists"})
            return httpx.Response(201, json=article_payload(2, payload["source_url"]))

        async with client_for(handler) as client:
            outcome = await client.create_articles([article, second])

        assert [record.id for record in outcome.succeeded] == [2]
        assert outcome.failed_identifiers == [article.source_url]

    @pytest.mark.asyncio
    async def test_get_article_not_found(self):
        async with client_for(lambda request: httpx.Response(404, json={"message": "nope"})) as client:
            assert await client.get_article(99) is None

    @pytest.mark.asyncio
    async def test_iter_all_articles_walks_pages(self):
        pages = {
            "1": [article_payload(1), article_payload(2)],
            "2": [article_payload(3)],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            page = request.url.params["page"]
            return httpx.Response(
                200, json={"data": pages[page], "pagination": {"totalPages": 2}}
            )

        async with client_for(handler) as client:
            ids = [record.id async for record in client.iter_all_articles(limit=2)]

        assert ids == [1, 2, 3]


class TestEnhancedArticles:
    """Tests for enhanced article endpoints."""

    @pytest.mark.asyncio
    async def test_create_enhanced(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                201,
                json={
                    "id": 7,
                    "original_article_id": 1,
                    "enhanced_content": seen["body"]["enhanced_content"],
                    "reference_urls": seen["body"]["reference_urls"],
                },
            )

        document = EnhancedDocument(
            enhanced_body="Body\n\n---\n\n## References\n\n1. [A](https://a.test)\n",
            reference_urls=["https://a.test"],
        )
        async with client_for(handler) as client:
            record = await client.create_enhanced(1, document)

        assert seen["path"] == "/api/enhanced-articles"
        assert seen["body"]["original_article_id"] == 1
        assert record.original_id == 1
        assert record.to_document() == document

    @pytest.mark.asyncio
    async def test_create_enhanced_for_missing_original(self):
        async with client_for(lambda request: httpx.Response(404, json={"message": "missing"})) as client:
            with pytest.raises(StorageNotFoundError):
                await client.create_enhanced(42, EnhancedDocument(enhanced_body="x"))

    @pytest.mark.asyncio
    async def test_get_enhanced(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/articles/1/enhanced":
                return httpx.Response(
                    200,
                    json={
                        "id": 3,
                        "original_article_id": 1,
                        "enhanced_content": "Enhanced",
                        "reference_urls": [],
                    },
                )
            return httpx.Response(404, json={"message": "No enhanced version"})

        async with client_for(handler) as client:
            found = await client.get_enhanced(1)
            missing = await client.get_enhanced(2)

        assert found == EnhancedDocument(enhanced_body="Enhanced", reference_urls=[])
        assert missing is None
