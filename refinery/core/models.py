"""Data types flowing through the acquisition and enhancement pipeline."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class ExtractedArticle:
    """An article extracted from the canonical source site."""

    title: str
    body: str
    source_url: str
    author: str | None = None
    published_at: str | None = None

    def is_complete(self) -> bool:
        """Title, body and source URL are all non-empty."""
        return _non_empty(self.title, self.body, self.source_url)


@dataclass
class ReferenceDocument:
    """A third-party article used as comparative input to enhancement."""

    title: str
    body: str
    source_url: str

    def is_complete(self) -> bool:
        """Title, body and source URL are all non-empty."""
        return _non_empty(self.title, self.body, self.source_url)


@dataclass
class SearchHit:
    """A single parsed search-engine result."""

    title: str
    url: str
    snippet: str | None = None


@dataclass
class ArticleLink:
    """A link to an article found on a listing page."""

    url: str
    title: str | None = None


@dataclass
class EnhancedDocument:
    """Generated article body with its appended citation block."""

    enhanced_body: str
    reference_urls: list[str] = field(default_factory=list)


@dataclass
class ScrapeResult(Generic[T]):
    """Outcome of scraping a single page."""

    success: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: T) -> "ScrapeResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ScrapeResult[T]":
        return cls(success=False, error=error or "Unknown error")


@dataclass
class ArticleRecord:
    """An article as persisted by the storage API."""

    id: int
    title: str
    body: str
    source_url: str
    author: str | None = None
    published_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "ArticleRecord":
        """Build a record from the storage API's JSON shape."""
        return cls(
            id=int(payload["id"]),
            title=payload["title"],
            body=payload["content"],
            source_url=payload["source_url"],
            author=payload.get("author"),
            published_at=payload.get("publication_date"),
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
        )


@dataclass
class EnhancedRecord:
    """An enhanced article as persisted by the storage API."""

    id: int
    original_id: int
    enhanced_body: str
    reference_urls: list[str] = field(default_factory=list)
    enhancement_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "EnhancedRecord":
        """Build a record from the storage API's JSON shape."""
        return cls(
            id=int(payload["id"]),
            original_id=int(payload["original_article_id"]),
            enhanced_body=payload["enhanced_content"],
            reference_urls=list(payload.get("reference_urls") or []),
            enhancement_date=payload.get("enhancement_date"),
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
        )

    def to_document(self) -> EnhancedDocument:
        return EnhancedDocument(
            enhanced_body=self.enhanced_body,
            reference_urls=list(self.reference_urls),
        )


def _non_empty(*values: str | None) -> bool:
    return all(isinstance(v, str) and v.strip() for v in values)
