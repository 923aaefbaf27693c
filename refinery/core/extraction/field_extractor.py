"""Priority-ordered field extraction from a parsed DOM."""

import copy
import re
from collections.abc import Sequence
from enum import Enum

import structlog
from bs4 import BeautifulSoup, Tag

from refinery.core.extraction.selectors import CHROME_TAGS, FieldSelectors

logger = structlog.get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")
_BLANK_LINES = re.compile(r"\n\s*\n+")


class FieldKind(str, Enum):
    """Logical article fields."""

    TITLE = "title"
    BODY = "body"
    AUTHOR = "author"
    DATE = "date"


class FieldExtractor:
    """
    Apply ordered selector-candidate lists to a loaded page.

    For each candidate selector the first matching node is read; the first
    candidate yielding a non-empty value (long enough, when ``min_length`` is
    given) wins. Priority is decided by the candidate order, never by where
    the nodes sit in the document. ``None`` means no candidate matched, which
    callers treat as a signal rather than an error.
    """

    def extract_field(
        self,
        root: BeautifulSoup | Tag,
        kind: FieldKind,
        candidates: Sequence[str],
        min_length: int | None = None,
    ) -> str | None:
        """
        Return the value of the first usable candidate for ``kind``.

        Args:
            root: Parsed document or subtree to search
            kind: Which logical field is being read
            candidates: CSS selectors in priority order
            min_length: Optional minimum trimmed length

        Returns:
            The trimmed value, or None if no candidate qualifies
        """
        for selector in candidates:
            node = root.select_one(selector)
            if node is None:
                continue

            value = self._read(node, kind)
            if not value:
                continue
            if min_length is not None and len(value) < min_length:
                logger.debug(
                    "candidate_too_short",
                    field=kind.value,
                    selector=selector,
                    length=len(value),
                    min_length=min_length,
                )
                continue

            logger.debug("field_matched", field=kind.value, selector=selector)
            return value

        return None

    def extract_body_fallback(self, root: BeautifulSoup | Tag) -> str | None:
        """Whole-document body text with navigation chrome removed."""
        body = root.find("body") if isinstance(root, BeautifulSoup) else root
        if body is None:
            body = root
        return self._read_body(body) or None

    def extract_article(
        self, root: BeautifulSoup | Tag, selectors: FieldSelectors
    ) -> dict[str, str | None]:
        """
        Extract every field described by a selector table.

        Returns:
            Mapping with ``title``, ``body``, ``author`` and ``published_at``
        """
        body = self.extract_field(
            root, FieldKind.BODY, selectors.body, min_length=selectors.body_min_length
        )
        if body is None and selectors.body_fallback:
            body = self.extract_body_fallback(root)

        return {
            "title": self.extract_field(root, FieldKind.TITLE, selectors.title),
            "body": body,
            "author": self.extract_field(root, FieldKind.AUTHOR, selectors.author),
            "published_at": self.extract_field(root, FieldKind.DATE, selectors.date),
        }

    def _read(self, node: Tag, kind: FieldKind) -> str:
        if kind is FieldKind.BODY:
            return self._read_body(node)

        if kind is FieldKind.DATE:
            # Machine-readable values beat display strings
            for attr in ("datetime", "content"):
                value = node.get(attr)
                if isinstance(value, str) and value.strip():
                    return value.strip()

        if node.name == "meta":
            value = node.get("content")
            return _WHITESPACE.sub(" ", value).strip() if isinstance(value, str) else ""

        return _WHITESPACE.sub(" ", node.get_text(" ", strip=True)).strip()

    def _read_body(self, node: Tag) -> str:
        clone = copy.copy(node)
        for chrome in clone.find_all(list(CHROME_TAGS)):
            chrome.extract()
        text = clone.get_text("\n", strip=True)
        return _BLANK_LINES.sub("\n\n", text).strip()
