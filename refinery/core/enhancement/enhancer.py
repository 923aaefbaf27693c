"""Article enhancement through a retrying generative-text call."""

import re
from typing import Protocol

import structlog
from openai import AsyncOpenAI, OpenAIError

from refinery.config import settings
from refinery.core.enhancement.prompts import (
    CITATION_ENTRY,
    CITATION_HEADER,
    CITATION_SEPARATOR,
    INSTRUCTIONS,
    ORIGINAL_SECTION,
    REFERENCE_ENTRY,
    REFERENCES_HEADER,
    SYSTEM_PROMPT,
)
from refinery.core.models import EnhancedDocument, ReferenceDocument
from refinery.utils.exceptions import GenerationFailure
from refinery.utils.openai_client import get_openai_client
from refinery.utils.retry import retry_with_exponential_backoff

logger = structlog.get_logger(__name__)

_REFERENCES_HEADING = r"[ \t]*#{1,6}[ \t]*(?:\*\*)?references(?:\*\*)?[ \t]*:?[ \t]*"

# A references section the model wrote at the very end: optional rule, the
# heading, then only blank, list, link or bare-URL lines
_TRAILING_REFERENCES = re.compile(
    r"(?:^|\n)(?:[ \t]*-{3,}[ \t]*\n\s*)?"
    + _REFERENCES_HEADING
    + r"(?:\n[ \t]*(?:(?:[-*+]|\d+[.)])[ \t][^\n]*|\[[^\n]*|<?https?://[^\n]*)?)*\Z",
    re.IGNORECASE,
)

# Any other references heading line; the text around it is kept
_STRAY_REFERENCES_HEADING = re.compile(
    r"^" + _REFERENCES_HEADING + r"$\n?(?:[ \t]*\n)*",
    re.IGNORECASE | re.MULTILINE,
)


class Article(Protocol):
    """Anything with a title and a body."""

    title: str
    body: str


def excerpt(text: str, max_chars: int) -> str:
    """First ``max_chars`` characters, with an ellipsis when cut."""
    return text[:max_chars] + ("..." if len(text) > max_chars else "")


class Enhancer:
    """
    Produce an enhanced article from an original and its references.

    This class handles:
    - Deterministic prompt construction
    - Chat completion calls with bounded exponential-backoff retry
    - Appending a numbered citation block in reference order
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        max_attempts: int | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        excerpt_chars: int | None = None,
    ) -> None:
        """
        Initialize Enhancer.

        Args:
            client: Optional AsyncOpenAI client (defaults to new client from settings)
            model: Model identifier (defaults to settings.llm_model)
            max_attempts: Total generation attempts (defaults to settings.llm_max_retries)
            temperature: Sampling temperature (defaults to settings.llm_temperature)
            max_tokens: Completion token cap (defaults to settings.llm_max_tokens)
            excerpt_chars: Reference excerpt length in the prompt
        """
        self.client = client or get_openai_client()
        self.model = model or settings.llm_model
        self.max_attempts = max_attempts or settings.llm_max_retries
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.excerpt_chars = excerpt_chars or settings.prompt_reference_excerpt_chars

    def build_prompt(self, original: Article, references: list[ReferenceDocument]) -> str:
        """Embed the original verbatim and an excerpt of each reference."""
        prompt = ORIGINAL_SECTION.format(title=original.title, body=original.body)

        if references:
            prompt += REFERENCES_HEADER
            for number, reference in enumerate(references, start=1):
                prompt += REFERENCE_ENTRY.format(
                    number=number,
                    title=reference.title,
                    excerpt=excerpt(reference.body, self.excerpt_chars),
                )

        return prompt + INSTRUCTIONS

    async def _generate(self, prompt: str) -> str:
        """Single generation attempt; an empty completion counts as a failure."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            raise GenerationFailure(f"Generation request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise GenerationFailure("Empty response from generation API")

        if response.usage:
            logger.debug(
                "generation_usage",
                model=self.model,
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )
        return content

    async def call_with_retry(self, prompt: str) -> str:
        """
        Call the model, retrying with 1s, 2s, ... delays up to ``max_attempts``.

        Raises:
            GenerationFailure: The last failure once all attempts are used
        """
        return await retry_with_exponential_backoff(
            self._generate,
            prompt,
            max_attempts=self.max_attempts,
            initial_delay=1.0,
            backoff_factor=2.0,
            retry_on_exceptions=(GenerationFailure,),
        )

    @staticmethod
    def attach_citations(body: str, references: list[ReferenceDocument]) -> str:
        """
        Append a numbered references section after a separator.

        With no references the trimmed body is returned as is. So that the
        section appears once, a references list the model appended at the end
        is replaced, and any other references heading it wrote loses only the
        heading line.
        """
        content = body.strip()
        if not references:
            return content

        content = _TRAILING_REFERENCES.sub("", content)
        content = _STRAY_REFERENCES_HEADING.sub("", content).strip()
        lines = [
            CITATION_ENTRY.format(number=number, title=reference.title, url=reference.source_url)
            for number, reference in enumerate(references, start=1)
        ]
        return content + CITATION_SEPARATOR + CITATION_HEADER + "\n\n" + "".join(lines)

    async def enhance(
        self, original: Article, references: list[ReferenceDocument]
    ) -> EnhancedDocument:
        """
        Enhance one article.

        Raises:
            GenerationFailure: When every generation attempt fails
        """
        logger.info(
            "enhancing_article",
            title=original.title,
            reference_count=len(references),
        )
        prompt = self.build_prompt(original, references)
        generated = await self.call_with_retry(prompt)

        document = EnhancedDocument(
            enhanced_body=self.attach_citations(generated, references),
            reference_urls=[reference.source_url for reference in references],
        )
        logger.info(
            "article_enhanced",
            title=original.title,
            body_length=len(document.enhanced_body),
        )
        return document
