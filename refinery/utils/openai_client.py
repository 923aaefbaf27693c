"""Chat-completion client factory for OpenAI and OpenAI-compatible providers."""

import structlog
from openai import AsyncOpenAI

from refinery.config import settings
from refinery.utils.exceptions import RefineryError

logger = structlog.get_logger(__name__)


def get_openai_client(api_key: str | None = None, base_url: str | None = None) -> AsyncOpenAI:
    """
    Build the async client used for enhancement.

    Groq speaks the OpenAI wire protocol, so the provider only changes the
    base URL (settings fill it in for ``LLM_PROVIDER=groq``). SDK-level
    retries are disabled because the enhancer counts its own attempts.

    Args:
        api_key: Overrides settings.llm_api_key
        base_url: Overrides settings.llm_base_url

    Raises:
        RefineryError: If no API key is configured
    """
    if api_key is None and settings.llm_api_key is not None:
        api_key = settings.llm_api_key.get_secret_value()
    if not api_key:
        raise RefineryError("LLM_API_KEY is required for enhancement")

    base_url = base_url or settings.llm_base_url
    logger.debug("llm_client_created", provider=settings.llm_provider, base_url=base_url)
    return AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
