"""Configuration management for Refinery using Pydantic Settings."""

from typing import Annotated

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

GROQ_BASE_URL = "https://api.groq.com/openai/v1"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Source site settings
    source_listing_url: str = Field(
        default="https://beyondchats.com/blogs/",
        description="Listing root of the canonical blog to scrape",
    )
    articles_to_scrape: int = Field(
        default=5,
        description="Number of oldest articles to scrape from the listing",
    )
    backfill_from_previous_page: bool = Field(
        default=True,
        description="Reach into the previous listing page when the last page has too few articles",
    )

    # Browser settings
    browser_headless: bool = Field(
        default=True,
        description="Run Chromium in headless mode",
    )
    navigation_timeout_ms: int = Field(
        default=30000,
        description="Navigation and settle timeout per page in milliseconds",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent by every page",
    )
    viewport_width: int = Field(default=1920, description="Browser viewport width")
    viewport_height: int = Field(default=1080, description="Browser viewport height")

    # Search settings
    search_url_template: str = Field(
        default="https://www.google.com/search?q={query}",
        description="Search results URL; {query} is replaced by the URL-encoded title",
    )
    search_max_results: int = Field(
        default=2,
        description="Maximum number of reference candidates kept after filtering",
    )
    search_excluded_domains: Annotated[list[str], NoDecode] = Field(
        default=["beyondchats.com"],
        description="Domains never used as references (comma-separated in env)",
    )

    # Reference settings
    reference_max_chars: int = Field(
        default=10000,
        description="Reference body cap before truncation with an ellipsis",
    )
    prompt_reference_excerpt_chars: int = Field(
        default=2000,
        description="Reference excerpt length embedded in the enhancement prompt",
    )

    # LLM settings
    llm_provider: str = Field(
        default="openai",
        description="Generative-text provider (openai or groq)",
    )
    llm_api_key: SecretStr | None = Field(
        default=None,
        description="API key for the generative-text provider",
    )
    llm_base_url: str | None = Field(
        default=None,
        description="Override for the OpenAI-compatible API base URL",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model identifier used for enhancement",
    )
    llm_max_retries: int = Field(
        default=3,
        description="Total generation attempts before giving up",
    )
    llm_temperature: float = Field(default=0.7, description="Sampling temperature")
    llm_max_tokens: int = Field(default=4000, description="Completion token cap")

    # Storage API settings
    api_base_url: str = Field(
        default="http://localhost:3001/api",
        description="Base URL of the article storage API",
    )
    api_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for storage API calls",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    environment: str = Field(
        default="development",
        description="Environment (development or production)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("search_excluded_domains", mode="before")
    @classmethod
    def parse_excluded_domains(cls, v: str | list[str]) -> list[str]:
        """Parse excluded domains from comma-separated string or list."""
        if isinstance(v, str):
            return [domain.strip() for domain in v.split(",") if domain.strip()]
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Validate LLM provider is in allowed list."""
        allowed_providers = {"openai", "groq"}
        v = v.lower()
        if v not in allowed_providers:
            raise ValueError(
                f"Invalid llm_provider: {v}. Allowed values: {', '.join(sorted(allowed_providers))}"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"Invalid log_level: {v}")
        return v.upper()

    @field_validator(
        "articles_to_scrape",
        "navigation_timeout_ms",
        "search_max_results",
        "reference_max_chars",
        "prompt_reference_excerpt_chars",
        "llm_max_retries",
        "llm_max_tokens",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Counts, caps and timeouts must be positive."""
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @model_validator(mode="after")
    def default_groq_base_url(self) -> "Settings":
        """Point Groq at its OpenAI-compatible endpoint unless overridden."""
        if self.llm_provider == "groq" and not self.llm_base_url:
            self.llm_base_url = GROQ_BASE_URL
        return self


# Global settings instance
settings = Settings()
