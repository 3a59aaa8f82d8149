"""Configuration models."""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    github_token: Optional[str] = Field(
        None, validation_alias=AliasChoices("github_token", "gh_token")
    )
    openai_api_key: Optional[str] = None

    # Logging
    log_level: str = "INFO"


class SyncConfig(BaseSettings):
    """Tunables for the sync controller.

    All settings are prefixed with SYNC_ (e.g., SYNC_PAGE_SIZE).
    """

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    freshness_threshold_seconds: int = Field(
        default=300,
        gt=0,
        description="A watermark younger than this is fresh and the sync is skipped",
    )
    page_size: int = Field(
        default=100,
        gt=0,
        le=100,
        description="Commit summaries requested per listing page (GitHub caps at 100)",
    )
    detail_batch_size: int = Field(
        default=10,
        gt=0,
        description="Commit detail fetches dispatched concurrently",
    )
    request_timeout_seconds: int = Field(
        default=30,
        gt=0,
        description="Per-request timeout for remote calls",
    )
    max_full_sync_pages: int = Field(
        default=50,
        gt=0,
        description="Upper bound on listing pages walked by an incremental or full pass",
    )


class AttributionConfig(BaseSettings):
    """Tunables for the time attribution engine.

    All settings are prefixed with ATTRIBUTION_.
    """

    model_config = SettingsConfigDict(
        env_prefix="ATTRIBUTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    session_gap_seconds: float = Field(
        default=3 * 3600,
        gt=0,
        description="Gaps at or above this are breaks between work sessions",
    )
    wrap_up_seconds: float = Field(
        default=30 * 60,
        ge=0,
        description="Allowance added after a session break and after the final commit",
    )
    max_commits_per_analysis: int = Field(
        default=200,
        gt=0,
        description="Oldest commits considered per analysis request",
    )


class LLMConfig(BaseSettings):
    """Configuration for the LLM used to group and predict."""

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    model: str = Field("gpt-4o-mini", description="Model name")
    max_tokens: int = Field(4000, gt=0, description="Maximum tokens for completion")
    grouping_temperature: float = Field(0.3, description="Temperature for feature grouping")
    prediction_temperature: float = Field(0.2, description="Temperature for effort prediction")
