"""Application settings using Pydantic BaseSettings for environment variable management."""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
        data_dir: Directory for JSON persistence of stores (memory-only if unset)
        context_timeout_seconds: Bound on every context source call
        vision_api_url: Base URL of the optional photo analysis provider
        vision_api_key: API key for the photo analysis provider
        vision_timeout_seconds: Bound on a single photo analysis call
        vision_max_concurrency: Parallel photo analysis calls per verification
        vision_max_retries: Retries after the first photo analysis call on transport errors
        identity_tokens_path: JSON file mapping bearer tokens to callers
    """

    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )
    data_dir: str | None = Field(
        default=None,
        description="Directory for verification/queue JSON persistence"
    )
    context_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for each context source call"
    )
    vision_api_url: str | None = Field(
        default=None,
        description="Photo analysis provider base URL (disabled if unset)"
    )
    vision_api_key: str | None = Field(
        default=None,
        description="Photo analysis provider API key"
    )
    vision_timeout_seconds: float = Field(
        default=8.0,
        gt=0,
        description="Timeout for a single photo analysis call"
    )
    vision_max_concurrency: int = Field(
        default=3,
        ge=1,
        description="Maximum concurrent photo analysis calls per tip"
    )
    vision_max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries after the first photo analysis call on transport errors"
    )
    identity_tokens_path: str | None = Field(
        default=None,
        description="JSON file mapping bearer tokens to caller identities"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton instance - import this throughout the application
settings = Settings()
