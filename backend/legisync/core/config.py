"""
Application configuration using Pydantic Settings.
Loads environment variables from .env file.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from legisync.core.exceptions import ConfigurationMissing

# Bill subtypes published by Congress.gov, in sweep order
BILL_TYPES = ["hr", "s", "hjres", "sjres", "hconres", "sconres", "hres", "sres"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_env: str = Field(default="development", alias="APP_ENV")
    app_debug: bool = Field(default=False, alias="APP_DEBUG")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # -------------------------------------------------------------------------
    # CORS
    # -------------------------------------------------------------------------
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        alias="CORS_ORIGINS",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # -------------------------------------------------------------------------
    # PostgreSQL (synchronized bill store + lease table)
    # -------------------------------------------------------------------------
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str = Field(default="legisync", alias="POSTGRES_DB")
    postgres_user: str = Field(default="postgres", alias="POSTGRES_USER")
    postgres_password: str = Field(default="postgres", alias="POSTGRES_PASSWORD")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    @property
    def async_database_url(self) -> str:
        """Build async database URL for SQLAlchemy."""
        if self.database_url:
            # Ensure we use the async driver
            url = self.database_url
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+psycopg://", 1)
            return url
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # -------------------------------------------------------------------------
    # Congress.gov API (upstream)
    # -------------------------------------------------------------------------
    congress_api_key: str = Field(
        ...,  # Required - no default
        alias="CONGRESS_API_KEY",
    )
    congress_api_url: str = Field(
        default="https://api.congress.gov/v3",
        alias="CONGRESS_API_URL",
    )
    congress_probe_path: str = Field(
        default="/bill/119/hr/1",
        alias="CONGRESS_PROBE_PATH",
        description="Known-good path used as liveness probe before fetches",
    )
    http_timeout: float = Field(default=30.0, alias="HTTP_TIMEOUT")
    probe_timeout: float = Field(default=10.0, alias="PROBE_TIMEOUT")
    fetch_max_attempts: int = Field(default=3, alias="FETCH_MAX_ATTEMPTS")
    fetch_base_delay: float = Field(default=1.0, alias="FETCH_BASE_DELAY")

    # -------------------------------------------------------------------------
    # Lease-based locking
    # -------------------------------------------------------------------------
    lock_stale_minutes: float = Field(default=5.0, alias="LOCK_STALE_MINUTES")
    lock_timeout_seconds: float = Field(default=5.0, alias="LOCK_TIMEOUT_SECONDS")
    lock_poll_seconds: float = Field(default=1.0, alias="LOCK_POLL_SECONDS")

    # -------------------------------------------------------------------------
    # Import sweep
    # -------------------------------------------------------------------------
    import_batch_size: int = Field(default=2, alias="IMPORT_BATCH_SIZE")
    import_batch_delay: float = Field(default=0.5, alias="IMPORT_BATCH_DELAY")
    import_page_limit: int = Field(default=250, alias="IMPORT_PAGE_LIMIT")
    default_start_congress: int = Field(default=119, alias="DEFAULT_START_CONGRESS")
    default_end_congress: int = Field(default=119, alias="DEFAULT_END_CONGRESS")

    # -------------------------------------------------------------------------
    # LLM (OpenAI-compatible endpoint) for bill analysis
    # -------------------------------------------------------------------------
    llm_api_url: str = Field(
        ...,  # Required - no default
        alias="LLM_API_URL",
    )
    llm_api_key: str = Field(
        ...,  # Required - no default
        alias="LLM_API_KEY",
    )
    llm_model_name: str = Field(default="gpt-4o-mini", alias="LLM_MODEL_NAME")
    llm_temperature: float = Field(default=0.3, alias="LLM_TEMPERATURE")
    analysis_max_chars: int = Field(
        default=200_000,
        alias="ANALYSIS_MAX_CHARS",
        description="Bill text beyond this length is truncated before analysis",
    )
    enrichment_concurrency: int = Field(
        default=4,
        alias="ENRICHMENT_CONCURRENCY",
        description="Maximum background analyses running at once",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Note: Settings are cached! If you change .env, restart the process.

    Raises:
        ConfigurationMissing: If a required variable is absent or invalid
    """
    try:
        return Settings()
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationMissing(
            f"Invalid or missing configuration: {', '.join(missing)}"
        ) from e


def clear_settings_cache() -> None:
    """Clear the settings cache. Call this if you need to reload settings."""
    get_settings.cache_clear()
