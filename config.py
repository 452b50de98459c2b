"""
Configuration management for the TP Supervision Service.

Every setting can be overridden through an environment variable of the same name or a .env file.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Remote TPMA API
    tpma_api_base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the TPMA REST API"
    )
    tpma_request_timeout: float = Field(
        default=60.0,
        description="Timeout for a single TPMA request in seconds"
    )
    tpma_max_read_attempts: int = Field(
        default=3,
        description="Maximum attempts for read requests (writes are never retried)"
    )
    tpma_initial_retry_delay: float = Field(
        default=1.0,
        description="Base delay in seconds; attempt n waits 2^n times this"
    )

    # Mirror / throttling
    mirror_min_refresh_interval: float = Field(
        default=2.0,
        description="Minimum seconds between two non-forced refreshes of a supervisor mirror"
    )

    # Listing
    default_page_size: int = Field(
        default=10,
        description="Page size for lesson plan and schedule listings"
    )
    feedback_page_size: int = Field(
        default=5,
        description="Page size for feedback listings"
    )

    # Observation defaults used when a lesson plan carries no time window
    default_observation_start: str = Field(default="09:00")
    default_observation_end: str = Field(default="10:00")

    # Auth
    verify_cache_ttl_seconds: int = Field(
        default=60,
        description="How long a verified token identity is reused"
    )
    verify_cache_max_entries: int = Field(
        default=1024,
        description="Upper bound on cached token identities"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./tp_supervision.db",
        description="SQLAlchemy database URL for the local mirror and feedback ledger"
    )
    db_pool_size: int = Field(
        default=5,
        description="Database connection pool size"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Maximum overflow connections"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Connection pool timeout in seconds"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    # Application Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    Returns:
        Settings: Application settings
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None


def validate_required_settings():
    """
    Validate that all required settings are present at runtime.

    Should be called after settings are loaded but before application starts.
    Raises ValueError if required settings are missing.
    """
    settings = get_settings()

    if not settings.tpma_api_base_url.startswith(("http://", "https://")):
        raise ValueError(
            "TPMA_API_BASE_URL must be an http(s) URL, "
            f"got '{settings.tpma_api_base_url}'"
        )

    if not settings.database_url:
        raise ValueError("DATABASE_URL is required but not set")

    if settings.tpma_max_read_attempts < 1:
        raise ValueError("TPMA_MAX_READ_ATTEMPTS must be at least 1")

    if settings.default_page_size < 1 or settings.feedback_page_size < 1:
        raise ValueError("Page sizes must be positive")

    return True
