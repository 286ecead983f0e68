"""
Shared configuration management for the Comics Access Service.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="COMICS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8020)


class ComicsConfig(BaseConfig):
    """Comics service configuration."""

    service_name: str = Field(default="comics")
    api_prefix: str = Field(default="/api/comics")

    # Provider
    xkcd_base_url: str = Field(default="https://xkcd.com")
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    upstream_max_attempts: int = Field(default=2, ge=1)
    upstream_retry_base_delay: float = Field(default=0.25, ge=0)
    upstream_retry_max_delay: float = Field(default=2.0, ge=0)

    # Cache
    latest_ttl_seconds: float = Field(default=300.0, gt=0)

    # Search
    search_pool_size: int = Field(default=100, ge=1)
    search_max_query_length: int = Field(default=100, ge=1)
    search_default_limit: int = Field(default=10, ge=1)
    search_max_limit: int = Field(default=50, ge=1)


def get_config(**overrides) -> ComicsConfig:
    """Get configuration for the comics service."""
    return ComicsConfig(**overrides)
