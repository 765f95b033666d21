"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated defaults for loaders, the flush scheduler and
logging. Supports .env files and nested configuration.

Example:
    >>> from loadcase.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.loader.batch
    True
    >>> settings.scheduler.max_passes
    64

    # Or with environment variables:
    # LOADCASE_LOADER_MAX_BATCH_SIZE=100
    # LOADCASE_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, PositiveInt, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoaderSettings(BaseSettings):
    """Default loader options."""

    model_config = SettingsConfigDict(
        env_prefix="LOADCASE_LOADER_",
        extra="ignore",
    )

    batch: bool = True
    cache: bool = True
    max_batch_size: PositiveInt | None = Field(default=None, description="Max keys per batch call (None = unbounded)")


class SchedulerSettings(BaseSettings):
    """Flush scheduler tuning."""

    model_config = SettingsConfigDict(
        env_prefix="LOADCASE_SCHEDULER_",
        extra="ignore",
    )

    max_passes: Annotated[int, Field(ge=1, le=10_000)] = Field(
        default=64,
        description="Max loop passes a flush waits for the ready queue to drain",
    )
    fallback_passes: Annotated[int, Field(ge=1, le=1000)] = Field(
        default=3,
        description="Loop passes to wait on loops without an inspectable ready queue",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOADCASE_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class LoadcaseSettings(BaseSettings):
    """Root settings for loadcase.

    Loads configuration from environment variables with LOADCASE_ prefix.

    Example environment variables:
        LOADCASE_LOADER_BATCH=false
        LOADCASE_LOADER_MAX_BATCH_SIZE=50
        LOADCASE_SCHEDULER_MAX_PASSES=128
        LOADCASE_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="LOADCASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Enable debug mode")

    # Nested settings (loaded with LOADCASE_LOADER_, LOADCASE_SCHEDULER_, LOADCASE_LOG_)
    loader: LoaderSettings = Field(default_factory=LoaderSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @computed_field
    @property
    def log_level(self) -> str:
        """Effective log level (debug mode forces DEBUG)."""
        return "DEBUG" if self.debug else self.logging.level


@lru_cache(maxsize=1)
def get_settings() -> LoadcaseSettings:
    """Get the global settings instance (cached)."""
    return LoadcaseSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
