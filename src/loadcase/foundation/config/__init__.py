"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    LoadcaseSettings,
    LoaderSettings,
    LoggingSettings,
    SchedulerSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "LoadcaseSettings",
    "LoaderSettings",
    "LoggingSettings",
    "SchedulerSettings",
    "clear_settings_cache",
    "get_settings",
]
