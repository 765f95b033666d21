"""Foundation - Core building blocks for loadcase.

Contains: error handling, tagged results, config.
"""

from __future__ import annotations

__all__ = [
    # Errors
    "ErrorCode", "DispatchError", "LoaderException",
    "BatchContractError", "BatchShapeError", "KeyLoadError",
    "Result", "Ok", "Err", "as_result", "sequence", "collect_results",
    # Config
    "LoadcaseSettings", "get_settings", "clear_settings_cache",
    "LoaderSettings", "SchedulerSettings", "LoggingSettings",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("ErrorCode", "DispatchError", "LoaderException",
                "BatchContractError", "BatchShapeError", "KeyLoadError",
                "Result", "Ok", "Err", "as_result", "sequence", "collect_results"):
        from . import errors
        return getattr(errors, name)

    if name in ("LoadcaseSettings", "get_settings", "clear_settings_cache",
                "LoaderSettings", "SchedulerSettings", "LoggingSettings"):
        from . import config
        return getattr(config, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
