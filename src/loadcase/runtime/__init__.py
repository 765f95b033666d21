"""Runtime - Scheduling, dispatch and monitoring.

Contains: batch, concurrency, observability.
"""

from __future__ import annotations

__all__ = [
    # Batch
    "BatchEntry", "BatchExecutor", "BatchState", "Dispatcher", "PendingBatch", "outcome_of",
    # Concurrency
    "FlushScheduler", "get_scheduler",
    # Observability
    "BoundLogger", "configure_logging", "get_logger", "log_context",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("BatchEntry", "BatchExecutor", "BatchState", "Dispatcher", "PendingBatch", "outcome_of"):
        from . import batch
        return getattr(batch, name)

    if name in ("FlushScheduler", "get_scheduler"):
        from . import concurrency
        return getattr(concurrency, name)

    if name in ("BoundLogger", "configure_logging", "get_logger", "log_context"):
        from . import observability
        return getattr(observability, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
