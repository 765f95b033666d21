"""Batch queue, dispatch and reconciliation.

Usage:
    from loadcase.runtime.batch import BatchExecutor, Dispatcher

    executor = BatchExecutor(fetch_users, name="users")
    dispatcher = Dispatcher(executor, max_batch_size=100)
    dispatcher.enqueue(BatchEntry(cache_key, key, future))
"""

from .dispatcher import Dispatcher
from .executor import BatchExecutor, BatchFn
from .queue import BatchEntry, BatchState, PendingBatch, outcome_of

__all__ = [
    "BatchEntry",
    "BatchExecutor",
    "BatchFn",
    "BatchState",
    "Dispatcher",
    "PendingBatch",
    "outcome_of",
]
