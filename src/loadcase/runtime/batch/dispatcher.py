"""Dispatcher: decides when the pending batch is handed to the executor.

With batching enabled the first entry admitted to an empty batch submits a
flush job to the loop's FlushScheduler; later entries just join the batch.
The flush swaps in a fresh batch, splits the old one by max_batch_size and
starts one executor task per part. With batching disabled every entry is
dispatched on its own as soon as it is admitted.
"""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

from loadcase.runtime.concurrency import get_scheduler
from loadcase.runtime.observability import BoundLogger, get_logger

from .executor import BatchExecutor
from .queue import BatchEntry, BatchState, PendingBatch

K = TypeVar("K")
V = TypeVar("V")


class Dispatcher(Generic[K, V]):
    """Owns the pending batch until flush, then hands it to the executor.

    Args:
        executor: Executor that runs dispatched batches
        batch: Accumulate entries until flush (False dispatches each alone)
        max_batch_size: Max entries per executor call, None for unbounded
        log: Logger for dispatch events
    """

    __slots__ = ("_executor", "_batch", "_max_batch_size", "_pending", "_inflight", "_log")

    def __init__(
        self,
        executor: BatchExecutor[K, V],
        *,
        batch: bool = True,
        max_batch_size: int | None = None,
        log: BoundLogger | None = None,
    ) -> None:
        self._executor = executor
        self._batch = batch
        self._max_batch_size = max_batch_size
        self._pending: PendingBatch[K, V] = PendingBatch()
        self._inflight: set[asyncio.Task[None]] = set()
        self._log = log or get_logger("loadcase.dispatcher")

    @property
    def pending(self) -> PendingBatch[K, V]:
        """The batch currently accumulating."""
        return self._pending

    @property
    def inflight(self) -> int:
        """Number of dispatched batches not yet reconciled."""
        return len(self._inflight)

    def enqueue(self, entry: BatchEntry[K, V]) -> None:
        if not self._batch:
            self._dispatch(PendingBatch([entry]))
            return
        if self._pending.admit(entry):
            get_scheduler(entry.future.get_loop()).submit(self.flush)

    def flush(self) -> None:
        """Dispatch whatever has accumulated. A no-op on an empty batch."""
        batch, self._pending = self._pending, PendingBatch()
        if not batch:
            return
        parts = batch.split(self._max_batch_size)
        batch.state = BatchState.DISPATCHED
        for part in parts:
            self._dispatch(part)

    def _dispatch(self, batch: PendingBatch[K, V]) -> None:
        batch.state = BatchState.DISPATCHED
        self._log.debug("batch dispatched", batch_size=len(batch))
        task = batch.loop.create_task(self._executor.execute(batch), name=f"loadcase:{self._executor.name}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
