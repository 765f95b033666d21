"""Batch executor: calls the batch function and reconciles its result.

Outcomes per dispatched batch:
- The call fails as a whole: every future is rejected with that same
  exception object.
- The call returns something that is not an awaitable sequence, or a
  sequence of the wrong length: every future is rejected with a
  BatchContractError / BatchShapeError. Nothing is partially reconciled.
- Otherwise each entry is settled from its own tagged outcome, so one key's
  failure never touches its siblings.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Sequence
from typing import Any, Callable, Generic, TypeVar

from loadcase.foundation.errors import (
    BatchContractError,
    BatchShapeError,
    ErrorCode,
    KeyLoadError,
    LoaderException,
    as_result,
)
from loadcase.runtime.observability import BoundLogger, get_logger

from .queue import BatchState, PendingBatch

K = TypeVar("K")
V = TypeVar("V")

BatchFn = Callable[[list[K]], Awaitable[Sequence[Any]]]


class BatchExecutor(Generic[K, V]):
    """Invokes the batch function for one dispatched batch at a time.

    Args:
        batch_fn: Async callable mapping a list of keys to one result per key
        name: Loader name, used in errors and logs
        log: Logger to report dispatches and faults on
    """

    __slots__ = ("_batch_fn", "_name", "_log")

    def __init__(self, batch_fn: BatchFn[K], *, name: str, log: BoundLogger | None = None) -> None:
        self._batch_fn = batch_fn
        self._name = name
        self._log = log or get_logger("loadcase.executor", loader=name)

    @property
    def name(self) -> str:
        return self._name

    async def execute(self, batch: PendingBatch[K, V]) -> None:
        """Run batch to a terminal state. Never raises except on cancellation."""
        keys = batch.keys()
        start = time.perf_counter()
        try:
            values = await self._call(keys)
        except asyncio.CancelledError:
            for entry in batch:
                entry.future.cancel()
            batch.state = BatchState.FAULTED
            self._log.warning("batch cancelled", batch_size=len(keys), code=ErrorCode.CANCELLED)
            raise
        except Exception as e:
            self._fault(batch, e)
            return

        if len(values) != len(keys):
            self._fault(batch, BatchShapeError.mismatch(self._name, len(keys), len(values)))
            return

        failed = 0
        for entry, value in zip(batch, values):
            outcome = as_result(value).map_err(self._as_exception)
            failed += outcome.is_err()
            entry.settle(outcome)
        batch.state = BatchState.RECONCILED
        self._log.debug(
            "batch reconciled",
            batch_size=len(keys),
            failed=failed,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )

    async def _call(self, keys: list[K]) -> Sequence[Any]:
        pending = self._batch_fn(keys)
        if not inspect.isawaitable(pending):
            raise BatchContractError.create(
                self._name, f"Batch function must return an awaitable, got {type(pending).__name__}",
            )
        values = await pending
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            raise BatchContractError.create(
                self._name, f"Batch function must resolve to a sequence, got {type(values).__name__}",
            )
        return values

    def _fault(self, batch: PendingBatch[K, V], error: BaseException) -> None:
        """Reject every future in batch with the identical error object."""
        for entry in batch:
            entry.reject(error)
        batch.state = BatchState.FAULTED
        self._log.warning(
            "batch faulted",
            batch_size=len(batch),
            code=error.error.code if isinstance(error, LoaderException) else ErrorCode.BATCH_FAILED,
            error=str(error),
            error_type=type(error).__name__,
        )

    def _as_exception(self, error: object) -> BaseException:
        return error if isinstance(error, BaseException) else KeyLoadError.wrap(self._name, error)
