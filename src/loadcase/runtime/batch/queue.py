"""Pending batch: keys requested but not yet handed to the batch function.

Entries keep request order. Duplicates are kept as separate entries; with
caching enabled they only occur after a clear or a caller cancellation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

from loadcase.foundation.errors import Err, Ok, Result

K = TypeVar("K")
V = TypeVar("V")


class BatchState(StrEnum):
    """Lifecycle of a batch. RECONCILED and FAULTED are terminal."""
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    DISPATCHED = "dispatched"
    RECONCILED = "reconciled"
    FAULTED = "faulted"


@dataclass(frozen=True, slots=True)
class BatchEntry(Generic[K, V]):
    """One admitted request: normalized key, original key and the caller's future."""
    cache_key: Hashable
    key: K
    future: asyncio.Future[V]

    def settle(self, outcome: Result[V, BaseException]) -> None:
        """Fulfil or reject the future. Futures the caller already cancelled are left alone."""
        if self.future.done():
            return
        if outcome.is_ok():
            self.future.set_result(outcome.unwrap())
        else:
            self.future.set_exception(outcome.unwrap_err())

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


class PendingBatch(Generic[K, V]):
    """Ordered entries of one batch plus its state."""

    __slots__ = ("entries", "state")

    def __init__(self, entries: list[BatchEntry[K, V]] | None = None) -> None:
        self.entries: list[BatchEntry[K, V]] = entries or []
        self.state = BatchState.ACCUMULATING if self.entries else BatchState.EMPTY

    def admit(self, entry: BatchEntry[K, V]) -> bool:
        """Append entry. Returns True if it is the first one (a flush must be scheduled)."""
        if self.state not in (BatchState.EMPTY, BatchState.ACCUMULATING):
            raise RuntimeError(f"Cannot admit to a {self.state} batch")
        first = not self.entries
        self.entries.append(entry)
        self.state = BatchState.ACCUMULATING
        return first

    def keys(self) -> list[K]:
        return [e.key for e in self.entries]

    def split(self, max_size: int | None) -> list[PendingBatch[K, V]]:
        """Consecutive sub-batches of at most max_size entries, order preserved."""
        if max_size is None or len(self.entries) <= max_size:
            return [self]
        return [PendingBatch(self.entries[i:i + max_size]) for i in range(0, len(self.entries), max_size)]

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self.entries[0].future.get_loop()

    @property
    def done(self) -> bool:
        return self.state in (BatchState.RECONCILED, BatchState.FAULTED)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[BatchEntry[K, V]]:
        return iter(self.entries)

    def __repr__(self) -> str:
        return f"PendingBatch(size={len(self.entries)}, state={self.state!s})"


def outcome_of(future: asyncio.Future[Any]) -> Result[Any, BaseException]:
    """Tagged outcome of a finished future."""
    if future.cancelled():
        return Err(asyncio.CancelledError())
    exc = future.exception()
    return Err(exc) if exc is not None else Ok(future.result())
