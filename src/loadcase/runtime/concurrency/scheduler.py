"""Two-tier deferred execution for batch flushes.

asyncio runs task steps and future callbacks from a single ready queue; that
queue is the first tier. FlushScheduler adds a second, lower-priority tier
on top of it: flush jobs submitted to it run once every continuation queued
ahead of them has run, including continuations queued transitively while
draining, and before any timer or I/O callback the loop has already made
ready. The drain handle is placed in front of the first such callback, so a
load issued from a timer or I/O callback always starts a new batch.

Every loop gets one scheduler shared by all loaders on it, so a loader whose
batch function calls another loader never holds that loader's flush back.

Example:
    >>> scheduler = get_scheduler(asyncio.get_running_loop())
    >>> scheduler.submit(dispatcher.flush)
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Callable
from weakref import WeakKeyDictionary

from loadcase.foundation.config import get_settings
from loadcase.runtime.observability import get_logger

FlushJob = Callable[[], None]

log = get_logger("loadcase.scheduler")


class FlushScheduler:
    """Runs flush jobs after the loop's ready queue has drained.

    The first submit() arms a drain callback. When the drain runs and
    continuations are still queued ahead of the first ready timer or I/O
    callback, it re-arms right behind them; otherwise it runs every queued
    job in submission order.

    Args:
        loop: Event loop the scheduler belongs to
        max_passes: Upper bound on re-arms, so a loop that is never idle
            still flushes
        fallback_passes: Fixed number of passes used on loops that do not
            expose their ready queue
    """

    __slots__ = ("_loop", "_jobs", "_armed", "_passes", "_max_passes", "_fallback_passes", "__weakref__")

    def __init__(self, loop: asyncio.AbstractEventLoop, *, max_passes: int = 64, fallback_passes: int = 3) -> None:
        self._loop = loop
        self._jobs: deque[FlushJob] = deque()
        self._armed = False
        self._passes = 0
        self._max_passes = max_passes
        self._fallback_passes = fallback_passes

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def pending(self) -> int:
        return len(self._jobs)

    def submit(self, job: FlushJob) -> None:
        """Queue a flush job, arming the drain if it is not already armed."""
        self._jobs.append(job)
        if not self._armed:
            self._armed = True
            self._passes = 0
            self._arm()

    def _arm(self) -> None:
        """Schedule the drain ahead of any timer or I/O callback already ready."""
        ready = getattr(self._loop, "_ready", None)
        boundary = None if ready is None else self._boundary(ready)
        handle = self._loop.call_soon(self._drain)
        if boundary is not None and boundary < len(ready) - 1:
            ready.pop()
            ready.insert(boundary, handle)

    def _drain(self) -> None:
        self._passes += 1
        if self._passes < self._max_passes and self._continuations_pending():
            self._arm()
            return

        # Jobs submitted by the jobs below start a fresh drain.
        self._armed = False
        jobs, self._jobs = self._jobs, deque()
        for job in jobs:
            try:
                job()
            except Exception:
                log.exception("flush job failed", job=getattr(job, "__qualname__", repr(job)))

    def _continuations_pending(self) -> bool:
        # asyncio exposes no public view of its ready queue; loops without
        # one (uvloop) wait a fixed number of passes instead.
        ready = getattr(self._loop, "_ready", None)
        if ready is None:
            return self._passes < self._fallback_passes
        return self._boundary(ready) > 0

    def _boundary(self, ready: deque[asyncio.Handle]) -> int:
        """Index of the first timer or I/O handle in ready, len(ready) if there is none.

        Handles ahead of it are continuations (task steps, future callbacks,
        call_soon work) that belong to the current tick.
        """
        io_handles = self._io_handles()
        for index, handle in enumerate(ready):
            if isinstance(handle, asyncio.TimerHandle) or handle in io_handles:
                return index
        return len(ready)

    def _io_handles(self) -> set[asyncio.Handle]:
        # Selector loops keep (reader, writer) handles as the key data of
        # every registered file object and append those same handles to
        # the ready queue when the descriptor fires.
        selector = getattr(self._loop, "_selector", None)
        if selector is None:
            return set()
        handles: set[asyncio.Handle] = set()
        for key in (selector.get_map() or {}).values():
            if isinstance(key.data, tuple):
                handles.update(h for h in key.data if h is not None)
        return handles


_schedulers: WeakKeyDictionary[asyncio.AbstractEventLoop, FlushScheduler] = WeakKeyDictionary()


def get_scheduler(loop: asyncio.AbstractEventLoop | None = None) -> FlushScheduler:
    """Get the flush scheduler for loop (the running loop by default)."""
    loop = loop or asyncio.get_running_loop()
    scheduler = _schedulers.get(loop)
    if scheduler is None:
        cfg = get_settings().scheduler
        scheduler = _schedulers[loop] = FlushScheduler(
            loop, max_passes=cfg.max_passes, fallback_passes=cfg.fallback_passes,
        )
    return scheduler
