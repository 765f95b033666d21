"""Tests for the flush scheduler's ordering against the event loop."""

from __future__ import annotations

import asyncio
import socket
from collections import deque
from typing import Any, Callable

import pytest

from loadcase import FlushScheduler, clear_settings_cache, get_scheduler


class ManualLoop:
    """Loop stand-in without a ready queue; callbacks run one at a time on demand."""

    def __init__(self) -> None:
        self.callbacks: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        self.callbacks.append((callback, args))

    def run_one(self) -> None:
        callback, args = self.callbacks.popleft()
        callback(*args)


# ═════════════════════════════════════════════════════════════════════════════
# Ordering on a real loop
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_flush_waits_for_nested_callbacks() -> None:
    loop = asyncio.get_running_loop()
    scheduler = FlushScheduler(loop)
    order: list[str] = []
    done = loop.create_future()

    def flush() -> None:
        order.append("flush")
        done.set_result(None)

    scheduler.submit(flush)
    loop.call_soon(lambda: loop.call_soon(lambda: order.append("nested")))
    await done

    assert order == ["nested", "flush"]


@pytest.mark.asyncio
async def test_flush_runs_before_timers() -> None:
    loop = asyncio.get_running_loop()
    scheduler = FlushScheduler(loop)
    order: list[str] = []
    timer_fired = loop.create_future()

    def on_timer() -> None:
        order.append("timer")
        timer_fired.set_result(None)

    loop.call_later(0, on_timer)
    scheduler.submit(lambda: order.append("flush"))
    await timer_fired

    assert order == ["flush", "timer"]


@pytest.mark.asyncio
async def test_flush_runs_before_due_timer_behind_ready_work() -> None:
    loop = asyncio.get_running_loop()
    scheduler = FlushScheduler(loop)
    order: list[str] = []
    timer_fired = loop.create_future()

    def on_timer() -> None:
        order.append("timer")
        timer_fired.set_result(None)

    scheduler.submit(lambda: order.append("flush"))
    loop.call_soon(lambda: order.append("step"))
    loop.call_later(0, on_timer)
    await timer_fired

    assert order == ["step", "flush", "timer"]


@pytest.mark.asyncio
async def test_flush_runs_before_ready_io_callback() -> None:
    loop = asyncio.get_running_loop()
    scheduler = FlushScheduler(loop)
    order: list[str] = []
    readable = loop.create_future()
    rsock, wsock = socket.socketpair()
    rsock.setblocking(False)
    wsock.send(b"x")

    def on_readable() -> None:
        loop.remove_reader(rsock)
        rsock.recv(1)
        order.append("io")
        readable.set_result(None)

    try:
        scheduler.submit(lambda: order.append("flush"))
        loop.call_soon(lambda: order.append("step"))
        loop.add_reader(rsock, on_readable)
        await readable
    finally:
        rsock.close()
        wsock.close()

    assert order == ["step", "flush", "io"]


@pytest.mark.asyncio
async def test_max_passes_bounds_a_busy_loop() -> None:
    loop = asyncio.get_running_loop()
    scheduler = FlushScheduler(loop, max_passes=5)
    ticks = 0
    flushed_at: list[int] = []
    done = loop.create_future()

    def spin() -> None:
        nonlocal ticks
        ticks += 1
        if not done.done():
            loop.call_soon(spin)

    def flush() -> None:
        flushed_at.append(ticks)
        done.set_result(None)

    loop.call_soon(spin)
    scheduler.submit(flush)
    await done

    assert len(flushed_at) == 1 and flushed_at[0] >= 4
    assert scheduler._passes == 5


@pytest.mark.asyncio
async def test_jobs_run_in_submission_order() -> None:
    loop = asyncio.get_running_loop()
    scheduler = FlushScheduler(loop)
    order: list[int] = []
    done = loop.create_future()

    for i in range(3):
        scheduler.submit(lambda i=i: order.append(i))
    scheduler.submit(lambda: done.set_result(None))

    assert scheduler.armed and scheduler.pending == 4
    await done
    assert order == [0, 1, 2]
    assert not scheduler.armed and scheduler.pending == 0


@pytest.mark.asyncio
async def test_one_scheduler_per_loop() -> None:
    loop = asyncio.get_running_loop()

    assert get_scheduler() is get_scheduler(loop)


def test_scheduler_reads_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOADCASE_SCHEDULER_MAX_PASSES", "7")
    clear_settings_cache()
    loop = asyncio.new_event_loop()
    try:
        assert get_scheduler(loop)._max_passes == 7
    finally:
        loop.close()


# ═════════════════════════════════════════════════════════════════════════════
# Loops without an inspectable ready queue
# ═════════════════════════════════════════════════════════════════════════════


def test_fallback_passes_without_ready_queue() -> None:
    loop = ManualLoop()
    scheduler = FlushScheduler(loop, fallback_passes=3)  # type: ignore[arg-type]
    ran: list[str] = []

    scheduler.submit(lambda: ran.append("flush"))
    loop.run_one()
    loop.run_one()
    assert ran == []

    loop.run_one()
    assert ran == ["flush"]
    assert not loop.callbacks


def test_failing_job_does_not_block_others() -> None:
    loop = ManualLoop()
    scheduler = FlushScheduler(loop, fallback_passes=1)  # type: ignore[arg-type]
    ran: list[str] = []

    def boom() -> None:
        raise RuntimeError("boom")

    scheduler.submit(boom)
    scheduler.submit(lambda: ran.append("after"))
    loop.run_one()

    assert ran == ["after"]
    assert not scheduler.armed


def test_job_submitted_during_drain_gets_new_drain() -> None:
    loop = ManualLoop()
    scheduler = FlushScheduler(loop, fallback_passes=1)  # type: ignore[arg-type]
    ran: list[str] = []

    def first() -> None:
        ran.append("first")
        scheduler.submit(lambda: ran.append("second"))

    scheduler.submit(first)
    loop.run_one()
    assert ran == ["first"]
    assert scheduler.armed and len(loop.callbacks) == 1

    loop.run_one()
    assert ran == ["first", "second"]
