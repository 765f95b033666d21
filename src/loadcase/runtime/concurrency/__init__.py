"""Scheduling primitives for batch flushes.

Key Components:
    - FlushScheduler: second-tier queue that runs after asyncio's ready queue drains
    - get_scheduler: per-loop scheduler shared by every loader on that loop
"""

from __future__ import annotations

from .scheduler import FlushJob, FlushScheduler, get_scheduler

__all__ = [
    "FlushJob",
    "FlushScheduler",
    "get_scheduler",
]
