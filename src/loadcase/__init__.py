"""Loadcase - Per-request batching and memoization for asyncio.

Put a Loader in front of any bulk fetch (a SQL ``IN`` query, a batch REST
endpoint) and load keys one at a time. Every load issued during the same
tick is coalesced into one batch call, and results are memoized per loader.

Quick Start:
    >>> from loadcase import Loader
    >>>
    >>> async def fetch_users(ids: list[int]) -> list[dict | Exception]:
    ...     rows = {r["id"]: r for r in await db.users_by_id(ids)}
    ...     return [rows.get(i) or LookupError(f"no user {i}") for i in ids]
    >>>
    >>> users = Loader(fetch_users, name="users")
    >>> alice, bob = await asyncio.gather(users.load(1), users.load(2))  # one query

Tagged outcomes:
    >>> from loadcase import Err, Ok
    >>>
    >>> async def fetch(keys):
    ...     return [Ok(k * 2) if k > 0 else Err(ValueError(k)) for k in keys]
    >>>
    >>> results = await Loader(fetch).load_many_results([1, -1])
    >>> [r.is_ok() for r in results]
    [True, False]

Structured keys:
    >>> from loadcase import stable_key
    >>> loader = Loader(fetch, cache_key_fn=stable_key)
    >>> loader.load({"a": 1, "b": 2}) is loader.load({"b": 2, "a": 1})
    True

Options (``LoaderConfig`` or keyword arguments):
    batch           accumulate loads into one call per tick (default True)
    cache           memoize futures per key (default True)
    max_batch_size  split large batches into calls of at most this many keys
    cache_key_fn    key normalizer (default identity)
    cache_map       CacheStore or plain mapping holding the memoized futures
"""

from __future__ import annotations

__version__ = "0.1.0"

# Loader
from .loader import Loader, LoaderConfig

# Cache
from .cache import CacheStore, KeyNormalizer, MemoryCacheStore, identity, stable_key

# Errors
from .foundation.errors import (
    BatchContractError,
    BatchShapeError,
    DispatchError,
    Err,
    ErrorCode,
    KeyLoadError,
    LoaderException,
    Ok,
    Result,
    collect_results,
    sequence,
)

# Config
from .foundation.config import LoadcaseSettings, clear_settings_cache, get_settings

# Batching internals
from .runtime.batch import BatchState, PendingBatch
from .runtime.concurrency import FlushScheduler, get_scheduler

# Logging
from .runtime.observability import configure_logging, get_logger, log_context

__all__ = [
    "__version__",
    # Loader
    "Loader", "LoaderConfig",
    # Cache
    "CacheStore", "MemoryCacheStore", "KeyNormalizer", "identity", "stable_key",
    # Errors
    "ErrorCode", "DispatchError", "LoaderException",
    "BatchContractError", "BatchShapeError", "KeyLoadError",
    "Result", "Ok", "Err", "sequence", "collect_results",
    # Config
    "LoadcaseSettings", "get_settings", "clear_settings_cache",
    # Batching internals
    "BatchState", "PendingBatch", "FlushScheduler", "get_scheduler",
    # Logging
    "configure_logging", "get_logger", "log_context",
]
