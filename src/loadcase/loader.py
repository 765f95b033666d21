"""Loader: per-instance batching and memoization in front of a batch function.

Every load() issued during one tick (the synchronous caller code plus every
continuation that runs before the loop turns to timers or I/O) is collected
into a single call to the batch function. Futures are memoized per
normalized key, so repeat loads share one outcome until invalidated.

Example:
    >>> async def fetch_users(ids: list[int]) -> list[User | Exception]:
    ...     rows = await db.fetch_many(ids)
    ...     return [rows.get(i) or LookupError(i) for i in ids]
    >>>
    >>> users = Loader(fetch_users, name="users", max_batch_size=100)
    >>> a, b = await asyncio.gather(users.load(1), users.load(2))  # one call
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable, Iterable, Mapping
from typing import Annotated, Any, Callable, Generic, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from loadcase.cache import CacheStore, KeyNormalizer, as_cache_store, identity
from loadcase.foundation.config import get_settings
from loadcase.foundation.errors import KeyLoadError, Result, as_result
from loadcase.runtime.batch import BatchEntry, BatchExecutor, BatchFn, Dispatcher, outcome_of
from loadcase.runtime.observability import get_logger

K = TypeVar("K")
V = TypeVar("V")


class LoaderConfig(BaseModel):
    """Options for a Loader. Each option is independent of the others.

    Example:
        >>> config = LoaderConfig(max_batch_size=50, cache_key_fn=stable_key)
        >>> loader = Loader(fetch, config)
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", validate_default=True, arbitrary_types_allowed=True,
        json_schema_extra={"title": "Loader Configuration", "examples": [{"batch": True, "cache": True, "max_batch_size": 100}]},
    )

    batch: bool = True
    cache: bool = True
    max_batch_size: Annotated[int | None, Field(ge=1)] = None
    cache_key_fn: Callable[[Any], Hashable] | None = Field(default=None, exclude=True)
    cache_map: Any = Field(default=None, exclude=True)
    name: str | None = None

    @field_validator("cache_map", mode="after")
    @classmethod
    def _check_cache_map(cls, v: Any) -> Any:
        """Fail at construction, not first load, on an unusable store."""
        if v is not None:
            as_cache_store(v)
        return v

    @classmethod
    def from_settings(cls, **overrides: Any) -> LoaderConfig:
        """Defaults from LOADCASE_LOADER_* settings, with overrides applied."""
        s = get_settings().loader
        return cls(**{"batch": s.batch, "cache": s.cache, "max_batch_size": s.max_batch_size, **overrides})


class Loader(Generic[K, V]):
    """Batching, memoizing front for a bulk fetch.

    Args:
        batch_fn: Async callable taking a list of keys and returning one
            entry per key, in order. An entry is a value, an Exception, or an
            Ok/Err Result.
        config: LoaderConfig; omitted means settings defaults
        loop: Event loop for futures created outside a running loop
        **options: LoaderConfig fields overriding config

    Raises:
        TypeError: If batch_fn is not callable
    """

    __slots__ = ("_batch_fn", "_config", "_normalize", "_store", "_dispatcher", "_loop", "_log", "name")

    def __init__(
        self,
        batch_fn: BatchFn[K],
        config: LoaderConfig | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        **options: Any,
    ) -> None:
        if not callable(batch_fn):
            raise TypeError(
                "Loader requires a batch function which accepts list[key] and returns "
                f"an awaitable sequence of results, but got: {batch_fn!r}"
            )
        if config is None:
            config = LoaderConfig.from_settings(**options)
        elif options:
            config = LoaderConfig(**{**dict(config), **options})

        self._batch_fn = batch_fn
        self._config = config
        self.name = config.name or getattr(batch_fn, "__qualname__", None) or type(batch_fn).__name__
        self._normalize: KeyNormalizer = config.cache_key_fn or identity
        self._store: CacheStore = as_cache_store(config.cache_map)
        self._loop = loop
        self._log = get_logger("loadcase.loader", loader=self.name)
        self._dispatcher: Dispatcher[K, V] = Dispatcher(
            BatchExecutor(batch_fn, name=self.name, log=self._log),
            batch=config.batch,
            max_batch_size=config.max_batch_size,
            log=self._log,
        )

    @property
    def config(self) -> LoaderConfig:
        return self._config

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def dispatcher(self) -> Dispatcher[K, V]:
        return self._dispatcher

    # ─── Loading ─────────────────────────────────────────────────────────

    def load(self, key: K) -> asyncio.Future[V]:
        """Future for key's value, batched with every other load this tick.

        Fails with the per-key error if the batch marked key as failed, or
        with the shared error if the whole batch call failed.
        """
        if key is None:
            raise TypeError("load() requires a key, got None")

        cache_key = self._normalize(key)
        if self._config.cache:
            cached = self._cached(cache_key)
            if cached is not None:
                return cached

        future: asyncio.Future[V] = self._get_loop().create_future()
        if self._config.cache:
            # Stored before enqueue so a repeat load in this call hits it.
            self._store.set(cache_key, future)
        self._dispatcher.enqueue(BatchEntry(cache_key, key, future))
        return future

    def load_many(self, keys: Iterable[K]) -> asyncio.Future[list[V | BaseException]]:
        """Load keys in order; position i holds key i's value or its exception.

        Never fails as a whole. For all-or-nothing semantics use
        load_many_results() with sequence().
        """
        _check_keys("load_many", keys)
        futures = [self.load(key) for key in keys]
        if not futures:
            empty: asyncio.Future[list[V | BaseException]] = self._get_loop().create_future()
            empty.set_result([])
            return empty
        return asyncio.gather(*futures, return_exceptions=True)

    async def load_many_results(self, keys: Iterable[K]) -> list[Result[V, BaseException]]:
        """Load keys in order as tagged Ok/Err outcomes."""
        _check_keys("load_many_results", keys)
        futures = [self.load(key) for key in keys]
        if futures:
            await asyncio.wait(set(futures))
        return [outcome_of(f) for f in futures]

    def dispatch(self) -> None:
        """Flush the pending batch now instead of at the end of the tick."""
        self._dispatcher.flush()

    # ─── Cache Control ───────────────────────────────────────────────────

    def clear(self, key: K) -> Self:
        """Drop key from the cache. In-flight batches still settle their futures."""
        self._store.delete(self._normalize(key))
        return self

    def clear_all(self) -> Self:
        """Drop every cached key."""
        self._store.clear()
        return self

    def prime(self, key: K, value: V | BaseException | Result[V, BaseException], *, overwrite: bool = False) -> Self:
        """Seed the cache without calling the batch function.

        An Exception (or Err) primes a rejected future. Existing entries are
        kept unless overwrite is set. A no-op when caching is disabled.
        """
        if not self._config.cache:
            return self
        cache_key = self._normalize(key)
        if not overwrite and self._cached(cache_key) is not None:
            return self

        future: asyncio.Future[V] = self._get_loop().create_future()
        outcome = as_result(value).map_err(lambda e: e if isinstance(e, BaseException) else KeyLoadError.wrap(self.name, e))
        outcome.match(ok=future.set_result, err=future.set_exception)
        self._store.set(cache_key, future)
        return self

    def prime_many(self, values: Mapping[K, V | BaseException], *, overwrite: bool = False) -> Self:
        for key, value in values.items():
            self.prime(key, value, overwrite=overwrite)
        return self

    # Names used by callers that think in requests rather than loads
    request = load
    request_many = load_many
    invalidate = clear
    invalidate_all = clear_all

    def _cached(self, cache_key: Hashable) -> asyncio.Future[V] | None:
        """Stored future for cache_key; a cancelled one counts as a miss."""
        cached = self._store.get(cache_key)
        return None if cached is None or cached.cancelled() else cached

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def __repr__(self) -> str:
        c = self._config
        return f"Loader(name={self.name!r}, batch={c.batch}, cache={c.cache}, max_batch_size={c.max_batch_size})"


def _check_keys(method: str, keys: object) -> None:
    # str and bytes are iterable but almost never meant as a key list
    if isinstance(keys, (str, bytes)) or not isinstance(keys, Iterable):
        raise TypeError(f"{method}() must be called with an iterable of keys, got: {keys!r}")
