"""Per-loader memoization of key futures.

A cache store maps a normalized key to the future handed out for it. The
loader depends only on the four-operation CacheStore protocol, so bounded
or expiring stores can be supplied by the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable, MutableMapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache stores (enables custom implementations)."""

    def get(self, key: Hashable) -> asyncio.Future[Any] | None: ...
    def set(self, key: Hashable, future: asyncio.Future[Any]) -> None: ...
    def delete(self, key: Hashable) -> bool: ...
    def clear(self) -> None: ...


class MemoryCacheStore:
    """Dict-backed cache store.

    Args:
        mapping: Optional backing mapping. When given, entries are written
            straight into it so the caller can inspect or share it.

    Example:
        >>> store = MemoryCacheStore()
        >>> store.set("a", future)
        >>> store.get("a") is future
        True
    """

    __slots__ = ("_data",)

    def __init__(self, mapping: MutableMapping[Hashable, asyncio.Future[Any]] | None = None) -> None:
        self._data = mapping if mapping is not None else {}

    def get(self, key: Hashable) -> asyncio.Future[Any] | None:
        return self._data.get(key)

    def set(self, key: Hashable, future: asyncio.Future[Any]) -> None:
        self._data[key] = future

    def delete(self, key: Hashable) -> bool:
        return self._data.pop(key, None) is not None

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MemoryCacheStore(size={len(self._data)})"


def as_cache_store(value: CacheStore | MutableMapping[Hashable, Any] | None) -> CacheStore:
    """Coerce a cache_map option into a CacheStore.

    None gives a fresh MemoryCacheStore, plain mappings are wrapped and
    anything satisfying the protocol is used as-is.
    """
    if value is None:
        return MemoryCacheStore()
    if isinstance(value, MutableMapping):
        return MemoryCacheStore(value)
    if isinstance(value, CacheStore):
        return value
    raise TypeError(
        f"cache_map must be a CacheStore or a MutableMapping, got {type(value).__name__}"
    )
