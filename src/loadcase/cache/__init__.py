"""Per-loader memoization.

Stores:
    - MemoryCacheStore: dict-backed store (default), optionally over a caller mapping
    - CacheStore: protocol for custom stores (size-bounded, expiring, ...)

Key normalizers:
    - identity: default, the key itself
    - stable_key: canonical form for dicts, lists, sets and pydantic models
"""

from .keys import KeyNormalizer, identity, stable_key
from .store import CacheStore, MemoryCacheStore, as_cache_store

__all__ = [
    "CacheStore",
    "MemoryCacheStore",
    "as_cache_store",
    "KeyNormalizer",
    "identity",
    "stable_key",
]
