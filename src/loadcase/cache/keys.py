"""Key normalizers: map caller keys to comparable cache keys.

A normalizer must be pure and deterministic. The default is identity, which
suits scalars and stable object references. stable_key collapses
structurally equal containers (dicts in any field order, pydantic models)
to one canonical key while keeping differently typed values apart.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any, Callable, TypeAlias

import orjson

KeyNormalizer: TypeAlias = Callable[[Any], Hashable]

_CONTAINERS = (dict, list, tuple, set, frozenset)
_SCALARS = (str, int, float, bool, type(None))
_TAG = "stable_key"


def identity(key: Any) -> Hashable:
    return key


def stable_key(key: Any) -> Hashable:
    """Canonical key for structured values.

    Hashable scalars pass through unchanged. Containers and pydantic models
    become a ("stable_key", bytes) pair: a JSON encoding in which every
    non-scalar value carries its type name and mapping entries are sorted.
    So {"a": 1, "b": 2} and {"b": 2, "a": 1} share a key, while {1: "x"},
    {"1": "x"}, [1] and (1,) all differ, and no raw bytes key can collide
    with a normalized one.

    Raises:
        TypeError: A nested value has no JSON form

    Example:
        >>> stable_key({"a": 123, "b": 321}) == stable_key({"b": 321, "a": 123})
        True
        >>> stable_key({1: "x"}) == stable_key({"1": "x"})
        False
        >>> stable_key("user:1")
        'user:1'
    """
    if isinstance(key, _CONTAINERS) or hasattr(key, "model_dump"):
        return (_TAG, orjson.dumps(_canonical(key)))
    return key


def _canonical(value: Any) -> Any:
    """Type-tagged, order-normalized JSON tree for value."""
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, dict):
        items = [[_canonical(k), _canonical(v)] for k, v in value.items()]
        return ["dict", sorted(items, key=lambda item: orjson.dumps(item[0]))]
    if isinstance(value, (list, tuple)):
        return [type(value).__name__, [_canonical(v) for v in value]]
    if isinstance(value, (set, frozenset)):
        return [type(value).__name__, sorted((_canonical(v) for v in value), key=orjson.dumps)]
    if hasattr(value, "model_dump"):
        return [type(value).__qualname__, _canonical(value.model_dump(mode="json"))]
    if isinstance(value, bytes):
        return ["bytes", value.hex()]
    # orjson handles datetime, UUID, enum and the like; anything else raises TypeError
    return [type(value).__name__, value]
