"""Tagged outcomes for loaded keys.

A batch function may describe each key's outcome explicitly with Ok/Err
instead of returning a bare value or exception. The loader itself tags every
raw entry with as_result(), so reconciliation only ever handles Results.

Example:
    >>> async def fetch(ids):
    ...     rows = await db.fetch_many(ids)
    ...     return [Ok(rows[i]) if i in rows else Err(LookupError(i)) for i in ids]
    >>>
    >>> outcomes = await loader.load_many_results([1, 2])
    >>> sequence(outcomes)  # Ok([...]) only if every key loaded
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


class Result(Generic[T, E]):
    """Either the value loaded for a key (Ok) or why it failed (Err).

    Examples:
        >>> Ok(3).map(str).unwrap()
        '3'
        >>> Err(KeyError("x")).map(str).is_err()
        True
    """

    __slots__ = ("_value", "_is_ok")
    __match_args__ = ("_value",)

    def __init__(self, value: T | E, is_ok: bool) -> None:
        self._value = value
        self._is_ok = is_ok

    def is_ok(self) -> bool:
        return self._is_ok

    def is_err(self) -> bool:
        return not self._is_ok

    # ─── Extraction ──────────────────────────────────────────────────────

    def unwrap(self) -> T:
        """Loaded value. An Err holding an exception raises that exception."""
        if not self._is_ok:
            if isinstance(self._value, BaseException):
                raise self._value
            raise RuntimeError(f"unwrap() on Err: {self._value}")
        return self._value  # type: ignore[return-value]

    def unwrap_err(self) -> E:
        if self._is_ok:
            raise RuntimeError(f"unwrap_err() on Ok: {self._value}")
        return self._value  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        return self._value if self._is_ok else default  # type: ignore[return-value]

    def ok(self) -> T | None:
        return self._value if self._is_ok else None  # type: ignore[return-value]

    def err(self) -> E | None:
        return None if self._is_ok else self._value  # type: ignore[return-value]

    # ─── Transformation ──────────────────────────────────────────────────

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        if not self._is_ok:
            return self  # type: ignore[return-value]
        return Ok(f(self._value))  # type: ignore[arg-type]

    def map_err(self, f: Callable[[E], F]) -> Result[T, F]:
        if self._is_ok:
            return self  # type: ignore[return-value]
        return Err(f(self._value))  # type: ignore[arg-type]

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain a step that can itself fail."""
        if not self._is_ok:
            return self  # type: ignore[return-value]
        return f(self._value)  # type: ignore[arg-type]

    def match(self, *, ok: Callable[[T], U], err: Callable[[E], U]) -> U:
        """Handle both variants; returns whichever handler ran."""
        if self._is_ok:
            return ok(self._value)  # type: ignore[arg-type]
        return err(self._value)  # type: ignore[arg-type]

    # ─── Dunder Methods ──────────────────────────────────────────────────

    def __bool__(self) -> bool:
        return self._is_ok

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self._is_ok is other._is_ok and self._value == other._value

    def __hash__(self) -> int:
        return hash((self._is_ok, self._value))

    def __iter__(self) -> Iterator[T]:
        if self._is_ok:
            yield self._value  # type: ignore[misc]

    def __repr__(self) -> str:
        return f"{'Ok' if self._is_ok else 'Err'}({self._value!r})"


def Ok(value: T) -> Result[T, E]:  # noqa: N802
    return Result(value, True)


def Err(error: E) -> Result[T, E]:  # noqa: N802
    return Result(error, False)


def as_result(value: T | E | Result[T, E]) -> Result[T, E]:
    """Tag one raw batch entry.

    Results pass through unchanged, Exception instances become Err and
    anything else (None included) becomes Ok.
    """
    if isinstance(value, Result):
        return value
    return Err(value) if isinstance(value, Exception) else Ok(value)  # type: ignore[arg-type]


# ═══════════════════════════════════════════════════════════════════════════════
# Combining outcomes
# ═══════════════════════════════════════════════════════════════════════════════


def sequence(results: Iterable[Result[T, E]]) -> Result[list[T], E]:
    """All values in order, or the first Err encountered."""
    values: list[T] = []
    for result in results:
        if result.is_err():
            return result  # type: ignore[return-value]
        values.append(result._value)  # type: ignore[arg-type]
    return Ok(values)


def collect_results(results: Iterable[Result[T, E]]) -> Result[list[T], list[E]]:
    """All values, or every error when at least one key failed."""
    values: list[T] = []
    errors: list[E] = []
    for result in results:
        if result.is_ok():
            values.append(result._value)  # type: ignore[arg-type]
        else:
            errors.append(result._value)  # type: ignore[arg-type]
    return Err(errors) if errors else Ok(values)
