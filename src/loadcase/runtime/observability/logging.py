"""Key/value logging for loaders and the flush scheduler.

Every entry is an event name plus flat fields. Fields come from three
layers, merged in order: the scoped log_context(), the logger's bound
context, then the call site. Output goes to whichever renderer is
configured: readable lines for development, JSON lines for aggregation, or
nothing at all.

Quick Start:
    >>> from loadcase.runtime.observability import configure_logging, get_logger
    >>>
    >>> configure_logging(format="json", level="DEBUG")
    >>> log = get_logger("loadcase.loader", loader="users")
    >>> log.debug("batch dispatched", batch_size=12)
    {"timestamp": "...", "level": "debug", "event": "batch dispatched", "logger": "loadcase.loader", ...}
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, TextIO, runtime_checkable

import orjson

if TYPE_CHECKING:
    from types import TracebackType

Fields = dict[str, Any]

_EXC_FIELD = "exc_info"


# ─────────────────────────────────────────────────────────────────────────────
# Entries & Renderers
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class LogEntry:
    """One rendered event."""

    timestamp: float
    level: str
    event: str
    context: Fields

    @property
    def ts_iso(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=UTC).isoformat()

    @property
    def ts_human(self) -> str:
        """Wall clock time as HH:MM:SS.mmm."""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]

    @property
    def traceback(self) -> str | None:
        return self.context.get(_EXC_FIELD)


@runtime_checkable
class LogRenderer(Protocol):
    """Anything that can write a LogEntry somewhere."""

    def render(self, entry: LogEntry) -> None: ...


@dataclass(slots=True)
class ConsoleRenderer:
    """Single-line readable output, fields sorted by name.

    Example line:
        12:00:01.250 [debug] batch reconciled batch_size=3 failed=0 loader="users"
    """

    output: TextIO = field(default_factory=lambda: sys.stderr)
    show_timestamp: bool = True

    def render(self, entry: LogEntry) -> None:
        head = f"{entry.ts_human} " if self.show_timestamp else ""
        fields = " ".join(
            f"{name}={_format_value(value)}"
            for name, value in sorted(entry.context.items())
            if name != _EXC_FIELD
        )
        line = f"{head}[{entry.level}] {entry.event}"
        self.output.write(f"{line} {fields}\n" if fields else f"{line}\n")
        if entry.traceback:
            self.output.write(entry.traceback.rstrip("\n") + "\n")


@dataclass(slots=True)
class JsonRenderer:
    """One JSON object per line; values orjson cannot encode fall back to str()."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        record = {"timestamp": entry.ts_iso, "level": entry.level, "event": entry.event}
        record.update(entry.context)
        self.output.write(orjson.dumps(record, default=str).decode() + "\n")


@dataclass(slots=True)
class NoOpRenderer:
    """Discards everything."""

    def render(self, entry: LogEntry) -> None:
        return None


# Active renderer and threshold; ContextVars so tests and tasks can scope them
_renderer: ContextVar[LogRenderer | None] = ContextVar("loadcase_log_renderer", default=None)
_threshold: ContextVar[int] = ContextVar("loadcase_log_level", default=logging.INFO)
_scoped: ContextVar[Fields] = ContextVar("loadcase_log_context", default={})


def _active_renderer() -> LogRenderer:
    renderer = _renderer.get()
    if renderer is None:
        renderer = ConsoleRenderer()
        _renderer.set(renderer)
    return renderer


# ─────────────────────────────────────────────────────────────────────────────
# Logger
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class BoundLogger:
    """Logger carrying fields that are added to every entry it emits.

    bind() never mutates; it returns a new logger with the extra fields.
    The threshold is looked up per call unless pinned with _level.

    Example:
        >>> log = get_logger("loadcase.executor").bind(loader="users")
        >>> log.warning("batch faulted", batch_size=4, error_type="TimeoutError")
    """

    context: Fields = field(default_factory=dict)
    _renderer: LogRenderer | None = None
    _level: int | None = None

    def bind(self, **fields: Any) -> BoundLogger:
        return BoundLogger({**self.context, **fields}, self._renderer, self._level)

    def enabled_for(self, level: int) -> bool:
        threshold = _threshold.get() if self._level is None else self._level
        return level >= threshold

    def debug(self, event: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit(logging.ERROR, event, fields)

    def exception(self, event: str, **fields: Any) -> None:
        """error() plus the traceback of the exception being handled."""
        fields[_EXC_FIELD] = traceback.format_exc()
        self._emit(logging.ERROR, event, fields)

    def _emit(self, level: int, event: str, fields: Fields) -> None:
        if not self.enabled_for(level):
            return
        entry = LogEntry(
            timestamp=time.time(),
            level=logging.getLevelName(level).lower(),
            event=event,
            context={**_scoped.get(), **self.context, **fields},
        )
        (self._renderer or _active_renderer()).render(entry)


def get_logger(name: str | None = None, **fields: Any) -> BoundLogger:
    """Logger with name stored in the "logger" field plus any initial fields."""
    context = {"logger": name, **fields} if name else dict(fields)
    return BoundLogger(context)


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────


_RENDERERS: dict[str, Any] = {
    "console": lambda out: ConsoleRenderer(output=out or sys.stderr),
    "json": lambda out: JsonRenderer(output=out or sys.stdout),
    "none": lambda out: NoOpRenderer(),
}


def configure_logging(
    format: str = "console",  # noqa: A002
    level: str = "INFO",
    *,
    output: TextIO | None = None,
) -> LogRenderer:
    """Select the renderer and minimum level for every logger.

    Args:
        format: "console", "json" or "none"
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive)
        output: Stream to write to; console defaults to stderr, json to stdout

    Raises:
        ValueError: On an unknown format
    """
    factory = _RENDERERS.get(format)
    if factory is None:
        raise ValueError(f"Unknown format: {format}. Use one of {', '.join(_RENDERERS)}")
    renderer: LogRenderer = factory(output)
    _renderer.set(renderer)
    _threshold.set(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))
    return renderer


def configure_logging_from_settings() -> LogRenderer:
    """configure_logging() driven by LOADCASE_LOG_FORMAT / LOADCASE_LOG_LEVEL / LOADCASE_DEBUG."""
    from loadcase.foundation.config import get_settings

    settings = get_settings()
    return configure_logging(settings.logging.format, settings.log_level)


class log_context:
    """Add fields to every entry logged inside the block, across awaits.

    Example:
        >>> with log_context(request_id="abc123"):
        ...     await users.load(1)  # dispatch/reconcile entries carry request_id
    """

    __slots__ = ("_fields", "_token")

    def __init__(self, **fields: Any) -> None:
        self._fields: Fields = fields
        self._token: Any = None

    def __enter__(self) -> log_context:
        self._token = _scoped.set({**_scoped.get(), **self._fields})
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._token is not None:
            _scoped.reset(self._token)
            self._token = None


def _format_value(value: object) -> str:
    """Console form of a field value; containers are summarized by size."""
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        return f"{{{len(value)} items}}"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"[{len(value)} items]"
    return repr(value)
