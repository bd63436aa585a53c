"""Formatters that add or reshape fields without rendering output."""

from __future__ import annotations

import time
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Callable, Union

from lib_log_pipeline.adapters.serializers import is_error_like, serialize_error
from lib_log_pipeline.domain.record import LogRecord

from ._base import Formatter, as_record

CORE_FIELDS = frozenset({"v", "level", "level_name", "name", "msg", "time"})

TimestampFormat = Union[str, Callable[[datetime], Any]]


class TimestampFormatter(Formatter):
    """Stamp the formatting time under ``timestamp`` (and optionally ``alias``).

    ``format`` is ``"iso"`` (default), ``"epoch"`` (milliseconds) or a callable
    receiving an aware UTC :class:`~datetime.datetime`.
    """

    def __init__(self, format: TimestampFormat = "iso", alias: str | None = None) -> None:  # noqa: A002
        self._format = format
        self._alias = alias

    def _now(self) -> Any:
        now = datetime.now(timezone.utc)
        if callable(self._format):
            return self._format(now)
        if self._format == "epoch":
            return time.time_ns() // 1_000_000
        return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def format(self, record: LogRecord) -> Any:
        stamp = self._now()
        changes = {"timestamp": stamp}
        if self._alias:
            changes[self._alias] = stamp
        return as_record(record).evolve(changes)


class LabelFormatter(Formatter):
    """Add a ``label`` field, or prefix the message with ``[label]``.

    Examples
    --------
    >>> LabelFormatter("api", message=True).format(LogRecord({"msg": "up"}))["msg"]
    '[api] up'
    """

    def __init__(self, label: str = "", *, message: bool = False) -> None:
        self._label = label
        self._message = message

    def format(self, record: LogRecord) -> Any:
        record = as_record(record)
        if self._message:
            return record.evolve({"msg": f"[{self._label}] {record.get('msg') or ''}"})
        return record.evolve({"label": self._label})


class AlignFormatter(Formatter):
    """Right-pad ``level_name`` so columns line up."""

    def __init__(self, pad_width: int = 5) -> None:
        self._pad_width = pad_width

    def format(self, record: LogRecord) -> Any:
        record = as_record(record)
        return record.evolve({"level_name": (record.get("level_name") or "").ljust(self._pad_width)})


class MillisecondFormatter(Formatter):
    """Add ``ms`` with the time elapsed since this instance's previous record.

    Stateful: share one instance per consumer. The first record reports
    ``+0ms``.
    """

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._previous: float | None = None

    def format(self, record: LogRecord) -> Any:
        now = self._clock()
        elapsed = 0 if self._previous is None else round((now - self._previous) * 1000)
        self._previous = now
        return as_record(record).evolve({"ms": f"+{elapsed}ms"})


class ErrorFormatter(Formatter):
    """Replace an exception in ``err`` with its serialised form."""

    def __init__(self, stack: bool = True, *, key: str = "err") -> None:
        self._stack = stack
        self._key = key

    def format(self, record: LogRecord) -> Any:
        record = as_record(record)
        value = record.get(self._key)
        if not is_error_like(value):
            return record
        serialized = dict(serialize_error(value))
        if not self._stack:
            serialized.pop("stack", None)
        return record.evolve({self._key: serialized})


class MetadataFormatter(Formatter):
    """Move non-core fields under ``metadata``.

    Keys in ``fill_except`` and keys starting with ``_`` stay at the top level.

    Examples
    --------
    >>> record = LogRecord({"level": 3, "msg": "hi", "user": "bob", "_formatted": "x"})
    >>> dict(MetadataFormatter().format(record))
    {'level': 3, 'msg': 'hi', '_formatted': 'x', 'metadata': {'user': 'bob'}}
    """

    def __init__(self, fill_except: Iterable[str] | None = None) -> None:
        self._fill_except = frozenset(fill_except) if fill_except is not None else CORE_FIELDS

    def format(self, record: LogRecord) -> Any:
        kept: dict[str, Any] = {}
        metadata: dict[str, Any] = {}
        for key, value in as_record(record).items():
            if key in self._fill_except or key.startswith("_"):
                kept[key] = value
            else:
                metadata[key] = value
        if metadata:
            kept["metadata"] = metadata
        return LogRecord(kept)


__all__ = [
    "AlignFormatter",
    "CORE_FIELDS",
    "ErrorFormatter",
    "LabelFormatter",
    "MetadataFormatter",
    "MillisecondFormatter",
    "TimestampFormatter",
]
