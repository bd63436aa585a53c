"""Terminal formatters that render a record into ``_formatted``.

Handlers prefer ``_formatted`` over ``msg`` when writing output, so these are
usually the last step of a :func:`combine` pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from lib_log_pipeline.adapters.serializers import safe_json
from lib_log_pipeline.domain.record import LogRecord

from ._base import Formatter, as_record

_SIMPLE_SKIP = frozenset({"v", "level", "level_name", "name", "msg", "time", "_formatted", "_level_color"})


class JsonFormatter(Formatter):
    """Render the whole record as JSON (never raises)."""

    def __init__(self, indent: int | None = None) -> None:
        self._indent = indent

    def format(self, record: LogRecord) -> Any:
        record = as_record(record)
        return record.evolve({"_formatted": safe_json(record, indent=self._indent)})


class SimpleFormatter(Formatter):
    """Render ``LEVEL [name] msg  key=value ...``.

    Examples
    --------
    >>> record = LogRecord({"level": 3, "level_name": "info", "name": "api", "msg": "ready", "port": 80})
    >>> SimpleFormatter().format(record)["_formatted"]
    'INFO [api] ready  port=80'
    >>> SimpleFormatter(include_level=False).format(record)["_formatted"]
    '[api] ready  port=80'
    """

    def __init__(self, *, include_level: bool = True) -> None:
        self._include_level = include_level

    def format(self, record: LogRecord) -> Any:
        record = as_record(record)
        name = record.get("name") or "anonymous"
        msg = record.get("msg")
        line = f"[{name}] {'' if msg is None else msg}"
        if self._include_level:
            line = f"{(record.get('level_name') or '???').strip().upper()} {line}"

        extras = []
        for key, value in record.items():
            if key in _SIMPLE_SKIP:
                continue
            if isinstance(value, (Mapping, list, tuple)) or (value is not None and not isinstance(value, (str, int, float, bool))):
                extras.append(f"{key}={safe_json(value)}")
            else:
                extras.append(f"{key}={value}")
        if extras:
            line += "  " + " ".join(extras)
        return record.evolve({"_formatted": line})


class PrintfFormatter(Formatter):
    """Render with a caller-supplied ``template(record) -> str``."""

    def __init__(self, template: Callable[[LogRecord], str]) -> None:
        if not callable(template):
            raise TypeError("PrintfFormatter requires a callable template")
        self._template = template

    def format(self, record: LogRecord) -> Any:
        record = as_record(record)
        return record.evolve({"_formatted": self._template(record)})


__all__ = ["JsonFormatter", "PrintfFormatter", "SimpleFormatter"]
