"""Predicate-driven formatter that drops records."""

from __future__ import annotations

from typing import Any, Callable

from lib_log_pipeline.domain.record import LogRecord

from ._base import DROP, Formatter


class FilterFormatter(Formatter):
    """Pass records for which ``predicate(record)`` is truthy, drop the rest.

    Examples
    --------
    >>> only_api = FilterFormatter(lambda record: record.get("name") == "api")
    >>> bool(only_api.format(LogRecord({"name": "db"})))
    False
    """

    def __init__(self, predicate: Callable[[LogRecord], Any]) -> None:
        if not callable(predicate):
            raise TypeError("FilterFormatter requires a callable predicate")
        self._predicate = predicate

    def format(self, record: LogRecord) -> Any:
        return record if self._predicate(record) else DROP


__all__ = ["FilterFormatter"]
