"""Formatter base class and sequential composition.

Purpose
-------
Define the single-record transform contract and the pipeline built by
:func:`combine`, which stops at the first formatter that drops the record.

Contents
--------
* :data:`DROP` – falsy marker a formatter returns to discard a record.
* :class:`Formatter` – identity formatter and base class for built-ins.
* :class:`CombinedFormatter` / :func:`combine` – short-circuiting pipeline.

System Role
-----------
Formatters are attached per handler; the handler treats any falsy result as
"do not emit" and never sees the records later formatters would have made.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lib_log_pipeline.domain.record import LogRecord


class _Drop:
    __slots__ = ()

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "DROP"


DROP: Any = _Drop()
#: Falsy result meaning "discard this record for the current handler".


def as_record(record: Mapping[str, Any]) -> LogRecord:
    """Return ``record`` as a :class:`LogRecord` (plain mappings are wrapped)."""
    if isinstance(record, LogRecord):
        return record
    return LogRecord(record)


class Formatter:
    """Identity formatter; subclasses override :meth:`format`.

    Examples
    --------
    >>> record = LogRecord({"msg": "x"})
    >>> Formatter().format(record) is record
    True
    """

    def format(self, record: LogRecord) -> Any:
        return record

    @staticmethod
    def combine(*formatters: Any) -> "CombinedFormatter":
        return combine(*formatters)


class CombinedFormatter(Formatter):
    """Run formatters in order, stopping at the first falsy result."""

    def __init__(self, formatters: list[Any]) -> None:
        self._formatters = list(formatters)

    @property
    def formatters(self) -> list[Any]:
        return list(self._formatters)

    def format(self, record: LogRecord) -> Any:
        result: Any = record
        for formatter in self._formatters:
            result = formatter.format(result)
            if not result:
                return DROP
        return result


def combine(*formatters: Any) -> CombinedFormatter:
    """Build a :class:`CombinedFormatter` from ``formatters``.

    Raises
    ------
    TypeError
        When any argument lacks a callable ``format`` attribute.

    Examples
    --------
    >>> calls = []
    >>> class Spy(Formatter):
    ...     def format(self, record):
    ...         calls.append(record["msg"])
    ...         return record
    >>> class Reject(Formatter):
    ...     def format(self, record):
    ...         return DROP
    >>> combine(Spy(), Reject(), Spy()).format(LogRecord({"msg": "x"}))
    DROP
    >>> calls
    ['x']
    """

    for position, formatter in enumerate(formatters):
        if not callable(getattr(formatter, "format", None)):
            raise TypeError(f"combine() argument {position} has no format() method: {formatter!r}")
    return CombinedFormatter(list(formatters))


__all__ = ["CombinedFormatter", "DROP", "Formatter", "as_record", "combine"]
