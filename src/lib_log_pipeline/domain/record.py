"""Immutable log record produced once per log call.

Purpose
-------
Provide a copy-on-write structured value that travels through redaction,
serialisation, formatting, and handler delivery without ever being mutated in
place.

Contents
--------
* :class:`LogRecord` – read-only mapping with ``evolve``/``without`` helpers and
  the :meth:`LogRecord.create` factory.
* :data:`AUTO` – sentinel asking :meth:`LogRecord.create` to populate base
  fields from the running process.
* :data:`STD_TIME_FUNCTIONS` – ready-made timestamp callables.

System Role
-----------
Sits in the domain layer; every transform step in the application and adapter
layers returns a new :class:`LogRecord` (or a drop sentinel) instead of editing
the one it received.
"""

from __future__ import annotations

import os
import socket
import time
import uuid
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable

from .levels import LogLevel

LOG_VERSION = 1


class _Auto:
    __slots__ = ()

    def __repr__(self) -> str:
        return "AUTO"


AUTO: Any = _Auto()
#: Default for ``base``: populate hostname, pid, and session id automatically.

_SESSION_ID: str | None = None


def _session_id() -> str:
    global _SESSION_ID
    if _SESSION_ID is None:
        _SESSION_ID = str(uuid.uuid4())
    return _SESSION_ID


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


STD_TIME_FUNCTIONS: Mapping[str, Callable[[], Any]] = MappingProxyType(
    {
        "iso": _iso_now,
        "epoch": lambda: time.time_ns() // 1_000_000,
        "unix": lambda: int(time.time()),
        "none": lambda: None,
        "highres": lambda: time.perf_counter() * 1000.0,
    }
)


def default_base() -> dict[str, Any]:
    """Return the environment identifiers merged into records by default."""

    hostname = socket.gethostname() or ""
    return {
        "hostname": hostname.split(".", 1)[0] if hostname else None,
        "pid": os.getpid(),
        "session_id": _session_id(),
    }


class LogRecord(Mapping[str, Any]):
    """Read-only structured log event.

    Instances are always truthy so an empty-looking record can never be
    confused with the formatter drop sentinel.

    Examples
    --------
    >>> record = LogRecord({"level": 3, "msg": "hi"})
    >>> record["msg"]
    'hi'
    >>> updated = record.evolve({"msg": "bye"})
    >>> record["msg"], updated["msg"]
    ('hi', 'bye')
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        object.__setattr__(self, "_data", dict(data or {}))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("LogRecord is immutable")

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return True

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LogRecord):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"LogRecord({self._data!r})"

    @property
    def level(self) -> int:
        return self._data["level"]

    @property
    def level_name(self) -> str:
        return self._data.get("level_name", "")

    @property
    def name(self) -> str | None:
        return self._data.get("name")

    @property
    def msg(self) -> str | None:
        return self._data.get("msg")

    def evolve(self, changes: Mapping[str, Any]) -> "LogRecord":
        """Return a copy with ``changes`` overlaid on the current fields."""

        return LogRecord({**self._data, **changes})

    def without(self, *keys: str) -> "LogRecord":
        """Return a copy with ``keys`` removed (missing keys are ignored)."""

        return LogRecord({key: value for key, value in self._data.items() if key not in keys})

    def to_dict(self) -> dict[str, Any]:
        """Return a shallow, mutable copy of the record fields."""

        return dict(self._data)

    @classmethod
    def create(
        cls,
        *,
        level: int,
        name: str | None = None,
        msg: str | None = None,
        fields: Mapping[str, Any] | None = None,
        base: Mapping[str, Any] | None = AUTO,
        timestamp: bool | Callable[[], Any] = True,
        message_key: str = "msg",
        error_key: str = "err",
        nested_key: str | None = None,
    ) -> "LogRecord":
        """Build a new record from the supplied parts.

        Parameters
        ----------
        level:
            Numeric severity. Levels missing from the static table produce an
            empty ``level_name``; the logger patches custom names afterwards.
        fields:
            Extra fields merged at the top level, or nested under
            ``nested_key`` when one is configured.
        base:
            :data:`AUTO` for :func:`default_base`, ``None`` to omit, or a
            mapping used verbatim.
        timestamp:
            ``True`` for an ISO-8601 UTC ``time`` field, ``False`` for none, or
            a callable whose non-``None`` result becomes ``time``.
        error_key:
            Accepted for symmetry with the logger options; the logger places
            errors under this key inside ``fields`` before calling ``create``.
        """

        data: dict[str, Any] = {}
        if fields:
            if nested_key:
                data[nested_key] = dict(fields)
            else:
                data.update(fields)

        if base is AUTO:
            data.update(default_base())
        elif base is not None:
            data.update(base)

        data["v"] = LOG_VERSION
        data["level"] = level
        data["level_name"] = LogLevel.to_name(level) or ""
        data["name"] = name
        if msg is not None:
            data[message_key] = msg

        if timestamp is True:
            data["time"] = _iso_now()
        elif callable(timestamp):
            value = timestamp()
            if value is not None:
                data["time"] = value

        return cls(data)


__all__ = ["AUTO", "LOG_VERSION", "LogRecord", "STD_TIME_FUNCTIONS", "default_base"]
