"""Notification channel exposed by loggers.

Purpose
-------
Let host code observe the pipeline (records produced, level changes, handler
failures, flushes, captured exceptions) without subclassing anything.

Contents
--------
* :class:`LogEvent` – canonical event names.
* :class:`EventEmitter` – minimal synchronous observer registry.

System Role
-----------
Loggers own one emitter per tree; handlers hold a back-reference to it so they
can surface their own failures. Listener errors propagate out of
:meth:`EventEmitter.fire`; the pipeline wraps every call so a broken listener
cannot break a log call.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

Listener = Callable[[dict[str, Any]], None]


class LogEvent:
    """Event names fired on a logger's :class:`EventEmitter`."""

    RECORD = "log-record"
    LEVEL_CHANGE = "log-level-change"
    HANDLER_ERROR = "log-handler-error"
    FLUSH = "log-flush"
    EXCEPTION = "log-exception"

    ALL = (RECORD, LEVEL_CHANGE, HANDLER_ERROR, FLUSH, EXCEPTION)


class EventEmitter:
    """Synchronous event registry with an explicit list of valid events.

    Examples
    --------
    >>> emitter = EventEmitter()
    >>> emitter.add_valid_event("ping")
    >>> seen = []
    >>> emitter.add_listener("ping", seen.append)
    >>> emitter.fire("ping", {"n": 1})
    >>> seen
    [{'n': 1}]
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def add_valid_event(self, name: str) -> None:
        self._listeners.setdefault(name, [])

    def has_event(self, name: str) -> bool:
        return name in self._listeners

    def has_listeners(self, name: str) -> bool:
        return bool(self._listeners.get(name))

    def add_listener(self, name: str, listener: Listener) -> None:
        """Subscribe ``listener`` to ``name``."""
        if name not in self._listeners:
            raise ValueError(f"Unknown event: {name!r}")
        if not callable(listener):
            raise TypeError("listener must be callable")
        self._listeners[name].append(listener)

    def remove_listener(self, name: str, listener: Listener) -> None:
        listeners = self._listeners.get(name)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def remove_all_listeners(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()

    def fire(self, name: str, payload: dict[str, Any]) -> None:
        """Invoke every listener registered for ``name`` with ``payload``."""
        if name not in self._listeners:
            raise ValueError(f"Unknown event: {name!r}")
        for listener in list(self._listeners[name]):
            listener(payload)


__all__ = ["EventEmitter", "Listener", "LogEvent"]
