"""Handler base class: per-destination gate, format, and isolated emit.

Purpose
-------
Encapsulate the steps every sink performs for a record so concrete handlers
only implement :meth:`Handler.emit`.

Contents
--------
* :class:`Handler` – abstract base with level gating, optional formatter,
  exception-capture opt-ins, and error routing.

System Role
-----------
Handlers are dispatched by :class:`HandlerManager`. A failure in one handler's
formatter or destination is reported on the logger's notification channel
(``LogEvent.HANDLER_ERROR``) and never reaches the caller or other handlers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from lib_log_pipeline.application.ports.formatter import FormatterPort
from lib_log_pipeline.domain.events import EventEmitter, LogEvent
from lib_log_pipeline.domain.levels import LEVELS, LogLevel
from lib_log_pipeline.domain.record import LogRecord

LOGGER = logging.getLogger(__name__)


class Handler(ABC):
    """Base class for output destinations.

    Parameters
    ----------
    level:
        Minimum severity accepted (name or number); ``None`` accepts every
        record the logger lets through.
    formatter:
        Object with ``format(record)``; a falsy result drops the record for
        this handler only.
    enabled:
        Disabled handlers ignore every record.
    handle_exceptions / handle_rejections:
        Opt into records produced by
        :class:`~lib_log_pipeline.application.exception_handler.ExceptionHandler`.
    emitter:
        Notification channel used to surface failures; wired by
        :meth:`Logger.add_handler`.
    """

    def __init__(
        self,
        *,
        level: str | int | None = None,
        formatter: FormatterPort | None = None,
        enabled: bool = True,
        handle_exceptions: bool = False,
        handle_rejections: bool = False,
        emitter: EventEmitter | None = None,
    ) -> None:
        self._level: int | None = None
        self.level = level
        self._formatter: FormatterPort | None = None
        self.formatter = formatter
        self._enabled = bool(enabled)
        self._handle_exceptions = bool(handle_exceptions)
        self._handle_rejections = bool(handle_rejections)
        self._emitter = emitter

    @property
    def level(self) -> int | None:
        return self._level

    @level.setter
    def level(self, value: str | int | None) -> None:
        self._level = None if value is None else LEVELS.resolve(value)

    @property
    def formatter(self) -> FormatterPort | None:
        return self._formatter

    @formatter.setter
    def formatter(self, value: FormatterPort | None) -> None:
        if value is not None and not callable(getattr(value, "format", None)):
            raise TypeError(f"formatter must provide a format() method: {value!r}")
        self._formatter = value

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = bool(value)

    @property
    def emitter(self) -> EventEmitter | None:
        return self._emitter

    @emitter.setter
    def emitter(self, value: EventEmitter | None) -> None:
        self._emitter = value

    @property
    def handle_exceptions(self) -> bool:
        return self._handle_exceptions

    @handle_exceptions.setter
    def handle_exceptions(self, value: bool) -> None:
        self._handle_exceptions = bool(value)

    @property
    def handle_rejections(self) -> bool:
        return self._handle_rejections

    @handle_rejections.setter
    def handle_rejections(self, value: bool) -> None:
        self._handle_rejections = bool(value)

    def accepts(self, record: LogRecord) -> bool:
        """Return ``True`` when ``record`` passes the enabled flag and level gate."""
        if not self._enabled:
            return False
        if self._level is None:
            return True
        return LogLevel.is_level_enabled(self._level, record["level"])

    def handle(self, record: LogRecord) -> None:
        """Gate, format, and emit ``record``; failures go to :meth:`_on_error`."""
        if not self.accepts(record):
            return
        try:
            formatted: Any = record if self._formatter is None else self._formatter.format(record)
            if not formatted:
                return
            self.emit(record, formatted)
        except Exception as exc:  # noqa: BLE001
            self._on_error(exc, record)

    @abstractmethod
    def emit(self, record: LogRecord, formatted: Any) -> None:
        """Write ``formatted`` (derived from ``record``) to the destination."""

    def flush(self) -> None:
        """Push buffered output to the destination (no-op by default)."""

    def close(self) -> None:
        """Release resources (no-op by default)."""

    def _on_error(self, error: BaseException, record: LogRecord | None) -> None:
        emitter = self._emitter
        if emitter is not None and emitter.has_listeners(LogEvent.HANDLER_ERROR):
            try:
                emitter.fire(LogEvent.HANDLER_ERROR, {"handler": self, "error": error, "record": record})
                return
            except Exception as listener_exc:  # noqa: BLE001
                LOGGER.error("Handler error listener failed", exc_info=listener_exc)
        LOGGER.error("%s failed to process a record", type(self).__name__, exc_info=error)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(level={self._level!r}, enabled={self._enabled!r})"


__all__ = ["Handler"]
