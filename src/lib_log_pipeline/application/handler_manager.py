"""Handler collection shared across a logger tree."""

from __future__ import annotations

import logging
import threading

from lib_log_pipeline.domain.record import LogRecord

from .handler import Handler

LOGGER = logging.getLogger(__name__)


class HandlerManager:
    """Own the handlers of a logger tree and fan records out to them.

    Children alias their root's manager, so a handler added anywhere is seen
    by every logger in the tree.
    """

    def __init__(self) -> None:
        self._handlers: list[Handler] = []
        self._lock = threading.Lock()

    def add_handler(self, handler: Handler) -> None:
        if not isinstance(handler, Handler):
            raise TypeError(f"add_handler() expects a Handler instance, got {type(handler).__name__}")
        with self._lock:
            self._handlers.append(handler)

    def remove_handler(self, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def clear_handlers(self) -> None:
        with self._lock:
            self._handlers.clear()

    @property
    def handlers(self) -> list[Handler]:
        """Return a copy of the current handler list."""
        with self._lock:
            return list(self._handlers)

    def dispatch(self, record: LogRecord) -> None:
        """Offer ``record`` to every handler; one handler failing never stops the rest."""
        for handler in self.handlers:
            try:
                handler.handle(record)
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Handler %r raised while handling a record", handler, exc_info=exc)


__all__ = ["HandlerManager"]
