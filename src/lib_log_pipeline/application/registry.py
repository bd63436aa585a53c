"""Process-wide bookkeeping for loggers.

Holds the named-logger registry behind :meth:`Logger.get_logger` (first
registration wins) and a weak set of every live logger so
:meth:`Logger.add_level` can give existing instances the new level method.
"""

from __future__ import annotations

import threading
import weakref
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:  # pragma: no cover
    from .logger import Logger


class LoggerRegistry:
    """Named loggers plus a weak view of all loggers created in the process."""

    def __init__(self) -> None:
        self._named: dict[str, "Logger"] = {}
        self._live: "weakref.WeakSet[Logger]" = weakref.WeakSet()
        self._lock = threading.RLock()

    def get_or_create(self, name: str, factory: Callable[[], "Logger"]) -> "Logger":
        """Return the logger registered as ``name``, creating it on first use."""
        with self._lock:
            existing = self._named.get(name)
            if existing is not None:
                return existing
            logger = factory()
            self._named[name] = logger
            return logger

    def named(self) -> dict[str, "Logger"]:
        with self._lock:
            return dict(self._named)

    def track(self, logger: "Logger") -> None:
        with self._lock:
            self._live.add(logger)

    def live(self) -> list["Logger"]:
        with self._lock:
            return list(self._live)

    def _reset_for_testing(self) -> None:
        with self._lock:
            self._named.clear()


REGISTRY = LoggerRegistry()


__all__ = ["LoggerRegistry", "REGISTRY"]
