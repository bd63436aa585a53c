"""Port describing single-record formatters."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from lib_log_pipeline.domain.record import LogRecord


@runtime_checkable
class FormatterPort(Protocol):
    """Transform one record; a falsy result drops it for the current handler."""

    def format(self, record: LogRecord) -> Any:
        """Return a new record, a rendered string, or a falsy drop marker."""


__all__ = ["FormatterPort"]
