"""Port for censoring sensitive record fields."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lib_log_pipeline.domain.record import LogRecord


@runtime_checkable
class RedactorPort(Protocol):
    """Censor or remove configured fields before serialisation."""

    def redact(self, record: LogRecord) -> LogRecord:
        """Return a (possibly) redacted copy of ``record``."""


__all__ = ["RedactorPort"]
