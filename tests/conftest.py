from __future__ import annotations

from io import StringIO
from typing import Any, Callable, Iterator

import pytest
from rich.console import Console

from lib_log_pipeline.adapters.formatters.colorize import PALETTE
from lib_log_pipeline.application.handler import Handler
from lib_log_pipeline.application.registry import REGISTRY
from lib_log_pipeline.domain.levels import LEVELS
from lib_log_pipeline.domain.record import LogRecord

_ENV_VARS = (
    "LOG_LEVEL",
    "LOG_FORCE_COLOR",
    "LOG_NO_COLOR",
    "LOG_CONSOLE_THEME",
    "LOG_CONSOLE_STYLES",
    "LOG_REDACT_PATHS",
    "LOG_RING_BUFFER_SIZE",
    "LOG_HTTP_URL",
    "LOG_USE_DOTENV",
)


class CollectingHandler(Handler):
    """Handler that keeps every emitted ``(record, formatted)`` pair."""

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        self.records: list[LogRecord] = []
        self.formatted: list[Any] = []
        self.flushed = 0
        self.closed = 0

    def emit(self, record: LogRecord, formatted: Any) -> None:
        self.records.append(record)
        self.formatted.append(formatted)

    def flush(self) -> None:
        self.flushed += 1

    def close(self) -> None:
        self.closed += 1


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    LEVELS._reset_for_testing()
    PALETTE._reset_for_testing()
    REGISTRY._reset_for_testing()
    yield
    LEVELS._reset_for_testing()
    PALETTE._reset_for_testing()
    REGISTRY._reset_for_testing()


@pytest.fixture
def record_console() -> Console:
    return Console(file=StringIO(), record=True, width=160, color_system=None)


@pytest.fixture
def collector() -> CollectingHandler:
    return CollectingHandler()


@pytest.fixture
def make_collector() -> Callable[..., CollectingHandler]:
    return CollectingHandler
