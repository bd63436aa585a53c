from __future__ import annotations

import sys
from io import StringIO
from typing import Any, Iterator

import httpx
import pytest
from rich.console import Console

import lib_log_pipeline as log
from lib_log_pipeline import __init__conf__
from lib_log_pipeline import ConsoleHandler, HttpHandler, Logger, RingBufferHandler
from lib_log_pipeline.domain.palettes import CONSOLE_STYLE_THEMES


@pytest.fixture(autouse=True)
def _shutdown_loggers() -> Iterator[None]:
    yield
    for name in list(Logger.get_loggers()):
        log.shutdown(name)


def _configure(name: str = "svc", **options: Any) -> Logger:
    log.get_logger(name, base=None, timestamp=False)
    return log.basic_config(name=name, **options)


def _console() -> Console:
    return Console(file=StringIO(), record=True, width=160, color_system=None)


def _console_handler(logger: Logger) -> ConsoleHandler:
    return next(handler for handler in logger.handlers if isinstance(handler, ConsoleHandler))


def test_basic_config_writes_plain_lines_to_the_console() -> None:
    console = _console()
    logger = _configure(level="debug", console=console, no_color=True, fields={"zone": "eu"})

    logger.debug("ready")
    logger.info({"port": 80}, "listening")

    assert console.export_text().splitlines() == ["DEBUG [svc] ready  zone=eu", "INFO [svc] listening  zone=eu port=80"]


def test_basic_config_coloured_output_uses_badges() -> None:
    console = _console()
    logger = _configure(console=console, theme="classic")

    logger.info("ready")

    assert console.export_text().strip() == "INFO  [svc] ready"


def test_basic_config_drops_stack_traces_from_console_errors() -> None:
    console = _console()
    logger = _configure(console=console, no_color=True)

    logger.error(ValueError("broken"), "request failed")

    line = console.export_text().strip()
    assert line.startswith("ERROR [svc] request failed  err=")
    assert '"type": "ValueError"' in line
    assert "stack" not in line


def test_reconfiguring_replaces_handlers() -> None:
    first = _configure(console=_console(), ring_buffer_size=5)
    second = _configure(console=_console())

    assert first is second
    assert len(second.handlers) == 1
    assert isinstance(second.handlers[0], ConsoleHandler)


def test_environment_overrides_level_and_colour(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "warn")
    monkeypatch.setenv("LOG_NO_COLOR", "1")
    console = _console()

    logger = _configure(level="trace", console=console)
    logger.info("hidden")
    logger.warn("shown")

    assert logger.level_name == "warn"
    assert _console_handler(logger).colors is False
    assert console.export_text().strip() == "WARN [svc] shown"


def test_invalid_level_is_rejected_before_handlers_change(monkeypatch: pytest.MonkeyPatch) -> None:
    logger = _configure(console=_console())
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    with pytest.raises(ValueError, match="Unknown log level"):
        _configure(console=_console())

    assert len(logger.handlers) == 1


def test_environment_theme_and_styles(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_CONSOLE_THEME", "neon")
    monkeypatch.setenv("LOG_CONSOLE_STYLES", "INFO=green, ERROR = bold red")

    logger = _configure(console=_console(), console_styles={"WARN": "blue"})

    styles = _console_handler(logger)._styles
    assert styles["info"] == "green"
    assert styles["error"] == "bold red"
    assert styles["warn"] == "blue"
    assert styles["debug"] == CONSOLE_STYLE_THEMES["neon"]["debug"]


def test_unknown_theme_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_CONSOLE_THEME", "sepia")

    with pytest.raises(ValueError, match="Unknown console theme"):
        _configure(console=_console())


def test_environment_redact_paths_extend_arguments(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_REDACT_PATHS", "user.token, password")
    console = _console()

    logger = _configure(console=console, no_color=True, redact_paths=["user.ssn"])
    logger.info({"user": {"ssn": "1", "token": "t"}, "password": "p"}, "login")

    text = console.export_text()
    assert '"ssn": "[REDACTED]"' in text
    assert '"token": "[REDACTED]"' in text
    assert "password=[REDACTED]" in text


def test_ring_buffer_size_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_RING_BUFFER_SIZE", "2")

    logger = _configure(console=_console(), ring_buffer_size=50)
    for n in range(3):
        logger.info("n=%d", n)

    buffer = next(handler for handler in logger.handlers if isinstance(handler, RingBufferHandler))
    assert buffer.capacity == 2
    assert [record["msg"] for record in buffer] == ["n=1", "n=2"]


def test_http_handler_is_attached_and_flushed_on_shutdown(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[httpx.Request] = []

    def receive(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    monkeypatch.setenv("LOG_HTTP_URL", "https://collector.test/env")
    client = httpx.Client(transport=httpx.MockTransport(receive))

    logger = _configure(
        name="svc",
        console=_console(),
        http_url="https://collector.test/arg",
        http_options={"interval": None, "client": client},
    )
    logger.info("shipped")
    http = next(handler for handler in logger.handlers if isinstance(handler, HttpHandler))
    log.shutdown("svc")

    assert http.url == "https://collector.test/env"
    assert len(seen) == 1
    assert b'"msg": "shipped"' in seen[0].content
    assert logger.handlers == []


def test_capture_exceptions_installs_and_releases_hooks(monkeypatch: pytest.MonkeyPatch) -> None:
    previous: list[Any] = []
    monkeypatch.setattr(sys, "excepthook", lambda *args: previous.append(args))
    original = sys.excepthook
    console = _console()

    logger = _configure(console=console, no_color=True, capture_exceptions=True)
    assert sys.excepthook is not original
    assert _console_handler(logger).handle_exceptions

    try:
        raise RuntimeError("crashed")
    except RuntimeError as exc:
        sys.excepthook(type(exc), exc, exc.__traceback__)
    log.shutdown("svc")

    assert sys.excepthook is original
    assert "FATAL [svc] crashed" in console.export_text()
    assert len(previous) == 1


def test_module_level_functions_use_the_default_logger() -> None:
    console = _console()
    _configure("default", console=console, no_color=True)

    log.info("from module")
    log.debug("gated")

    assert log.get_logger() is Logger.get_logger("default")
    assert console.export_text().strip() == "INFO [default] from module"


def test_facade_add_level() -> None:
    console = _console()
    logger = _configure(level=30, console=console, no_color=True)

    log.add_level("audit", 25, color="bold blue")
    logger.audit("user login")  # type: ignore[attr-defined]

    assert console.export_text().strip() == "AUDIT [svc] user login"


@pytest.mark.parametrize("theme", sorted(CONSOLE_STYLE_THEMES))
def test_logdemo_emits_one_record_per_level(theme: str) -> None:
    console = _console()

    result = log.logdemo(theme=theme.upper(), console=console)

    assert result["theme"] == theme
    assert result["styles"] == dict(CONSOLE_STYLE_THEMES[theme])
    assert [record["level_name"] for record in result["records"]] == ["trace", "debug", "info", "warn", "error", "fatal"]
    assert f"[{theme}] Information message" in console.export_text()


def test_logdemo_respects_level_and_rejects_unknown_theme() -> None:
    result = log.logdemo(theme="dark", level="warn", console=_console())

    assert len(result["records"]) == 3
    with pytest.raises(ValueError, match="Unknown console theme"):
        log.logdemo(theme="sepia", console=_console())


def test_summary_info_lists_metadata() -> None:
    banner = log.summary_info()

    assert banner.startswith("Info for lib_log_pipeline:\n")
    assert "version" in banner
    assert __init__conf__.version in banner
