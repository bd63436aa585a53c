from __future__ import annotations

import asyncio
import sys
import threading
from typing import Any, Callable

import pytest

from lib_log_pipeline.application.exception_handler import EXCEPTION, REJECTION, ExceptionHandler
from lib_log_pipeline.application.logger import Logger
from lib_log_pipeline.domain.events import LogEvent
from lib_log_pipeline.domain.levels import LogLevel


def _raised(error: BaseException) -> tuple[type[BaseException], BaseException, Any]:
    try:
        raise error
    except BaseException as caught:  # noqa: BLE001
        return type(caught), caught, caught.__traceback__


@pytest.fixture
def previous_hook(monkeypatch: pytest.MonkeyPatch) -> list[tuple[Any, ...]]:
    calls: list[tuple[Any, ...]] = []
    monkeypatch.setattr(sys, "excepthook", lambda *args: calls.append(args))
    return calls


def _wired(make_collector: Callable[..., Any], **options: Any) -> tuple[Logger, Any, Any]:
    opted_in = make_collector(handle_exceptions=True, handle_rejections=True)
    regular = make_collector()
    logger = Logger(name="crash", handlers=[opted_in, regular], base=None, timestamp=False)
    return logger, opted_in, regular


def test_register_and_deregister_swap_hooks(previous_hook: list[Any], make_collector: Callable[..., Any]) -> None:
    original_sys = sys.excepthook
    original_thread = threading.excepthook
    logger, _, _ = _wired(make_collector)
    capture = ExceptionHandler(logger)

    capture.register()
    capture.register()
    assert capture.registered
    assert sys.excepthook == capture._handle_sys_exception
    assert threading.excepthook == capture._handle_thread_exception

    capture.deregister()
    capture.deregister()
    assert not capture.registered
    assert sys.excepthook is original_sys
    assert threading.excepthook is original_thread


def test_uncaught_exception_reaches_opted_in_handlers_only(
    previous_hook: list[Any], make_collector: Callable[..., Any]
) -> None:
    logger, opted_in, regular = _wired(make_collector)
    capture = ExceptionHandler(logger)
    capture.register()
    events: list[dict[str, Any]] = []
    logger.add_listener(LogEvent.EXCEPTION, events.append)
    try:
        exc_type, exc_value, exc_tb = _raised(RuntimeError("boom"))
        sys.excepthook(exc_type, exc_value, exc_tb)
    finally:
        capture.deregister()

    assert regular.records == []
    record = opted_in.records[0]
    assert record["level"] == LogLevel.FATAL
    assert record["msg"] == "boom"
    assert record["err"] is exc_value
    assert record["type"] == EXCEPTION
    assert record["function"] == "_raised"
    assert events[0]["type"] == EXCEPTION
    assert events[0]["error"] is exc_value
    assert len(previous_hook) == 1


def test_previous_hook_is_skipped_when_not_chaining(previous_hook: list[Any], make_collector: Callable[..., Any]) -> None:
    logger, opted_in, _ = _wired(make_collector)
    capture = ExceptionHandler(logger, chain=False)
    capture.register()
    try:
        capture._handle_sys_exception(*_raised(ValueError("quiet")))
    finally:
        capture.deregister()

    assert len(opted_in.records) == 1
    assert previous_hook == []


def test_suppression_callback_skips_logging_and_previous_hook(
    previous_hook: list[Any], make_collector: Callable[..., Any]
) -> None:
    logger, opted_in, _ = _wired(make_collector)
    seen: list[tuple[BaseException, str]] = []

    def on_error(error: BaseException, kind: str) -> bool:
        seen.append((error, kind))
        return True

    capture = ExceptionHandler(logger, on_error=on_error)
    capture.register()
    try:
        capture._handle_sys_exception(*_raised(ValueError("handled elsewhere")))
    finally:
        capture.deregister()

    assert opted_in.records == []
    assert previous_hook == []
    assert seen[0][1] == EXCEPTION


def test_failing_suppression_callback_does_not_block_capture(
    previous_hook: list[Any], make_collector: Callable[..., Any]
) -> None:
    logger, opted_in, _ = _wired(make_collector)

    def on_error(error: BaseException, kind: str) -> bool:
        raise RuntimeError("callback broke")

    capture = ExceptionHandler(logger, on_error=on_error)
    capture.register()
    try:
        capture._handle_sys_exception(*_raised(ValueError("still logged")))
    finally:
        capture.deregister()

    assert [record["msg"] for record in opted_in.records] == ["still logged"]


def test_keyboard_interrupt_goes_straight_to_previous_hook(
    previous_hook: list[Any], make_collector: Callable[..., Any]
) -> None:
    logger, opted_in, _ = _wired(make_collector)
    capture = ExceptionHandler(logger)
    capture.register()
    try:
        capture._handle_sys_exception(*_raised(KeyboardInterrupt()))
    finally:
        capture.deregister()

    assert opted_in.records == []
    assert len(previous_hook) == 1


def test_reentrant_failures_fall_back_to_stderr(
    previous_hook: list[Any], make_collector: Callable[..., Any], capsys: pytest.CaptureFixture[str]
) -> None:
    logger, _, _ = _wired(make_collector)
    capture = ExceptionHandler(logger, chain=False)

    def crash_again(payload: dict[str, Any]) -> None:
        capture._handle_sys_exception(*_raised(OSError("nested")))

    logger.add_listener(LogEvent.EXCEPTION, crash_again)
    capture._handle_sys_exception(*_raised(ValueError("outer")))

    assert "exception raised while logging a captured failure" in capsys.readouterr().err


def test_thread_exceptions_are_captured(make_collector: Callable[..., Any], monkeypatch: pytest.MonkeyPatch) -> None:
    previous: list[Any] = []
    monkeypatch.setattr(threading, "excepthook", previous.append)
    logger, opted_in, _ = _wired(make_collector)
    capture = ExceptionHandler(logger)
    capture.register()

    def worker() -> None:
        raise LookupError("in thread")

    try:
        thread = threading.Thread(target=worker, name="job-runner")
        thread.start()
        thread.join()
    finally:
        capture.deregister()

    record = opted_in.records[0]
    assert record["msg"] == "in thread"
    assert record["thread"] == "job-runner"
    assert len(previous) == 1


def test_loop_failures_are_logged_as_rejections(make_collector: Callable[..., Any]) -> None:
    logger, opted_in, _ = _wired(make_collector)
    loop = asyncio.new_event_loop()
    forwarded: list[dict[str, Any]] = []
    loop.set_exception_handler(lambda current, context: forwarded.append(context))
    capture = ExceptionHandler(logger, loop=loop)
    capture.register()
    try:
        loop.call_exception_handler({"message": "Task exception was never retrieved", "exception": KeyError("job")})
        loop.call_exception_handler({"message": "Future was cancelled oddly"})
    finally:
        capture.deregister()
        loop.close()

    first, second = opted_in.records
    assert first["level"] == LogLevel.ERROR
    assert first["type"] == REJECTION
    assert isinstance(first["err"], KeyError)
    assert first["context_message"] == "Task exception was never retrieved"
    assert isinstance(second["err"], RuntimeError)
    assert second["msg"] == "Future was cancelled oddly"
    assert len(forwarded) == 2


def test_rejections_skip_handlers_without_the_flag(make_collector: Callable[..., Any]) -> None:
    exceptions_only = make_collector(handle_exceptions=True)
    logger = Logger(name="crash", handlers=[exceptions_only], base=None, timestamp=False)
    loop = asyncio.new_event_loop()
    loop.set_exception_handler(lambda current, context: None)
    capture = ExceptionHandler(logger, loop=loop)
    capture.register()
    try:
        loop.call_exception_handler({"message": "lost", "exception": ValueError("x")})
    finally:
        capture.deregister()
        loop.close()

    assert exceptions_only.records == []
