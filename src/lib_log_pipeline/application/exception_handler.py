"""Capture uncaught exceptions and unhandled async failures as log records.

Purpose
-------
Route process-level failures (``sys.excepthook``, ``threading.excepthook``,
and an asyncio loop's exception handler) through the logger's handlers so
crashes end up in the same sinks as regular records.

Contents
--------
* :class:`ExceptionHandler` – idempotent hook installer with a re-entrancy
  guard and an optional suppression callback.

System Role
-----------
Standalone companion to :class:`~lib_log_pipeline.application.logger.Logger`.
Records go only to handlers that opted in through ``handle_exceptions``
(uncaught exceptions, ``FATAL``) or ``handle_rejections`` (asyncio failures,
``ERROR``); afterwards ``LogEvent.EXCEPTION`` fires on the logger's emitter.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
import traceback
from contextlib import suppress
from types import TracebackType
from typing import TYPE_CHECKING, Any, Callable

from lib_log_pipeline.domain.events import LogEvent
from lib_log_pipeline.domain.levels import LogLevel
from lib_log_pipeline.domain.record import LogRecord

if TYPE_CHECKING:  # pragma: no cover
    from .logger import Logger

LOGGER = logging.getLogger(__name__)

SuppressCallback = Callable[[BaseException, str], Any]

EXCEPTION = "exception"
REJECTION = "rejection"


def _location(tb: TracebackType | None) -> dict[str, Any]:
    if tb is None:
        return {}
    frames = traceback.extract_tb(tb)
    if not frames:
        return {}
    last = frames[-1]
    return {"filename": last.filename, "lineno": last.lineno, "function": last.name}


def _last_resort(message: str, exc: BaseException) -> None:
    with suppress(OSError, ValueError):
        sys.stderr.write(f"[lib_log_pipeline] {message}: {exc!r}\n")


class ExceptionHandler:
    """Install global failure hooks that log through ``logger``.

    Parameters
    ----------
    logger:
        Logger whose handlers and emitter receive the captured failures.
    on_error:
        ``callback(error, kind)``; returning ``True`` suppresses logging and
        the previously installed hook for that failure. ``kind`` is
        ``"exception"`` or ``"rejection"``.
    loop:
        Asyncio loop whose exception handler should be captured.
    chain:
        Call the previously installed hook after logging (default ``True``)
        so the interpreter still prints tracebacks.
    """

    def __init__(
        self,
        logger: "Logger",
        *,
        on_error: SuppressCallback | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        chain: bool = True,
    ) -> None:
        self._logger = logger
        self._on_error = on_error
        self._loop = loop
        self._chain = chain
        self._registered = False
        self._dispatching = False
        self._previous_excepthook: Callable[..., Any] | None = None
        self._previous_threading_hook: Callable[..., Any] | None = None
        self._previous_loop_handler: Callable[..., Any] | None = None

    @property
    def registered(self) -> bool:
        return self._registered

    def register(self) -> None:
        """Install the hooks (repeated calls are ignored)."""
        if self._registered:
            return
        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._handle_sys_exception
        self._previous_threading_hook = threading.excepthook
        threading.excepthook = self._handle_thread_exception
        if self._loop is not None:
            self._previous_loop_handler = self._loop.get_exception_handler()
            self._loop.set_exception_handler(self._handle_loop_exception)
        self._registered = True

    def deregister(self) -> None:
        """Restore the hooks that were active before :meth:`register`."""
        if not self._registered:
            return
        if sys.excepthook == self._handle_sys_exception:
            sys.excepthook = self._previous_excepthook or sys.__excepthook__
        if threading.excepthook == self._handle_thread_exception:
            threading.excepthook = self._previous_threading_hook or threading.__excepthook__
        if self._loop is not None:
            self._loop.set_exception_handler(self._previous_loop_handler)
        self._registered = False

    # ------------------------------------------------------------------
    # Hook entry points

    def _handle_sys_exception(
        self,
        exc_type: type[BaseException],
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        def previous() -> None:
            hook = self._previous_excepthook or sys.__excepthook__
            hook(exc_type, exc_value, exc_tb)

        if issubclass(exc_type, KeyboardInterrupt):
            previous()
            return
        error = exc_value if exc_value is not None else exc_type()
        self._capture(error, EXCEPTION, {"type": EXCEPTION, **_location(exc_tb)}, previous)

    def _handle_thread_exception(self, args: threading.ExceptHookArgs) -> None:
        def previous() -> None:
            hook = self._previous_threading_hook or threading.__excepthook__
            hook(args)

        if args.exc_type is SystemExit:
            previous()
            return
        error = args.exc_value if args.exc_value is not None else args.exc_type()
        meta = {"type": EXCEPTION, **_location(args.exc_traceback)}
        if args.thread is not None:
            meta["thread"] = args.thread.name
        self._capture(error, EXCEPTION, meta, previous)

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        def previous() -> None:
            if self._previous_loop_handler is not None:
                self._previous_loop_handler(loop, context)
            else:
                loop.default_exception_handler(context)

        error = context.get("exception")
        if not isinstance(error, BaseException):
            error = RuntimeError(context.get("message") or "Unhandled rejection")
        meta: dict[str, Any] = {"type": REJECTION}
        if context.get("message"):
            meta["context_message"] = context["message"]
        self._capture(error, REJECTION, meta, previous)

    # ------------------------------------------------------------------
    # Shared capture path

    def _capture(self, error: BaseException, kind: str, meta: dict[str, Any], previous: Callable[[], None]) -> None:
        if self._dispatching:
            _last_resort("exception raised while logging a captured failure", error)
            return
        try:
            if self._suppressed(error, kind):
                return
            self._dispatching = True
            try:
                self._dispatch(error, kind, meta)
            finally:
                self._dispatching = False
        except Exception as exc:  # noqa: BLE001
            _last_resort("exception handler failed", exc)
        if self._chain:
            try:
                previous()
            except Exception as exc:  # noqa: BLE001
                _last_resort("previous exception hook failed", exc)

    def _suppressed(self, error: BaseException, kind: str) -> bool:
        if self._on_error is None:
            return False
        try:
            return self._on_error(error, kind) is True
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("on_error callback raised; continuing with capture", exc_info=exc)
            return False

    def _dispatch(self, error: BaseException, kind: str, meta: dict[str, Any]) -> None:
        level = LogLevel.FATAL if kind == EXCEPTION else LogLevel.ERROR
        flag = "handle_exceptions" if kind == EXCEPTION else "handle_rejections"
        record = LogRecord.create(
            level=int(level),
            name=self._logger.name,
            msg=str(error) or type(error).__name__,
            fields={self._logger.error_key: error, **meta},
        )
        for handler in self._logger.handlers:
            if not getattr(handler, flag, False):
                continue
            try:
                handler.handle(record)
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Handler %r failed on a captured %s", handler, kind, exc_info=exc)
        try:
            self._logger.emitter.fire(LogEvent.EXCEPTION, {"error": error, "record": record, "type": kind})
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Exception listener failed", exc_info=exc)


__all__ = ["EXCEPTION", "ExceptionHandler", "REJECTION"]
