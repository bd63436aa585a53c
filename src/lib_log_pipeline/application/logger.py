"""Logger orchestration: argument normalisation, inheritance, and the write pipeline.

Purpose
-------
Turn a level-method call into a :class:`LogRecord` and deliver it to every
handler in the logger tree, without ever raising into the caller.

Contents
--------
* :func:`interpolate` – printf-style message formatting.
* :class:`Logger` – level methods, child loggers, handler/listener wiring,
  lifecycle, and the process-wide ``get_logger``/``add_level`` helpers.

System Role
-----------
The application core. Per write it runs: silent check → field merge →
:meth:`LogRecord.create` → custom level-name patch → redaction →
serialisation → ``LogEvent.RECORD`` → :meth:`HandlerManager.dispatch`.
Children share their root's :class:`HandlerManager` and
:class:`EventEmitter`; closing any logger of a tree therefore closes the
handlers of the whole tree, so call :meth:`Logger.close` on one logger only.
"""

from __future__ import annotations

import logging
import os
import re
import sys
import weakref
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Sequence

from lib_log_pipeline.adapters.formatters.colorize import PALETTE
from lib_log_pipeline.adapters.redactor import Redactor
from lib_log_pipeline.adapters.serializers import Serializer, add_serializers, apply, is_error_like, safe_json
from lib_log_pipeline.application.ports.redactor import RedactorPort
from lib_log_pipeline.domain.events import EventEmitter, Listener, LogEvent
from lib_log_pipeline.domain.levels import LEVELS, LogLevel
from lib_log_pipeline.domain.record import AUTO, STD_TIME_FUNCTIONS, LogRecord

from .handler import Handler
from .handler_manager import HandlerManager
from .registry import REGISTRY

LOGGER = logging.getLogger(__name__)

LevelMethod = Callable[..., None]

_SPECIFIER = re.compile(r"%[sdjoO%]")
_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_CHILD_OVERRIDES = frozenset({"level", "serializers", "msg_prefix", "redact", "name"})


def _noop(*_args: Any, **_kwargs: Any) -> None:
    return None


def _as_number(value: Any) -> str:
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "NaN"
    if number.is_integer():
        return str(int(number))
    return str(number)


_CONVERTERS: Mapping[str, Callable[[Any], str]] = {
    "s": str,
    "d": _as_number,
    "j": safe_json,
    "o": safe_json,
    "O": lambda value: safe_json(value, indent=2),
}


def interpolate(fmt: str, args: Sequence[Any]) -> str:
    """Substitute ``%s %d %j %o %O`` in ``fmt`` with ``args`` and ``%%`` with ``%``.

    Specifiers without a remaining argument stay verbatim; surplus arguments
    are ignored.

    Examples
    --------
    >>> interpolate("%s items, %d%%", ["foo", 50])
    'foo items, 50%'
    >>> interpolate("%s and %s", ["one"])
    'one and %s'
    >>> interpolate("payload %j", [{"a": 1}])
    'payload {"a": 1}'
    >>> interpolate("%d", ["abc"])
    'NaN'
    """

    position = 0

    def substitute(match: "re.Match[str]") -> str:
        nonlocal position
        specifier = match.group()
        if specifier == "%%":
            return "%"
        if position >= len(args):
            return specifier
        value = args[position]
        position += 1
        return _CONVERTERS[specifier[1]](value)

    return _SPECIFIER.sub(substitute, fmt)


def _call_site() -> dict[str, Any] | None:
    """Return the first stack frame outside this package."""
    frame = sys._getframe(1)
    while frame is not None and frame.f_code.co_filename.startswith(_PACKAGE_DIR + os.sep):
        frame = frame.f_back
    if frame is None:
        return None
    return {"func": frame.f_code.co_name, "file": frame.f_code.co_filename, "line": frame.f_lineno}


def _level_label(number: int) -> str:
    if number == LogLevel.SILENT:
        return "silent"
    return LEVELS.name_of(number) or ""


def _resolve_timestamp(value: bool | str | Callable[[], Any]) -> bool | Callable[[], Any]:
    if isinstance(value, str):
        try:
            return STD_TIME_FUNCTIONS[value]
        except KeyError:
            raise ValueError(f"Unknown timestamp function: {value!r}") from None
    return value


class Logger:
    """Structured logger with per-level methods and child inheritance.

    Parameters
    ----------
    name:
        Logger name written into every record.
    level:
        Threshold by name or number; ``"silent"`` discards everything.
    serializers:
        Field name to callable map applied after redaction.
    fields:
        Bindings merged into every record.
    base:
        :data:`AUTO` (hostname, pid, session id), ``None``, or a mapping.
    timestamp:
        ``True``, ``False``, a callable, or a :data:`STD_TIME_FUNCTIONS` key.
    message_key / error_key / nested_key:
        Record layout switches.
    msg_prefix:
        Text prepended to every message.
    enabled:
        ``False`` turns every level method into a no-op.
    handlers:
        Handlers attached at construction.
    redact:
        Paths or a :class:`Redactor` configuration mapping.
    src:
        Add a ``caller`` field (function, file, line) to every record.

    Examples
    --------
    >>> from lib_log_pipeline.adapters.ring_buffer import RingBufferHandler
    >>> buffer = RingBufferHandler(capacity=10)
    >>> logger = Logger(name="api", handlers=[buffer], base=None, timestamp=False)
    >>> logger.info({"request_id": "abc"}, "done in %dms", 42)
    >>> record = buffer.snapshot()[0]
    >>> record["msg"], record["request_id"], record["level_name"]
    ('done in 42ms', 'abc', 'info')
    """

    trace: LevelMethod
    debug: LevelMethod
    info: LevelMethod
    warn: LevelMethod
    error: LevelMethod
    fatal: LevelMethod

    def __init__(
        self,
        *,
        name: str = "default",
        level: str | int | None = LogLevel.INFO,
        serializers: Mapping[str, Serializer] | None = None,
        fields: Mapping[str, Any] | None = None,
        base: Mapping[str, Any] | None = AUTO,
        timestamp: bool | str | Callable[[], Any] = True,
        message_key: str = "msg",
        error_key: str = "err",
        nested_key: str | None = None,
        msg_prefix: str = "",
        enabled: bool = True,
        handlers: Iterable[Handler] | None = None,
        redact: Sequence[str] | Mapping[str, Any] | RedactorPort | None = None,
        src: bool = False,
    ) -> None:
        emitter = EventEmitter()
        for event in LogEvent.ALL:
            emitter.add_valid_event(event)
        self._setup(
            name=name or "default",
            level=level,
            serializers=dict(serializers) if serializers else None,
            parent_fields={},
            bindings=dict(fields or {}),
            base=base,
            timestamp=_resolve_timestamp(timestamp),
            message_key=message_key or "msg",
            error_key=error_key or "err",
            nested_key=nested_key,
            msg_prefix=msg_prefix or "",
            enabled=enabled,
            redactor=self._build_redactor(redact),
            src=src,
            manager=HandlerManager(),
            emitter=emitter,
            parent=None,
        )
        for handler in handlers or ():
            self.add_handler(handler)

    def _setup(
        self,
        *,
        name: str,
        level: str | int | None,
        serializers: dict[str, Serializer] | None,
        parent_fields: dict[str, Any],
        bindings: dict[str, Any],
        base: Mapping[str, Any] | None,
        timestamp: bool | Callable[[], Any],
        message_key: str,
        error_key: str,
        nested_key: str | None,
        msg_prefix: str,
        enabled: bool,
        redactor: RedactorPort | None,
        src: bool,
        manager: HandlerManager,
        emitter: EventEmitter,
        parent: "Logger | None",
    ) -> None:
        self._name = name
        self._level = self._resolve_level(level)
        self._serializers = serializers
        self._parent_fields = parent_fields
        self._bindings = bindings
        self._fields = {**parent_fields, **bindings}
        self._base = base
        self._timestamp = timestamp
        self._message_key = message_key
        self._error_key = error_key
        self._nested_key = nested_key
        self._msg_prefix = msg_prefix
        self._enabled = bool(enabled)
        self._silent = False
        self._redactor = redactor
        self._src = bool(src)
        self._handlers = manager
        self._emitter = emitter
        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self._rebuild_methods()
        REGISTRY.track(self)

    @staticmethod
    def _resolve_level(value: str | int | None) -> int:
        if value is None:
            return int(LogLevel.INFO)
        return LEVELS.resolve(value)

    @staticmethod
    def _build_redactor(redact: Any) -> RedactorPort | None:
        if redact is None:
            return None
        if isinstance(redact, RedactorPort):
            return redact
        return Redactor(redact)

    # ------------------------------------------------------------------
    # Process-wide helpers

    @staticmethod
    def get_logger(name: str, **options: Any) -> "Logger":
        """Return the logger registered as ``name`` (options apply on first use only)."""
        return REGISTRY.get_or_create(name, lambda: Logger(name=name, **options))

    @staticmethod
    def get_loggers() -> dict[str, "Logger"]:
        """Return a copy of the named-logger registry."""
        return REGISTRY.named()

    @staticmethod
    def add_level(name: str, value: int, color: str | None = None) -> None:
        """Register a custom level and give every live logger its method.

        Raises
        ------
        ValueError
            When the name is invalid or collides with a :class:`Logger`
            attribute.
        """

        if isinstance(name, str) and hasattr(Logger, name):
            raise ValueError(f"Level name {name!r} collides with a Logger attribute")
        LEVELS.register(name, value)
        for logger in REGISTRY.live():
            logger._rebuild_methods()
        if color:
            PALETTE.add_colors({name: color})

    # ------------------------------------------------------------------
    # Identity, fields, and hierarchy

    @property
    def name(self) -> str:
        return self._name

    @property
    def parent(self) -> "Logger | None":
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def bindings(self) -> dict[str, Any]:
        """Return this logger's own bindings."""
        return dict(self._bindings)

    @property
    def fields(self) -> dict[str, Any]:
        """Return the effective fields (inherited fields overlaid with bindings)."""
        return dict(self._fields)

    @property
    def msg_prefix(self) -> str:
        return self._msg_prefix

    @property
    def error_key(self) -> str:
        return self._error_key

    @property
    def emitter(self) -> EventEmitter:
        return self._emitter

    @property
    def serializers(self) -> dict[str, Serializer]:
        return dict(self._serializers or {})

    @property
    def redactor(self) -> RedactorPort | None:
        return self._redactor

    def set_redact(self, redact: Sequence[str] | Mapping[str, Any] | RedactorPort | None) -> None:
        """Replace this logger's redaction configuration (``None`` disables it)."""
        self._redactor = self._build_redactor(redact)

    def set_bindings(self, bindings: Mapping[str, Any]) -> None:
        """Replace this logger's own bindings wholesale."""
        if not isinstance(bindings, Mapping):
            raise TypeError("bindings must be a mapping")
        self._bindings = dict(bindings)
        self._fields = {**self._parent_fields, **self._bindings}

    def child(self, bindings: Mapping[str, Any] | None = None, **overrides: Any) -> "Logger":
        """Create a logger inheriting fields, handlers, and notifications.

        ``overrides`` may set ``level``, ``serializers`` (merged over the
        parent's), ``msg_prefix``, ``redact``, and ``name``.

        Examples
        --------
        >>> root = Logger(name="root", fields={"service": "api"})
        >>> request = root.child({"request_id": "r1"})
        >>> request.child({"request_id": "r2", "user": "bob"}).fields
        {'service': 'api', 'request_id': 'r2', 'user': 'bob'}
        """

        if bindings is None:
            bindings = {}
        if not isinstance(bindings, Mapping):
            raise TypeError("child() bindings must be a mapping")
        unknown = set(overrides) - _CHILD_OVERRIDES
        if unknown:
            raise TypeError(f"Unsupported child() override(s): {', '.join(sorted(unknown))}")

        serializers = self._serializers
        if "serializers" in overrides:
            serializers = add_serializers(self._serializers, overrides["serializers"])
        redactor = self._build_redactor(overrides["redact"]) if "redact" in overrides else self._redactor

        child = type(self).__new__(type(self))
        child._setup(
            name=overrides.get("name") or self._name,
            level=overrides.get("level", self._level),
            serializers=serializers,
            parent_fields=dict(self._fields),
            bindings=dict(bindings),
            base=self._base,
            timestamp=self._timestamp,
            message_key=self._message_key,
            error_key=self._error_key,
            nested_key=self._nested_key,
            msg_prefix=overrides.get("msg_prefix", self._msg_prefix) or "",
            enabled=self._enabled,
            redactor=redactor,
            src=self._src,
            manager=self._handlers,
            emitter=self._emitter,
            parent=self,
        )
        return child

    # ------------------------------------------------------------------
    # Gates

    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value: str | int) -> None:
        number = self._resolve_level(value)
        if number == self._level:
            return
        previous = self._level
        self._level = number
        self._rebuild_methods()
        self._fire(
            LogEvent.LEVEL_CHANGE,
            {
                "logger": self,
                "name": self._name,
                "previous": previous,
                "previous_name": _level_label(previous),
                "level": number,
                "level_name": _level_label(number),
            },
        )

    @property
    def level_name(self) -> str:
        return _level_label(self._level)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        value = bool(value)
        if value == self._enabled:
            return
        self._enabled = value
        self._rebuild_methods()

    @property
    def silent(self) -> bool:
        """Discard writes after argument evaluation (level methods stay callable)."""
        return self._silent

    @silent.setter
    def silent(self, value: bool) -> None:
        self._silent = bool(value)

    @property
    def levels(self) -> dict[str, int]:
        return LEVELS.levels()

    def is_level_enabled(self, level: str | int) -> bool:
        """Return ``True`` when records at ``level`` would reach the handlers."""
        return self._enabled and LogLevel.is_level_enabled(self._level, LEVELS.resolve(level))

    def _rebuild_methods(self) -> None:
        for level_name, value in LEVELS.levels().items():
            if self._enabled and LogLevel.is_level_enabled(self._level, value):
                method: LevelMethod = self._make_method(value)
            else:
                method = _noop
            setattr(self, level_name, method)

    def _make_method(self, level: int) -> LevelMethod:
        def log_at_level(*args: Any) -> None:
            self._log(level, args)

        return log_at_level

    # ------------------------------------------------------------------
    # Writing

    def log(self, level: str | int, *args: Any) -> None:
        """Log at ``level`` given by name or number."""
        number = LEVELS.resolve(level)
        if self._enabled and LogLevel.is_level_enabled(self._level, number):
            self._log(number, args)

    def _log(self, level: int, args: Sequence[Any]) -> None:
        try:
            msg, call_fields = self._normalize(args)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Logger %r could not interpret its arguments", self._name, exc_info=exc)
            return
        if self._src:
            call_fields.setdefault("caller", _call_site())
        self._write(level, msg, call_fields)

    def _normalize(self, args: Sequence[Any]) -> tuple[str | None, dict[str, Any]]:
        if not args:
            return None, {}
        first, rest = args[0], args[1:]
        if is_error_like(first):
            fields: dict[str, Any] = {self._error_key: first}
            if rest and isinstance(rest[0], str):
                return interpolate(rest[0], rest[1:]), fields
            message = first.message if not isinstance(first, BaseException) else str(first)
            return message, fields
        if isinstance(first, Mapping):
            if rest and isinstance(rest[0], str):
                return interpolate(rest[0], rest[1:]), dict(first)
            return None, dict(first)
        return interpolate(str(first), rest), {}

    def _write(self, level: int, msg: str | None, call_fields: Mapping[str, Any]) -> None:
        if self._silent:
            return
        try:
            if msg is not None and self._msg_prefix:
                msg = self._msg_prefix + msg
            record = LogRecord.create(
                level=level,
                name=self._name,
                msg=msg,
                fields={**self._fields, **call_fields},
                base=self._base,
                timestamp=self._timestamp,
                message_key=self._message_key,
                error_key=self._error_key,
                nested_key=self._nested_key,
            )
            if not record.get("level_name"):
                custom = LEVELS.name_of(level)
                if custom:
                    record = record.evolve({"level_name": custom})
            if self._redactor is not None:
                record = self._redactor.redact(record)
            if self._serializers:
                record = apply(record, self._serializers)
            if self._emitter.has_listeners(LogEvent.RECORD):
                self._fire(LogEvent.RECORD, {"logger": self, "record": record})
            self._handlers.dispatch(record)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Logger %r failed to write a record", self._name, exc_info=exc)

    def _fire(self, event: str, payload: dict[str, Any]) -> None:
        try:
            self._emitter.fire(event, payload)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Listener for %s failed", event, exc_info=exc)

    # ------------------------------------------------------------------
    # Handlers and listeners

    def add_handler(self, handler: Handler) -> None:
        self._handlers.add_handler(handler)
        handler.emitter = self._emitter

    def remove_handler(self, handler: Handler) -> None:
        self._handlers.remove_handler(handler)

    def clear_handlers(self) -> None:
        self._handlers.clear_handlers()

    @property
    def handlers(self) -> list[Handler]:
        return self._handlers.handlers

    def add_listener(self, event: str, listener: Listener) -> None:
        self._emitter.add_listener(event, listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        self._emitter.remove_listener(event, listener)

    # ------------------------------------------------------------------
    # Lifecycle

    def flush(self) -> None:
        """Flush every handler, then fire ``LogEvent.FLUSH``."""
        for handler in self._handlers.handlers:
            try:
                handler.flush()
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Flushing %r failed", handler, exc_info=exc)
        self._fire(LogEvent.FLUSH, {"logger": self})

    def close(self) -> None:
        """Flush and close every handler of the tree, then drop handlers and listeners."""
        self.flush()
        for handler in self._handlers.handlers:
            try:
                handler.close()
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Closing %r failed", handler, exc_info=exc)
        self._handlers.clear_handlers()
        self._emitter.remove_all_listeners()

    def __repr__(self) -> str:
        return f"Logger(name={self._name!r}, level={self.level_name!r})"


__all__ = ["LevelMethod", "Logger", "interpolate"]
