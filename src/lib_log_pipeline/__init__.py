"""Public package surface for the structured logging pipeline.

Import the logger, handlers, and formatters from here; the layered modules
(:mod:`lib_log_pipeline.domain`, :mod:`lib_log_pipeline.application`,
:mod:`lib_log_pipeline.adapters`) stay importable for advanced wiring.
"""

from __future__ import annotations

from .adapters.console.rich_console import ConsoleHandler
from .adapters.formatters import (
    DROP,
    PALETTE,
    AlignFormatter,
    ColorizeFormatter,
    CombinedFormatter,
    ErrorFormatter,
    FilterFormatter,
    Formatter,
    JsonFormatter,
    LabelFormatter,
    MetadataFormatter,
    MillisecondFormatter,
    PrintfFormatter,
    SimpleFormatter,
    TimestampFormatter,
    combine,
)
from .adapters.http import HttpHandler
from .adapters.redactor import Redactor
from .adapters.ring_buffer import RingBufferHandler
from .adapters.serializers import STANDARD_SERIALIZERS, safe_json, serialize_error
from .application.exception_handler import ExceptionHandler
from .application.handler import Handler
from .application.handler_manager import HandlerManager
from .application.logger import Logger, interpolate
from .domain import AUTO, CONSOLE_STYLE_THEMES, LEVELS, STD_TIME_FUNCTIONS, EventEmitter, LogEvent, LogLevel, LogRecord
from .lib_log_pipeline import (
    add_level,
    basic_config,
    debug,
    error,
    fatal,
    get_logger,
    info,
    logdemo,
    shutdown,
    summary_info,
    trace,
    warn,
)

__all__ = [
    "AUTO",
    "AlignFormatter",
    "CONSOLE_STYLE_THEMES",
    "ColorizeFormatter",
    "CombinedFormatter",
    "ConsoleHandler",
    "DROP",
    "ErrorFormatter",
    "EventEmitter",
    "ExceptionHandler",
    "FilterFormatter",
    "Formatter",
    "Handler",
    "HandlerManager",
    "HttpHandler",
    "JsonFormatter",
    "LEVELS",
    "LabelFormatter",
    "LogEvent",
    "LogLevel",
    "LogRecord",
    "Logger",
    "MetadataFormatter",
    "MillisecondFormatter",
    "PALETTE",
    "PrintfFormatter",
    "Redactor",
    "RingBufferHandler",
    "STANDARD_SERIALIZERS",
    "STD_TIME_FUNCTIONS",
    "SimpleFormatter",
    "TimestampFormatter",
    "add_level",
    "basic_config",
    "combine",
    "debug",
    "error",
    "fatal",
    "get_logger",
    "info",
    "interpolate",
    "logdemo",
    "safe_json",
    "serialize_error",
    "shutdown",
    "summary_info",
    "trace",
    "warn",
]
