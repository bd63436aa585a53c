"""Domain values used by the logging pipeline."""

from __future__ import annotations

from .events import EventEmitter, LogEvent
from .levels import DEFAULT, LEVELS, NPM, SYSLOG, LevelRegistry, LogLevel
from .palettes import CONSOLE_STYLE_THEMES, DEFAULT_LEVEL_STYLES
from .record import AUTO, STD_TIME_FUNCTIONS, LogRecord, default_base

__all__ = [
    "AUTO",
    "CONSOLE_STYLE_THEMES",
    "DEFAULT",
    "DEFAULT_LEVEL_STYLES",
    "EventEmitter",
    "LEVELS",
    "LevelRegistry",
    "LogEvent",
    "LogLevel",
    "LogRecord",
    "NPM",
    "STD_TIME_FUNCTIONS",
    "SYSLOG",
    "default_base",
]
