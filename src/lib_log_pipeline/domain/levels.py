"""Log level abstraction plus the process-wide custom level registry.

Purpose
-------
Offer the numeric severity scale shared by loggers, handlers, and formatters.
Lower numbers are more severe: ``FATAL`` (0) through ``TRACE`` (5). ``SILENT``
(-1) is a threshold sentinel that disables output; it is never a loggable
level.

Contents
--------
* :class:`LogLevel` enum with name/number conversion and gating helpers.
* Predefined level sets (``DEFAULT``, ``NPM``, ``SYSLOG``).
* :class:`LevelRegistry` and its module instance :data:`LEVELS` holding levels
  registered at runtime through :meth:`Logger.add_level`.

System Role
-----------
Foundation of the pipeline. The static table is what :class:`LogRecord` uses to
derive ``level_name``; the registry is what loggers consult when building their
level methods.
"""

from __future__ import annotations

from enum import IntEnum
from types import MappingProxyType
from typing import Mapping


class LogLevel(IntEnum):
    """Enumerated built-in severities (lower value = more severe)."""

    SILENT = -1
    FATAL = 0
    ERROR = 1
    WARN = 2
    INFO = 3
    DEBUG = 4
    TRACE = 5

    @property
    def severity(self) -> str:
        """Return the lowercase level name used in records."""

        return self.name.lower()

    @classmethod
    def to_name(cls, number: int) -> str | None:
        """Return the static name for ``number`` or ``None`` when unknown."""
        return _NUMBER_TO_NAME.get(number)

    @classmethod
    def to_number(cls, name: str) -> int | None:
        """Return the static number for ``name`` (case-insensitive)."""
        return _NAME_TO_NUMBER.get(name.strip().lower())

    @classmethod
    def is_level_enabled(cls, threshold: int, candidate: int) -> bool:
        """Return ``True`` when ``candidate`` passes ``threshold``.

        Examples
        --------
        >>> LogLevel.is_level_enabled(LogLevel.INFO, LogLevel.WARN)
        True
        >>> LogLevel.is_level_enabled(LogLevel.INFO, LogLevel.DEBUG)
        False
        >>> LogLevel.is_level_enabled(LogLevel.SILENT, LogLevel.FATAL)
        False
        """
        if threshold == cls.SILENT or candidate == cls.SILENT:
            return False
        return candidate <= threshold


_NAME_TO_NUMBER: Mapping[str, int] = MappingProxyType({level.severity: int(level) for level in LogLevel})
_NUMBER_TO_NAME: Mapping[int, str] = MappingProxyType({int(level): level.severity for level in LogLevel})

DEFAULT: Mapping[str, int] = MappingProxyType(
    {"fatal": 0, "error": 1, "warn": 2, "info": 3, "debug": 4, "trace": 5},
)
NPM: Mapping[str, int] = MappingProxyType(
    {"error": 0, "warn": 1, "info": 2, "http": 3, "verbose": 4, "debug": 5, "silly": 6},
)
SYSLOG: Mapping[str, int] = MappingProxyType(
    {"emerg": 0, "alert": 1, "crit": 2, "error": 3, "warning": 4, "notice": 5, "info": 6, "debug": 7},
)


class LevelRegistry:
    """Process-scoped registry of custom levels.

    Populated only through :meth:`register`; entries are never removed except
    by the test helper. Re-registering a name overwrites its value.
    """

    def __init__(self) -> None:
        self._custom: dict[str, int] = {}

    def register(self, name: str, value: int) -> None:
        """Register ``name`` with numeric ``value``."""
        if not isinstance(name, str) or not name.isidentifier() or name != name.lower() or name.startswith("_"):
            raise ValueError(f"Custom level name must be a lowercase identifier: {name!r}")
        if name == "silent":
            raise ValueError("'silent' is a threshold sentinel and cannot be registered")
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"Custom level value must be a non-negative int: {value!r}")
        self._custom[name] = value

    def value_of(self, name: str) -> int | None:
        normalized = name.strip().lower()
        if normalized in self._custom:
            return self._custom[normalized]
        return LogLevel.to_number(normalized)

    def name_of(self, value: int) -> str | None:
        """Return the level name for ``value`` (custom levels first)."""
        for name, number in self._custom.items():
            if number == value:
                return name
        return LogLevel.to_name(value)

    def custom(self) -> dict[str, int]:
        return dict(self._custom)

    def levels(self) -> dict[str, int]:
        """Return the merged ``name -> value`` map of default and custom levels."""
        return {**DEFAULT, **self._custom}

    def resolve(self, value: str | int) -> int:
        """Normalise a level given by name or number into its numeric value.

        Raises
        ------
        ValueError
            When ``value`` is an unknown level name.
        TypeError
            When ``value`` is neither ``str`` nor ``int``.

        Examples
        --------
        >>> LEVELS.resolve("warn")
        2
        >>> LEVELS.resolve(4)
        4
        >>> LEVELS.resolve("verbose")
        Traceback (most recent call last):
        ...
        ValueError: Unknown log level: 'verbose'
        """
        if isinstance(value, str):
            number = self.value_of(value)
            if number is None:
                raise ValueError(f"Unknown log level: {value!r}")
            return number
        if isinstance(value, int) and not isinstance(value, bool):
            return int(value)
        raise TypeError(f"Invalid log level: {value!r}")

    def _reset_for_testing(self) -> None:
        self._custom.clear()


LEVELS = LevelRegistry()
#: Shared registry consulted by every logger in the process.


__all__ = ["DEFAULT", "LEVELS", "LevelRegistry", "LogLevel", "NPM", "SYSLOG"]
