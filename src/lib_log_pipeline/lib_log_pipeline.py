"""Logging façade that wires domain, application, and adapter layers together.

Purpose
-------
Expose a small, ergonomic API for host applications: obtain loggers, register
levels, and configure the default logger from keyword arguments and ``LOG_*``
environment overrides in one call.

Contents
--------
* Public API: :func:`get_logger`, :func:`add_level`, :func:`basic_config`,
  :func:`shutdown`, :func:`logdemo`, :func:`summary_info`, and module-level
  ``trace``/``debug``/``info``/``warn``/``error``/``fatal``.
* Support helpers: environment parsing and console-style merging.

System Role
-----------
The composition root. Policy lives in :mod:`lib_log_pipeline.application`;
this module only decides which handlers, formatters, and redaction paths the
default logger gets. Environment variables take precedence over arguments so
operators can retune a deployed process without code changes.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from rich.console import Console

from .adapters.console.rich_console import ConsoleHandler
from .adapters.formatters import ErrorFormatter, SimpleFormatter, combine
from .adapters.http import HttpHandler
from .adapters.ring_buffer import RingBufferHandler
from .application.exception_handler import ExceptionHandler
from .application.logger import Logger
from .application.ports.formatter import FormatterPort
from .domain.levels import LEVELS, LogLevel
from .domain.palettes import CONSOLE_STYLE_THEMES

DEFAULT_LOGGER_NAME = "default"

_LOCK = threading.Lock()
_EXCEPTION_HANDLER: ExceptionHandler | None = None


def get_logger(name: str = DEFAULT_LOGGER_NAME, **options: Any) -> Logger:
    """Return the process-wide logger registered as ``name``."""
    return Logger.get_logger(name, **options)


def add_level(name: str, value: int, color: str | None = None) -> None:
    """Register a custom level on every logger (see :meth:`Logger.add_level`)."""
    Logger.add_level(name, value, color)


def _default() -> Logger:
    return Logger.get_logger(DEFAULT_LOGGER_NAME)


def trace(*args: Any) -> None:
    _default().trace(*args)


def debug(*args: Any) -> None:
    _default().debug(*args)


def info(*args: Any) -> None:
    _default().info(*args)


def warn(*args: Any) -> None:
    _default().warn(*args)


def error(*args: Any) -> None:
    _default().error(*args)


def fatal(*args: Any) -> None:
    _default().fatal(*args)


def basic_config(
    *,
    name: str = DEFAULT_LOGGER_NAME,
    level: str | int = LogLevel.INFO,
    theme: str | None = None,
    console_styles: Mapping[str, str] | None = None,
    force_color: bool = False,
    no_color: bool = False,
    console: Console | None = None,
    error_console: Console | None = None,
    console_formatter: FormatterPort | None = None,
    expand_record: bool = False,
    fields: Mapping[str, Any] | None = None,
    redact_paths: Sequence[str] | None = None,
    ring_buffer_size: int | None = None,
    http_url: str | None = None,
    http_options: Mapping[str, Any] | None = None,
    capture_exceptions: bool = False,
) -> Logger:
    """Configure (or reconfigure) the named logger with standard handlers.

    Existing handlers of that logger's tree are closed and replaced.

    Parameters
    ----------
    level:
        Threshold; overridden by ``LOG_LEVEL``.
    theme:
        Name from :data:`CONSOLE_STYLE_THEMES`; overridden by
        ``LOG_CONSOLE_THEME``.
    console_styles:
        ``level -> style`` overrides merged over the theme; entries from
        ``LOG_CONSOLE_STYLES`` (``"INFO=green,ERROR=bold red"``) win.
    force_color / no_color:
        Colour switches; overridden by ``LOG_FORCE_COLOR`` / ``LOG_NO_COLOR``.
    redact_paths:
        Field paths censored before delivery; ``LOG_REDACT_PATHS`` (comma
        separated) adds to them.
    ring_buffer_size:
        Attach a :class:`RingBufferHandler` of this capacity; overridden by
        ``LOG_RING_BUFFER_SIZE`` (``0`` disables).
    http_url:
        Attach an :class:`HttpHandler` posting to this URL; overridden by
        ``LOG_HTTP_URL``.
    capture_exceptions:
        Register an :class:`ExceptionHandler` and route captured failures to
        the console handler.

    Raises
    ------
    ValueError
        When the level or theme is unknown.

    Examples
    --------
    >>> from io import StringIO
    >>> console = Console(file=StringIO(), record=True, width=120)
    >>> logger = basic_config(name="doc", level="debug", console=console, no_color=True)
    >>> logger.debug("ready")
    >>> "[doc] ready" in console.export_text()
    True
    >>> shutdown("doc")
    """

    global _EXCEPTION_HANDLER

    threshold = LEVELS.resolve(os.getenv("LOG_LEVEL") or level)
    force_color = _env_bool("LOG_FORCE_COLOR", force_color)
    no_color = _env_bool("LOG_NO_COLOR", no_color)
    theme = os.getenv("LOG_CONSOLE_THEME", theme or "") or None
    styles = _merge_console_styles(
        {**_theme_styles(theme), **(console_styles or {})},
        _parse_console_styles(os.getenv("LOG_CONSOLE_STYLES")),
    )
    paths = [*(redact_paths or ()), *_parse_redact_paths(os.getenv("LOG_REDACT_PATHS"))]
    ring_buffer_size = _env_int("LOG_RING_BUFFER_SIZE", ring_buffer_size)
    http_url = os.getenv("LOG_HTTP_URL", http_url or "") or None

    with _LOCK:
        logger = Logger.get_logger(name)
        _close_handlers(logger)
        logger.level = threshold
        logger.set_redact(list(dict.fromkeys(paths)) or None)
        if fields is not None:
            logger.set_bindings(fields)

        colors = not no_color
        formatter = console_formatter or combine(ErrorFormatter(stack=False), SimpleFormatter(include_level=not colors))
        console_handler = ConsoleHandler(
            console=console,
            error_console=error_console,
            colors=colors,
            expand_record=expand_record,
            styles=styles,
            force_color=force_color,
            no_color=no_color,
            formatter=formatter,
            handle_exceptions=capture_exceptions,
            handle_rejections=capture_exceptions,
        )
        logger.add_handler(console_handler)
        if ring_buffer_size:
            logger.add_handler(RingBufferHandler(capacity=ring_buffer_size))
        if http_url:
            logger.add_handler(HttpHandler(url=http_url, **dict(http_options or {})))

        if _EXCEPTION_HANDLER is not None:
            _EXCEPTION_HANDLER.deregister()
            _EXCEPTION_HANDLER = None
        if capture_exceptions:
            _EXCEPTION_HANDLER = ExceptionHandler(logger)
            _EXCEPTION_HANDLER.register()
    return logger


def shutdown(name: str = DEFAULT_LOGGER_NAME) -> None:
    """Flush and close the handlers of ``name`` and release exception hooks."""
    global _EXCEPTION_HANDLER
    with _LOCK:
        if _EXCEPTION_HANDLER is not None:
            _EXCEPTION_HANDLER.deregister()
            _EXCEPTION_HANDLER = None
        logger = Logger.get_loggers().get(name)
        if logger is not None:
            _close_handlers(logger)


def _close_handlers(logger: Logger) -> None:
    logger.flush()
    for handler in logger.handlers:
        logger.remove_handler(handler)
        handler.close()


def logdemo(
    *,
    theme: str = "classic",
    level: str | int = LogLevel.TRACE,
    console: Console | None = None,
    force_color: bool = True,
) -> dict[str, Any]:
    """Emit one sample record per level through a themed console.

    Parameters
    ----------
    theme:
        Palette name defined in :data:`CONSOLE_STYLE_THEMES` (case-insensitive).
    level:
        Threshold for the temporary logger; lower severities are skipped.
    console:
        Rich console to render into (stdout/stderr consoles by default).

    Returns
    -------
    dict[str, Any]
        The normalised theme name, its styles, and the delivered records.

    Raises
    ------
    ValueError
        When ``theme`` is unknown.

    Examples
    --------
    >>> from io import StringIO
    >>> result = logdemo(theme="neon", console=Console(file=StringIO(), record=True))
    >>> result["theme"], len(result["records"])
    ('neon', 6)
    """

    key = theme.strip().lower()
    styles = _theme_styles(key)
    buffer = RingBufferHandler(capacity=16)
    demo = Logger(name="logdemo", level=level, fields={"theme": key}, timestamp=False, base=None)
    demo.add_handler(
        ConsoleHandler(
            console=console,
            styles=styles,
            force_color=force_color,
            formatter=SimpleFormatter(include_level=False),
        )
    )
    demo.add_handler(buffer)
    samples = [
        ("trace", "Trace message"),
        ("debug", "Debug message"),
        ("info", "Information message"),
        ("warn", "Warning message"),
        ("error", "Error message"),
        ("fatal", "Fatal message"),
    ]
    try:
        for method, message in samples:
            getattr(demo, method)(f"[{key}] {message}")
        records = [record.to_dict() for record in buffer.snapshot()]
    finally:
        demo.close()
    return {"theme": key, "styles": dict(styles), "records": records}


def summary_info() -> str:
    """Return the metadata banner used by the CLI entry point.

    Examples
    --------
    >>> banner = summary_info()
    >>> "version" in banner
    True
    """
    from . import __init__conf__

    lines: list[str] = []
    __init__conf__.print_info(writer=lines.append)
    return "".join(lines)


def _theme_styles(theme: str | None) -> dict[str, str]:
    """Return the styles of ``theme`` (empty for ``None``).

    Examples
    --------
    >>> _theme_styles("classic")["error"]
    'bold red'
    >>> _theme_styles("sepia")
    Traceback (most recent call last):
    ...
    ValueError: Unknown console theme: 'sepia'
    """
    if not theme:
        return {}
    try:
        return dict(CONSOLE_STYLE_THEMES[theme.strip().lower()])
    except KeyError as exc:
        raise ValueError(f"Unknown console theme: {theme!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    """Return the boolean value of an environment variable with fallback.

    Examples
    --------
    >>> _ = os.environ.pop('LOG_EXAMPLE_BOOL', None)
    >>> _env_bool('LOG_EXAMPLE_BOOL', default=True)
    True
    >>> os.environ['LOG_EXAMPLE_BOOL'] = '0'
    >>> _env_bool('LOG_EXAMPLE_BOOL', default=True)
    False
    >>> _ = os.environ.pop('LOG_EXAMPLE_BOOL')
    """

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_console_styles(raw: str | None) -> dict[str, str]:
    """Convert ``LEVEL=style`` comma-separated strings into a dictionary.

    Examples
    --------
    >>> _parse_console_styles('INFO=green, ERROR = bold red')
    {'INFO': 'green', 'ERROR': 'bold red'}
    >>> _parse_console_styles(None)
    {}
    """

    if not raw:
        return {}
    result: dict[str, str] = {}
    for chunk in raw.split(","):
        if "=" not in chunk:
            continue
        key, value = chunk.split("=", 1)
        key = key.strip()
        value = value.strip()
        if key and value:
            result[key] = value
    return result


def _parse_redact_paths(raw: str | None) -> list[str]:
    """Split a comma-separated path list.

    Examples
    --------
    >>> _parse_redact_paths('user.ssn, headers["x-api-key"],')
    ['user.ssn', 'headers["x-api-key"]']
    """

    if not raw:
        return []
    return [chunk.strip() for chunk in raw.split(",") if chunk.strip()]


def _merge_console_styles(explicit: Mapping[str, str] | None, env_styles: Mapping[str, str]) -> dict[str, str]:
    """Combine code-supplied console styles with environment overrides.

    Keys are normalised to lowercase level names; environment entries win.

    Examples
    --------
    >>> _merge_console_styles({'INFO': 'cyan'}, {'info': 'green', 'ERROR': 'red'})
    {'info': 'green', 'error': 'red'}
    """

    merged: dict[str, str] = {}
    for source in (explicit or {}, env_styles):
        for key, value in source.items():
            norm = str(key).strip().lower()
            if norm:
                merged[norm] = value
    return merged


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "add_level",
    "basic_config",
    "debug",
    "error",
    "fatal",
    "get_logger",
    "info",
    "logdemo",
    "shutdown",
    "summary_info",
    "trace",
    "warn",
]
