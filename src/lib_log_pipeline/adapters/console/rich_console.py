"""Rich-powered console handler.

Purpose
-------
Render records for humans: one line per record with an optional coloured
level badge, routed to stderr for warnings and errors and stdout otherwise.

Contents
--------
* :data:`LEVEL_METHODS` - severity to console channel mapping.
* :class:`ConsoleHandler` - handler configured by :func:`lib_log_pipeline.basic_config`.

System Role
-----------
Primary human-facing sink; honours theme/style overrides, the colour palette
populated by :class:`ColorizeFormatter` and :meth:`Logger.add_level`, and the
``LOG_FORCE_COLOR``/``LOG_NO_COLOR`` environment switches applied by the facade.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from rich.console import Console
from rich.pretty import Pretty
from rich.text import Text

from lib_log_pipeline.adapters.formatters.colorize import PALETTE, ColorPalette
from lib_log_pipeline.application.handler import Handler
from lib_log_pipeline.domain.levels import LogLevel
from lib_log_pipeline.domain.record import LogRecord

LEVEL_METHODS: Mapping[int, str] = MappingProxyType(
    {
        LogLevel.FATAL: "error",
        LogLevel.ERROR: "error",
        LogLevel.WARN: "warn",
        LogLevel.INFO: "info",
        LogLevel.DEBUG: "debug",
        LogLevel.TRACE: "debug",
    }
)

#: Channels written to the error console; everything else uses the standard console.
_ERROR_CHANNELS = frozenset({"error", "warn"})


class ConsoleHandler(Handler):
    """Print records through Rich consoles.

    Parameters
    ----------
    console / error_console:
        Injected consoles. When only ``console`` is given it serves both
        channels; when neither is given stdout/stderr consoles are created.
    colors:
        Draw a styled ``LEVEL`` badge before the text.
    expand_record:
        Pretty-print the full record beneath the line.
    styles:
        Level name to Rich style overrides (e.g. a console theme).
    force_color / no_color:
        Colour switches forwarded to the consoles this handler creates.

    Examples
    --------
    >>> from io import StringIO
    >>> console = Console(file=StringIO(), record=True, width=120)
    >>> handler = ConsoleHandler(console=console, colors=False)
    >>> handler.handle(LogRecord({"level": 3, "level_name": "info", "msg": "ready"}))
    >>> console.export_text().strip()
    'ready'
    """

    LEVEL_METHODS = LEVEL_METHODS

    def __init__(
        self,
        *,
        console: Console | None = None,
        error_console: Console | None = None,
        colors: bool = True,
        expand_record: bool = False,
        styles: Mapping[str, str] | None = None,
        force_color: bool = False,
        no_color: bool = False,
        palette: ColorPalette | None = None,
        **options: Any,
    ) -> None:
        super().__init__(**options)
        force_terminal = True if force_color else None
        if console is None:
            console = Console(force_terminal=force_terminal, no_color=no_color)
            if error_console is None:
                error_console = Console(stderr=True, force_terminal=force_terminal, no_color=no_color)
        self._console = console
        self._error_console = error_console or console
        self._colors = bool(colors) and not no_color
        self._expand_record = bool(expand_record)
        self._styles = {str(key).strip().lower(): value for key, value in (styles or {}).items()}
        self._palette = palette or PALETTE

    @property
    def colors(self) -> bool:
        return self._colors

    @property
    def console(self) -> Console:
        return self._console

    @property
    def error_console(self) -> Console:
        return self._error_console

    def channel_for(self, level: int) -> str:
        return self.LEVEL_METHODS.get(level, "info")

    def emit(self, record: LogRecord, formatted: Any) -> None:
        channel = self.channel_for(record["level"])
        target = self._error_console if channel in _ERROR_CHANNELS else self._console
        text = self._output_text(formatted)

        style = self._style_for(record, formatted) if self._colors else ""
        if style:
            level_name = (record.get("level_name") or "???").strip().upper()
            line = Text.assemble((f" {level_name} ", style), " ", text)
        else:
            line = Text(text)
        target.print(line, highlight=False, soft_wrap=True)
        if self._expand_record:
            target.print(Pretty(dict(record)), highlight=False)

    @staticmethod
    def _output_text(formatted: Any) -> str:
        """Return the printable text for ``formatted``.

        Examples
        --------
        >>> ConsoleHandler._output_text({"_formatted": "INFO [api] up", "msg": "up"})
        'INFO [api] up'
        >>> ConsoleHandler._output_text({"msg": "up"})
        'up'
        >>> ConsoleHandler._output_text("rendered")
        'rendered'
        """
        if isinstance(formatted, str):
            return formatted
        if isinstance(formatted, Mapping):
            value = formatted.get("_formatted") or formatted.get("msg") or ""
            return str(value)
        return str(formatted)

    def _style_for(self, record: LogRecord, formatted: Any) -> str:
        if isinstance(formatted, Mapping) and formatted.get("_level_color"):
            return str(formatted["_level_color"])
        level_name = (record.get("level_name") or "").strip().lower()
        return self._styles.get(level_name) or self._palette.get(level_name)


__all__ = ["ConsoleHandler", "LEVEL_METHODS"]
