"""Level colour palette and the colorizing formatter.

Purpose
-------
Attach a Rich style string to each record so console handlers can render a
coloured level badge without knowing about themes.

Contents
--------
* :class:`ColorPalette` and the process-wide :data:`PALETTE`.
* :class:`ColorizeFormatter` – adds ``_level_color`` from the palette.

System Role
-----------
:meth:`Logger.add_level` registers colours for custom levels here; the
console handler falls back to the same palette when a record carries no
``_level_color``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lib_log_pipeline.domain.palettes import DEFAULT_LEVEL_STYLES
from lib_log_pipeline.domain.record import LogRecord

from ._base import Formatter, as_record


class ColorPalette:
    """Mutable mapping of level name to Rich style.

    Examples
    --------
    >>> palette = ColorPalette()
    >>> palette.get("error")
    'bold red'
    >>> palette.add_colors({"audit": "bold blue"})
    >>> palette.get("AUDIT")
    'bold blue'
    """

    def __init__(self, colors: Mapping[str, str] | None = None) -> None:
        self._colors: dict[str, str] = dict(DEFAULT_LEVEL_STYLES)
        if colors:
            self.add_colors(colors)

    def add_colors(self, colors: Mapping[str, str]) -> None:
        for name, style in colors.items():
            self._colors[str(name).strip().lower()] = style

    def get(self, level_name: str | None) -> str:
        if not level_name:
            return ""
        return self._colors.get(level_name.strip().lower(), "")

    def snapshot(self) -> dict[str, str]:
        return dict(self._colors)

    def _reset_for_testing(self) -> None:
        self._colors = dict(DEFAULT_LEVEL_STYLES)


PALETTE = ColorPalette()
#: Palette shared by every :class:`ColorizeFormatter` and console handler.


class ColorizeFormatter(Formatter):
    """Add ``_level_color`` to each record.

    ``colors`` passed at construction are merged into the global palette so
    every consumer sees them.
    """

    def __init__(self, colors: Mapping[str, str] | None = None, *, palette: ColorPalette | None = None) -> None:
        self._palette = palette or PALETTE
        if colors:
            self._palette.add_colors(colors)

    def format(self, record: LogRecord) -> Any:
        record = as_record(record)
        return record.evolve({"_level_color": self._palette.get(record.get("level_name"))})


__all__ = ["ColorPalette", "ColorizeFormatter", "PALETTE"]
