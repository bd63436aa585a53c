"""Built-in console palettes keyed by theme name.

Values are Rich style strings keyed by lowercase level name. Themes are consumed
by :func:`lib_log_pipeline.basic_config` (``theme`` argument or
``LOG_CONSOLE_THEME``) and :func:`lib_log_pipeline.logdemo`.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

DEFAULT_LEVEL_STYLES: Mapping[str, str] = MappingProxyType(
    {
        "fatal": "bold white on red",
        "error": "bold red",
        "warn": "yellow",
        "info": "cyan",
        "debug": "magenta",
        "trace": "dim",
    }
)

CONSOLE_STYLE_THEMES: Mapping[str, Mapping[str, str]] = MappingProxyType(
    {
        "classic": DEFAULT_LEVEL_STYLES,
        "dark": MappingProxyType(
            {
                "fatal": "bold white on red3",
                "error": "bold red3",
                "warn": "bold gold3",
                "info": "bright_white",
                "debug": "grey58",
                "trace": "grey42",
            }
        ),
        "neon": MappingProxyType(
            {
                "fatal": "bold #ff00ff on black",
                "error": "#ff073a",
                "warn": "#fff700",
                "info": "#39ff14",
                "debug": "#00ffd5",
                "trace": "#7df9ff",
            }
        ),
        "pastel": MappingProxyType(
            {
                "fatal": "bold plum1",
                "error": "light_salmon1",
                "warn": "khaki1",
                "info": "light_sky_blue1",
                "debug": "aquamarine1",
                "trace": "grey70",
            }
        ),
    }
)


__all__ = ["CONSOLE_STYLE_THEMES", "DEFAULT_LEVEL_STYLES"]
