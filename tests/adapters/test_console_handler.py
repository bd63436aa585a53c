from __future__ import annotations

from io import StringIO

import pytest
from rich.console import Console

from lib_log_pipeline.adapters.console.rich_console import LEVEL_METHODS, ConsoleHandler
from lib_log_pipeline.adapters.formatters import PALETTE, ColorizeFormatter, SimpleFormatter
from lib_log_pipeline.domain.levels import LogLevel
from lib_log_pipeline.domain.record import LogRecord


def _record(level: int = LogLevel.INFO, msg: str = "ready", **extra: object) -> LogRecord:
    return LogRecord({"level": int(level), "level_name": LogLevel.to_name(level) or "", "name": "api", "msg": msg, **extra})


def _console() -> Console:
    return Console(file=StringIO(), record=True, width=160, color_system=None)


@pytest.mark.parametrize(
    "level, channel",
    [
        (LogLevel.FATAL, "error"),
        (LogLevel.ERROR, "error"),
        (LogLevel.WARN, "warn"),
        (LogLevel.INFO, "info"),
        (LogLevel.DEBUG, "debug"),
        (LogLevel.TRACE, "debug"),
    ],
)
def test_level_methods_map_severity_to_channel(level: LogLevel, channel: str) -> None:
    assert LEVEL_METHODS[level] == channel
    assert ConsoleHandler(console=_console()).channel_for(level) == channel


def test_unknown_levels_use_the_info_channel() -> None:
    assert ConsoleHandler(console=_console()).channel_for(25) == "info"


def test_plain_output_prints_message_only(record_console: Console) -> None:
    handler = ConsoleHandler(console=record_console, colors=False)

    handler.handle(_record())

    assert record_console.export_text().strip() == "ready"


def test_coloured_output_prefixes_level_badge(record_console: Console) -> None:
    handler = ConsoleHandler(console=record_console, colors=True)

    handler.handle(_record(LogLevel.DEBUG, "details"))

    assert record_console.export_text().strip() == "DEBUG  details"


def test_badge_uses_rich_styles_when_rendered() -> None:
    console = Console(file=StringIO(), record=True, width=160, force_terminal=True, color_system="truecolor")
    handler = ConsoleHandler(console=console, styles={"info": "bold green"})

    handler.handle(_record())

    assert "\x1b[" in console.export_text(styles=True)


def test_warnings_and_errors_go_to_the_error_console() -> None:
    out, err = _console(), _console()
    handler = ConsoleHandler(console=out, error_console=err, colors=False)

    handler.handle(_record(LogLevel.INFO, "fine"))
    handler.handle(_record(LogLevel.WARN, "careful"))
    handler.handle(_record(LogLevel.FATAL, "dead"))

    assert out.export_text().split() == ["fine"]
    assert err.export_text().split() == ["careful", "dead"]


def test_single_console_serves_both_channels(record_console: Console) -> None:
    handler = ConsoleHandler(console=record_console, colors=False)

    assert handler.error_console is record_console
    assert handler.console is record_console


def test_formatted_output_is_preferred_over_msg(record_console: Console) -> None:
    handler = ConsoleHandler(console=record_console, colors=False, formatter=SimpleFormatter())

    handler.handle(_record(port=80))

    assert record_console.export_text().strip() == "INFO [api] ready  port=80"


def test_expand_record_pretty_prints_fields(record_console: Console) -> None:
    handler = ConsoleHandler(console=record_console, colors=False, expand_record=True)

    handler.handle(_record(request_id="abc"))

    exported = record_console.export_text()
    assert "ready" in exported
    assert "'request_id': 'abc'" in exported


def test_style_resolution_prefers_record_colour_then_styles_then_palette() -> None:
    handler = ConsoleHandler(console=_console(), styles={"WARN": "bold yellow"})

    coloured = ColorizeFormatter().format(_record())
    assert handler._style_for(coloured, coloured) == PALETTE.get("info")
    assert handler._style_for(_record(LogLevel.WARN), _record(LogLevel.WARN)) == "bold yellow"
    assert handler._style_for(_record(LogLevel.ERROR), _record(LogLevel.ERROR)) == PALETTE.get("error")


def test_no_color_disables_badges(record_console: Console) -> None:
    handler = ConsoleHandler(console=record_console, no_color=True)

    handler.handle(_record())

    assert handler.colors is False
    assert record_console.export_text().strip() == "ready"


def test_level_gate_filters_records(record_console: Console) -> None:
    handler = ConsoleHandler(console=record_console, colors=False, level="warn")

    handler.handle(_record(LogLevel.INFO, "hidden"))
    handler.handle(_record(LogLevel.ERROR, "shown"))

    assert record_console.export_text().split() == ["shown"]
