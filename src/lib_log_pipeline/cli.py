"""Command-line interface for metadata and the console theme demo.

Purpose
-------
Expose a small ``click`` command so packaging checks and operators can run
``lib_log_pipeline`` (or ``python -m lib_log_pipeline``) to print the package
banner or preview console themes.

Contents
--------
* :func:`cli` - root group with ``--version`` and ``--use-dotenv`` options.
* ``info`` and ``logdemo`` subcommands.
* :func:`main` - test-friendly runner returning an exit code.
"""

from __future__ import annotations

from typing import Sequence

import click

from . import __init__conf__
from . import config as log_config
from .domain.palettes import CONSOLE_STYLE_THEMES
from .lib_log_pipeline import logdemo as _logdemo
from .lib_log_pipeline import summary_info

_THEME_CHOICES = sorted(CONSOLE_STYLE_THEMES)


@click.group(invoke_without_command=True, context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--version", "-V", is_flag=True, help="Print the installed version and exit.")
@click.option(
    "--use-dotenv/--no-use-dotenv",
    default=None,
    help=f"Load the nearest .env before reading LOG_* variables (default: ${log_config.DOTENV_ENV_VAR}).",
)
@click.pass_context
def cli(ctx: click.Context, *, version: bool, use_dotenv: bool | None) -> None:
    """Structured logging pipeline utilities."""

    if log_config.dotenv_requested(use_dotenv):
        log_config.enable_dotenv()
    if version:
        click.echo(__init__conf__.version)
        ctx.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(summary_info(), nl=False)


@cli.command("info")
def info_command() -> None:
    """Print the package metadata banner."""

    click.echo(summary_info(), nl=False)


@cli.command("logdemo")
@click.option(
    "--theme",
    "themes",
    multiple=True,
    type=click.Choice(_THEME_CHOICES, case_sensitive=False),
    help="Theme to preview (repeatable; defaults to every theme).",
)
@click.option("--level", default="trace", show_default=True, help="Lowest level to emit.")
def logdemo_command(themes: tuple[str, ...], level: str) -> None:
    """Emit one record per level for each selected console theme."""

    for theme in themes or _THEME_CHOICES:
        click.echo(f"=== Theme: {theme} ===")
        try:
            result = _logdemo(theme=theme, level=level)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--level") from exc
        click.echo(f"emitted {len(result['records'])} records")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Click command and return its exit code.

    Examples
    --------
    >>> main(["--version"])  # doctest: +ELLIPSIS
    0.1.0
    0
    """

    args = list(argv) if argv is not None else None
    try:
        cli.main(args=args, prog_name=__init__conf__.shell_command, standalone_mode=False)
    except click.ClickException as error:
        error.show()
        return error.exit_code
    except click.exceptions.Exit as exit_request:
        return exit_request.exit_code
    return 0


__all__ = ["cli", "main"]
