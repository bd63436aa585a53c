"""Static package metadata surfaced by the CLI banner."""

from __future__ import annotations

import sys
from typing import Callable

name = "lib_log_pipeline"
title = "Structured logging pipeline with formatters, redaction, and pluggable handlers"
version = "0.1.0"
shell_command = "lib_log_pipeline"


def print_info(writer: Callable[[str], object] | None = None) -> None:
    """Write the metadata banner through ``writer``.

    Examples
    --------
    >>> lines = []
    >>> print_info(writer=lines.append)
    >>> lines[0]
    'Info for lib_log_pipeline:\\n'
    """

    write = writer or sys.stdout.write
    fields = [("name", name), ("title", title), ("version", version), ("shell_command", shell_command)]
    pad = max(len(label) for label, _ in fields)
    write(f"Info for {name}:\n")
    write("\n")
    for label, value in fields:
        write(f"    {label:<{pad}} = {value}\n")


__all__ = ["name", "print_info", "shell_command", "title", "version"]
