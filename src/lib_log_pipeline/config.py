"""Optional ``.env`` loading for environment-driven configuration.

Purpose
-------
Let operators keep ``LOG_*`` overrides in a ``.env`` file next to their
project instead of exporting them in every shell.

Contents
--------
* :data:`DOTENV_ENV_VAR` – environment toggle read by the CLI.
* :func:`enable_dotenv` – locate and load the nearest ``.env`` file once.
* :func:`dotenv_requested` – resolve the CLI flag against the toggle.

System Role
-----------
Runs before :func:`lib_log_pipeline.basic_config` reads the environment.
Values already present in ``os.environ`` always win over the file.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

DOTENV_ENV_VAR = "LOG_USE_DOTENV"

_LOADED_PATH: Path | None = None
_ATTEMPTED = False


def enable_dotenv(search_from: str | Path | None = None) -> Path | None:
    """Load the nearest ``.env`` file without overriding existing variables.

    Parameters
    ----------
    search_from:
        Directory to start the upward search from; defaults to the working
        directory.

    Returns
    -------
    Path | None
        The loaded file, or ``None`` when no ``.env`` exists. Subsequent calls
        return the first result without touching the environment again.
    """

    global _LOADED_PATH, _ATTEMPTED
    if _ATTEMPTED:
        return _LOADED_PATH
    _ATTEMPTED = True

    if search_from is not None:
        found = _search_upwards(Path(search_from))
    else:
        located = find_dotenv(usecwd=True)
        found = Path(located).resolve() if located else None
    if found is None:
        return None
    load_dotenv(found, override=False)
    _LOADED_PATH = found
    return found


def _search_upwards(start: Path) -> Path | None:
    for directory in (start.resolve(), *start.resolve().parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return candidate
    return None


def dotenv_requested(flag: bool | None) -> bool:
    """Return whether ``.env`` loading is wanted (explicit flag beats the toggle).

    Examples
    --------
    >>> dotenv_requested(False)
    False
    >>> import os
    >>> _ = os.environ.pop(DOTENV_ENV_VAR, None)
    >>> dotenv_requested(None)
    False
    """

    if flag is not None:
        return flag
    return os.getenv(DOTENV_ENV_VAR, "").strip().lower() in {"1", "true", "yes", "on"}


def _reset_dotenv_state_for_testing() -> None:
    global _LOADED_PATH, _ATTEMPTED
    _LOADED_PATH = None
    _ATTEMPTED = False


__all__ = ["DOTENV_ENV_VAR", "dotenv_requested", "enable_dotenv"]
