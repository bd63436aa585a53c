"""Path-based field redactor.

Purpose
-------
Censor or remove sensitive values addressed by field paths (``user.ssn``,
``headers["x-api-key"]``, ``items[0].card``, ``*.password``) before a record
is serialised or handed to any handler.

Contents
--------
* :func:`parse_path` – split a path expression into segments.
* :class:`Redactor` – applies the configured paths copy-on-write.

System Role
-----------
Runs once per write inside :class:`~lib_log_pipeline.application.logger.Logger`,
ahead of serialisation, so secrets never reach formatters or sinks.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any, Callable, Union

from lib_log_pipeline.domain.record import LogRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_CENSOR = "[REDACTED]"
WILDCARD = "*"

Censor = Union[Any, Callable[[Any], Any]]


def parse_path(path: str) -> list[str]:
    """Split ``path`` into its segments.

    Dots separate segments; brackets hold indices or quoted keys that may
    themselves contain dots.

    Examples
    --------
    >>> parse_path("user.ssn")
    ['user', 'ssn']
    >>> parse_path('headers["x.api.key"]')
    ['headers', 'x.api.key']
    >>> parse_path("items[0].card")
    ['items', '0', 'card']
    >>> parse_path("a[b")
    Traceback (most recent call last):
    ...
    ValueError: Unclosed bracket in redaction path: 'a[b'
    """

    if not isinstance(path, str):
        raise TypeError(f"Redaction path must be a string: {path!r}")

    segments: list[str] = []
    current = ""
    index = 0
    length = len(path)
    while index < length:
        char = path[index]
        if char == ".":
            if current:
                segments.append(current)
                current = ""
            index += 1
        elif char == "[":
            if current:
                segments.append(current)
                current = ""
            index += 1
            if index < length and path[index] in "'\"":
                quote = path[index]
                closing = path.find(quote, index + 1)
                if closing == -1 or closing + 1 >= length or path[closing + 1] != "]":
                    raise ValueError(f"Unclosed bracket in redaction path: {path!r}")
                segments.append(path[index + 1 : closing])
                index = closing + 2
            else:
                closing = path.find("]", index)
                if closing == -1:
                    raise ValueError(f"Unclosed bracket in redaction path: {path!r}")
                segments.append(path[index:closing])
                index = closing + 1
        else:
            current += char
            index += 1
    if current:
        segments.append(current)
    return segments


def _copy_container(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, list):
        return list(value)
    return None


def _list_index(container: list[Any], key: str) -> int | None:
    try:
        position = int(key)
    except ValueError:
        return None
    if -len(container) <= position < len(container):
        return position
    return None


class Redactor:
    """Censor or remove record fields addressed by path.

    Parameters
    ----------
    config:
        Either a sequence of path strings, or a mapping with ``paths``,
        ``censor`` (replacement value or ``callable(value)``; default
        ``"[REDACTED]"``) and ``remove`` (delete keys instead of censoring).

    Examples
    --------
    >>> record = LogRecord({"user": {"ssn": "123-45-6789", "name": "Bob"}})
    >>> Redactor(["user.ssn"]).redact(record)["user"]
    {'ssn': '[REDACTED]', 'name': 'Bob'}
    >>> Redactor({"paths": ["user.ssn"], "remove": True}).redact(record)["user"]
    {'name': 'Bob'}
    >>> record["user"]["ssn"]
    '123-45-6789'
    """

    def __init__(self, config: Sequence[str] | Mapping[str, Any]) -> None:
        if isinstance(config, Mapping):
            paths = config.get("paths") or []
            self._censor: Censor = config.get("censor", DEFAULT_CENSOR)
            self._remove = bool(config.get("remove", False))
        elif isinstance(config, Sequence) and not isinstance(config, (str, bytes)):
            paths = config
            self._censor = DEFAULT_CENSOR
            self._remove = False
        else:
            raise TypeError("Redactor config must be a sequence of paths or a mapping of options")
        self._paths: list[list[str]] = [parse_path(path) for path in paths]

    @property
    def has_paths(self) -> bool:
        return bool(self._paths)

    @property
    def remove(self) -> bool:
        return self._remove

    def redact(self, record: LogRecord) -> LogRecord:
        """Return a redacted copy of ``record`` (or ``record`` when no paths are set)."""
        if not self._paths:
            return record
        data = dict(record)
        for segments in self._paths:
            self._redact_path(data, segments, 0)
        return LogRecord(data)

    def _redact_path(self, container: Any, segments: list[str], index: int) -> None:
        if index >= len(segments):
            return
        key = segments[index]
        last = index == len(segments) - 1

        if key == WILDCARD:
            if isinstance(container, MutableMapping):
                targets: list[Any] = list(container.keys())
            elif isinstance(container, list):
                targets = list(range(len(container)))
            else:
                return
        elif isinstance(container, MutableMapping):
            if key not in container:
                return
            targets = [key]
        elif isinstance(container, list):
            position = _list_index(container, key)
            if position is None:
                return
            targets = [position]
        else:
            return

        # Removing from a list shifts later positions, so walk backwards.
        for target in reversed(targets) if isinstance(container, list) else targets:
            if last:
                self._apply_censor(container, target)
                continue
            copied = _copy_container(container[target])
            if copied is None:
                continue
            container[target] = copied
            self._redact_path(copied, segments, index + 1)

    def _apply_censor(self, container: Any, key: Any) -> None:
        if self._remove:
            del container[key]
        elif callable(self._censor):
            try:
                container[key] = self._censor(container[key])
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Censor callable failed for %r; using %s", key, DEFAULT_CENSOR, exc_info=exc)
                container[key] = DEFAULT_CENSOR
        else:
            container[key] = self._censor


__all__ = ["DEFAULT_CENSOR", "Redactor", "parse_path"]
