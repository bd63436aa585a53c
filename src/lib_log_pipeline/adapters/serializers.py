"""Field-level serializers and never-failing JSON rendering.

Purpose
-------
Turn rich Python values carried in record fields (exceptions, HTTP
requests/responses) into plain data before handlers see them, and render any
record to JSON without raising.

Contents
--------
* :func:`is_error_like` – structural error check used across the pipeline.
* :func:`serialize_error`, :func:`serialize_request`,
  :func:`serialize_response` and :data:`STANDARD_SERIALIZERS`.
* :func:`apply` / :func:`add_serializers` – run a serializer map over a record.
* :func:`safe_json` – circular-safe JSON used by formatters and handlers.

System Role
-----------
Invoked by :class:`~lib_log_pipeline.application.logger.Logger` once per write
(after redaction) and by the JSON/simple formatters and HTTP handler when they
render output. Serializer failures degrade to a placeholder string; logging
must never break because a field could not be converted.
"""

from __future__ import annotations

import json
import traceback
from collections.abc import Mapping, Set as AbstractSet
from datetime import date, datetime, time as dt_time
from enum import Enum
from pathlib import PurePath
from types import MappingProxyType
from typing import Any, Callable

import httpx

from lib_log_pipeline.domain.record import LogRecord

Serializer = Callable[[Any], Any]

MAX_CAUSE_DEPTH = 10


def is_error_like(value: Any) -> bool:
    """Return ``True`` for exceptions and exception-shaped objects.

    Examples
    --------
    >>> is_error_like(ValueError("boom"))
    True
    >>> class Foreign:
    ...     message = "remote failure"
    ...     stack = "at remote()"
    >>> is_error_like(Foreign())
    True
    >>> is_error_like({"message": "not an error"})
    False
    """

    if isinstance(value, BaseException):
        return True
    return isinstance(getattr(value, "message", None), str) and isinstance(getattr(value, "stack", None), str)


def _format_stack(err: BaseException) -> str:
    return "".join(traceback.format_exception(type(err), err, err.__traceback__, chain=False)).rstrip()


def _public_attributes(value: Any) -> dict[str, Any]:
    try:
        attributes = vars(value)
    except TypeError:
        return {}
    return {key: item for key, item in attributes.items() if not key.startswith("_")}


def serialize_error(err: Any, depth: int = 0) -> Any:
    """Convert an exception (or exception-like object) into plain data.

    Follows ``__cause__``/``__context__`` chains up to :data:`MAX_CAUSE_DEPTH`
    and expands exception groups into ``errors``. Values that are not
    error-like are returned unchanged.
    """

    if not is_error_like(err):
        return err

    if not isinstance(err, BaseException):
        foreign: dict[str, Any] = {
            "type": getattr(err, "name", None) or type(err).__name__,
            "message": err.message,
            "stack": err.stack,
        }
        for key, value in _public_attributes(err).items():
            foreign.setdefault(key, value)
        return foreign

    serialized: dict[str, Any] = {
        "type": type(err).__name__,
        "message": str(err),
        "stack": _format_stack(err),
    }

    cause = err.__cause__
    if cause is None and not err.__suppress_context__:
        cause = err.__context__
    if cause is not None:
        if depth < MAX_CAUSE_DEPTH:
            serialized["cause"] = serialize_error(cause, depth + 1)
        else:
            serialized["cause"] = "[Max cause depth exceeded]"

    nested = getattr(err, "exceptions", None)
    if isinstance(nested, (list, tuple)):
        serialized["errors"] = [serialize_error(item, depth + 1) for item in nested]

    for key, value in _public_attributes(err).items():
        if key not in serialized and key not in {"cause", "errors"}:
            serialized[key] = value
    return serialized


def serialize_request(request: Any) -> Any:
    """Summarise an :class:`httpx.Request` (other values pass through)."""
    if not isinstance(request, httpx.Request):
        return request
    return {"method": request.method, "url": str(request.url), "headers": dict(request.headers)}


def serialize_response(response: Any) -> Any:
    """Summarise an :class:`httpx.Response` (other values pass through)."""
    if not isinstance(response, httpx.Response):
        return response
    try:
        url: str | None = str(response.request.url)
    except RuntimeError:
        url = None
    return {
        "status": response.status_code,
        "reason": response.reason_phrase,
        "url": url,
        "headers": dict(response.headers),
    }


STANDARD_SERIALIZERS: Mapping[str, Serializer] = MappingProxyType(
    {
        "err": serialize_error,
        "req": serialize_request,
        "res": serialize_response,
    }
)


def add_serializers(existing: Mapping[str, Serializer] | None, additions: Mapping[str, Serializer] | None) -> dict[str, Serializer]:
    """Return ``existing`` overlaid with ``additions``."""

    return {**(existing or {}), **(additions or {})}


def apply(record: LogRecord, serializers: Mapping[str, Serializer] | None) -> LogRecord:
    """Run ``serializers`` over the matching, non-``None`` fields of ``record``.

    Returns ``record`` itself when nothing matches.

    Examples
    --------
    >>> record = LogRecord({"level": 3, "n": 2})
    >>> apply(record, {"missing": str}) is record
    True
    >>> apply(record, {"n": lambda value: value * 10})["n"]
    20
    >>> apply(record, {"n": lambda value: 1 / 0})["n"]
    '[Serializer error: division by zero]'
    """

    if not serializers:
        return record
    matched = [key for key in serializers if record.get(key) is not None]
    if not matched:
        return record
    changes: dict[str, Any] = {}
    for key in matched:
        try:
            changes[key] = serializers[key](record[key])
        except Exception as exc:  # noqa: BLE001
            changes[key] = f"[Serializer error: {exc}]"
    return record.evolve(changes)


def _jsonable(value: Any, active: set[int]) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, Enum):
        return _jsonable(value.value, active)
    if isinstance(value, (int, float)):
        return value
    if is_error_like(value):
        value = serialize_error(value)
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, PurePath):
        return str(value)

    if isinstance(value, (Mapping, list, tuple, AbstractSet)):
        marker = id(value)
        if marker in active:
            return "[Circular]"
        active.add(marker)
        try:
            if isinstance(value, Mapping):
                return {str(key): _jsonable(item, active) for key, item in value.items()}
            return [_jsonable(item, active) for item in value]
        finally:
            active.discard(marker)
    return repr(value)


def safe_json(value: Any, indent: int | None = None) -> str:
    """Serialise ``value`` to JSON without ever raising.

    Examples
    --------
    >>> loop = {"name": "a"}
    >>> loop["self"] = loop
    >>> safe_json(loop)
    '{"name": "a", "self": "[Circular]"}'
    """

    try:
        return json.dumps(_jsonable(value, set()), indent=indent, ensure_ascii=False)
    except Exception as exc:  # noqa: BLE001
        return json.dumps(f"[Unserializable: {exc}]")


__all__ = [
    "MAX_CAUSE_DEPTH",
    "STANDARD_SERIALIZERS",
    "Serializer",
    "add_serializers",
    "apply",
    "is_error_like",
    "safe_json",
    "serialize_error",
    "serialize_request",
    "serialize_response",
]
