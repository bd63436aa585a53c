"""Ring buffer handler retaining the most recent records.

Purpose
-------
Provide in-memory retention of recent records so operators and tests can
inspect what was logged without an external sink.

Contents
--------
* :class:`RingBufferHandler` with querying, listeners, and NDJSON
  checkpointing.

System Role
-----------
Optional sink wired by :func:`lib_log_pipeline.basic_config`
(``ring_buffer_size`` / ``LOG_RING_BUFFER_SIZE``). Stores the original
(unformatted) records in arrival order, evicting the oldest at capacity.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from pathlib import Path
from typing import Any, Callable, Deque, Iterable, Iterator

from lib_log_pipeline.adapters.serializers import safe_json
from lib_log_pipeline.application.handler import Handler
from lib_log_pipeline.domain.events import EventEmitter, Listener
from lib_log_pipeline.domain.levels import LEVELS, LogLevel
from lib_log_pipeline.domain.record import LogRecord

LOGGER = logging.getLogger(__name__)


class RingBufferHandler(Handler):
    """Fixed-capacity FIFO of recent records.

    Examples
    --------
    >>> buffer = RingBufferHandler(capacity=2)
    >>> for n in range(3):
    ...     buffer.handle(LogRecord({"level": 3, "msg": str(n)}))
    >>> [record["msg"] for record in buffer.snapshot()]
    ['1', '2']
    """

    RECORD = "ringbuffer-record"

    def __init__(self, *, capacity: int = 100, checkpoint_path: Path | str | None = None, **options: Any) -> None:
        super().__init__(**options)
        self._capacity = max(1, int(capacity))
        self._buffer: Deque[LogRecord] = deque(maxlen=self._capacity)
        self._checkpoint_path = Path(checkpoint_path) if checkpoint_path else None
        self._dirty = False
        self._events = EventEmitter()
        self._events.add_valid_event(self.RECORD)
        if self._checkpoint_path and self._checkpoint_path.exists():
            self._load_checkpoint(self._checkpoint_path)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        return len(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self) -> Iterator[LogRecord]:
        """Iterate over buffered records from oldest to newest."""
        return iter(list(self._buffer))

    def __bool__(self) -> bool:
        return True

    def emit(self, record: LogRecord, formatted: Any) -> None:
        self._buffer.append(record)
        self._dirty = True
        try:
            self._events.fire(self.RECORD, {"record": record})
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Ring buffer listener failed", exc_info=exc)

    def snapshot(self) -> list[LogRecord]:
        """Return a copy of the buffered records, oldest first."""
        return list(self._buffer)

    def query(
        self,
        *,
        since: Any = None,
        until: Any = None,
        level: str | int | None = None,
        limit: int | None = None,
        order: str = "asc",
        fields: Iterable[str] | None = None,
        predicate: Callable[[LogRecord], Any] | None = None,
    ) -> list[Any]:
        """Return buffered records matching every given criterion.

        Parameters
        ----------
        since / until:
            Inclusive bounds compared against each record's ``time`` field;
            records without ``time`` never match a bound.
        level:
            Threshold applied like a logger level (``"warn"`` keeps warn,
            error and fatal).
        limit:
            Maximum number of results.
        order:
            ``"asc"`` (oldest first) or ``"desc"``.
        fields:
            Project each result onto these keys (returns plain dicts).
        predicate:
            Extra filter receiving the record.
        """

        if order not in {"asc", "desc"}:
            raise ValueError(f"order must be 'asc' or 'desc', got {order!r}")
        threshold = None if level is None else LEVELS.resolve(level)
        wanted = list(fields) if fields is not None else None
        records = self.snapshot()
        if order == "desc":
            records.reverse()

        results: list[Any] = []
        for record in records:
            stamp = record.get("time")
            if since is not None and (stamp is None or stamp < since):
                continue
            if until is not None and (stamp is None or stamp > until):
                continue
            if threshold is not None and not LogLevel.is_level_enabled(threshold, record["level"]):
                continue
            if predicate is not None and not predicate(record):
                continue
            results.append(self._project(record, wanted) if wanted is not None else record)
            if limit and len(results) >= limit:
                break
        return results

    @staticmethod
    def _project(record: LogRecord, fields: list[str]) -> dict[str, Any]:
        return {field: record[field] for field in fields if field in record}

    def clear(self) -> None:
        self._buffer.clear()
        self._dirty = True

    def add_listener(self, name: str, listener: Listener) -> None:
        self._events.add_listener(name, listener)

    def remove_listener(self, name: str, listener: Listener) -> None:
        self._events.remove_listener(name, listener)

    def flush(self) -> None:
        """Persist the buffer to the checkpoint path if configured."""
        if not self._checkpoint_path or not self._dirty:
            return
        self._checkpoint_path.parent.mkdir(parents=True, exist_ok=True)
        with self._checkpoint_path.open("w", encoding="utf-8") as fh:
            for record in self._buffer:
                fh.write(safe_json(record))
                fh.write("\n")
        self._dirty = False

    def close(self) -> None:
        self.clear()
        self._events.remove_all_listeners()

    def _load_checkpoint(self, path: Path) -> None:
        """Hydrate the buffer from a newline-delimited JSON checkpoint."""
        with path.open("r", encoding="utf-8") as fh:
            for line in fh:
                if not line.strip():
                    continue
                self._buffer.append(LogRecord(json.loads(line)))


__all__ = ["RingBufferHandler"]
