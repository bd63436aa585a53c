"""Batched NDJSON shipping over HTTP.

Purpose
-------
Forward records to a collector endpoint in batches so remote aggregation does
not cost one request per log call.

Contents
--------
* :func:`compute_backoff` – exponential delay with jitter between retries.
* :func:`chunk_ndjson` – split serialised records into size-bounded payloads.
* :class:`HttpHandler` – batching handler built on :mod:`httpx`.

System Role
-----------
Optional remote sink wired by :func:`lib_log_pipeline.basic_config` when a URL
is configured (``LOG_HTTP_URL``). Delivery failures are reported through the
handler error channel and never raised into the logging call.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Callable

import httpx

from lib_log_pipeline.adapters.serializers import safe_json
from lib_log_pipeline.application.handler import Handler
from lib_log_pipeline.domain.record import LogRecord

LOGGER = logging.getLogger(__name__)

NDJSON_CONTENT_TYPE = "application/x-ndjson"
DEFAULT_MAX_PAYLOAD_BYTES = 63 * 1024


def compute_backoff(attempt: int, base: float = 1.0, rand: Callable[[], float] = random.random) -> float:
    """Return the delay before retry ``attempt`` (0-indexed).

    The exponential delay ``base * 2**attempt`` is extended by up to the same
    amount again at random.

    Examples
    --------
    >>> compute_backoff(0, base=1.0, rand=lambda: 0.0)
    1.0
    >>> compute_backoff(2, base=0.5, rand=lambda: 0.5)
    3.0
    """

    delay = base * (2**attempt)
    return delay + delay * rand()


def chunk_ndjson(records: Iterable[Mapping[str, Any]], max_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES) -> Iterator[str]:
    """Yield NDJSON payloads whose UTF-8 size stays under ``max_bytes``.

    A single record larger than ``max_bytes`` is sent on its own.

    Examples
    --------
    >>> list(chunk_ndjson([{"n": 1}, {"n": 2}], max_bytes=16))
    ['{"n": 1}\\n', '{"n": 2}\\n']
    >>> list(chunk_ndjson([{"n": 1}, {"n": 2}]))
    ['{"n": 1}\\n{"n": 2}\\n']
    """

    current: list[str] = []
    size = 0
    for record in records:
        line = safe_json(record) + "\n"
        line_size = len(line.encode("utf-8"))
        if current and size + line_size > max_bytes:
            yield "".join(current)
            current = []
            size = 0
        current.append(line)
        size += line_size
    if current:
        yield "".join(current)


class HttpHandler(Handler):
    """Batch records and POST them as NDJSON.

    Parameters
    ----------
    url:
        Collector endpoint (required).
    batch_size:
        Number of buffered records that triggers a flush.
    interval:
        Seconds between background flushes; ``None`` disables the flusher
        thread so batches are sent only when full or on :meth:`flush`.
    retries:
        Additional attempts after the first failed POST.
    base_delay:
        Seconds used by :func:`compute_backoff`.
    headers:
        Extra request headers (merged over the NDJSON content type).
    max_payload_bytes:
        Upper bound for one request body.
    client:
        Injected :class:`httpx.Client`; the handler only closes clients it
        created itself.
    sleep:
        Delay function used between retries.
    """

    def __init__(
        self,
        *,
        url: str,
        batch_size: int = 50,
        interval: float | None = 5.0,
        retries: int = 3,
        base_delay: float = 1.0,
        headers: Mapping[str, str] | None = None,
        max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        **options: Any,
    ) -> None:
        if not url:
            raise ValueError("HttpHandler requires a url")
        super().__init__(**options)
        self._url = url
        self._batch_size = max(1, int(batch_size))
        self._interval = interval
        self._retries = max(0, int(retries))
        self._base_delay = base_delay
        self._headers = {"Content-Type": NDJSON_CONTENT_TYPE, **(headers or {})}
        self._max_payload_bytes = max_payload_bytes
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)
        self._sleep = sleep

        self._batch: list[LogRecord] = []
        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._reporting = threading.local()
        self._wake = threading.Event()
        self._stop = threading.Event()
        self._closed = False
        self._worker: threading.Thread | None = None
        if interval:
            self._worker = threading.Thread(target=self._run, name="lib_log_pipeline-http", daemon=True)
            self._worker.start()

    @property
    def url(self) -> str:
        return self._url

    @property
    def pending(self) -> int:
        """Number of records waiting for the next flush."""
        with self._lock:
            return len(self._batch)

    def emit(self, record: LogRecord, formatted: Any) -> None:
        with self._lock:
            self._batch.append(record)
            full = len(self._batch) >= self._batch_size
        if not full:
            return
        if self._worker is not None and self._worker.is_alive():
            self._wake.set()
        elif not getattr(self._reporting, "active", False):
            self.flush()

    def flush(self) -> None:
        """Send every buffered record now; failures go to the error channel.

        Failures are reported after the send lock is released. Records logged
        by an error listener are buffered for the next flush.
        """
        with self._lock:
            records, self._batch = self._batch, []
        if not records:
            return
        failures: list[Exception] = []
        with self._send_lock:
            for payload in chunk_ndjson(records, self._max_payload_bytes):
                try:
                    self._send_with_retry(payload)
                except Exception as exc:  # noqa: BLE001
                    failures.append(exc)
        if not failures:
            return
        self._reporting.active = True
        try:
            for exc in failures:
                self._on_error(exc, None)
        finally:
            self._reporting.active = False

    def close(self) -> None:
        """Stop the flusher, send what is left, and release an owned client."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        self._wake.set()
        if self._worker is not None:
            self._worker.join(timeout=max(self._interval or 0.0, 1.0) * 2)
        self.flush()
        if self._owns_client:
            # wait for a worker still inside a retrying send
            with self._send_lock:
                self._client.close()

    def _send_with_retry(self, payload: str) -> None:
        attempt = 0
        while True:
            try:
                response = self._client.post(self._url, content=payload.encode("utf-8"), headers=self._headers)
                response.raise_for_status()
                return
            except httpx.HTTPError as exc:
                if attempt >= self._retries:
                    raise
                delay = compute_backoff(attempt, self._base_delay)
                LOGGER.debug("POST to %s failed (%s); retrying in %.2fs", self._url, exc, delay)
                self._sleep(delay)
                attempt += 1

    def _run(self) -> None:
        while not self._stop.is_set():
            self._wake.wait(self._interval)
            self._wake.clear()
            if self._stop.is_set():
                break
            self.flush()


__all__ = ["HttpHandler", "NDJSON_CONTENT_TYPE", "chunk_ndjson", "compute_backoff"]
