from __future__ import annotations

import json
import threading
from typing import Any, Callable

import httpx
import pytest

from lib_log_pipeline.adapters.http import NDJSON_CONTENT_TYPE, HttpHandler, chunk_ndjson, compute_backoff
from lib_log_pipeline.application.logger import Logger
from lib_log_pipeline.domain.events import EventEmitter, LogEvent
from lib_log_pipeline.domain.record import LogRecord


def _record(n: int) -> LogRecord:
    return LogRecord({"level": 3, "level_name": "info", "msg": f"m{n}"})


def _client(responder: Callable[[httpx.Request], httpx.Response], seen: list[httpx.Request]) -> httpx.Client:
    def handle(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return responder(request)

    return httpx.Client(transport=httpx.MockTransport(handle))


def _lines(request: httpx.Request) -> list[dict[str, Any]]:
    return [json.loads(line) for line in request.content.decode("utf-8").splitlines()]


def test_compute_backoff_grows_exponentially_with_jitter() -> None:
    assert compute_backoff(0, base=1.0, rand=lambda: 0.0) == 1.0
    assert compute_backoff(3, base=0.5, rand=lambda: 0.0) == 4.0
    assert compute_backoff(1, base=1.0, rand=lambda: 1.0) == 4.0


def test_chunk_ndjson_respects_payload_size() -> None:
    records = [{"msg": "x" * 20} for _ in range(3)]

    chunks = list(chunk_ndjson(records, max_bytes=40))

    assert len(chunks) == 3
    assert all(chunk.endswith("\n") for chunk in chunks)


def test_handler_requires_url() -> None:
    with pytest.raises(ValueError, match="url"):
        HttpHandler(url="", interval=None)


def test_full_batch_is_posted_as_ndjson() -> None:
    seen: list[httpx.Request] = []
    handler = HttpHandler(
        url="https://collector.test/ingest",
        batch_size=2,
        interval=None,
        client=_client(lambda request: httpx.Response(202), seen),
        headers={"Authorization": "Bearer t"},
    )

    handler.handle(_record(1))
    assert seen == []
    assert handler.pending == 1
    handler.handle(_record(2))

    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "https://collector.test/ingest"
    assert seen[0].headers["content-type"] == NDJSON_CONTENT_TYPE
    assert seen[0].headers["authorization"] == "Bearer t"
    assert [line["msg"] for line in _lines(seen[0])] == ["m1", "m2"]
    assert handler.pending == 0


def test_flush_sends_partial_batches_and_ignores_empty_ones() -> None:
    seen: list[httpx.Request] = []
    handler = HttpHandler(url="https://c.test", batch_size=10, interval=None, client=_client(lambda r: httpx.Response(200), seen))

    handler.flush()
    handler.handle(_record(1))
    handler.flush()

    assert len(seen) == 1
    assert [line["msg"] for line in _lines(seen[0])] == ["m1"]


def test_failed_posts_are_retried_with_backoff() -> None:
    seen: list[httpx.Request] = []
    statuses = iter([503, 500, 200])
    sleeps: list[float] = []
    handler = HttpHandler(
        url="https://c.test",
        batch_size=1,
        interval=None,
        retries=3,
        base_delay=0.01,
        sleep=sleeps.append,
        client=_client(lambda request: httpx.Response(next(statuses)), seen),
    )

    handler.handle(_record(1))

    assert len(seen) == 3
    assert len(sleeps) == 2
    assert 0.01 <= sleeps[0] <= 0.02
    assert 0.02 <= sleeps[1] <= 0.04


def test_exhausted_retries_surface_on_the_error_channel() -> None:
    seen: list[httpx.Request] = []
    emitter = EventEmitter()
    emitter.add_valid_event(LogEvent.HANDLER_ERROR)
    errors: list[dict[str, Any]] = []
    emitter.add_listener(LogEvent.HANDLER_ERROR, errors.append)
    handler = HttpHandler(
        url="https://c.test",
        batch_size=1,
        interval=None,
        retries=1,
        sleep=lambda delay: None,
        emitter=emitter,
        client=_client(lambda request: httpx.Response(500), seen),
    )

    handler.handle(_record(1))

    assert len(seen) == 2
    assert len(errors) == 1
    assert isinstance(errors[0]["error"], httpx.HTTPStatusError)
    assert errors[0]["handler"] is handler
    assert errors[0]["record"] is None


def test_transport_errors_are_retried_too() -> None:
    calls: list[int] = []

    def flaky(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        if len(calls) == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200)

    handler = HttpHandler(
        url="https://c.test",
        batch_size=1,
        interval=None,
        sleep=lambda delay: None,
        client=httpx.Client(transport=httpx.MockTransport(flaky)),
    )

    handler.handle(_record(1))

    assert len(calls) == 2


def test_close_flushes_remaining_records_once() -> None:
    seen: list[httpx.Request] = []
    client = _client(lambda request: httpx.Response(200), seen)
    handler = HttpHandler(url="https://c.test", batch_size=10, interval=None, client=client)
    handler.handle(_record(1))

    handler.close()
    handler.close()

    assert len(seen) == 1
    assert not client.is_closed


def test_background_worker_flushes_full_batches() -> None:
    delivered = threading.Event()

    def receive(request: httpx.Request) -> httpx.Response:
        delivered.set()
        return httpx.Response(200)

    handler = HttpHandler(
        url="https://c.test",
        batch_size=1,
        interval=30.0,
        client=httpx.Client(transport=httpx.MockTransport(receive)),
    )
    try:
        handler.handle(_record(1))
        assert delivered.wait(5.0)
    finally:
        handler.close()


def test_error_listener_that_logs_does_not_block_the_caller() -> None:
    handler = HttpHandler(
        url="https://c.test",
        batch_size=1,
        interval=None,
        retries=0,
        client=_client(lambda request: httpx.Response(500), []),
    )
    logger = Logger(name="app", handlers=[handler], base=None, timestamp=False)
    errors: list[dict[str, Any]] = []

    def report(payload: dict[str, Any]) -> None:
        errors.append(payload)
        logger.warn("collector rejected batch: %s", payload["error"])

    logger.add_listener(LogEvent.HANDLER_ERROR, report)
    caller = threading.Thread(target=logger.info, args=("first",), daemon=True)
    caller.start()
    caller.join(timeout=3.0)

    assert not caller.is_alive()
    assert len(errors) == 1
    assert handler.pending == 1


def test_close_waits_for_an_in_flight_send_before_closing_its_client(monkeypatch: pytest.MonkeyPatch) -> None:
    entered = threading.Event()
    release = threading.Event()
    clients: list[httpx.Client] = []
    closed_while_sending: list[bool] = []

    def slow(request: httpx.Request) -> httpx.Response:
        entered.set()
        release.wait(10.0)
        closed_while_sending.append(clients[0].is_closed)
        return httpx.Response(200)

    real_client = httpx.Client

    def make_client(**kwargs: Any) -> httpx.Client:
        client = real_client(transport=httpx.MockTransport(slow), **kwargs)
        clients.append(client)
        return client

    monkeypatch.setattr(httpx, "Client", make_client)
    handler = HttpHandler(url="https://c.test", batch_size=1, interval=0.05)
    handler.handle(_record(1))
    assert entered.wait(5.0)

    closer = threading.Thread(target=handler.close, daemon=True)
    closer.start()
    closer.join(timeout=2.5)
    assert closer.is_alive()
    release.set()
    closer.join(timeout=5.0)

    assert not closer.is_alive()
    assert closed_while_sending == [False]
    assert clients[0].is_closed
