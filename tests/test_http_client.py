import asyncio
import time

import httpx
import pytest

from consultant.services.errors import Cancelled, ExhaustedRetries, TransportError, UpstreamStatus
from consultant.services.http_client import RetryConfig, RetryingTransport, backoff_delay, wait_or_cancel


def _transport(handler, config: RetryConfig) -> RetryingTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RetryingTransport(client, config, name="test")


def _request(transport: RetryingTransport) -> httpx.Request:
    return transport.client.build_request("POST", "https://api.example.com/v1/things", content=b'{"a": 1}')


class TestBackoffDelay:
    def test_doubles_per_attempt(self):
        config = RetryConfig(max_attempts=5, base_delay=1.0, max_delay=100.0)
        assert [backoff_delay(n, config) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        config = RetryConfig(max_attempts=5, base_delay=1.0, max_delay=5.0)
        assert [backoff_delay(n, config) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]


class TestRetryingTransport:
    @pytest.mark.asyncio
    async def test_success_returns_body_without_retry(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, content=b'{"ok": true}')

        transport = _transport(handler, RetryConfig(max_attempts=3, base_delay=0.01, max_delay=0.01))
        body = await transport.execute(_request(transport))

        assert body == b'{"ok": true}'
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_always_failing_makes_exactly_max_attempts(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        config = RetryConfig(max_attempts=4, base_delay=0.01, max_delay=0.02)
        transport = _transport(handler, config)

        started = time.monotonic()
        with pytest.raises(ExhaustedRetries) as exc_info:
            await transport.execute(_request(transport))
        elapsed = time.monotonic() - started

        assert len(calls) == 4
        assert exc_info.value.attempts == 4
        assert isinstance(exc_info.value.last_error, TransportError)
        # waits: 0.01 + 0.02 + 0.02, nothing after the last attempt
        assert elapsed < 0.05 + 0.5

    @pytest.mark.asyncio
    async def test_total_wait_matches_backoff_schedule(self, monkeypatch):
        waits = []

        async def record_wait(delay, cancel):
            waits.append(delay)

        monkeypatch.setattr("consultant.services.http_client.wait_or_cancel", record_wait)

        def handler(request):
            return httpx.Response(503, text="unavailable")

        config = RetryConfig(max_attempts=5, base_delay=1.0, max_delay=3.0)
        transport = _transport(handler, config)

        with pytest.raises(ExhaustedRetries):
            await transport.execute(_request(transport))

        assert waits == [1.0, 2.0, 3.0, 3.0]
        assert sum(waits) <= 1.0 * (1 + 2 + 4 + 8)

    @pytest.mark.asyncio
    async def test_succeeds_on_kth_attempt_and_stops(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(500, text="oops")
            return httpx.Response(200, content=b"done")

        transport = _transport(handler, RetryConfig(max_attempts=5, base_delay=0.001, max_delay=0.001))
        body = await transport.execute(_request(transport))

        assert body == b"done"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_non_200_success_codes_are_failures(self):
        def handler(request):
            return httpx.Response(201, text="created")

        transport = _transport(handler, RetryConfig(max_attempts=2, base_delay=0.001, max_delay=0.001))

        with pytest.raises(ExhaustedRetries) as exc_info:
            await transport.execute(_request(transport))

        last_error = exc_info.value.last_error
        assert isinstance(last_error, UpstreamStatus)
        assert last_error.status_code == 201
        assert last_error.body == "created"
        assert exc_info.value.__cause__ is last_error

    @pytest.mark.asyncio
    async def test_resends_same_body_each_attempt(self):
        bodies = []

        def handler(request):
            bodies.append(request.content)
            return httpx.Response(502)

        transport = _transport(handler, RetryConfig(max_attempts=3, base_delay=0.001, max_delay=0.001))

        with pytest.raises(ExhaustedRetries):
            await transport.execute(_request(transport))

        assert bodies == [b'{"a": 1}'] * 3

    @pytest.mark.asyncio
    async def test_cancel_during_wait_returns_promptly(self):
        def handler(request):
            return httpx.Response(500)

        transport = _transport(handler, RetryConfig(max_attempts=3, base_delay=10.0, max_delay=10.0))
        cancel = asyncio.Event()

        async def fire():
            await asyncio.sleep(0.05)
            cancel.set()

        asyncio.get_running_loop().create_task(fire())
        started = time.monotonic()
        with pytest.raises(Cancelled):
            await transport.execute(_request(transport), cancel=cancel)

        assert time.monotonic() - started < 0.05 + 0.25

    @pytest.mark.asyncio
    async def test_cancel_in_flight_aborts_request(self):
        async def slow_handler(request):
            await asyncio.sleep(10)
            return httpx.Response(200)

        transport = _transport(slow_handler, RetryConfig(max_attempts=3, base_delay=0.01, max_delay=0.01))
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel.set)

        started = time.monotonic()
        with pytest.raises(Cancelled):
            await transport.execute(_request(transport), cancel=cancel)

        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_already_cancelled_sends_nothing(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        transport = _transport(handler, RetryConfig())
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(Cancelled):
            await transport.execute(_request(transport), cancel=cancel)

        assert calls == []


class TestWaitOrCancel:
    @pytest.mark.asyncio
    async def test_waits_full_delay_without_cancel(self):
        started = time.monotonic()
        await wait_or_cancel(0.02, asyncio.Event())
        assert time.monotonic() - started >= 0.015

    @pytest.mark.asyncio
    async def test_raises_when_event_fires(self):
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, cancel.set)

        with pytest.raises(Cancelled):
            await wait_or_cancel(5.0, cancel)
