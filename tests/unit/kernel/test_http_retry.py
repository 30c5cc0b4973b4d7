"""
Unit tests for the outbound retry helper.
"""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from src.kernel.http import retry
from src.kernel.http.retry import request_with_retry, retry_after_seconds

pytestmark = pytest.mark.unit


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []

    async def fake_sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr(retry.asyncio, "sleep", fake_sleep)
    return recorded


def _client(*responses) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), seen


class TestRetryAfter:
    def test_delta_seconds(self):
        assert retry_after_seconds("3", max_backoff=8.0) == 3.0

    def test_capped_at_max_backoff(self):
        assert retry_after_seconds("120", max_backoff=8.0) == 8.0

    def test_http_date(self):
        when = format_datetime(datetime.now(timezone.utc) + timedelta(seconds=30), usegmt=True)

        assert retry_after_seconds(when, max_backoff=60.0) == pytest.approx(30, abs=2)

    def test_past_date_waits_zero(self):
        when = format_datetime(datetime.now(timezone.utc) - timedelta(minutes=5), usegmt=True)

        assert retry_after_seconds(when, max_backoff=8.0) == 0.0

    @pytest.mark.parametrize("value", [None, "", "soon"])
    def test_unusable_values(self, value):
        assert retry_after_seconds(value, max_backoff=8.0) is None


class TestRequestWithRetry:
    async def test_retries_rate_limited_status(self, sleeps):
        client, seen = _client(
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(202, json={"ok": True}),
        )
        async with client:
            response = await request_with_retry(client, "POST", "https://mail.test/send", max_attempts=2)

        assert response.status_code == 202
        assert len(seen) == 2
        assert sleeps == [2.0]

    async def test_returns_last_response_when_attempts_run_out(self, sleeps):
        client, seen = _client(httpx.Response(503), httpx.Response(503))
        async with client:
            response = await request_with_retry(client, "GET", "https://mail.test/status", max_attempts=2)

        assert response.status_code == 503
        assert len(seen) == 2
        assert len(sleeps) == 1

    async def test_non_retryable_status_returns_immediately(self, sleeps):
        client, seen = _client(httpx.Response(400))
        async with client:
            response = await request_with_retry(
                client, "POST", "https://mail.test/send", retry_statuses={429}, max_attempts=3
            )

        assert response.status_code == 400
        assert len(seen) == 1
        assert sleeps == []

    async def test_network_error_reraises_after_last_attempt(self, sleeps):
        client, seen = _client(
            httpx.ConnectError("refused"),
            httpx.ConnectError("refused"),
        )
        async with client:
            with pytest.raises(httpx.ConnectError):
                await request_with_retry(client, "GET", "https://mail.test/status", max_attempts=2, max_backoff=1.0)

        assert len(seen) == 2
        assert len(sleeps) == 1
        assert sleeps[0] <= 1.5

    async def test_retries_are_counted(self, sleeps):
        counter = retry.get_metrics().http_retries_total.labels(client="sendgrid", reason="status", status_code="429")
        before = counter._value.get()
        client, _ = _client(httpx.Response(429), httpx.Response(202))
        async with client:
            await request_with_retry(client, "POST", "https://mail.test/send", max_attempts=2, metrics_client="sendgrid")

        assert counter._value.get() == before + 1
