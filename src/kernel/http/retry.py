"""
Retry helper for the outbound mail provider APIs.

Transient statuses and network errors are retried with exponential backoff;
a provider's `Retry-After` is honoured but never waits past `max_backoff`.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable

import httpx
import structlog

from src.monitoring import get_metrics

logger = structlog.get_logger()

RETRY_STATUSES = {429, 500, 502, 503, 504}


def backoff_delay(attempt: int, base_backoff: float, max_backoff: float) -> float:
    """Exponential delay for `attempt` (1-based) with up to 50% jitter."""
    delay = min(max_backoff, base_backoff * (2 ** (attempt - 1)))
    return delay + random.uniform(0, delay / 2)


def retry_after_seconds(value: str | None, max_backoff: float) -> float | None:
    """Seconds to wait from a `Retry-After` header (delta or HTTP date), capped at `max_backoff`."""
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        seconds = (when - datetime.now(timezone.utc)).total_seconds()
    return min(max(seconds, 0.0), max_backoff)


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_attempts: int = 3,
    retry_statuses: Iterable[int] | None = None,
    base_backoff: float = 0.5,
    max_backoff: float = 8.0,
    metrics_client: str | None = None,
    **kwargs,
) -> httpx.Response:
    """
    Send a request, retrying retryable statuses and network errors.

    The last response is returned as-is once attempts run out; the last
    network error re-raises. Each retry is counted under `metrics_client`.
    """
    retry_statuses = set(retry_statuses or RETRY_STATUSES)
    attempt = 0

    while True:
        attempt += 1
        try:
            response = await client.request(method, url, **kwargs)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            if attempt >= max_attempts:
                raise
            reason, status_code, error = "network", 0, str(e)
            delay = backoff_delay(attempt, base_backoff, max_backoff)
        else:
            if response.status_code not in retry_statuses or attempt >= max_attempts:
                return response
            reason, status_code, error = "status", response.status_code, None
            delay = retry_after_seconds(response.headers.get("Retry-After"), max_backoff)
            if delay is None:
                delay = backoff_delay(attempt, base_backoff, max_backoff)

        if metrics_client:
            get_metrics().track_http_retry(metrics_client, reason, status_code)
        logger.warning(
            "Retrying outbound request",
            client=metrics_client,
            url=url,
            reason=reason,
            status_code=status_code or None,
            attempt=attempt,
            delay=round(delay, 3),
            error=error,
        )
        await asyncio.sleep(delay)
