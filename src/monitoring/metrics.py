"""
Prometheus Metrics

Defines and exports metrics for the Magna Porta API. Exposed at `/metrics`.
"""

import time
from contextlib import contextmanager

import structlog
from prometheus_client import Counter, Histogram

logger = structlog.get_logger()

# Singleton metrics instance
_metrics: "Metrics | None" = None


class Metrics:
    """
    Prometheus metrics for the API.

    Tracks:
    - Webhooks received per event name
    - Mail delivery attempts per provider and outcome
    - Airwallex requests per resource and status
    - Outbound HTTP retries
    - Requests rejected by the rate limiter
    """

    def __init__(self):
        self.webhooks_received_total = Counter(
            "magna_porta_webhooks_received_total",
            "Total Airwallex webhooks received",
            ["webhook_name"],
        )

        self.webhook_mails_total = Counter(
            "magna_porta_webhook_mails_total",
            "Webhook notification mails by outcome",
            ["webhook_name", "outcome"],  # outcome: sent | fallback | failed
        )

        self.mail_deliveries_total = Counter(
            "magna_porta_mail_deliveries_total",
            "Mail delivery attempts by provider and outcome",
            ["provider", "outcome"],
        )

        self.airwallex_requests_total = Counter(
            "magna_porta_airwallex_requests_total",
            "Airwallex API requests by method and status code",
            ["method", "resource", "status_code"],
        )

        self.airwallex_request_duration_seconds = Histogram(
            "magna_porta_airwallex_request_duration_seconds",
            "Airwallex API request duration in seconds",
            ["method", "resource"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
        )

        self.http_retries_total = Counter(
            "magna_porta_http_retries_total",
            "Outbound HTTP retries by client and reason",
            ["client", "reason", "status_code"],
        )

        self.rate_limited_requests_total = Counter(
            "magna_porta_rate_limited_requests_total",
            "Inbound requests rejected by the IP rate limiter",
            ["limit"],  # limit: burst | minute
        )

        logger.info("Prometheus metrics initialized")

    def track_webhook_received(self, webhook_name: str) -> None:
        self.webhooks_received_total.labels(webhook_name=webhook_name).inc()

    def track_webhook_mail(self, webhook_name: str, outcome: str) -> None:
        self.webhook_mails_total.labels(webhook_name=webhook_name, outcome=outcome).inc()

    def track_mail_delivery(self, provider: str, outcome: str) -> None:
        self.mail_deliveries_total.labels(provider=provider, outcome=outcome).inc()

    def track_http_retry(self, client: str, reason: str, status_code: int | str) -> None:
        self.http_retries_total.labels(client=client, reason=reason, status_code=str(status_code)).inc()

    def track_rate_limited(self, limit: str) -> None:
        self.rate_limited_requests_total.labels(limit=limit).inc()

    def track_airwallex_request(self, method: str, resource: str, status_code: int, duration: float) -> None:
        """Track one Airwallex call; status 0 means no response was received."""
        self.airwallex_requests_total.labels(
            method=method,
            resource=resource,
            status_code=str(status_code),
        ).inc()
        self.airwallex_request_duration_seconds.labels(method=method, resource=resource).observe(duration)

    @contextmanager
    def time_airwallex_request(self, method: str, resource: str):
        """Yield a dict whose `status_code` is recorded when the block exits."""
        start = time.perf_counter()
        outcome = {"status_code": 0}
        try:
            yield outcome
        finally:
            self.track_airwallex_request(method, resource, outcome["status_code"], time.perf_counter() - start)


def get_metrics() -> Metrics:
    """Get or create the singleton metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = Metrics()
    return _metrics
