"""
Security Middleware

Provides:
- Security headers (CSP, XSS, etc.)
- Request ID tracking
- Rate limiting by IP
"""

import secrets
import time
from collections import defaultdict, deque
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from src.api.middleware.ip_filter import get_client_ip
from src.config import get_settings
from src.monitoring import get_metrics

logger = structlog.get_logger()

RATE_LIMIT_EXEMPT_PATHS = {"/health", "/health/ready", "/health/live", "/metrics"}

_WINDOW_SECONDS = 60.0

# Swagger UI and ReDoc load their assets from jsDelivr
_DOCS_CSP = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net https://fonts.googleapis.com; "
    "font-src 'self' https://fonts.gstatic.com; "
    "img-src 'self' data: https:; "
    "frame-ancestors 'none';"
)


# =============================================================================
# Security Headers
# =============================================================================


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    Headers:
    - X-Content-Type-Options: nosniff
    - X-Frame-Options: DENY
    - X-XSS-Protection: 1; mode=block
    - Referrer-Policy: strict-origin-when-cross-origin
    - Content-Security-Policy: (for HTML responses)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if response.headers.get("content-type", "").startswith("text/html"):
            response.headers["Content-Security-Policy"] = _DOCS_CSP

        return response


# =============================================================================
# Request ID Tracking
# =============================================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Add unique request ID to all requests for tracing.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or secrets.token_hex(8)

        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers["X-Request-ID"] = request_id
        return response


# =============================================================================
# Rate Limiting by IP
# =============================================================================


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window rate limiting by client IP.

    Each IP gets `rate_limit_per_minute` requests per rolling minute and at
    most `rate_limit_burst` within one second. Limits are per process; behind
    several workers each one counts on its own.
    """

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int | None = None,
        burst_limit: int | None = None,
    ):
        super().__init__(app)
        settings = get_settings()
        self.requests_per_minute = requests_per_minute or settings.rate_limit_per_minute
        self.burst_limit = burst_limit or settings.rate_limit_burst
        self._windows: dict[str, deque[float]] = defaultdict(deque)
        self._last_prune = time.monotonic()

    def _prune_idle(self, now: float) -> None:
        if now - self._last_prune < _WINDOW_SECONDS:
            return
        self._last_prune = now
        idle = [ip for ip, window in self._windows.items() if not window or window[-1] <= now - _WINDOW_SECONDS]
        for ip in idle:
            del self._windows[ip]

    def check(self, client_ip: str) -> tuple[str | None, int]:
        """Record a request; returns (limit hit or None, Retry-After seconds)."""
        now = time.monotonic()
        self._prune_idle(now)

        window = self._windows[client_ip]
        while window and window[0] <= now - _WINDOW_SECONDS:
            window.popleft()

        if len(window) >= self.requests_per_minute:
            return "minute", int(window[0] + _WINDOW_SECONDS - now) + 1

        # The newest `burst_limit` entries all fall inside the last second
        if len(window) >= self.burst_limit and window[-self.burst_limit] > now - 1:
            return "burst", 1

        window.append(now)
        return None, 0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in RATE_LIMIT_EXEMPT_PATHS:
            return await call_next(request)

        client_ip = get_client_ip(request)
        limit, retry_after = self.check(client_ip)

        if limit:
            get_metrics().track_rate_limited(limit)
            logger.warning(
                "Rate limit exceeded",
                client_ip=client_ip,
                path=request.url.path,
                limit=limit,
                retry_after=retry_after,
            )
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded", "code": "http.rate_limited"},
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)


# =============================================================================
# CORS Configuration
# =============================================================================


def get_cors_origins() -> list[str]:
    """
    Get allowed CORS origins based on environment.

    Production: only configured origins
    Development: configured origins plus common local ports
    """
    settings = get_settings()

    if settings.environment == "production":
        return settings.cors_origins

    dev_origins = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:3001",
        "http://127.0.0.1:5173",
    ]
    return sorted(set(settings.cors_origins + dev_origins))
