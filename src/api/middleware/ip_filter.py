"""
IP allow-list middleware.

Enabled with `IP_FILTER_ENABLED` (true/1/yes/on). `ALLOWED_IPS` is a comma
separated list of addresses and CIDR ranges, IPv4 or IPv6. Requests whose
path starts with one of `IP_FILTER_EXCLUDED_PATHS` are never filtered.
"""

from __future__ import annotations

import ipaddress
from typing import Callable, Iterable

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.config import get_settings

logger = structlog.get_logger()

_TRUTHY = {"true", "1", "yes", "on"}
_LOOPBACK_ALIASES = {"::1", "::ffff:127.0.0.1"}

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def is_enabled(value: str | bool | None) -> bool:
    if isinstance(value, bool):
        return value
    return (value or "").strip().lower() in _TRUTHY


def normalize_ip(ip: str) -> str:
    ip = ip.strip()
    if ip in _LOOPBACK_ALIASES:
        return "127.0.0.1"
    return ip


def get_client_ip(request: Request) -> str:
    """Client address, honouring the usual proxy headers in order."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return normalize_ip(forwarded.split(",")[0])
    for header in ("X-Real-IP", "CF-Connecting-IP"):
        value = request.headers.get(header)
        if value:
            return normalize_ip(value)
    return normalize_ip(request.client.host) if request.client else "unknown"


def parse_allowed_ips(raw: str | Iterable[str]) -> list[str]:
    entries = raw.split(",") if isinstance(raw, str) else raw
    return [entry.strip() for entry in entries if entry and entry.strip()]


def ip_matches(ip: str, entry: str) -> bool:
    """Exact match, or membership of a CIDR range."""
    if ip == entry:
        return True
    if "/" not in entry:
        try:
            return ipaddress.ip_address(ip) == ipaddress.ip_address(entry)
        except ValueError:
            return False
    try:
        network: IPNetwork = ipaddress.ip_network(entry, strict=False)
        return ipaddress.ip_address(ip) in network
    except ValueError:
        logger.warning("Invalid IP filter entry", entry=entry)
        return False


def is_ip_allowed(ip: str, allowed: list[str]) -> bool:
    return any(ip_matches(ip, entry) for entry in allowed)


class IPFilterMiddleware(BaseHTTPMiddleware):
    """Reject requests from addresses outside the allow-list with 403."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        enabled: str | bool | None = None,
        allowed_ips: str | Iterable[str] | None = None,
        excluded_paths: list[str] | None = None,
    ):
        super().__init__(app)
        settings = get_settings()
        self.enabled = is_enabled(settings.ip_filter_enabled if enabled is None else enabled)
        self.allowed_ips = parse_allowed_ips(settings.allowed_ips if allowed_ips is None else allowed_ips)
        self.excluded_paths = settings.ip_filter_excluded_paths if excluded_paths is None else excluded_paths

        if self.enabled and not self.allowed_ips:
            logger.warning("IP filter enabled but ALLOWED_IPS is empty; all addresses are allowed")
        elif self.enabled:
            logger.info("IP filter enabled", allowed=len(self.allowed_ips))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or not self.allowed_ips:
            return await call_next(request)
        if any(request.url.path.startswith(path) for path in self.excluded_paths):
            return await call_next(request)

        client_ip = get_client_ip(request)
        if not is_ip_allowed(client_ip, self.allowed_ips):
            logger.warning("Request blocked by IP filter", client_ip=client_ip, path=request.url.path)
            return JSONResponse(
                status_code=403,
                content={"detail": f"Access denied from IP: {client_ip}", "code": "auth.ip_blocked"},
            )

        return await call_next(request)
