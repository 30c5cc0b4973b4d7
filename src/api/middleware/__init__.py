"""API middleware modules."""

from .ip_filter import IPFilterMiddleware, get_client_ip
from .security import (
    SecurityHeadersMiddleware,
    RequestIDMiddleware,
    RateLimitMiddleware,
    get_cors_origins,
)

__all__ = [
    "IPFilterMiddleware",
    "SecurityHeadersMiddleware",
    "RequestIDMiddleware",
    "RateLimitMiddleware",
    "get_client_ip",
    "get_cors_origins",
]
