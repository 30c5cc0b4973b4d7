"""
Unit tests for the IP allow-list middleware.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.api.middleware.ip_filter import (
    IPFilterMiddleware,
    ip_matches,
    is_enabled,
    is_ip_allowed,
    normalize_ip,
    parse_allowed_ips,
)

pytestmark = pytest.mark.unit


def _app(**middleware_kwargs) -> FastAPI:
    app = FastAPI()
    app.add_middleware(IPFilterMiddleware, **middleware_kwargs)

    @app.get("/api/v1/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


async def _get(app: FastAPI, path: str, headers: dict[str, str] | None = None):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.get(path, headers=headers)


class TestHelpers:
    @pytest.mark.parametrize("value", ["true", "1", "YES", " on ", True])
    def test_enabled_values(self, value):
        assert is_enabled(value) is True

    @pytest.mark.parametrize("value", [None, "", "false", "0", "off", False])
    def test_disabled_values(self, value):
        assert is_enabled(value) is False

    def test_loopback_aliases(self):
        assert normalize_ip("::1") == "127.0.0.1"
        assert normalize_ip("::ffff:127.0.0.1") == "127.0.0.1"
        assert normalize_ip(" 10.0.0.1 ") == "10.0.0.1"

    def test_parse_allowed_ips(self):
        assert parse_allowed_ips(" 10.0.0.1, ,192.168.0.0/16 ") == ["10.0.0.1", "192.168.0.0/16"]

    def test_cidr_and_exact_matches(self):
        assert ip_matches("192.168.4.20", "192.168.0.0/16") is True
        assert ip_matches("10.0.0.2", "10.0.0.1") is False
        assert ip_matches("2001:db8::1", "2001:db8::/32") is True
        assert ip_matches("2001:0db8::1", "2001:db8::1") is True

    def test_invalid_entries_never_match(self):
        assert ip_matches("10.0.0.1", "not-an-ip/8") is False
        assert is_ip_allowed("unknown", ["10.0.0.1"]) is False


class TestMiddleware:
    async def test_disabled_allows_everything(self):
        response = await _get(_app(enabled=False, allowed_ips="10.0.0.1", excluded_paths=[]), "/api/v1/ping")

        assert response.status_code == 200

    async def test_blocks_unlisted_forwarded_address(self):
        app = _app(enabled=True, allowed_ips="10.0.0.1", excluded_paths=["/health"])

        response = await _get(app, "/api/v1/ping", {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

        assert response.status_code == 403
        assert response.json() == {"detail": "Access denied from IP: 203.0.113.9", "code": "auth.ip_blocked"}

    async def test_allows_listed_range(self):
        app = _app(enabled=True, allowed_ips="203.0.113.0/24", excluded_paths=[])

        response = await _get(app, "/api/v1/ping", {"X-Real-IP": "203.0.113.9"})

        assert response.status_code == 200

    async def test_excluded_paths_bypass_filter(self):
        app = _app(enabled=True, allowed_ips="10.0.0.1", excluded_paths=["/health"])

        response = await _get(app, "/health", {"X-Forwarded-For": "203.0.113.9"})

        assert response.status_code == 200

    async def test_empty_allow_list_allows_everything(self):
        app = _app(enabled=True, allowed_ips="", excluded_paths=[])

        response = await _get(app, "/api/v1/ping", {"X-Forwarded-For": "203.0.113.9"})

        assert response.status_code == 200
