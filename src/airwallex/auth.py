"""
Airwallex login token cache.

`POST /api/v1/authentication/login` with the platform API key returns a
bearer token and its expiry. The token is reused until shortly before it
expires; concurrent callers share a single login.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from src.kernel.errors import UpstreamError

logger = structlog.get_logger()

LOGIN_PATH = "/api/v1/authentication/login"
REFRESH_MARGIN = timedelta(seconds=60)
DEFAULT_TOKEN_TTL = timedelta(minutes=30)


def _parse_expiry(value: Any, now: datetime) -> datetime:
    if isinstance(value, str) and value:
        try:
            expires_at = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return now + DEFAULT_TOKEN_TTL
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at
    return now + DEFAULT_TOKEN_TTL


class AirwallexAuthService:
    """Fetches and caches the platform bearer token."""

    def __init__(self, settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._http = http_client
        self._token: str | None = None
        self._expires_at: datetime | None = None
        self._lock = asyncio.Lock()

    def _is_valid(self, now: datetime) -> bool:
        return bool(self._token) and self._expires_at is not None and now < self._expires_at - REFRESH_MARGIN

    async def get_auth_token(self, force_new: bool = False) -> str:
        if not force_new and self._is_valid(datetime.now(timezone.utc)):
            return self._token  # type: ignore[return-value]

        async with self._lock:
            now = datetime.now(timezone.utc)
            if not force_new and self._is_valid(now):
                return self._token  # type: ignore[return-value]
            return await self._login(now)

    async def _login(self, now: datetime) -> str:
        if not self._settings.airwallex_api_key or not self._settings.airwallex_client_id:
            raise UpstreamError(
                message="Airwallex credentials are not configured",
                code="airwallex.not_configured",
                status_code=503,
            )

        url = self._settings.airwallex_base_url.rstrip("/") + LOGIN_PATH
        try:
            response = await self._http.post(
                url,
                json={},
                headers={
                    "x-api-key": self._settings.airwallex_api_key,
                    "x-client-id": self._settings.airwallex_client_id,
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            logger.error("Airwallex login failed", error=str(e))
            raise UpstreamError(message="Airwallex authentication failed", code="airwallex.auth_failed") from e

        if response.status_code >= 400:
            logger.error("Airwallex login rejected", status_code=response.status_code)
            raise UpstreamError(
                message="Airwallex authentication failed",
                code="airwallex.auth_failed",
                meta={"upstream_status": response.status_code},
            )

        payload = response.json()
        token = payload.get("token")
        if not token:
            raise UpstreamError(message="Airwallex login returned no token", code="airwallex.auth_failed")

        self._token = token
        self._expires_at = _parse_expiry(payload.get("expires_at"), now)
        logger.info("Airwallex token refreshed", expires_at=self._expires_at.isoformat())
        return token

    def clear_token_cache(self) -> None:
        self._token = None
        self._expires_at = None
        logger.info("Airwallex token cache cleared")
