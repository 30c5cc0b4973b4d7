"""
Airwallex REST client.

Every resource wrapper goes through `AirwallexClient.send`, which attaches
the cached bearer token, the connected-account and SCA headers, and retries
transient failures with exponential backoff.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from src.config import get_settings
from src.kernel.errors import UpstreamError
from src.kernel.http.retry import RETRY_STATUSES
from src.airwallex.auth import AirwallexAuthService
from src.monitoring import get_metrics

logger = structlog.get_logger()

SCA_SESSION_HEADER = "x-sca-session-code"

_client: "AirwallexClient | None" = None


def _drop_none(params: dict[str, Any] | None) -> dict[str, Any] | None:
    if not params:
        return None
    return {key: value for key, value in params.items() if value is not None}


def response_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class AirwallexClient:
    """Shared async HTTP client for the Airwallex API."""

    def __init__(self, settings=None, *, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or get_settings()
        self._http = httpx.AsyncClient(timeout=self.settings.airwallex_timeout_seconds, transport=transport)
        self.auth = AirwallexAuthService(self.settings, self._http)

    @property
    def base_url(self) -> str:
        return self.settings.airwallex_base_url.rstrip("/")

    @property
    def files_base_url(self) -> str:
        """File uploads live on the `files` host next to the API host."""
        return self.base_url.replace("api", "files", 1)

    async def close(self) -> None:
        await self._http.aclose()

    async def _backoff(self, attempt: int) -> None:
        delay = self.settings.airwallex_backoff_base_seconds * (2**attempt)
        if delay > 0:
            await asyncio.sleep(delay)

    async def send(
        self,
        method: str,
        path: str,
        *,
        account_id: str | None = None,
        sca_token: str | None = None,
        params: dict[str, Any] | None = None,
        json: Any = None,
        files: Any = None,
        base_url: str | None = None,
        resource: str = "api",
    ) -> httpx.Response:
        """
        Perform a request and return the final response.

        401/403 responses clear the token cache and retry with a fresh
        token, except a 403 carrying an SCA session code, which is returned
        to the caller. Network errors surface as `UpstreamError` once the
        attempts are exhausted.
        """
        attempts = max(1, int(self.settings.airwallex_max_retries))
        url = (base_url or self.base_url) + path
        force_new = False

        attempt = 0
        while True:
            attempt += 1
            token = await self.auth.get_auth_token(force_new=force_new)
            headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
            if account_id:
                headers["x-on-behalf-of"] = account_id
            if sca_token:
                headers["x-sca-token"] = sca_token

            try:
                with get_metrics().time_airwallex_request(method, resource) as outcome:
                    response = await self._http.request(
                        method,
                        url,
                        headers=headers,
                        params=_drop_none(params),
                        json=json,
                        files=files,
                    )
                    outcome["status_code"] = response.status_code
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                logger.warning(
                    "Airwallex request failed",
                    method=method,
                    path=path,
                    attempt=attempt,
                    error=str(e),
                )
                if attempt >= attempts:
                    raise UpstreamError(
                        message=f"Airwallex request to {path} failed: {e}",
                        code="airwallex.unavailable",
                    ) from e
                await self._backoff(attempt)
                continue

            if response.status_code in (401, 403):
                if response.status_code == 403 and response.headers.get(SCA_SESSION_HEADER):
                    return response
                logger.info(
                    "Airwallex authentication error, clearing token cache",
                    status_code=response.status_code,
                    path=path,
                    attempt=attempt,
                )
                self.auth.clear_token_cache()
                if attempt < attempts:
                    force_new = True
                    await self._backoff(attempt)
                    continue
                return response

            if response.status_code in RETRY_STATUSES and attempt < attempts:
                logger.warning(
                    "Retrying Airwallex request due to status",
                    status_code=response.status_code,
                    path=path,
                    attempt=attempt,
                )
                await self._backoff(attempt)
                continue

            return response

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Like `send`, but returns the decoded body and raises on non-2xx."""
        response = await self.send(method, path, **kwargs)
        body = response_body(response)
        if response.status_code >= 400:
            logger.error(
                "Airwallex request rejected",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise UpstreamError(
                message=f"Airwallex request to {path} failed with status {response.status_code}",
                code="airwallex.request_failed",
                meta={"upstream_status": response.status_code, "upstream_body": body},
            )
        return body if body is not None else {}


def get_airwallex_client() -> AirwallexClient:
    """Get or create the process-wide Airwallex client."""
    global _client
    if _client is None:
        _client = AirwallexClient()
    return _client


async def close_airwallex_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
