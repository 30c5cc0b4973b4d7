"""Tests for the Airwallex client, login cache and resource wrappers."""

from types import SimpleNamespace

import httpx
import pytest

from src.airwallex.client import AirwallexClient
from src.airwallex.resources import (
    AuthorizationResource,
    ContactsResource,
    GlobalAccountsResource,
    TransfersResource,
    _paged,
)
from src.kernel.errors import UpstreamError

pytestmark = pytest.mark.unit

LOGIN_URL = "https://api.test/api/v1/authentication/login"


def _settings(**overrides) -> SimpleNamespace:
    values = {
        "airwallex_base_url": "https://api.test",
        "airwallex_api_key": "key_1",
        "airwallex_client_id": "client_1",
        "airwallex_timeout_seconds": 5.0,
        "airwallex_max_retries": 3,
        "airwallex_backoff_base_seconds": 0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class FakeAirwallex:
    """Records requests and answers API calls from a queue of responses."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.logins = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == LOGIN_URL:
            self.logins += 1
            return httpx.Response(200, json={"token": f"tok_{self.logins}", "expires_at": "2999-01-01T00:00:00Z"})
        self.requests.append(request)
        if not self.responses:
            return httpx.Response(200, json={})
        return self.responses.pop(0)


def _client(fake: FakeAirwallex, **overrides) -> AirwallexClient:
    return AirwallexClient(_settings(**overrides), transport=httpx.MockTransport(fake))


# =============================================================================
# Client
# =============================================================================


class TestAirwallexClient:
    async def test_attaches_token_and_account_headers(self):
        fake = FakeAirwallex(httpx.Response(200, json={"id": "acct_1"}))
        client = _client(fake)

        body = await client.request("GET", "/api/v1/accounts/acct_1", account_id="acct_1", sca_token="sca_x")

        assert body == {"id": "acct_1"}
        [request] = fake.requests
        assert request.headers["Authorization"] == "Bearer tok_1"
        assert request.headers["x-on-behalf-of"] == "acct_1"
        assert request.headers["x-sca-token"] == "sca_x"

    async def test_login_token_is_reused(self):
        fake = FakeAirwallex()
        client = _client(fake)

        await client.request("GET", "/api/v1/balances/current")
        await client.request("GET", "/api/v1/balances/current")

        assert fake.logins == 1

    async def test_unauthorized_forces_fresh_login(self):
        fake = FakeAirwallex(httpx.Response(401), httpx.Response(200, json={"ok": True}))
        client = _client(fake)

        body = await client.request("GET", "/api/v1/balances/current")

        assert body == {"ok": True}
        assert fake.logins == 2
        assert fake.requests[-1].headers["Authorization"] == "Bearer tok_2"

    async def test_sca_challenge_is_not_retried(self):
        fake = FakeAirwallex(httpx.Response(403, headers={"x-sca-session-code": "sess_1"}, json={"message": "SCA"}))
        client = _client(fake)

        response = await client.send("POST", "/api/v1/transfers/create", json={})

        assert response.status_code == 403
        assert len(fake.requests) == 1
        assert fake.logins == 1

    async def test_retries_transient_status(self):
        fake = FakeAirwallex(httpx.Response(503), httpx.Response(200, json={"items": []}))
        client = _client(fake)

        assert await client.request("GET", "/api/v1/global_accounts") == {"items": []}
        assert len(fake.requests) == 2

    async def test_error_status_raises_upstream_error(self):
        fake = FakeAirwallex(httpx.Response(400, json={"code": "invalid_argument"}))
        client = _client(fake)

        with pytest.raises(UpstreamError) as exc:
            await client.request("POST", "/api/v1/fx/conversions/create", json={})

        assert exc.value.code == "airwallex.request_failed"
        assert exc.value.meta["upstream_status"] == 400
        assert exc.value.meta["upstream_body"] == {"code": "invalid_argument"}

    async def test_network_errors_surface_after_retries(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == LOGIN_URL:
                return httpx.Response(200, json={"token": "tok"})
            raise httpx.ConnectError("connection refused", request=request)

        client = AirwallexClient(_settings(airwallex_max_retries=2), transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError) as exc:
            await client.request("GET", "/api/v1/balances/current")

        assert exc.value.code == "airwallex.unavailable"

    async def test_missing_credentials(self):
        client = _client(FakeAirwallex(), airwallex_api_key=None)

        with pytest.raises(UpstreamError) as exc:
            await client.request("GET", "/api/v1/balances/current")

        assert exc.value.code == "airwallex.not_configured"
        assert exc.value.status_code == 503

    async def test_files_host(self):
        assert _client(FakeAirwallex()).files_base_url == "https://files.test"


# =============================================================================
# Resources
# =============================================================================


class TestPaged:
    def test_bare_list(self):
        assert _paged([{"id": 1}]) == {"items": [{"id": 1}], "has_more": False, "page_num": 0, "page_size": 1}

    def test_envelope(self):
        result = _paged({"items": [{"id": 1}], "has_more": True, "page_num": 2}, page_num=2)

        assert result["has_more"] is True
        assert result["page_num"] == 2
        assert result["page_size"] == 100

    def test_empty(self):
        assert _paged(None)["items"] == []


class TestResources:
    async def test_contacts_list_sends_default_page_size(self):
        fake = FakeAirwallex(httpx.Response(200, json={"items": [{"beneficiary_id": "b1"}], "has_more": False}))

        result = await ContactsResource(_client(fake)).list({"name": "Jane"}, account_id="acct_1")

        assert result["items"] == [{"beneficiary_id": "b1"}]
        [request] = fake.requests
        assert request.url.params["page_size"] == "100"
        assert request.url.params["name"] == "Jane"

    async def test_global_accounts_accepts_bare_list(self):
        fake = FakeAirwallex(httpx.Response(200, json=[{"id": "ga_1"}]))

        result = await GlobalAccountsResource(_client(fake)).list()

        assert result["items"] == [{"id": "ga_1"}]

    async def test_transfer_list_is_normalised(self):
        fake = FakeAirwallex(
            httpx.Response(200, json={"items": [{"id": "t1", "status": "PAID"}], "page_after": "cursor"})
        )

        result = await TransfersResource(_client(fake)).list()

        assert result["page_after"] == "cursor"
        assert result["items"][0]["id"] == "t1"
        assert result["items"][0]["source_currency"] == ""

    async def test_transfer_create_returns_sca_challenge(self):
        fake = FakeAirwallex(httpx.Response(403, headers={"x-sca-session-code": "sess_9"}, json={"message": "Step up"}))

        result = await TransfersResource(_client(fake)).create({"request_id": "req_1"}, account_id="acct_1")

        assert result["status"] == "403"
        assert result["scaSessionCode"] == "sess_9"
        assert result["success"] is False
        assert result["message"] == "Step up"

    async def test_transfer_create_error_raises(self):
        fake = FakeAirwallex(httpx.Response(400, json={"message": "bad"}))

        with pytest.raises(UpstreamError):
            await TransfersResource(_client(fake)).create({"request_id": "req_1"})

    async def test_authorization_code(self):
        fake = FakeAirwallex(httpx.Response(200, json={"authorization_code": "code_1"}))

        result = await AuthorizationResource(_client(fake)).get_authorization_code(account_id="acct_1")

        assert result["authorization_code"] == "code_1"
        assert result["auth_type"] == "scaSetup"
        assert result["code_verifier"]
