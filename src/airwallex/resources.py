"""
Airwallex resource wrappers.

Each wrapper maps one Airwallex resource onto `AirwallexClient` calls and
normalises list responses into `{items, ...}` shapes the API returns as-is.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from datetime import datetime, timezone
from typing import Any

import structlog

from src.airwallex.client import SCA_SESSION_HEADER, AirwallexClient, response_body
from src.kernel.errors import UpstreamError

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 100


def _with_page_size(params: dict[str, Any] | None) -> dict[str, Any]:
    params = dict(params or {})
    if not params.get("page_size"):
        params["page_size"] = DEFAULT_PAGE_SIZE
    return params


def _paged(data: Any, *, page_num: int | None = None) -> dict[str, Any]:
    """Normalise list payloads; Airwallex returns either a bare list or `{items, has_more}`."""
    if isinstance(data, list):
        return {"items": data, "has_more": False, "page_num": page_num or 0, "page_size": len(data)}
    data = data or {}
    items = data.get("items")
    return {
        "items": items if isinstance(items, list) else [],
        "has_more": bool(data.get("has_more", False)),
        "page_num": data.get("page_num", page_num or 0),
        "page_size": data.get("page_size") or DEFAULT_PAGE_SIZE,
    }


class _Resource:
    name = "api"

    def __init__(self, client: AirwallexClient):
        self.client = client

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        return await self.client.request(method, path, resource=self.name, **kwargs)


# =============================================================================
# Accounts
# =============================================================================


class AccountsResource(_Resource):
    name = "accounts"

    async def create(self, payload: dict[str, Any]) -> Any:
        data = await self._call("POST", "/api/v1/accounts/create", json=payload)
        logger.info("Airwallex account created", account_id=(data or {}).get("id"))
        return data

    async def get(self, account_id: str) -> Any:
        return await self._call("GET", f"/api/v1/accounts/{account_id}", account_id=account_id)


# =============================================================================
# Authorization (PKCE)
# =============================================================================

AUTH_TYPE_SCOPES = {
    "scaSetup": "w:awx_action:sca_edit",
    "kyc": "w:awx_action:onboarding",
}


def generate_pkce_pair() -> tuple[str, str]:
    """Return (code_verifier, S256 code_challenge)."""
    verifier = secrets.token_urlsafe(48)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


class AuthorizationResource(_Resource):
    name = "authorization"

    async def get_authorization_code(self, auth_type: str | None = None, account_id: str | None = None) -> dict[str, Any]:
        auth_type = auth_type or "scaSetup"
        verifier, challenge = generate_pkce_pair()
        data = await self._call(
            "POST",
            "/api/v1/authentication/authorize",
            account_id=account_id,
            json={
                "code_challenge": challenge,
                "code_challenge_method": "S256",
                "scope": [AUTH_TYPE_SCOPES.get(auth_type, auth_type)],
            },
        )
        code = (data or {}).get("authorization_code") or (data or {}).get("code")
        if not code:
            raise UpstreamError(message="Airwallex returned no authorization code", code="airwallex.no_authorization_code")
        return {"authorization_code": code, "code_verifier": verifier, "auth_type": auth_type}


# =============================================================================
# Balances
# =============================================================================


class BalancesResource(_Resource):
    name = "balances"

    async def current(self, account_id: str | None = None, sca_token: str | None = None) -> Any:
        return await self._call("GET", "/api/v1/balances/current", account_id=account_id, sca_token=sca_token)


# =============================================================================
# Contacts (beneficiaries)
# =============================================================================


class ContactsResource(_Resource):
    name = "beneficiaries"

    async def list(self, params: dict[str, Any] | None = None, account_id: str | None = None) -> dict[str, Any]:
        params = _with_page_size(params)
        data = await self._call("GET", "/api/v1/beneficiaries", account_id=account_id, params=params)
        return _paged(data, page_num=params.get("page_num"))

    async def get(self, contact_id: str, account_id: str | None = None) -> Any:
        return await self._call("GET", f"/api/v1/beneficiaries/{contact_id}", account_id=account_id)

    async def create(self, payload: dict[str, Any], account_id: str | None = None) -> Any:
        data = await self._call("POST", "/api/v1/beneficiaries/create", account_id=account_id, json=payload)
        logger.info("Airwallex beneficiary created", beneficiary_id=(data or {}).get("beneficiary_id"))
        return data


# =============================================================================
# Conversions
# =============================================================================


class ConversionsResource(_Resource):
    name = "conversions"

    async def list(self, params: dict[str, Any] | None = None, account_id: str | None = None) -> dict[str, Any]:
        params = _with_page_size(params)
        data = await self._call("GET", "/api/v1/fx/conversions", account_id=account_id, params=params)
        return _paged(data, page_num=params.get("page_num"))

    async def get(self, conversion_id: str, account_id: str | None = None) -> Any:
        return await self._call("GET", f"/api/v1/fx/conversions/{conversion_id}", account_id=account_id)

    async def create(self, payload: dict[str, Any], account_id: str | None = None) -> Any:
        return await self._call("POST", "/api/v1/fx/conversions/create", account_id=account_id, json=payload)


# =============================================================================
# Files
# =============================================================================


class FilesResource(_Resource):
    name = "files"

    async def upload(
        self,
        filename: str,
        content: bytes,
        content_type: str | None = None,
        notes: str | None = None,
        account_id: str | None = None,
    ) -> Any:
        data = await self._call(
            "POST",
            "/api/v1/files/upload",
            base_url=self.client.files_base_url,
            account_id=account_id,
            params={"notes": notes},
            files={"file": (filename, content, content_type or "application/octet-stream")},
        )
        logger.info("Airwallex file uploaded", filename=filename, file_id=(data or {}).get("file_id"))
        return data

    async def download_links(self, file_ids: list[str], account_id: str | None = None) -> Any:
        return await self._call(
            "POST",
            "/api/v1/files/download_links",
            account_id=account_id,
            json={"file_ids": file_ids},
        )


# =============================================================================
# Global accounts
# =============================================================================


class GlobalAccountsResource(_Resource):
    name = "global_accounts"

    async def list(self, account_id: str | None = None) -> dict[str, Any]:
        data = await self._call("GET", "/api/v1/global_accounts", account_id=account_id)
        return _paged(data)

    async def create(self, payload: dict[str, Any], account_id: str | None = None) -> Any:
        return await self._call("POST", "/api/v1/global_accounts/create", account_id=account_id, json=payload)

    async def get(self, global_account_id: str, account_id: str | None = None) -> Any:
        return await self._call("GET", f"/api/v1/global_accounts/{global_account_id}", account_id=account_id)


# =============================================================================
# Transactions
# =============================================================================


class TransactionsResource(_Resource):
    name = "transactions"

    async def list(self, params: dict[str, Any] | None = None, account_id: str | None = None) -> dict[str, Any]:
        params = _with_page_size(params)
        params.setdefault("page_num", 0)
        data = await self._call("GET", "/api/v1/issuing/transactions", account_id=account_id, params=params)
        return _paged(data, page_num=params["page_num"])


# =============================================================================
# Transfers
# =============================================================================


def normalize_transfer(transfer: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": transfer.get("id") or "",
        "created_at": transfer.get("created_at") or "",
        "updated_at": transfer.get("updated_at") or "",
        "status": transfer.get("status") or "",
        "transfer_date": transfer.get("transfer_date") or "",
        "source_amount": transfer.get("source_amount") or 0,
        "source_currency": transfer.get("source_currency") or "",
        "transfer_amount": transfer.get("transfer_amount") or 0,
        "transfer_currency": transfer.get("transfer_currency") or "",
        "beneficiary": transfer.get("beneficiary") or {},
        "payer": transfer.get("payer"),
        "reference": transfer.get("reference"),
        "remarks": transfer.get("remarks"),
        "amount_beneficiary_receives": transfer.get("amount_beneficiary_receives"),
        "amount_payer_pays": transfer.get("amount_payer_pays"),
        "short_reference_id": transfer.get("short_reference_id"),
        "failure_reason": transfer.get("failure_reason"),
        "fee_amount": transfer.get("fee_amount"),
        "fee_currency": transfer.get("fee_currency"),
    }


class TransfersResource(_Resource):
    name = "transfers"

    async def list(
        self,
        params: dict[str, Any] | None = None,
        account_id: str | None = None,
        sca_token: str | None = None,
    ) -> dict[str, Any]:
        params = _with_page_size(params)
        data = await self._call(
            "GET", "/api/v1/transfers", account_id=account_id, sca_token=sca_token, params=params
        ) or {}
        items = data.get("items") if isinstance(data, dict) else data
        return {
            "page_before": data.get("page_before") if isinstance(data, dict) else None,
            "page_after": data.get("page_after") if isinstance(data, dict) else None,
            "items": [normalize_transfer(item) for item in items] if isinstance(items, list) else [],
        }

    async def create(
        self,
        payload: dict[str, Any],
        account_id: str | None = None,
        sca_token: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a payout.

        When Airwallex demands step-up authentication it answers 403 with an
        SCA session code; that is returned as an unsuccessful result instead
        of an error so the caller can run the SCA flow.
        """
        response = await self.client.send(
            "POST",
            "/api/v1/transfers/create",
            account_id=account_id,
            sca_token=sca_token,
            json=payload,
            resource=self.name,
        )
        body = response_body(response)

        session_code = response.headers.get(SCA_SESSION_HEADER)
        if response.status_code == 403 and session_code:
            logger.info("Airwallex transfer requires SCA", request_id=payload.get("request_id"))
            message = body.get("message") if isinstance(body, dict) else None
            return {
                "id": "",
                "request_id": payload.get("request_id"),
                "status": "403",
                "created_at": datetime.now(timezone.utc).isoformat(),
                "success": False,
                "message": message or "SCA authentication required",
                "scaSessionCode": session_code,
            }

        if response.status_code >= 400:
            raise UpstreamError(
                message=f"Airwallex transfer creation failed with status {response.status_code}",
                code="airwallex.transfer_failed",
                meta={"upstream_status": response.status_code, "upstream_body": body},
            )
        logger.info("Airwallex transfer created", transfer_id=(body or {}).get("id"))
        return body or {}
