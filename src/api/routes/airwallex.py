"""
Airwallex Routes.

Proxies the Airwallex resources the dashboard needs. Every endpoint needs a
valid JWT; `account_id` selects the connected account (`x-on-behalf-of`).
List filters are passed through to Airwallex unchanged.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, File, Query, Request, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from src.airwallex import AirwallexClient, ScaTokenCache, get_airwallex_client, get_sca_token_cache
from src.airwallex.resources import (
    AccountsResource,
    AuthorizationResource,
    BalancesResource,
    ContactsResource,
    ConversionsResource,
    FilesResource,
    GlobalAccountsResource,
    TransactionsResource,
    TransfersResource,
)
from src.auth import TokenClaims, get_current_user, require_admin

router = APIRouter(prefix="/airwallex", dependencies=[Depends(get_current_user)])

# Query parameters consumed here rather than forwarded to Airwallex
_RESERVED_PARAMS = {"account_id", "sca_token", "sca_token_5m"}


def get_client() -> AirwallexClient:
    return get_airwallex_client()


def get_sca_cache() -> ScaTokenCache:
    return get_sca_token_cache()


def passthrough_params(request: Request) -> dict[str, Any]:
    return {key: value for key, value in request.query_params.items() if key not in _RESERVED_PARAMS and value != ""}


# =============================================================================
# Request models
# =============================================================================


class DownloadLinksRequest(BaseModel):
    file_ids: list[str] = Field(..., min_length=1)


class ScaTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_id: str | None = Field(None, alias="accountId")
    force_new: bool = Field(False, alias="forceNew")


class ScaValidateRequest(BaseModel):
    token: str = Field(..., min_length=1)


# =============================================================================
# Accounts
# =============================================================================


@router.post("/accounts/create", tags=["AW Accounts"])
async def create_account(payload: dict[str, Any] = Body(...), client: AirwallexClient = Depends(get_client)):
    return await AccountsResource(client).create(payload)


@router.get("/accounts/{account_id}", tags=["AW Accounts"])
async def get_account(account_id: str, client: AirwallexClient = Depends(get_client)):
    return await AccountsResource(client).get(account_id)


# =============================================================================
# Authorization
# =============================================================================


@router.post("/authorization/code", tags=["AW Authorization"])
async def authorization_code(
    auth_type: str | None = Query(None),
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await AuthorizationResource(client).get_authorization_code(auth_type, account_id)


# =============================================================================
# Balances
# =============================================================================


@router.get("/balances/current", tags=["AW Balances"])
async def current_balances(
    account_id: str | None = Query(None),
    sca_token: str | None = Query(None, alias="sca_token_5m"),
    client: AirwallexClient = Depends(get_client),
):
    return await BalancesResource(client).current(account_id=account_id, sca_token=sca_token)


# =============================================================================
# Contacts (beneficiaries)
# =============================================================================


@router.get("/contacts", tags=["AW Contacts"])
async def list_contacts(
    request: Request,
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await ContactsResource(client).list(passthrough_params(request), account_id=account_id)


@router.get("/contacts/{contact_id}", tags=["AW Contacts"])
async def get_contact(
    contact_id: str,
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await ContactsResource(client).get(contact_id, account_id=account_id)


@router.post("/contacts/create", tags=["AW Contacts"])
async def create_contact(
    payload: dict[str, Any] = Body(...),
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await ContactsResource(client).create(payload, account_id=account_id)


# =============================================================================
# Conversions
# =============================================================================


@router.get("/conversions", tags=["AW Conversions"])
async def list_conversions(
    request: Request,
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await ConversionsResource(client).list(passthrough_params(request), account_id=account_id)


@router.post("/conversions/create", tags=["AW Conversions"])
async def create_conversion(
    payload: dict[str, Any] = Body(...),
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await ConversionsResource(client).create(payload, account_id=account_id)


@router.get("/conversions/{conversion_id}", tags=["AW Conversions"])
async def get_conversion(
    conversion_id: str,
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await ConversionsResource(client).get(conversion_id, account_id=account_id)


# =============================================================================
# Files
# =============================================================================


@router.post("/files/upload", tags=["AW Files"])
async def upload_file(
    file: UploadFile = File(...),
    notes: str | None = Query(None),
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    content = await file.read()
    return await FilesResource(client).upload(
        file.filename or "upload",
        content,
        content_type=file.content_type,
        notes=notes,
        account_id=account_id,
    )


@router.post("/files/download-links", tags=["AW Files"])
async def download_links(
    request: DownloadLinksRequest,
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await FilesResource(client).download_links(request.file_ids, account_id=account_id)


# =============================================================================
# Global accounts
# =============================================================================


@router.get("/global-accounts", tags=["AW Global Accounts"])
async def list_global_accounts(
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await GlobalAccountsResource(client).list(account_id=account_id)


@router.post("/global-accounts/create", tags=["AW Global Accounts"])
async def create_global_account(
    payload: dict[str, Any] = Body(...),
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await GlobalAccountsResource(client).create(payload, account_id=account_id)


@router.get("/global-accounts/{global_account_id}", tags=["AW Global Accounts"])
async def get_global_account(
    global_account_id: str,
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await GlobalAccountsResource(client).get(global_account_id, account_id=account_id)


# =============================================================================
# SCA
# =============================================================================


@router.post("/sca/token", tags=["AW SCA"])
async def sca_token(
    request: ScaTokenRequest | None = None,
    user: TokenClaims = Depends(get_current_user),
    cache: ScaTokenCache = Depends(get_sca_cache),
):
    request = request or ScaTokenRequest()
    info = await cache.get_token(user.sub, request.account_id, request.force_new)
    return info.to_dict()


@router.post("/sca/validate", tags=["AW SCA"])
async def validate_sca_token(
    request: ScaValidateRequest,
    user: TokenClaims = Depends(get_current_user),
    cache: ScaTokenCache = Depends(get_sca_cache),
):
    return {"valid": cache.validate(request.token, user.sub)}


@router.get("/sca/status", tags=["AW SCA"])
async def sca_status(
    user: TokenClaims = Depends(get_current_user),
    cache: ScaTokenCache = Depends(get_sca_cache),
):
    return {"setup": cache.check_setup_status(user.sub)}


@router.delete("/sca/token", tags=["AW SCA"])
async def clear_default_sca_token(
    user: TokenClaims = Depends(get_current_user),
    cache: ScaTokenCache = Depends(get_sca_cache),
):
    cache.clear(user.sub)
    return {"message": "SCA token cleared successfully"}


@router.delete("/sca/token/{account_id}", tags=["AW SCA"])
async def clear_sca_token(
    account_id: str,
    user: TokenClaims = Depends(get_current_user),
    cache: ScaTokenCache = Depends(get_sca_cache),
):
    cache.clear(user.sub, account_id)
    return {"message": "SCA token cleared successfully"}


@router.delete("/sca/tokens/all", tags=["AW SCA"], dependencies=[Depends(require_admin)])
async def clear_all_sca_tokens(cache: ScaTokenCache = Depends(get_sca_cache)):
    cache.clear_all()
    return {"message": "All SCA tokens cleared successfully"}


# =============================================================================
# Transactions and transfers
# =============================================================================


@router.get("/transactions", tags=["AW Transactions"])
async def list_transactions(
    request: Request,
    account_id: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await TransactionsResource(client).list(passthrough_params(request), account_id=account_id)


@router.get("/transfers", tags=["AW Transfers"])
async def list_transfers(
    request: Request,
    account_id: str | None = Query(None),
    sca_token: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    return await TransfersResource(client).list(passthrough_params(request), account_id=account_id, sca_token=sca_token)


@router.post("/transfers/create", tags=["AW Transfers"])
async def create_transfer(
    payload: dict[str, Any] = Body(...),
    account_id: str | None = Query(None),
    sca_token: str | None = Query(None),
    client: AirwallexClient = Depends(get_client),
):
    """Returns `{status: "403", scaSessionCode}` when Airwallex requires SCA."""
    return await TransfersResource(client).create(payload, account_id=account_id, sca_token=sca_token)
