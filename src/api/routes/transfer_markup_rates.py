"""
Transfer Markup Rate Routes.

Provides endpoints for:
- Browsing fee schedules by plan, country, currency and method
- Resolving the rate that applies to a connected account
- Managing rates (admin)
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import envelope, paginated, serialize, serialize_many
from src.auth import get_current_user, require_admin
from src.db.client import get_session
from src.markup.schemas import (
    BulkUpdateRequest,
    CreateTransferMarkupRateRequest,
    DuplicateMarkupRatesRequest,
    TransferMarkupRateResponse,
    UpdateTransferMarkupRateRequest,
)
from src.markup.service import TransferMarkupRatesService

router = APIRouter(
    prefix="/transfer-markup-rates",
    tags=["Transfer Markup Rates"],
    dependencies=[Depends(get_current_user)],
)


def get_service(session: AsyncSession = Depends(get_session)) -> TransferMarkupRatesService:
    return TransferMarkupRatesService(session)


# =============================================================================
# Queries
# =============================================================================


@router.get("")
async def list_rates(service: TransferMarkupRatesService = Depends(get_service)):
    return serialize_many(TransferMarkupRateResponse, await service.list_rates())


@router.get("/paginated")
async def paginate_rates(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: TransferMarkupRatesService = Depends(get_service),
):
    return paginated(await service.paginate_rates(page, limit), TransferMarkupRateResponse)


@router.get("/country/{country_code}")
async def rates_by_country(country_code: str, service: TransferMarkupRatesService = Depends(get_service)):
    return serialize_many(TransferMarkupRateResponse, await service.find_by_country_code(country_code))


@router.get("/currency/{currency}")
async def rates_by_currency(currency: str, service: TransferMarkupRatesService = Depends(get_service)):
    return serialize_many(TransferMarkupRateResponse, await service.find_by_currency(currency))


@router.get("/transfer-method/{transfer_method}")
async def rates_by_method(transfer_method: str, service: TransferMarkupRatesService = Depends(get_service)):
    return serialize_many(TransferMarkupRateResponse, await service.find_by_transfer_method(transfer_method))


@router.get("/plans-summary")
async def plans_summary(service: TransferMarkupRatesService = Depends(get_service)):
    summaries = await service.plans_summary()
    return envelope([summary.model_dump() for summary in summaries], "Plan rate summary")


@router.get("/grouped/{plan_id}")
async def grouped_rates(plan_id: int, service: TransferMarkupRatesService = Depends(get_service)):
    return envelope(await service.grouped_rates(plan_id), "Grouped transfer markup rates")


@router.get("/filtered")
async def filtered_rates(
    plan_id: int | None = Query(None),
    region: str | None = Query(None),
    country_code: str | None = Query(None, alias="countryCode"),
    currency: str | None = Query(None),
    transfer_method: str | None = Query(None, alias="transferMethod"),
    service: TransferMarkupRatesService = Depends(get_service),
):
    rates = await service.filtered_rates(
        plan_id=plan_id,
        region=region,
        country_code=country_code,
        currency=currency,
        transfer_method=transfer_method,
    )
    return serialize_many(TransferMarkupRateResponse, rates)


@router.get("/regions")
async def available_regions(service: TransferMarkupRatesService = Depends(get_service)):
    return await service.available_regions()


@router.get("/countries")
async def available_countries(
    region: str | None = Query(None),
    service: TransferMarkupRatesService = Depends(get_service),
):
    return [option.model_dump() for option in await service.available_countries(region)]


@router.get("/by-account")
async def rate_by_connected_account(
    connected_account_id: str = Query(..., alias="connectedAccountId", min_length=1),
    currency: str = Query(..., min_length=3, max_length=3),
    transfer_method: Literal["local", "swift"] = Query(..., alias="transferMethod"),
    country_code: str | None = Query(None, alias="countryCode"),
    transaction_type: str | None = Query(None, alias="transactionType"),
    service: TransferMarkupRatesService = Depends(get_service),
):
    """Markup rate for the plan of the company that owns the connected account."""
    rate, message = await service.get_rate_by_connected_account(
        connected_account_id,
        currency,
        transfer_method,
        country_code=country_code,
        transaction_type=transaction_type,
    )
    return envelope(serialize(TransferMarkupRateResponse, rate), message)


@router.get("/specific-rate")
async def specific_rate(
    plan_id: int = Query(..., alias="planId"),
    country_code: str = Query(..., alias="countryCode"),
    currency: str = Query(...),
    transfer_method: Literal["local", "swift"] = Query(..., alias="transferMethod"),
    transaction_type: str | None = Query(None, alias="transactionType"),
    service: TransferMarkupRatesService = Depends(get_service),
):
    rate = await service.find_specific_rate(plan_id, country_code, currency, transfer_method, transaction_type)
    return envelope(serialize(TransferMarkupRateResponse, rate), "Transfer markup rate found")


@router.get("/plan/{plan_id}")
async def rates_by_plan(plan_id: int, service: TransferMarkupRatesService = Depends(get_service)):
    return serialize_many(TransferMarkupRateResponse, await service.get_rates_by_plan(plan_id))


@router.get("/plan/{plan_id}/paginated")
async def paginate_rates_by_plan(
    plan_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: TransferMarkupRatesService = Depends(get_service),
):
    return paginated(await service.paginate_rates_by_plan(plan_id, page, limit), TransferMarkupRateResponse)


@router.get("/{rate_id}")
async def get_rate(rate_id: int, service: TransferMarkupRatesService = Depends(get_service)):
    return envelope(serialize(TransferMarkupRateResponse, await service.get_rate(rate_id)), "Transfer markup rate found")


# =============================================================================
# Mutations
# =============================================================================


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_rate(
    request: CreateTransferMarkupRateRequest,
    service: TransferMarkupRatesService = Depends(get_service),
):
    rate = await service.create_rate(request)
    return envelope(serialize(TransferMarkupRateResponse, rate), "Transfer markup rate created successfully")


@router.post("/duplicate", status_code=201, dependencies=[Depends(require_admin)])
async def duplicate_rates(
    request: DuplicateMarkupRatesRequest,
    service: TransferMarkupRatesService = Depends(get_service),
):
    rates = await service.duplicate_rates(request.source_plan_id, request.target_plan_id)
    return envelope(serialize_many(TransferMarkupRateResponse, rates), f"{len(rates)} transfer markup rates duplicated")


@router.patch("/bulk-update", dependencies=[Depends(require_admin)])
async def bulk_update(request: BulkUpdateRequest, service: TransferMarkupRatesService = Depends(get_service)):
    """Per-row fee updates; failures are reported per id instead of aborting."""
    return await service.bulk_update(request.rates)


@router.patch("/{rate_id}", dependencies=[Depends(require_admin)])
async def update_rate(
    rate_id: int,
    request: UpdateTransferMarkupRateRequest,
    service: TransferMarkupRatesService = Depends(get_service),
):
    rate = await service.update_rate(rate_id, request)
    return envelope(serialize(TransferMarkupRateResponse, rate), "Transfer markup rate updated successfully")


@router.delete("/{rate_id}", dependencies=[Depends(require_admin)])
async def delete_rate(rate_id: int, service: TransferMarkupRatesService = Depends(get_service)):
    rate = await service.soft_delete_rate(rate_id)
    return envelope(serialize(TransferMarkupRateResponse, rate), "Transfer markup rate deleted successfully")


@router.post("/{rate_id}/restore", dependencies=[Depends(require_admin)])
async def restore_rate(rate_id: int, service: TransferMarkupRatesService = Depends(get_service)):
    rate = await service.restore_rate(rate_id)
    return envelope(serialize(TransferMarkupRateResponse, rate), "Transfer markup rate restored successfully")
