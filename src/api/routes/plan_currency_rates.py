"""Plan currency rate routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import envelope, paginated, serialize, serialize_many
from src.auth import get_current_user, require_admin
from src.currencies.plan_rates import PlanCurrencyRatesService
from src.currencies.schemas import (
    BulkCreatePlanCurrencyRatesRequest,
    CreatePlanCurrencyRateRequest,
    DuplicatePlanRatesRequest,
    PlanCurrencyRateResponse,
    UpdatePlanCurrencyRateRequest,
)
from src.db.client import get_session

router = APIRouter(
    prefix="/plan-currency-rates",
    tags=["Plan Currency Rates"],
    dependencies=[Depends(get_current_user)],
)


def get_service(session: AsyncSession = Depends(get_session)) -> PlanCurrencyRatesService:
    return PlanCurrencyRatesService(session)


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_rate(request: CreatePlanCurrencyRateRequest, service: PlanCurrencyRatesService = Depends(get_service)):
    rate = await service.create_rate(request)
    return envelope(serialize(PlanCurrencyRateResponse, rate), "Currency rate created successfully")


@router.post("/bulk", status_code=201, dependencies=[Depends(require_admin)])
async def bulk_create_rates(
    request: BulkCreatePlanCurrencyRatesRequest,
    service: PlanCurrencyRatesService = Depends(get_service),
):
    rates = await service.bulk_create(request)
    return envelope(serialize_many(PlanCurrencyRateResponse, rates), f"{len(rates)} currency rates created successfully")


@router.post("/duplicate", status_code=201, dependencies=[Depends(require_admin)])
async def duplicate_rates(request: DuplicatePlanRatesRequest, service: PlanCurrencyRatesService = Depends(get_service)):
    rates = await service.duplicate_plan_rates(request.source_plan_id, request.target_plan_id)
    return envelope(serialize_many(PlanCurrencyRateResponse, rates), f"{len(rates)} currency rates duplicated")


@router.get("")
async def paginate_rates(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: PlanCurrencyRatesService = Depends(get_service),
):
    return paginated(await service.paginate_rates(page, limit), PlanCurrencyRateResponse)


@router.get("/all")
async def list_all_rates(service: PlanCurrencyRatesService = Depends(get_service)):
    return serialize_many(PlanCurrencyRateResponse, await service.get_all())


@router.get("/plan/{plan_id}")
async def rates_by_plan(plan_id: int, service: PlanCurrencyRatesService = Depends(get_service)):
    return serialize_many(PlanCurrencyRateResponse, await service.get_by_plan(plan_id))


@router.get("/plan/{plan_id}/group/{group_id}")
async def rate_for_group(plan_id: int, group_id: int, service: PlanCurrencyRatesService = Depends(get_service)):
    rate = await service.get_for_group(plan_id, group_id)
    return envelope(serialize(PlanCurrencyRateResponse, rate), "Currency rate found")


@router.get("/group/{group_id}")
async def rates_by_group(group_id: int, service: PlanCurrencyRatesService = Depends(get_service)):
    return serialize_many(PlanCurrencyRateResponse, await service.get_by_group(group_id))


@router.get("/{rate_id}")
async def get_rate(rate_id: int, service: PlanCurrencyRatesService = Depends(get_service)):
    return envelope(serialize(PlanCurrencyRateResponse, await service.get_or_404(rate_id)), "Currency rate found")


@router.patch("/{rate_id}", dependencies=[Depends(require_admin)])
async def update_rate(
    rate_id: int,
    request: UpdatePlanCurrencyRateRequest,
    service: PlanCurrencyRatesService = Depends(get_service),
):
    rate = await service.update_rate(rate_id, request)
    return envelope(serialize(PlanCurrencyRateResponse, rate), "Currency rate updated successfully")


@router.delete("/{rate_id}", dependencies=[Depends(require_admin)])
async def delete_rate(rate_id: int, service: PlanCurrencyRatesService = Depends(get_service)):
    await service.delete_rate(rate_id)
    return envelope(None, "Currency rate deleted successfully")
