"""
Plan Routes.

Provides endpoints for:
- Plan CRUD, soft delete and restore
- Assigning plans to companies
- Seeding default plans, plan types and currency rates

Writes require an admin role.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import envelope, paginated, serialize, serialize_many
from src.auth import get_current_user, require_admin
from src.companies.schemas import CompanyResponse
from src.currencies.plan_rates import PlanCurrencyRatesService
from src.db.client import get_session
from src.plans.plan_types import PlanTypesService
from src.plans.schemas import AssignPlanRequest, CreatePlanRequest, PlanResponse, UpdatePlanRequest
from src.plans.service import PlansService

router = APIRouter(prefix="/plans", tags=["Plans"], dependencies=[Depends(get_current_user)])


def get_service(session: AsyncSession = Depends(get_session)) -> PlansService:
    return PlansService(session)


# =============================================================================
# Seeding and company assignment
# =============================================================================


@router.post("/seed", dependencies=[Depends(require_admin)])
async def seed_plans(service: PlansService = Depends(get_service)):
    return envelope(await service.seed_default_plans(), "Default plans seeded")


@router.post("/seed/plan-types", dependencies=[Depends(require_admin)])
async def seed_plan_types(session: AsyncSession = Depends(get_session)):
    return envelope(await PlanTypesService(session).seed_defaults(), "Default plan types seeded")


@router.post("/seed/clear", dependencies=[Depends(require_admin)])
async def clear_seeded_plans(service: PlansService = Depends(get_service)):
    return envelope(await service.clear_seeded_plans(), "Seeded plans cleared")


@router.post("/currency-rates/seed", dependencies=[Depends(require_admin)])
async def seed_currency_rates(session: AsyncSession = Depends(get_session)):
    return envelope(await PlanCurrencyRatesService(session).seed_default_rates(), "Default currency rates seeded")


@router.post("/companies/{company_id}/plan", dependencies=[Depends(require_admin)])
async def assign_plan(company_id: int, request: AssignPlanRequest, service: PlansService = Depends(get_service)):
    company = await service.assign_plan_to_company(company_id, request.plan_id)
    return envelope(serialize(CompanyResponse, company), "Plan assigned to company successfully")


@router.delete("/companies/{company_id}/plan", dependencies=[Depends(require_admin)])
async def remove_plan(company_id: int, service: PlansService = Depends(get_service)):
    company = await service.remove_plan_from_company(company_id)
    return envelope(serialize(CompanyResponse, company), "Plan removed from company successfully")


# =============================================================================
# Plans
# =============================================================================


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_plan(request: CreatePlanRequest, service: PlansService = Depends(get_service)):
    plan = await service.create_plan(request)
    return envelope(serialize(PlanResponse, plan), "Plan created successfully")


@router.get("")
async def paginate_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: PlansService = Depends(get_service),
):
    return paginated(await service.paginate_plans(page, limit), PlanResponse)


@router.get("/active")
async def list_active_plans(service: PlansService = Depends(get_service)):
    return serialize_many(PlanResponse, await service.get_active())


@router.get("/all")
async def list_all_plans(service: PlansService = Depends(get_service)):
    return serialize_many(PlanResponse, await service.get_all())


@router.get("/{plan_id}")
async def get_plan(plan_id: int, service: PlansService = Depends(get_service)):
    return envelope(serialize(PlanResponse, await service.get_plan(plan_id)), "Plan found")


@router.patch("/{plan_id}", dependencies=[Depends(require_admin)])
async def update_plan(plan_id: int, request: UpdatePlanRequest, service: PlansService = Depends(get_service)):
    plan = await service.update_plan(plan_id, request)
    return envelope(serialize(PlanResponse, plan), "Plan updated successfully")


@router.delete("/{plan_id}", dependencies=[Depends(require_admin)])
async def delete_plan(plan_id: int, service: PlansService = Depends(get_service)):
    await service.delete_plan(plan_id)
    return envelope(None, "Plan deleted successfully")


@router.delete("/{plan_id}/soft", dependencies=[Depends(require_admin)])
async def soft_delete_plan(plan_id: int, service: PlansService = Depends(get_service)):
    plan = await service.soft_delete_plan(plan_id)
    return envelope(serialize(PlanResponse, plan), "Plan soft deleted successfully")


@router.patch("/{plan_id}/restore", dependencies=[Depends(require_admin)])
async def restore_plan(plan_id: int, service: PlansService = Depends(get_service)):
    plan = await service.restore_plan(plan_id)
    return envelope(serialize(PlanResponse, plan), "Plan restored successfully")


@router.get("/{plan_id}/companies")
async def companies_by_plan(
    plan_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: PlansService = Depends(get_service),
):
    return paginated(await service.get_companies_by_plan(plan_id, page, limit), CompanyResponse)
