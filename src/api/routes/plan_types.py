"""Plan type routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import envelope, serialize, serialize_many
from src.auth import get_current_user, require_admin
from src.db.client import get_session
from src.plans.plan_types import PlanTypesService
from src.plans.schemas import CreatePlanTypeRequest, PlanTypeResponse, UpdatePlanTypeRequest

router = APIRouter(prefix="/plan-types", tags=["Plan Types"], dependencies=[Depends(get_current_user)])


def get_service(session: AsyncSession = Depends(get_session)) -> PlanTypesService:
    return PlanTypesService(session)


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_plan_type(request: CreatePlanTypeRequest, service: PlanTypesService = Depends(get_service)):
    plan_type = await service.create_plan_type(request)
    return envelope(serialize(PlanTypeResponse, plan_type), "Plan type created successfully")


@router.get("")
async def list_plan_types(service: PlanTypesService = Depends(get_service)):
    return serialize_many(PlanTypeResponse, await service.list_plan_types())


@router.get("/active")
async def list_active_plan_types(service: PlanTypesService = Depends(get_service)):
    return serialize_many(PlanTypeResponse, await service.list_active())


@router.get("/{plan_type_id}")
async def get_plan_type(plan_type_id: int, service: PlanTypesService = Depends(get_service)):
    return envelope(serialize(PlanTypeResponse, await service.get_plan_type(plan_type_id)), "Plan type found")


@router.patch("/{plan_type_id}", dependencies=[Depends(require_admin)])
async def update_plan_type(
    plan_type_id: int,
    request: UpdatePlanTypeRequest,
    service: PlanTypesService = Depends(get_service),
):
    plan_type = await service.update_plan_type(plan_type_id, request)
    return envelope(serialize(PlanTypeResponse, plan_type), "Plan type updated successfully")


@router.delete("/{plan_type_id}", dependencies=[Depends(require_admin)])
async def delete_plan_type(plan_type_id: int, service: PlanTypesService = Depends(get_service)):
    plan_type = await service.soft_delete_plan_type(plan_type_id)
    return envelope(serialize(PlanTypeResponse, plan_type), "Plan type deleted successfully")


@router.patch("/{plan_type_id}/restore", dependencies=[Depends(require_admin)])
async def restore_plan_type(plan_type_id: int, service: PlanTypesService = Depends(get_service)):
    plan_type = await service.restore_plan_type(plan_type_id)
    return envelope(serialize(PlanTypeResponse, plan_type), "Plan type restored successfully")
