"""Currency group routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import envelope, serialize, serialize_many
from src.auth import get_current_user, require_admin
from src.currencies.schemas import CreateCurrencyGroupRequest, CurrencyGroupDetailResponse
from src.currencies.service import CurrencyGroupsService
from src.db.client import get_session

router = APIRouter(prefix="/currency-groups", tags=["Currency Groups"], dependencies=[Depends(get_current_user)])


def get_service(session: AsyncSession = Depends(get_session)) -> CurrencyGroupsService:
    return CurrencyGroupsService(session)


@router.get("")
async def list_groups(service: CurrencyGroupsService = Depends(get_service)):
    return serialize_many(CurrencyGroupDetailResponse, await service.list_groups())


@router.post("/seed", dependencies=[Depends(require_admin)])
async def seed_groups(service: CurrencyGroupsService = Depends(get_service)):
    return envelope(await service.seed_defaults(), "Default currency groups seeded")


@router.get("/{group_id}")
async def get_group(group_id: int, service: CurrencyGroupsService = Depends(get_service)):
    return envelope(serialize(CurrencyGroupDetailResponse, await service.get_group(group_id)), "Currency group found")


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_group(request: CreateCurrencyGroupRequest, service: CurrencyGroupsService = Depends(get_service)):
    group = await service.create_group(request)
    return envelope(serialize(CurrencyGroupDetailResponse, group), "Currency group created successfully")
