"""
Company Routes.

Provides endpoints for:
- Listing and paginating companies
- Creating and updating companies
- Soft delete and restore
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import envelope, paginated, serialize, serialize_many
from src.auth import get_current_user
from src.companies.schemas import CompanyResponse, CreateCompanyRequest, UpdateCompanyRequest
from src.companies.service import CompaniesService
from src.db.client import get_session
from src.plans.schemas import PlanResponse

router = APIRouter(prefix="/companies", tags=["Companies"], dependencies=[Depends(get_current_user)])


def get_service(session: AsyncSession = Depends(get_session)) -> CompaniesService:
    return CompaniesService(session)


@router.get("")
async def list_companies(service: CompaniesService = Depends(get_service)):
    return serialize_many(CompanyResponse, await service.list_companies())


@router.get("/paginated")
async def paginate_companies(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: CompaniesService = Depends(get_service),
):
    return paginated(await service.paginate_companies(page, limit), CompanyResponse)


@router.get("/{company_id}")
async def get_company(company_id: int, service: CompaniesService = Depends(get_service)):
    return envelope(serialize(CompanyResponse, await service.get_company(company_id)), "Company found")


@router.get("/{company_id}/plan")
async def get_company_plan(company_id: int, service: CompaniesService = Depends(get_service)):
    company = await service.get_with_plan(company_id)
    plan = serialize(PlanResponse, company.plan) if company.plan is not None else None
    return envelope(plan, "Company plan found")


@router.post("", status_code=201)
async def create_company(request: CreateCompanyRequest, service: CompaniesService = Depends(get_service)):
    company = await service.create_company(request)
    return envelope(serialize(CompanyResponse, company), "Company created successfully")


@router.patch("/{company_id}")
async def update_company(
    company_id: int,
    request: UpdateCompanyRequest,
    service: CompaniesService = Depends(get_service),
):
    company = await service.update_company(company_id, request)
    return envelope(serialize(CompanyResponse, company), "Company updated successfully")


@router.delete("/{company_id}")
async def delete_company(company_id: int, service: CompaniesService = Depends(get_service)):
    """Soft delete; the row stays and can be restored."""
    company = await service.soft_delete_company(company_id)
    return envelope(serialize(CompanyResponse, company), "Company deleted successfully")


@router.post("/{company_id}/restore")
async def restore_company(company_id: int, service: CompaniesService = Depends(get_service)):
    company = await service.restore_company(company_id)
    return envelope(serialize(CompanyResponse, company), "Company restored successfully")
