"""Company management."""

from __future__ import annotations

import structlog
from sqlalchemy.orm import selectinload

from src.companies.schemas import CreateCompanyRequest, UpdateCompanyRequest
from src.db.crud import BaseCrudService, PageResult
from src.db.models import Company
from src.kernel.errors import ConflictError, NotFoundError

logger = structlog.get_logger()


class CompaniesService(BaseCrudService[Company]):
    model = Company
    entity_name = "Company"

    async def list_companies(self) -> list[Company]:
        return await self.list(order_by=[Company.created_at.desc(), Company.id.desc()])

    async def paginate_companies(self, page: int | None, limit: int | None) -> PageResult[Company]:
        return await self.paginate(page, limit, order_by=[Company.created_at.desc(), Company.id.desc()])

    async def get_company(self, company_id: int) -> Company:
        return await self.get_or_404(company_id)

    async def _ensure_unique_name(self, name: str, *, exclude_id: int | None = None) -> None:
        filters = [Company.name == name]
        if exclude_id is not None:
            filters.append(Company.id != exclude_id)
        if await self.exists(*filters):
            raise ConflictError(
                message=f"Company with name '{name}' already exists",
                code="company.name_conflict",
            )

    async def create_company(self, request: CreateCompanyRequest) -> Company:
        await self._ensure_unique_name(request.name)
        company = await self.create(
            name=request.name,
            airwallex_account_id=request.airwallex_account_id,
            plan_id=request.plan_id,
            is_verified=False,
            is_active=False,
            is_deleted=False,
        )
        logger.info("Company created", company_id=company.id, name=company.name)
        return company

    async def update_company(self, company_id: int, request: UpdateCompanyRequest) -> Company:
        company = await self.get_company(company_id)
        values = request.model_dump(exclude_unset=True)
        if "name" in values:
            if values["name"] is None:
                values.pop("name")
            elif values["name"] != company.name:
                await self._ensure_unique_name(values["name"], exclude_id=company.id)
        for flag in ("is_verified", "is_active"):
            if flag in values and values[flag] is None:
                values.pop(flag)
        company = await self.update(company, values)
        logger.info("Company updated", company_id=company.id, fields=sorted(values))
        return company

    async def soft_delete_company(self, company_id: int) -> Company:
        company = await self.get_company(company_id)
        company = await self.soft_delete(company)
        logger.info("Company soft-deleted", company_id=company_id)
        return company

    async def restore_company(self, company_id: int) -> Company:
        company = await self.first(
            Company.id == company_id,
            Company.is_deleted.is_(True),
            include_deleted=True,
        )
        if company is None:
            raise NotFoundError(message=f"Deleted company with ID {company_id} not found")
        company = await self.restore(company)
        logger.info("Company restored", company_id=company_id)
        return company

    async def find_by_airwallex_account_id(self, account_id: str) -> Company | None:
        """Non-deleted company owning the connected account, with its users loaded."""
        companies = await self.list(
            Company.airwallex_account_id == account_id,
            options=[selectinload(Company.users)],
            order_by=[Company.id.asc()],
        )
        return companies[0] if companies else None

    async def get_with_plan(self, company_id: int) -> Company:
        return await self.get_or_404(company_id, options=[selectinload(Company.plan)])

    async def update_company_plan(self, company_id: int, plan_id: int | None) -> Company:
        company = await self.get_company(company_id)
        company = await self.update(company, {"plan_id": plan_id})
        logger.info("Company plan updated", company_id=company_id, plan_id=plan_id)
        return company
