"""Plan management, company plan assignment and plan seeding."""

from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy import func, select

from src.db.crud import BaseCrudService, PageResult, paginate_query
from src.db.models import Company, Plan
from src.kernel.errors import BadRequestError, NotFoundError
from src.plans.plan_types import PlanTypesService
from src.plans.schemas import CreatePlanRequest, SeedResult, UpdatePlanRequest

logger = structlog.get_logger()

DEFAULT_PLANS: list[dict] = [
    {
        "name": "Bronze",
        "description": "Essential features for small teams",
        "level": 1,
        "monthly_price": Decimal("29.99"),
        "annual_price": Decimal("299.99"),
        "max_users": 10,
        "max_transactions_per_month": 1000,
        "icon": "shield",
        "color": "#CD7F32",
    },
    {
        "name": "Silver",
        "description": "Advanced features for growing businesses",
        "level": 2,
        "monthly_price": Decimal("59.99"),
        "annual_price": Decimal("599.99"),
        "max_users": 50,
        "max_transactions_per_month": 5000,
        "icon": "star",
        "color": "#C0C0C0",
    },
    {
        "name": "Gold",
        "description": "Full feature set for large organisations",
        "level": 3,
        "monthly_price": Decimal("99.99"),
        "annual_price": Decimal("999.99"),
        "max_users": 200,
        "max_transactions_per_month": 20000,
        "icon": "crown",
        "color": "#FFD700",
    },
]


class PlansService(BaseCrudService[Plan]):
    model = Plan
    entity_name = "Plan"

    _ordering = (Plan.level.asc(), Plan.id.asc())

    async def _ensure_unique_name(self, name: str, *, exclude_id: int | None = None) -> None:
        filters = [Plan.name == name]
        if exclude_id is not None:
            filters.append(Plan.id != exclude_id)
        if await self.exists(*filters):
            raise BadRequestError(
                message=f"Plan with name '{name}' already exists",
                code="plan.name_conflict",
            )

    async def _ensure_plan_type(self, plan_type_id: int | None) -> None:
        if plan_type_id is None:
            return
        await PlanTypesService(self.session).get_or_404(plan_type_id)

    async def create_plan(self, request: CreatePlanRequest) -> Plan:
        await self._ensure_unique_name(request.name)
        await self._ensure_plan_type(request.plan_type_id)
        plan = await self.create(**request.model_dump())
        logger.info("Plan created", plan_id=plan.id, name=plan.name, level=plan.level)
        return plan

    async def get_all(self) -> list[Plan]:
        return await self.list(order_by=self._ordering)

    async def get_active(self) -> list[Plan]:
        return await self.list(Plan.is_active.is_(True), order_by=self._ordering)

    async def paginate_plans(self, page: int | None, limit: int | None) -> PageResult[Plan]:
        return await self.paginate(page, limit, order_by=self._ordering)

    async def get_plan(self, plan_id: int) -> Plan:
        return await self.get_or_404(plan_id)

    async def update_plan(self, plan_id: int, request: UpdatePlanRequest) -> Plan:
        plan = await self.get_plan(plan_id)
        values = {key: value for key, value in request.model_dump(exclude_unset=True).items() if value is not None}
        if "name" in values and values["name"] != plan.name:
            await self._ensure_unique_name(values["name"], exclude_id=plan.id)
        if "plan_type_id" in values:
            await self._ensure_plan_type(values["plan_type_id"])
        plan = await self.update(plan, values)
        logger.info("Plan updated", plan_id=plan.id, fields=sorted(values))
        return plan

    async def count_companies(self, plan_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Company.id)).where(Company.plan_id == plan_id, Company.is_deleted.is_(False))
        )
        return int(result.scalar_one())

    async def delete_plan(self, plan_id: int) -> None:
        plan = await self.get_or_404(plan_id, include_deleted=True)
        in_use = await self.count_companies(plan.id)
        if in_use:
            raise BadRequestError(
                message=f"Cannot delete plan '{plan.name}' as it is being used by {in_use} company(ies)",
                code="plan.in_use",
            )
        await self.delete(plan)
        logger.info("Plan deleted", plan_id=plan_id)

    async def soft_delete_plan(self, plan_id: int) -> Plan:
        plan = await self.get_plan(plan_id)
        return await self.soft_delete(plan)

    async def restore_plan(self, plan_id: int) -> Plan:
        plan = await self.first(Plan.id == plan_id, Plan.is_deleted.is_(True), include_deleted=True)
        if plan is None:
            raise NotFoundError(message=f"Deleted plan with ID {plan_id} not found")
        return await self.restore(plan)

    # -------------------------------------------------------------------------
    # Company assignment
    # -------------------------------------------------------------------------

    async def _get_company(self, company_id: int) -> Company:
        result = await self.session.execute(
            select(Company).where(Company.id == company_id, Company.is_deleted.is_(False))
        )
        company = result.scalars().first()
        if company is None:
            raise NotFoundError(message=f"Company with ID {company_id} not found")
        return company

    async def assign_plan_to_company(self, company_id: int, plan_id: int) -> Company:
        company = await self._get_company(company_id)
        plan = await self.get_plan(plan_id)
        if not plan.is_active:
            raise BadRequestError(
                message=f"Plan '{plan.name}' is not active",
                code="plan.inactive",
            )
        company.plan_id = plan.id
        await self.session.flush()
        await self.session.refresh(company)
        logger.info("Plan assigned to company", company_id=company_id, plan_id=plan_id)
        return company

    async def remove_plan_from_company(self, company_id: int) -> Company:
        company = await self._get_company(company_id)
        company.plan_id = None
        await self.session.flush()
        await self.session.refresh(company)
        logger.info("Plan removed from company", company_id=company_id)
        return company

    async def get_companies_by_plan(self, plan_id: int, page: int | None, limit: int | None) -> PageResult[Company]:
        await self.get_plan(plan_id)
        query = (
            select(Company)
            .where(Company.plan_id == plan_id, Company.is_deleted.is_(False))
            .order_by(Company.created_at.desc(), Company.id.desc())
        )
        return await paginate_query(self.session, query, page=page, limit=limit)

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    async def seed_default_plans(self) -> SeedResult:
        plan_types = PlanTypesService(self.session)
        await plan_types.seed_defaults()
        main_type = await plan_types.get_by_name("main")

        result = SeedResult()
        for seed in DEFAULT_PLANS:
            if await self.exists(Plan.name == seed["name"]):
                result.skipped.append(seed["name"])
                continue
            await self.create(**seed, is_active=True, plan_type_id=main_type.id if main_type else None)
            result.created.append(seed["name"])
        logger.info("Plans seeded", created=result.created, skipped=result.skipped)
        return result

    async def clear_seeded_plans(self) -> SeedResult:
        """Hard-delete the default plans that no company uses."""
        result = SeedResult()
        for seed in DEFAULT_PLANS:
            plan = await self.first(Plan.name == seed["name"], include_deleted=True)
            if plan is None or await self.count_companies(plan.id):
                result.skipped.append(seed["name"])
                continue
            await self.delete(plan)
            result.removed.append(seed["name"])
        logger.info("Seeded plans cleared", removed=result.removed, kept=result.skipped)
        return result
