"""Plan type management."""

from __future__ import annotations

import structlog
from sqlalchemy import func, select

from src.db.crud import BaseCrudService
from src.db.models import Plan, PlanType
from src.kernel.errors import BadRequestError, ConflictError, NotFoundError
from src.plans.schemas import CreatePlanTypeRequest, SeedResult, UpdatePlanTypeRequest

logger = structlog.get_logger()

DEFAULT_PLAN_TYPES: list[dict[str, str]] = [
    {"name": "main", "display_name": "Main Plans", "description": "Standard subscription plans"},
    {"name": "custom", "display_name": "Custom Plans", "description": "Individually negotiated plans"},
]


class PlanTypesService(BaseCrudService[PlanType]):
    model = PlanType
    entity_name = "Plan type"

    async def _ensure_unique_name(self, name: str, *, exclude_id: int | None = None) -> None:
        filters = [PlanType.name == name]
        if exclude_id is not None:
            filters.append(PlanType.id != exclude_id)
        if await self.exists(*filters):
            raise ConflictError(
                message=f"Plan type with name '{name}' already exists",
                code="plan_type.name_conflict",
            )

    async def create_plan_type(self, request: CreatePlanTypeRequest) -> PlanType:
        await self._ensure_unique_name(request.name)
        plan_type = await self.create(**request.model_dump())
        logger.info("Plan type created", plan_type_id=plan_type.id, name=plan_type.name)
        return plan_type

    async def list_plan_types(self) -> list[PlanType]:
        return await self.list(order_by=[PlanType.id.asc()])

    async def list_active(self) -> list[PlanType]:
        return await self.list(PlanType.is_active.is_(True), order_by=[PlanType.id.asc()])

    async def get_plan_type(self, plan_type_id: int) -> PlanType:
        return await self.get_or_404(plan_type_id)

    async def update_plan_type(self, plan_type_id: int, request: UpdatePlanTypeRequest) -> PlanType:
        plan_type = await self.get_plan_type(plan_type_id)
        values = {key: value for key, value in request.model_dump(exclude_unset=True).items() if value is not None}
        if "name" in values and values["name"] != plan_type.name:
            await self._ensure_unique_name(values["name"], exclude_id=plan_type.id)
        return await self.update(plan_type, values)

    async def soft_delete_plan_type(self, plan_type_id: int) -> PlanType:
        plan_type = await self.get_plan_type(plan_type_id)
        plans_using = await self._count_plans(plan_type.id)
        if plans_using:
            raise BadRequestError(
                message=(
                    f"Cannot delete plan type '{plan_type.name}' as it is being used by "
                    f"{plans_using} plan(s)"
                ),
                code="plan_type.in_use",
            )
        plan_type = await self.soft_delete(plan_type)
        logger.info("Plan type soft-deleted", plan_type_id=plan_type_id)
        return plan_type

    async def restore_plan_type(self, plan_type_id: int) -> PlanType:
        plan_type = await self.first(
            PlanType.id == plan_type_id,
            PlanType.is_deleted.is_(True),
            include_deleted=True,
        )
        if plan_type is None:
            raise NotFoundError(message=f"Deleted plan type with ID {plan_type_id} not found")
        return await self.restore(plan_type)

    async def _count_plans(self, plan_type_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Plan.id)).where(Plan.plan_type_id == plan_type_id, Plan.is_deleted.is_(False))
        )
        return int(result.scalar_one())

    async def get_by_name(self, name: str) -> PlanType | None:
        return await self.first(PlanType.name == name, include_deleted=True)

    async def seed_defaults(self) -> SeedResult:
        result = SeedResult()
        for seed in DEFAULT_PLAN_TYPES:
            if await self.get_by_name(seed["name"]) is not None:
                result.skipped.append(seed["name"])
                continue
            await self.create(**seed, is_active=True)
            result.created.append(seed["name"])
        logger.info("Plan types seeded", created=result.created, skipped=result.skipped)
        return result
