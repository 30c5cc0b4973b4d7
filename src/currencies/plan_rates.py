"""
Plan currency rates.

Each (plan, currency group) pair carries a conversion markup made of the
Airwallex rate (`aw_rate`) and the Magna Porta margin (`mp_rate`).
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy import select

from src.currencies.schemas import (
    BulkCreatePlanCurrencyRatesRequest,
    CreatePlanCurrencyRateRequest,
    UpdatePlanCurrencyRateRequest,
)
from src.db.crud import BaseCrudService, PageResult
from src.db.models import CurrencyGroup, Plan, PlanCurrencyRate
from src.kernel.errors import ConflictError, NotFoundError
from src.plans.schemas import SeedResult

logger = structlog.get_logger()

DEFAULT_AW_RATE = Decimal("2.0")
DEFAULT_MP_RATE = Decimal("0")

# Magna Porta margin per seeded plan
SEED_MP_RATES: dict[str, Decimal] = {
    "Bronze": Decimal("0.5"),
    "Silver": Decimal("0.75"),
    "Gold": Decimal("1.0"),
}


def resolve_conversion_rate(
    *,
    aw_rate: Decimal | None,
    mp_rate: Decimal | None,
    conversion_rate: Decimal | None,
) -> tuple[Decimal, Decimal, Decimal]:
    """Return (aw, mp, conversion); the sum wins when both parts were supplied."""
    aw = DEFAULT_AW_RATE if aw_rate is None else Decimal(aw_rate)
    mp = DEFAULT_MP_RATE if mp_rate is None else Decimal(mp_rate)
    if aw_rate is not None and mp_rate is not None:
        return aw, mp, aw + mp
    if conversion_rate is not None:
        return aw, mp, Decimal(conversion_rate)
    return aw, mp, aw + mp


class PlanCurrencyRatesService(BaseCrudService[PlanCurrencyRate]):
    model = PlanCurrencyRate
    entity_name = "Plan currency rate"

    _ordering = (PlanCurrencyRate.plan_id.asc(), PlanCurrencyRate.group_id.asc())

    async def _require_plan(self, plan_id: int) -> Plan:
        plan = await self.session.get(Plan, plan_id)
        if plan is None or plan.is_deleted:
            raise NotFoundError(message=f"Plan with ID {plan_id} not found")
        return plan

    async def _require_group(self, group_id: int) -> CurrencyGroup:
        group = await self.session.get(CurrencyGroup, group_id)
        if group is None:
            raise NotFoundError(message=f"Currency group with ID {group_id} not found")
        return group

    async def _find_pair(self, plan_id: int, group_id: int) -> PlanCurrencyRate | None:
        return await self.first(PlanCurrencyRate.plan_id == plan_id, PlanCurrencyRate.group_id == group_id)

    async def create_rate(self, request: CreatePlanCurrencyRateRequest) -> PlanCurrencyRate:
        await self._require_plan(request.plan_id)
        await self._require_group(request.group_id)
        if await self._find_pair(request.plan_id, request.group_id) is not None:
            raise ConflictError(
                message=f"Currency rate for plan {request.plan_id} and group {request.group_id} already exists",
                code="plan_currency_rate.conflict",
            )

        aw, mp, conversion = resolve_conversion_rate(
            aw_rate=request.aw_rate,
            mp_rate=request.mp_rate,
            conversion_rate=request.conversion_rate,
        )
        rate = await self.create(
            plan_id=request.plan_id,
            group_id=request.group_id,
            aw_rate=aw,
            mp_rate=mp,
            conversion_rate=conversion,
            is_active=request.is_active,
            notes=request.notes,
        )
        logger.info(
            "Plan currency rate created",
            rate_id=rate.id,
            plan_id=rate.plan_id,
            group_id=rate.group_id,
            conversion_rate=str(conversion),
        )
        return rate

    async def update_rate(self, rate_id: int, request: UpdatePlanCurrencyRateRequest) -> PlanCurrencyRate:
        rate = await self.get_or_404(rate_id)
        values = {key: value for key, value in request.model_dump(exclude_unset=True).items() if value is not None}

        plan_id = values.get("plan_id", rate.plan_id)
        group_id = values.get("group_id", rate.group_id)
        if "plan_id" in values:
            await self._require_plan(plan_id)
        if "group_id" in values:
            await self._require_group(group_id)
        if (plan_id, group_id) != (rate.plan_id, rate.group_id):
            existing = await self._find_pair(plan_id, group_id)
            if existing is not None and existing.id != rate.id:
                raise ConflictError(
                    message=f"Currency rate for plan {plan_id} and group {group_id} already exists",
                    code="plan_currency_rate.conflict",
                )

        if "aw_rate" in values or "mp_rate" in values:
            aw = Decimal(values.get("aw_rate", rate.aw_rate))
            mp = Decimal(values.get("mp_rate", rate.mp_rate))
            values["conversion_rate"] = aw + mp

        rate = await self.update(rate, values)
        logger.info("Plan currency rate updated", rate_id=rate.id, fields=sorted(values))
        return rate

    async def delete_rate(self, rate_id: int) -> None:
        rate = await self.get_or_404(rate_id)
        await self.delete(rate)
        logger.info("Plan currency rate deleted", rate_id=rate_id)

    async def bulk_create(self, request: BulkCreatePlanCurrencyRatesRequest) -> list[PlanCurrencyRate]:
        await self._require_plan(request.plan_id)
        group_ids = [item.group_id for item in request.rates]

        existing = await self.list(
            PlanCurrencyRate.plan_id == request.plan_id,
            PlanCurrencyRate.group_id.in_(group_ids),
        )
        if existing:
            conflicting = sorted({rate.group_id for rate in existing})
            raise ConflictError(
                message=f"Rates already exist for groups: {', '.join(str(g) for g in conflicting)}",
                code="plan_currency_rate.conflict",
                meta={"group_ids": conflicting},
            )

        result = await self.session.execute(select(CurrencyGroup.id).where(CurrencyGroup.id.in_(group_ids)))
        found = set(result.scalars().all())
        missing = sorted(set(group_ids) - found)
        if missing:
            raise NotFoundError(
                message=f"Currency groups not found: {', '.join(str(g) for g in missing)}",
                meta={"group_ids": missing},
            )

        created: list[PlanCurrencyRate] = []
        for item in request.rates:
            aw, mp, conversion = resolve_conversion_rate(
                aw_rate=item.aw_rate,
                mp_rate=item.mp_rate,
                conversion_rate=item.conversion_rate,
            )
            created.append(
                await self.create(
                    plan_id=request.plan_id,
                    group_id=item.group_id,
                    aw_rate=aw,
                    mp_rate=mp,
                    conversion_rate=conversion,
                    is_active=item.is_active,
                    notes=item.notes,
                )
            )
        logger.info("Plan currency rates bulk created", plan_id=request.plan_id, count=len(created))
        return created

    async def paginate_rates(self, page: int | None, limit: int | None) -> PageResult[PlanCurrencyRate]:
        return await self.paginate(page, limit, order_by=self._ordering)

    async def get_all(self) -> list[PlanCurrencyRate]:
        return await self.list(order_by=self._ordering)

    async def get_by_plan(self, plan_id: int) -> list[PlanCurrencyRate]:
        await self._require_plan(plan_id)
        return await self.list(PlanCurrencyRate.plan_id == plan_id, order_by=self._ordering)

    async def get_for_group(self, plan_id: int, group_id: int) -> PlanCurrencyRate:
        rate = await self.first(
            PlanCurrencyRate.plan_id == plan_id,
            PlanCurrencyRate.group_id == group_id,
            PlanCurrencyRate.is_active.is_(True),
        )
        if rate is None:
            raise NotFoundError(message=f"No active currency rate for plan {plan_id} and group {group_id}")
        return rate

    async def get_by_group(self, group_id: int) -> list[PlanCurrencyRate]:
        return await self.list(PlanCurrencyRate.group_id == group_id, order_by=self._ordering)

    async def duplicate_plan_rates(self, source_plan_id: int, target_plan_id: int) -> list[PlanCurrencyRate]:
        await self._require_plan(source_plan_id)
        await self._require_plan(target_plan_id)

        if await self.exists(PlanCurrencyRate.plan_id == target_plan_id):
            raise ConflictError(
                message=f"Target plan {target_plan_id} already has currency rates",
                code="plan_currency_rate.target_not_empty",
            )

        source_rates = await self.list(PlanCurrencyRate.plan_id == source_plan_id, order_by=self._ordering)
        duplicated: list[PlanCurrencyRate] = []
        for source in source_rates:
            notes = f"Duplicated from plan {source_plan_id}"
            if source.notes:
                notes = f"{notes}: {source.notes}"
            duplicated.append(
                await self.create(
                    plan_id=target_plan_id,
                    group_id=source.group_id,
                    aw_rate=source.aw_rate,
                    mp_rate=source.mp_rate,
                    conversion_rate=source.conversion_rate,
                    is_active=source.is_active,
                    notes=notes,
                )
            )
        logger.info(
            "Plan currency rates duplicated",
            source_plan_id=source_plan_id,
            target_plan_id=target_plan_id,
            count=len(duplicated),
        )
        return duplicated

    async def seed_default_rates(self) -> SeedResult:
        """Create aw=2.0 rates for every seeded plan and currency group."""
        result = SeedResult()
        groups = (await self.session.execute(select(CurrencyGroup).order_by(CurrencyGroup.id))).scalars().all()
        plans = (
            await self.session.execute(select(Plan).where(Plan.name.in_(list(SEED_MP_RATES))).order_by(Plan.level))
        ).scalars().all()

        for plan in plans:
            mp_rate = SEED_MP_RATES[plan.name]
            for group in groups:
                label = f"{plan.name}/{group.name}"
                if await self._find_pair(plan.id, group.id) is not None:
                    result.skipped.append(label)
                    continue
                await self.create(
                    plan_id=plan.id,
                    group_id=group.id,
                    aw_rate=DEFAULT_AW_RATE,
                    mp_rate=mp_rate,
                    conversion_rate=DEFAULT_AW_RATE + mp_rate,
                    is_active=True,
                    notes=f"Default {plan.name} rate",
                )
                result.created.append(label)
        logger.info("Plan currency rates seeded", created=len(result.created), skipped=len(result.skipped))
        return result
