"""Currency groups and their member currencies."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from src.currencies.schemas import CreateCurrencyGroupRequest
from src.db.crud import BaseCrudService
from src.db.models import Currency, CurrencyGroup
from src.kernel.errors import ConflictError
from src.plans.schemas import SeedResult

logger = structlog.get_logger()

DEFAULT_CURRENCY_GROUPS: list[dict] = [
    {
        "name": "Major Currencies",
        "description": "Most traded currencies",
        "currencies": [
            {"code": "EUR", "name": "Euro", "symbol": "€"},
            {"code": "USD", "name": "US Dollar", "symbol": "$"},
            {"code": "GBP", "name": "British Pound", "symbol": "£"},
        ],
    },
    {
        "name": "Emerging Markets",
        "description": "Emerging market currencies",
        "currencies": [
            {"code": "TRY", "name": "Turkish Lira", "symbol": "₺"},
            {"code": "BRL", "name": "Brazilian Real", "symbol": "R$"},
        ],
    },
    {
        "name": "Asian Currencies",
        "description": "Asian market currencies",
        "currencies": [
            {"code": "JPY", "name": "Japanese Yen", "symbol": "¥"},
            {"code": "CNY", "name": "Chinese Yuan", "symbol": "¥"},
        ],
    },
]


class CurrencyGroupsService(BaseCrudService[CurrencyGroup]):
    model = CurrencyGroup
    entity_name = "Currency group"

    async def list_groups(self) -> list[CurrencyGroup]:
        return await self.list(
            order_by=[CurrencyGroup.id.asc()],
            options=[selectinload(CurrencyGroup.currencies)],
        )

    async def get_group(self, group_id: int) -> CurrencyGroup:
        return await self.get_or_404(group_id, options=[selectinload(CurrencyGroup.currencies)])

    async def _add_currencies(self, group: CurrencyGroup, currencies: list[dict]) -> None:
        for item in currencies:
            code = item["code"].upper()
            result = await self.session.execute(select(Currency).where(Currency.code == code))
            currency = result.scalars().first()
            if currency is None:
                self.session.add(
                    Currency(code=code, name=item["name"], symbol=item.get("symbol"), group_id=group.id, is_active=True)
                )
            else:
                currency.group_id = group.id
        await self.session.flush()

    async def create_group(self, request: CreateCurrencyGroupRequest) -> CurrencyGroup:
        if await self.exists(CurrencyGroup.name == request.name):
            raise ConflictError(
                message=f"Currency group with name '{request.name}' already exists",
                code="currency_group.name_conflict",
            )
        group = await self.create(
            name=request.name,
            description=request.description,
            is_active=request.is_active,
        )
        await self._add_currencies(group, [c.model_dump() for c in request.currencies])
        logger.info("Currency group created", group_id=group.id, name=group.name)
        return await self.get_group(group.id)

    async def seed_defaults(self) -> SeedResult:
        result = SeedResult()
        for seed in DEFAULT_CURRENCY_GROUPS:
            if await self.exists(CurrencyGroup.name == seed["name"]):
                result.skipped.append(seed["name"])
                continue
            group = await self.create(name=seed["name"], description=seed["description"], is_active=True)
            await self._add_currencies(group, seed["currencies"])
            result.created.append(seed["name"])
        logger.info("Currency groups seeded", created=result.created, skipped=result.skipped)
        return result
