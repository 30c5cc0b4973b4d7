"""
Transfer markup rates.

Fee schedule rows per plan and corridor, plus the lookup used at transfer
time to resolve the markup for a connected Airwallex account.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

import structlog
from sqlalchemy import or_, select

from src.db.crud import BaseCrudService, PageResult
from src.db.models import Company, Plan, TransferMarkupRate
from src.kernel.errors import BadRequestError, ConflictError, NotFoundError
from src.markup.schemas import (
    BulkUpdateItem,
    CountryOption,
    CreateTransferMarkupRateRequest,
    PlanRateSummary,
    TransferMarkupRateResponse,
    UpdateTransferMarkupRateRequest,
)

logger = structlog.get_logger()

RATE_FOUND_MESSAGE = "Transfer markup rate found"
SEPA_FALLBACK_MESSAGE = "Transfer markup rate found (SEPA fallback for EUR/LOCAL)"
SEPA_TRANSACTION_TYPE = "SEPA"

_UNIQUE_FIELDS = ("plan_id", "country_code", "currency", "transfer_method", "transaction_type")


def _normalize_codes(values: dict[str, Any]) -> dict[str, Any]:
    for key in ("country_code", "currency", "fee_currency"):
        if values.get(key):
            values[key] = values[key].upper()
    if values.get("transfer_method"):
        values["transfer_method"] = values["transfer_method"].lower()
    return values


def _transaction_type_filter(transaction_type: str | None):
    if transaction_type:
        return TransferMarkupRate.transaction_type == transaction_type
    return or_(TransferMarkupRate.transaction_type.is_(None), TransferMarkupRate.transaction_type == "")


class TransferMarkupRatesService(BaseCrudService[TransferMarkupRate]):
    model = TransferMarkupRate
    entity_name = "Transfer markup rate"

    _ordering = (
        TransferMarkupRate.plan_id.asc(),
        TransferMarkupRate.region.asc(),
        TransferMarkupRate.country.asc(),
        TransferMarkupRate.currency.asc(),
        TransferMarkupRate.id.asc(),
    )

    async def _require_plan(self, plan_id: int) -> Plan:
        plan = await self.session.get(Plan, plan_id)
        if plan is None or plan.is_deleted:
            raise NotFoundError(message=f"Plan with ID {plan_id} not found")
        return plan

    async def _ensure_unique(self, values: dict[str, Any], *, exclude_id: int | None = None) -> None:
        filters = [
            TransferMarkupRate.plan_id == values["plan_id"],
            TransferMarkupRate.country_code == values["country_code"],
            TransferMarkupRate.currency == values["currency"],
            TransferMarkupRate.transfer_method == values["transfer_method"],
            _transaction_type_filter(values.get("transaction_type")),
        ]
        if exclude_id is not None:
            filters.append(TransferMarkupRate.id != exclude_id)
        if await self.exists(*filters):
            raise ConflictError(
                message=(
                    "Transfer markup rate already exists for plan {plan_id}, {country_code}, "
                    "{currency}, {transfer_method}".format(**values)
                ),
                code="transfer_markup_rate.conflict",
            )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def list_rates(self) -> list[TransferMarkupRate]:
        return await self.list(order_by=self._ordering)

    async def paginate_rates(self, page: int | None, limit: int | None) -> PageResult[TransferMarkupRate]:
        return await self.paginate(page, limit, order_by=self._ordering)

    async def get_rate(self, rate_id: int) -> TransferMarkupRate:
        return await self.get_or_404(rate_id)

    async def find_by_country_code(self, country_code: str) -> list[TransferMarkupRate]:
        return await self.list(TransferMarkupRate.country_code == country_code.upper(), order_by=self._ordering)

    async def find_by_currency(self, currency: str) -> list[TransferMarkupRate]:
        return await self.list(TransferMarkupRate.currency == currency.upper(), order_by=self._ordering)

    async def find_by_transfer_method(self, transfer_method: str) -> list[TransferMarkupRate]:
        return await self.list(TransferMarkupRate.transfer_method == transfer_method.lower(), order_by=self._ordering)

    async def get_rates_by_plan(self, plan_id: int) -> list[TransferMarkupRate]:
        await self._require_plan(plan_id)
        return await self.list(TransferMarkupRate.plan_id == plan_id, order_by=self._ordering)

    async def paginate_rates_by_plan(
        self, plan_id: int, page: int | None, limit: int | None
    ) -> PageResult[TransferMarkupRate]:
        await self._require_plan(plan_id)
        return await self.paginate(page, limit, TransferMarkupRate.plan_id == plan_id, order_by=self._ordering)

    async def plans_summary(self) -> list[PlanRateSummary]:
        plans = (
            await self.session.execute(
                select(Plan).where(Plan.is_deleted.is_(False)).order_by(Plan.level.asc(), Plan.id.asc())
            )
        ).scalars().all()
        rates = await self.list()

        by_plan: dict[int, list[TransferMarkupRate]] = defaultdict(list)
        for rate in rates:
            by_plan[rate.plan_id].append(rate)

        summaries = []
        for plan in plans:
            plan_rates = by_plan.get(plan.id, [])
            summaries.append(
                PlanRateSummary(
                    plan_id=plan.id,
                    plan_name=plan.name,
                    total_rates=len(plan_rates),
                    local_rates=sum(1 for r in plan_rates if r.transfer_method == "local"),
                    swift_rates=sum(1 for r in plan_rates if r.transfer_method == "swift"),
                    countries=len({r.country_code for r in plan_rates}),
                    regions=len({r.region for r in plan_rates}),
                )
            )
        return summaries

    async def grouped_rates(self, plan_id: int) -> dict[str, Any]:
        """
        Nest a plan's rates as region -> country -> currency -> transaction type.

        Rows without a transaction type land under `default`; each leaf
        splits into `local` and `swift` lists.
        """
        plan = await self._require_plan(plan_id)
        rates = await self.list(TransferMarkupRate.plan_id == plan_id, order_by=self._ordering)

        regions: dict[str, Any] = {}
        for rate in rates:
            countries = regions.setdefault(rate.region, {})
            currencies = countries.setdefault(rate.country, {})
            types = currencies.setdefault(rate.currency, {})
            leaf = types.setdefault(rate.transaction_type or "default", {"local": [], "swift": []})
            leaf.setdefault(rate.transfer_method, []).append(
                TransferMarkupRateResponse.model_validate(rate).model_dump(mode="json")
            )

        return {
            "plan_id": plan.id,
            "plan_name": plan.name,
            "regions": regions,
            "totals": {
                "rates": len(rates),
                "regions": len(regions),
                "countries": len({rate.country_code for rate in rates}),
                "local": sum(1 for rate in rates if rate.transfer_method == "local"),
                "swift": sum(1 for rate in rates if rate.transfer_method == "swift"),
            },
        }

    async def filtered_rates(
        self,
        *,
        plan_id: int | None = None,
        region: str | None = None,
        country_code: str | None = None,
        currency: str | None = None,
        transfer_method: str | None = None,
    ) -> list[TransferMarkupRate]:
        filters = []
        if plan_id is not None:
            filters.append(TransferMarkupRate.plan_id == plan_id)
        if region:
            filters.append(TransferMarkupRate.region == region)
        if country_code:
            filters.append(TransferMarkupRate.country_code == country_code.upper())
        if currency:
            filters.append(TransferMarkupRate.currency == currency.upper())
        if transfer_method:
            filters.append(TransferMarkupRate.transfer_method == transfer_method.lower())
        return await self.list(*filters, order_by=self._ordering)

    async def available_regions(self) -> list[str]:
        result = await self.session.execute(
            select(TransferMarkupRate.region).where(TransferMarkupRate.is_deleted.is_(False)).distinct()
        )
        return sorted(region for region in result.scalars().all() if region)

    async def available_countries(self, region: str | None = None) -> list[CountryOption]:
        query = select(TransferMarkupRate.country, TransferMarkupRate.country_code, TransferMarkupRate.region).where(
            TransferMarkupRate.is_deleted.is_(False)
        )
        if region:
            query = query.where(TransferMarkupRate.region == region)
        rows = (await self.session.execute(query)).all()

        seen: dict[str, CountryOption] = {}
        for country, country_code, row_region in rows:
            seen.setdefault(country_code, CountryOption(country=country, country_code=country_code, region=row_region))
        return sorted(seen.values(), key=lambda option: option.country)

    async def find_specific_rate(
        self,
        plan_id: int,
        country_code: str,
        currency: str,
        transfer_method: str,
        transaction_type: str | None = None,
    ) -> TransferMarkupRate:
        rate = await self.first(
            TransferMarkupRate.plan_id == plan_id,
            TransferMarkupRate.country_code == country_code.upper(),
            TransferMarkupRate.currency == currency.upper(),
            TransferMarkupRate.transfer_method == transfer_method.lower(),
            _transaction_type_filter(transaction_type),
            order_by=[TransferMarkupRate.id.asc()],
        )
        if rate is None:
            raise NotFoundError(message="No markup rate found for the specified criteria")
        return rate

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create_rate(self, request: CreateTransferMarkupRateRequest) -> TransferMarkupRate:
        await self._require_plan(request.plan_id)
        values = _normalize_codes(request.model_dump())
        values["fee_currency"] = values.get("fee_currency") or values["currency"]
        await self._ensure_unique(values)

        rate = await self.create(**values)
        logger.info(
            "Transfer markup rate created",
            rate_id=rate.id,
            plan_id=rate.plan_id,
            country_code=rate.country_code,
            currency=rate.currency,
            transfer_method=rate.transfer_method,
        )
        return rate

    async def update_rate(self, rate_id: int, request: UpdateTransferMarkupRateRequest) -> TransferMarkupRate:
        rate = await self.get_or_404(rate_id)
        values = _normalize_codes(
            {key: value for key, value in request.model_dump(exclude_unset=True).items() if value is not None}
        )

        if "plan_id" in values and values["plan_id"] != rate.plan_id:
            await self._require_plan(values["plan_id"])

        if any(key in values and values[key] != getattr(rate, key) for key in _UNIQUE_FIELDS):
            merged = {key: values.get(key, getattr(rate, key)) for key in _UNIQUE_FIELDS}
            await self._ensure_unique(merged, exclude_id=rate.id)

        rate = await self.update(rate, values)
        logger.info("Transfer markup rate updated", rate_id=rate.id, fields=sorted(values))
        return rate

    async def soft_delete_rate(self, rate_id: int) -> TransferMarkupRate:
        rate = await self.get_or_404(rate_id)
        rate = await self.soft_delete(rate)
        logger.info("Transfer markup rate deleted", rate_id=rate_id)
        return rate

    async def restore_rate(self, rate_id: int) -> TransferMarkupRate:
        rate = await self.first(
            TransferMarkupRate.id == rate_id,
            TransferMarkupRate.is_deleted.is_(True),
            include_deleted=True,
        )
        if rate is None:
            raise NotFoundError(message=f"Deleted transfer markup rate with ID {rate_id} not found")
        return await self.restore(rate)

    async def bulk_update(self, items: list[BulkUpdateItem]) -> dict[str, Any]:
        """Apply fee changes row by row; one failing id does not stop the rest."""
        successful_ids: list[int] = []
        failures: list[dict[str, Any]] = []

        for item in items:
            rate = await self.get(item.id)
            if rate is None:
                failures.append({"id": item.id, "error": f"Transfer markup rate with ID {item.id} not found"})
                continue
            values = _normalize_codes(
                {key: value for key, value in item.model_dump(exclude={"id"}).items() if value is not None}
            )
            await self.update(rate, values)
            successful_ids.append(item.id)

        logger.info(
            "Transfer markup rates bulk updated",
            success_count=len(successful_ids),
            failure_count=len(failures),
        )
        return {
            "success": not failures,
            "successCount": len(successful_ids),
            "failureCount": len(failures),
            "successfulIds": successful_ids,
            "failures": failures,
        }

    async def duplicate_rates(self, source_plan_id: int, target_plan_id: int) -> list[TransferMarkupRate]:
        await self._require_plan(source_plan_id)
        await self._require_plan(target_plan_id)

        if await self.exists(TransferMarkupRate.plan_id == target_plan_id, include_deleted=False):
            raise ConflictError(
                message=f"Target plan {target_plan_id} already has transfer markup rates",
                code="transfer_markup_rate.target_not_empty",
            )

        copied_fields = (
            "region",
            "country",
            "country_code",
            "currency",
            "transaction_type",
            "transfer_method",
            "fee_sha_percentage",
            "fee_sha_minimum",
            "fee_our_percentage",
            "fee_our_minimum",
            "fee_currency",
        )
        source_rates = await self.list(TransferMarkupRate.plan_id == source_plan_id, order_by=self._ordering)
        duplicated = [
            await self.create(plan_id=target_plan_id, **{field: getattr(source, field) for field in copied_fields})
            for source in source_rates
        ]
        logger.info(
            "Transfer markup rates duplicated",
            source_plan_id=source_plan_id,
            target_plan_id=target_plan_id,
            count=len(duplicated),
        )
        return duplicated

    # -------------------------------------------------------------------------
    # Connected account lookup
    # -------------------------------------------------------------------------

    async def get_rate_by_connected_account(
        self,
        connected_account_id: str,
        currency: str,
        transfer_method: str,
        country_code: str | None = None,
        transaction_type: str | None = None,
    ) -> tuple[TransferMarkupRate, str]:
        """
        Resolve the markup a company pays for a transfer.

        Returns the matching row and a message; EUR local transfers without
        a corridor-specific row fall back to the plan's SEPA row.
        """
        result = await self.session.execute(
            select(Company).where(
                Company.airwallex_account_id == connected_account_id,
                Company.is_deleted.is_(False),
            )
        )
        company = result.scalars().first()
        if company is None:
            raise NotFoundError(message=f"Company with connected account ID {connected_account_id} not found")
        if company.plan_id is None:
            raise BadRequestError(
                message=f"Company {company.name} does not have an assigned plan",
                code="company.no_plan",
            )

        currency = currency.upper()
        method = transfer_method.lower()
        country_code = country_code.upper() if country_code else None

        filters = [
            TransferMarkupRate.plan_id == company.plan_id,
            TransferMarkupRate.currency == currency,
            TransferMarkupRate.transfer_method == method,
        ]
        if method == "local":
            if not country_code:
                raise BadRequestError(
                    message="Country code is required for local transfers",
                    code="transfer_markup_rate.country_code_required",
                )
            filters.append(TransferMarkupRate.country_code == country_code)
            filters.append(_transaction_type_filter(transaction_type))

        order = [TransferMarkupRate.id.asc()]
        rate = await self.first(*filters, order_by=order)
        if rate is not None:
            return rate, RATE_FOUND_MESSAGE

        if currency == "EUR" and method == "local" and country_code:
            rate = await self.first(
                TransferMarkupRate.plan_id == company.plan_id,
                TransferMarkupRate.transaction_type == SEPA_TRANSACTION_TYPE,
                order_by=order,
            )
            if rate is not None:
                logger.info(
                    "Transfer markup SEPA fallback",
                    connected_account_id=connected_account_id,
                    plan_id=company.plan_id,
                    country_code=country_code,
                )
                return rate, SEPA_FALLBACK_MESSAGE

        raise NotFoundError(message="No markup rate found for the specified criteria")
