"""Row builders for service and API tests."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import create_access_token
from src.db.models import Company, CurrencyGroup, Plan, PlanType, TransferMarkupRate, User, Webhook


def make_token(role: str = "user", sub: str = "42", company_id: int | None = None) -> str:
    return create_access_token(sub=sub, email=f"user{sub}@example.com", role=role, company_id=company_id)


async def _add(session: AsyncSession, instance):
    session.add(instance)
    await session.flush()
    await session.refresh(instance)
    return instance


async def create_plan_type(session: AsyncSession, name: str = "main", **overrides: Any) -> PlanType:
    values = {"name": name, "display_name": f"{name.title()} Plans", "is_active": True, "is_deleted": False}
    values.update(overrides)
    return await _add(session, PlanType(**values))


async def create_plan(session: AsyncSession, name: str = "Bronze", level: int = 1, **overrides: Any) -> Plan:
    values = {
        "name": name,
        "level": level,
        "monthly_price": Decimal("29.99"),
        "annual_price": Decimal("299.99"),
        "is_active": True,
        "is_deleted": False,
    }
    values.update(overrides)
    return await _add(session, Plan(**values))


async def create_company(
    session: AsyncSession,
    name: str = "Acme GmbH",
    *,
    plan: Plan | None = None,
    airwallex_account_id: str | None = "acct_123",
    **overrides: Any,
) -> Company:
    values = {
        "name": name,
        "airwallex_account_id": airwallex_account_id,
        "plan_id": plan.id if plan else None,
        "is_active": True,
        "is_verified": True,
        "is_deleted": False,
    }
    values.update(overrides)
    return await _add(session, Company(**values))


async def create_user(session: AsyncSession, company: Company, email: str, *, is_active: bool = True) -> User:
    return await _add(
        session,
        User(email=email, first_name="Test", last_name="User", is_active=is_active, company_id=company.id),
    )


async def create_currency_group(session: AsyncSession, name: str = "Major Currencies") -> CurrencyGroup:
    return await _add(session, CurrencyGroup(name=name, description=f"{name} group", is_active=True))


async def create_markup_rate(session: AsyncSession, plan: Plan, **overrides: Any) -> TransferMarkupRate:
    values = {
        "plan_id": plan.id,
        "region": "Europe",
        "country": "Germany",
        "country_code": "DE",
        "currency": "EUR",
        "transaction_type": None,
        "transfer_method": "local",
        "fee_sha_percentage": None,
        "fee_sha_minimum": None,
        "fee_our_percentage": Decimal("0.250"),
        "fee_our_minimum": Decimal("5.00"),
        "fee_currency": "EUR",
        "is_deleted": False,
    }
    values.update(overrides)
    return await _add(session, TransferMarkupRate(**values))


async def create_webhook(
    session: AsyncSession,
    name: str = "conversion.settled",
    *,
    account_id: str = "acct_123",
    data: dict[str, Any] | None = None,
    mail_sent: bool = False,
    mail_attempts: int = 0,
) -> Webhook:
    return await _add(
        session,
        Webhook(
            account_id=account_id,
            created_at=datetime(2024, 3, 5, 10, 30),
            data_json=data if data is not None else {"status": "SETTLED", "short_reference_id": "C-1"},
            webhook_id=f"wh_{name}",
            webhook_name=name,
            mail_sent=mail_sent,
            mail_attempts=mail_attempts,
        ),
    )
