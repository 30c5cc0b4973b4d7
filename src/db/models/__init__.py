"""Database models."""

from src.db.models.base import Base
from src.db.models.companies import Company, User
from src.db.models.plans import Plan, PlanType
from src.db.models.currencies import Currency, CurrencyGroup, PlanCurrencyRate
from src.db.models.markup import TransferMarkupRate
from src.db.models.webhooks import Webhook, WebhookEventType, WebhookTemplate

__all__ = [
    "Base",
    "Company",
    "User",
    "Plan",
    "PlanType",
    "Currency",
    "CurrencyGroup",
    "PlanCurrencyRate",
    "TransferMarkupRate",
    "Webhook",
    "WebhookEventType",
    "WebhookTemplate",
]
