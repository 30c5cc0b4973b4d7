"""API route modules."""

from . import (
    airwallex,
    companies,
    currency_groups,
    health,
    mail,
    plan_currency_rates,
    plan_types,
    plans,
    transfer_markup_rates,
    webhooks,
)

__all__ = [
    "airwallex",
    "companies",
    "currency_groups",
    "health",
    "mail",
    "plan_currency_rates",
    "plan_types",
    "plans",
    "transfer_markup_rates",
    "webhooks",
]
