"""
Webhook notification templates.

Templates are stored per (event type, channel, locale). Text fields may use
`{{path.to.value}}` placeholders resolved against the webhook data, and
`{{path:money_amount}}` for amounts in European `1.234,56` notation. Events
without a stored template get a generated summary mail.
"""

from __future__ import annotations

import re
from datetime import datetime
from html import escape
from typing import Any

import structlog
from sqlalchemy import select

from src.config import get_settings
from src.db.crud import BaseCrudService, PageResult, paginate_query
from src.db.models import WebhookEventType, WebhookTemplate
from src.kernel.errors import BadRequestError, ConflictError
from src.webhooks.schemas import (
    CreateTemplateRequest,
    RenderedTemplate,
    TemplateSeedResult,
    UpdateTemplateRequest,
)

logger = structlog.get_logger()

DEFAULT_MAIN_COLOR = "#667eea"
FOOTER_TEXT = "This email was sent by Magna Porta. Please do not reply."

_MONEY_PLACEHOLDER_RE = re.compile(r"\{\{\s*([\w.]+):money_amount\s*\}\}")
_PLACEHOLDER_RE = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")

DEFAULT_TEMPLATES: list[dict[str, Any]] = [
    {
        "event_name": "conversion.settled",
        "channel": "email",
        "locale": "en",
        "subject": "Your conversion has settled",
        "body": "<h2>Conversion Settled</h2><p>Short Ref: {{shortReferenceId}}</p><p>Status: {{status}}</p>",
    },
    {
        "event_name": "global_account.active",
        "channel": "email",
        "locale": "en",
        "subject": "Your global account is active",
        "body": "<h2>Account Active</h2><p>Account: {{airwallexAccount}}</p><p>IBAN: {{iban}}</p>",
    },
    {
        "event_name": "payout.transfer.funding.funded",
        "channel": "email",
        "locale": "en",
        "subject": "Your payout has been funded",
        "body": (
            "<h2>Payout Funded</h2>"
            "<p>Amount: {{amount_payer_pays.amount}} {{amount_payer_pays.currency}}</p>"
            "<p>Status: {{status}}</p>"
        ),
    },
]


# =============================================================================
# Placeholder rendering
# =============================================================================


def format_money_amount(value: Any) -> str:
    """Format as `1.234,56`; non-numeric input is returned unchanged."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "" if value is None else str(value)
    formatted = f"{number:,.2f}"
    return formatted.replace(",", "_").replace(".", ",").replace("_", ".")


def resolve_path(data: Any, path: str) -> Any:
    value = data
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            return ""
    return "" if value is None else value


def _display(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_placeholders(text: str | None, data: dict[str, Any], *, html: bool = True) -> str:
    if not text:
        return ""
    quote = escape if html else str

    text = _MONEY_PLACEHOLDER_RE.sub(lambda m: quote(format_money_amount(resolve_path(data, m.group(1)))), text)
    return _PLACEHOLDER_RE.sub(lambda m: quote(_display(resolve_path(data, m.group(1)))), text)


_BASE_CSS = (
    "*{margin:0;padding:0;box-sizing:border-box}"
    "body{font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,'Helvetica Neue',Arial,sans-serif;"
    "background-color:#f8f9fa;color:#333;line-height:1.6}"
    ".container{max-width:600px;margin:0 auto;background-color:#fff;border-radius:12px;"
    "box-shadow:0 4px 6px rgba(0,0,0,.1);overflow:hidden}"
    ".header{padding:30px;text-align:left}"
    ".content{padding:20px 30px 30px 30px}"
    ".footer{background-color:#f8f9fa;padding:20px 30px;text-align:center;border-top:1px solid #e9ecef}"
    ".footer-text{font-size:12px;color:#6c757d}"
    ".summary-box{border-radius:8px;padding:15px;border:1px solid #e9ecef}"
)


def render_layout(
    *,
    subject: str,
    header: str,
    body: str,
    rows: list[dict[str, str]],
    subtext1: str = "",
    subtext2: str = "",
    main_color: str | None = None,
    logo_url: str | None = None,
) -> str:
    """Wrap already-resolved fragments in the Magna Porta mail layout."""
    color = (main_color or "").strip() or DEFAULT_MAIN_COLOR
    logo = logo_url if logo_url is not None else get_settings().logo_url
    rows_html = "".join(
        '<div style="margin-bottom:16px;">'
        f'<div style="font-size:13px;color:#6c757d;font-weight:500;margin-bottom:2px;">{row["key"]}</div>'
        f'<div style="font-size:15px;color:#333;font-weight:600;">{row["value"]}</div>'
        "</div>"
        for row in rows
    )
    return (
        '<!DOCTYPE html><html lang="en"><head><meta charset="UTF-8"/>'
        f"<title>{escape(subject or 'Preview')}</title><style>{_BASE_CSS}</style></head>"
        '<body><div class="container"><div class="header">'
        f'<div style="margin-bottom:16px;text-align:center;"><img src="{escape(logo, quote=True)}" '
        'alt="Magna Porta" style="max-width:150px;height:auto;"/></div>'
        f'<h1 style="color:{escape(color, quote=True)};font-size:26px;font-weight:600;margin-bottom:20px;">{header}</h1>'
        + (f'<p style="color:#6c757d;font-size:16px;margin-bottom:16px;">{subtext1}</p>' if subtext1 else "")
        + (f'<p style="color:#6c757d;font-size:15px;line-height:1.6;">{subtext2}</p>' if subtext2 else "")
        + f'</div><div class="content">{body}'
        + (f'<div class="summary-box">{rows_html}</div>' if rows else "")
        + f'</div><div class="footer"><p class="footer-text">{FOOTER_TEXT}</p></div></div></body></html>'
    )


def render_template(template: WebhookTemplate, data: dict[str, Any]) -> RenderedTemplate:
    rows = [
        {"key": resolve_placeholders(row.get("key"), data), "value": resolve_placeholders(row.get("value"), data)}
        for row in (template.table_rows_json or [])
    ]
    subject = resolve_placeholders(template.subject, data, html=False)
    html = render_layout(
        subject=subject,
        header=resolve_placeholders(template.header, data),
        subtext1=resolve_placeholders(template.subtext1, data),
        subtext2=resolve_placeholders(template.subtext2, data),
        body=resolve_placeholders(template.body, data),
        rows=rows,
        main_color=template.main_color,
    )
    return RenderedTemplate(subject=subject, html=html)


def event_display_name(event_name: str) -> str:
    """`payout.transfer.funding.funded` -> `Payout Transfer Funding Funded`."""
    return " ".join(word[:1].upper() + word[1:] for word in event_name.replace(".", " ").split(" ") if word)


def _format_created_at(value: Any) -> str:
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return str(value)
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def fallback_rows(data: dict[str, Any]) -> list[tuple[str, str]]:
    """Pick the commonly useful fields out of a raw webhook payload."""
    rows: list[tuple[str, str]] = []
    if not isinstance(data, dict):
        return rows

    if data.get("status"):
        rows.append(("Status", str(data["status"])))

    amount = data.get("amount_beneficiary_receives") or data.get("amount_payer_pays")
    if amount:
        if isinstance(amount, dict):
            currency = amount.get("currency")
            amount = amount.get("amount")
        else:
            currency = None
        currency = (
            currency
            or data.get("transfer_currency")
            or data.get("currency")
            or data.get("buy_currency")
            or data.get("sell_currency")
            or "USD"
        )
        rows.append(("Amount", f"{format_money_amount(amount)} {currency}"))

    for key, label in (
        ("short_reference_id", "Reference ID"),
        ("request_id", "Request ID"),
        ("id", "Transaction ID"),
        ("transfer_date", "Transfer Date"),
        ("conversion_date", "Conversion Date"),
    ):
        if data.get(key):
            rows.append((label, str(data[key])))

    if data.get("created_at"):
        rows.append(("Created At", _format_created_at(data["created_at"])))
    if data.get("account_name"):
        rows.append(("Account Name", str(data["account_name"])))
    account_id = data.get("accountId") or data.get("account_id")
    if account_id:
        rows.append(("Account ID", str(account_id)))

    beneficiary = data.get("beneficiary") if isinstance(data.get("beneficiary"), dict) else {}
    bank_details = beneficiary.get("bank_details") or {}
    if bank_details.get("account_name"):
        rows.append(("Beneficiary", str(bank_details["account_name"])))
    if bank_details.get("iban"):
        rows.append(("IBAN", str(bank_details["iban"])))

    payer = data.get("payer")
    if isinstance(payer, dict) and payer.get("company_name"):
        rows.append(("From Company", str(payer["company_name"])))

    for key, label in (
        ("currency_pair", "Currency Pair"),
        ("client_rate", "Rate"),
        ("connected_account_id", "Connected Account ID"),
        ("connected_account_name", "Connected Account Name"),
    ):
        if data.get(key):
            rows.append((label, str(data[key])))
    return rows


def render_fallback(event_name: str, data: dict[str, Any]) -> RenderedTemplate:
    display = event_display_name(event_name)
    rows = fallback_rows(data)
    if not rows:
        rows.append(("Event Type", display))
        if isinstance(data, dict):
            rows.append(("Data", "Webhook data received successfully"))

    subject = f"Webhook Notification: {display}"
    html = render_layout(
        subject=subject,
        header=escape(subject),
        subtext1="A new webhook event has been received. Please review the details below.",
        body="",
        rows=[{"key": escape(key), "value": escape(value)} for key, value in rows],
    )
    return RenderedTemplate(subject=subject, html=html)


# =============================================================================
# Event types
# =============================================================================


class WebhookEventTypesService(BaseCrudService[WebhookEventType]):
    model = WebhookEventType
    entity_name = "Webhook event type"

    async def list_event_types(self) -> list[WebhookEventType]:
        return await self.list(order_by=[WebhookEventType.event_name.asc()])

    async def get_by_name(self, event_name: str) -> WebhookEventType | None:
        return await self.first(WebhookEventType.event_name == event_name)

    async def ensure(self, event_name: str, description: str | None = None) -> WebhookEventType:
        event_type = await self.get_by_name(event_name)
        if event_type is None:
            event_type = await self.create(event_name=event_name, description=description)
            logger.info("Webhook event type created", event_name=event_name)
        return event_type

    async def create_event_type(self, event_name: str, description: str | None = None) -> WebhookEventType:
        if await self.get_by_name(event_name) is not None:
            raise ConflictError(
                message=f"Event type '{event_name}' already exists",
                code="webhook_event_type.conflict",
            )
        return await self.create(event_name=event_name, description=description)

    async def delete_event_type(self, event_type_id: int) -> None:
        event_type = await self.get_or_404(event_type_id)
        await self.delete(event_type)
        logger.info("Webhook event type deleted", event_type_id=event_type_id)


# =============================================================================
# Templates
# =============================================================================


class WebhookTemplatesService(BaseCrudService[WebhookTemplate]):
    model = WebhookTemplate
    entity_name = "Template"

    def __init__(self, session):
        super().__init__(session)
        self.event_types = WebhookEventTypesService(session)

    async def _find(self, event_type_id: int, channel: str, locale: str) -> WebhookTemplate | None:
        return await self.first(
            WebhookTemplate.event_type_id == event_type_id,
            WebhookTemplate.channel == channel,
            WebhookTemplate.locale == locale,
        )

    async def create_template(self, request: CreateTemplateRequest) -> WebhookTemplate:
        event_type = await self.event_types.ensure(request.event_name)
        if await self._find(event_type.id, request.channel, request.locale) is not None:
            raise BadRequestError(
                message="Template already exists for this eventName + channel + locale",
                code="webhook_template.conflict",
            )

        values = request.model_dump(exclude={"event_name"})
        template = await self.create(event_type_id=event_type.id, **values)
        await self.session.refresh(template, attribute_names=["event_type"])
        logger.info(
            "Webhook template created",
            template_id=template.id,
            event_name=request.event_name,
            channel=template.channel,
            locale=template.locale,
        )
        return template

    async def update_template(self, template_id: int, request: UpdateTemplateRequest) -> WebhookTemplate:
        template = await self.get_or_404(template_id, message="Template not found")
        values = request.model_dump(exclude_unset=True)
        event_name = values.pop("event_name", None)

        if event_name or values.get("channel") or values.get("locale"):
            event_type_id = (await self.event_types.ensure(event_name)).id if event_name else template.event_type_id
            channel = values.get("channel") or template.channel
            locale = values.get("locale") or template.locale
            conflict = await self._find(event_type_id, channel, locale)
            if conflict is not None and conflict.id != template.id:
                raise BadRequestError(
                    message="Another template already exists with the same eventName + channel + locale",
                    code="webhook_template.conflict",
                )
            values.update(event_type_id=event_type_id, channel=channel, locale=locale)

        template = await self.update(template, values)
        await self.session.refresh(template, attribute_names=["event_type"])
        logger.info("Webhook template updated", template_id=template.id, fields=sorted(values))
        return template

    async def find_one(self, event_name: str, channel: str, locale: str = "en") -> WebhookTemplate | None:
        event_type = await self.event_types.get_by_name(event_name)
        if event_type is None:
            return None
        return await self._find(event_type.id, channel, locale)

    async def list_all(self) -> list[WebhookTemplate]:
        return await self.list(order_by=[WebhookTemplate.created_at.desc(), WebhookTemplate.id.desc()])

    async def paginate_templates(
        self,
        page: int | None,
        limit: int | None,
        *,
        event_name: str | None = None,
        channel: str | None = None,
        locale: str | None = None,
    ) -> PageResult[WebhookTemplate]:
        query = select(WebhookTemplate).order_by(WebhookTemplate.created_at.desc(), WebhookTemplate.id.desc())
        if event_name:
            query = query.join(WebhookEventType, WebhookTemplate.event_type_id == WebhookEventType.id).where(
                WebhookEventType.event_name == event_name
            )
        if channel:
            query = query.where(WebhookTemplate.channel == channel)
        if locale:
            query = query.where(WebhookTemplate.locale == locale)
        return await paginate_query(self.session, query, page=page, limit=limit)

    async def remove(self, template_id: int) -> None:
        template = await self.get_or_404(template_id, message="Template not found")
        await self.delete(template)
        logger.info("Webhook template deleted", template_id=template_id)

    async def seed_defaults(self) -> TemplateSeedResult:
        result = TemplateSeedResult()
        for seed in DEFAULT_TEMPLATES:
            existing = await self.find_one(seed["event_name"], seed["channel"], seed["locale"])
            if existing is None:
                await self.create_template(CreateTemplateRequest(**seed))
                result.created += 1
            else:
                await self.update_template(existing.id, UpdateTemplateRequest(**seed))
                result.updated += 1
        logger.info("Webhook templates seeded", created=result.created, updated=result.updated)
        return result

    # Rendering

    async def render_by_id(self, template_id: int, data: dict[str, Any]) -> RenderedTemplate:
        template = await self.get_or_404(template_id, message="Template not found")
        return render_template(template, data)

    async def render_by_event(
        self,
        event_name: str,
        data: dict[str, Any],
        channel: str = "email",
        locale: str = "en",
    ) -> RenderedTemplate:
        """Render the stored template, or the generated summary when none exists."""
        template = await self.find_one(event_name, channel, locale)
        if template is None:
            return render_fallback(event_name, data)
        return render_template(template, data)
