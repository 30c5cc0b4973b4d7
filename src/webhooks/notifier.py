"""
Webhook mail notifier.

Periodically picks up webhooks whose notification mail has not been sent,
renders the event template and mails the owning company's active users.
When the company or its users cannot be resolved the mail goes to the
admin address instead. A webhook is only marked as sent after a mail was
actually delivered, so failed deliveries are retried on the next sweep.
Each sweep attempt is counted on the webhook; the least-attempted rows are
picked first and rows reaching `webhook_mail_max_attempts` are left alone.
"""

from __future__ import annotations

import json
from contextlib import AbstractAsyncContextManager
from dataclasses import asdict, dataclass
from html import escape
from typing import Any, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from src.companies.service import CompaniesService
from src.config import get_settings
from src.db.client import get_db_session
from src.db.models import Company, Webhook
from src.kernel.errors import MagnaPortaError
from src.mail.service import MailService, get_mail_service
from src.monitoring import get_metrics
from src.webhooks.parser import parse_webhook_data
from src.webhooks.service import WebhooksService
from src.webhooks.templates import WebhookTemplatesService, render_layout

logger = structlog.get_logger()

REASON_COMPANY_NOT_FOUND = "company_not_found"
REASON_NO_ACTIVE_USERS = "no_active_users"

_DELIVERED = ("sent", "fallback")

_REASON_LABELS = {
    REASON_COMPANY_NOT_FOUND: "Company not found",
    REASON_NO_ACTIVE_USERS: "No active users",
}

_REASON_TEXT = {
    REASON_COMPANY_NOT_FOUND: "No company is linked to this Airwallex account ID.",
    REASON_NO_ACTIVE_USERS: "The company was found but has no active users with an email address.",
}


@dataclass
class SweepSummary:
    processed: int = 0
    sent: int = 0
    fallback: int = 0
    failed: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def template_data(webhook: Webhook) -> dict[str, Any]:
    """Raw payload overlaid with the parsed fields, so both placeholder styles resolve."""
    raw = webhook.data_json if isinstance(webhook.data_json, dict) else {}
    parsed = parse_webhook_data(webhook.webhook_name, raw)
    return {**raw, **parsed, "accountId": webhook.account_id}


def _webhook_rows(webhook: Webhook, company: Company | None) -> list[dict[str, str]]:
    rows = [
        ("Webhook ID", webhook.webhook_id),
        ("Webhook Name", webhook.webhook_name),
        ("Account ID", webhook.account_id),
    ]
    if company is not None:
        rows += [("Company", company.name), ("Company ID", str(company.id))]
    rows += [
        ("Received At", f"{webhook.received_at:%Y-%m-%d %H:%M:%S} UTC" if webhook.received_at else ""),
        ("Created At", f"{webhook.created_at:%Y-%m-%d %H:%M:%S} UTC" if webhook.created_at else ""),
    ]
    return [{"key": escape(key), "value": escape(str(value))} for key, value in rows]


def _data_block(webhook: Webhook) -> str:
    payload = json.dumps(webhook.data_json, indent=2, default=str, ensure_ascii=False)
    return (
        '<h3 style="margin-bottom:8px;">Webhook Data</h3>'
        '<pre style="background-color:#f8f9fa;padding:10px;border-radius:4px;overflow-x:auto;'
        f'font-size:12px;">{escape(payload)}</pre>'
    )


def render_admin_fallback(webhook: Webhook, reason: str, company: Company | None) -> tuple[str, str]:
    subject = f"[FALLBACK] New Webhook: {webhook.webhook_name} - {_REASON_LABELS[reason]}"
    html = render_layout(
        subject=subject,
        header="Fallback Webhook Notification",
        subtext1="This email was sent to the admin because the original recipients could not be resolved.",
        subtext2=f"<strong>Reason:</strong> {escape(_REASON_TEXT[reason])}",
        body=_data_block(webhook),
        rows=_webhook_rows(webhook, company),
        main_color="#dc3545",
    )
    return subject, html


def render_admin_report(webhook: Webhook, company: Company, recipients: list[str]) -> tuple[str, str]:
    subject = f"[INFO] Webhook {webhook.webhook_name} - mail sent to {len(recipients)} user(s)"
    recipient_list = "".join(f"<li>{escape(address)}</li>" for address in recipients)
    html = render_layout(
        subject=subject,
        header="Webhook Delivery Report",
        subtext1=f"The notification was delivered to {len(recipients)} user(s).",
        body=f'<h3 style="margin-bottom:8px;">Recipients</h3><ul style="margin:0 0 16px 20px;">{recipient_list}</ul>',
        rows=_webhook_rows(webhook, company),
        main_color="#28a745",
    )
    return subject, html


class WebhookMailNotifier:
    """Sends notification mails for unsent webhooks."""

    def __init__(
        self,
        *,
        settings=None,
        mail_service: MailService | None = None,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]] = get_db_session,
    ):
        self.settings = settings or get_settings()
        self.mail_service = mail_service or get_mail_service()
        self.session_factory = session_factory
        self.metrics = get_metrics()

    async def process_unsent(self) -> dict[str, int]:
        """Run one sweep; every webhook is notified and recorded in its own transaction."""
        summary = SweepSummary()
        async with self.session_factory() as session:
            pending = [
                (webhook.id, webhook.webhook_name)
                for webhook in await WebhooksService(session).find_unsent(
                    self.settings.webhook_mail_batch_size,
                    self.settings.webhook_mail_max_attempts,
                )
            ]
        if not pending:
            logger.debug("No unsent webhooks")
            return summary.to_dict()

        logger.info("Processing unsent webhooks", count=len(pending))
        for webhook_id, webhook_name in pending:
            try:
                outcome = await self._process_one(webhook_id)
            except Exception as exc:
                logger.exception(
                    "Webhook notification crashed",
                    webhook_id=webhook_id,
                    webhook_name=webhook_name,
                    error=str(exc),
                )
                await self._record_failed_attempt(webhook_id)
                outcome = "failed"

            if outcome is None:
                continue
            summary.processed += 1
            setattr(summary, outcome, getattr(summary, outcome) + 1)
            self.metrics.track_webhook_mail(webhook_name, outcome)

        logger.info("Webhook mail sweep finished", **summary.to_dict())
        return summary.to_dict()

    async def _process_one(self, webhook_id: int) -> str | None:
        async with self.session_factory() as session:
            webhooks_service = WebhooksService(session)
            webhook = await webhooks_service.get(webhook_id)
            if webhook is None or webhook.mail_sent:
                # Handled by a concurrent sweep
                return None

            try:
                outcome = await self._notify(webhook, CompaniesService(session), WebhookTemplatesService(session))
            except MagnaPortaError as exc:
                outcome = "failed"
                logger.error(
                    "Webhook notification failed",
                    webhook_id=webhook.id,
                    webhook_name=webhook.webhook_name,
                    error=exc.message,
                )

            await webhooks_service.record_mail_attempt(webhook, sent=outcome in _DELIVERED)
            if outcome not in _DELIVERED and webhook.mail_attempts >= self.settings.webhook_mail_max_attempts:
                logger.warning(
                    "Webhook mail attempts exhausted",
                    webhook_id=webhook.id,
                    attempts=webhook.mail_attempts,
                )
        return outcome

    async def _record_failed_attempt(self, webhook_id: int) -> None:
        try:
            async with self.session_factory() as session:
                webhooks_service = WebhooksService(session)
                webhook = await webhooks_service.get(webhook_id)
                if webhook is not None:
                    await webhooks_service.record_mail_attempt(webhook, sent=False)
        except Exception as exc:
            logger.error("Could not record webhook mail attempt", webhook_id=webhook_id, error=str(exc))

    async def _notify(
        self,
        webhook: Webhook,
        companies: CompaniesService,
        templates: WebhookTemplatesService,
    ) -> str:
        company = await companies.find_by_airwallex_account_id(webhook.account_id)
        if company is None:
            logger.warning("Company not found for webhook", webhook_id=webhook.id, account_id=webhook.account_id)
            return await self._send_admin_fallback(webhook, REASON_COMPANY_NOT_FOUND, None)

        recipients = [user.email for user in company.users if user.email and user.is_active]
        if not recipients:
            logger.warning("Company has no active users", webhook_id=webhook.id, company_id=company.id)
            return await self._send_admin_fallback(webhook, REASON_NO_ACTIVE_USERS, company)

        rendered = await templates.render_by_event(webhook.webhook_name, template_data(webhook))
        await self.mail_service.send_html_mail(recipients, rendered.subject, rendered.html)
        logger.info(
            "Webhook notification sent",
            webhook_id=webhook.id,
            company_id=company.id,
            recipients=len(recipients),
        )

        if self.settings.webhook_admin_notifications:
            await self._send_admin_report(webhook, company, recipients)
        return "sent"

    async def _send_admin_fallback(self, webhook: Webhook, reason: str, company: Company | None) -> str:
        admin_email = self.settings.webhook_admin_email
        if not admin_email:
            logger.warning("Admin email not configured; webhook left unsent", webhook_id=webhook.id, reason=reason)
            return "skipped"

        subject, html = render_admin_fallback(webhook, reason, company)
        await self.mail_service.send_html_mail(admin_email, subject, html)
        logger.info("Webhook fallback sent to admin", webhook_id=webhook.id, reason=reason)
        return "fallback"

    async def _send_admin_report(self, webhook: Webhook, company: Company, recipients: list[str]) -> None:
        admin_email = self.settings.webhook_admin_email
        if not admin_email:
            return
        subject, html = render_admin_report(webhook, company, recipients)
        try:
            await self.mail_service.send_html_mail(admin_email, subject, html)
        except MagnaPortaError as exc:
            # Report failures do not affect the webhook state.
            logger.warning("Admin delivery report failed", webhook_id=webhook.id, error=exc.message)


# =============================================================================
# Scheduling
# =============================================================================

_scheduler: AsyncIOScheduler | None = None


async def run_webhook_mail_sweep() -> None:
    try:
        await WebhookMailNotifier().process_unsent()
    except Exception as exc:
        logger.error("Webhook mail sweep crashed", error=str(exc))


def start_webhook_mail_scheduler() -> AsyncIOScheduler | None:
    """Start the interval job unless disabled in settings."""
    global _scheduler

    settings = get_settings()
    if not settings.webhook_mail_run_in_api:
        logger.info("Webhook mail scheduler disabled")
        return None
    if _scheduler is not None and _scheduler.running:
        return _scheduler

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        run_webhook_mail_sweep,
        trigger=IntervalTrigger(seconds=settings.webhook_mail_interval_seconds),
        id="webhook_mail_sweep",
        name="Webhook mail sweep",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    _scheduler.start()
    logger.info("Webhook mail scheduler started", interval_seconds=settings.webhook_mail_interval_seconds)
    return _scheduler


def shutdown_webhook_mail_scheduler() -> None:
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Webhook mail scheduler shutdown")
    _scheduler = None
