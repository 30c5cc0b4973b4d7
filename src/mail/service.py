"""
Outbound mail with provider fallback.

The configured `mail_provider` is tried first, then every other provider
that has credentials. Each provider gets `mail_max_attempts` tries with
exponential backoff before the next one is used.
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Iterable

import structlog

from src.config import get_settings
from src.kernel.errors import UpstreamError
from src.mail.message import MailMessage, SendResult
from src.mail.providers import BrevoProvider, MailProvider, MailProviderError, SendGridProvider, SmtpProvider
from src.mail.templates import (
    PasswordResetData,
    TransferNotificationData,
    WelcomeEmailData,
    render_password_reset_email,
    render_transfer_notification,
    render_welcome_email,
    transfer_notification_subject,
)
from src.monitoring import get_metrics

logger = structlog.get_logger()

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

_service: "MailService | None" = None


class MailDeliveryError(UpstreamError):
    def __init__(self, failures: list[dict[str, str]]):
        super().__init__(
            message="Mail could not be delivered by any provider",
            code="mail.delivery_failed",
            meta={"failures": failures},
        )
        self.failures = failures


def substitute_variables(template: str, variables: dict[str, Any]) -> str:
    """Replace `{{key}}` with `variables[key]`; unknown keys are left as-is."""

    def replace(match: re.Match) -> str:
        key = match.group(1)
        return str(variables[key]) if key in variables else match.group(0)

    return _PLACEHOLDER_RE.sub(replace, template)


def build_providers(settings) -> dict[str, MailProvider]:
    return {
        "smtp": SmtpProvider(settings),
        "sendgrid": SendGridProvider(settings),
        "brevo": BrevoProvider(settings),
    }


class MailService:
    def __init__(self, settings=None, providers: dict[str, MailProvider] | None = None):
        self.settings = settings or get_settings()
        self.providers = providers if providers is not None else build_providers(self.settings)

    def provider_order(self) -> list[MailProvider]:
        """Primary provider first, then the other configured providers."""
        primary = self.providers.get(self.settings.mail_provider)
        ordered = [primary] if primary is not None and primary.is_configured() else []
        ordered.extend(
            provider
            for name, provider in self.providers.items()
            if name != self.settings.mail_provider and provider.is_configured()
        )
        return ordered

    async def _send_with_retries(self, provider: MailProvider, message: MailMessage) -> SendResult:
        attempts = max(1, int(self.settings.mail_max_attempts))
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await provider.send(message)
                get_metrics().track_mail_delivery(provider.name, "sent")
                return result
            except MailProviderError as e:
                get_metrics().track_mail_delivery(provider.name, "failed")
                logger.warning(
                    "Mail delivery attempt failed",
                    provider=provider.name,
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(e),
                )
                if not e.retryable or attempt >= attempts:
                    raise
                delay = self.settings.mail_backoff_base_seconds * (2**attempt)
                if delay > 0:
                    await asyncio.sleep(delay)

    async def send_mail(self, message: MailMessage) -> SendResult:
        providers = self.provider_order()
        if not providers:
            raise MailDeliveryError([{"provider": "none", "error": "No mail provider is configured"}])

        failures: list[dict[str, str]] = []
        for provider in providers:
            try:
                result = await self._send_with_retries(provider, message)
            except MailProviderError as e:
                failures.append({"provider": provider.name, "error": str(e)})
                continue
            if failures:
                logger.info("Mail delivered by fallback provider", provider=provider.name, failed=failures)
            return result

        logger.error("Mail delivery failed on every provider", to=message.to, subject=message.subject)
        raise MailDeliveryError(failures)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def send_text_mail(self, to: str | Iterable[str], subject: str, text: str) -> SendResult:
        return await self.send_mail(MailMessage(to=_as_list(to), subject=subject, text=text))

    async def send_html_mail(self, to: str | Iterable[str], subject: str, html: str) -> SendResult:
        return await self.send_mail(MailMessage(to=_as_list(to), subject=subject, html=html))

    async def send_template_mail(
        self,
        to: str | Iterable[str],
        subject: str,
        template: str,
        variables: dict[str, Any],
    ) -> SendResult:
        return await self.send_html_mail(to, subject, substitute_variables(template, variables))

    async def send_test_mail(self) -> SendResult:
        sent_at = datetime.now(timezone.utc).isoformat()
        return await self.send_mail(
            MailMessage(
                to=[self.settings.test_mail_to],
                subject="Test Mail - Magna Porta API",
                text=f"This is a test mail sent at {sent_at}.",
                html=f"<h1>Test Mail</h1><p>This is a test mail sent from the Magna Porta API at {sent_at}.</p>",
            )
        )

    async def send_transfer_notification(
        self, to: str | Iterable[str], data: TransferNotificationData
    ) -> SendResult:
        return await self.send_html_mail(to, transfer_notification_subject(data), render_transfer_notification(data))

    async def send_welcome_mail(self, to: str, data: WelcomeEmailData) -> SendResult:
        return await self.send_html_mail(to, "Welcome to Magna Porta", render_welcome_email(data))

    async def send_password_reset_mail(self, to: str, data: PasswordResetData) -> SendResult:
        return await self.send_html_mail(to, "Reset your Magna Porta password", render_password_reset_email(data))

    async def check_status(self) -> dict[str, Any]:
        reports = {}
        for name, provider in self.providers.items():
            reports[name] = await provider.check_status()
        active = [provider.name for provider in self.provider_order()]
        return {
            "status": "success" if active else "error",
            "message": f"Active providers: {', '.join(active)}" if active else "No mail provider is configured",
            "details": {"primary": self.settings.mail_provider, "order": active, "providers": reports},
        }


def _as_list(to: str | Iterable[str]) -> list[str]:
    return [to] if isinstance(to, str) else list(to)


def get_mail_service() -> MailService:
    """Get or create the process-wide mail service."""
    global _service
    if _service is None:
        _service = MailService()
    return _service
