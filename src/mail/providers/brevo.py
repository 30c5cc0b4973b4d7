"""Brevo transactional email over httpx."""

from __future__ import annotations

import base64
import uuid
from typing import Any

import httpx
import structlog

from src.kernel.http.retry import request_with_retry
from src.mail.message import MailMessage, SendResult
from src.mail.providers.base import MailProvider, MailProviderError

logger = structlog.get_logger()


class BrevoProvider(MailProvider):
    name = "brevo"

    def __init__(self, settings, *, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(settings)
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.settings.brevo_api_key)

    def default_sender(self) -> str:
        return self.settings.brevo_from_email or self.settings.mail_from

    def _headers(self) -> dict[str, str]:
        return {
            "api-key": self.settings.brevo_api_key or "",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def build_payload(self, message: MailMessage) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "sender": {"email": message.sender or self.default_sender(), "name": self.settings.brevo_sender_name},
            "to": [{"email": address} for address in message.to],
            "subject": message.subject,
        }
        if message.html:
            payload["htmlContent"] = message.html
        if message.text:
            payload["textContent"] = message.text
        if message.cc:
            payload["cc"] = [{"email": address} for address in message.cc]
        if message.bcc:
            payload["bcc"] = [{"email": address} for address in message.bcc]
        if message.attachments:
            payload["attachment"] = [
                {"name": attachment.filename, "content": base64.b64encode(attachment.content).decode("ascii")}
                for attachment in message.attachments
            ]
        return payload

    async def send(self, message: MailMessage) -> SendResult:
        url = self.settings.brevo_api_url.rstrip("/") + "/v3/smtp/email"
        try:
            async with httpx.AsyncClient(timeout=self.settings.mail_timeout_seconds, transport=self._transport) as client:
                response = await request_with_retry(
                    client,
                    "POST",
                    url,
                    headers=self._headers(),
                    json=self.build_payload(message),
                    max_attempts=2,
                    retry_statuses={429},
                    metrics_client=self.name,
                )
        except httpx.HTTPError as e:
            raise MailProviderError(self.name, f"request failed: {e}") from e

        if response.status_code >= 400:
            raise MailProviderError(
                self.name,
                f"status {response.status_code}: {response.text[:500]}",
                retryable=response.status_code >= 500 or response.status_code == 429,
            )

        try:
            message_id = response.json().get("messageId")
        except ValueError:
            message_id = None
        message_id = message_id or f"brevo_{uuid.uuid4().hex}"
        logger.info("Brevo mail sent", to=message.to, subject=message.subject, message_id=message_id)
        return SendResult(provider=self.name, message_id=message_id, accepted=list(message.recipients))

    async def check_status(self) -> dict[str, Any]:
        if not self.is_configured():
            return {"status": "error", "message": "BREVO_API_KEY is not configured"}

        url = self.settings.brevo_api_url.rstrip("/") + "/v3/account"
        try:
            async with httpx.AsyncClient(timeout=self.settings.mail_timeout_seconds, transport=self._transport) as client:
                response = await client.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            return {"status": "error", "message": "Brevo status could not be checked", "details": {"error": str(e)}}

        if response.status_code >= 400:
            return {
                "status": "error",
                "message": "Brevo API key is invalid or account info unavailable",
                "details": {"status_code": response.status_code},
            }
        account = response.json()
        return {
            "status": "success",
            "message": "Brevo provider is active",
            "details": {"email": account.get("email"), "company": account.get("companyName")},
        }
