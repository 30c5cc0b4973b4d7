"""SendGrid v3 mail send over httpx."""

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

# Transactional headers carried on every SendGrid message
MAIL_HEADERS = {
    "X-Mailer": "Magna Porta API",
    "X-Priority": "3",
    "Importance": "Normal",
    "X-Campaign": "transactional",
}


class SendGridProvider(MailProvider):
    name = "sendgrid"

    def __init__(self, settings, *, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(settings)
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.settings.sendgrid_api_key)

    def default_sender(self) -> str:
        return self.settings.sendgrid_from_email or self.settings.mail_from

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.sendgrid_api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, message: MailMessage) -> dict[str, Any]:
        personalization: dict[str, Any] = {"to": [{"email": address} for address in message.to]}
        if message.cc:
            personalization["cc"] = [{"email": address} for address in message.cc]
        if message.bcc:
            personalization["bcc"] = [{"email": address} for address in message.bcc]

        content = []
        if message.text:
            content.append({"type": "text/plain", "value": message.text})
        if message.html:
            content.append({"type": "text/html", "value": message.html})

        payload: dict[str, Any] = {
            "personalizations": [personalization],
            "from": {"email": message.sender or self.default_sender(), "name": self.settings.sendgrid_sender_name},
            "subject": message.subject,
            "content": content,
            "headers": MAIL_HEADERS,
        }
        if message.attachments:
            payload["attachments"] = [
                {
                    "filename": attachment.filename,
                    "content": base64.b64encode(attachment.content).decode("ascii"),
                    "type": attachment.content_type,
                    "disposition": "attachment",
                }
                for attachment in message.attachments
            ]
        return payload

    async def send(self, message: MailMessage) -> SendResult:
        url = self.settings.sendgrid_api_url.rstrip("/") + "/v3/mail/send"
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

        message_id = response.headers.get("x-message-id") or f"sg_{uuid.uuid4().hex}"
        logger.info("SendGrid mail sent", to=message.to, subject=message.subject, message_id=message_id)
        return SendResult(provider=self.name, message_id=message_id, accepted=list(message.recipients))

    async def check_status(self) -> dict[str, Any]:
        if not self.is_configured():
            return {"status": "error", "message": "SENDGRID_API_KEY is not configured"}

        url = self.settings.sendgrid_api_url.rstrip("/") + "/v3/user/profile"
        try:
            async with httpx.AsyncClient(timeout=self.settings.mail_timeout_seconds, transport=self._transport) as client:
                response = await client.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            return {"status": "error", "message": "SendGrid status could not be checked", "details": {"error": str(e)}}

        if response.status_code >= 400:
            return {
                "status": "error",
                "message": "SendGrid API key is invalid",
                "details": {"status_code": response.status_code},
            }
        return {"status": "success", "message": "SendGrid provider is active", "details": {"from": self.default_sender()}}
