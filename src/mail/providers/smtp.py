"""SMTP delivery over aiosmtplib."""

from __future__ import annotations

import uuid
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Any

import aiosmtplib
import structlog

from src.mail.message import MailMessage, SendResult
from src.mail.providers.base import MailProvider, MailProviderError

logger = structlog.get_logger()


def build_mime_message(message: MailMessage, sender: str) -> MIMEMultipart:
    mime = MIMEMultipart("mixed")
    mime["From"] = sender
    mime["To"] = ", ".join(message.to)
    if message.cc:
        mime["Cc"] = ", ".join(message.cc)
    mime["Subject"] = message.subject
    mime["Message-ID"] = make_msgid(domain=sender.rsplit("@", 1)[-1])

    body = MIMEMultipart("alternative")
    if message.text:
        body.attach(MIMEText(message.text, "plain", "utf-8"))
    if message.html:
        body.attach(MIMEText(message.html, "html", "utf-8"))
    mime.attach(body)

    for attachment in message.attachments:
        _, _, subtype = attachment.content_type.partition("/")
        part = MIMEApplication(attachment.content, _subtype=subtype or "octet-stream")
        part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
        mime.attach(part)
    return mime


class SmtpProvider(MailProvider):
    name = "smtp"

    def is_configured(self) -> bool:
        return bool(self.settings.smtp_host and self.settings.smtp_user and self.settings.smtp_password)

    def _connection_kwargs(self) -> dict[str, Any]:
        settings = self.settings
        use_tls = bool(settings.smtp_secure) or settings.smtp_port == 465
        return {
            "hostname": settings.smtp_host,
            "port": settings.smtp_port,
            "username": settings.smtp_user,
            "password": settings.smtp_password,
            "use_tls": use_tls,
            "start_tls": bool(settings.smtp_starttls) and not use_tls,
            "timeout": settings.mail_timeout_seconds,
        }

    async def send(self, message: MailMessage) -> SendResult:
        sender = message.sender or self.default_sender()
        mime = build_mime_message(message, sender)
        try:
            errors, response = await aiosmtplib.send(
                mime,
                sender=sender,
                recipients=message.recipients,
                **self._connection_kwargs(),
            )
        except aiosmtplib.SMTPException as e:
            raise MailProviderError(self.name, str(e)) from e
        except OSError as e:
            raise MailProviderError(self.name, f"connection failed: {e}") from e

        rejected = set(errors or {})
        accepted = [address for address in message.recipients if address not in rejected]
        if not accepted:
            raise MailProviderError(self.name, f"all recipients rejected: {response}", retryable=False)

        logger.info("SMTP mail sent", to=message.to, subject=message.subject)
        return SendResult(provider=self.name, message_id=mime["Message-ID"] or str(uuid.uuid4()), accepted=accepted)

    async def check_status(self) -> dict[str, Any]:
        if not self.is_configured():
            return {"status": "error", "message": "SMTP credentials are not configured"}

        kwargs = self._connection_kwargs()
        details = {"host": kwargs["hostname"], "port": kwargs["port"], "secure": kwargs["use_tls"]}
        try:
            async with aiosmtplib.SMTP(
                hostname=kwargs["hostname"],
                port=kwargs["port"],
                use_tls=kwargs["use_tls"],
                start_tls=kwargs["start_tls"],
                timeout=kwargs["timeout"],
            ) as client:
                await client.login(kwargs["username"], kwargs["password"])
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.warning("SMTP status check failed", error=str(e))
            return {"status": "error", "message": "SMTP connection failed", "details": {**details, "error": str(e)}}
        return {"status": "success", "message": "SMTP connection verified", "details": details}
