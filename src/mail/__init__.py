"""
Mail Module

Outbound email over SMTP, SendGrid and Brevo with provider fallback.
"""

from src.mail.message import MailAttachment, MailMessage, SendResult
from src.mail.service import MailDeliveryError, MailService, get_mail_service

__all__ = [
    "MailAttachment",
    "MailDeliveryError",
    "MailMessage",
    "MailService",
    "SendResult",
    "get_mail_service",
]
