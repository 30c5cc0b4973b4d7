"""Mail delivery providers."""

from src.mail.providers.base import MailProvider, MailProviderError
from src.mail.providers.brevo import BrevoProvider
from src.mail.providers.sendgrid import SendGridProvider
from src.mail.providers.smtp import SmtpProvider

__all__ = [
    "BrevoProvider",
    "MailProvider",
    "MailProviderError",
    "SendGridProvider",
    "SmtpProvider",
]
