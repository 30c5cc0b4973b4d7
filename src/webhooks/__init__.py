"""
Webhooks Module

Airwallex webhook ingestion, payload parsing, notification templates and
the mail notifier sweep.
"""

from src.webhooks.notifier import (
    WebhookMailNotifier,
    shutdown_webhook_mail_scheduler,
    start_webhook_mail_scheduler,
)
from src.webhooks.parser import parse_webhook_data
from src.webhooks.service import WebhooksService
from src.webhooks.templates import WebhookEventTypesService, WebhookTemplatesService

__all__ = [
    "WebhookEventTypesService",
    "WebhookMailNotifier",
    "WebhookTemplatesService",
    "WebhooksService",
    "parse_webhook_data",
    "shutdown_webhook_mail_scheduler",
    "start_webhook_mail_scheduler",
]
