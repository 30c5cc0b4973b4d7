"""Webhook persistence and queries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog

from src.db.crud import BaseCrudService
from src.db.models import Webhook
from src.monitoring import get_metrics
from src.webhooks.parser import parse_webhook_data
from src.webhooks.schemas import ParsedWebhookResponse, ReceiveWebhookRequest, WebhookResponse

logger = structlog.get_logger()


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def with_parsed_data(webhook: Webhook) -> ParsedWebhookResponse:
    base = WebhookResponse.model_validate(webhook).model_dump()
    return ParsedWebhookResponse(**base, parsed_data=parse_webhook_data(webhook.webhook_name, webhook.data_json))


class WebhooksService(BaseCrudService[Webhook]):
    model = Webhook
    entity_name = "Webhook"

    _newest_first = (Webhook.received_at.desc(), Webhook.id.desc())

    async def receive(self, request: ReceiveWebhookRequest) -> Webhook:
        webhook = await self.create(
            account_id=request.account_id,
            created_at=to_naive_utc(request.created_at),
            data_json=request.data,
            webhook_id=request.id,
            webhook_name=request.name,
            mail_sent=False,
        )
        get_metrics().track_webhook_received(webhook.webhook_name)
        logger.info(
            "Webhook received",
            webhook_id=webhook.webhook_id,
            webhook_name=webhook.webhook_name,
            account_id=webhook.account_id,
        )
        return webhook

    async def list_all(self) -> list[Webhook]:
        return await self.list(order_by=self._newest_first)

    async def get_webhook(self, webhook_id: int) -> Webhook:
        return await self.get_or_404(webhook_id)

    async def find_by_webhook_id(self, webhook_id: str) -> list[Webhook]:
        return await self.list(Webhook.webhook_id == webhook_id, order_by=self._newest_first)

    async def find_by_account(self, account_id: str) -> list[Webhook]:
        return await self.list(Webhook.account_id == account_id, order_by=self._newest_first)

    async def find_by_name(self, name: str) -> list[Webhook]:
        return await self.list(Webhook.webhook_name == name, order_by=self._newest_first)

    # Parsed variants

    async def list_all_parsed(self) -> list[ParsedWebhookResponse]:
        return [with_parsed_data(webhook) for webhook in await self.list_all()]

    async def get_parsed(self, webhook_id: int) -> ParsedWebhookResponse:
        return with_parsed_data(await self.get_webhook(webhook_id))

    async def find_by_name_parsed(self, name: str) -> list[ParsedWebhookResponse]:
        return [with_parsed_data(webhook) for webhook in await self.find_by_name(name)]

    async def find_by_account_parsed(self, account_id: str) -> list[ParsedWebhookResponse]:
        return [with_parsed_data(webhook) for webhook in await self.find_by_account(account_id)]

    # Notifier support

    async def find_unsent(self, limit: int, max_attempts: int | None = None) -> list[Webhook]:
        """Unsent webhooks, least-attempted first, then oldest first."""
        query = self.base_query().where(Webhook.mail_sent.is_(False))
        if max_attempts is not None:
            query = query.where(Webhook.mail_attempts < max_attempts)
        result = await self.session.execute(
            query.order_by(Webhook.mail_attempts.asc(), Webhook.received_at.asc(), Webhook.id.asc()).limit(limit)
        )
        return list(result.scalars().all())

    async def record_mail_attempt(self, webhook: Webhook, *, sent: bool) -> Webhook:
        now = datetime.utcnow()
        values: dict[str, Any] = {
            "mail_attempts": (webhook.mail_attempts or 0) + 1,
            "last_mail_attempt_at": now,
        }
        if sent:
            values.update(mail_sent=True, mail_sent_at=now)
        return await self.update(webhook, values)
