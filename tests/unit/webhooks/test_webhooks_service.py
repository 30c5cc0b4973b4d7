"""Tests for webhook storage and the template/event-type services."""

from datetime import datetime, timezone

import pytest

from src.kernel.errors import BadRequestError, ConflictError, NotFoundError
from src.webhooks.schemas import CreateTemplateRequest, ReceiveWebhookRequest, UpdateTemplateRequest
from src.webhooks.service import WebhooksService, to_naive_utc
from src.webhooks.templates import WebhookEventTypesService, WebhookTemplatesService
from tests.support.factories import create_webhook

pytestmark = pytest.mark.unit


def _template_request(**overrides) -> CreateTemplateRequest:
    values = {
        "event_name": "conversion.settled",
        "channel": "email",
        "subject": "Conversion {{shortReferenceId}} settled",
        "header": "Hello",
        "body": "<p>Bought {{buyAmount:money_amount}} {{buyCurrency}}</p>",
        "table_rows_json": [{"key": "Status", "value": "{{status}}"}],
    }
    values.update(overrides)
    return CreateTemplateRequest(**values)


# =============================================================================
# Webhooks
# =============================================================================


class TestWebhooksService:
    async def test_receive_stores_unsent_webhook(self, db_session):
        request = ReceiveWebhookRequest(
            account_id="acct_1",
            created_at=datetime(2024, 3, 5, 11, 30, tzinfo=timezone.utc),
            data={"status": "SETTLED"},
            id="evt_1",
            name="conversion.settled",
        )

        webhook = await WebhooksService(db_session).receive(request)

        assert webhook.webhook_id == "evt_1"
        assert webhook.mail_sent is False
        assert webhook.created_at == datetime(2024, 3, 5, 11, 30)
        assert webhook.data_json == {"status": "SETTLED"}

    def test_to_naive_utc(self):
        aware = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)

        assert to_naive_utc(aware) == datetime(2024, 3, 5, 12, 0)
        assert to_naive_utc(datetime(2024, 1, 1)) == datetime(2024, 1, 1)

    async def test_find_unsent_respects_limit(self, db_session):
        await create_webhook(db_session, "conversion.settled")
        await create_webhook(db_session, "transfer.new")
        await create_webhook(db_session, "conversion.new", mail_sent=True)

        unsent = await WebhooksService(db_session).find_unsent(limit=1)
        everything = await WebhooksService(db_session).find_unsent(limit=10)

        assert len(unsent) == 1
        assert {webhook.webhook_name for webhook in everything} == {"conversion.settled", "transfer.new"}

    async def test_find_unsent_prefers_least_attempted(self, db_session):
        retried = await create_webhook(db_session, "conversion.settled", mail_attempts=3)
        fresh = await create_webhook(db_session, "transfer.new")
        await create_webhook(db_session, "conversion.new", mail_attempts=10)

        unsent = await WebhooksService(db_session).find_unsent(limit=10, max_attempts=10)

        assert [webhook.id for webhook in unsent] == [fresh.id, retried.id]

    async def test_record_failed_attempt(self, db_session):
        webhook = await create_webhook(db_session)

        updated = await WebhooksService(db_session).record_mail_attempt(webhook, sent=False)

        assert updated.mail_attempts == 1
        assert updated.last_mail_attempt_at is not None
        assert updated.mail_sent is False

    async def test_record_delivered_attempt(self, db_session):
        webhook = await create_webhook(db_session)

        updated = await WebhooksService(db_session).record_mail_attempt(webhook, sent=True)

        assert updated.mail_sent is True
        assert updated.mail_sent_at is not None
        assert updated.mail_attempts == 1

    async def test_parsed_lookup(self, db_session):
        await create_webhook(db_session, account_id="acct_7")

        [parsed] = await WebhooksService(db_session).find_by_account_parsed("acct_7")

        assert parsed.parsed_data["shortReferenceId"] == "C-1"

    async def test_missing_webhook(self, db_session):
        with pytest.raises(NotFoundError):
            await WebhooksService(db_session).get_webhook(404)


# =============================================================================
# Event types
# =============================================================================


class TestEventTypes:
    async def test_create_and_conflict(self, db_session):
        service = WebhookEventTypesService(db_session)
        await service.create_event_type("transfer.new", "New transfer")

        with pytest.raises(ConflictError):
            await service.create_event_type("transfer.new")

    async def test_ensure_is_idempotent(self, db_session):
        service = WebhookEventTypesService(db_session)

        first = await service.ensure("transfer.new")
        second = await service.ensure("transfer.new")

        assert first.id == second.id


# =============================================================================
# Templates
# =============================================================================


class TestTemplates:
    async def test_create_registers_event_type(self, db_session):
        template = await WebhookTemplatesService(db_session).create_template(_template_request())

        assert template.event_type.event_name == "conversion.settled"
        assert template.locale == "en"

    async def test_duplicate_event_channel_locale(self, db_session):
        service = WebhookTemplatesService(db_session)
        await service.create_template(_template_request())

        with pytest.raises(BadRequestError) as exc:
            await service.create_template(_template_request())

        assert exc.value.code == "webhook_template.conflict"

    async def test_other_locale_is_allowed(self, db_session):
        service = WebhookTemplatesService(db_session)
        await service.create_template(_template_request())

        german = await service.create_template(_template_request(locale="de"))

        assert german.locale == "de"

    async def test_update_onto_existing_combination_conflicts(self, db_session):
        service = WebhookTemplatesService(db_session)
        await service.create_template(_template_request())
        sms = await service.create_template(_template_request(channel="sms"))

        with pytest.raises(BadRequestError):
            await service.update_template(sms.id, UpdateTemplateRequest(channel="email"))

    async def test_render_by_event_resolves_placeholders(self, db_session):
        service = WebhookTemplatesService(db_session)
        await service.create_template(_template_request())

        rendered = await service.render_by_event(
            "conversion.settled",
            {"shortReferenceId": "C-9", "buyAmount": 1234.5, "buyCurrency": "EUR", "status": "SETTLED"},
        )

        assert rendered.subject == "Conversion C-9 settled"
        assert "1.234,50 EUR" in rendered.html
        assert "SETTLED" in rendered.html

    async def test_render_by_event_without_template_uses_fallback(self, db_session):
        rendered = await WebhookTemplatesService(db_session).render_by_event("transfer.new", {"status": "NEW"})

        assert rendered.subject == "Webhook Notification: Transfer New"

    async def test_seed_defaults_creates_then_updates(self, db_session):
        service = WebhookTemplatesService(db_session)

        first = await service.seed_defaults()
        second = await service.seed_defaults()

        assert (first.created, first.updated) == (3, 0)
        assert (second.created, second.updated) == (0, 3)

    async def test_paginate_by_event_name(self, db_session):
        service = WebhookTemplatesService(db_session)
        await service.seed_defaults()

        page = await service.paginate_templates(1, 10, event_name="global_account.active")

        assert page.total == 1

    async def test_remove(self, db_session):
        service = WebhookTemplatesService(db_session)
        template = await service.create_template(_template_request())

        await service.remove(template.id)

        assert await service.find_one("conversion.settled", "email") is None
