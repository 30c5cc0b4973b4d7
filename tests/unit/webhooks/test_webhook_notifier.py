"""Tests for the unsent-webhook mail sweep."""

from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.db.models import Base, Webhook
from src.mail.message import SendResult
from src.mail.service import MailDeliveryError
from src.webhooks.notifier import WebhookMailNotifier, render_admin_fallback, template_data
from tests.support.factories import create_company, create_user, create_webhook

pytestmark = pytest.mark.unit


def _settings(**overrides) -> SimpleNamespace:
    values = {
        "webhook_mail_batch_size": 10,
        "webhook_mail_max_attempts": 10,
        "webhook_admin_email": "admin@magna-porta.com",
        "webhook_admin_notifications": False,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def make_notifier(session_factory, mock_mail_service):
    def factory(**settings) -> WebhookMailNotifier:
        return WebhookMailNotifier(
            settings=_settings(**settings),
            mail_service=mock_mail_service,
            session_factory=session_factory,
        )

    return factory


@pytest_asyncio.fixture
async def committing_factory():
    """Session factory that commits or rolls back per block, like `get_db_session`."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    sessions = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def factory():
        session = sessions()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    yield factory
    await engine.dispose()


async def _reload(db_session, webhook_id: int) -> Webhook:
    return await db_session.get(Webhook, webhook_id)


class TestProcessUnsent:
    async def test_nothing_to_do(self, make_notifier, db_session):
        assert await make_notifier().process_unsent() == {
            "processed": 0,
            "sent": 0,
            "fallback": 0,
            "failed": 0,
            "skipped": 0,
        }

    async def test_mails_active_company_users(self, make_notifier, db_session, mock_mail_service):
        company = await create_company(db_session, airwallex_account_id="acct_1")
        await create_user(db_session, company, "active@example.com")
        await create_user(db_session, company, "inactive@example.com", is_active=False)
        webhook = await create_webhook(db_session, account_id="acct_1")
        webhook_id = webhook.id
        db_session.expunge_all()

        summary = await make_notifier().process_unsent()

        assert summary["sent"] == 1
        recipients, subject, html = mock_mail_service.send_html_mail.await_args.args
        assert recipients == ["active@example.com"]
        assert subject == "Webhook Notification: Conversion Settled"
        assert "C-1" in html
        assert (await _reload(db_session, webhook_id)).mail_sent is True

    async def test_admin_report_when_enabled(self, make_notifier, db_session, mock_mail_service):
        company = await create_company(db_session, airwallex_account_id="acct_1")
        await create_user(db_session, company, "active@example.com")
        await create_webhook(db_session, account_id="acct_1")
        db_session.expunge_all()

        await make_notifier(webhook_admin_notifications=True).process_unsent()

        assert mock_mail_service.send_html_mail.await_count == 2
        admin_call = mock_mail_service.send_html_mail.await_args_list[1]
        assert admin_call.args[0] == "admin@magna-porta.com"
        assert admin_call.args[1].startswith("[INFO] Webhook conversion.settled")

    async def test_unknown_company_goes_to_admin(self, make_notifier, db_session, mock_mail_service):
        webhook = await create_webhook(db_session, account_id="acct_missing")
        webhook_id = webhook.id
        db_session.expunge_all()

        summary = await make_notifier().process_unsent()

        assert summary["fallback"] == 1
        to, subject, _ = mock_mail_service.send_html_mail.await_args.args
        assert to == "admin@magna-porta.com"
        assert subject == "[FALLBACK] New Webhook: conversion.settled - Company not found"
        assert (await _reload(db_session, webhook_id)).mail_sent is True

    async def test_company_without_active_users_goes_to_admin(self, make_notifier, db_session, mock_mail_service):
        company = await create_company(db_session, airwallex_account_id="acct_1")
        await create_user(db_session, company, "gone@example.com", is_active=False)
        await create_webhook(db_session, account_id="acct_1")
        db_session.expunge_all()

        summary = await make_notifier().process_unsent()

        assert summary["fallback"] == 1
        _, subject, _ = mock_mail_service.send_html_mail.await_args.args
        assert subject.endswith("No active users")

    async def test_no_admin_address_leaves_webhook_unsent(self, make_notifier, db_session, mock_mail_service):
        webhook = await create_webhook(db_session, account_id="acct_missing")
        webhook_id = webhook.id
        db_session.expunge_all()

        summary = await make_notifier(webhook_admin_email=None).process_unsent()

        assert summary["skipped"] == 1
        mock_mail_service.send_html_mail.assert_not_awaited()
        assert (await _reload(db_session, webhook_id)).mail_sent is False

    async def test_delivery_failure_is_retried_next_sweep(self, make_notifier, db_session, mock_mail_service):
        company = await create_company(db_session, airwallex_account_id="acct_1")
        await create_user(db_session, company, "active@example.com")
        webhook = await create_webhook(db_session, account_id="acct_1")
        webhook_id = webhook.id
        db_session.expunge_all()
        mock_mail_service.send_html_mail.side_effect = MailDeliveryError([{"provider": "smtp", "error": "down"}])

        summary = await make_notifier().process_unsent()

        assert summary == {"processed": 1, "sent": 0, "fallback": 0, "failed": 1, "skipped": 0}
        reloaded = await _reload(db_session, webhook_id)
        assert reloaded.mail_sent is False
        assert reloaded.mail_attempts == 1

    async def test_already_sent_webhooks_are_ignored(self, make_notifier, db_session, mock_mail_service):
        await create_webhook(db_session, mail_sent=True)

        summary = await make_notifier().process_unsent()

        assert summary["processed"] == 0


class TestSweepProgress:
    async def test_skipped_webhooks_do_not_block_newer_ones(self, make_notifier, db_session, mock_mail_service):
        await create_webhook(db_session, "conversion.new", account_id="acct_missing")
        await create_webhook(db_session, "transfer.new", account_id="acct_missing")
        company = await create_company(db_session, airwallex_account_id="acct_1")
        await create_user(db_session, company, "active@example.com")
        webhook = await create_webhook(db_session, account_id="acct_1")
        webhook_id = webhook.id
        db_session.expunge_all()
        notifier = make_notifier(webhook_mail_batch_size=2, webhook_admin_email=None)

        first = await notifier.process_unsent()
        second = await notifier.process_unsent()

        assert first["skipped"] == 2
        assert second["sent"] == 1
        assert mock_mail_service.send_html_mail.await_args.args[0] == ["active@example.com"]
        assert (await _reload(db_session, webhook_id)).mail_sent is True

    async def test_exhausted_webhooks_are_left_alone(self, make_notifier, db_session, mock_mail_service):
        await create_webhook(db_session, account_id="acct_missing", mail_attempts=3)
        db_session.expunge_all()

        summary = await make_notifier(webhook_mail_max_attempts=3).process_unsent()

        assert summary["processed"] == 0
        mock_mail_service.send_html_mail.assert_not_awaited()

    async def test_skipped_attempt_is_counted(self, make_notifier, db_session):
        webhook = await create_webhook(db_session, account_id="acct_missing")
        webhook_id = webhook.id
        db_session.expunge_all()

        await make_notifier(webhook_admin_email=None).process_unsent()

        reloaded = await _reload(db_session, webhook_id)
        assert reloaded.mail_attempts == 1
        assert reloaded.last_mail_attempt_at is not None

    async def test_crash_keeps_earlier_deliveries_committed(self, committing_factory, mock_mail_service):
        async with committing_factory() as session:
            company = await create_company(session, airwallex_account_id="acct_1")
            await create_user(session, company, "active@example.com")
            delivered = await create_webhook(session, "conversion.settled", account_id="acct_1")
            crashed = await create_webhook(session, "transfer.new", account_id="acct_1")
            delivered_id, crashed_id = delivered.id, crashed.id
        mock_mail_service.send_html_mail.side_effect = [
            SendResult(provider="smtp", message_id="msg_1", accepted=["active@example.com"]),
            RuntimeError("renderer bug"),
        ]
        notifier = WebhookMailNotifier(
            settings=_settings(),
            mail_service=mock_mail_service,
            session_factory=committing_factory,
        )

        summary = await notifier.process_unsent()

        assert summary == {"processed": 2, "sent": 1, "fallback": 0, "failed": 1, "skipped": 0}
        async with committing_factory() as session:
            assert (await session.get(Webhook, delivered_id)).mail_sent is True
            crashed = await session.get(Webhook, crashed_id)
            assert crashed.mail_sent is False
            assert crashed.mail_attempts == 1


class TestRendering:
    async def test_template_data_merges_raw_and_parsed(self, db_session):
        webhook = await create_webhook(db_session, account_id="acct_1")

        data = template_data(webhook)

        assert data["short_reference_id"] == "C-1"
        assert data["shortReferenceId"] == "C-1"
        assert data["accountId"] == "acct_1"

    async def test_admin_fallback_escapes_payload(self, db_session):
        webhook = await create_webhook(db_session, data={"note": "<script>x</script>"})

        subject, html = render_admin_fallback(webhook, "company_not_found", None)

        assert subject == "[FALLBACK] New Webhook: conversion.settled - Company not found"
        assert "<script>x</script>" not in html
        assert "No company is linked" in html
