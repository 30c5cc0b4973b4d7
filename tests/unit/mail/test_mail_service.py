"""Tests for MailService provider ordering, retries and fallback."""

from types import SimpleNamespace

import pytest

from src.mail.message import MailMessage, SendResult
from src.mail.providers import MailProvider, MailProviderError
from src.mail.service import MailDeliveryError, MailService, substitute_variables
from src.mail.templates import PasswordResetData, TransferNotificationData, WelcomeEmailData

pytestmark = pytest.mark.unit


class FakeProvider(MailProvider):
    """Fails `failures` times before delivering."""

    def __init__(self, name: str, *, configured: bool = True, failures: int = 0, retryable: bool = True):
        super().__init__(SimpleNamespace(mail_from="noreply@example.com"))
        self.name = name
        self.configured = configured
        self.failures = failures
        self.retryable = retryable
        self.sent: list[MailMessage] = []
        self.attempts = 0

    def is_configured(self) -> bool:
        return self.configured

    async def send(self, message: MailMessage) -> SendResult:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise MailProviderError(self.name, "boom", retryable=self.retryable)
        self.sent.append(message)
        return SendResult(provider=self.name, message_id=f"{self.name}_1", accepted=message.recipients)

    async def check_status(self):
        return {"status": "success" if self.configured else "error", "message": self.name}


def _settings(**overrides) -> SimpleNamespace:
    values = {
        "mail_provider": "smtp",
        "mail_max_attempts": 3,
        "mail_backoff_base_seconds": 0,
        "test_mail_to": "ops@example.com",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _service(*providers: FakeProvider, **settings) -> MailService:
    return MailService(_settings(**settings), providers={provider.name: provider for provider in providers})


class TestSubstituteVariables:
    def test_known_keys_are_replaced(self):
        assert substitute_variables("Hi {{ name }}, {{amount}}", {"name": "Ana", "amount": 10}) == "Hi Ana, 10"

    def test_unknown_keys_are_left(self):
        assert substitute_variables("Hi {{name}}", {}) == "Hi {{name}}"


class TestProviderOrder:
    def test_primary_first_then_configured_others(self):
        smtp = FakeProvider("smtp")
        sendgrid = FakeProvider("sendgrid")
        brevo = FakeProvider("brevo", configured=False)

        order = _service(smtp, sendgrid, brevo, mail_provider="sendgrid").provider_order()

        assert [provider.name for provider in order] == ["sendgrid", "smtp"]

    def test_unconfigured_primary_is_skipped(self):
        order = _service(FakeProvider("smtp", configured=False), FakeProvider("brevo")).provider_order()

        assert [provider.name for provider in order] == ["brevo"]


class TestSendMail:
    async def test_retries_then_succeeds(self):
        smtp = FakeProvider("smtp", failures=2)

        result = await _service(smtp).send_text_mail("a@example.com", "Hi", "Body")

        assert result.provider == "smtp"
        assert smtp.attempts == 3

    async def test_falls_back_after_exhausting_attempts(self):
        smtp = FakeProvider("smtp", failures=5)
        sendgrid = FakeProvider("sendgrid")

        result = await _service(smtp, sendgrid, mail_max_attempts=2).send_html_mail(["a@example.com"], "Hi", "<p>x</p>")

        assert result.provider == "sendgrid"
        assert smtp.attempts == 2

    async def test_non_retryable_error_moves_on_immediately(self):
        smtp = FakeProvider("smtp", failures=5, retryable=False)
        brevo = FakeProvider("brevo")

        result = await _service(smtp, brevo).send_text_mail("a@example.com", "Hi", "Body")

        assert result.provider == "brevo"
        assert smtp.attempts == 1

    async def test_all_providers_failing(self):
        service = _service(FakeProvider("smtp", failures=9), FakeProvider("brevo", failures=9), mail_max_attempts=1)

        with pytest.raises(MailDeliveryError) as exc:
            await service.send_text_mail("a@example.com", "Hi", "Body")

        assert exc.value.code == "mail.delivery_failed"
        assert [failure["provider"] for failure in exc.value.failures] == ["smtp", "brevo"]

    async def test_no_configured_provider(self):
        with pytest.raises(MailDeliveryError):
            await _service(FakeProvider("smtp", configured=False)).send_text_mail("a@example.com", "Hi", "Body")

    async def test_template_mail_substitutes(self):
        smtp = FakeProvider("smtp")

        await _service(smtp).send_template_mail("a@example.com", "Hi", "<p>{{name}}</p>", {"name": "Ana"})

        assert smtp.sent[0].html == "<p>Ana</p>"

    async def test_test_mail_goes_to_configured_address(self):
        smtp = FakeProvider("smtp")

        await _service(smtp).send_test_mail()

        assert smtp.sent[0].to == ["ops@example.com"]
        assert smtp.sent[0].subject == "Test Mail - Magna Porta API"

    async def test_welcome_and_reset_helpers(self):
        smtp = FakeProvider("smtp")
        service = _service(smtp)

        await service.send_welcome_mail("a@example.com", WelcomeEmailData(user_name="Ana", company_name="Acme"))
        await service.send_password_reset_mail(
            "a@example.com",
            PasswordResetData(user_name="Ana", reset_link="https://app.example.com/reset?t=1", expiry_time="1 hour"),
        )

        assert [message.subject for message in smtp.sent] == [
            "Welcome to Magna Porta",
            "Reset your Magna Porta password",
        ]
        assert "https://app.example.com/reset?t=1" in smtp.sent[1].html

    async def test_transfer_notification_helper(self):
        smtp = FakeProvider("smtp")
        data = TransferNotificationData(
            recipient_name="Jane Doe",
            transfer_amount="1,250.00",
            currency="EUR",
            transfer_date="2024-03-05",
            transfer_method="SEPA",
            transfer_id="T-1",
            reference="INV-7",
            iban="DE89370400440532013000",
            business_days="1-2",
        )

        await _service(smtp).send_transfer_notification("a@example.com", data)

        assert smtp.sent[0].subject == "Your transfer to Jane Doe is on its way"
        assert "DE89370400440532013000" not in smtp.sent[0].html


class TestCheckStatus:
    async def test_reports_every_provider(self):
        status = await _service(FakeProvider("smtp"), FakeProvider("brevo", configured=False)).check_status()

        assert status["status"] == "success"
        assert status["details"]["order"] == ["smtp"]
        assert set(status["details"]["providers"]) == {"smtp", "brevo"}


def test_message_requires_body():
    with pytest.raises(ValueError):
        MailMessage(to=["a@example.com"], subject="Hi")
