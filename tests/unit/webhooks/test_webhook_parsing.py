"""Tests for webhook payload parsing and template placeholder rendering."""

import pytest

from src.webhooks.parser import parse_webhook_data
from src.webhooks.templates import (
    event_display_name,
    fallback_rows,
    format_money_amount,
    render_fallback,
    resolve_placeholders,
)

pytestmark = pytest.mark.unit


# =============================================================================
# Parser
# =============================================================================


class TestParseWebhookData:
    def test_conversion_settled(self):
        parsed = parse_webhook_data(
            "conversion.settled",
            {
                "short_reference_id": "C-1",
                "buy_currency": "EUR",
                "buy_amount": 100,
                "sell_currency": "USD",
                "status": "SETTLED",
            },
        )

        assert parsed["shortReferenceId"] == "C-1"
        assert parsed["buyAmount"] == 100
        assert parsed["sellAmount"] == 0
        assert parsed["clientRate"] == ""

    def test_global_account_active_reads_nested_fields(self):
        parsed = parse_webhook_data(
            "global_account.active",
            {
                "account_id": "acct_1",
                "created_at": "2024-03-05T10:30:00Z",
                "data": {
                    "account_name": "Acme GmbH",
                    "iban": "DE89370400440532013000",
                    "institution": {"name": "Bank AG"},
                    "required_features": [{"currency": "EUR"}],
                },
            },
        )

        assert parsed["companyName"] == "Acme GmbH"
        assert parsed["bankName"] == "Bank AG"
        assert parsed["accountCurrency"] == "EUR"
        assert parsed["airwallexAccount"] == "acct_1"
        assert parsed["swiftCode"] == ""

    def test_payout_funded_keeps_amount_objects(self):
        amount = {"amount": 250.5, "currency": "EUR"}

        parsed = parse_webhook_data("payout.transfer.funding.funded", {"amount_payer_pays": amount})

        assert parsed["amount_payer_pays"] == amount
        assert parsed["beneficiary"]["address"]["city"] == ""

    def test_unknown_event_passes_raw_data(self):
        data = {"foo": "bar"}

        parsed = parse_webhook_data("card.created", data)

        assert parsed == {"raw_data": data, "parsed": False, "message": "Unknown webhook name: card.created"}

    def test_malformed_data_is_reported(self):
        parsed = parse_webhook_data("payout.transfer.funding.funded", ["not", "a", "dict"])

        assert parsed["parsed"] is False
        assert parsed["message"] == "Failed to parse webhook data"


# =============================================================================
# Placeholders
# =============================================================================


class TestPlaceholders:
    def test_money_amount_uses_european_notation(self):
        assert format_money_amount(1234.5) == "1.234,50"
        assert format_money_amount("1000000") == "1.000.000,00"
        assert format_money_amount("n/a") == "n/a"
        assert format_money_amount(None) == ""

    def test_nested_paths_and_money_suffix(self):
        data = {"amount": {"value": 1500, "currency": "EUR"}, "items": [{"id": "x"}]}

        text = resolve_placeholders("{{amount.value:money_amount}} {{amount.currency}} {{items.0.id}}", data)

        assert text == "1.500,00 EUR x"

    def test_missing_values_render_empty(self):
        assert resolve_placeholders("[{{missing.path}}]", {}) == "[]"

    def test_html_escaping_is_optional(self):
        data = {"name": "<b>Ana</b>"}

        assert resolve_placeholders("{{name}}", data) == "&lt;b&gt;Ana&lt;/b&gt;"
        assert resolve_placeholders("{{name}}", data, html=False) == "<b>Ana</b>"

    def test_integral_floats_drop_decimals(self):
        assert resolve_placeholders("{{n}} {{flag}}", {"n": 3.0, "flag": True}) == "3 true"


# =============================================================================
# Fallback rendering
# =============================================================================


class TestFallback:
    def test_event_display_name(self):
        assert event_display_name("payout.transfer.funding.funded") == "Payout Transfer Funding Funded"

    def test_rows_pick_common_fields(self):
        rows = dict(
            fallback_rows(
                {
                    "status": "PAID",
                    "amount_payer_pays": {"amount": 1234.5, "currency": "EUR"},
                    "short_reference_id": "P-1",
                    "created_at": "2024-03-05T10:30:00Z",
                    "accountId": "acct_1",
                }
            )
        )

        assert rows["Status"] == "PAID"
        assert rows["Amount"] == "1.234,50 EUR"
        assert rows["Reference ID"] == "P-1"
        assert rows["Created At"] == "March 5, 2024"
        assert rows["Account ID"] == "acct_1"

    def test_render_fallback_subject(self):
        rendered = render_fallback("conversion.settled", {"status": "SETTLED"})

        assert rendered.subject == "Webhook Notification: Conversion Settled"
        assert "SETTLED" in rendered.html

    def test_render_fallback_without_known_fields(self):
        rendered = render_fallback("card.created", {"foo": "bar"})

        assert "Card Created" in rendered.html
        assert "Webhook data received successfully" in rendered.html
