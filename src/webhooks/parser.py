"""
Per-event parsing of Airwallex webhook payloads.

Each known event maps its raw `data` onto a flat, defaulted structure used
by notification templates; unknown events pass the raw data through.
"""

from __future__ import annotations

from typing import Any, Callable

import structlog

logger = structlog.get_logger()


def _get(data: Any, path: str, default: Any = "") -> Any:
    """Walk a dotted path through nested dicts; falsy values yield `default`."""
    value = data
    for part in path.split("."):
        if not isinstance(value, dict):
            return default
        value = value.get(part)
    return value or default


def _address(data: Any, prefix: str) -> dict[str, Any]:
    return {
        key: _get(data, f"{prefix}.address.{key}")
        for key in ("city", "country_code", "postcode", "state", "street_address")
    }


def parse_payout_transfer_funding_funded(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "amount_beneficiary_receives": data.get("amount_beneficiary_receives"),
        "amount_payer_pays": data.get("amount_payer_pays"),
        "beneficiary": {
            "additional_info": {"personal_email": _get(data, "beneficiary.additional_info.personal_email")},
            "address": _address(data, "beneficiary"),
            "bank_details": {
                key: _get(data, f"beneficiary.bank_details.{key}")
                for key in (
                    "account_currency",
                    "account_name",
                    "bank_country_code",
                    "bank_name",
                    "iban",
                    "swift_code",
                )
            },
            "entity_type": _get(data, "beneficiary.entity_type"),
            "type": _get(data, "beneficiary.type"),
        },
        "beneficiary_id": _get(data, "beneficiary_id"),
        "created_at": _get(data, "created_at"),
        "fee_amount": _get(data, "fee_amount", 0),
        "fee_currency": _get(data, "fee_currency"),
        "fee_paid_by": _get(data, "fee_paid_by"),
        "funding": {"status": _get(data, "funding.status")},
        "id": _get(data, "id"),
        "payer": {
            "additional_info": {
                key: _get(data, f"payer.additional_info.{key}")
                for key in (
                    "business_incorporation_date",
                    "business_registration_number",
                    "business_registration_type",
                )
            },
            "address": _address(data, "payer"),
            "company_name": _get(data, "payer.company_name"),
            "entity_type": _get(data, "payer.entity_type"),
        },
        "reason": _get(data, "reason"),
        "reference": _get(data, "reference"),
        "remarks": _get(data, "remarks"),
        "request_id": _get(data, "request_id"),
        "short_reference_id": _get(data, "short_reference_id"),
        "source_amount": _get(data, "source_amount", 0),
        "source_currency": _get(data, "source_currency"),
        "status": _get(data, "status"),
        "swift_charge_option": _get(data, "swift_charge_option"),
        "transfer_currency": _get(data, "transfer_currency"),
        "transfer_date": _get(data, "transfer_date"),
        "transfer_method": _get(data, "transfer_method"),
        "updated_at": _get(data, "updated_at"),
    }


def parse_connected_account_transfer(data: dict[str, Any]) -> dict[str, Any]:
    parsed = {
        key: _get(data, key)
        for key in ("request_id", "reason", "reference", "destination", "id", "status", "currency")
    }
    parsed.update(
        amount=_get(data, "amount", 0),
        fee=_get(data, "fee", 0),
        created_at=_get(data, "created_at"),
        updated_at=_get(data, "updated_at"),
    )
    return parsed


def parse_conversion(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": _get(data, "id"),
        "status": _get(data, "status"),
        "source_currency": _get(data, "source_currency"),
        "target_currency": _get(data, "target_currency"),
        "source_amount": _get(data, "source_amount", 0),
        "target_amount": _get(data, "target_amount", 0),
        "rate": _get(data, "rate", 0),
        "created_at": _get(data, "created_at"),
        "updated_at": _get(data, "updated_at"),
    }


def parse_conversion_settled(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "shortReferenceId": _get(data, "short_reference_id"),
        "buyCurrency": _get(data, "buy_currency"),
        "buyAmount": _get(data, "buy_amount", 0),
        "sellCurrency": _get(data, "sell_currency"),
        "sellAmount": _get(data, "sell_amount", 0),
        "clientRate": _get(data, "client_rate"),
        "conversionDate": _get(data, "conversion_date"),
        "status": _get(data, "status"),
        "currencyPair": _get(data, "currency_pair"),
    }


def parse_global_account_active(data: dict[str, Any]) -> dict[str, Any]:
    features = _get(data, "data.required_features", [])
    first_feature = features[0] if isinstance(features, list) and features else {}
    return {
        "companyName": _get(data, "data.account_name"),
        "accountType": _get(data, "data.account_type"),
        "accountLocation": _get(data, "data.country_code"),
        "accountStatus": _get(data, "data.status"),
        "airwallexAccount": _get(data, "account_id"),
        "iban": _get(data, "data.iban"),
        "bankName": _get(data, "data.institution.name"),
        "accountCurrency": _get(first_feature, "currency"),
        "activationDate": _get(data, "created_at"),
        "accountNumber": _get(data, "data.account_number"),
        "swiftCode": _get(data, "data.swift_code"),
        "nickName": _get(data, "data.nick_name"),
    }


def parse_transfer(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": _get(data, "id"),
        "status": _get(data, "status"),
        "amount": _get(data, "amount", 0),
        "currency": _get(data, "currency"),
        "source_account": _get(data, "source_account"),
        "destination_account": _get(data, "destination_account"),
        "created_at": _get(data, "created_at"),
        "updated_at": _get(data, "updated_at"),
    }


PARSERS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    "payout.transfer.funding.funded": parse_payout_transfer_funding_funded,
    "connected_account_transfer.new": parse_connected_account_transfer,
    "conversion.new": parse_conversion,
    "conversion.settled": parse_conversion_settled,
    "global_account.active": parse_global_account_active,
    "transfer.new": parse_transfer,
}


def parse_webhook_data(webhook_name: str, data: Any) -> dict[str, Any]:
    parser = PARSERS.get(webhook_name)
    if parser is None:
        return {"raw_data": data, "parsed": False, "message": f"Unknown webhook name: {webhook_name}"}
    try:
        return parser(data)
    except (AttributeError, TypeError, KeyError, IndexError) as e:
        logger.warning("Webhook data could not be parsed", webhook_name=webhook_name, error=str(e))
        return {"raw_data": data, "parsed": False, "error": str(e), "message": "Failed to parse webhook data"}
