"""Webhook, event type and template request/response models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Channel = Literal["email", "sms", "web", "slack", "internal"]


class ReceiveWebhookRequest(BaseModel):
    """Airwallex webhook envelope."""

    account_id: str = Field(..., min_length=1)
    created_at: datetime
    data: dict[str, Any]
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class WebhookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: str
    created_at: datetime
    data_json: dict[str, Any]
    webhook_id: str
    webhook_name: str
    received_at: datetime
    updated_at: datetime
    mail_sent: bool
    mail_sent_at: datetime | None
    mail_attempts: int = 0
    last_mail_attempt_at: datetime | None = None


class ParsedWebhookResponse(WebhookResponse):
    parsed_data: dict[str, Any]


# =============================================================================
# Event types
# =============================================================================


class CreateEventTypeRequest(BaseModel):
    event_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=500)


class EventTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_name: str
    description: str | None
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Templates
# =============================================================================


class TableRow(BaseModel):
    key: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)


class CreateTemplateRequest(BaseModel):
    event_name: str = Field(..., min_length=1)
    channel: Channel
    locale: str = "en"
    subject: str | None = None
    header: str | None = None
    subtext1: str | None = None
    subtext2: str | None = None
    main_color: str | None = None
    body: str = Field(..., min_length=1)
    is_active: bool = True
    auto_send_mail: bool = False
    table_rows_json: list[TableRow] | None = None


class UpdateTemplateRequest(BaseModel):
    event_name: str | None = None
    channel: Channel | None = None
    locale: str | None = None
    subject: str | None = None
    header: str | None = None
    subtext1: str | None = None
    subtext2: str | None = None
    main_color: str | None = None
    body: str | None = None
    is_active: bool | None = None
    auto_send_mail: bool | None = None
    table_rows_json: list[TableRow] | None = None


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_type_id: int
    event_name: str | None = None
    channel: str
    locale: str
    subject: str | None
    header: str | None
    subtext1: str | None
    subtext2: str | None
    main_color: str | None
    body: str
    table_rows_json: list[dict[str, Any]] | None
    is_active: bool
    auto_send_mail: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_template(cls, template) -> "TemplateResponse":
        response = cls.model_validate(template)
        if template.event_type is not None:
            response.event_name = template.event_type.event_name
        return response


class RenderTemplateRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class PreviewByEventRequest(BaseModel):
    event_name: str = Field(..., min_length=1)
    channel: Channel = "email"
    locale: str = "en"
    data: dict[str, Any] = Field(default_factory=dict)


class RenderedTemplate(BaseModel):
    subject: str
    html: str


class TemplateSeedResult(BaseModel):
    created: int = 0
    updated: int = 0
