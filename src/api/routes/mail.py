"""
Mail Routes.

Admin-only endpoints to send mail through the configured providers and to
inspect their status.
"""

import base64
import binascii
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from src.api.responses import envelope
from src.auth import require_admin
from src.kernel.errors import BadRequestError, ValidationError
from src.mail import MailAttachment, MailMessage, MailService, get_mail_service

router = APIRouter(prefix="/mail", tags=["Mail"], dependencies=[Depends(require_admin)])


def get_service() -> MailService:
    return get_mail_service()


# =============================================================================
# Request Models
# =============================================================================


class AttachmentInput(BaseModel):
    filename: str = Field(..., min_length=1)
    content: str = Field(..., description="Base64 encoded file content")
    content_type: str = "application/octet-stream"


class RecipientsRequest(BaseModel):
    """Base for requests whose `to` may be a single address or a list."""

    to: list[str] = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)

    @field_validator("to", mode="before")
    @classmethod
    def split_recipients(cls, value):
        return [value] if isinstance(value, str) else value


class SendMailRequest(RecipientsRequest):
    text: str | None = None
    html: str | None = None
    sender: str | None = Field(None, alias="from")
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    attachments: list[AttachmentInput] = Field(default_factory=list)

    @field_validator("cc", "bcc", mode="before")
    @classmethod
    def split_copies(cls, value):
        return [value] if isinstance(value, str) else value


class SendTextRequest(RecipientsRequest):
    text: str = Field(..., min_length=1)


class SendHtmlRequest(RecipientsRequest):
    html: str = Field(..., min_length=1)


class SendTemplateRequest(RecipientsRequest):
    template: str = Field(..., min_length=1)
    variables: dict[str, Any] = Field(default_factory=dict)


def _decode_attachment(attachment: AttachmentInput) -> MailAttachment:
    try:
        content = base64.b64decode(attachment.content, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(
            message=f"Attachment '{attachment.filename}' is not valid base64",
            code="mail.invalid_attachment",
        )
    return MailAttachment(filename=attachment.filename, content=content, content_type=attachment.content_type)


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/send")
async def send_mail(request: SendMailRequest, service: MailService = Depends(get_service)):
    if not request.text and not request.html:
        raise BadRequestError(message="Either text or html content is required", code="mail.empty_body")
    message = MailMessage(
        to=request.to,
        subject=request.subject,
        text=request.text,
        html=request.html,
        sender=request.sender,
        cc=request.cc,
        bcc=request.bcc,
        attachments=[_decode_attachment(attachment) for attachment in request.attachments],
    )
    result = await service.send_mail(message)
    return envelope(result.to_dict(), "Mail sent successfully")


@router.post("/send-text")
async def send_text_mail(request: SendTextRequest, service: MailService = Depends(get_service)):
    result = await service.send_text_mail(request.to, request.subject, request.text)
    return envelope(result.to_dict(), "Mail sent successfully")


@router.post("/send-html")
async def send_html_mail(request: SendHtmlRequest, service: MailService = Depends(get_service)):
    result = await service.send_html_mail(request.to, request.subject, request.html)
    return envelope(result.to_dict(), "Mail sent successfully")


@router.post("/send-template")
async def send_template_mail(request: SendTemplateRequest, service: MailService = Depends(get_service)):
    result = await service.send_template_mail(request.to, request.subject, request.template, request.variables)
    return envelope(result.to_dict(), "Mail sent successfully")


@router.post("/send-test")
async def send_test_mail(service: MailService = Depends(get_service)):
    result = await service.send_test_mail()
    return envelope(result.to_dict(), "Test mail sent successfully")


@router.get("/status")
async def mail_status(service: MailService = Depends(get_service)):
    return await service.check_status()
