"""
Webhook Routes.

Provides endpoints for:
- Receiving Airwallex webhooks (public)
- Browsing stored webhooks, raw or parsed
- Triggering the notification mail sweep
- Managing notification templates and event types
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import envelope, paginated, serialize, serialize_many
from src.auth import get_current_user, require_admin
from src.db.client import get_session
from src.kernel.errors import NotFoundError
from src.webhooks.notifier import WebhookMailNotifier
from src.webhooks.schemas import (
    Channel,
    CreateEventTypeRequest,
    CreateTemplateRequest,
    EventTypeResponse,
    PreviewByEventRequest,
    ReceiveWebhookRequest,
    RenderTemplateRequest,
    TemplateResponse,
    UpdateTemplateRequest,
    WebhookResponse,
)
from src.webhooks.service import WebhooksService
from src.webhooks.templates import WebhookEventTypesService, WebhookTemplatesService

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

public_router = APIRouter()
protected_router = APIRouter(dependencies=[Depends(get_current_user)])
templates_router = APIRouter(
    prefix="/templates",
    tags=["Webhook Templates"],
    dependencies=[Depends(get_current_user)],
)
event_types_router = APIRouter(
    prefix="/event-types",
    tags=["Webhook Event Types"],
    dependencies=[Depends(get_current_user)],
)


def get_service(session: AsyncSession = Depends(get_session)) -> WebhooksService:
    return WebhooksService(session)


def get_templates_service(session: AsyncSession = Depends(get_session)) -> WebhookTemplatesService:
    return WebhookTemplatesService(session)


def get_event_types_service(session: AsyncSession = Depends(get_session)) -> WebhookEventTypesService:
    return WebhookEventTypesService(session)


def get_notifier() -> WebhookMailNotifier:
    return WebhookMailNotifier()


# =============================================================================
# Ingestion
# =============================================================================


@public_router.post("/receive", status_code=201)
async def receive_webhook(request: ReceiveWebhookRequest, service: WebhooksService = Depends(get_service)):
    webhook = await service.receive(request)
    return envelope(serialize(WebhookResponse, webhook), "Webhook received successfully")


# =============================================================================
# Stored webhooks
# =============================================================================


@router.get("", dependencies=[Depends(get_current_user)])
async def list_webhooks(service: WebhooksService = Depends(get_service)):
    return serialize_many(WebhookResponse, await service.list_all())


@protected_router.post("/process-unsent", dependencies=[Depends(require_admin)])
async def process_unsent(notifier: WebhookMailNotifier = Depends(get_notifier)):
    """Run one notification sweep now instead of waiting for the scheduler."""
    return envelope(await notifier.process_unsent(), "Unsent webhooks processed")


@protected_router.get("/parsed/all")
async def list_parsed(service: WebhooksService = Depends(get_service)):
    return [item.model_dump(mode="json") for item in await service.list_all_parsed()]


@protected_router.get("/parsed/name/{name}")
async def parsed_by_name(name: str, service: WebhooksService = Depends(get_service)):
    return [item.model_dump(mode="json") for item in await service.find_by_name_parsed(name)]


@protected_router.get("/parsed/account/{account_id}")
async def parsed_by_account(account_id: str, service: WebhooksService = Depends(get_service)):
    return [item.model_dump(mode="json") for item in await service.find_by_account_parsed(account_id)]


@protected_router.get("/parsed/{webhook_id}")
async def get_parsed(webhook_id: int, service: WebhooksService = Depends(get_service)):
    return envelope(await service.get_parsed(webhook_id), "Webhook found")


@protected_router.get("/webhook-id/{webhook_id}")
async def by_webhook_id(webhook_id: str, service: WebhooksService = Depends(get_service)):
    return serialize_many(WebhookResponse, await service.find_by_webhook_id(webhook_id))


@protected_router.get("/account/{account_id}")
async def by_account(account_id: str, service: WebhooksService = Depends(get_service)):
    return serialize_many(WebhookResponse, await service.find_by_account(account_id))


@protected_router.get("/name/{name}")
async def by_name(name: str, service: WebhooksService = Depends(get_service)):
    return serialize_many(WebhookResponse, await service.find_by_name(name))


@protected_router.get("/{webhook_id}")
async def get_webhook(webhook_id: int, service: WebhooksService = Depends(get_service)):
    return envelope(serialize(WebhookResponse, await service.get_webhook(webhook_id)), "Webhook found")


# =============================================================================
# Templates
# =============================================================================


def _template_dict(template) -> dict:
    return TemplateResponse.from_template(template).model_dump(mode="json")


@templates_router.get("")
async def list_templates(service: WebhookTemplatesService = Depends(get_templates_service)):
    return [_template_dict(template) for template in await service.list_all()]


@templates_router.get("/one")
async def find_template(
    event_name: str = Query(..., alias="eventName"),
    channel: Channel = Query("email"),
    locale: str = Query("en"),
    service: WebhookTemplatesService = Depends(get_templates_service),
):
    template = await service.find_one(event_name, channel, locale)
    if template is None:
        raise NotFoundError(message="Template not found")
    return envelope(_template_dict(template), "Template found")


@templates_router.get("/paginated")
async def paginate_templates(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    event_name: str | None = Query(None, alias="eventName"),
    channel: Channel | None = Query(None),
    locale: str | None = Query(None),
    service: WebhookTemplatesService = Depends(get_templates_service),
):
    result = await service.paginate_templates(page, limit, event_name=event_name, channel=channel, locale=locale)
    return result.to_dict(_template_dict)


@templates_router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_template(
    request: CreateTemplateRequest,
    service: WebhookTemplatesService = Depends(get_templates_service),
):
    template = await service.create_template(request)
    return envelope(_template_dict(template), "Template created successfully")


@templates_router.post("/seed", dependencies=[Depends(require_admin)])
async def seed_templates(service: WebhookTemplatesService = Depends(get_templates_service)):
    return envelope(await service.seed_defaults(), "Default templates seeded")


@templates_router.post("/preview/by-event")
async def preview_by_event(
    request: PreviewByEventRequest,
    service: WebhookTemplatesService = Depends(get_templates_service),
):
    rendered = await service.render_by_event(request.event_name, request.data, request.channel, request.locale)
    return envelope(rendered, "Template rendered")


@templates_router.patch("/{template_id}", dependencies=[Depends(require_admin)])
async def update_template(
    template_id: int,
    request: UpdateTemplateRequest,
    service: WebhookTemplatesService = Depends(get_templates_service),
):
    template = await service.update_template(template_id, request)
    return envelope(_template_dict(template), "Template updated successfully")


@templates_router.delete("/{template_id}", dependencies=[Depends(require_admin)])
async def delete_template(template_id: int, service: WebhookTemplatesService = Depends(get_templates_service)):
    await service.remove(template_id)
    return envelope(None, "Template deleted successfully")


@templates_router.post("/{template_id}/render")
async def render_template(
    template_id: int,
    request: RenderTemplateRequest,
    service: WebhookTemplatesService = Depends(get_templates_service),
):
    return envelope(await service.render_by_id(template_id, request.data), "Template rendered")


# =============================================================================
# Event types
# =============================================================================


@event_types_router.get("")
async def list_event_types(service: WebhookEventTypesService = Depends(get_event_types_service)):
    return serialize_many(EventTypeResponse, await service.list_event_types())


@event_types_router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_event_type(
    request: CreateEventTypeRequest,
    service: WebhookEventTypesService = Depends(get_event_types_service),
):
    event_type = await service.create_event_type(request.event_name, request.description)
    return envelope(serialize(EventTypeResponse, event_type), "Event type created successfully")


@event_types_router.delete("/{event_type_id}", dependencies=[Depends(require_admin)])
async def delete_event_type(
    event_type_id: int,
    service: WebhookEventTypesService = Depends(get_event_types_service),
):
    await service.delete_event_type(event_type_id)
    return envelope(None, "Event type deleted successfully")


# Literal prefixes first so `/{webhook_id}` does not shadow them
router.include_router(public_router)
router.include_router(templates_router)
router.include_router(event_types_router)
router.include_router(protected_router)
