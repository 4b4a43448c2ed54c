"""Webhook management and event dispatch API."""

from fastapi import APIRouter, Depends, HTTPException, Request

from app.schemas import (
    DeliveryAttempt,
    Endpoint,
    EndpointOut,
    EventKind,
    NotificationEvent,
    PlatformKind,
    TestWebhookRequest,
)
from app.services.delivery_history import DeliveryHistory
from app.services.endpoint_registry import ConfigurationError, EndpointRegistry
from app.services.webhook_delivery import DeliveryEngine
from app.services.webhook_dispatcher import WebhookDispatcher

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


# ── Dependencies ─────────────────────────────────────────
def get_registry(request: Request) -> EndpointRegistry:
    return request.app.state.registry


def get_history(request: Request) -> DeliveryHistory:
    return request.app.state.history


def get_engine(request: Request) -> DeliveryEngine:
    return request.app.state.delivery_engine


def get_dispatcher(request: Request) -> WebhookDispatcher:
    return request.app.state.dispatcher


# ── Endpoints ────────────────────────────────────────────
@router.get("/events", response_model=list[str])
async def list_event_types():
    """List all available webhook event types."""
    return [kind.value for kind in EventKind]


@router.get("/platforms", response_model=list[str])
async def list_platforms():
    return [platform.value for platform in PlatformKind]


@router.get("/", response_model=list[EndpointOut])
async def list_webhooks(registry: EndpointRegistry = Depends(get_registry)):
    """Enabled endpoints currently loaded for dispatch."""
    return [EndpointOut.from_model(ep) for ep in registry.list()]


@router.put("/", response_model=list[EndpointOut])
async def upsert_webhook(data: Endpoint, registry: EndpointRegistry = Depends(get_registry)):
    if not data.events:
        raise HTTPException(400, "Webhook must subscribe to at least one event")
    try:
        await registry.add(data)
    except ConfigurationError as e:
        raise HTTPException(500, str(e))
    return [EndpointOut.from_model(ep) for ep in registry.list()]


@router.delete("/{name}", status_code=204)
async def delete_webhook(name: str, registry: EndpointRegistry = Depends(get_registry)):
    try:
        await registry.remove(name)
    except ConfigurationError as e:
        raise HTTPException(500, str(e))


@router.post("/reload", response_model=list[EndpointOut])
async def reload_webhooks(registry: EndpointRegistry = Depends(get_registry)):
    """Re-read storage; picks up endpoints enabled or disabled outside the API."""
    return [EndpointOut.from_model(ep) for ep in await registry.reload()]


@router.post("/test", status_code=200)
async def test_webhook(data: TestWebhookRequest, engine: DeliveryEngine = Depends(get_engine)):
    """Send a sample PR event to a URL once."""
    success = await engine.test(data.url, data.platform)
    return {"url": data.url, "platform": data.platform.value, "success": success}


@router.get("/history", response_model=list[DeliveryAttempt])
async def webhook_history(history: DeliveryHistory = Depends(get_history)):
    """Recent delivery outcomes, most recent first."""
    return history.list()


@router.post("/dispatch", status_code=200)
async def dispatch_event(event: NotificationEvent, dispatcher: WebhookDispatcher = Depends(get_dispatcher)):
    summary = await dispatcher.dispatch(event)
    return {
        "event": summary.event.value,
        "delivered": summary.delivered,
        "failed": summary.failed,
        "outcomes": [o.model_dump() for o in summary.outcomes],
    }
