"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import get_settings
from app.api import webhooks

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create the settings table and wire the notification services
    from app.database import async_session, engine, init_models
    from app.services.configuration_store import DatabaseConfigurationStore
    from app.services.delivery_history import DeliveryHistory
    from app.services.endpoint_registry import EndpointRegistry
    from app.services.webhook_delivery import DeliveryEngine
    from app.services.webhook_dispatcher import WebhookDispatcher

    await init_models()

    store = DatabaseConfigurationStore(async_session)
    registry = await EndpointRegistry.create(store, settings.webhook_settings_key)
    history = DeliveryHistory(settings.webhook_history_capacity)
    delivery_engine = DeliveryEngine(
        history,
        user_agent=settings.webhook_user_agent,
        backoff_max_seconds=settings.webhook_backoff_max_seconds,
        extension_version=settings.extension_version,
    )

    app.state.registry = registry
    app.state.history = history
    app.state.delivery_engine = delivery_engine
    app.state.dispatcher = WebhookDispatcher(registry, delivery_engine, enabled=settings.webhooks_enabled)

    yield

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Pull request notifications for Teams, Slack, Discord and generic webhooks",
    lifespan=lifespan,
)

# Register routers
app.include_router(webhooks.router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
