"""Webhook dispatch service — fans a PR event out to every subscribed endpoint."""

import asyncio
import logging

from app.schemas import DeliveryOutcome, DispatchSummary, Endpoint, NotificationEvent
from app.services.endpoint_registry import EndpointRegistry
from app.services.message_renderer import render_message
from app.services.webhook_delivery import DeliveryEngine, DeliveryError

logger = logging.getLogger(__name__)


class WebhookDispatcher:
    """Renders and delivers an event to all subscribers concurrently.

    ``dispatch`` never raises: a webhook failure must not abort the pull
    request workflow that raised the event. Each per-endpoint task settles
    into a ``DeliveryOutcome`` and the join waits for all of them.
    """

    def __init__(self, registry: EndpointRegistry, engine: DeliveryEngine, enabled: bool = True):
        self.registry = registry
        self.engine = engine
        self.enabled = enabled

    async def dispatch(self, event: NotificationEvent) -> DispatchSummary:
        summary = DispatchSummary(event=event.kind)
        if not self.enabled:
            logger.info(f"Webhook notifications disabled, skipping {event.kind.value}")
            return summary

        subscribers = self.registry.subscribers_for(event.kind)
        if not subscribers:
            logger.info(f"No webhooks configured for event: {event.kind.value}")
            return summary

        logger.info(f"Sending {event.kind.value} webhook to {len(subscribers)} endpoint(s)")
        outcomes = await asyncio.gather(*(self._settle(ep, event) for ep in subscribers))
        summary.outcomes.extend(outcomes)

        if summary.failed:
            logger.warning(f"{summary.failed} webhook(s) failed to send")
        return summary

    async def _settle(self, endpoint: Endpoint, event: NotificationEvent) -> DeliveryOutcome:
        try:
            body = render_message(event, endpoint.platform)
            await self.engine.deliver(endpoint, body, event.kind)
        except DeliveryError as e:
            return DeliveryOutcome(endpoint_name=endpoint.name, success=False, error=e.error)
        except Exception as e:
            logger.exception(f"Unexpected error sending webhook to {endpoint.name}")
            return DeliveryOutcome(endpoint_name=endpoint.name, success=False, error=str(e) or type(e).__name__)
        return DeliveryOutcome(endpoint_name=endpoint.name, success=True)
