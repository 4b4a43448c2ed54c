"""Webhook delivery engine — POSTs a rendered message to one endpoint with retry and HMAC signing."""

import asyncio
import hashlib
import hmac
import json
import logging
import time
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from app.schemas import (
    DeliveryAttempt,
    Endpoint,
    EventKind,
    EventMetadata,
    NotificationEvent,
    PlatformKind,
    PullRequestInfo,
)
from app.services.delivery_history import DeliveryHistory
from app.services.message_renderer import render_message

logger = logging.getLogger(__name__)
notifications_logger = logging.getLogger("app.notifications")

Notifier = Callable[[str], None]
Sleep = Callable[[float], Awaitable[None]]


class DeliveryError(Exception):
    """Every attempt to reach an endpoint failed."""

    def __init__(self, endpoint_name: str, attempts: int, error: str):
        super().__init__(f"Webhook {endpoint_name} failed after {attempts} attempt(s): {error}")
        self.endpoint_name = endpoint_name
        self.attempts = attempts
        self.error = error


def warn_user(message: str) -> None:
    """Default user-visible surface: a warning on the ``app.notifications`` logger."""
    notifications_logger.warning(message)


def sign_payload(payload: bytes, secret: str) -> str:
    """Generate HMAC-SHA256 signature for webhook payload."""
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def backoff_seconds(attempt: int, cap: int = 0) -> int:
    # attempt is 1-based; cap <= 0 means uncapped
    delay = 2 ** attempt
    if cap > 0:
        return min(cap, delay)
    return delay


def build_test_event(extension_version: str = "1.0.0") -> NotificationEvent:
    """Representative sample event used for connectivity checks."""
    return NotificationEvent(
        kind=EventKind.CREATED,
        pull_request=PullRequestInfo(
            id="test-123",
            title="🧪 Test Webhook from Smart PR Creator",
            description=(
                "This is a test message to verify webhook connectivity. "
                "If you see this, your webhook is working correctly!"
            ),
            url="https://github.com/microsoft/vscode",
            author="Smart PR Creator Extension",
            source_branch="feature/test-webhook",
            target_branch="main",
            repository="test/project/repository",
            ai_generated=True,
            model_used="GPT-4o",
            files_changed=5,
            commits=3,
        ),
        metadata=EventMetadata(
            extension_version=extension_version,
            workspace_folder="test-workspace",
        ),
    )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class DeliveryEngine:
    """Delivers rendered bodies over HTTP and records one history entry per delivery."""

    def __init__(
        self,
        history: DeliveryHistory,
        *,
        user_agent: str = "Smart-PR-Creator-Extension",
        notifier: Notifier = warn_user,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
        backoff_max_seconds: int = 0,
        extension_version: str = "1.0.0",
    ):
        self.history = history
        self.user_agent = user_agent
        self.notifier = notifier
        self.transport = transport
        self.sleep = sleep
        self.backoff_max_seconds = backoff_max_seconds
        self.extension_version = extension_version

    def build_headers(self, endpoint: Endpoint, event_kind: EventKind, content: bytes, attempt: int) -> httpx.Headers:
        headers = httpx.Headers({
            "User-Agent": self.user_agent,
            "X-Webhook-Event": event_kind.value,
            "X-Webhook-Delivery-Attempt": str(attempt),
        })
        headers.update(endpoint.headers)
        headers["Content-Type"] = "application/json"
        if endpoint.secret:
            headers["X-Webhook-Signature-256"] = f"sha256={sign_payload(content, endpoint.secret)}"
        return headers

    async def _post(self, client: httpx.AsyncClient, endpoint: Endpoint, content: bytes, headers: httpx.Headers) -> Optional[str]:
        """One HTTP attempt. Returns None on 2xx, otherwise the error text."""
        try:
            resp = await asyncio.wait_for(
                client.post(endpoint.url, content=content, headers=headers),
                timeout=endpoint.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            return f"Request timeout after {endpoint.timeout_ms}ms"
        except Exception as exc:
            return str(exc) or type(exc).__name__

        if 200 <= resp.status_code < 300:
            return None
        return f"HTTP {resp.status_code}: {resp.text[:2000]}"

    async def deliver(
        self,
        endpoint: Endpoint,
        body: dict,
        event_kind: EventKind,
        *,
        record: bool = True,
    ) -> DeliveryAttempt:
        """POST ``body`` to ``endpoint``, retrying with exponential backoff.

        Makes at most ``endpoint.retry_attempts`` attempts and sleeps ``2**n``
        seconds after failed attempt ``n`` when another attempt follows. The
        final outcome is recorded in the history log; when every attempt fails
        the user is warned and ``DeliveryError`` is raised. ``record=False``
        skips both the history entry and the warning (connectivity checks).
        """
        content = json.dumps(body, ensure_ascii=False).encode("utf-8")
        max_attempts = endpoint.retry_attempts
        error = ""

        start = time.monotonic()
        async with httpx.AsyncClient(transport=self.transport, timeout=endpoint.timeout_ms / 1000) as client:
            for attempt in range(1, max_attempts + 1):
                headers = self.build_headers(endpoint, event_kind, content, attempt)
                error = await self._post(client, endpoint, content, headers)
                if error is None:
                    result = DeliveryAttempt(
                        endpoint_name=endpoint.name,
                        event=event_kind,
                        success=True,
                        latency_ms=_elapsed_ms(start),
                        url=endpoint.url,
                    )
                    logger.info(
                        f"Webhook sent successfully: {endpoint.name} "
                        f"(attempt {attempt}, {result.latency_ms}ms)"
                    )
                    if record:
                        self.history.record(result)
                    return result

                logger.warning(f"Attempt {attempt}/{max_attempts} failed for {endpoint.name}: {error}")
                if attempt < max_attempts:
                    await self.sleep(backoff_seconds(attempt, self.backoff_max_seconds))

        result = DeliveryAttempt(
            endpoint_name=endpoint.name,
            event=event_kind,
            success=False,
            latency_ms=_elapsed_ms(start),
            error=error,
            url=endpoint.url,
        )
        if record:
            self.history.record(result)
            self.notifier(f"Failed to send webhook to {endpoint.name} after {max_attempts} attempts")
        raise DeliveryError(endpoint.name, max_attempts, error)

    async def test(self, url: str, platform: PlatformKind = PlatformKind.TEAMS) -> bool:
        """Send the sample event once to ``url``. True on a 2xx response."""
        try:
            endpoint = Endpoint(
                name="Test Webhook",
                url=url,
                events=[EventKind.CREATED],
                platform=platform,
                retry_attempts=1,
            )
            event = build_test_event(self.extension_version)
            await self.deliver(endpoint, render_message(event, endpoint.platform), event.kind, record=False)
        except (DeliveryError, ValidationError) as e:
            logger.warning(f"Webhook test failed: {e}")
            return False
        return True
