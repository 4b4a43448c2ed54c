"""Test fixtures — isolated settings table, mock webhook receivers, recorded sleeps."""

import os
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Force SQLite test database *before* any app import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_pr_notifier.db"

from app.database import Base, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.schemas import (  # noqa: E402
    Endpoint,
    EventKind,
    NotificationEvent,
    PlatformKind,
    PullRequestInfo,
)
from app.services.delivery_history import DeliveryHistory  # noqa: E402
from app.services.webhook_delivery import DeliveryEngine  # noqa: E402


class Receiver:
    """Mock webhook server: answers with queued status codes or errors, records requests."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses.pop(0) if self.responses else 200
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, text="ok" if outcome < 300 else "nope")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def receiver() -> Receiver:
    return Receiver()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def history() -> DeliveryHistory:
    return DeliveryHistory()


@pytest.fixture
def warnings() -> list[str]:
    return []


@pytest.fixture
def delivery_engine(history, receiver, sleeps, warnings) -> DeliveryEngine:
    return DeliveryEngine(
        history,
        transport=receiver.transport,
        sleep=sleeps,
        notifier=warnings.append,
    )


def make_endpoint(**overrides) -> Endpoint:
    data = {
        "name": "team-channel",
        "url": "https://hooks.example.com/team",
        "events": [EventKind.CREATED],
        "platform": PlatformKind.TEAMS,
    }
    data.update(overrides)
    return Endpoint(**data)


def make_event(kind: EventKind = EventKind.CREATED, **pr_overrides) -> NotificationEvent:
    pr = {
        "id": "42",
        "title": "Add retry to webhook sender",
        "description": "Retries failed deliveries with exponential backoff.",
        "url": "https://github.com/acme/widgets/pull/42",
        "author": "dev@example.com",
        "source_branch": "feature/retry",
        "target_branch": "main",
        "repository": "acme/widgets",
        "ai_generated": True,
        "model_used": "GPT-4o",
        "files_changed": 5,
        "commits": 3,
    }
    pr.update(pr_overrides)
    return NotificationEvent(kind=kind, pull_request=PullRequestInfo(**pr))


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
