"""Pydantic schemas for webhook endpoints, PR events and delivery history."""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enumerations ─────────────────────────────────────────
class EventKind(str, Enum):
    """Pull request lifecycle transitions we notify on."""

    CREATED = "pr_created"
    UPDATED = "pr_updated"
    MERGED = "pr_merged"
    CLOSED = "pr_closed"

    @property
    def label(self) -> str:
        """Human wording, e.g. ``created`` for ``pr_created``."""
        return self.value.replace("pr_", "", 1).replace("_", " ")


class PlatformKind(str, Enum):
    """Message dialect an endpoint expects."""

    TEAMS = "teams"          # card-based (MessageCard)
    SLACK = "slack"          # attachment-based
    DISCORD = "discord"      # embed-based
    GENERIC = "generic"      # raw event JSON


# ── Endpoint ─────────────────────────────────────────────
class Endpoint(BaseModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    enabled: bool = True
    events: list[EventKind] = Field(default_factory=list)
    platform: PlatformKind = PlatformKind.GENERIC
    # The add-on's settings schema spells these retryAttempts / timeout
    retry_attempts: int = Field(3, ge=1, validation_alias=AliasChoices("retry_attempts", "retryAttempts"))
    timeout_ms: int = Field(10000, ge=1, validation_alias=AliasChoices("timeout_ms", "timeout"))
    headers: dict[str, str] = Field(default_factory=dict)
    secret: Optional[str] = None

    @field_validator("platform", mode="before")
    @classmethod
    def _unknown_platform_is_generic(cls, value):
        if isinstance(value, PlatformKind) or value is None:
            return value or PlatformKind.GENERIC
        try:
            return PlatformKind(str(value).lower())
        except ValueError:
            logger.warning(f"Unknown platform {value!r}, falling back to generic")
            return PlatformKind.GENERIC

    @field_validator("events", mode="before")
    @classmethod
    def _known_events_only(cls, value):
        if not isinstance(value, (list, tuple, set)):
            return value
        known = []
        for item in value:
            try:
                kind = EventKind(item)
            except ValueError:
                logger.warning(f"Ignoring unknown webhook event {item!r}")
                continue
            if kind not in known:
                known.append(kind)
        return known

    def subscribes_to(self, kind: EventKind) -> bool:
        return kind in self.events


class EndpointOut(BaseModel):
    """Endpoint as returned by the API: no secret, header names only."""

    name: str
    url: str
    enabled: bool
    events: list[EventKind]
    platform: PlatformKind
    retry_attempts: int
    timeout_ms: int
    header_names: list[str] = Field(default_factory=list)
    has_secret: bool = False

    @classmethod
    def from_model(cls, ep: Endpoint):
        return cls(
            name=ep.name,
            url=ep.url,
            enabled=ep.enabled,
            events=ep.events,
            platform=ep.platform,
            retry_attempts=ep.retry_attempts,
            timeout_ms=ep.timeout_ms,
            header_names=sorted(ep.headers),
            has_secret=bool(ep.secret),
        )


# ── Event ────────────────────────────────────────────────
class PullRequestInfo(BaseModel):
    id: str
    title: str
    description: str = ""
    url: str = ""
    author: str = ""
    source_branch: str = ""
    target_branch: str = ""
    repository: str = ""
    ai_generated: bool = False
    model_used: Optional[str] = None
    files_changed: int = 0
    commits: int = 0

    model_config = {"frozen": True, "protected_namespaces": ()}

    @property
    def branch_arrow(self) -> str:
        return f"{self.source_branch} → {self.target_branch}"


class EventMetadata(BaseModel):
    extension_version: str = ""
    workspace_folder: str = ""
    host_version: str = ""

    model_config = {"frozen": True}


class NotificationEvent(BaseModel):
    """Something that happened to a pull request. Never mutated after creation."""

    kind: EventKind
    pull_request: PullRequestInfo
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: EventMetadata = Field(default_factory=EventMetadata)

    model_config = {"frozen": True}


# ── Delivery history ─────────────────────────────────────
class DeliveryAttempt(BaseModel):
    """Final outcome of delivering one event to one endpoint."""

    id: str = Field(default_factory=lambda: str(uuid.uuid1()))
    endpoint_name: str
    event: EventKind
    timestamp: datetime = Field(default_factory=utcnow)
    success: bool
    latency_ms: Optional[int] = None
    error: Optional[str] = None
    url: str


class DeliveryOutcome(BaseModel):
    endpoint_name: str
    success: bool
    error: Optional[str] = None


class DispatchSummary(BaseModel):
    event: EventKind
    outcomes: list[DeliveryOutcome] = Field(default_factory=list)

    @property
    def delivered(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)


# ── API requests ─────────────────────────────────────────
class TestWebhookRequest(BaseModel):
    url: str = Field(..., min_length=1)
    platform: PlatformKind = PlatformKind.TEAMS
