"""Endpoint registry — the enabled working set of webhook endpoints.

The full endpoint list lives in the configuration store under a single key.
The registry keeps an in-memory snapshot of the *enabled* endpoints; it is
refreshed on ``add``/``remove`` and by an explicit ``reload()``, never on
dispatch. Disabling an endpoint directly in storage therefore only takes
effect after a reload.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from app.schemas import Endpoint, EventKind
from app.services.configuration_store import ConfigurationStore

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Persisting the endpoint list failed."""


def _stored_items(stored: Any) -> list:
    # Accepts both a bare list and the {"enabled": ..., "endpoints": [...]} settings shape
    if stored is None:
        return []
    if isinstance(stored, dict):
        stored = stored.get("endpoints") or []
    if not isinstance(stored, list):
        raise ValueError(f"expected a list of endpoints, got {type(stored).__name__}")
    return list(stored)


def _has_name(item: Any, name: str) -> bool:
    return isinstance(item, dict) and item.get("name") == name


def _with_endpoints(stored: Any, endpoints: list) -> Any:
    if isinstance(stored, dict):
        return {**stored, "endpoints": endpoints}
    return endpoints


class EndpointRegistry:
    """Holds the dispatchable endpoints loaded from a ``ConfigurationStore``."""

    def __init__(self, store: ConfigurationStore, key: str):
        self.store = store
        self.key = key
        self._endpoints: list[Endpoint] = []

    @classmethod
    async def create(cls, store: ConfigurationStore, key: str) -> EndpointRegistry:
        registry = cls(store, key)
        await registry.load()
        return registry

    async def load(self) -> list[Endpoint]:
        """Read storage and keep the enabled endpoints. Never raises."""
        try:
            raw = _stored_items(await self.store.get(self.key))
        except Exception as e:
            logger.error(f"Failed to load webhook configuration: {e}")
            self._endpoints = []
            return []

        endpoints = []
        for item in raw:
            if not isinstance(item, dict):
                logger.warning(f"Skipping non-object webhook entry {item!r}")
                continue
            try:
                endpoint = Endpoint.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping invalid webhook entry {item.get('name', '?')!r}: {e}")
                continue
            if endpoint.enabled:
                endpoints.append(endpoint)

        self._endpoints = endpoints
        logger.info(f"Loaded {len(endpoints)} webhook(s)")
        return self.list()

    async def reload(self) -> list[Endpoint]:
        return await self.load()

    async def add(self, endpoint: Endpoint) -> None:
        """Insert or replace (by name) an endpoint in storage, then reload."""
        try:
            stored = await self.store.get(self.key)
            raw = _stored_items(stored)
            data = endpoint.model_dump(mode="json")
            index = next((i for i, item in enumerate(raw) if _has_name(item, endpoint.name)), None)
            if index is None:
                raw.append(data)
            else:
                raw[index] = data
            await self.store.set(self.key, _with_endpoints(stored, raw))
        except Exception as e:
            raise ConfigurationError(f"Failed to save webhook configuration: {e}") from e

        await self.load()
        logger.info(f"Added/updated webhook: {endpoint.name}")

    async def remove(self, name: str) -> None:
        """Drop an endpoint by name from storage, then reload. Unknown names are ignored."""
        try:
            stored = await self.store.get(self.key)
            raw = _stored_items(stored)
            remaining = [item for item in raw if not _has_name(item, name)]
            if len(remaining) != len(raw):
                await self.store.set(self.key, _with_endpoints(stored, remaining))
        except Exception as e:
            raise ConfigurationError(f"Failed to remove webhook: {e}") from e

        await self.load()
        logger.info(f"Removed webhook: {name}")

    def list(self) -> list[Endpoint]:
        return [ep.model_copy(deep=True) for ep in self._endpoints]

    def subscribers_for(self, kind: EventKind) -> list[Endpoint]:
        return [ep for ep in self.list() if ep.subscribes_to(kind)]
