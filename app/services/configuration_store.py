"""Key-value settings store the endpoint registry reads from and writes to."""

import copy
import json
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import SettingsEntry


class ConfigurationStore(Protocol):
    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...


class InMemoryConfigurationStore:
    """Dict-backed store. Values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    async def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class DatabaseConfigurationStore:
    """Store backed by the ``settings_entries`` table; values are JSON text."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, key: str) -> Any:
        async with self.session_factory() as db:
            result = await db.execute(select(SettingsEntry).where(SettingsEntry.key == key))
            entry = result.scalar_one_or_none()
            if entry is None or entry.value is None:
                return None
            return json.loads(entry.value)

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        async with self.session_factory() as db:
            result = await db.execute(select(SettingsEntry).where(SettingsEntry.key == key))
            entry = result.scalar_one_or_none()
            if entry is None:
                db.add(SettingsEntry(key=key, value=payload))
            else:
                entry.value = payload
            await db.commit()
