"""Bounded, most-recent-first log of webhook delivery outcomes (in-memory only)."""

from __future__ import annotations

from collections import deque

from app.schemas import DeliveryAttempt

DEFAULT_CAPACITY = 100


class DeliveryHistory:
    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        # appendleft on a bounded deque evicts from the right (oldest) end
        self._entries: deque[DeliveryAttempt] = deque(maxlen=capacity)

    def record(self, attempt: DeliveryAttempt) -> None:
        self._entries.appendleft(attempt)

    def list(self) -> list[DeliveryAttempt]:
        return [entry.model_copy() for entry in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
