"""In-memory key-value store."""

from __future__ import annotations

import time


class MemoryStore:
    def __init__(self):
        self._values: dict[str, str] = {}
        self._updated: dict[str, float] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = str(value)
        self._updated[key] = time.time()

    def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._updated.pop(key, None)

    def updated_at(self, key: str) -> float | None:
        return self._updated.get(key)
