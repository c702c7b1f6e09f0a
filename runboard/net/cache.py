"""Per-board TTL cache for remote reads."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from runboard.protocol import ScoreEntry


@dataclass
class CacheEntry:
    entries: list[ScoreEntry]
    fetched_at: float


class BoardCache:
    def __init__(self, ttl_sec: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_sec = float(ttl_sec)
        self.clock = clock
        self._by_board: dict[str, CacheEntry] = {}

    def get(self, board_type: str) -> CacheEntry | None:
        cur = self._by_board.get(board_type)
        if not cur:
            return None
        if self.clock() - cur.fetched_at >= self.ttl_sec:
            return None
        return cur

    def put(self, board_type: str, entries: list[ScoreEntry]) -> CacheEntry:
        cur = CacheEntry(entries=list(entries), fetched_at=self.clock())
        self._by_board[board_type] = cur
        return cur

    def invalidate(self, board_type: str | None = None) -> None:
        if board_type is None:
            self._by_board.clear()
            return
        self._by_board.pop(board_type, None)
