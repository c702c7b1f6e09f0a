"""Local daily, all-time and per-character boards.

Persisted as one JSON record:
  {"daily": {date: [entry, ...]}, "allTime": [entry, ...], "personal": {character: best}}
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable

from runboard.protocol import PersonalBest, ProtocolError, ScoreEntry, utc_today


logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    rank: int | None = None
    daily_rank: int | None = None
    is_new_best: bool = False
    is_new_personal_best: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "dailyRank": self.daily_rank,
            "isNewBest": self.is_new_best,
            "isNewPersonalBest": self.is_new_personal_best,
        }


@dataclass
class BoardData:
    daily: dict[str, list[ScoreEntry]]
    all_time: list[ScoreEntry]
    personal: dict[str, PersonalBest]

    @classmethod
    def empty(cls) -> "BoardData":
        return cls(daily={}, all_time=[], personal={})

    def to_dict(self) -> dict[str, Any]:
        return {
            "daily": {d: [e.to_dict() for e in entries] for d, entries in self.daily.items()},
            "allTime": [e.to_dict() for e in self.all_time],
            "personal": {c: pb.to_dict() for c, pb in self.personal.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BoardData":
        if not isinstance(data, dict):
            raise ProtocolError("leaderboard record must be object")
        daily = data.get("daily") or {}
        all_time = data.get("allTime") or []
        personal = data.get("personal") or {}
        if not isinstance(daily, dict) or not isinstance(all_time, list) or not isinstance(personal, dict):
            raise ProtocolError("leaderboard record has wrong shape")
        return cls(
            daily={str(d): [ScoreEntry.from_dict(e) for e in entries] for d, entries in daily.items()},
            all_time=[ScoreEntry.from_dict(e) for e in all_time],
            personal={str(c): PersonalBest.from_dict(pb) for c, pb in personal.items()},
        )


def _insert_ranked(board: list[ScoreEntry], entry: ScoreEntry, cap: int) -> tuple[list[ScoreEntry], int | None]:
    # Stable sort: equal scores keep insertion order.
    board = sorted([*board, entry], key=lambda e: e.score, reverse=True)[:cap]
    for i, e in enumerate(board):
        if e.entry_id == entry.entry_id:
            return board, i + 1
    return board, None


class LocalLeaderboardStore:
    def __init__(
        self,
        kv,
        *,
        storage_key: str = "runboard.leaderboards",
        max_daily_entries: int = 100,
        max_alltime_entries: int = 100,
        retention_days: int = 30,
        best_time_min_floor: int = 3,
        today: Callable[[], str] = utc_today,
    ):
        self.kv = kv
        self.storage_key = storage_key
        self.max_daily_entries = int(max_daily_entries)
        self.max_alltime_entries = int(max_alltime_entries)
        self.retention_days = int(retention_days)
        self.best_time_min_floor = int(best_time_min_floor)
        self.today = today

    @classmethod
    def from_config(cls, config, kv, today: Callable[[], str] = utc_today) -> "LocalLeaderboardStore":
        return cls(
            kv,
            storage_key=config.storage_key,
            max_daily_entries=config.max_daily_entries,
            max_alltime_entries=config.max_alltime_entries,
            retention_days=config.daily_retention_days,
            best_time_min_floor=config.best_time_min_floor,
            today=today,
        )

    def load(self) -> BoardData:
        """Persisted boards, or empty boards when the record is missing or corrupt."""
        try:
            raw = self.kv.get(self.storage_key)
            if not raw:
                return BoardData.empty()
            return BoardData.from_dict(json.loads(raw))
        except (ValueError, TypeError, ProtocolError, sqlite3.Error) as e:
            logger.warning(f"Failed to load leaderboards, starting empty: {e}")
            return BoardData.empty()

    def save(self, data: BoardData) -> None:
        try:
            self.kv.set(self.storage_key, json.dumps(data.to_dict(), separators=(",", ":")))
        except (OSError, sqlite3.Error) as e:
            logger.warning(f"Failed to save leaderboards: {e}")

    def submit(self, entry: ScoreEntry, daily: bool = False) -> SubmitResult:
        data = self.load()
        result = SubmitResult()

        if daily:
            board, result.daily_rank = _insert_ranked(data.daily.get(entry.date, []), entry, self.max_daily_entries)
            data.daily[entry.date] = board

        data.all_time, result.rank = _insert_ranked(data.all_time, entry, self.max_alltime_entries)

        pb = data.personal.setdefault(entry.character, PersonalBest())
        if entry.score > pb.best_score:
            pb.best_score = entry.score
            result.is_new_best = True
            result.is_new_personal_best = True
        if entry.floor > pb.best_floor:
            pb.best_floor = entry.floor
            result.is_new_personal_best = True
        if entry.floor >= self.best_time_min_floor and entry.duration_seconds < pb.best_time_seconds:
            pb.best_time_seconds = entry.duration_seconds
            result.is_new_personal_best = True

        self.save(data)
        logger.info(
            f"Score submitted: {entry.name} {entry.score} on {entry.character} "
            f"(rank={result.rank}, dailyRank={result.daily_rank})"
        )
        return result

    def get_daily_board(self, date: str | None = None, limit: int = 10) -> list[ScoreEntry]:
        return self.load().daily.get(date or self.today(), [])[: int(limit)]

    def get_all_time_board(self, limit: int = 10) -> list[ScoreEntry]:
        return self.load().all_time[: int(limit)]

    def get_personal_bests(self) -> dict[str, PersonalBest]:
        return self.load().personal

    def get_character_personal_best(self, character: str) -> PersonalBest | None:
        return self.load().personal.get(character)

    def get_player_daily_rank(self, name: str, date: str | None = None) -> int | None:
        board = self.get_daily_board(date, limit=self.max_daily_entries)
        return _first_rank(board, name)

    def get_player_all_time_rank(self, name: str) -> int | None:
        return _first_rank(self.get_all_time_board(limit=self.max_alltime_entries), name)

    def get_player_best_entry(self, name: str) -> ScoreEntry | None:
        for e in self.get_all_time_board(limit=self.max_alltime_entries):
            if e.name == name:
                return e
        return None

    def get_recent_high_scores(self, limit: int = 3, days: int = 7) -> list[tuple[str, list[ScoreEntry]]]:
        data = self.load()
        today = date.fromisoformat(self.today())
        out = []
        for i in range(int(days)):
            d = (today - timedelta(days=i)).isoformat()
            entries = data.daily.get(d)
            if entries:
                out.append((d, entries[: int(limit)]))
        return out

    def cleanup_old_daily_boards(self) -> int:
        data = self.load()
        cutoff = (date.fromisoformat(self.today()) - timedelta(days=self.retention_days)).isoformat()
        # ISO dates compare correctly as strings.
        stale = [d for d in data.daily if d < cutoff]
        for d in stale:
            del data.daily[d]
        if stale:
            self.save(data)
            logger.info(f"Cleaned up {len(stale)} old daily leaderboards")
        return len(stale)


def _first_rank(board: list[ScoreEntry], name: str) -> int | None:
    for i, e in enumerate(board):
        if e.name == name:
            return i + 1
    return None
