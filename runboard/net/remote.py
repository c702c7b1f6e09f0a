"""Best-effort mirror to the hosted leaderboard API.

Endpoints (per board, each with its own key pair):
  GET {base}/{privateKey}/add/{name}/{score}/{seconds}/{text}
  GET {base}/{publicKey}/json

The API is plain http only, so calls can be routed through a relay that takes
the percent-encoded target URL as its query string.

Nothing here raises to the caller: failures come back as `False` or as a
result carrying `error`. There is no retry; the next call is the retry.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import quote

import aiohttp

from runboard.config import LeaderboardConfig
from runboard.net.cache import BoardCache
from runboard.protocol import ProtocolError, ScoreEntry, encode_entry_text, parse_board_payload, sanitize_name


logger = logging.getLogger(__name__)

ERR_UNKNOWN_BOARD = "Unknown board type"
ERR_TIMEOUT = "Connection timed out"
ERR_CONNECT = "Could not connect to server"


@dataclass
class FetchResult:
    entries: list[ScoreEntry] = field(default_factory=list)
    total_count: int = 0
    error: str | None = None


@dataclass
class RankResult:
    rank: int | None = None
    total: int = 0
    error: str | None = None


class RemoteLeaderboardClient:
    def __init__(
        self,
        config: LeaderboardConfig,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.config = config
        self.cache = BoardCache(config.cache_ttl_sec, clock or time.monotonic)
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout_sec)

    def build_url(self, path: str) -> str:
        raw = f"{self.config.remote_base_url.rstrip('/')}{path}"
        if not self.config.relay_url:
            return raw
        return f"{self.config.relay_url}{quote(raw, safe='')}"

    def is_valid_score(self, score) -> bool:
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            return False
        return 0 < score <= self.config.max_reasonable_score

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def submit(self, entry: ScoreEntry, board_type: str = "allTime") -> bool:
        if not self.is_valid_score(entry.score):
            logger.warning(f"Invalid score, skipping submission: {entry.score}")
            return False

        board = self.config.board(board_type)
        if not board:
            logger.warning(f"Unknown board type: {board_type}")
            return False
        if not board.privateKey:
            logger.warning(f"No private key configured for {board_type}, skipping submission")
            return False

        name = sanitize_name(entry.name)
        score = int(entry.score)
        seconds = int(entry.duration_seconds or 0)
        text = encode_entry_text(entry.floor, entry.character, entry.date)
        path = f"/{board.privateKey}/add/{quote(name, safe='')}/{score}/{seconds}/{quote(text, safe='')}"

        logger.info(f"Submitting score to {board_type}: {name} {score} floor={entry.floor}")
        try:
            async with self._get_session().get(self.build_url(path), timeout=self._timeout) as resp:
                if not 200 <= resp.status < 300:
                    logger.warning(f"Submission to {board_type} failed with status: {resp.status}")
                    return False
        except asyncio.TimeoutError:
            logger.warning(f"Submission to {board_type} timed out")
            return False
        except aiohttp.ClientError as e:
            logger.warning(f"Submission to {board_type} error: {e}")
            return False

        logger.info(f"Score submitted to {board_type} successfully")
        self.cache.invalidate(board_type)
        return True

    async def submit_daily(self, entry: ScoreEntry) -> bool:
        return await self.submit(entry, "daily")

    async def fetch(self, limit: int = 10, board_type: str = "allTime") -> FetchResult:
        board = self.config.board(board_type)
        if not board:
            logger.warning(f"Unknown board type: {board_type}")
            return FetchResult(error=ERR_UNKNOWN_BOARD)

        cached = self.cache.get(board_type)
        if cached:
            logger.debug(f"Using cached {board_type} leaderboard")
            return FetchResult(entries=cached.entries[: int(limit)], total_count=len(cached.entries))

        logger.debug(f"Fetching {board_type} leaderboard")
        try:
            async with self._get_session().get(self.build_url(f"/{board.publicKey}/json"), timeout=self._timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise ProtocolError(f"HTTP {resp.status}")
                # The API does not always label its JSON as such.
                payload = await resp.json(content_type=None)
            entries = parse_board_payload(payload)
        except asyncio.TimeoutError:
            logger.warning(f"Fetch of {board_type} timed out")
            return FetchResult(error=ERR_TIMEOUT)
        except (aiohttp.ClientError, ValueError, ProtocolError) as e:
            logger.warning(f"Fetch of {board_type} error: {e}")
            return FetchResult(error=ERR_CONNECT)

        self.cache.put(board_type, entries)
        logger.info(f"Fetched {len(entries)} entries from {board_type}")
        return FetchResult(entries=entries[: int(limit)], total_count=len(entries))

    async def get_daily_filtered(self, limit: int, today_date: str) -> FetchResult:
        # The remote cannot filter; pull the whole daily board and filter here.
        result = await self.fetch(self.config.fetch_all_limit, "daily")
        if result.error:
            return result
        todays = [e for e in result.entries if e.date == today_date]
        return FetchResult(entries=todays[: int(limit)], total_count=len(todays))

    async def get_global_rank(self, player_name: str | None, player_score: int) -> RankResult:
        result = await self.fetch(self.config.fetch_all_limit, "allTime")
        if result.error:
            return RankResult(error=result.error)

        wanted = sanitize_name(player_name).lower()
        for i, e in enumerate(result.entries):
            if e.name.lower() == wanted:
                return RankResult(rank=i + 1, total=result.total_count)

        # Not on the fetched board: estimate from scores above the player's.
        score = int(player_score or 0)
        higher = len([e for e in result.entries if e.score > score])
        return RankResult(rank=higher + 1, total=result.total_count + 1)

    def clear_cache(self, board_type: str | None = None) -> None:
        self.cache.invalidate(board_type)

    async def check_availability(self) -> bool:
        result = await self.fetch(1)
        return result.error is None
