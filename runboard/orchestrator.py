"""Score submission entry point and the read API used by game screens.

Local ranking is computed synchronously and returned at once; the remote
mirror runs as a background task whose outcome never reaches the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

from runboard.boards.local import LocalLeaderboardStore, SubmitResult
from runboard.net.remote import FetchResult, RankResult, RemoteLeaderboardClient
from runboard.protocol import PersonalBest, ProtocolError, RunSummary, ScoreEntry, sanitize_name, utc_today
from runboard.scoring import calculate_score, format_score, format_time


logger = logging.getLogger(__name__)

RemoteHook = Callable[[str, ScoreEntry, bool], None]


class SubmissionOrchestrator:
    def __init__(
        self,
        local: LocalLeaderboardStore,
        remote: RemoteLeaderboardClient | None = None,
        identity: Callable[[], str | None] | None = None,
        today: Callable[[], str] = utc_today,
        on_remote_complete: RemoteHook | None = None,
    ):
        self.local = local
        self.remote = remote
        self.identity = identity or (lambda: None)
        self.today = today
        self.on_remote_complete = on_remote_complete
        self.pending: set[asyncio.Task] = set()

    format_score = staticmethod(format_score)
    format_time = staticmethod(format_time)

    def player_name(self, override: str | None = None) -> str:
        return sanitize_name(override or self.identity())

    def build_entry(self, run: RunSummary, player_name: str | None = None) -> ScoreEntry:
        return ScoreEntry.create(
            name=self.player_name(player_name),
            score=calculate_score(run),
            floor=run.floors_reached,
            character=run.character,
            duration_seconds=run.duration_seconds,
            date=run.date or self.today(),
            submitted_at=time.time(),
        )

    def submit_score(self, run: RunSummary | dict[str, Any], player_name: str | None = None) -> SubmitResult:
        if not isinstance(run, RunSummary):
            try:
                run = RunSummary.parse(run)
            except ProtocolError as e:
                logger.warning(f"Rejected run summary: {e}")
                return SubmitResult()
        entry = self.build_entry(run, player_name)
        result = self.local.submit(entry, daily=run.is_daily)

        if self.remote is not None:
            self._mirror(entry, "allTime")
            if run.is_daily:
                self._mirror(entry, "daily")
        return result

    def _mirror(self, entry: ScoreEntry, board_type: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, skipping {board_type} mirror")
            return
        task = loop.create_task(self._run_mirror(entry, board_type))
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)

    async def _run_mirror(self, entry: ScoreEntry, board_type: str) -> bool:
        ok = await self.remote.submit(entry, board_type)
        if not ok:
            logger.warning(f"Online submission to {board_type} failed")
        if self.on_remote_complete:
            try:
                self.on_remote_complete(board_type, entry, ok)
            except Exception:
                logger.exception("Remote completion hook failed")
        return ok

    async def wait_pending(self) -> None:
        if self.pending:
            await asyncio.gather(*list(self.pending), return_exceptions=True)

    # Local reads.

    def get_daily_leaderboard(self, date: str | None = None, limit: int = 10) -> list[ScoreEntry]:
        return self.local.get_daily_board(date, limit)

    def get_all_time_leaderboard(self, limit: int = 10) -> list[ScoreEntry]:
        return self.local.get_all_time_board(limit)

    def get_personal_bests(self) -> dict[str, PersonalBest]:
        return self.local.get_personal_bests()

    def get_character_personal_best(self, character: str) -> PersonalBest | None:
        return self.local.get_character_personal_best(character)

    def get_player_daily_rank(self, date: str | None = None, player_name: str | None = None) -> int | None:
        return self.local.get_player_daily_rank(self.player_name(player_name), date)

    def get_player_all_time_rank(self, player_name: str | None = None) -> int | None:
        return self.local.get_player_all_time_rank(self.player_name(player_name))

    def get_player_best_entry(self, player_name: str | None = None) -> ScoreEntry | None:
        return self.local.get_player_best_entry(self.player_name(player_name))

    def get_recent_high_scores(self, limit: int = 3) -> list[tuple[str, list[ScoreEntry]]]:
        return self.local.get_recent_high_scores(limit)

    def cleanup_old_daily_boards(self) -> int:
        return self.local.cleanup_old_daily_boards()

    # Online reads.

    async def get_online_leaderboard(self, limit: int = 10, board_type: str = "allTime") -> FetchResult:
        if self.remote is None:
            return FetchResult(error="Online leaderboards disabled")
        return await self.remote.fetch(limit, board_type)

    async def get_daily_online_leaderboard(self, limit: int = 10, today_date: str | None = None) -> FetchResult:
        if self.remote is None:
            return FetchResult(error="Online leaderboards disabled")
        return await self.remote.get_daily_filtered(limit, today_date or self.today())

    async def get_global_rank(self, player_name: str | None, player_score: int) -> RankResult:
        if self.remote is None:
            return RankResult(error="Online leaderboards disabled")
        return await self.remote.get_global_rank(self.player_name(player_name), player_score)
