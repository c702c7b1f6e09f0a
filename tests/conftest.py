from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import web

from runboard.boards.local import LocalLeaderboardStore
from runboard.config import BoardCredentials, LeaderboardConfig
from runboard.protocol import ScoreEntry
from runboard.storage.memory import MemoryStore


TODAY = "2026-10-17"

KEYS = {
    "allTime": BoardCredentials(boardType="allTime", publicKey="pub-all", privateKey="priv-all"),
    "daily": BoardCredentials(boardType="daily", publicKey="pub-daily", privateKey="priv-daily"),
}


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, sec: float) -> None:
        self.now += sec


@dataclass
class FakeRemoteState:
    # public key -> raw dreamlo payload
    boards: dict[str, Any] = field(default_factory=dict)
    submissions: list[dict[str, Any]] = field(default_factory=list)
    reads: int = 0
    status: int = 200
    delay: float = 0.0
    body: str | None = None


def dreamlo_payload(*entries: dict[str, Any]) -> dict[str, Any]:
    if not entries:
        return {"dreamlo": {"leaderboard": None}}
    if len(entries) == 1:
        return {"dreamlo": {"leaderboard": {"entry": entries[0]}}}
    return {"dreamlo": {"leaderboard": {"entry": list(entries)}}}


def raw_entry(name: str, score: int, seconds: int = 120, text: str = f"3|survivor|{TODAY}") -> dict[str, Any]:
    return {"name": name, "score": str(score), "seconds": str(seconds), "text": text, "date": "10/17/2026 1:00:00 PM"}


def make_entry(score: int, name: str = "Ann", floor: int = 3, character: str = "survivor", duration: int = 100, date: str = TODAY) -> ScoreEntry:
    return ScoreEntry.create(
        name=name,
        score=score,
        floor=floor,
        character=character,
        duration_seconds=duration,
        date=date,
        submitted_at=0.0,
    )


def make_fake_remote(state: FakeRemoteState) -> web.Application:
    async def add(request: web.Request):
        if state.delay:
            await asyncio.sleep(state.delay)
        info = request.match_info
        state.submissions.append(
            {
                "key": info["key"],
                "name": info["name"],
                "score": int(info["score"]),
                "seconds": int(info["seconds"]),
                "text": info["text"],
            }
        )
        return web.Response(status=state.status, text="OK")

    async def board_json(request: web.Request):
        state.reads += 1
        if state.delay:
            await asyncio.sleep(state.delay)
        if state.status != 200:
            return web.Response(status=state.status, text="error")
        if state.body is not None:
            return web.Response(text=state.body, content_type="text/plain")
        payload = state.boards.get(request.match_info["key"], dreamlo_payload())
        return web.json_response(payload)

    app = web.Application()
    app.router.add_get("/lb/{key}/add/{name}/{score}/{seconds}/{text}", add)
    app.router.add_get("/lb/{key}/json", board_json)
    return app


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def local_store() -> LocalLeaderboardStore:
    return LocalLeaderboardStore(MemoryStore(), today=lambda: TODAY)


@pytest.fixture
def remote_state() -> FakeRemoteState:
    return FakeRemoteState()


@pytest.fixture
async def remote_config(aiohttp_server, remote_state) -> LeaderboardConfig:
    server = await aiohttp_server(make_fake_remote(remote_state))
    return LeaderboardConfig(
        sqlite_enabled=False,
        remote_base_url=str(server.make_url("/lb")),
        relay_url="",
        request_timeout_sec=0.3,
        boards=dict(KEYS),
    )
