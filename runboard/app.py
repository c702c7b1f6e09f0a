"""HTTP entrypoint for game screens (game-over, leaderboards).

Rendering stays in the client; this serves ranked lists and accepts runs.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from aiohttp import web

from runboard import protocol
from runboard.boards.local import LocalLeaderboardStore
from runboard.config import LeaderboardConfig
from runboard.logs import setup_logging
from runboard.net.remote import FetchResult, RemoteLeaderboardClient
from runboard.orchestrator import SubmissionOrchestrator
from runboard.protocol import ProtocolError, RunSummary, is_date_string
from runboard.storage.memory import MemoryStore
from runboard.storage.sqlite import SqliteStore


logger = logging.getLogger(__name__)

MAX_LIMIT = 1000


class LeaderboardService:
    def __init__(self, config: LeaderboardConfig, remote: RemoteLeaderboardClient | None = None):
        self.config = config
        self.start_time = time.time()

        self.memory = MemoryStore()
        self.sqlite = SqliteStore(self.config.sqlite_path) if self.config.sqlite_enabled else None

        self.local = LocalLeaderboardStore.from_config(config, self.sqlite or self.memory)
        if remote is None and self.config.remote_enabled:
            remote = RemoteLeaderboardClient(config)
        self.remote = remote
        self.orchestrator = SubmissionOrchestrator(self.local, self.remote)

    async def start(self) -> None:
        if self.sqlite:
            self.sqlite.init()
        removed = self.orchestrator.cleanup_old_daily_boards()
        logger.info(f"Leaderboard service started (removed {removed} stale daily boards)")

    async def stop(self) -> None:
        await self.orchestrator.wait_pending()
        if self.remote:
            await self.remote.close()
        if self.sqlite:
            self.sqlite.close()

    def version_payload(self) -> dict[str, Any]:
        return {
            "serviceVersion": self.config.service_version,
            "remoteEnabled": self.remote is not None,
        }


def _cors_headers(config: LeaderboardConfig, origin: str | None) -> dict[str, str]:
    if not origin:
        return {}
    if config.cors_allow_all:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    if origin in config.cors_allowed_origins:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        origin = request.headers.get("Origin")
        headers = {
            **_cors_headers(request.app["config"], origin),
            "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Max-Age": "86400",
        }
        return web.Response(status=204, headers=headers)

    resp = await handler(request)
    for k, v in _cors_headers(request.app["config"], request.headers.get("Origin")).items():
        resp.headers[k] = v
    return resp


def _limit(request: web.Request, default: int = 10) -> int:
    raw = request.query.get("limit")
    if raw is None:
        return default
    try:
        v = int(raw)
    except ValueError:
        raise web.HTTPBadRequest(text="limit must be an integer")
    return max(1, min(MAX_LIMIT, v))


def _date(request: web.Request) -> str | None:
    d = request.query.get("date")
    if d is not None and not is_date_string(d):
        raise web.HTTPBadRequest(text="date must be YYYY-MM-DD")
    return d


def _fetch_payload(result: FetchResult) -> dict[str, Any]:
    return {
        "entries": [e.to_dict() for e in result.entries],
        "totalCount": result.total_count,
        "error": result.error,
    }


def create_app(config: LeaderboardConfig, svc: LeaderboardService | None = None) -> web.Application:
    app = web.Application(middlewares=[cors_middleware])
    svc = svc or LeaderboardService(config)

    app["config"] = config
    app["svc"] = svc
    orch = svc.orchestrator

    async def on_startup(_: web.Application):
        await svc.start()

    async def on_cleanup(_: web.Application):
        await svc.stop()

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)

    async def health(_: web.Request):
        return web.json_response(
            {
                "ok": True,
                "uptimeSec": time.time() - svc.start_time,
                "pendingMirrors": len(orch.pending),
                "lastWriteAt": svc.local.kv.updated_at(config.storage_key),
                **svc.version_payload(),
            }
        )

    async def root(_: web.Request):
        return web.json_response(
            {
                "ok": True,
                "service": "runboard",
                **svc.version_payload(),
                "endpoints": {
                    "health": "/health",
                    "scores": "/scores",
                    "daily": "/leaderboard/daily",
                    "allTime": "/leaderboard/all-time",
                    "recent": "/leaderboard/recent",
                    "personalBests": "/personal-bests",
                    "player": "/player",
                    "onlineAllTime": "/online/all-time",
                    "onlineDaily": "/online/daily",
                    "onlineRank": "/online/rank",
                },
            }
        )

    async def submit(request: web.Request):
        try:
            body = protocol.loads(await request.text())
            run = RunSummary.parse(body)
        except ProtocolError as e:
            raise web.HTTPBadRequest(text=str(e))
        name = body.get("playerName")
        result = orch.submit_score(run, player_name=name if isinstance(name, str) else None)
        return web.json_response(result.to_dict())

    async def daily(request: web.Request):
        entries = orch.get_daily_leaderboard(_date(request), _limit(request))
        return web.json_response({"entries": [e.to_dict() for e in entries]})

    async def all_time(request: web.Request):
        entries = orch.get_all_time_leaderboard(_limit(request))
        return web.json_response({"entries": [e.to_dict() for e in entries]})

    async def recent(request: web.Request):
        days = orch.get_recent_high_scores(_limit(request, default=3))
        return web.json_response(
            {"days": [{"date": d, "entries": [e.to_dict() for e in entries]} for d, entries in days]}
        )

    async def personal_bests(_: web.Request):
        bests = orch.get_personal_bests()
        return web.json_response({"personal": {c: pb.to_dict() for c, pb in bests.items()}})

    async def character_best(request: web.Request):
        pb = orch.get_character_personal_best(request.match_info["character"])
        if pb is None:
            raise web.HTTPNotFound(text="no runs for character")
        return web.json_response(pb.to_dict())

    async def player(request: web.Request):
        name = request.query.get("name")
        best = orch.get_player_best_entry(name)
        return web.json_response(
            {
                "name": orch.player_name(name),
                "dailyRank": orch.get_player_daily_rank(_date(request), name),
                "allTimeRank": orch.get_player_all_time_rank(name),
                "best": best.to_dict() if best else None,
            }
        )

    async def online_all_time(request: web.Request):
        return web.json_response(_fetch_payload(await orch.get_online_leaderboard(_limit(request))))

    async def online_daily(request: web.Request):
        result = await orch.get_daily_online_leaderboard(_limit(request), _date(request))
        return web.json_response(_fetch_payload(result))

    async def online_rank(request: web.Request):
        try:
            score = int(request.query.get("score", ""))
        except ValueError:
            raise web.HTTPBadRequest(text="score must be an integer")
        result = await orch.get_global_rank(request.query.get("name"), score)
        return web.json_response({"rank": result.rank, "total": result.total, "error": result.error})

    app.router.add_get("/", root)
    app.router.add_get("/health", health)
    app.router.add_post("/scores", submit)
    app.router.add_get("/leaderboard/daily", daily)
    app.router.add_get("/leaderboard/all-time", all_time)
    app.router.add_get("/leaderboard/recent", recent)
    app.router.add_get("/personal-bests", personal_bests)
    app.router.add_get("/personal-bests/{character}", character_best)
    app.router.add_get("/player", player)
    app.router.add_get("/online/all-time", online_all_time)
    app.router.add_get("/online/daily", online_daily)
    app.router.add_get("/online/rank", online_rank)
    async def preflight(_: web.Request):
        return web.Response(status=204)

    app.router.add_route("OPTIONS", "/{tail:.*}", preflight)

    return app


def main() -> None:
    config = LeaderboardConfig.from_env()
    setup_logging(config.debug)
    app = create_app(config)
    web.run_app(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
