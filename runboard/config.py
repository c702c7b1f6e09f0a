"""Board caps, storage, remote endpoints, credentials."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field


BOARD_TYPES = ("allTime", "daily")


@dataclass(frozen=True)
class BoardCredentials:
    boardType: str
    publicKey: str = ""
    privateKey: str = ""


@dataclass
class LeaderboardConfig:
    # Versions
    service_version: str = "0.1.0"

    # Network
    host: str = "0.0.0.0"
    port: int = 8766
    cors_allow_all: bool = True
    cors_allowed_origins: list[str] = field(default_factory=list)

    debug: bool = False

    # Local boards
    max_daily_entries: int = 100
    max_alltime_entries: int = 100
    daily_retention_days: int = 30
    # Best time only counts from this floor on.
    best_time_min_floor: int = 3
    storage_key: str = "runboard.leaderboards"

    # Persistence
    sqlite_enabled: bool = True
    sqlite_path: str = "runboard.sqlite3"

    # Remote mirror
    remote_enabled: bool = True
    remote_base_url: str = "http://dreamlo.com/lb"
    # The remote only speaks plain http; requests go through this relay.
    relay_url: str = "https://corsproxy.io/?"
    request_timeout_sec: float = 5.0
    cache_ttl_sec: float = 60.0
    max_reasonable_score: int = 200000
    fetch_all_limit: int = 1000

    boards: dict[str, BoardCredentials] = field(default_factory=dict)

    def __post_init__(self):
        for board_type in BOARD_TYPES:
            if board_type not in self.boards:
                self.boards[board_type] = BoardCredentials(boardType=board_type)

    def board(self, board_type: str) -> BoardCredentials | None:
        return self.boards.get(board_type)

    @staticmethod
    def _parse_bool(v: str | None, default: bool) -> bool:
        if v is None:
            return default
        return v.strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _parse_int(v: str | None, default: int) -> int:
        if not v:
            return default
        try:
            return int(v)
        except ValueError:
            return default

    @staticmethod
    def _parse_float(v: str | None, default: float) -> float:
        if not v:
            return default
        try:
            return float(v)
        except ValueError:
            return default

    @classmethod
    def from_env(cls) -> "LeaderboardConfig":
        cfg = cls()
        cfg.host = os.environ.get("RUNBOARD_HOST", cfg.host)
        cfg.port = cls._parse_int(os.environ.get("RUNBOARD_PORT"), cfg.port)
        cfg.debug = cls._parse_bool(os.environ.get("RUNBOARD_DEBUG"), cfg.debug)
        cfg.cors_allow_all = cls._parse_bool(os.environ.get("RUNBOARD_CORS_ALLOW_ALL"), cfg.cors_allow_all)
        origins = os.environ.get("RUNBOARD_CORS_ORIGINS")
        if origins:
            cfg.cors_allowed_origins = [o.strip() for o in origins.split(",") if o.strip()]

        cfg.sqlite_enabled = cls._parse_bool(os.environ.get("RUNBOARD_SQLITE"), cfg.sqlite_enabled)
        cfg.sqlite_path = os.environ.get("RUNBOARD_SQLITE_PATH", cfg.sqlite_path)

        cfg.remote_enabled = cls._parse_bool(os.environ.get("RUNBOARD_REMOTE"), cfg.remote_enabled)
        cfg.remote_base_url = os.environ.get("RUNBOARD_REMOTE_BASE_URL", cfg.remote_base_url)
        # An empty relay means direct requests.
        cfg.relay_url = os.environ.get("RUNBOARD_RELAY_URL", cfg.relay_url)
        cfg.request_timeout_sec = cls._parse_float(os.environ.get("RUNBOARD_REQUEST_TIMEOUT"), cfg.request_timeout_sec)
        cfg.cache_ttl_sec = cls._parse_float(os.environ.get("RUNBOARD_CACHE_TTL"), cfg.cache_ttl_sec)

        for board_type, prefix in (("allTime", "RUNBOARD_ALLTIME"), ("daily", "RUNBOARD_DAILY")):
            cur = cfg.boards[board_type]
            cfg.boards[board_type] = BoardCredentials(
                boardType=board_type,
                publicKey=os.environ.get(f"{prefix}_PUBLIC_KEY", cur.publicKey),
                privateKey=os.environ.get(f"{prefix}_PRIVATE_KEY", cur.privateKey),
            )

        constants_path = os.environ.get("RUNBOARD_CONSTANTS")
        if constants_path and os.path.exists(constants_path):
            cfg.load_constants(constants_path)

        return cfg

    def load_constants(self, path: str) -> None:
        """Override caps and board credentials from a JSON file.

        Unknown keys are ignored; a malformed file leaves the config untouched.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return
        if not isinstance(data, dict):
            return

        for key, attr in (
            ("maxDailyEntries", "max_daily_entries"),
            ("maxAllTimeEntries", "max_alltime_entries"),
            ("dailyRetentionDays", "daily_retention_days"),
            ("bestTimeMinFloor", "best_time_min_floor"),
            ("maxReasonableScore", "max_reasonable_score"),
        ):
            if key in data:
                try:
                    setattr(self, attr, int(data[key]))
                except (TypeError, ValueError):
                    pass

        for b in data.get("boards", []):
            if isinstance(b, dict) and b.get("boardType") in BOARD_TYPES:
                self.boards[b["boardType"]] = BoardCredentials(
                    boardType=b["boardType"],
                    publicKey=str(b.get("publicKey", "")),
                    privateKey=str(b.get("privateKey", "")),
                )
