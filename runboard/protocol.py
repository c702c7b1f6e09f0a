"""Run summaries, score entries, and the remote board wire format.

Remote entry text field:
  "{floor}|{character}|{date}"
"""

from __future__ import annotations

import json
import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any


DEFAULT_NAME = "Anonymous"
DEFAULT_CHARACTER = "survivor"
MAX_NAME_LEN = 20

_NAME_STRIP = re.compile(r"[^a-zA-Z0-9_-]")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ProtocolError(Exception):
    pass


def loads(text: str) -> dict[str, Any]:
    try:
        obj = json.loads(text)
    except Exception as e:
        raise ProtocolError(f"invalid json: {e}")
    if not isinstance(obj, dict):
        raise ProtocolError("payload must be object")
    return obj


def _num(v: Any, *, default: float = 0.0) -> float:
    try:
        f = float(v)
    except Exception:
        return default
    if not math.isfinite(f):
        return default
    return f


def _is_non_finite(v: Any) -> bool:
    try:
        return not math.isfinite(float(v))
    except Exception:
        return False


def _int(v: Any, *, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return default


def utc_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def is_date_string(v: Any) -> bool:
    if not isinstance(v, str) or not _DATE_RE.match(v):
        return False
    try:
        date.fromisoformat(v)
    except ValueError:
        return False
    return True


def sanitize_name(name: str | None) -> str:
    """Keep letters, digits, `_` and `-`; at most 20 chars; never empty."""
    if not name:
        return DEFAULT_NAME
    cleaned = _NAME_STRIP.sub("", str(name))[:MAX_NAME_LEN]
    return cleaned or DEFAULT_NAME


@dataclass
class RunSummary:
    floors_reached: int = 1
    enemies_killed: int = 0
    bosses_killed: int = 0
    duration_seconds: float = 0.0
    character: str = DEFAULT_CHARACTER
    is_daily: bool = False
    date: str | None = None

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "RunSummary":
        if not isinstance(data, dict):
            raise ProtocolError("run summary must be object")
        floors = _int(data.get("floorsReached"), default=1)
        character = data.get("character")
        if not isinstance(character, str) or not character:
            character = DEFAULT_CHARACTER
        d = data.get("date")
        if d is not None and not is_date_string(d):
            raise ProtocolError("date must be YYYY-MM-DD")
        if _is_non_finite(data.get("durationSeconds")):
            raise ProtocolError("durationSeconds must be finite")
        return cls(
            floors_reached=max(1, floors),
            enemies_killed=max(0, _int(data.get("enemiesKilled"))),
            bosses_killed=max(0, _int(data.get("bossesKilled"))),
            duration_seconds=max(0.0, _num(data.get("durationSeconds"))),
            character=character,
            is_daily=bool(data.get("isDaily", False)),
            date=d,
        )


@dataclass(frozen=True)
class ScoreEntry:
    name: str
    score: int
    floor: int
    character: str
    duration_seconds: int
    date: str
    submitted_at: float = 0.0
    entry_id: str = ""

    @classmethod
    def create(
        cls,
        *,
        name: str | None,
        score: int,
        floor: int,
        character: str,
        duration_seconds: float,
        date: str,
        submitted_at: float,
    ) -> "ScoreEntry":
        return cls(
            name=sanitize_name(name),
            score=max(0, int(score)),
            floor=max(1, int(floor)),
            character=character or DEFAULT_CHARACTER,
            duration_seconds=max(0, _int(duration_seconds)),
            date=date,
            submitted_at=submitted_at,
            entry_id=uuid.uuid4().hex,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entry_id,
            "name": self.name,
            "score": self.score,
            "floor": self.floor,
            "character": self.character,
            "durationSeconds": self.duration_seconds,
            "date": self.date,
            "submittedAt": self.submitted_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreEntry":
        if not isinstance(data, dict):
            raise ProtocolError("entry must be object")
        return cls(
            name=str(data.get("name") or DEFAULT_NAME),
            score=_int(data.get("score")),
            floor=_int(data.get("floor"), default=1),
            character=str(data.get("character") or DEFAULT_CHARACTER),
            duration_seconds=_int(data.get("durationSeconds")),
            date=str(data.get("date") or ""),
            submitted_at=_num(data.get("submittedAt")),
            entry_id=str(data.get("id") or ""),
        )


@dataclass
class PersonalBest:
    best_score: int = 0
    best_floor: int = 0
    best_time_seconds: float = field(default=math.inf)

    def to_dict(self) -> dict[str, Any]:
        # JSON has no infinity; "no qualifying time yet" is stored as null.
        t = None if math.isinf(self.best_time_seconds) else self.best_time_seconds
        return {"bestScore": self.best_score, "bestFloor": self.best_floor, "bestTimeSeconds": t}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PersonalBest":
        if not isinstance(data, dict):
            raise ProtocolError("personal best must be object")
        t = data.get("bestTimeSeconds")
        return cls(
            best_score=_int(data.get("bestScore")),
            best_floor=_int(data.get("bestFloor")),
            best_time_seconds=math.inf if t is None else _num(t, default=math.inf),
        )


def encode_entry_text(floor: int, character: str, date: str) -> str:
    return f"{floor or 1}|{character or 'unknown'}|{date or ''}"


def decode_entry_text(text: str | None) -> tuple[int, str, str]:
    parts = (text or "").split("|")
    floor = _int(parts[0], default=1) or 1
    character = parts[1] if len(parts) > 1 and parts[1] else DEFAULT_CHARACTER
    d = parts[2] if len(parts) > 2 else ""
    return floor, character, d


def parse_remote_entry(raw: dict[str, Any]) -> ScoreEntry:
    if not isinstance(raw, dict):
        raise ProtocolError("board entry must be object")
    floor, character, d = decode_entry_text(raw.get("text"))
    return ScoreEntry(
        name=str(raw.get("name") or DEFAULT_NAME),
        score=_int(raw.get("score")),
        floor=floor,
        character=character,
        duration_seconds=_int(raw.get("seconds")),
        date=d,
    )


def parse_board_payload(obj: Any) -> list[ScoreEntry]:
    """Entries of a `{"dreamlo": {"leaderboard": {"entry": ...}}}` payload.

    `entry` is a single object when the board holds exactly one score.
    """
    if not isinstance(obj, dict):
        raise ProtocolError("board payload must be object")
    root = obj.get("dreamlo")
    board = root.get("leaderboard") if isinstance(root, dict) else None
    raw = board.get("entry") if isinstance(board, dict) else None
    if not raw:
        return []
    if isinstance(raw, list):
        return [parse_remote_entry(r) for r in raw]
    return [parse_remote_entry(raw)]
