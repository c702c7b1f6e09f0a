"""Run score formula and display formatting."""

from __future__ import annotations

import math

from runboard.protocol import RunSummary


FLOOR_POINTS = 1000
ENEMY_POINTS = 10
BOSS_POINTS = 500
# Time bonus starts at 30000 and loses 50 points per second.
TIME_BONUS_MAX = 30000
TIME_BONUS_DECAY_PER_SEC = 50


def calculate_score(stats: RunSummary) -> int:
    floors = max(1, int(stats.floors_reached or 1))
    kills = max(0, int(stats.enemies_killed or 0))
    bosses = max(0, int(stats.bosses_killed or 0))
    duration = max(0.0, float(stats.duration_seconds or 0))

    if math.isfinite(duration):
        time_bonus = max(0, TIME_BONUS_MAX - math.floor(duration * TIME_BONUS_DECAY_PER_SEC))
    else:
        time_bonus = 0
    return floors * FLOOR_POINTS + kills * ENEMY_POINTS + bosses * BOSS_POINTS + time_bonus


def format_score(score: int | None) -> str:
    return f"{int(score or 0):,}"


def format_time(seconds: float | None) -> str:
    if seconds is None or math.isinf(seconds) or math.isnan(seconds):
        return "--:--"
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"
