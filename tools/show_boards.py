"""Print the local leaderboards stored in the sqlite database.

Usage:
  python tools/show_boards.py --db runboard.sqlite3 [--daily 2026-01-18] [--limit 10] [--cleanup]
"""

from __future__ import annotations

import argparse
import os

from runboard.boards.local import LocalLeaderboardStore
from runboard.config import LeaderboardConfig
from runboard.scoring import format_score, format_time
from runboard.storage.sqlite import SqliteStore


def _print_board(title: str, entries) -> None:
    print(title)
    if not entries:
        print("  (empty)")
    for i, e in enumerate(entries, start=1):
        print(f"  {i:>3}. {e.name:<20} {format_score(e.score):>9}  F{e.floor:<3} {e.character:<10} {format_time(e.duration_seconds)}")


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--db", default=LeaderboardConfig.sqlite_path)
    ap.add_argument("--daily", help="date (YYYY-MM-DD) of a daily board to print")
    ap.add_argument("--limit", type=int, default=10)
    ap.add_argument("--cleanup", action="store_true", help="drop daily boards past retention first")
    args = ap.parse_args()

    if not os.path.exists(args.db):
        print(f"No database at {args.db}")
        return 1

    config = LeaderboardConfig.from_env()
    kv = SqliteStore(args.db)
    kv.init()
    try:
        store = LocalLeaderboardStore.from_config(config, kv)
        if args.cleanup:
            print(f"Removed {store.cleanup_old_daily_boards()} old daily boards")
        if args.daily:
            _print_board(f"Daily {args.daily}", store.get_daily_board(args.daily, args.limit))
        _print_board("All-time", store.get_all_time_board(args.limit))
        print("Personal bests")
        for character, pb in sorted(store.get_personal_bests().items()):
            print(f"  {character:<10} {format_score(pb.best_score):>9}  F{pb.best_floor:<3} {format_time(pb.best_time_seconds)}")
    finally:
        kv.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
