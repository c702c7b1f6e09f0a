"""SQLite key-value persistence for leaderboard records."""

from __future__ import annotations

import sqlite3
import time


class SqliteStore:
    def __init__(self, path: str):
        self.path = path
        self.conn: sqlite3.Connection | None = None

    def init(self) -> None:
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
              key TEXT PRIMARY KEY,
              value TEXT NOT NULL,
              updated_at REAL NOT NULL
            )
            """
        )
        self.conn.commit()

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def get(self, key: str) -> str | None:
        if not self.conn:
            return None
        row = self.conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        if not self.conn:
            raise sqlite3.ProgrammingError("store not initialized")
        self.conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
              value=excluded.value,
              updated_at=excluded.updated_at
            """,
            (key, str(value), time.time()),
        )
        self.conn.commit()

    def delete(self, key: str) -> None:
        if not self.conn:
            return
        self.conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self.conn.commit()

    def updated_at(self, key: str) -> float | None:
        if not self.conn:
            return None
        row = self.conn.execute("SELECT updated_at FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None
