"""SQLite auth persistence adapter.

Keeps the PocketBase auth token and auth record between runs so the user does
not have to log in every time a room is opened.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional

TOKEN_KEY = "auth_token"
RECORD_KEY = "auth_record"


class SQLiteAuthStore:
    """Thin SQLite key/value wrapper for auth state."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the auth_state table if it does not exist.

        Fields:
        - key: TOKEN_KEY or RECORD_KEY (PRIMARY KEY)
        - value: raw token, or the auth record as JSON
        - updated_at: last write, for debugging stale sessions
        """

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS auth_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )

    def save(self, token: str, record: dict[str, Any]) -> None:
        """Upsert the token and record; an empty token clears both."""

        if not token:
            self.clear()
            return

        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO auth_state (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                [
                    (TOKEN_KEY, token, now),
                    (RECORD_KEY, json.dumps(record), now),
                ],
            )

    def load(self) -> Optional[tuple[str, dict[str, Any]]]:
        """Return (token, record) if both are stored and readable."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT key, value FROM auth_state WHERE key IN (?, ?)",
                (TOKEN_KEY, RECORD_KEY),
            ).fetchall()
        values = {row["key"]: row["value"] for row in rows}
        token = values.get(TOKEN_KEY)
        raw_record = values.get(RECORD_KEY)
        if not token or not raw_record:
            return None
        try:
            record = json.loads(raw_record)
        except json.JSONDecodeError:
            return None
        if not isinstance(record, dict):
            return None
        return token, record

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM auth_state")
