"""SQLite store for the persisted reader state blob."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Optional

from quire.errors import PersistenceError

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS app_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at REAL NOT NULL
);
"""


class Database:
    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        try:
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._init_schema()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open state database {db_path}: {e}") from e

    def _init_schema(self) -> None:
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    # ── State blob ─────────────────────────────────────

    def save_state(self, key: str, state: dict[str, Any]) -> None:
        """Replace the blob stored under ``key`` in a single transaction."""
        try:
            payload = json.dumps(state, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"State is not serialisable: {e}") from e

        try:
            with self._conn:
                self._conn.execute(
                    """INSERT OR REPLACE INTO app_state (key, value, updated_at)
                       VALUES (?, ?, ?)""",
                    (key, payload, time.time()),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save state {key!r}: {e}") from e
        log.debug("Saved state %r (%d bytes)", key, len(payload))

    def load_state(self, key: str) -> Optional[dict[str, Any]]:
        try:
            row = self._conn.execute(
                "SELECT value FROM app_state WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load state {key!r}: {e}") from e
        if not row:
            return None

        try:
            state = json.loads(row["value"])
        except ValueError as e:
            raise PersistenceError(f"Saved state {key!r} is corrupt: {e}") from e
        if not isinstance(state, dict):
            raise PersistenceError(f"Saved state {key!r} is not an object")
        return state

    def delete_state(self, key: str) -> None:
        try:
            with self._conn:
                self._conn.execute("DELETE FROM app_state WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to delete state {key!r}: {e}") from e
