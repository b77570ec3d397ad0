"""SQLite key-value backend for persisted triage state."""

import asyncio
import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class SqliteStore:
    """SQLite-based key-value store.

    Each key maps to one JSON document. Calls run in a worker thread so the
    event loop delivering network events never blocks on disk I/O.
    """

    def __init__(self, db_path: str | Path):
        """Initialize storage with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()

    def _initialize_db(self) -> None:
        """Create the kv table if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)
            conn.commit()

    def _get_sync(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}
        placeholders = ",".join("?" for _ in keys)
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT key, value FROM kv WHERE key IN ({placeholders})",  # noqa: S608
                keys,
            ).fetchall()
        return {key: json.loads(value) for key, value in rows}

    def _set_sync(self, items: dict[str, Any]) -> None:
        now = datetime.now(UTC).isoformat()
        with sqlite3.connect(self.db_path) as conn:
            conn.executemany(
                """
                INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               updated_at = excluded.updated_at
                """,
                [(key, json.dumps(value), now) for key, value in items.items()],
            )
            conn.commit()

    async def get(self, keys: list[str]) -> dict[str, Any]:
        """Read JSON documents for the given keys.

        Args:
            keys: Keys to read

        Returns:
            Mapping of found keys to decoded values
        """
        return await asyncio.to_thread(self._get_sync, list(keys))

    async def set(self, items: dict[str, Any]) -> None:
        """Upsert JSON documents.

        Args:
            items: Mapping of keys to JSON-serializable values
        """
        await asyncio.to_thread(self._set_sync, dict(items))
