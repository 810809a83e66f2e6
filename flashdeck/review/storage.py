"""
SQLite Key-Value Store for flashdeck.

Holds JSON blobs under string keys:
- the card collection
- the active session snapshot
- the session completion timestamp

Database location: ~/.flashdeck/flashdeck.db
"""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any

from loguru import logger

from .errors import StoreUnavailable


class KeyValueStore:
    """
    SQLite-backed key-value persistence.

    Values are stored as JSON text; anything ``json.dumps`` accepts can be
    written and is returned unchanged by ``get``.
    """

    DEFAULT_DB_PATH = Path.home() / ".flashdeck" / "flashdeck.db"

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the key-value store.

        Args:
            db_path: Custom database path (defaults to ~/.flashdeck/flashdeck.db)
        """
        self.db_path = db_path or self.DEFAULT_DB_PATH
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_schema()
        except (OSError, sqlite3.Error) as exc:
            raise StoreUnavailable(f"Cannot open key-value store at {self.db_path}") from exc

        logger.info(f"KeyValueStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            # Card I/O runs in a worker thread, session I/O on the caller's
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        return self._conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        self.conn.commit()

    def get(self, key: str) -> Any | None:
        """
        Read the value stored under a key.

        Args:
            key: Storage key

        Returns:
            Decoded JSON value, or None if the key is absent

        Raises:
            StoreUnavailable: On database errors or undecodable values
        """
        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
            if row is None:
                return None
            return json.loads(row[0])
        except (sqlite3.Error, json.JSONDecodeError) as exc:
            raise StoreUnavailable(f"Cannot read key {key!r}") from exc

    def set(self, key: str, value: Any) -> None:
        """
        Store a JSON-serializable value under a key.

        Raises:
            StoreUnavailable: On database errors or unserializable values
        """
        try:
            payload = json.dumps(value)
            with self._lock:
                self.conn.execute(
                    """
                    INSERT INTO kv_store (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                    (key, payload),
                )
                self.conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as exc:
            raise StoreUnavailable(f"Cannot write key {key!r}") from exc

    def delete(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""
        try:
            with self._lock:
                self.conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                self.conn.commit()
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Cannot delete key {key!r}") from exc

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
