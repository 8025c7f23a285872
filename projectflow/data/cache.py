"""
ProjectFlow — Durable Cache.

A persistent key/value mirror of application state that survives restarts,
used as the fallback data source when the REST API is unreachable.
Values are stored as JSON under namespaced keys in a small SQLite table.

The cache is best-effort: writes that cannot be serialized are skipped, reads
of missing or corrupt values return None, and nothing is atomic across keys.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from pydantic_core import PydanticSerializationError, to_jsonable_python

logger = logging.getLogger(__name__)

# Every slice of state the store mirrors.
CACHE_KEYS = (
    "user",
    "projects",
    "tasks",
    "notifications",
    "activities",
    "customers",
    "timeEntries",
    "incomes",
    "activeTimer",
    "theme",
    "locale",
    "accessibilitySettings",
)


class DurableCache:
    """SQLite-backed storage for serialized state slices."""

    def __init__(self, db_path: str | None = None, namespace: str | None = None) -> None:
        if db_path is None or namespace is None:
            from projectflow.config import settings
            db_path = db_path or settings.CACHE_PATH
            namespace = namespace or settings.CACHE_NAMESPACE

        self._db_path = db_path
        self._namespace = namespace
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._memory_conn: sqlite3.Connection | None = None
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._db_path == ":memory:":
            # A fresh :memory: connection would be a fresh, empty database.
            if self._memory_conn is None:
                self._memory_conn = sqlite3.connect(":memory:")
            return self._memory_conn
        return sqlite3.connect(self._db_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cache (
                    key        TEXT PRIMARY KEY,
                    value      TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)
        logger.debug("Cache table initialized at %s", self._db_path)

    def _full_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def set(self, key: str, value: Any) -> None:
        """Serialize and store a value. Unserializable values are skipped."""
        try:
            payload = json.dumps(to_jsonable_python(value, by_alias=True))
        except (PydanticSerializationError, TypeError, ValueError) as exc:
            logger.error("Skipping cache write for '%s': %s", key, exc)
            return

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO cache (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (self._full_key(key), payload),
            )
        logger.debug("Cache write: %s", key)

    def get(self, key: str) -> Any | None:
        """Return the decoded value for key, or None if absent or corrupt."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM cache WHERE key = ?", (self._full_key(key),)
            ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as exc:
            logger.warning("Corrupt cache value for '%s': %s", key, exc)
            return None

    def delete(self, key: str) -> bool:
        """Remove a single key. Returns True if something was removed."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM cache WHERE key = ?", (self._full_key(key),)
            )
        return cursor.rowcount > 0

    def keys(self) -> list[str]:
        """List stored keys (without the namespace prefix)."""
        prefix = f"{self._namespace}:"
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT key FROM cache WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [r[0][len(prefix):] for r in rows]

    def clear(self) -> None:
        """Remove every key in this cache's namespace."""
        prefix = f"{self._namespace}:"
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM cache WHERE substr(key, 1, ?) = ?", (len(prefix), prefix)
            )
        logger.info("Cache cleared (%d keys)", cursor.rowcount)

    def snapshot(self) -> dict[str, Any]:
        """Return every known key that currently holds a value."""
        result: dict[str, Any] = {}
        for key in CACHE_KEYS:
            value = self.get(key)
            if value is not None:
                result[key] = value
        return result
