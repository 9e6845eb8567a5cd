"""
Durable key/value store backed by SQLite.

Holds every piece of state that must survive a process restart: the
consumption history and the per-room device toggle state. Values are
opaque strings (callers store JSON). The store is a single SQLite file
in WAL mode, so a crash between writes never leaves a half-written value.

Operations:
- get(key): SELECT the value for a key, ``None`` when absent.
- set(key, value): UPSERT a value, overwriting any previous one.
- remove(key): DELETE a key (missing keys are a no-op).
- keys(): SELECT all stored keys in insertion order.
- close(): Close the underlying database connection.

All operations are serialized with a lock so the async layer can run
them on worker threads via ``asyncio.to_thread``.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-103)

TODO:
- None
"""

import sqlite3
import threading
from pathlib import Path

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_UPSERT_SQL = """\
INSERT INTO kv (key, value) VALUES (:key, :value)
ON CONFLICT(key) DO UPDATE SET
    value = excluded.value,
    updated_at = datetime('now');
"""

_GET_SQL = "SELECT value FROM kv WHERE key = :key;"

_DELETE_SQL = "DELETE FROM kv WHERE key = :key;"

_KEYS_SQL = "SELECT key FROM kv ORDER BY rowid ASC;"


class KeyValueStore:
    """Durable string key/value store backed by a SQLite database.

    Args:
        path: Filesystem path for the SQLite database file.
              Accepts ``str`` or ``pathlib.Path``.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(self._path), check_same_thread=False
        )
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute(_CREATE_TABLE_SQL)
        self._conn.commit()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None`` if absent.

        Args:
            key: Namespaced key (e.g. ``"@consumptionHistory"``).
        """
        with self._lock:
            row = self._conn.execute(_GET_SQL, {"key": key}).fetchone()
        return None if row is None else row[0]

    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, overwriting any previous value.

        Args:
            key: Namespaced key.
            value: String value, usually JSON.
        """
        with self._lock:
            self._conn.execute(_UPSERT_SQL, {"key": key, "value": value})
            self._conn.commit()

    def remove(self, key: str) -> None:
        """Delete *key*. Removing a key that does not exist is a no-op."""
        with self._lock:
            self._conn.execute(_DELETE_SQL, {"key": key})
            self._conn.commit()

    def keys(self) -> list[str]:
        """Return all stored keys, oldest first."""
        with self._lock:
            cursor = self._conn.execute(_KEYS_SQL)
            return [row[0] for row in cursor.fetchall()]

    def close(self) -> None:
        """Close the underlying SQLite connection.

        After calling close, no further operations should be performed
        on this store.
        """
        with self._lock:
            self._conn.close()
