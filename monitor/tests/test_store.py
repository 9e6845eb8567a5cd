"""
Unit tests for the SQLite key/value store.

Tests verify:
- Store creates a SQLite DB with WAL mode at the configured path.
- get/set/remove behave as a string key/value map.
- set overwrites existing values without reordering keys.
- Values survive closing and reopening the store (process restart).

CHANGELOG:
- 2026-10-19: Initial creation (STORY-103)

TODO:
- None
"""

import sqlite3
from pathlib import Path

from monitor.src.store import KeyValueStore


class TestStoreCreation:
    """Store creates a SQLite database with WAL journal mode."""

    def test_creates_db_file_at_configured_path(self, tmp_path: Path) -> None:
        """The database file exists after construction."""
        db_path = tmp_path / "kv.db"
        kv = KeyValueStore(db_path)

        assert db_path.exists()
        kv.close()

    def test_wal_mode_enabled(self, tmp_path: Path) -> None:
        """WAL journal mode is set on the database."""
        db_path = tmp_path / "wal.db"
        kv = KeyValueStore(db_path)

        conn = sqlite3.connect(str(db_path))
        journal_mode = conn.execute("PRAGMA journal_mode;").fetchone()[0]
        conn.close()

        assert journal_mode == "wal"
        kv.close()

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        """Constructor accepts str paths."""
        db_path = str(tmp_path / "str.db")
        kv = KeyValueStore(db_path)

        assert Path(db_path).exists()
        kv.close()


class TestGetSetRemove:
    """Basic key/value operations."""

    def test_get_missing_key_returns_none(self, store: KeyValueStore) -> None:
        """An absent key reads as None."""
        assert store.get("@missing") is None

    def test_set_then_get(self, store: KeyValueStore) -> None:
        """A stored value is read back unchanged."""
        store.set("@consumptionHistory", "[1.5, 2.25]")
        assert store.get("@consumptionHistory") == "[1.5, 2.25]"

    def test_set_overwrites(self, store: KeyValueStore) -> None:
        """Setting an existing key replaces its value."""
        store.set("k", "old")
        store.set("k", "new")
        assert store.get("k") == "new"

    def test_overwrite_keeps_key_order(self, store: KeyValueStore) -> None:
        """Overwriting a key does not move it to the end of keys()."""
        store.set("a", "1")
        store.set("b", "2")
        store.set("a", "3")
        assert store.keys() == ["a", "b"]

    def test_remove(self, store: KeyValueStore) -> None:
        """A removed key reads as None."""
        store.set("k", "v")
        store.remove("k")
        assert store.get("k") is None
        assert store.keys() == []

    def test_remove_missing_key_is_noop(self, store: KeyValueStore) -> None:
        """Removing an absent key does not raise."""
        store.remove("never-set")
        assert store.keys() == []


class TestPersistenceAcrossRestarts:
    """Data survives closing and reopening the database file."""

    def test_values_survive_reopen(self, tmp_path: Path) -> None:
        """A new store on the same file sees earlier writes."""
        db_path = tmp_path / "restart.db"
        kv = KeyValueStore(db_path)
        kv.set("@consumptionHistory", "[3.0]")
        kv.close()

        reopened = KeyValueStore(db_path)
        assert reopened.get("@consumptionHistory") == "[3.0]"
        reopened.close()
