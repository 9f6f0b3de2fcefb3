"""
Key-value persistence for banks and progress.

Provides:
- KeyValueStore protocol (get / set / remove on string values)
- MemoryKeyValueStore for tests and throwaway sessions
- SqliteKeyValueStore, a portable single-file store (~/.mcqbank/state.db)
- FaultTolerantStore, which turns storage failures into absence / no-op

Callers above this layer never see storage exceptions.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal string key-value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Dictionary-backed store. Nothing survives the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SqliteKeyValueStore:
    """
    SQLite-backed key-value store.

    One table, one row per key. Values are opaque strings (JSON documents
    in practice).
    """

    DEFAULT_DB_PATH = Path.home() / ".mcqbank" / "state.db"

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the store.

        Args:
            db_path: Custom database path (defaults to ~/.mcqbank/state.db)
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.debug(f"SqliteKeyValueStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
        return self._conn

    def _init_schema(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.commit()

    def get(self, key: str) -> str | None:
        row = self.conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self.conn.execute(
            """
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = CURRENT_TIMESTAMP
        """,
            (key, value),
        )
        self.conn.commit()

    def remove(self, key: str) -> None:
        self.conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None


class FaultTolerantStore:
    """
    Wrapper that never lets a storage failure reach the caller.

    Read failures look like absence, write failures are logged and dropped.
    """

    def __init__(self, inner: KeyValueStore):
        self.inner = inner

    def get(self, key: str) -> str | None:
        try:
            return self.inner.get(key)
        except Exception as e:
            logger.warning(f"Storage read failed for {key!r}: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        try:
            self.inner.set(key, value)
        except Exception as e:
            logger.error(f"Storage write failed for {key!r}: {e}")

    def remove(self, key: str) -> None:
        try:
            self.inner.remove(key)
        except Exception as e:
            logger.error(f"Storage remove failed for {key!r}: {e}")


def guarded(store: KeyValueStore) -> FaultTolerantStore:
    """Wrap ``store`` unless it is already fault tolerant."""
    if isinstance(store, FaultTolerantStore):
        return store
    return FaultTolerantStore(store)
