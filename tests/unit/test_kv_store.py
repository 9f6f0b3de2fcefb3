"""
Unit tests for key-value stores.
"""

import pytest

from mcqbank.core.kv_store import (
    FaultTolerantStore,
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    guarded,
)


class BrokenStore:
    """Store whose every operation fails."""

    def get(self, key):
        raise OSError("disk on fire")

    def set(self, key, value):
        raise OSError("disk on fire")

    def remove(self, key):
        raise OSError("disk on fire")


class TestMemoryKeyValueStore:
    def test_set_get_remove(self):
        store = MemoryKeyValueStore()
        store.set("a", "1")

        assert store.get("a") == "1"
        store.remove("a")
        assert store.get("a") is None

    def test_remove_missing_is_noop(self):
        store = MemoryKeyValueStore()
        store.remove("missing")

        assert store.keys() == []

    def test_satisfies_protocol(self):
        assert isinstance(MemoryKeyValueStore(), KeyValueStore)


class TestSqliteKeyValueStore:
    """Tests for the SQLite-backed store."""

    @pytest.fixture
    def store(self, tmp_path):
        store = SqliteKeyValueStore(tmp_path / "nested" / "state.db")
        yield store
        store.close()

    def test_creates_parent_directory(self, store, tmp_path):
        assert (tmp_path / "nested" / "state.db").exists()

    def test_upsert(self, store):
        store.set("k", "first")
        store.set("k", "second")

        assert store.get("k") == "second"

    def test_remove(self, store):
        store.set("k", "v")
        store.remove("k")

        assert store.get("k") is None

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "state.db"
        first = SqliteKeyValueStore(path)
        first.set("k", '{"x": 1}')
        first.close()

        second = SqliteKeyValueStore(path)
        try:
            assert second.get("k") == '{"x": 1}'
        finally:
            second.close()


class TestFaultTolerantStore:
    """Storage failures become absence / no-op."""

    def test_read_failure_returns_none(self):
        assert FaultTolerantStore(BrokenStore()).get("k") is None

    def test_write_failure_is_swallowed(self):
        store = FaultTolerantStore(BrokenStore())
        store.set("k", "v")
        store.remove("k")

    def test_passes_through_when_healthy(self):
        inner = MemoryKeyValueStore()
        store = FaultTolerantStore(inner)
        store.set("k", "v")

        assert inner.get("k") == "v"
        assert store.get("k") == "v"

    def test_guarded_does_not_double_wrap(self):
        wrapped = guarded(MemoryKeyValueStore())

        assert guarded(wrapped) is wrapped
