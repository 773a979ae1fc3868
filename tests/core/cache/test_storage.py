"""Tests for the key-value stores backing the translation cache."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest

from core.cache.storage import (
    KeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
    StorageError,
    StorageQuotaExceededError,
)

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


@pytest.fixture
def sqlite_store(tmp_path: Path) -> Generator[SQLiteKeyValueStore]:
    store = SQLiteKeyValueStore(tmp_path / "kv.db")
    store.open()
    yield store
    store.close()


def test_memory_store_round_trip() -> None:
    store = MemoryKeyValueStore()

    assert store.get_item("missing") is None
    store.set_item("key", "value")
    assert store.get_item("key") == "value"
    store.remove_item("key")
    assert store.get_item("key") is None
    store.remove_item("key")


def test_memory_store_quota() -> None:
    store = MemoryKeyValueStore(quota_bytes=10)
    store.set_item("k", "12345")

    # replacing a value only counts the new size
    store.set_item("k", "123456789")
    with pytest.raises(StorageQuotaExceededError):
        store.set_item("k2", "x")
    assert store.get_item("k") == "123456789"


def test_stores_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(MemoryKeyValueStore(), KeyValueStore)
    assert isinstance(SQLiteKeyValueStore(tmp_path / "kv.db"), KeyValueStore)


def test_sqlite_store_round_trip(sqlite_store: SQLiteKeyValueStore) -> None:
    assert sqlite_store.get_item("blob") is None

    sqlite_store.set_item("blob", '{"a": "日本語"}')
    sqlite_store.set_item("blob", '{"b": 1}')

    assert sqlite_store.get_item("blob") == '{"b": 1}'
    sqlite_store.remove_item("blob")
    assert sqlite_store.get_item("blob") is None


def test_sqlite_store_uses_wal(sqlite_store: SQLiteKeyValueStore) -> None:
    sqlite_store.set_item("k", "v")
    conn: sqlite3.Connection = sqlite_store._connection()  # noqa: SLF001

    assert conn.execute("PRAGMA journal_mode").fetchone()[0].lower() == "wal"


def test_sqlite_store_persists_across_connections(tmp_path: Path) -> None:
    db_path: Path = tmp_path / "nested" / "kv.db"
    writer = SQLiteKeyValueStore(db_path)
    writer.set_item("k", "v")
    writer.close()

    reader = SQLiteKeyValueStore(db_path)
    try:
        assert reader.get_item("k") == "v"
    finally:
        reader.close()


def test_sqlite_open_returns_the_same_connection(tmp_path: Path) -> None:
    store = SQLiteKeyValueStore(tmp_path / "kv.db")
    assert store.is_open is False

    first: sqlite3.Connection = store.open()
    try:
        assert store.open() is first
        assert store.is_open is True
    finally:
        store.close()

    assert store.is_open is False
    assert store.get_item("missing") is None
    store.close()


def test_sqlite_store_quota(tmp_path: Path) -> None:
    store = SQLiteKeyValueStore(tmp_path / "kv.db", quota_bytes=20)
    try:
        store.set_item("blob", "x" * 10)
        with pytest.raises(StorageQuotaExceededError):
            store.set_item("blob", "x" * 30)
        assert store.get_item("blob") == "x" * 10
    finally:
        store.close()


def test_sqlite_full_error_maps_to_quota_error(sqlite_store: SQLiteKeyValueStore) -> None:
    full_error = sqlite3.OperationalError("database or disk is full")
    full_error.sqlite_errorcode = sqlite3.SQLITE_FULL
    conn = MagicMock(spec=sqlite3.Connection)
    conn.execute.side_effect = full_error
    sqlite_store._db_conn = conn  # noqa: SLF001

    with pytest.raises(StorageQuotaExceededError):
        sqlite_store.set_item("k", "v")
    conn.rollback.assert_called_once()


def test_sqlite_errors_are_wrapped(sqlite_store: SQLiteKeyValueStore) -> None:
    conn = MagicMock(spec=sqlite3.Connection)
    conn.execute.side_effect = sqlite3.OperationalError("disk I/O error")
    sqlite_store._db_conn = conn  # noqa: SLF001

    with pytest.raises(StorageError) as exc_info:
        sqlite_store.get_item("k")
    assert not isinstance(exc_info.value, StorageQuotaExceededError)


def test_sqlite_open_failure_raises_storage_error(tmp_path: Path) -> None:
    blocker: Path = tmp_path / "file"
    blocker.write_text("not a directory", encoding="utf-8")
    store = SQLiteKeyValueStore(blocker / "kv.db")

    with pytest.raises(StorageError):
        store.open()
    assert store.is_open is False
