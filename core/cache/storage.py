"""Key-value stores backing the translation cache.

The cache persists a single serialized blob through a minimal string-to-string contract so that any
store able to honor ``get_item`` / ``set_item`` / ``remove_item`` can be plugged in.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "StorageError",
    "StorageQuotaExceededError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class StorageError(Exception):
    """The key-value store failed to read or write."""


class StorageQuotaExceededError(StorageError):
    """The key-value store refused a write because it is full."""


@runtime_checkable
class KeyValueStore(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


def _size_of(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryKeyValueStore:
    """Dictionary-backed store, optionally limited to ``quota_bytes`` of UTF-8 keys and values."""

    def __init__(self, quota_bytes: int = 0) -> None:
        self.quota_bytes: int = quota_bytes
        self._items: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes > 0:
            used: int = sum(_size_of(k, v) for k, v in self._items.items() if k != key)
            if used + _size_of(key, value) > self.quota_bytes:
                msg: str = f"Storage quota of {self.quota_bytes} bytes exceeded writing '{key}'"
                raise StorageQuotaExceededError(msg)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SQLiteKeyValueStore:
    """Key-value store in a single SQLite table using WAL journaling.

    The connection is opened lazily on first use, or explicitly with ``open()``.

    Args:
        db_path (Path | str): Database file. ``":memory:"`` keeps everything in memory.
        quota_bytes (int): Upper bound on the UTF-8 size of all keys and values (0 disables).
    """

    def __init__(self, db_path: Path | str, quota_bytes: int = 0) -> None:
        self.db_path: Path | str = db_path
        self.quota_bytes: int = quota_bytes
        self._db_conn: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._db_conn is not None

    def open(self) -> sqlite3.Connection:
        """Open the database and create the table if needed.

        Returns:
            sqlite3.Connection: The open connection; an already open store returns its current one.

        Raises:
            StorageError: If the database cannot be opened.
        """
        if self._db_conn is not None:
            return self._db_conn
        path: str = str(self.db_path)
        try:
            if path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            conn: sqlite3.Connection = sqlite3.connect(path, check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()
        except (sqlite3.Error, OSError) as err:
            msg: str = f"Failed to open key-value store '{path}': {err}"
            raise StorageError(msg) from err
        self._db_conn = conn
        logger.debug("Key-value store opened: %s", path)
        return conn

    def close(self) -> None:
        if self._db_conn is None:
            return
        try:
            self._db_conn.close()
        except sqlite3.Error as err:
            logger.error("Error closing key-value store: %s", err)
        finally:
            self._db_conn = None
        logger.debug("Key-value store closed: %s", self.db_path)

    def _connection(self) -> sqlite3.Connection:
        if self._db_conn is None:
            return self.open()
        return self._db_conn

    def get_item(self, key: str) -> str | None:
        try:
            row = self._connection().execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as err:
            msg: str = f"Failed to read '{key}': {err}"
            raise StorageError(msg) from err
        return None if row is None else row[0]

    def set_item(self, key: str, value: str) -> None:
        conn: sqlite3.Connection = self._connection()
        try:
            if self.quota_bytes > 0:
                row = conn.execute(
                    "SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(value AS BLOB))), 0) "
                    "FROM kv_store WHERE key != ?",
                    (key,),
                ).fetchone()
                if row[0] + _size_of(key, value) > self.quota_bytes:
                    msg: str = f"Storage quota of {self.quota_bytes} bytes exceeded writing '{key}'"
                    raise StorageQuotaExceededError(msg)
            conn.execute("INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)", (key, value))
            conn.commit()
        except sqlite3.Error as err:
            conn.rollback()
            if getattr(err, "sqlite_errorcode", None) == sqlite3.SQLITE_FULL:
                msg = f"Key-value store is full writing '{key}': {err}"
                raise StorageQuotaExceededError(msg) from err
            msg = f"Failed to write '{key}': {err}"
            raise StorageError(msg) from err

    def remove_item(self, key: str) -> None:
        conn: sqlite3.Connection = self._connection()
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as err:
            msg: str = f"Failed to remove '{key}': {err}"
            raise StorageError(msg) from err
