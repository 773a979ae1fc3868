"""Translation cache package.

Provides the in-memory translation cache and the key-value stores it persists to.
"""

from __future__ import annotations

from core.cache.manager import TranslationCacheManager
from core.cache.storage import (
    KeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
    StorageError,
    StorageQuotaExceededError,
)

__all__: list[str] = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "StorageError",
    "StorageQuotaExceededError",
    "TranslationCacheManager",
]
