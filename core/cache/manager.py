# ruff: noqa: BLE001
"""Translation cache manager.

Keeps translation results in memory, keyed by service, language pair and normalized source text,
and persists the whole table as one JSON blob in a key-value store. Writes are debounced through a
single deferred flush; a periodic sweep drops expired entries and keeps the blob within its budget.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Self

from core.cache.storage import KeyValueStore, MemoryKeyValueStore, StorageError, StorageQuotaExceededError
from models.cache_models import CacheStatistics, MostUsedEntry, TranslationCacheEntry
from models.config_models import Cache
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable
    from types import TracebackType

__all__: list[str] = ["TranslationCacheManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class TranslationCacheManager:
    """Manager for the translation cache.

    Entries expire ``TTL_SEC`` after their last touch (insert or hit). When the table is full, a new
    key evicts the entry with the lowest retention score, ``hit_count * EVICTION_HIT_WEIGHT_SEC +
    last_touched_at``, so an entry that was hit often survives longer than a fresh one.

    Use it as an async context manager, or call ``component_load()`` and ``component_teardown()``;
    teardown flushes any pending write.

    Args:
        settings (Cache | None): Cache section of the configuration. Defaults are used when None.
        store (KeyValueStore | None): Durable store. An in-memory store is used when None.
    """

    def __init__(self, settings: Cache | None = None, store: KeyValueStore | None = None) -> None:
        self.settings: Cache = settings if settings is not None else Cache()
        self.store: KeyValueStore = store if store is not None else MemoryKeyValueStore()
        self._entries: dict[str, TranslationCacheEntry] = {}
        self._total_hits: int = 0
        self._total_misses: int = 0
        self._dirty: bool = False
        self._flush_handle: asyncio.TimerHandle | None = None
        self._sweep_task: asyncio.Task[None] | None = None
        self._is_initialized: bool = False
        logger.debug("TranslationCacheManager instance created")

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @property
    def enabled(self) -> bool:
        return self.settings.ENABLED

    async def __aenter__(self) -> Self:
        await self.component_load()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.component_teardown()

    async def component_load(self) -> None:
        """Load persisted entries and start the periodic sweep."""
        logger.info("TranslationCacheManager initialization started")
        if self.enabled:
            self._load_from_store()
            if self._sweep_task is None and self.settings.SWEEP_INTERVAL_SEC > 0:
                self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        self._is_initialized = True
        logger.info("TranslationCacheManager initialized with %d entries", len(self._entries))

    async def component_teardown(self) -> None:
        """Stop the sweep and flush pending writes."""
        logger.info("TranslationCacheManager shutdown started")
        await self.dispose()
        self._is_initialized = False
        logger.info("TranslationCacheManager shutdown completed")

    async def dispose(self) -> None:
        """Flush pending writes immediately and stop background work."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        self._cancel_flush()
        if self._dirty:
            self._flush()

    def _now(self) -> float:
        return time.time()

    def _is_expired(self, entry: TranslationCacheEntry, now: float) -> bool:
        return now - entry.last_touched_at > self.settings.TTL_SEC

    def _retention_score(self, entry: TranslationCacheEntry) -> float:
        return entry.hit_count * self.settings.EVICTION_HIT_WEIGHT_SEC + entry.last_touched_at

    async def get(self, text: str, source_lang: str, target_lang: str, service: str) -> str | None:
        """Look up a translation.

        A hit refreshes the entry's last-touch time and increments its hit count. An expired entry
        is removed and counts as a miss.

        Args:
            text (str): Source text.
            source_lang (str): Source language code.
            target_lang (str): Target language code.
            service (str): Translation service identifier.

        Returns:
            str | None: Cached translation, or None on a miss.
        """
        if not self.enabled:
            return None

        cache_key: str = StringUtils.generate_translation_hash_key(text, source_lang, target_lang, service)
        entry: TranslationCacheEntry | None = self._entries.get(cache_key)
        if entry is None:
            self._total_misses += 1
            logger.debug("Cache miss for key: %s", cache_key[:16])
            return None

        now: float = self._now()
        if self._is_expired(entry, now):
            del self._entries[cache_key]
            self._total_misses += 1
            self._schedule_flush()
            logger.debug("Cache entry expired for key: %s", cache_key[:16])
            return None

        entry.hit_count += 1
        entry.last_touched_at = now
        self._total_hits += 1
        self._schedule_flush()
        logger.debug("Cache hit for key: %s (hit_count: %d)", cache_key[:16], entry.hit_count)
        return entry.translated_text

    async def get_many(
        self, texts: Iterable[str], source_lang: str, target_lang: str, service: str
    ) -> dict[str, str | None]:
        """Look up several texts at once. Each distinct text is looked up once."""
        results: dict[str, str | None] = {}
        for text in texts:
            if text not in results:
                results[text] = await self.get(text, source_lang, target_lang, service)
        return results

    async def set(self, text: str, translated_text: str, source_lang: str, target_lang: str, service: str) -> None:
        """Store a translation.

        Overwriting an existing key keeps its hit count and refreshes its last-touch time. A new key
        at capacity first evicts the lowest-scoring entry.
        """
        if not self.enabled:
            return

        normalized_source: str = StringUtils.normalize_text(text)
        cache_key: str = StringUtils.generate_hash_key(normalized_source, source_lang, target_lang, service)
        now: float = self._now()

        entry: TranslationCacheEntry | None = self._entries.get(cache_key)
        if entry is not None:
            entry.translated_text = translated_text
            entry.last_touched_at = now
        else:
            while self._entries and len(self._entries) >= self.settings.MAX_ENTRIES:
                self._evict_lowest_score()
            self._entries[cache_key] = TranslationCacheEntry(
                original_text=text,
                translated_text=translated_text,
                source_lang=source_lang,
                target_lang=target_lang,
                service=service,
                created_at=now,
                last_touched_at=now,
            )
        self._schedule_flush()
        logger.debug("Translation cached for key: %s", cache_key[:16])

    def _evict_lowest_score(self) -> None:
        cache_key: str = min(self._entries, key=lambda k: self._retention_score(self._entries[k]))
        entry: TranslationCacheEntry = self._entries.pop(cache_key)
        logger.debug(
            "Evicted cache entry '%s' (hit_count: %d)", StringUtils.preview(entry.original_text), entry.hit_count
        )

    async def clear(self) -> None:
        """Drop all entries and counters, in memory and in the store."""
        self._cancel_flush()
        self._entries.clear()
        self._total_hits = 0
        self._total_misses = 0
        self._dirty = False
        self._remove_from_store()
        logger.info("Translation cache cleared")

    async def get_stats(self) -> CacheStatistics:
        """Get cache statistics.

        Returns:
            CacheStatistics: Snapshot of the current table and the hit/miss counters.
        """
        lookups: int = self._total_hits + self._total_misses
        hit_rate: float = self._total_hits / lookups * 100 if lookups else 0.0
        entries: list[TranslationCacheEntry] = list(self._entries.values())

        service_distribution: dict[str, int] = {}
        for entry in entries:
            service_distribution[entry.service] = service_distribution.get(entry.service, 0) + 1

        oldest_entry: datetime | None = None
        most_used_entry: MostUsedEntry | None = None
        if entries:
            oldest: TranslationCacheEntry = min(entries, key=lambda e: e.last_touched_at)
            oldest_entry = datetime.fromtimestamp(oldest.last_touched_at, tz=UTC).astimezone()
            most_used: TranslationCacheEntry = max(entries, key=lambda e: e.hit_count)
            if most_used.hit_count > 0:
                most_used_entry = MostUsedEntry(
                    text=StringUtils.preview(most_used.original_text), count=most_used.hit_count
                )

        return CacheStatistics(
            total_entries=len(entries),
            total_hits=self._total_hits,
            total_misses=self._total_misses,
            hit_rate=hit_rate,
            memory_estimate=sum(
                len(e.original_text.encode("utf-8")) + len(e.translated_text.encode("utf-8")) for e in entries
            ),
            oldest_entry=oldest_entry,
            most_used_entry=most_used_entry,
            service_distribution=service_distribution,
        )

    async def cleanup_expired_entries(self) -> int:
        """Remove expired entries and shrink the table when its blob nears the byte budget.

        Returns:
            int: Number of removed entries.
        """
        now: float = self._now()
        expired: list[str] = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for cache_key in expired:
            del self._entries[cache_key]
        removed: int = len(expired)

        threshold: float = self.settings.MAX_STORAGE_BYTES * self.settings.SWEEP_THRESHOLD_RATIO
        if len(self._serialize().encode("utf-8")) >= threshold:
            removed += self._purge_stale(now)

        if removed:
            logger.info("Deleted %d stale translation cache entries", removed)
            self._schedule_flush()
        return removed

    def _purge_stale(self, now: float) -> int:
        """Remove entries not touched for half the TTL."""
        cutoff: float = now - self.settings.TTL_SEC / 2
        stale: list[str] = [k for k, e in self._entries.items() if e.last_touched_at < cutoff]
        for cache_key in stale:
            del self._entries[cache_key]
        return len(stale)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.SWEEP_INTERVAL_SEC)
            try:
                await self.cleanup_expired_entries()
            except Exception:
                logger.exception("Error during cache sweep")

    def _serialize(self) -> str:
        return json.dumps(
            {cache_key: entry.to_dict() for cache_key, entry in self._entries.items()},
            ensure_ascii=False,
            separators=(",", ":"),
        )

    def _schedule_flush(self) -> None:
        """Mark the table dirty and (re)arm the deferred flush."""
        self._dirty = True
        self._cancel_flush()
        try:
            loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        except RuntimeError:
            self._flush()
            return
        self._flush_handle = loop.call_later(self.settings.FLUSH_DELAY_SEC, self._flush)

    def _cancel_flush(self) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None

    def _flush(self) -> None:
        """Write the table to the store.

        A blob over the byte budget is shrunk first; if it is still too large, this cycle stays in
        memory only. A quota error from the store clears the cache.
        """
        self._flush_handle = None
        payload: str = self._serialize()
        if len(payload.encode("utf-8")) > self.settings.MAX_STORAGE_BYTES:
            purged: int = self._purge_stale(self._now())
            logger.info("Cache blob over budget; purged %d stale entries", purged)
            payload = self._serialize()
            if len(payload.encode("utf-8")) > self.settings.MAX_STORAGE_BYTES:
                logger.warning(
                    "Cache blob still exceeds %d bytes; keeping it in memory only", self.settings.MAX_STORAGE_BYTES
                )
                return

        try:
            self.store.set_item(self.settings.STORAGE_KEY, payload)
        except StorageQuotaExceededError as err:
            logger.warning("Storage quota exceeded, clearing translation cache: %s", err)
            self._entries.clear()
            self._dirty = False
            self._remove_from_store()
            return
        except StorageError as err:
            logger.error("Error saving translation cache: %s", err)
            return

        self._dirty = False
        logger.debug("Translation cache flushed (%d entries)", len(self._entries))

    def _remove_from_store(self) -> None:
        try:
            self.store.remove_item(self.settings.STORAGE_KEY)
        except StorageError as err:
            logger.error("Error removing translation cache from storage: %s", err)

    def _load_from_store(self) -> None:
        try:
            raw: str | None = self.store.get_item(self.settings.STORAGE_KEY)
        except StorageError as err:
            logger.error("Error loading translation cache: %s", err)
            return
        if raw is None:
            return

        try:
            data = json.loads(raw)
            decoded: dict[str, TranslationCacheEntry] = {
                cache_key: TranslationCacheEntry.from_dict(value)
                for cache_key, value in data.items()
            }
        except (ValueError, TypeError, KeyError, AttributeError) as err:
            logger.warning("Ignoring unreadable translation cache: %s", err)
            return

        loaded: dict[str, TranslationCacheEntry] = {
            cache_key: entry for cache_key, entry in decoded.items() if self._is_well_formed(entry)
        }
        if len(loaded) != len(decoded):
            logger.warning("Ignoring %d malformed translation cache entries", len(decoded) - len(loaded))

        now: float = self._now()
        self._entries = {k: e for k, e in loaded.items() if not self._is_expired(e, now)}
        while len(self._entries) > self.settings.MAX_ENTRIES:
            self._evict_lowest_score()
        if len(self._entries) != len(decoded):
            self._dirty = True
        logger.info(
            "Loaded %d translation cache entries (%d dropped)", len(self._entries), len(decoded) - len(self._entries)
        )

    @staticmethod
    def _is_well_formed(entry: TranslationCacheEntry) -> bool:
        # dataclasses_json lets JSON null through for non-optional fields
        texts: tuple[object, ...] = (
            entry.original_text,
            entry.translated_text,
            entry.source_lang,
            entry.target_lang,
            entry.service,
        )
        numbers: tuple[object, ...] = (entry.created_at, entry.last_touched_at)
        return (
            all(isinstance(value, str) for value in texts)
            and all(isinstance(value, (int, float)) and not isinstance(value, bool) for value in numbers)
            and isinstance(entry.hit_count, int)
            and not isinstance(entry.hit_count, bool)
            and entry.hit_count >= 0
        )
