"""Shared data management for the translation pipeline.

This module defines the SharedData class, the composition root that builds the key-value store, cache,
adaptive concurrency manager, rate limiter, work pool, and batch orchestrator from the configuration
and owns their lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Self

from core.cache.manager import TranslationCacheManager
from core.cache.storage import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore
from core.concurrency.adaptive import AdaptiveConcurrencyManager
from core.concurrency.pool import BoundedWorkPool
from core.concurrency.profiles import TranslationService
from core.concurrency.rate_limiter import SlidingWindowRateLimiter
from core.trans.orchestrator import BatchTranslationOrchestrator
from core.trans.planner import UnitPlanner
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from types import TracebackType

    from models.config_models import Config


__all__: list[str] = ["SharedData"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

IN_MEMORY_STORAGE_PATH: str = ":memory:"


@dataclass
class SharedData:
    _config: Config = field()
    _store: KeyValueStore = field(init=False)
    _cache_manager: TranslationCacheManager = field(init=False)
    _adaptive_manager: AdaptiveConcurrencyManager = field(init=False)
    _rate_limiter: SlidingWindowRateLimiter | None = field(init=False, default=None)
    _pool: BoundedWorkPool = field(init=False)
    _orchestrator: BatchTranslationOrchestrator = field(init=False)

    async def __aenter__(self) -> Self:
        await self.async_init()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.async_teardown()

    async def async_init(self) -> None:
        """Build every component, load the cache, and start the adaptive health check."""
        cache_settings = self.config.CACHE
        if cache_settings.STORAGE_PATH and cache_settings.STORAGE_PATH != IN_MEMORY_STORAGE_PATH:
            self._store = SQLiteKeyValueStore(cache_settings.STORAGE_PATH, cache_settings.STORAGE_QUOTA_BYTES)
        else:
            self._store = MemoryKeyValueStore(cache_settings.STORAGE_QUOTA_BYTES)
        self._cache_manager = TranslationCacheManager(cache_settings, self._store)

        service = TranslationService(self.config.TRANSLATION.SERVICE)
        self._adaptive_manager = AdaptiveConcurrencyManager(service, self.config.ADAPTIVE)

        rate_settings = self.config.RATE_LIMIT
        if rate_settings.MAX_REQUESTS > 0:
            self._rate_limiter = SlidingWindowRateLimiter(rate_settings.MAX_REQUESTS, rate_settings.WINDOW_SEC)

        initial = self._adaptive_manager.get_current_config()
        self._pool = BoundedWorkPool(initial.max_concurrent, initial.rate_limit_interval_ms, self._rate_limiter)
        self._orchestrator = BatchTranslationOrchestrator(
            self._pool,
            self._adaptive_manager,
            self._cache_manager,
            UnitPlanner(self.config.CHUNKING),
            source_lang=self.config.TRANSLATION.SOURCE_LANGUAGE,
            target_lang=self.config.TRANSLATION.TARGET_LANGUAGE,
        )

        await self._cache_manager.component_load()
        self._adaptive_manager.start()
        logger.info("Translation pipeline ready for '%s'", service)

    async def async_teardown(self) -> None:
        """Stop the health check, flush the cache, and close the store."""
        await self._adaptive_manager.stop()
        await self._cache_manager.component_teardown()
        if isinstance(self._store, SQLiteKeyValueStore):
            self._store.close()
        logger.info("Translation pipeline shut down")

    @property
    def config(self) -> Config:
        return self._config

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def cache_manager(self) -> TranslationCacheManager:
        return self._cache_manager

    @property
    def adaptive_manager(self) -> AdaptiveConcurrencyManager:
        return self._adaptive_manager

    @property
    def rate_limiter(self) -> SlidingWindowRateLimiter | None:
        return self._rate_limiter

    @property
    def pool(self) -> BoundedWorkPool:
        return self._pool

    @property
    def orchestrator(self) -> BatchTranslationOrchestrator:
        return self._orchestrator
