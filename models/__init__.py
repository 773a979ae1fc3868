"""Data models for the translation pipeline.

This package contains dataclass definitions for configuration, batch requests and results,
cache entries and statistics, and adaptive concurrency state.
"""

from __future__ import annotations

from models.batch_models import (
    BatchResult,
    ProcessorStatistics,
    TranslationEntry,
    TranslationFailure,
    TranslationUnit,
)
from models.cache_models import CacheStatistics, MostUsedEntry, TranslationCacheEntry
from models.concurrency_models import (
    ConcurrencyBounds,
    ConcurrencyConfig,
    NetworkCondition,
    NetworkStatus,
    PerformanceSample,
    PerformanceStats,
    ServiceProfile,
)
from models.config_models import Adaptive, Cache, Chunking, Config, General, RateLimit, Translation

__all__: list[str] = [
    "Adaptive",
    "BatchResult",
    "Cache",
    "CacheStatistics",
    "Chunking",
    "ConcurrencyBounds",
    "ConcurrencyConfig",
    "Config",
    "General",
    "MostUsedEntry",
    "NetworkCondition",
    "NetworkStatus",
    "PerformanceSample",
    "PerformanceStats",
    "ProcessorStatistics",
    "RateLimit",
    "ServiceProfile",
    "Translation",
    "TranslationCacheEntry",
    "TranslationEntry",
    "TranslationFailure",
    "TranslationUnit",
]
