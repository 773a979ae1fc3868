"""Configuration data models for the batch translation pipeline.

Each dataclass maps to one section of the INI file. Field names are the INI keys;
the type of each default decides how the loader coerces the raw string.
"""

from __future__ import annotations

from dataclasses import dataclass, field

__all__: list[str] = [
    "Adaptive",
    "Cache",
    "Chunking",
    "Config",
    "General",
    "RateLimit",
    "Translation",
]


@dataclass
class General:
    DEBUG: bool = False
    LOG_FILE: str = ""
    LOG_LEVEL: str = "INFO"


@dataclass
class Translation:
    SERVICE: str = "google"
    SOURCE_LANGUAGE: str = "en"
    TARGET_LANGUAGE: str = "ja"


@dataclass
class RateLimit:
    # 0 disables the sliding-window limiter.
    MAX_REQUESTS: int = 0
    WINDOW_SEC: float = 1.0


@dataclass
class Cache:
    ENABLED: bool = True
    STORAGE_PATH: str = "translation_cache.db"
    STORAGE_KEY: str = "langpack_translation_cache"
    STORAGE_QUOTA_BYTES: int = 0
    MAX_ENTRIES: int = 1000
    MAX_STORAGE_BYTES: int = 5 * 1024 * 1024
    TTL_SEC: float = 24 * 60 * 60.0
    FLUSH_DELAY_SEC: float = 5.0
    SWEEP_INTERVAL_SEC: float = 60 * 60.0
    SWEEP_THRESHOLD_RATIO: float = 0.9
    EVICTION_HIT_WEIGHT_SEC: float = 60.0


@dataclass
class Chunking:
    USAGE_WEIGHT: int = 10
    SHORT_TEXT_WEIGHT: int = 5
    SHORT_TEXT_LIMIT: int = 50
    MEDIUM_TEXT_LIMIT: int = 200
    LENGTH_PENALTY_STEP: int = 100
    BATCH_SIZE_FACTOR: int = 2
    MAX_BATCH_CHARS: int = 1000
    LARGE_ITEM_CHARS: int = 500


@dataclass
class Adaptive:
    HISTORY_SIZE: int = 50
    EVALUATION_WINDOW: int = 10
    COOLDOWN_SEC: float = 5.0
    RATE_DEAD_BAND_MS: float = 50.0
    EXCELLENT_RESPONSE_MS: float = 500.0
    EXCELLENT_ERROR_RATE: float = 0.02
    FAST_RESPONSE_MS: float = 300.0
    NORMAL_RESPONSE_MS: float = 1500.0
    NORMAL_ERROR_RATE: float = 0.05
    POOR_RESPONSE_MS: float = 3000.0
    POOR_ERROR_RATE: float = 0.15
    CRITICAL_ERROR_RATE: float = 0.3
    SPEEDUP_FACTOR: float = 0.9
    SLOWDOWN_FACTOR: float = 1.3


@dataclass
class Config:
    GENERAL: General = field(default_factory=General)
    TRANSLATION: Translation = field(default_factory=Translation)
    RATE_LIMIT: RateLimit = field(default_factory=RateLimit)
    CACHE: Cache = field(default_factory=Cache)
    CHUNKING: Chunking = field(default_factory=Chunking)
    ADAPTIVE: Adaptive = field(default_factory=Adaptive)
