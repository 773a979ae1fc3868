"""Concurrency control for outbound translation calls.

Provides the priority work pool, the sliding-window rate limiter, per-service profiles, and the
adaptive manager that tunes the pool from observed performance.
"""

from __future__ import annotations

from core.concurrency.adaptive import AdaptiveConcurrencyManager
from core.concurrency.pool import BoundedWorkPool, PoolStatus
from core.concurrency.profiles import TranslationService, get_service_profile
from core.concurrency.rate_limiter import RateLimitStatus, SlidingWindowRateLimiter

__all__: list[str] = [
    "AdaptiveConcurrencyManager",
    "BoundedWorkPool",
    "PoolStatus",
    "RateLimitStatus",
    "SlidingWindowRateLimiter",
    "TranslationService",
    "get_service_profile",
]
