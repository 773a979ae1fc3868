"""Models for adaptive concurrency control.

Defines the per-service concurrency configuration and its bounds, performance samples
recorded after each translation call, and the derived network condition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

__all__: list[str] = [
    "ConcurrencyBounds",
    "ConcurrencyConfig",
    "NetworkCondition",
    "NetworkStatus",
    "PerformanceSample",
    "PerformanceStats",
    "ServiceProfile",
]


class NetworkStatus(StrEnum):
    """Coarse classification of recent latency and error observations."""

    EXCELLENT = "excellent"
    GOOD = "good"
    NORMAL = "normal"
    POOR = "poor"
    CRITICAL = "critical"


@dataclass
class ConcurrencyConfig:
    """Dispatch parameters read by the work pool.

    Attributes:
        max_concurrent (int): Maximum number of outstanding translation calls.
        rate_limit_interval_ms (float): Delay applied before each dispatch.
        backoff_factor (float): Service backoff multiplier carried from the profile.
        health_check_interval_ms (float): Period of the adaptive health check.
    """

    max_concurrent: int
    rate_limit_interval_ms: float
    backoff_factor: float
    health_check_interval_ms: float


@dataclass(frozen=True)
class ConcurrencyBounds:
    """Hard limits a ConcurrencyConfig must stay within.

    Attributes:
        min_concurrent (int): Lowest allowed concurrency.
        max_concurrent (int): Highest allowed concurrency.
        min_rate_limit_ms (float): Shortest allowed dispatch delay.
        max_rate_limit_ms (float): Longest allowed dispatch delay.
    """

    min_concurrent: int
    max_concurrent: int
    min_rate_limit_ms: float
    max_rate_limit_ms: float

    def clamp_concurrency(self, value: int) -> int:
        return max(self.min_concurrent, min(value, self.max_concurrent))

    def clamp_rate_limit(self, value: float) -> float:
        return max(self.min_rate_limit_ms, min(value, self.max_rate_limit_ms))

    def clamp(self, config: ConcurrencyConfig) -> ConcurrencyConfig:
        """Return a copy of ``config`` with concurrency and rate interval forced into bounds."""
        return ConcurrencyConfig(
            max_concurrent=self.clamp_concurrency(config.max_concurrent),
            rate_limit_interval_ms=self.clamp_rate_limit(config.rate_limit_interval_ms),
            backoff_factor=config.backoff_factor,
            health_check_interval_ms=config.health_check_interval_ms,
        )


@dataclass(frozen=True)
class ServiceProfile:
    """Base configuration and bounds for one translation service."""

    base_config: ConcurrencyConfig
    bounds: ConcurrencyBounds


@dataclass(frozen=True)
class PerformanceSample:
    """One observation fed to the adaptive manager.

    Attributes:
        response_time_ms (float): Duration of the observed call.
        error_rate (float): Session error rate (0-1) at the time of the sample.
        throughput (float): Successful requests per second in the session.
        success_rate (float): 1 - error_rate.
        queue_depth (int): Work waiting or running in the pool.
        timestamp (float): Monotonic time the sample was taken.
    """

    response_time_ms: float
    error_rate: float
    throughput: float
    success_rate: float
    queue_depth: int
    timestamp: float


@dataclass(frozen=True)
class NetworkCondition:
    status: NetworkStatus
    average_response_time_ms: float
    error_rate: float
    throughput: float
    evaluated_at: datetime


@dataclass
class PerformanceStats:
    """Snapshot returned by AdaptiveConcurrencyManager.get_performance_stats()."""

    current: NetworkCondition
    config: ConcurrencyConfig
    history: list[PerformanceSample] = field(default_factory=list)
