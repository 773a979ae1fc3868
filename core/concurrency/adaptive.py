# ruff: noqa: BLE001
"""Adaptive concurrency control.

Classifies recent performance samples into a network condition and moves the dispatch parameters
of one translation service towards more or less aggressive values, always inside the bounds of the
service profile.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import deque
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Self

from core.concurrency.profiles import TranslationService, get_service_profile
from models.concurrency_models import (
    ConcurrencyConfig,
    NetworkCondition,
    NetworkStatus,
    PerformanceSample,
    PerformanceStats,
    ServiceProfile,
)
from models.config_models import Adaptive
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from types import TracebackType

__all__: list[str] = ["AdaptiveConcurrencyManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

DEFAULT_RESPONSE_TIME_MS: float = 500.0
SUMMARY_MIN_SAMPLES: int = 5


class AdaptiveConcurrencyManager:
    """Adjusts one service's ConcurrencyConfig from observed latency and error rates.

    Adjustments happen at most once per cooldown, and only when the new values differ from the
    current ones beyond a dead-band. A periodic health check, started with ``start()`` or by using
    the manager as an async context manager, independently forces emergency mode (minimum
    concurrency, maximum dispatch interval) while the condition is critical.

    Args:
        service (TranslationService): Service whose profile supplies base config and bounds.
        settings (Adaptive | None): Thresholds and tuning constants. Defaults are used when None.
        **overrides: ConcurrencyConfig fields replacing the profile's base values (clamped to bounds).
    """

    def __init__(self, service: TranslationService, settings: Adaptive | None = None, **overrides: float) -> None:
        self.service: TranslationService = TranslationService(service)
        self.settings: Adaptive = settings if settings is not None else Adaptive()
        self.profile: ServiceProfile = get_service_profile(self.service)
        self._base_config: ConcurrencyConfig = self.profile.bounds.clamp(
            replace(self.profile.base_config, **overrides)
        )
        self._config: ConcurrencyConfig = replace(self._base_config)
        self._history: deque[PerformanceSample] = deque(maxlen=self.settings.HISTORY_SIZE)
        self._last_adjustment: float = time.monotonic()
        self._health_check_task: asyncio.Task[None] | None = None
        logger.info("Adaptive concurrency initialized for '%s': %s", self.service, self._config)

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.stop()

    def start(self) -> None:
        """Start the periodic health check. Requires a running event loop."""
        if self._health_check_task is not None and not self._health_check_task.done():
            return
        self._health_check_task = asyncio.get_running_loop().create_task(self._health_check_loop())
        logger.debug("Health check started for '%s'", self.service)

    async def stop(self) -> None:
        """Stop the periodic health check."""
        task: asyncio.Task[None] | None = self._health_check_task
        self._health_check_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Health check stopped for '%s'", self.service)

    async def _health_check_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.health_check_interval_ms / 1000)
            try:
                self.check_health()
            except Exception:
                logger.exception("Health check failed for '%s'", self.service)

    def evaluate_network_condition(self) -> NetworkCondition:
        """Classify the most recent samples.

        Returns:
            NetworkCondition: Averages over the evaluation window and their classification.
            Without samples the condition is NORMAL.
        """
        if not self._history:
            return NetworkCondition(
                status=NetworkStatus.NORMAL,
                average_response_time_ms=DEFAULT_RESPONSE_TIME_MS,
                error_rate=0.0,
                throughput=0.0,
                evaluated_at=datetime.now().astimezone(),
            )

        recent: list[PerformanceSample] = list(self._history)[-self.settings.EVALUATION_WINDOW :]
        count: int = len(recent)
        avg_response: float = sum(s.response_time_ms for s in recent) / count
        avg_error: float = sum(s.error_rate for s in recent) / count
        avg_throughput: float = sum(s.throughput for s in recent) / count

        return NetworkCondition(
            status=self._classify(avg_response, avg_error),
            average_response_time_ms=avg_response,
            error_rate=avg_error,
            throughput=avg_throughput,
            evaluated_at=datetime.now().astimezone(),
        )

    def _classify(self, avg_response: float, avg_error: float) -> NetworkStatus:
        s: Adaptive = self.settings
        if avg_error > s.CRITICAL_ERROR_RATE:
            return NetworkStatus.CRITICAL
        if avg_error > s.POOR_ERROR_RATE or avg_response > s.POOR_RESPONSE_MS:
            return NetworkStatus.POOR
        if avg_error > s.NORMAL_ERROR_RATE or avg_response > s.NORMAL_RESPONSE_MS:
            return NetworkStatus.NORMAL
        if avg_response < s.EXCELLENT_RESPONSE_MS and avg_error < s.EXCELLENT_ERROR_RATE:
            return NetworkStatus.EXCELLENT
        return NetworkStatus.GOOD

    def record_metrics(self, sample: PerformanceSample) -> None:
        """Append a sample to the rolling history and consider an adjustment."""
        self._history.append(sample)
        self._consider_adjustment()

    def _consider_adjustment(self) -> None:
        if time.monotonic() - self._last_adjustment < self.settings.COOLDOWN_SEC:
            return

        condition: NetworkCondition = self.evaluate_network_condition()
        new_config: ConcurrencyConfig = self._calculate_optimal_config(condition)
        if self._should_adjust(new_config):
            self._adjust(new_config, condition)

    def _calculate_optimal_config(self, condition: NetworkCondition) -> ConcurrencyConfig:
        bounds = self.profile.bounds
        current: ConcurrencyConfig = self._config
        new_config: ConcurrencyConfig = replace(current)

        match condition.status:
            case NetworkStatus.EXCELLENT:
                new_config.max_concurrent = bounds.clamp_concurrency(current.max_concurrent + 1)
                new_config.rate_limit_interval_ms = bounds.clamp_rate_limit(
                    current.rate_limit_interval_ms * self.settings.SPEEDUP_FACTOR
                )
            case NetworkStatus.GOOD:
                if condition.average_response_time_ms < self.settings.FAST_RESPONSE_MS:
                    new_config.max_concurrent = bounds.clamp_concurrency(current.max_concurrent + 1)
            case NetworkStatus.NORMAL:
                pass
            case NetworkStatus.POOR:
                new_config.max_concurrent = bounds.clamp_concurrency(current.max_concurrent - 1)
                new_config.rate_limit_interval_ms = bounds.clamp_rate_limit(
                    current.rate_limit_interval_ms * self.settings.SLOWDOWN_FACTOR
                )
            case NetworkStatus.CRITICAL:
                new_config.max_concurrent = bounds.min_concurrent
                new_config.rate_limit_interval_ms = bounds.max_rate_limit_ms

        return new_config

    def _should_adjust(self, new_config: ConcurrencyConfig) -> bool:
        return (
            new_config.max_concurrent != self._config.max_concurrent
            or abs(new_config.rate_limit_interval_ms - self._config.rate_limit_interval_ms)
            > self.settings.RATE_DEAD_BAND_MS
        )

    def _adjust(self, new_config: ConcurrencyConfig, condition: NetworkCondition) -> None:
        old_config: ConcurrencyConfig = self._config
        self._config = new_config
        self._last_adjustment = time.monotonic()

        logger.info(
            "'%s' adjusted (%s): concurrency %d -> %d, interval %.0fms -> %.0fms "
            "(avg response %.0fms, error rate %.1f%%, throughput %.1f/s)",
            self.service,
            condition.status,
            old_config.max_concurrent,
            new_config.max_concurrent,
            old_config.rate_limit_interval_ms,
            new_config.rate_limit_interval_ms,
            condition.average_response_time_ms,
            condition.error_rate * 100,
            condition.throughput,
        )

    def check_health(self) -> NetworkCondition:
        """Run one health check.

        A critical condition forces emergency mode immediately, regardless of the cooldown.

        Returns:
            NetworkCondition: The evaluated condition.
        """
        condition: NetworkCondition = self.evaluate_network_condition()

        if condition.status == NetworkStatus.CRITICAL:
            self._enter_emergency_mode(condition)
        elif condition.status == NetworkStatus.POOR:
            logger.debug("'%s' degraded: %s", self.service, condition)

        if len(self._history) > SUMMARY_MIN_SAMPLES:
            logger.debug(
                "'%s' summary: %s, %d concurrent, %.0fms interval, avg response %.0fms, error rate %.1f%%",
                self.service,
                condition.status,
                self._config.max_concurrent,
                self._config.rate_limit_interval_ms,
                condition.average_response_time_ms,
                condition.error_rate * 100,
            )
        return condition

    def _enter_emergency_mode(self, condition: NetworkCondition) -> None:
        bounds = self.profile.bounds
        if (
            self._config.max_concurrent == bounds.min_concurrent
            and self._config.rate_limit_interval_ms == bounds.max_rate_limit_ms
        ):
            return

        self._config = replace(
            self._config,
            max_concurrent=bounds.min_concurrent,
            rate_limit_interval_ms=bounds.max_rate_limit_ms,
        )
        self._last_adjustment = time.monotonic()
        logger.warning(
            "Emergency mode activated for '%s' (error rate %.1f%%): %d concurrent, %.0fms interval",
            self.service,
            condition.error_rate * 100,
            self._config.max_concurrent,
            self._config.rate_limit_interval_ms,
        )

    def get_current_config(self) -> ConcurrencyConfig:
        """Return a copy of the current configuration."""
        return replace(self._config)

    def get_performance_stats(self) -> PerformanceStats:
        return PerformanceStats(
            current=self.evaluate_network_condition(),
            config=self.get_current_config(),
            history=list(self._history),
        )

    def reset(self) -> None:
        """Restore the base configuration and forget all samples."""
        self._config = replace(self._base_config)
        self._history.clear()
        self._last_adjustment = time.monotonic()
        logger.info("Adaptive concurrency reset to defaults for '%s'", self.service)
