# ruff: noqa: BLE001
"""Batch translation orchestrator.

Public entry point of the pipeline: deduplicates the caller's entries, serves what it can from the
cache, dispatches the rest through the bounded work pool in priority order, feeds every completion
to the adaptive concurrency manager and fans each outcome out to all keys sharing the text.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from core.trans.interface import MalformedResponseError, classify_error
from core.trans.planner import UnitPlanner
from models.batch_models import BatchResult, ProcessorStatistics, TranslationEntry, TranslationFailure
from models.concurrency_models import PerformanceSample
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Awaitable, Callable, Iterable

    from core.cache.manager import TranslationCacheManager
    from core.concurrency.adaptive import AdaptiveConcurrencyManager
    from core.concurrency.pool import BoundedWorkPool
    from core.trans.interface import TranslateOne
    from models.batch_models import TranslationUnit

__all__: list[str] = ["BatchTranslationOrchestrator"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


@dataclass
class _Session:
    """Counters of one translate_batch call, used to derive performance samples."""

    total_units: int
    started_at: float = field(default_factory=time.monotonic)
    settled_units: int = 0
    requests: int = 0
    succeeded: int = 0
    failed: int = 0
    results: dict[str, str | TranslationFailure] = field(default_factory=dict)

    @property
    def error_rate(self) -> float:
        return self.failed / self.requests if self.requests else 0.0

    def throughput(self, now: float) -> float:
        elapsed: float = now - self.started_at
        return self.succeeded / elapsed if elapsed > 0 else 0.0


class BatchTranslationOrchestrator:
    """Translates batches of (key, text) entries through the shared pipeline components.

    Args:
        pool (BoundedWorkPool): Pool that dispatches translate-one calls.
        adaptive (AdaptiveConcurrencyManager): Receives performance samples and supplies the pool's
            configuration before each batch. Its service names the cache partition.
        cache (TranslationCacheManager | None): Result cache. Caching is skipped when None.
        planner (UnitPlanner | None): Deduplication and batching. Defaults are used when None.
        source_lang (str): Source language code used for cache keys.
        target_lang (str): Target language code used for cache keys.
    """

    def __init__(
        self,
        pool: BoundedWorkPool,
        adaptive: AdaptiveConcurrencyManager,
        cache: TranslationCacheManager | None = None,
        planner: UnitPlanner | None = None,
        *,
        source_lang: str = "en",
        target_lang: str = "ja",
    ) -> None:
        self.pool: BoundedWorkPool = pool
        self.adaptive: AdaptiveConcurrencyManager = adaptive
        self.cache: TranslationCacheManager | None = cache
        self.planner: UnitPlanner = planner if planner is not None else UnitPlanner()
        self.source_lang: str = source_lang
        self.target_lang: str = target_lang
        self._stats: ProcessorStatistics = ProcessorStatistics()

    @property
    def service(self) -> str:
        return str(self.adaptive.service)

    def get_stats(self) -> ProcessorStatistics:
        """Return a copy of the counters accumulated since the last reset."""
        return replace(self._stats)

    def reset_stats(self) -> None:
        self._stats = ProcessorStatistics()

    async def translate_batch(
        self,
        entries: Iterable[TranslationEntry] | Mapping[str, str] | None,
        translate_one: TranslateOne,
        on_progress: Callable[[int], None] | None = None,
    ) -> BatchResult:
        """Translate every entry and return one outcome per key.

        Failures of individual translations never raise; they are stored as TranslationFailure for
        every key sharing the failed text.

        Args:
            entries (Iterable[TranslationEntry] | Mapping[str, str] | None): Keys and texts, as entries,
                (key, text) pairs or a mapping. A key given more than once takes its last text.
            translate_one (TranslateOne): Coroutine function translating one string.
            on_progress (Callable[[int], None] | None): Receives the percentage of unique texts
                settled (cache hits included) after each settlement.

        Returns:
            BatchResult: Outcome per key. ``success`` is False when at least half the keys failed.

        Raises:
            TypeError: If ``translate_one`` is missing or not callable.
        """
        if translate_one is None or not callable(translate_one):
            msg: str = f"translate_one must be a callable, got {type(translate_one).__name__}"
            raise TypeError(msg)

        normalized: list[TranslationEntry] = self._normalize_entries(entries)
        if not normalized:
            logger.debug("Empty batch; nothing to translate")
            return BatchResult()

        units: list[TranslationUnit] = self.planner.build_units(normalized)
        session = _Session(total_units=len(units))
        logger.info("Translating %d unique texts for %d entries via '%s'", len(units), len(normalized), self.service)

        misses: list[TranslationUnit] = []
        for unit in units:
            cached: str | None = await self._lookup_cache(unit.text)
            if cached is None:
                misses.append(unit)
                continue
            self._fan_out(session, unit, cached)
            self._stats.cached += unit.usage_count
            self._report_progress(session, on_progress)
        cache_hits: int = len(units) - len(misses)

        if misses:
            self.pool.apply_config(self.adaptive.get_current_config())
            for batch in self.planner.create_batches(misses, self.pool.max_concurrent):
                self.pool.apply_config(self.adaptive.get_current_config())
                await self.pool.submit_all(
                    [self._make_operation(session, unit, translate_one, on_progress) for unit in batch]
                )

        results: dict[str, str | TranslationFailure] = {
            key: session.results[key] for key in dict.fromkeys(entry.key for entry in normalized)
        }
        failed_keys: int = sum(1 for value in results.values() if isinstance(value, TranslationFailure))
        success: bool = failed_keys * 2 < len(results)

        logger.info(
            "Batch completed for '%s': %d keys, %d failed, %d cache hits, %d requests in %.1f sec",
            self.service,
            len(results),
            failed_keys,
            cache_hits,
            session.requests,
            time.monotonic() - session.started_at,
        )
        return BatchResult(
            results=MappingProxyType(results),
            success=success,
            unique_texts=len(units),
            cache_hits=cache_hits,
            api_calls=session.requests,
        )

    def _normalize_entries(
        self, entries: Iterable[TranslationEntry] | Mapping[str, str] | None
    ) -> list[TranslationEntry]:
        if entries is None:
            return []
        if isinstance(entries, Mapping):
            return [TranslationEntry(key=str(key), text=StringUtils.ensure_str(text)) for key, text in entries.items()]

        normalized: list[TranslationEntry] = []
        for entry in entries:
            if isinstance(entry, TranslationEntry):
                normalized.append(entry)
            elif isinstance(entry, Sequence) and not isinstance(entry, (str, bytes)) and len(entry) == 2:
                normalized.append(TranslationEntry(key=str(entry[0]), text=StringUtils.ensure_str(entry[1])))
            else:
                logger.warning("Skipping malformed entry: %r", entry)
        return normalized

    async def _lookup_cache(self, text: str) -> str | None:
        if self.cache is None:
            return None
        return await self.cache.get(text, self.source_lang, self.target_lang, self.service)

    def _make_operation(
        self,
        session: _Session,
        unit: TranslationUnit,
        translate_one: TranslateOne,
        on_progress: Callable[[int], None] | None,
    ) -> Callable[[], Awaitable[None]]:
        async def operation() -> None:
            await self._translate_unit(session, unit, translate_one, on_progress)

        return operation

    async def _translate_unit(
        self,
        session: _Session,
        unit: TranslationUnit,
        translate_one: TranslateOne,
        on_progress: Callable[[int], None] | None,
    ) -> None:
        session.requests += 1
        started: float = time.monotonic()
        try:
            translated = await translate_one(unit.text)
            if not isinstance(translated, str):
                msg: str = f"Translation result is {type(translated).__name__}, not str"
                raise MalformedResponseError(msg)
        except Exception as err:
            failure = TranslationFailure(kind=classify_error(err), message=str(err) or type(err).__name__)
            logger.warning("Translation failed for '%s': %s", StringUtils.preview(unit.text), failure)
            self._fan_out(session, unit, failure)
            session.failed += 1
            self._stats.failed += unit.usage_count
        else:
            self._fan_out(session, unit, translated)
            session.succeeded += 1
            self._stats.processed += unit.usage_count
            self._stats.api_calls += 1
            if self.cache is not None:
                await self.cache.set(unit.text, translated, self.source_lang, self.target_lang, self.service)

        self._record_sample(session, started)
        self._report_progress(session, on_progress)

    def _fan_out(self, session: _Session, unit: TranslationUnit, outcome: str | TranslationFailure) -> None:
        for key in unit.keys:
            session.results[key] = outcome

    def _record_sample(self, session: _Session, started: float) -> None:
        now: float = time.monotonic()
        error_rate: float = session.error_rate
        status = self.pool.status()
        self.adaptive.record_metrics(
            PerformanceSample(
                response_time_ms=(now - started) * 1000,
                error_rate=error_rate,
                throughput=session.throughput(now),
                success_rate=1 - error_rate,
                queue_depth=status.running + status.queued,
                timestamp=now,
            )
        )

    def _report_progress(self, session: _Session, on_progress: Callable[[int], None] | None) -> None:
        session.settled_units += 1
        if on_progress is None:
            return
        # round half up
        percent: int = (session.settled_units * 200 + session.total_units) // (session.total_units * 2)
        try:
            on_progress(percent)
        except Exception:
            logger.exception("Progress callback raised; ignoring")
