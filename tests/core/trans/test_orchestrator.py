"""Tests for BatchTranslationOrchestrator.

Covers deduplication and fan-out, failure isolation and classification, cache integration,
progress reporting, and the performance samples fed to the adaptive manager.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from core.cache.manager import TranslationCacheManager
from core.cache.storage import MemoryKeyValueStore
from core.concurrency.adaptive import AdaptiveConcurrencyManager
from core.concurrency.pool import BoundedWorkPool
from core.concurrency.profiles import TranslationService
from core.trans.interface import ErrorKind, NetworkFailureError
from core.trans.orchestrator import BatchTranslationOrchestrator
from models.batch_models import TranslationEntry, TranslationFailure
from models.config_models import Cache

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from models.batch_models import BatchResult


class VendorError(Exception):
    pass


class RecordingTranslator:
    """Translate-one stub that records calls and fails for configured texts."""

    def __init__(self, failures: dict[str, BaseException] | None = None) -> None:
        self.calls: list[str] = []
        self.failures: dict[str, BaseException] = failures or {}

    async def __call__(self, text: str) -> str:
        self.calls.append(text)
        if text in self.failures:
            raise self.failures[text]
        return f"<{text}>"


@pytest.fixture
def adaptive() -> AdaptiveConcurrencyManager:
    return AdaptiveConcurrencyManager(TranslationService.GOOGLE, max_concurrent=3, rate_limit_interval_ms=100)


@pytest.fixture
def orchestrator(adaptive: AdaptiveConcurrencyManager) -> BatchTranslationOrchestrator:
    return BatchTranslationOrchestrator(BoundedWorkPool(), adaptive)


@pytest.fixture
async def cache_manager() -> AsyncGenerator[TranslationCacheManager]:
    manager = TranslationCacheManager(Cache(FLUSH_DELAY_SEC=60.0), MemoryKeyValueStore())
    await manager.component_load()
    yield manager
    await manager.component_teardown()


@pytest.fixture
def cached_orchestrator(
    adaptive: AdaptiveConcurrencyManager, cache_manager: TranslationCacheManager
) -> BatchTranslationOrchestrator:
    return BatchTranslationOrchestrator(BoundedWorkPool(), adaptive, cache_manager, source_lang="en", target_lang="fr")


HELLO_WORLD: list[TranslationEntry] = [
    TranslationEntry("greeting", "Hello"),
    TranslationEntry("title", "World"),
    TranslationEntry("welcome", "Hello"),
]


@pytest.mark.asyncio
async def test_shared_text_is_translated_once(orchestrator: BatchTranslationOrchestrator) -> None:
    translator = RecordingTranslator()

    result: BatchResult = await orchestrator.translate_batch(HELLO_WORLD, translator)

    assert sorted(translator.calls) == ["Hello", "World"]
    assert dict(result.results) == {"greeting": "<Hello>", "title": "<World>", "welcome": "<Hello>"}
    assert result.success is True
    assert result.unique_texts == 2
    assert result.api_calls == 2
    assert result.cache_hits == 0


@pytest.mark.asyncio
async def test_result_keys_follow_first_occurrence(orchestrator: BatchTranslationOrchestrator) -> None:
    entries = [TranslationEntry(f"key{index}", f"text {index % 4}") for index in range(12)]

    result: BatchResult = await orchestrator.translate_batch(entries, RecordingTranslator())

    assert list(result.results) == [entry.key for entry in entries]


@pytest.mark.asyncio
async def test_results_are_read_only(orchestrator: BatchTranslationOrchestrator) -> None:
    result: BatchResult = await orchestrator.translate_batch(HELLO_WORLD, RecordingTranslator())

    with pytest.raises(TypeError):
        result.results["greeting"] = "changed"  # type: ignore[index]


@pytest.mark.asyncio
async def test_repeated_key_takes_last_text(orchestrator: BatchTranslationOrchestrator) -> None:
    translator = RecordingTranslator()

    result: BatchResult = await orchestrator.translate_batch(
        [("a", "first"), ("b", "other"), ("a", "second")], translator
    )

    assert dict(result.results) == {"a": "<second>", "b": "<other>"}
    assert "first" not in translator.calls


@pytest.mark.asyncio
async def test_failure_is_fanned_out_to_every_key(orchestrator: BatchTranslationOrchestrator) -> None:
    translator = RecordingTranslator({"Hello": NetworkFailureError("connection reset")})

    result: BatchResult = await orchestrator.translate_batch(HELLO_WORLD, translator)

    assert result.results["title"] == "<World>"
    for key in ("greeting", "welcome"):
        failure = result.results[key]
        assert isinstance(failure, TranslationFailure)
        assert failure.kind is ErrorKind.NETWORK_FAILURE
        assert failure.message == "connection reset"
    assert result.total_failed == 2
    assert result.success is False


@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (TimeoutError(), ErrorKind.NETWORK_FAILURE),
        (ConnectionError("refused"), ErrorKind.NETWORK_FAILURE),
        (ValueError("bad request"), ErrorKind.VENDOR_REJECTED),
    ],
)
@pytest.mark.asyncio
async def test_foreign_errors_are_classified(
    orchestrator: BatchTranslationOrchestrator, error: BaseException, kind: ErrorKind
) -> None:
    result: BatchResult = await orchestrator.translate_batch({"k": "text"}, RecordingTranslator({"text": error}))

    failure = result.results["k"]
    assert isinstance(failure, TranslationFailure)
    assert failure.kind is kind
    assert failure.message


@pytest.mark.asyncio
async def test_non_string_result_is_malformed(orchestrator: BatchTranslationOrchestrator) -> None:
    async def translate_one(text: str) -> str:
        return 42  # type: ignore[return-value]

    result: BatchResult = await orchestrator.translate_batch({"k": "text"}, translate_one)

    failure = result.results["k"]
    assert isinstance(failure, TranslationFailure)
    assert failure.kind is ErrorKind.MALFORMED_RESPONSE


@pytest.mark.asyncio
async def test_success_requires_fewer_than_half_failed(orchestrator: BatchTranslationOrchestrator) -> None:
    translator = RecordingTranslator({"bad": VendorError()})

    one_of_three: BatchResult = await orchestrator.translate_batch({"a": "ok 1", "b": "ok 2", "c": "bad"}, translator)
    one_of_two: BatchResult = await orchestrator.translate_batch({"a": "ok 1", "c": "bad"}, translator)

    assert one_of_three.success is True
    assert one_of_two.success is False


@pytest.mark.parametrize("entries", [None, [], {}])
@pytest.mark.asyncio
async def test_empty_input_succeeds_without_calls(orchestrator: BatchTranslationOrchestrator, entries: object) -> None:
    translator = RecordingTranslator()

    result: BatchResult = await orchestrator.translate_batch(entries, translator)  # type: ignore[arg-type]

    assert dict(result.results) == {}
    assert result.success is True
    assert translator.calls == []


@pytest.mark.parametrize("translate_one", [None, "not callable"])
@pytest.mark.asyncio
async def test_missing_translate_function_raises(
    orchestrator: BatchTranslationOrchestrator, translate_one: object
) -> None:
    with pytest.raises(TypeError):
        await orchestrator.translate_batch(HELLO_WORLD, translate_one)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_mapping_and_malformed_entries(orchestrator: BatchTranslationOrchestrator) -> None:
    translator = RecordingTranslator()

    from_mapping: BatchResult = await orchestrator.translate_batch({"a": "Hello", "b": "Hello"}, translator)
    mixed: BatchResult = await orchestrator.translate_batch(
        [("x", "One"), 42, TranslationEntry("y", "Two"), ("too", "many", "parts")],  # type: ignore[list-item]
        translator,
    )

    assert dict(from_mapping.results) == {"a": "<Hello>", "b": "<Hello>"}
    assert dict(mixed.results) == {"x": "<One>", "y": "<Two>"}


@pytest.mark.asyncio
async def test_list_pairs_from_json_are_accepted(orchestrator: BatchTranslationOrchestrator) -> None:
    entries = json.loads('[["menu.open", "Open"], ["menu.close", "Close"]]')

    result: BatchResult = await orchestrator.translate_batch([*entries, "ab"], RecordingTranslator())

    assert dict(result.results) == {"menu.open": "<Open>", "menu.close": "<Close>"}


@pytest.mark.asyncio
async def test_higher_priority_texts_are_sent_first() -> None:
    single = AdaptiveConcurrencyManager(TranslationService.GOOGLE, max_concurrent=1, rate_limit_interval_ms=100)
    orchestrator = BatchTranslationOrchestrator(BoundedWorkPool(), single)
    translator = RecordingTranslator()
    long_text = "long " * 60

    await orchestrator.translate_batch(
        {"long": long_text, "plain": "Plain", "shared1": "Shared", "shared2": "Shared"}, translator
    )

    assert translator.calls == ["Shared", "Plain", long_text]


@pytest.mark.asyncio
async def test_progress_is_reported_per_unique_text(orchestrator: BatchTranslationOrchestrator) -> None:
    progress: list[int] = []

    await orchestrator.translate_batch(HELLO_WORLD, RecordingTranslator(), on_progress=progress.append)

    assert progress == [50, 100]


@pytest.mark.asyncio
async def test_progress_callback_errors_are_ignored(orchestrator: BatchTranslationOrchestrator) -> None:
    def on_progress(percent: int) -> None:
        raise RuntimeError(percent)

    result: BatchResult = await orchestrator.translate_batch(HELLO_WORLD, RecordingTranslator(), on_progress)

    assert result.total_failed == 0


@pytest.mark.asyncio
async def test_cache_hits_skip_the_service(cached_orchestrator: BatchTranslationOrchestrator) -> None:
    translator = RecordingTranslator()
    await cached_orchestrator.translate_batch(HELLO_WORLD, translator)
    translator.calls.clear()
    progress: list[int] = []

    result: BatchResult = await cached_orchestrator.translate_batch(HELLO_WORLD, translator, progress.append)

    assert translator.calls == []
    assert dict(result.results) == {"greeting": "<Hello>", "title": "<World>", "welcome": "<Hello>"}
    assert result.cache_hits == 2
    assert result.api_calls == 0
    assert progress == [50, 100]


@pytest.mark.asyncio
async def test_progress_rounds_half_up(orchestrator: BatchTranslationOrchestrator) -> None:
    progress: list[int] = []
    entries = {f"key{index}": f"text {index}" for index in range(8)}

    await orchestrator.translate_batch(entries, RecordingTranslator(), on_progress=progress.append)

    assert progress == [13, 25, 38, 50, 63, 75, 88, 100]


@pytest.mark.asyncio
async def test_successes_are_cached_under_service_and_languages(
    cached_orchestrator: BatchTranslationOrchestrator, cache_manager: TranslationCacheManager
) -> None:
    translator = RecordingTranslator({"World": NetworkFailureError("down")})

    await cached_orchestrator.translate_batch(HELLO_WORLD, translator)

    assert await cache_manager.get("Hello", "en", "fr", "google") == "<Hello>"
    assert await cache_manager.get("World", "en", "fr", "google") is None


@pytest.mark.asyncio
async def test_statistics(cached_orchestrator: BatchTranslationOrchestrator) -> None:
    translator = RecordingTranslator({"World": NetworkFailureError("down")})
    await cached_orchestrator.translate_batch(HELLO_WORLD, translator)
    await cached_orchestrator.translate_batch({"again": "Hello"}, translator)

    stats = cached_orchestrator.get_stats()
    assert stats.processed == 2
    assert stats.failed == 1
    assert stats.cached == 1
    assert stats.api_calls == 1

    stats.processed = 100
    assert cached_orchestrator.get_stats().processed == 2

    cached_orchestrator.reset_stats()
    assert cached_orchestrator.get_stats().processed == 0


@pytest.mark.asyncio
async def test_every_request_feeds_the_adaptive_manager(
    orchestrator: BatchTranslationOrchestrator, adaptive: AdaptiveConcurrencyManager
) -> None:
    translator = RecordingTranslator({"World": NetworkFailureError("down")})

    await orchestrator.translate_batch(HELLO_WORLD, translator)

    history = adaptive.get_performance_stats().history
    assert len(history) == 2
    assert all(sample.response_time_ms >= 0 for sample in history)
    assert history[-1].error_rate == pytest.approx(0.5)
    assert history[-1].success_rate == pytest.approx(0.5)


@pytest.mark.asyncio
async def test_pool_follows_adaptive_config(
    orchestrator: BatchTranslationOrchestrator, adaptive: AdaptiveConcurrencyManager
) -> None:
    await orchestrator.translate_batch(HELLO_WORLD, RecordingTranslator())

    assert orchestrator.pool.max_concurrent == adaptive.get_current_config().max_concurrent
    assert orchestrator.pool.rate_limit_interval_ms == adaptive.get_current_config().rate_limit_interval_ms
