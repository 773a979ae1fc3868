"""Models for batch translation requests and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from core.trans.interface import ErrorKind

__all__: list[str] = [
    "BatchResult",
    "ProcessorStatistics",
    "TranslationEntry",
    "TranslationFailure",
    "TranslationUnit",
]


@dataclass(frozen=True)
class TranslationEntry:
    """One caller-supplied (key, text) pair."""

    key: str
    text: str


@dataclass
class TranslationUnit:
    """A unique source text and every key that shares it.

    Attributes:
        text (str): Source text sent to the translation service once.
        keys (list[str]): Keys that receive the outcome, in input order.
        priority (int): Dispatch priority; higher runs first.
    """

    text: str
    keys: list[str] = field(default_factory=list)
    priority: int = 0

    @property
    def usage_count(self) -> int:
        return len(self.keys)


@dataclass(frozen=True)
class TranslationFailure:
    """Error descriptor stored for every key whose translation failed.

    Attributes:
        kind (ErrorKind): Classification of the failure.
        message (str): Original error message.
    """

    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


@dataclass
class ProcessorStatistics:
    """Counters accumulated by the orchestrator.

    Attributes:
        processed (int): Keys that received a translation from the service.
        failed (int): Keys whose translation failed.
        cached (int): Keys served from the cache.
        api_calls (int): Successful translate-one calls.
    """

    processed: int = 0
    failed: int = 0
    cached: int = 0
    api_calls: int = 0


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one translate_batch call.

    ``results`` maps every submitted key to either the translated text or a TranslationFailure.
    The mapping is read-only.

    Attributes:
        results (Mapping[str, str | TranslationFailure]): Per-key outcome.
        success (bool): True when fewer than half of the keys failed.
        unique_texts (int): Number of distinct source texts in the request.
        cache_hits (int): Unique texts served from the cache.
        api_calls (int): translate-one invocations made for this batch.
    """

    results: Mapping[str, str | TranslationFailure] = field(default_factory=lambda: MappingProxyType({}))
    success: bool = True
    unique_texts: int = 0
    cache_hits: int = 0
    api_calls: int = 0

    @property
    def translations(self) -> dict[str, str]:
        return {key: value for key, value in self.results.items() if isinstance(value, str)}

    @property
    def failures(self) -> dict[str, TranslationFailure]:
        return {key: value for key, value in self.results.items() if not isinstance(value, str)}

    @property
    def total_processed(self) -> int:
        return len(self.translations)

    @property
    def total_failed(self) -> int:
        return len(self.failures)
