"""Models for translation cache data.

Defines the cache entry persisted in the key-value store and the statistics snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dataclasses_json import DataClassJsonMixin, LetterCase, dataclass_json

if TYPE_CHECKING:
    from datetime import datetime

__all__: list[str] = [
    "CacheStatistics",
    "MostUsedEntry",
    "TranslationCacheEntry",
]


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class TranslationCacheEntry(DataClassJsonMixin):
    """Translation cache entry data.

    Timestamps are epoch seconds so the entry serializes to plain JSON.

    Attributes:
        original_text (str): Source text as submitted.
        translated_text (str): Translation result.
        source_lang (str): Source language code.
        target_lang (str): Target language code.
        service (str): Translation service that produced the result.
        created_at (float): Creation time (epoch seconds).
        last_touched_at (float): Last insert or hit (epoch seconds). TTL counts from here.
        hit_count (int): Number of cache hits.
    """

    original_text: str
    translated_text: str
    source_lang: str
    target_lang: str
    service: str
    created_at: float
    last_touched_at: float
    hit_count: int = 0


@dataclass(frozen=True)
class MostUsedEntry:
    """Preview of the entry with the highest hit count."""

    text: str
    count: int


@dataclass
class CacheStatistics:
    """Cache usage statistics.

    Attributes:
        total_entries (int): Number of live entries.
        total_hits (int): Hits since the last clear.
        total_misses (int): Misses since the last clear.
        hit_rate (float): Hits as a percentage of lookups (0-100).
        memory_estimate (int): Approximate UTF-8 size of cached texts in bytes.
        oldest_entry (datetime | None): Last-touch time of the least recently touched entry.
        most_used_entry (MostUsedEntry | None): Entry with the highest hit count.
        service_distribution (dict[str, int]): Entry count per service.
    """

    total_entries: int = 0
    total_hits: int = 0
    total_misses: int = 0
    hit_rate: float = 0.0
    memory_estimate: int = 0
    oldest_entry: datetime | None = None
    most_used_entry: MostUsedEntry | None = None
    service_distribution: dict[str, int] = field(default_factory=dict)
