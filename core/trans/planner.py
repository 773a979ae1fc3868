"""Deduplication, prioritization and batching of translation requests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from models.batch_models import TranslationEntry, TranslationUnit
from models.config_models import Chunking
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable, Sequence

__all__: list[str] = ["UnitPlanner"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class UnitPlanner:
    """Turns (key, text) entries into prioritized translation units grouped into batches.

    Args:
        settings (Chunking | None): Weights and thresholds. Defaults are used when None.
    """

    def __init__(self, settings: Chunking | None = None) -> None:
        self.settings: Chunking = settings if settings is not None else Chunking()

    def build_units(self, entries: Iterable[TranslationEntry]) -> list[TranslationUnit]:
        """Collapse entries sharing the same text into one unit each, highest priority first.

        A key that appears more than once belongs to the text of its last occurrence. Units with
        equal priority keep the order in which their text first appeared.

        Args:
            entries (Iterable[TranslationEntry]): Caller input.

        Returns:
            list[TranslationUnit]: One unit per distinct text.
        """
        text_by_key: dict[str, str] = {}
        for entry in entries:
            # re-insert so the key is ordered by its last occurrence
            text_by_key.pop(entry.key, None)
            text_by_key[entry.key] = entry.text

        units_by_text: dict[str, TranslationUnit] = {}
        for key, text in text_by_key.items():
            unit: TranslationUnit | None = units_by_text.get(text)
            if unit is None:
                unit = units_by_text[text] = TranslationUnit(text=text)
            unit.keys.append(key)

        units: list[TranslationUnit] = list(units_by_text.values())
        for unit in units:
            unit.priority = self.calculate_priority(unit.text, unit.usage_count)
        units.sort(key=lambda u: u.priority, reverse=True)

        logger.debug("Planned %d unique texts from %d keys", len(units), len(text_by_key))
        return units

    def calculate_priority(self, text: str, usage_count: int) -> int:
        """Score a unit. Widely shared, short and placeholder-free texts score higher.

        ``usage_count * USAGE_WEIGHT + short_bonus * SHORT_TEXT_WEIGHT - placeholder_chars
        - len(text) // LENGTH_PENALTY_STEP``, where ``short_bonus`` is 2 below SHORT_TEXT_LIMIT
        characters, 1 below MEDIUM_TEXT_LIMIT, else 0.
        """
        s: Chunking = self.settings
        length: int = len(text)
        if length < s.SHORT_TEXT_LIMIT:
            short_bonus: int = 2
        elif length < s.MEDIUM_TEXT_LIMIT:
            short_bonus = 1
        else:
            short_bonus = 0
        return (
            usage_count * s.USAGE_WEIGHT
            + short_bonus * s.SHORT_TEXT_WEIGHT
            - StringUtils.count_placeholder_chars(text)
            - length // s.LENGTH_PENALTY_STEP
        )

    def create_batches(self, units: Sequence[TranslationUnit], max_concurrent: int) -> list[list[TranslationUnit]]:
        """Split ordered units into consecutive batches.

        A new batch starts when the current one already holds ``BATCH_SIZE_FACTOR * max_concurrent``
        units, or when it holds more than MAX_BATCH_CHARS characters and the next text is longer than
        LARGE_ITEM_CHARS.

        Args:
            units (Sequence[TranslationUnit]): Units in dispatch order.
            max_concurrent (int): Current concurrency ceiling of the pool.

        Returns:
            list[list[TranslationUnit]]: Non-empty batches preserving unit order.
        """
        s: Chunking = self.settings
        max_batch_size: int = max(1, s.BATCH_SIZE_FACTOR * max_concurrent)
        batches: list[list[TranslationUnit]] = []
        current: list[TranslationUnit] = []
        current_chars: int = 0

        for unit in units:
            text_size: int = len(unit.text)
            if current and (
                len(current) >= max_batch_size
                or (current_chars > s.MAX_BATCH_CHARS and text_size > s.LARGE_ITEM_CHARS)
            ):
                batches.append(current)
                current = []
                current_chars = 0
            current.append(unit)
            current_chars += text_size

        if current:
            batches.append(current)

        logger.debug("Created %d batches from %d units", len(batches), len(units))
        return batches
