"""Tests for UnitPlanner deduplication, priority scoring and batching."""

from __future__ import annotations

import pytest

from core.trans.planner import UnitPlanner
from models.batch_models import TranslationEntry, TranslationUnit
from models.config_models import Chunking


@pytest.fixture
def planner() -> UnitPlanner:
    return UnitPlanner()


def _units(*texts: str) -> list[TranslationUnit]:
    return [TranslationUnit(text=text, keys=[f"k{index}"]) for index, text in enumerate(texts)]


class TestCalculatePriority:
    @pytest.mark.parametrize(
        ("text", "usage_count", "expected"),
        [
            ("Hello", 1, 20),
            ("Hello", 3, 40),
            ("x" * 60, 1, 15),
            ("x" * 250, 1, 8),
            ("Hi %s {0}", 1, 17),
            ("", 1, 20),
        ],
    )
    def test_formula(self, planner: UnitPlanner, text: str, usage_count: int, expected: int) -> None:
        assert planner.calculate_priority(text, usage_count) == expected

    def test_boundaries_use_strict_less_than(self, planner: UnitPlanner) -> None:
        assert planner.calculate_priority("x" * 49, 1) == 20
        assert planner.calculate_priority("x" * 50, 1) == 15
        assert planner.calculate_priority("x" * 199, 1) == 14
        assert planner.calculate_priority("x" * 200, 1) == 8

    def test_weights_come_from_settings(self) -> None:
        planner = UnitPlanner(Chunking(USAGE_WEIGHT=1, SHORT_TEXT_WEIGHT=0))

        assert planner.calculate_priority("Hello", 4) == 4


class TestBuildUnits:
    def test_shared_text_becomes_one_unit(self, planner: UnitPlanner) -> None:
        units = planner.build_units(
            [
                TranslationEntry("greeting", "Hello"),
                TranslationEntry("title", "World"),
                TranslationEntry("welcome", "Hello"),
            ]
        )

        assert [unit.text for unit in units] == ["Hello", "World"]
        assert units[0].keys == ["greeting", "welcome"]
        assert units[0].usage_count == 2
        assert units[0].priority == 30
        assert units[1].keys == ["title"]

    def test_repeated_key_takes_last_text(self, planner: UnitPlanner) -> None:
        units = planner.build_units(
            [
                TranslationEntry("a", "first"),
                TranslationEntry("b", "other"),
                TranslationEntry("a", "second"),
            ]
        )

        texts = {unit.text: unit.keys for unit in units}
        assert texts == {"other": ["b"], "second": ["a"]}

    def test_sorted_by_priority_then_first_appearance(self, planner: UnitPlanner) -> None:
        long_text = "long " * 60
        units = planner.build_units(
            [
                TranslationEntry("k1", long_text),
                TranslationEntry("k2", "short one"),
                TranslationEntry("k3", "short two"),
            ]
        )

        assert [unit.text for unit in units] == ["short one", "short two", long_text]

    def test_every_key_belongs_to_exactly_one_unit(self, planner: UnitPlanner) -> None:
        entries = [TranslationEntry(f"key{index}", f"text {index % 3}") for index in range(10)]

        units = planner.build_units(entries)

        all_keys = [key for unit in units for key in unit.keys]
        assert sorted(all_keys) == sorted(entry.key for entry in entries)
        assert len(units) == 3

    def test_empty_input(self, planner: UnitPlanner) -> None:
        assert planner.build_units([]) == []


class TestCreateBatches:
    def test_size_limit_follows_concurrency(self, planner: UnitPlanner) -> None:
        units = _units(*(f"text {index}" for index in range(9)))

        batches = planner.create_batches(units, max_concurrent=2)

        assert [len(batch) for batch in batches] == [4, 4, 1]
        assert [unit for batch in batches for unit in batch] == units

    def test_large_texts_split_after_char_limit(self, planner: UnitPlanner) -> None:
        units = _units("a" * 600, "b" * 600, "c" * 600)

        batches = planner.create_batches(units, max_concurrent=5)

        assert [[unit.text[0] for unit in batch] for batch in batches] == [["a", "b"], ["c"]]

    def test_small_text_does_not_split_over_char_limit(self, planner: UnitPlanner) -> None:
        units = _units("a" * 600, "b" * 600, "small")

        batches = planner.create_batches(units, max_concurrent=5)

        assert len(batches) == 1

    def test_zero_concurrency_still_makes_progress(self, planner: UnitPlanner) -> None:
        batches = planner.create_batches(_units("a", "b"), max_concurrent=0)

        assert [len(batch) for batch in batches] == [1, 1]

    def test_no_units_no_batches(self, planner: UnitPlanner) -> None:
        assert planner.create_batches([], max_concurrent=3) == []
