# tests/test_rewards.py
"""
Pure reward functions: quality bands, drop tables, expeditions, experience.
"""
from __future__ import annotations

import random
from unittest.mock import MagicMock

from services.rewards import (
    NO_TOOL,
    QUALITY_MULTIPLIERS,
    QUALITY_TIERS,
    DropEntry,
    ToolModifiers,
    award_experience,
    collection_item_count,
    pick_quality,
    quality_chances,
    resolve_drop_table,
    roll_collection,
    roll_drops,
    roll_quality,
)


def _rng(value: float, randint: int | None = None) -> MagicMock:
    rng = MagicMock()
    rng.random.return_value = value
    rng.randint.side_effect = (lambda lo, hi: randint if randint is not None else lo)
    return rng


def test_quality_thresholds_without_bonus():
    # bonus = 1*5 + 0*10 = 5: legendary <2.1, masterwork <8.5, excellent <21, good <41.5
    assert pick_quality(0.0, 1, 0) == "legendary"
    assert pick_quality(2.2, 1, 0) == "masterwork"
    assert pick_quality(8.6, 1, 0) == "excellent"
    assert pick_quality(21.0, 1, 0) == "good"
    assert pick_quality(41.5, 1, 0) == "normal"
    assert pick_quality(69.99, 1, 0) == "normal"
    assert pick_quality(70.0, 1, 0) == "poor"


def test_quality_bonus_raises_upper_tiers():
    # bonus = 5*5 + 3*10 = 55 -> legendary below 3.1
    assert pick_quality(3.0, 5, 3) == "legendary"
    assert pick_quality(3.0, 1, 0) == "masterwork"


def test_quality_chances_sum_to_100():
    for prof, structure in [(1, 0), (1, 1), (10, 5), (50, 10)]:
        chances = quality_chances(prof, structure)
        assert set(chances) == set(QUALITY_MULTIPLIERS)
        assert abs(sum(chances.values()) - 100.0) < 1e-6
        assert all(v >= 0 for v in chances.values())


def test_quality_chances_listed_worst_to_best():
    assert tuple(quality_chances(1, 0)) == QUALITY_TIERS
    assert tuple(quality_chances(50, 10)) == ("poor", "normal", "good", "excellent", "masterwork", "legendary")


def test_roll_quality_uses_rng():
    assert roll_quality(1, 1, _rng(0.999)) == "poor"
    assert roll_quality(1, 1, _rng(0.0)) == "legendary"


def test_drop_with_full_chance_always_drops():
    table = resolve_drop_table([DropEntry(item_id="wood", drop_chance=100.0)])
    for seed in range(20):
        outcomes = roll_drops(table, random.Random(seed))
        assert [(o.item_id, o.quantity) for o in outcomes] == [("wood", 1)]


def test_drop_with_zero_chance_never_drops():
    table = resolve_drop_table([DropEntry(item_id="gem", drop_chance=0.0)])
    assert roll_drops(table, _rng(0.5)) == []


def test_tool_tier_gates_entries():
    entries = [
        DropEntry(item_id="wood", drop_chance=100.0),
        DropEntry(item_id="gem", drop_chance=100.0, min_tool_tier=2, is_rare=True),
    ]
    assert [d.item_id for d in resolve_drop_table(entries, NO_TOOL)] == ["wood"]
    assert [d.item_id for d in resolve_drop_table(entries, ToolModifiers(tier=2))] == ["wood", "gem"]


def test_rare_bonus_only_applies_to_rare_entries():
    entries = [
        DropEntry(item_id="wood", drop_chance=50.0),
        DropEntry(item_id="amber", drop_chance=5.0, is_rare=True),
    ]
    resolved = resolve_drop_table(entries, ToolModifiers(tier=1, rare_drop_bonus=0.1))
    chances = {d.item_id: d.chance for d in resolved}
    assert chances == {"wood": 50.0, "amber": 15.0}


def test_efficiency_bonus_adds_floor_of_base():
    table = resolve_drop_table(
        [DropEntry(item_id="wood", drop_chance=100.0, min_quantity=1, max_quantity=5)],
        ToolModifiers(tier=1, efficiency_bonus=0.5),
    )
    outcomes = roll_drops(table, _rng(0.0, randint=3))
    assert outcomes[0].quantity == 4


def test_collection_item_count_minimums():
    assert collection_item_count(5) == 2
    assert collection_item_count(15) == 2
    assert collection_item_count(30) == 5
    assert collection_item_count(20) == 3
    assert collection_item_count(45) == 7
    assert collection_item_count(480) == 80


def test_roll_collection_counts_match():
    candidates = [("wood", "common"), ("amber", "rare"), ("odd", "mythic")]
    result = roll_collection(candidates, 25, random.Random(7))
    assert sum(result.values()) == 25
    assert set(result) <= {"wood", "amber", "odd"}


def test_roll_collection_empty():
    assert roll_collection([], 5) == {}


def test_experience_carry_over():
    # level 1 needs 100, level 2 needs 200
    result = award_experience(1, 90, 250)
    assert result.level == 3
    assert result.experience == 40
    assert result.levels_gained == 2
    assert result.new_levels == [2, 3]
    assert result.leveled_up


def test_experience_without_level_up():
    result = award_experience(2, 10, 50)
    assert (result.level, result.experience, result.leveled_up) == (2, 60, False)
