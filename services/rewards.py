# services/rewards.py
"""
Reward resolution: crafting quality rolls, gathering drop tables,
collection expeditions and profession experience.

Everything here is a pure function of its inputs plus a random source, so
probability logic can be tested without a database. Callers decide *when* a
roll happens: quality at job start, drops at the single successful collect.
"""
from __future__ import annotations

import logging
import math
import random
from collections import Counter
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

Rng = random.Random

# ─────────────────────────────────────────────
# Quality roll (crafting)
# ─────────────────────────────────────────────


@dataclass(frozen=True)
class QualityBand:
    tier: str
    base_percent: float
    bonus_factor: float


# Checked top-down; a draw that clears no band is "poor".
QUALITY_BANDS: tuple[QualityBand, ...] = (
    QualityBand("legendary", 2.0, 0.02),
    QualityBand("masterwork", 8.0, 0.1),
    QualityBand("excellent", 20.0, 0.2),
    QualityBand("good", 40.0, 0.3),
    QualityBand("normal", 70.0, 0.0),
)
FALLBACK_QUALITY = "poor"

QUALITY_TIERS = ("poor", "normal", "good", "excellent", "masterwork", "legendary")

QUALITY_MULTIPLIERS = {
    "poor": 0.7,
    "normal": 1.0,
    "good": 1.2,
    "excellent": 1.5,
    "masterwork": 1.8,
    "legendary": 2.5,
}


def quality_bonus_points(profession_level: int, structure_level: int) -> int:
    return profession_level * 5 + structure_level * 10


def quality_thresholds(profession_level: int, structure_level: int) -> list[tuple[str, float]]:
    """Cumulative thresholds in evaluation order (highest tier first)."""
    bonus = quality_bonus_points(profession_level, structure_level)
    return [(band.tier, band.base_percent + band.bonus_factor * bonus) for band in QUALITY_BANDS]


def quality_chances(profession_level: int, structure_level: int) -> dict[str, float]:
    """Effective probability (percent) of each tier for the given modifiers."""
    chances: dict[str, float] = {}
    covered = 0.0
    for tier, threshold in quality_thresholds(profession_level, structure_level):
        upper = min(100.0, max(covered, threshold))
        chances[tier] = round(upper - covered, 4)
        covered = upper
    chances[FALLBACK_QUALITY] = round(100.0 - covered, 4)
    return {tier: chances[tier] for tier in QUALITY_TIERS}


def pick_quality(draw: float, profession_level: int, structure_level: int) -> str:
    """Map a draw in [0, 100) onto a tier."""
    for tier, threshold in quality_thresholds(profession_level, structure_level):
        if draw < threshold:
            return tier
    return FALLBACK_QUALITY


def roll_quality(profession_level: int, structure_level: int, rng: Rng | None = None) -> str:
    rng = rng or random.Random()
    draw = rng.random() * 100
    quality = pick_quality(draw, profession_level, structure_level)
    logger.debug(
        "Quality roll %.2f (prof=%d, structure=%d) -> %s",
        draw, profession_level, structure_level, quality,
    )
    return quality


# ─────────────────────────────────────────────
# Drop tables (gathering)
# ─────────────────────────────────────────────


@dataclass(frozen=True)
class DropEntry:
    item_id: str
    drop_chance: float
    min_quantity: int = 1
    max_quantity: int = 1
    min_tool_tier: int = 0
    is_rare: bool = False


@dataclass(frozen=True)
class ToolModifiers:
    tier: int = 0
    rare_drop_bonus: float = 0.0
    efficiency_bonus: float = 0.0


NO_TOOL = ToolModifiers()


@dataclass(frozen=True)
class ResolvedDrop:
    item_id: str
    chance: float
    min_quantity: int
    max_quantity: int
    efficiency_bonus: float
    is_rare: bool = False


@dataclass
class DropOutcome:
    item_id: str
    quantity: int
    is_rare: bool = False


def resolve_drop_table(entries: list[DropEntry], tool: ToolModifiers = NO_TOOL) -> list[ResolvedDrop]:
    """Fold tool modifiers into a drop table. Entries gated behind a higher tool tier are removed."""
    resolved: list[ResolvedDrop] = []
    for entry in entries:
        if entry.min_tool_tier > 0 and tool.tier < entry.min_tool_tier:
            continue
        chance = entry.drop_chance
        if entry.is_rare:
            chance += tool.rare_drop_bonus * 100
        low, high = sorted((entry.min_quantity, entry.max_quantity))
        resolved.append(
            ResolvedDrop(
                item_id=entry.item_id,
                chance=chance,
                min_quantity=low,
                max_quantity=high,
                efficiency_bonus=tool.efficiency_bonus,
                is_rare=entry.is_rare,
            )
        )
    return resolved


def roll_drops(resolved: list[ResolvedDrop], rng: Rng | None = None) -> list[DropOutcome]:
    """Roll every entry independently; several items may drop at once."""
    rng = rng or random.Random()
    outcomes: list[DropOutcome] = []
    for drop in resolved:
        if rng.random() * 100 > drop.chance:
            continue
        base = rng.randint(drop.min_quantity, drop.max_quantity)
        bonus = math.floor(base * drop.efficiency_bonus)
        outcomes.append(DropOutcome(item_id=drop.item_id, quantity=base + bonus, is_rare=drop.is_rare))
    return outcomes


# ─────────────────────────────────────────────
# Collection expeditions
# ─────────────────────────────────────────────

RARITY_WEIGHTS = {
    "common": 50,
    "uncommon": 25,
    "rare": 15,
    "epic": 7,
    "legendary": 3,
}
DEFAULT_RARITY_WEIGHT = 10


def collection_item_count(duration_minutes: int, items_per_hour: int = 10) -> int:
    total = math.floor(duration_minutes / 60 * items_per_hour)
    if duration_minutes <= 15:
        return max(2, total)
    if duration_minutes <= 30:
        return max(3, total)
    return max(5, total)


def roll_collection(
    candidates: list[tuple[str, str]],
    count: int,
    rng: Rng | None = None,
) -> dict[str, int]:
    """Weighted draw with replacement over (item_id, rarity) pairs."""
    if not candidates or count <= 0:
        return {}
    rng = rng or random.Random()
    weights = [RARITY_WEIGHTS.get(rarity, DEFAULT_RARITY_WEIGHT) for _, rarity in candidates]
    picks = rng.choices([item_id for item_id, _ in candidates], weights=weights, k=count)
    return dict(Counter(picks))


# ─────────────────────────────────────────────
# Profession experience
# ─────────────────────────────────────────────


def experience_threshold(level: int) -> int:
    return level * 100


@dataclass
class ExperienceResult:
    level: int
    experience: int
    gained: int
    levels_gained: int = 0
    new_levels: list[int] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.levels_gained > 0


def award_experience(level: int, experience: int, gained: int) -> ExperienceResult:
    """Add experience and carry the excess across as many level-ups as it covers."""
    exp = experience + gained
    new_levels: list[int] = []
    while exp >= experience_threshold(level):
        exp -= experience_threshold(level)
        level += 1
        new_levels.append(level)
    return ExperienceResult(
        level=level,
        experience=exp,
        gained=gained,
        levels_gained=len(new_levels),
        new_levels=new_levels,
    )
