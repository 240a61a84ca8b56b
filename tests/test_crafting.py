# tests/test_crafting.py
from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from jobs import lifecycle
from jobs.errors import InsufficientResources, NotAtHome, ProfessionLevelTooLow
from jobs.handlers import CraftRequest
from models.building import PlayerBuilding
from models.crafting import PlayerEquipment, ProfessionStat
from models.job import CRAFTING
from services import ledger


def _fixed_rng(value: float) -> MagicMock:
    rng = MagicMock()
    rng.random.return_value = value
    return rng


async def _set_profession(db, player, level: int, experience: int = 0) -> ProfessionStat:
    stat = ProfessionStat(player_id=player.id, profession="blacksmith", level=level, experience=experience)
    db.add(stat)
    await db.flush()
    return stat


@pytest.mark.asyncio
async def test_profession_surplus_shortens_craft(db, player, items, give, make_recipe, now, rng):
    await give(player, items["iron_ingot"], 3)
    recipe = await make_recipe([(items["iron_ingot"], 3)], craft_time=60, required_level=1)
    await _set_profession(db, player, level=11)

    started = await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now, rng)
    assert started.job.duration_seconds == 48
    assert started.job.finish_at - started.job.started_at == timedelta(seconds=48)
    assert started.job.target["time_reduction_percent"] == 20
    assert await ledger.get_quantity(db, player.id, items["iron_ingot"].id) == 0


@pytest.mark.asyncio
async def test_preview_shows_odds_not_the_roll(db, player, items, give, make_recipe, now, rng):
    recipe = await make_recipe([])
    started = await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now, rng)
    chances = started.preview["quality_chances"]
    assert abs(sum(chances.values()) - 100.0) < 1e-6
    assert "quality" not in started.preview


@pytest.mark.asyncio
async def test_quality_fixed_at_start(db, player, items, make_recipe, now):
    recipe = await make_recipe([], craft_time=60, experience_reward=10)
    started = await lifecycle.start_job(
        db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now, _fixed_rng(0.4)
    )
    rolled = started.job.outcome["quality"]
    assert rolled == "good"

    for seconds in (10, 20, 59):
        view = await lifecycle.get_status(db, player, now + timedelta(seconds=seconds))
        assert view.job.outcome["quality"] == rolled

    # a different random source at collect time does not re-roll
    _, rewards = await lifecycle.collect(db, player, now + timedelta(hours=1), _fixed_rng(0.0))
    assert rewards["quality"] == rolled
    assert rewards["quality_bonus"] == 1.2

    equipment = (await db.execute(
        select(PlayerEquipment).where(PlayerEquipment.player_id == player.id)
    )).scalars().all()
    assert [(e.quality, e.source_job_id) for e in equipment] == [(rolled, started.job.id)]


@pytest.mark.asyncio
async def test_station_level_feeds_quality(db, player, items, make_building, make_recipe, now):
    forge = await make_building([])
    db.add(PlayerBuilding(player_id=player.id, building_id=forge.id, level=3))
    await db.flush()
    plain = await make_recipe([])
    forged = await make_recipe([], station=forge)

    # draw 2.5: legendary needs < 2.3 at structure 1, < 2.7 at structure 3
    started = await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=plain.id), now, _fixed_rng(0.025))
    assert started.job.outcome["quality"] == "masterwork"
    await lifecycle.cancel(db, player, now)

    started = await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=forged.id), now, _fixed_rng(0.025))
    assert started.job.outcome["quality"] == "legendary"
    assert started.job.outcome["structure_level"] == 3


@pytest.mark.asyncio
async def test_experience_carries_over_levels(db, player, items, make_recipe, now, rng):
    stat = await _set_profession(db, player, level=1, experience=90)
    recipe = await make_recipe([], craft_time=60, experience_reward=250)
    await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now, rng)

    _, rewards = await lifecycle.collect(db, player, now + timedelta(seconds=60), rng)
    assert rewards["profession_level"] == 3
    assert rewards["profession_exp"] == 40
    assert rewards["levels_gained"] == 2
    assert (stat.level, stat.experience) == (3, 40)


@pytest.mark.asyncio
async def test_first_craft_creates_profession(db, player, items, make_recipe, now, rng):
    recipe = await make_recipe([], experience_reward=10)
    await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now, rng)
    await lifecycle.collect(db, player, now + timedelta(minutes=5), rng)

    stat = (await db.execute(
        select(ProfessionStat).where(ProfessionStat.player_id == player.id)
    )).scalar_one()
    assert (stat.profession, stat.level, stat.experience) == ("blacksmith", 1, 10)


@pytest.mark.asyncio
async def test_profession_gate(db, player, items, give, make_recipe, now):
    await give(player, items["iron_ingot"], 3)
    recipe = await make_recipe([(items["iron_ingot"], 3)], required_level=5)
    with pytest.raises(ProfessionLevelTooLow):
        await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now)
    assert await ledger.get_quantity(db, player.id, items["iron_ingot"].id) == 3


@pytest.mark.asyncio
async def test_crafting_requires_home(db, player, items, make_recipe, now):
    recipe = await make_recipe([])
    player.world_x = 75.0
    await db.flush()
    with pytest.raises(NotAtHome):
        await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now)


@pytest.mark.asyncio
async def test_missing_materials(db, player, items, give, make_recipe, now):
    await give(player, items["iron_ingot"], 1)
    recipe = await make_recipe([(items["iron_ingot"], 3), (items["wood"], 1)])
    with pytest.raises(InsufficientResources) as exc_info:
        await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now)
    assert {m["item"] for m in exc_info.value.details["missing"]} == {"Iron Ingot", "Wood"}


@pytest.mark.asyncio
async def test_cancel_forfeits_materials(db, player, items, give, make_recipe, now, rng):
    await give(player, items["iron_ingot"], 3)
    recipe = await make_recipe([(items["iron_ingot"], 3)])
    await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now, rng)
    _, refunded = await lifecycle.cancel(db, player, now)
    assert refunded == {}
    assert await ledger.get_quantity(db, player.id, items["iron_ingot"].id) == 0


@pytest.mark.asyncio
async def test_not_enough_wood_leaves_inventory(db, player, items, give, make_recipe, now):
    await give(player, items["wood"], 5)
    recipe = await make_recipe([(items["wood"], 10)])
    with pytest.raises(InsufficientResources):
        await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now)
    assert await ledger.get_quantity(db, player.id, items["wood"].id) == 5
    assert await lifecycle.get_active_job(db, player.id) is None


@pytest.mark.asyncio
async def test_pause_then_immediate_resume_keeps_finish(db, player, items, make_recipe, now, rng):
    recipe = await make_recipe([], craft_time=100)
    started = await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe.id), now, rng)
    original_finish = started.job.finish_at

    t = now + timedelta(seconds=30, milliseconds=500)
    player.world_x = 300.0
    await db.flush()
    paused = await lifecycle.get_status(db, player, t)
    assert paused.is_paused
    assert paused.remaining_seconds == 70

    player.world_x = 0.0
    await db.flush()
    resumed = await lifecycle.get_status(db, player, t)
    assert resumed.job.finish_at == t + timedelta(seconds=70)
    assert resumed.job.finish_at >= original_finish
