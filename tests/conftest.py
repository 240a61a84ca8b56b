# tests/conftest.py
from __future__ import annotations

import os
import random
from datetime import datetime, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from db.engine import enable_sqlite_savepoints
from models import Base
from models.building import Building, BuildingRequirement
from models.crafting import EquipmentRecipe, EquipmentType, RecipeMaterial
from models.item import Item
from models.node import NodeDrop, ResourceNode, ResourceNodeType
from models.player import Player
from models.tool import PlayerTool, ToolType
from services import ledger

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine():
    engine = enable_sqlite_savepoints(create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    ))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def now() -> datetime:
    return T0


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest_asyncio.fixture
async def player(db) -> Player:
    p = Player(name="Tester", token="token-tester", level=1, world_x=0.0, world_y=0.0, home_x=0.0, home_y=0.0)
    db.add(p)
    await db.flush()
    return p


@pytest_asyncio.fixture
async def items(db) -> dict[str, Item]:
    rows = {
        "wood": Item(name="wood", display_name="Wood", item_type="resource", rarity="common"),
        "stone": Item(name="stone", display_name="Stone", item_type="resource", rarity="common"),
        "amber": Item(name="amber", display_name="Amber", item_type="resource", rarity="rare"),
        "iron_ingot": Item(name="iron_ingot", display_name="Iron Ingot", item_type="material", rarity="uncommon"),
    }
    db.add_all(rows.values())
    await db.flush()
    return rows


@pytest.fixture
def give(db):
    async def _give(player: Player, item: Item, quantity: int) -> int:
        return await ledger.credit(db, player.id, item.id, quantity)

    return _give


@pytest.fixture
def make_node(db):
    async def _make_node(
        drops: list[dict],
        x: float = 1.0,
        y: float = 1.0,
        required_tool_type: str | None = None,
        base_gather_time: int = 30,
        respawn_minutes: int = 30,
        min_level: int = 1,
        amount: int = 3,
    ) -> ResourceNode:
        node_type = ResourceNodeType(
            name=f"node-{random.random()}",
            display_name="Oak Tree",
            category="woodcutting",
            required_tool_type=required_tool_type,
            base_gather_time=base_gather_time,
            respawn_minutes=respawn_minutes,
            min_level=min_level,
        )
        db.add(node_type)
        await db.flush()
        for drop in drops:
            db.add(NodeDrop(node_type_id=node_type.id, **drop))
        node = ResourceNode(
            node_type_id=node_type.id,
            world_x=x,
            world_y=y,
            current_amount=amount,
            max_amount=amount,
            is_depleted=False,
        )
        db.add(node)
        await db.flush()
        return node

    return _make_node


@pytest.fixture
def make_tool(db):
    async def _make_tool(
        player: Player,
        category: str = "axe",
        tier: int = 1,
        speed_bonus: float = 1.0,
        durability: int = 100,
        rare_drop_bonus: float = 0.0,
        efficiency_bonus: float = 0.0,
    ) -> PlayerTool:
        tool_type = ToolType(
            name=f"{category}-{tier}-{random.random()}",
            display_name=f"Tier {tier} {category}",
            category=category,
            tier=tier,
            speed_bonus=speed_bonus,
            rare_drop_bonus=rare_drop_bonus,
            efficiency_bonus=efficiency_bonus,
            durability=durability,
        )
        db.add(tool_type)
        await db.flush()
        tool = PlayerTool(player_id=player.id, tool_type_id=tool_type.id, current_durability=durability)
        db.add(tool)
        await db.flush()
        return tool

    return _make_tool


@pytest.fixture
def make_building(db):
    async def _make_building(
        build_cost: list[tuple[Item, int]],
        upgrade_cost: list[tuple[Item, int, int]] | None = None,
        max_level: int = 5,
        build_minutes: int = 5,
        upgrade_minutes: int = 3,
    ) -> Building:
        building = Building(
            name=f"building-{random.random()}",
            display_name="Workshop",
            max_level=max_level,
            build_duration_minutes=build_minutes,
            upgrade_duration_minutes=upgrade_minutes,
        )
        db.add(building)
        await db.flush()
        for item, quantity in build_cost:
            db.add(BuildingRequirement(
                building_id=building.id, item_id=item.id, quantity=quantity, requirement_type="build", level=0,
            ))
        for item, quantity, level in upgrade_cost or []:
            db.add(BuildingRequirement(
                building_id=building.id, item_id=item.id, quantity=quantity, requirement_type="upgrade", level=level,
            ))
        await db.flush()
        return building

    return _make_building


@pytest.fixture
def make_recipe(db):
    async def _make_recipe(
        materials: list[tuple[Item, int]],
        craft_time: int = 60,
        required_level: int = 1,
        experience_reward: int = 10,
        station: Building | None = None,
    ) -> EquipmentRecipe:
        equipment_type = EquipmentType(name=f"sword-{random.random()}", display_name="Iron Sword", slot="weapon")
        db.add(equipment_type)
        await db.flush()
        recipe = EquipmentRecipe(
            equipment_type_id=equipment_type.id,
            profession="blacksmith",
            required_profession_level=required_level,
            experience_reward=experience_reward,
            craft_time=craft_time,
            station_building_id=station.id if station else None,
        )
        db.add(recipe)
        await db.flush()
        for item, quantity in materials:
            db.add(RecipeMaterial(recipe_id=recipe.id, item_id=item.id, quantity=quantity))
        await db.flush()
        return recipe

    return _make_recipe
