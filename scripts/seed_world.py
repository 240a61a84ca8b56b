# scripts/seed_world.py
"""
Seed a development world: a player, items, nodes, tools, buildings and a recipe.
Run from the repo root: python -m scripts.seed_world
"""
from __future__ import annotations

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_db
from models.building import Building, BuildingRequirement
from models.crafting import EquipmentRecipe, EquipmentType, RecipeMaterial
from models.item import InventoryItem, Item
from models.node import NodeDrop, ResourceNode, ResourceNodeType
from models.player import Player
from models.tool import PlayerTool, ToolType

ITEMS = [
    ("wood", "Wood", "resource", "common"),
    ("stone", "Stone", "resource", "common"),
    ("herb", "Herb", "resource", "uncommon"),
    ("iron_ore", "Iron Ore", "resource", "uncommon"),
    ("amber", "Amber", "resource", "rare"),
    ("gem", "Gem", "resource", "epic"),
    ("iron_ingot", "Iron Ingot", "material", "uncommon"),
]

NODE_TYPES = [
    # name, display, category, tool, base seconds, respawn minutes, drops
    ("oak_tree", "Oak Tree", "woodcutting", "axe", 30, 30, [("wood", 100, 1, 3, 0, False), ("amber", 5, 1, 1, 1, True)]),
    ("iron_vein", "Iron Vein", "mining", "pickaxe", 45, 30, [("iron_ore", 100, 1, 2, 0, False), ("gem", 2, 1, 1, 2, True)]),
    ("herb_patch", "Herb Patch", "herbalism", None, 20, 15, [("herb", 100, 1, 2, 0, False)]),
]


async def _get_or_create(db: AsyncSession, model, lookup: dict, **values):
    stmt = select(model).filter_by(**lookup)
    obj = (await db.execute(stmt)).scalar_one_or_none()
    if obj is None:
        obj = model(**lookup, **values)
        db.add(obj)
        await db.flush()
        print(f"Created {model.__name__}: {lookup}")
    return obj


async def seed():
    async for db in get_db():
        player = await _get_or_create(
            db, Player, {"token": "dev-player-token-001"},
            name="Dev Player", world_x=0.0, world_y=0.0, home_x=0.0, home_y=0.0,
        )

        items = {}
        for name, display, item_type, rarity in ITEMS:
            items[name] = await _get_or_create(
                db, Item, {"name": name}, display_name=display, item_type=item_type, rarity=rarity,
            )

        for offset, (name, display, category, tool, seconds, respawn, drops) in enumerate(NODE_TYPES):
            node_type = await _get_or_create(
                db, ResourceNodeType, {"name": name},
                display_name=display, category=category, required_tool_type=tool,
                base_gather_time=seconds, respawn_minutes=respawn,
            )
            existing = (
                await db.execute(select(NodeDrop).where(NodeDrop.node_type_id == node_type.id))
            ).first()
            if existing is None:
                for item, chance, lo, hi, tier, rare in drops:
                    db.add(NodeDrop(
                        node_type_id=node_type.id, item_id=items[item].id, drop_chance=chance,
                        min_quantity=lo, max_quantity=hi, min_tool_tier=tier, is_rare=rare,
                    ))
            await _get_or_create(
                db, ResourceNode, {"node_type_id": node_type.id},
                world_x=2.0 + offset * 10, world_y=1.0, current_amount=3, max_amount=3,
            )

        axe = await _get_or_create(
            db, ToolType, {"name": "wooden_axe"}, display_name="Wooden Axe", category="axe", tier=1,
        )
        pickaxe = await _get_or_create(
            db, ToolType, {"name": "iron_pickaxe"}, display_name="Iron Pickaxe", category="pickaxe",
            tier=2, speed_bonus=1.5, rare_drop_bonus=0.05, efficiency_bonus=0.5, durability=200,
        )
        for tool_type in (axe, pickaxe):
            await _get_or_create(
                db, PlayerTool, {"player_id": player.id, "tool_type_id": tool_type.id},
                current_durability=tool_type.durability,
            )

        workshop = await _get_or_create(db, Building, {"name": "workshop"}, display_name="Workshop")
        forge = await _get_or_create(db, Building, {"name": "forge"}, display_name="Forge", build_duration_minutes=10)
        for building, item, quantity in ((workshop, "wood", 10), (forge, "stone", 20), (forge, "iron_ore", 5)):
            await _get_or_create(
                db, BuildingRequirement,
                {"building_id": building.id, "item_id": items[item].id, "requirement_type": "build"},
                quantity=quantity,
            )

        sword = await _get_or_create(
            db, EquipmentType, {"name": "iron_sword"}, display_name="Iron Sword", slot="weapon",
        )
        recipe = await _get_or_create(
            db, EquipmentRecipe, {"equipment_type_id": sword.id},
            profession="blacksmith", craft_time=60, experience_reward=25, station_building_id=forge.id,
        )
        for item, quantity in (("iron_ingot", 3), ("wood", 1)):
            await _get_or_create(
                db, RecipeMaterial, {"recipe_id": recipe.id, "item_id": items[item].id}, quantity=quantity,
            )

        for item, quantity in (("wood", 20), ("stone", 20), ("iron_ingot", 6)):
            await _get_or_create(
                db, InventoryItem, {"player_id": player.id, "item_id": items[item].id}, quantity=quantity,
            )

        print(f"Seed complete. Player token: {player.token}")


if __name__ == "__main__":
    asyncio.run(seed())
