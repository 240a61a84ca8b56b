# models/__init__.py
from models.base import Base
from models.player import Player
from models.item import InventoryItem, Item
from models.node import NodeDrop, ResourceNode, ResourceNodeType
from models.tool import PlayerTool, ToolType
from models.building import Building, BuildingRequirement, PlayerBuilding
from models.crafting import (
    EquipmentRecipe,
    EquipmentType,
    PlayerEquipment,
    ProfessionStat,
    RecipeMaterial,
)
from models.job import ActiveJob, Job
from models.event import Event

__all__ = [
    "Base",
    "Player",
    "Item",
    "InventoryItem",
    "ResourceNodeType",
    "NodeDrop",
    "ResourceNode",
    "ToolType",
    "PlayerTool",
    "Building",
    "BuildingRequirement",
    "PlayerBuilding",
    "EquipmentType",
    "EquipmentRecipe",
    "RecipeMaterial",
    "PlayerEquipment",
    "ProfessionStat",
    "Job",
    "ActiveJob",
    "Event",
]
