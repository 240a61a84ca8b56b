# jobs/handlers.py
"""
Kind-specific job rules.

Each handler answers two questions for the lifecycle manager:
- prepare: may this player start this job now, and on what terms
  (placement, gates, inputs, duration, precommitted outcome)?
- grant: what does the single successful collect hand out?

Handlers never touch the mutex, never debit, and never change job status;
lifecycle.py owns those steps.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.config import get_settings
from jobs.errors import (
    AlreadyBuilt,
    BuildingNotFound,
    LevelTooLow,
    MaxLevelReached,
    NodeDepleted,
    NotAtHome,
    NotBuilt,
    ProfessionLevelTooLow,
    RecipeNotFound,
    ToolBroken,
    ToolRequired,
    TooFar,
    ValidationFailed,
)
from jobs.timing import compute_duration, crafting_time_reduction
from models.building import (
    DEFAULT_BUILD_MINUTES,
    DEFAULT_MAX_LEVEL,
    DEFAULT_UPGRADE_MINUTES,
    Building,
    BuildingRequirement,
    PlayerBuilding,
)
from models.crafting import EquipmentRecipe, EquipmentType, PlayerEquipment, ProfessionStat, RecipeMaterial
from models.item import Item
from models.job import BUILDING, COLLECTION, CRAFTING, GATHERING, Job
from models.node import NodeDrop, ResourceNode
from models.player import Player
from models.tool import PlayerTool, ToolType
from services import ledger
from services.ledger import Requirement
from services.presence import distance_to, is_at_home
from services.respawn import harvest, load_node
from services.rewards import (
    NO_TOOL,
    QUALITY_MULTIPLIERS,
    DropEntry,
    Rng,
    ToolModifiers,
    award_experience,
    collection_item_count,
    quality_chances,
    resolve_drop_table,
    roll_collection,
    roll_drops,
    roll_quality,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# Requests and plans
# ─────────────────────────────────────────────

@dataclass
class GatherRequest:
    node_id: uuid.UUID
    tool_id: uuid.UUID | None = None


@dataclass
class BuildRequest:
    building_id: uuid.UUID
    upgrade: bool = False


@dataclass
class CraftRequest:
    recipe_id: uuid.UUID


@dataclass
class CollectionRequest:
    duration_minutes: int


@dataclass
class StartPlan:
    target: dict[str, Any]
    duration_seconds: int
    requirements: list[Requirement] = field(default_factory=list)
    outcome: dict[str, Any] | None = None
    preview: dict[str, Any] = field(default_factory=dict)


class JobHandler:
    kind: str = ""
    # Progress only accrues while the owner stays home
    pausable: bool = False

    def validate(self, request: Any) -> None:
        """Reject malformed input before any state is read."""

    async def prepare(
        self,
        db: AsyncSession,
        player: Player,
        request: Any,
        now: datetime,
        rng: Rng,
    ) -> StartPlan:
        raise NotImplementedError

    async def grant(
        self,
        db: AsyncSession,
        player: Player,
        job: Job,
        now: datetime,
        rng: Rng,
    ) -> dict[str, Any]:
        raise NotImplementedError

    def refund_percent(self) -> int:
        return 0


def _require_home(player: Player, action: str) -> None:
    if not is_at_home(player):
        raise NotAtHome(f"You must be at home to {action}", notAtHome=True)


async def _requirements_with_names(
    db: AsyncSession,
    rows: list[tuple[uuid.UUID, int]],
    multiplier: int = 1,
) -> list[Requirement]:
    names = await ledger.item_names(db, [item_id for item_id, _ in rows])
    return [
        Requirement(item_id=item_id, quantity=quantity * multiplier, display_name=names.get(item_id))
        for item_id, quantity in rows
    ]


# ─────────────────────────────────────────────
# Gathering
# ─────────────────────────────────────────────

def _node_summary(node: ResourceNode) -> dict[str, Any]:
    return {"id": str(node.id), "current_amount": node.current_amount, "is_depleted": node.is_depleted}


class GatheringHandler(JobHandler):
    kind = GATHERING

    async def _select_tool(
        self,
        db: AsyncSession,
        player: Player,
        required_category: str | None,
        tool_id: uuid.UUID | None,
    ) -> tuple[PlayerTool, ToolType] | None:
        if tool_id is not None:
            stmt = (
                select(PlayerTool, ToolType)
                .join(ToolType, PlayerTool.tool_type_id == ToolType.id)
                .where(PlayerTool.id == tool_id, PlayerTool.player_id == player.id)
            )
            row = (await db.execute(stmt)).first()
            if row is None:
                raise ToolRequired("Tool not found", tool_id=str(tool_id))
            tool, tool_type = row
            if required_category and tool_type.category != required_category:
                raise ToolRequired(
                    f"This resource needs a {required_category}",
                    needsTool=True,
                    toolType=required_category,
                )
            if tool.current_durability <= 0:
                raise ToolBroken("This tool is broken", tool_id=str(tool.id))
            return tool, tool_type

        if not required_category:
            return None

        stmt = (
            select(PlayerTool, ToolType)
            .join(ToolType, PlayerTool.tool_type_id == ToolType.id)
            .where(
                PlayerTool.player_id == player.id,
                ToolType.category == required_category,
                PlayerTool.current_durability > 0,
            )
            .order_by(ToolType.tier.desc())
            .limit(1)
        )
        row = (await db.execute(stmt)).first()
        if row is None:
            raise ToolRequired(
                f"This resource needs a {required_category}",
                needsTool=True,
                toolType=required_category,
            )
        return row[0], row[1]

    async def prepare(self, db, player, request: GatherRequest, now, rng) -> StartPlan:
        settings = get_settings()
        state = await load_node(db, request.node_id, now)
        node, node_type = state.node, state.node_type

        distance = distance_to(player, node.world_x, node.world_y)
        if distance > settings.gather_radius:
            raise TooFar("You are too far away", tooFar=True, distance=round(distance))

        if node.is_depleted or node.current_amount <= 0:
            raise NodeDepleted(
                "This resource is depleted",
                respawn_in_seconds=state.respawn_in_seconds,
            )

        if (player.level or 1) < node_type.min_level:
            raise LevelTooLow(
                f"You need at least level {node_type.min_level}",
                required_level=node_type.min_level,
                level=player.level,
            )

        selected = await self._select_tool(db, player, node_type.required_tool_type, request.tool_id)
        speed_bonus = selected[1].speed_bonus if selected else 1.0

        duration = compute_duration(
            node_type.base_gather_time,
            speed_bonus=speed_bonus or 1.0,
            minimum=settings.min_gather_seconds,
        )
        return StartPlan(
            target={
                "node_id": str(node.id),
                "node_type_id": str(node_type.id),
                "tool_id": str(selected[0].id) if selected else None,
                "display_name": node_type.display_name,
            },
            duration_seconds=duration,
        )

    async def grant(self, db, player, job, now, rng) -> dict[str, Any]:
        state = await load_node(db, uuid.UUID(job.target["node_id"]), now, active_only=False)
        node = state.node

        if not await harvest(db, node, now):
            logger.warning("Node %s was emptied before job %s was collected", node.id, job.id)
            return {"items": [], "node": _node_summary(node), "tool_durability": None}

        tool: PlayerTool | None = None
        modifiers = NO_TOOL
        if job.target.get("tool_id"):
            stmt = (
                select(PlayerTool, ToolType)
                .join(ToolType, PlayerTool.tool_type_id == ToolType.id)
                .where(PlayerTool.id == uuid.UUID(job.target["tool_id"]))
            )
            row = (await db.execute(stmt)).first()
            if row is not None:
                tool, tool_type = row
                modifiers = ToolModifiers(
                    tier=tool_type.tier,
                    rare_drop_bonus=tool_type.rare_drop_bonus or 0.0,
                    efficiency_bonus=tool_type.efficiency_bonus or 0.0,
                )

        drop_rows = (
            await db.execute(select(NodeDrop).where(NodeDrop.node_type_id == node.node_type_id))
        ).scalars().all()
        table = [
            DropEntry(
                item_id=str(d.item_id),
                drop_chance=d.drop_chance,
                min_quantity=d.min_quantity,
                max_quantity=d.max_quantity,
                min_tool_tier=d.min_tool_tier or 0,
                is_rare=bool(d.is_rare),
            )
            for d in drop_rows
        ]
        outcomes = roll_drops(resolve_drop_table(table, modifiers), rng)

        names = await ledger.item_names(db, [uuid.UUID(o.item_id) for o in outcomes])
        items = []
        for outcome in outcomes:
            item_id = uuid.UUID(outcome.item_id)
            await ledger.credit(db, player.id, item_id, outcome.quantity)
            items.append({
                "item_id": outcome.item_id,
                "name": names.get(item_id),
                "quantity": outcome.quantity,
                "is_rare": outcome.is_rare,
            })

        if tool is not None:
            tool.current_durability = max(0, tool.current_durability - 1)
        await db.flush()

        return {
            "items": items,
            "node": _node_summary(node),
            "tool_durability": tool.current_durability if tool is not None else None,
        }


# ─────────────────────────────────────────────
# Building
# ─────────────────────────────────────────────

class BuildingHandler(JobHandler):
    kind = BUILDING
    pausable = True

    async def _requirements(
        self,
        db: AsyncSession,
        building_id: uuid.UUID,
        new_level: int | None,
    ) -> list[Requirement]:
        base = select(BuildingRequirement.item_id, BuildingRequirement.quantity).where(
            BuildingRequirement.building_id == building_id
        )
        if new_level is None:
            rows = (await db.execute(base.where(BuildingRequirement.requirement_type == "build"))).all()
            return await _requirements_with_names(db, [tuple(r) for r in rows])

        rows = (
            await db.execute(
                base.where(
                    BuildingRequirement.requirement_type == "upgrade",
                    BuildingRequirement.level.in_((new_level, 0)),
                )
            )
        ).all()
        if rows:
            return await _requirements_with_names(db, [tuple(r) for r in rows])

        # No upgrade table: scale the build cost with the target level
        rows = (await db.execute(base.where(BuildingRequirement.requirement_type == "build"))).all()
        multiplier = max(1, new_level // 2)
        return await _requirements_with_names(db, [tuple(r) for r in rows], multiplier)

    async def prepare(self, db, player, request: BuildRequest, now, rng) -> StartPlan:
        _require_home(player, "upgrade" if request.upgrade else "build")

        building = await db.get(Building, request.building_id)
        if building is None:
            raise BuildingNotFound("Building not found", building_id=str(request.building_id))

        owned = (
            await db.execute(
                select(PlayerBuilding).where(
                    PlayerBuilding.player_id == player.id,
                    PlayerBuilding.building_id == building.id,
                )
            )
        ).scalar_one_or_none()

        if not request.upgrade:
            if owned is not None:
                raise AlreadyBuilt("Building already built", level=owned.level)
            requirements = await self._requirements(db, building.id, None)
            minutes = building.build_duration_minutes or DEFAULT_BUILD_MINUTES
            return StartPlan(
                target={
                    "building_id": str(building.id),
                    "action": "build",
                    "target_level": 1,
                    "display_name": building.display_name,
                },
                duration_seconds=minutes * 60,
                requirements=requirements,
            )

        if owned is None:
            raise NotBuilt("Building is not built yet", building_id=str(building.id))
        max_level = building.max_level or DEFAULT_MAX_LEVEL
        if owned.level >= max_level:
            raise MaxLevelReached(
                f"Building is already at max level ({max_level})",
                max_level=max_level,
                current_level=owned.level,
            )

        new_level = owned.level + 1
        requirements = await self._requirements(db, building.id, new_level)
        minutes = building.upgrade_duration_minutes or DEFAULT_UPGRADE_MINUTES
        return StartPlan(
            target={
                "building_id": str(building.id),
                "action": "upgrade",
                "target_level": new_level,
                "display_name": building.display_name,
            },
            duration_seconds=minutes * 60,
            requirements=requirements,
        )

    async def grant(self, db, player, job, now, rng) -> dict[str, Any]:
        building_id = uuid.UUID(job.target["building_id"])
        target_level = int(job.target.get("target_level") or 1)
        owned = (
            await db.execute(
                select(PlayerBuilding).where(
                    PlayerBuilding.player_id == player.id,
                    PlayerBuilding.building_id == building_id,
                )
            )
        ).scalar_one_or_none()

        if owned is None:
            owned = PlayerBuilding(player_id=player.id, building_id=building_id, level=target_level)
            db.add(owned)
        elif job.target.get("action") == "upgrade":
            owned.level = target_level
        await db.flush()

        return {
            "building_id": str(building_id),
            "display_name": job.target.get("display_name"),
            "action": job.target.get("action"),
            "level": owned.level,
        }

    def refund_percent(self) -> int:
        return get_settings().building_cancel_refund_percent


# ─────────────────────────────────────────────
# Crafting
# ─────────────────────────────────────────────

class CraftingHandler(JobHandler):
    kind = CRAFTING
    pausable = True

    async def _profession(
        self,
        db: AsyncSession,
        player_id: uuid.UUID,
        profession: str,
    ) -> ProfessionStat | None:
        stmt = select(ProfessionStat).where(
            ProfessionStat.player_id == player_id,
            ProfessionStat.profession == profession,
        )
        return (await db.execute(stmt)).scalar_one_or_none()

    async def _structure_level(
        self,
        db: AsyncSession,
        player_id: uuid.UUID,
        building_id: uuid.UUID | None,
    ) -> int:
        if building_id is None:
            return 1
        stmt = select(PlayerBuilding.level).where(
            PlayerBuilding.player_id == player_id,
            PlayerBuilding.building_id == building_id,
        )
        level = (await db.execute(stmt)).scalar_one_or_none()
        return level or 1

    async def prepare(self, db, player, request: CraftRequest, now, rng) -> StartPlan:
        _require_home(player, "craft")

        recipe = await db.get(EquipmentRecipe, request.recipe_id)
        if recipe is None:
            raise RecipeNotFound("Recipe not found", recipe_id=str(request.recipe_id))

        stat = await self._profession(db, player.id, recipe.profession)
        profession_level = stat.level if stat is not None else 1
        if profession_level < recipe.required_profession_level:
            raise ProfessionLevelTooLow(
                f"You need {recipe.profession} level {recipe.required_profession_level}",
                profession=recipe.profession,
                required_level=recipe.required_profession_level,
                level=profession_level,
            )

        rows = (
            await db.execute(
                select(RecipeMaterial.item_id, RecipeMaterial.quantity).where(RecipeMaterial.recipe_id == recipe.id)
            )
        ).all()
        requirements = await _requirements_with_names(db, [tuple(r) for r in rows])

        structure_level = await self._structure_level(db, player.id, recipe.station_building_id)
        reduction = crafting_time_reduction(profession_level, recipe.required_profession_level)
        duration = compute_duration(recipe.craft_time, reduction_percent=reduction)

        # Fixed now so that polling or delaying collection cannot change it
        quality = roll_quality(profession_level, structure_level, rng)

        equipment_type = await db.get(EquipmentType, recipe.equipment_type_id)
        return StartPlan(
            target={
                "recipe_id": str(recipe.id),
                "equipment_type_id": str(recipe.equipment_type_id),
                "display_name": equipment_type.display_name if equipment_type else None,
                "profession": recipe.profession,
                "experience_reward": recipe.experience_reward,
                "time_reduction_percent": reduction,
            },
            duration_seconds=duration,
            requirements=requirements,
            outcome={
                "quality": quality,
                "quality_bonus": QUALITY_MULTIPLIERS[quality],
                "profession_level": profession_level,
                "structure_level": structure_level,
            },
            preview={"quality_chances": quality_chances(profession_level, structure_level)},
        )

    async def grant(self, db, player, job, now, rng) -> dict[str, Any]:
        outcome = job.outcome or {}
        quality = outcome.get("quality", "normal")
        equipment = PlayerEquipment(
            player_id=player.id,
            equipment_type_id=uuid.UUID(job.target["equipment_type_id"]),
            quality=quality,
            quality_bonus=QUALITY_MULTIPLIERS.get(quality, 1.0),
            source_job_id=job.id,
        )
        db.add(equipment)

        profession = job.target["profession"]
        stat = await self._profession(db, player.id, profession)
        if stat is None:
            stat = ProfessionStat(player_id=player.id, profession=profession, level=1, experience=0)
            db.add(stat)

        progress = award_experience(stat.level, stat.experience, int(job.target.get("experience_reward") or 0))
        stat.level = progress.level
        stat.experience = progress.experience
        await db.flush()

        if progress.leveled_up:
            logger.info("Player %s reached %s level %d", player.id, profession, progress.level)

        return {
            "equipment_id": str(equipment.id),
            "equipment_type_id": job.target["equipment_type_id"],
            "display_name": job.target.get("display_name"),
            "quality": quality,
            "quality_bonus": equipment.quality_bonus,
            "profession": profession,
            "experience_gained": progress.gained,
            "profession_level": progress.level,
            "profession_exp": progress.experience,
            "leveled_up": progress.leveled_up,
            "levels_gained": progress.levels_gained,
        }


# ─────────────────────────────────────────────
# Collection expeditions
# ─────────────────────────────────────────────

class CollectionHandler(JobHandler):
    kind = COLLECTION

    def validate(self, request: CollectionRequest) -> None:
        settings = get_settings()
        minutes = request.duration_minutes
        if (
            not isinstance(minutes, int)
            or minutes < settings.collection_min_minutes
            or minutes > settings.collection_max_minutes
        ):
            raise ValidationFailed(
                f"Duration must be between {settings.collection_min_minutes} "
                f"and {settings.collection_max_minutes} minutes",
                duration_minutes=minutes,
            )

    async def prepare(self, db, player, request: CollectionRequest, now, rng) -> StartPlan:
        return StartPlan(
            target={"duration_minutes": request.duration_minutes},
            duration_seconds=request.duration_minutes * 60,
        )

    async def grant(self, db, player, job, now, rng) -> dict[str, Any]:
        settings = get_settings()
        minutes = int(job.target.get("duration_minutes") or settings.collection_min_minutes)
        count = collection_item_count(minutes, settings.collection_items_per_hour)

        rows = (
            await db.execute(select(Item.id, Item.display_name, Item.rarity).where(Item.item_type == "resource"))
        ).all()
        if not rows:
            logger.warning("No resource items to collect for job %s", job.id)

        names = {item_id: name for item_id, name, _ in rows}
        counts = roll_collection([(str(item_id), rarity) for item_id, _, rarity in rows], count, rng)

        items = []
        for item_id_str, quantity in counts.items():
            item_id = uuid.UUID(item_id_str)
            await ledger.credit(db, player.id, item_id, quantity)
            items.append({"item_id": item_id_str, "name": names.get(item_id), "quantity": quantity})

        return {"items": items, "total_items": sum(counts.values())}


HANDLERS: dict[str, JobHandler] = {
    GATHERING: GatheringHandler(),
    BUILDING: BuildingHandler(),
    CRAFTING: CraftingHandler(),
    COLLECTION: CollectionHandler(),
}
