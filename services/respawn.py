# services/respawn.py
"""
Lazy respawn for gatherable resource nodes.

There is no timer: a depleted node is re-evaluated whenever it is read and
refilled once its respawn interval has elapsed.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import case, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jobs.errors import NodeNotFound
from jobs.timing import seconds_until, utcnow
from models.base import UTCDateTime
from models.node import ResourceNode, ResourceNodeType
from services.observability import log_event

logger = logging.getLogger(__name__)

DEFAULT_RESPAWN_MINUTES = 30


@dataclass
class NodeState:
    node: ResourceNode
    node_type: ResourceNodeType
    respawned: bool = False
    respawn_in_seconds: int | None = None


def respawn_due_at(node: ResourceNode, respawn_minutes: int | None) -> datetime | None:
    if node.depleted_at is None:
        return None
    return node.depleted_at + timedelta(minutes=respawn_minutes or DEFAULT_RESPAWN_MINUTES)


def is_available(node: ResourceNode, respawn_minutes: int | None, now: datetime) -> bool:
    if not node.is_depleted:
        return True
    due = respawn_due_at(node, respawn_minutes)
    # Depleted without a timestamp never comes back on its own
    return due is not None and now >= due


async def respawn(db: AsyncSession, node: ResourceNode, respawn_minutes: int | None, now: datetime) -> bool:
    """
    Refill a depleted node whose interval has elapsed. Returns True when this
    caller made the change; the node is reloaded either way.
    """
    cutoff = now - timedelta(minutes=respawn_minutes or DEFAULT_RESPAWN_MINUTES)
    stmt = (
        update(ResourceNode)
        .where(
            ResourceNode.id == node.id,
            ResourceNode.is_depleted.is_(True),
            ResourceNode.depleted_at <= cutoff,
        )
        .values(
            is_depleted=False,
            current_amount=ResourceNode.max_amount,
            depleted_at=None,
            last_gathered_at=None,
        )
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.refresh(node)
    return result.rowcount == 1


async def harvest(db: AsyncSession, node: ResourceNode, now: datetime) -> bool:
    """
    Take one unit from the node in a single conditional UPDATE, marking it
    depleted when the last unit goes. Returns False when the node was already
    empty, so concurrent collects can never overdraw it.
    """
    last_unit = ResourceNode.current_amount <= 1
    stmt = (
        update(ResourceNode)
        .where(
            ResourceNode.id == node.id,
            ResourceNode.is_depleted.is_(False),
            ResourceNode.current_amount > 0,
        )
        .values(
            current_amount=ResourceNode.current_amount - 1,
            last_gathered_at=now,
            is_depleted=case((last_unit, True), else_=ResourceNode.is_depleted),
            depleted_at=case((last_unit, literal(now, UTCDateTime)), else_=ResourceNode.depleted_at),
        )
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.refresh(node)
    return result.rowcount == 1


async def _state(db: AsyncSession, node: ResourceNode, node_type: ResourceNodeType, now: datetime) -> NodeState:
    respawned = False
    if node.is_depleted and is_available(node, node_type.respawn_minutes, now):
        respawned = await respawn(db, node, node_type.respawn_minutes, now)
        if respawned:
            logger.info("Node %s respawned (%d/%d)", node.id, node.current_amount, node.max_amount)
            await log_event(db, "node_respawned", source="world", metadata={
                "node_id": str(node.id),
                "node_type": node_type.name,
                "amount": node.current_amount,
            })
    respawn_in = None
    if node.is_depleted:
        due = respawn_due_at(node, node_type.respawn_minutes)
        respawn_in = seconds_until(due, now) if due is not None else None
    return NodeState(node=node, node_type=node_type, respawned=respawned, respawn_in_seconds=respawn_in)


async def load_node(
    db: AsyncSession,
    node_id: uuid.UUID,
    now: datetime | None = None,
    active_only: bool = True,
) -> NodeState:
    """
    Fetch a node with its type, applying any respawn that is due.

    Nodes of a disabled type are hidden unless active_only is False, which
    lets jobs already running on them still finish.
    """
    now = now or utcnow()
    stmt = (
        select(ResourceNode, ResourceNodeType)
        .join(ResourceNodeType, ResourceNode.node_type_id == ResourceNodeType.id)
        .where(ResourceNode.id == node_id)
    )
    if active_only:
        stmt = stmt.where(ResourceNodeType.is_active.is_(True))
    row = (await db.execute(stmt)).first()
    if row is None:
        raise NodeNotFound("Resource node not found", node_id=str(node_id))
    node, node_type = row
    return await _state(db, node, node_type, now)


async def list_nodes(
    db: AsyncSession,
    min_x: float,
    max_x: float,
    min_y: float,
    max_y: float,
    now: datetime | None = None,
) -> list[NodeState]:
    now = now or utcnow()
    stmt = (
        select(ResourceNode, ResourceNodeType)
        .join(ResourceNodeType, ResourceNode.node_type_id == ResourceNodeType.id)
        .where(
            ResourceNode.world_x.between(min_x, max_x),
            ResourceNode.world_y.between(min_y, max_y),
            ResourceNodeType.is_active.is_(True),
        )
    )
    rows = (await db.execute(stmt)).all()
    return [await _state(db, node, node_type, now) for node, node_type in rows]
