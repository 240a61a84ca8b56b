# api/app/routes/nodes.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import get_current_player, get_session
from api.app.schemas.nodes import NodeListResponse, NodeResponse
from models.player import Player
from services.respawn import NodeState, list_nodes, load_node

router = APIRouter(tags=["nodes"])


def _node_response(state: NodeState) -> NodeResponse:
    node, node_type = state.node, state.node_type
    return NodeResponse(
        id=node.id,
        node_type_id=node_type.id,
        name=node_type.name,
        display_name=node_type.display_name,
        category=node_type.category,
        required_tool_type=node_type.required_tool_type,
        min_level=node_type.min_level,
        world_x=node.world_x,
        world_y=node.world_y,
        current_amount=node.current_amount,
        max_amount=node.max_amount,
        is_depleted=node.is_depleted,
        last_gathered_at=node.last_gathered_at,
        respawn_in_seconds=state.respawn_in_seconds,
    )


@router.get("/nodes", response_model=NodeListResponse)
async def get_nodes(
    min_x: float = Query(-1000.0),
    max_x: float = Query(1000.0),
    min_y: float = Query(-1000.0),
    max_y: float = Query(1000.0),
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    states = await list_nodes(db, min_x, max_x, min_y, max_y)
    return NodeListResponse(nodes=[_node_response(s) for s in states])


@router.get("/nodes/{node_id}", response_model=NodeResponse)
async def get_node(
    node_id: uuid.UUID,
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    return _node_response(await load_node(db, node_id))
