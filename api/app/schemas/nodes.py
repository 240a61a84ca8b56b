# api/app/schemas/nodes.py
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class NodeResponse(BaseModel):
    id: uuid.UUID
    node_type_id: uuid.UUID
    name: str
    display_name: str
    category: str
    required_tool_type: str | None = None
    min_level: int
    world_x: float
    world_y: float
    current_amount: int
    max_amount: int
    is_depleted: bool
    last_gathered_at: datetime | None = None
    respawn_in_seconds: int | None = None


class NodeListResponse(BaseModel):
    nodes: list[NodeResponse]
