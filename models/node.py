# models/node.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKey


class ResourceNodeType(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "resource_node_types"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)  # mining | woodcutting | herbalism
    required_tool_type: Mapped[str | None] = mapped_column(String(32), nullable=True)  # pickaxe | axe | sickle
    base_gather_time: Mapped[int] = mapped_column(Integer, default=30)  # seconds
    respawn_minutes: Mapped[int] = mapped_column(Integer, default=30)
    min_level: Mapped[int] = mapped_column(Integer, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class NodeDrop(Base, UUIDPrimaryKey):
    __tablename__ = "node_drops"

    node_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("resource_node_types.id", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("items.id"), nullable=False)
    drop_chance: Mapped[float] = mapped_column(Float, default=100.0)  # percent, independent per entry
    min_quantity: Mapped[int] = mapped_column(Integer, default=1)
    max_quantity: Mapped[int] = mapped_column(Integer, default=1)
    min_tool_tier: Mapped[int] = mapped_column(Integer, default=0)
    is_rare: Mapped[bool] = mapped_column(Boolean, default=False)


class ResourceNode(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "resource_nodes"

    node_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("resource_node_types.id", ondelete="CASCADE"), nullable=False
    )
    world_x: Mapped[float] = mapped_column(Float, nullable=False)
    world_y: Mapped[float] = mapped_column(Float, nullable=False)
    current_amount: Mapped[int] = mapped_column(Integer, default=3)
    max_amount: Mapped[int] = mapped_column(Integer, default=3)
    is_depleted: Mapped[bool] = mapped_column(Boolean, default=False)
    depleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_gathered_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
