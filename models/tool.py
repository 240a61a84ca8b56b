# models/tool.py
from __future__ import annotations

import uuid

from sqlalchemy import Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey


class ToolType(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "tool_types"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)  # pickaxe | axe | sickle
    tier: Mapped[int] = mapped_column(Integer, default=1)
    speed_bonus: Mapped[float] = mapped_column(Float, default=1.0)  # divides gather time
    rare_drop_bonus: Mapped[float] = mapped_column(Float, default=0.0)  # fraction, added to rare drop chance
    efficiency_bonus: Mapped[float] = mapped_column(Float, default=0.0)  # fraction of extra quantity
    durability: Mapped[int] = mapped_column(Integer, default=100)


class PlayerTool(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "player_tools"

    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id"), nullable=False)
    tool_type_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tool_types.id"), nullable=False)
    current_durability: Mapped[int] = mapped_column(Integer, default=100)
