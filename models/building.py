# models/building.py
from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey

DEFAULT_MAX_LEVEL = 5
DEFAULT_BUILD_MINUTES = 5
DEFAULT_UPGRADE_MINUTES = 3


class Building(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "buildings"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    max_level: Mapped[int] = mapped_column(Integer, default=DEFAULT_MAX_LEVEL)
    build_duration_minutes: Mapped[int] = mapped_column(Integer, default=DEFAULT_BUILD_MINUTES)
    upgrade_duration_minutes: Mapped[int] = mapped_column(Integer, default=DEFAULT_UPGRADE_MINUTES)


class BuildingRequirement(Base, UUIDPrimaryKey):
    __tablename__ = "building_requirements"

    building_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("buildings.id", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    requirement_type: Mapped[str] = mapped_column(String(16), default="build")  # build | upgrade
    level: Mapped[int] = mapped_column(Integer, default=0)  # upgrade target level, 0 = any level


class PlayerBuilding(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "player_buildings"
    __table_args__ = (UniqueConstraint("player_id", "building_id", name="uq_player_building"),)

    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id"), nullable=False)
    building_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("buildings.id"), nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1)
