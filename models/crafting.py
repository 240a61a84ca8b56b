# models/crafting.py
from __future__ import annotations

import uuid

from sqlalchemy import Float, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey

PROFESSIONS = ["blacksmith", "leatherworker", "tailor", "alchemist"]


class EquipmentType(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "equipment_types"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    slot: Mapped[str] = mapped_column(String(32), nullable=False)  # weapon | head | chest | legs | ...


class EquipmentRecipe(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "equipment_recipes"

    equipment_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("equipment_types.id", ondelete="CASCADE"), nullable=False
    )
    profession: Mapped[str] = mapped_column(String(32), nullable=False)
    required_profession_level: Mapped[int] = mapped_column(Integer, default=1)
    experience_reward: Mapped[int] = mapped_column(Integer, default=10)
    craft_time: Mapped[int] = mapped_column(Integer, default=60)  # seconds
    # Building whose level feeds the quality roll (e.g. the forge)
    station_building_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("buildings.id"), nullable=True
    )


class RecipeMaterial(Base, UUIDPrimaryKey):
    __tablename__ = "recipe_materials"

    recipe_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("equipment_recipes.id", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1)


class PlayerEquipment(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "player_equipment"

    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id"), nullable=False)
    equipment_type_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("equipment_types.id"), nullable=False)
    quality: Mapped[str] = mapped_column(String(16), default="normal")
    quality_bonus: Mapped[float] = mapped_column(Float, default=1.0)
    # One item per crafting job, enforced by the store
    source_job_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, unique=True, nullable=True)


class ProfessionStat(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "profession_stats"
    __table_args__ = (UniqueConstraint("player_id", "profession", name="uq_profession_player"),)

    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id"), nullable=False)
    profession: Mapped[str] = mapped_column(String(32), nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1)
    experience: Mapped[int] = mapped_column(Integer, default=0)
