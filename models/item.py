# models/item.py
from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey


class Item(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "items"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_type: Mapped[str] = mapped_column(String(32), default="resource")  # resource | material | consumable
    rarity: Mapped[str] = mapped_column(String(32), default="common")  # common | uncommon | rare | epic | legendary


class InventoryItem(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("player_id", "item_id", name="uq_inventory_player_item"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id"), nullable=False)
    item_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
