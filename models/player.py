# models/player.py
from __future__ import annotations

from sqlalchemy import Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey


class Player(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "players"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1)

    # Simulated world position; travel itself is handled elsewhere
    world_x: Mapped[float] = mapped_column(Float, default=0.0)
    world_y: Mapped[float] = mapped_column(Float, default=0.0)
    home_x: Mapped[float | None] = mapped_column(Float, nullable=True)
    home_y: Mapped[float | None] = mapped_column(Float, nullable=True)
