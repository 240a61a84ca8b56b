# services/presence.py
"""
Presence oracle: where a player stands and whether that counts as "home".
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from api.app.config import get_settings
from jobs.errors import PlayerNotFound
from models.player import Player


@dataclass(frozen=True)
class Presence:
    x: float
    y: float
    home_x: float
    home_y: float
    distance_from_home: float
    at_home: bool


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x1 - x2, y1 - y2)


def presence_of(player: Player, home_radius: float | None = None) -> Presence:
    """A player with no home set is treated as standing on it."""
    if home_radius is None:
        home_radius = get_settings().home_radius
    x = player.world_x or 0.0
    y = player.world_y or 0.0
    home_x = player.home_x if player.home_x is not None else x
    home_y = player.home_y if player.home_y is not None else y
    d = distance(x, y, home_x, home_y)
    return Presence(
        x=x,
        y=y,
        home_x=home_x,
        home_y=home_y,
        distance_from_home=d,
        at_home=d <= home_radius,
    )


def is_at_home(player: Player, home_radius: float | None = None) -> bool:
    return presence_of(player, home_radius).at_home


def distance_to(player: Player, x: float, y: float) -> float:
    return distance(player.world_x or 0.0, player.world_y or 0.0, x, y)


async def load_presence(db: AsyncSession, player_id: uuid.UUID) -> Presence:
    player = await db.get(Player, player_id)
    if player is None:
        raise PlayerNotFound("Player not found", player_id=str(player_id))
    return presence_of(player)
