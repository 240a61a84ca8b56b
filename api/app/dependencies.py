# api/app/dependencies.py
from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_db
from models.player import Player


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db():
        yield session


async def get_current_player(
    x_player_token: str = Header(..., alias="X-Player-Token"),
    db: AsyncSession = Depends(get_session),
) -> Player:
    """Authenticate a player by their token header."""
    stmt = select(Player).where(Player.token == x_player_token)
    result = await db.execute(stmt)
    player = result.scalar_one_or_none()
    if player is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid player token",
        )
    return player
