# services/ledger.py
"""
Resource ledger: per-player item counts.

Debits are conditional UPDATEs (`quantity >= needed`), so a debit that races
another one fails instead of going negative. The caller's transaction owns
atomicity across several debits: on any error the request session rolls back.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jobs.errors import InsufficientResources
from models.item import InventoryItem, Item

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Requirement:
    item_id: uuid.UUID
    quantity: int
    display_name: str | None = None


def merge_requirements(requirements: list[Requirement]) -> list[Requirement]:
    """Sum duplicate items so each row is debited once."""
    merged: dict[uuid.UUID, Requirement] = {}
    for req in requirements:
        if req.quantity <= 0:
            continue
        prev = merged.get(req.item_id)
        if prev is None:
            merged[req.item_id] = req
        else:
            merged[req.item_id] = Requirement(
                item_id=req.item_id,
                quantity=prev.quantity + req.quantity,
                display_name=prev.display_name or req.display_name,
            )
    return list(merged.values())


async def get_quantities(
    db: AsyncSession,
    player_id: uuid.UUID,
    item_ids: list[uuid.UUID],
) -> dict[uuid.UUID, int]:
    if not item_ids:
        return {}
    stmt = select(InventoryItem.item_id, InventoryItem.quantity).where(
        InventoryItem.player_id == player_id,
        InventoryItem.item_id.in_(item_ids),
    )
    rows = (await db.execute(stmt)).all()
    return {item_id: quantity for item_id, quantity in rows}


async def get_quantity(db: AsyncSession, player_id: uuid.UUID, item_id: uuid.UUID) -> int:
    return (await get_quantities(db, player_id, [item_id])).get(item_id, 0)


async def find_missing(
    db: AsyncSession,
    player_id: uuid.UUID,
    requirements: list[Requirement],
) -> list[dict]:
    requirements = merge_requirements(requirements)
    have = await get_quantities(db, player_id, [r.item_id for r in requirements])
    missing = []
    for req in requirements:
        owned = have.get(req.item_id, 0)
        if owned < req.quantity:
            missing.append({
                "item_id": str(req.item_id),
                "item": req.display_name,
                "required": req.quantity,
                "have": owned,
            })
    return missing


async def ensure_sufficient(
    db: AsyncSession,
    player_id: uuid.UUID,
    requirements: list[Requirement],
) -> None:
    missing = await find_missing(db, player_id, requirements)
    if missing:
        raise InsufficientResources("Not enough resources", missing=missing)


async def debit(
    db: AsyncSession,
    player_id: uuid.UUID,
    requirements: list[Requirement],
) -> dict[str, int]:
    """
    Remove every requirement or raise. Returns the consumed inputs keyed by item id.

    Rows that reach zero are deleted. Earlier debits of a failed call are
    undone when the caller rolls back its transaction or savepoint.
    """
    consumed: dict[str, int] = {}
    for req in merge_requirements(requirements):
        stmt = (
            update(InventoryItem)
            .where(
                InventoryItem.player_id == player_id,
                InventoryItem.item_id == req.item_id,
                InventoryItem.quantity >= req.quantity,
            )
            .values(quantity=InventoryItem.quantity - req.quantity)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        if result.rowcount != 1:
            raise InsufficientResources(
                "Not enough resources",
                missing=[{
                    "item_id": str(req.item_id),
                    "item": req.display_name,
                    "required": req.quantity,
                }],
            )
        consumed[str(req.item_id)] = req.quantity

    if consumed:
        await db.execute(
            delete(InventoryItem)
            .where(InventoryItem.player_id == player_id, InventoryItem.quantity <= 0)
            .execution_options(synchronize_session=False)
        )
        logger.info("Debited %s from player %s", consumed, player_id)
    return consumed


async def credit(
    db: AsyncSession,
    player_id: uuid.UUID,
    item_id: uuid.UUID,
    quantity: int,
) -> int:
    """Add items to the player's inventory. Returns the new total."""
    if quantity <= 0:
        return await get_quantity(db, player_id, item_id)

    stmt = (
        update(InventoryItem)
        .where(InventoryItem.player_id == player_id, InventoryItem.item_id == item_id)
        .values(quantity=InventoryItem.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        db.add(InventoryItem(player_id=player_id, item_id=item_id, quantity=quantity))
        await db.flush()
    total = await get_quantity(db, player_id, item_id)
    logger.info("Credited %dx %s to player %s (now %d)", quantity, item_id, player_id, total)
    return total


async def item_names(db: AsyncSession, item_ids: list[uuid.UUID]) -> dict[uuid.UUID, str]:
    if not item_ids:
        return {}
    rows = (await db.execute(select(Item.id, Item.display_name).where(Item.id.in_(item_ids)))).all()
    return {item_id: name for item_id, name in rows}
