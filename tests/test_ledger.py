# tests/test_ledger.py
from __future__ import annotations

import pytest
from sqlalchemy import select

from jobs.errors import InsufficientResources
from models.item import InventoryItem
from services import ledger
from services.ledger import Requirement


@pytest.mark.asyncio
async def test_credit_then_debit(db, player, items, give):
    assert await give(player, items["wood"], 10) == 10
    consumed = await ledger.debit(db, player.id, [Requirement(items["wood"].id, 5)])
    assert consumed == {str(items["wood"].id): 5}
    assert await ledger.get_quantity(db, player.id, items["wood"].id) == 5


@pytest.mark.asyncio
async def test_debit_to_zero_removes_row(db, player, items, give):
    await give(player, items["stone"], 3)
    await ledger.debit(db, player.id, [Requirement(items["stone"].id, 3)])
    rows = (await db.execute(
        select(InventoryItem.id).where(InventoryItem.player_id == player.id)
    )).all()
    assert rows == []


@pytest.mark.asyncio
async def test_insufficient_debit_raises(db, player, items, give):
    await give(player, items["wood"], 2)
    with pytest.raises(InsufficientResources) as exc_info:
        await ledger.debit(db, player.id, [Requirement(items["wood"].id, 5, "Wood")])
    assert exc_info.value.details["missing"][0]["required"] == 5
    assert await ledger.get_quantity(db, player.id, items["wood"].id) == 2


@pytest.mark.asyncio
async def test_find_missing_reports_every_shortfall(db, player, items, give):
    await give(player, items["wood"], 4)
    missing = await ledger.find_missing(db, player.id, [
        Requirement(items["wood"].id, 5, "Wood"),
        Requirement(items["stone"].id, 1, "Stone"),
    ])
    assert [(m["item"], m["required"], m["have"]) for m in missing] == [("Wood", 5, 4), ("Stone", 1, 0)]


@pytest.mark.asyncio
async def test_duplicate_requirements_are_merged(db, player, items, give):
    await give(player, items["wood"], 5)
    with pytest.raises(InsufficientResources):
        await ledger.ensure_sufficient(db, player.id, [
            Requirement(items["wood"].id, 3),
            Requirement(items["wood"].id, 3),
        ])


@pytest.mark.asyncio
async def test_credit_accumulates(db, player, items, give):
    await give(player, items["amber"], 1)
    assert await give(player, items["amber"], 2) == 3
