# tests/test_api.py
from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.app import main
from api.app.dependencies import get_session
from api.app.main import app
from api.app.routes import jobs as jobs_routes
from jobs import lifecycle
from services import ledger

HEADERS = {"X-Player-Token": "token-tester"}


@pytest_asyncio.fixture
async def client(session_factory):
    async def _session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def clock(monkeypatch, now):
    """Pin the server clock; returns a setter."""
    def _set(at):
        monkeypatch.setattr(lifecycle, "utcnow", lambda: at)
        monkeypatch.setattr(jobs_routes, "utcnow", lambda: at)

    _set(now)
    return _set


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_unknown_token(client, db, player):
    await db.commit()
    resp = await client.get("/v1/jobs/current", headers={"X-Player-Token": "nope"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_gathering_flow(client, db, session_factory, player, items, make_node, clock, now):
    node = await make_node(
        [{"item_id": items["wood"].id, "drop_chance": 100.0}], base_gather_time=30
    )
    await db.commit()

    resp = await client.post(f"/v1/gathering/{node.id}", headers=HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert body["job"]["kind"] == "gathering"
    assert body["job"]["remaining_seconds"] == 30

    resp = await client.get("/v1/jobs/current", headers=HEADERS)
    assert resp.json()["job"]["status"] == "active"

    clock(now + timedelta(seconds=10))
    resp = await client.post("/v1/jobs/current/collect", headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json()["error"] == "not_ready"
    assert resp.json()["remaining_seconds"] == 20

    clock(now + timedelta(seconds=31))
    resp = await client.get("/v1/jobs/current", headers=HEADERS)
    assert resp.json()["job"]["status"] == "ready"

    resp = await client.post("/v1/jobs/current/collect", headers=HEADERS)
    assert resp.status_code == 200
    assert [i["quantity"] for i in resp.json()["rewards"]["items"]] == [1]

    resp = await client.post("/v1/jobs/current/collect", headers=HEADERS)
    assert resp.status_code == 404
    assert resp.json()["error"] == "no_active_job"

    resp = await client.get("/v1/jobs/current", headers=HEADERS)
    assert resp.json()["job"] is None

    async with session_factory() as check:
        assert await ledger.get_quantity(check, player.id, items["wood"].id) == 1


@pytest.mark.asyncio
async def test_second_job_conflicts(client, db, player, items, clock):
    await db.commit()
    resp = await client.post("/v1/collection", json={"duration_minutes": 30}, headers=HEADERS)
    assert resp.status_code == 200

    resp = await client.post("/v1/collection", json={"duration_minutes": 30}, headers=HEADERS)
    assert resp.status_code == 409
    assert resp.json()["error"] == "active_job_exists"
    assert resp.json()["hasActiveJob"] is True


@pytest.mark.asyncio
async def test_collection_duration_validated(client, db, player, clock):
    await db.commit()
    resp = await client.post("/v1/collection", json={"duration_minutes": 600}, headers=HEADERS)
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_failed"


@pytest.mark.asyncio
async def test_build_insufficient_resources(client, db, player, items, make_building, clock):
    workshop = await make_building([(items["wood"], 5)])
    await db.commit()
    resp = await client.post(f"/v1/buildings/{workshop.id}/build", headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json()["error"] == "insufficient_resources"
    assert resp.json()["missing"][0]["required"] == 5


@pytest.mark.asyncio
async def test_cancel_current_job(client, db, player, items, give, make_building, clock):
    await give(player, items["wood"], 5)
    workshop = await make_building([(items["wood"], 5)])
    await db.commit()

    resp = await client.post(f"/v1/buildings/{workshop.id}/build", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["consumed"] == {str(items["wood"].id): 5}

    resp = await client.post("/v1/jobs/current/cancel", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["kind"] == "building"

    resp = await client.post("/v1/jobs/current/cancel", headers=HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_crafting_preview(client, db, player, make_recipe, clock):
    recipe = await make_recipe([])
    await db.commit()
    resp = await client.post(f"/v1/crafting/{recipe.id}", headers=HEADERS)
    assert resp.status_code == 200
    assert set(resp.json()["preview"]["quality_chances"]) == {
        "poor", "normal", "good", "excellent", "masterwork", "legendary",
    }


@pytest.mark.asyncio
async def test_nodes(client, db, player, items, make_node, clock):
    node = await make_node([], x=3.0, y=4.0)
    await db.commit()

    resp = await client.get("/v1/nodes", params={"min_x": 0, "max_x": 10, "min_y": 0, "max_y": 10}, headers=HEADERS)
    assert resp.status_code == 200
    assert [n["id"] for n in resp.json()["nodes"]] == [str(node.id)]

    resp = await client.get(f"/v1/nodes/{node.id}", headers=HEADERS)
    assert resp.json()["current_amount"] == 3

    resp = await client.get("/v1/nodes/00000000-0000-0000-0000-000000000000", headers=HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_shutdown_disposes_engine(monkeypatch):
    dispose = AsyncMock()
    monkeypatch.setattr(main, "dispose_engine", dispose)
    async with main.lifespan(app):
        dispose.assert_not_awaited()
    dispose.assert_awaited_once()
