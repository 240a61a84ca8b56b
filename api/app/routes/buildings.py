# api/app/routes/buildings.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import get_current_player, get_session
from api.app.schemas.jobs import StartJobResponse, job_response
from jobs import lifecycle
from jobs.handlers import BuildRequest
from models.job import BUILDING
from models.player import Player

router = APIRouter(tags=["buildings"])


async def _start(db: AsyncSession, player: Player, request: BuildRequest) -> StartJobResponse:
    started = await lifecycle.start_job(db, player, BUILDING, request)
    return StartJobResponse(
        job=job_response(lifecycle.derive_view(started.job, started.job.started_at)),
        consumed=started.job.consumed_inputs or {},
        preview=started.preview,
    )


@router.post("/buildings/{building_id}/build", response_model=StartJobResponse)
async def start_building(
    building_id: uuid.UUID,
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    return await _start(db, player, BuildRequest(building_id=building_id))


@router.post("/buildings/{building_id}/upgrade", response_model=StartJobResponse)
async def start_upgrade(
    building_id: uuid.UUID,
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    return await _start(db, player, BuildRequest(building_id=building_id, upgrade=True))
