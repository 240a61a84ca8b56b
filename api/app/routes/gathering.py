# api/app/routes/gathering.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import get_current_player, get_session
from api.app.schemas.jobs import GatherBody, StartJobResponse, job_response
from jobs import lifecycle
from jobs.handlers import GatherRequest
from models.job import GATHERING
from models.player import Player

router = APIRouter(tags=["gathering"])


@router.post("/gathering/{node_id}", response_model=StartJobResponse)
async def start_gathering(
    node_id: uuid.UUID,
    body: GatherBody | None = None,
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    request = GatherRequest(node_id=node_id, tool_id=body.tool_id if body else None)
    started = await lifecycle.start_job(db, player, GATHERING, request)
    return StartJobResponse(
        job=job_response(lifecycle.derive_view(started.job, started.job.started_at)),
        consumed=started.job.consumed_inputs or {},
        preview=started.preview,
    )
