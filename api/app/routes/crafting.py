# api/app/routes/crafting.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import get_current_player, get_session
from api.app.schemas.jobs import StartJobResponse, job_response
from jobs import lifecycle
from jobs.handlers import CraftRequest
from models.job import CRAFTING
from models.player import Player

router = APIRouter(tags=["crafting"])


@router.post("/crafting/{recipe_id}", response_model=StartJobResponse)
async def start_crafting(
    recipe_id: uuid.UUID,
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    # preview carries the quality odds only; the rolled tier stays hidden until collect
    started = await lifecycle.start_job(db, player, CRAFTING, CraftRequest(recipe_id=recipe_id))
    return StartJobResponse(
        job=job_response(lifecycle.derive_view(started.job, started.job.started_at)),
        consumed=started.job.consumed_inputs or {},
        preview=started.preview,
    )
