# api/app/routes/collection.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import get_current_player, get_session
from api.app.schemas.jobs import CollectionBody, StartJobResponse, job_response
from jobs import lifecycle
from jobs.handlers import CollectionRequest
from models.job import COLLECTION
from models.player import Player

router = APIRouter(tags=["collection"])


@router.post("/collection", response_model=StartJobResponse)
async def start_collection(
    body: CollectionBody,
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    request = CollectionRequest(duration_minutes=body.duration_minutes)
    started = await lifecycle.start_job(db, player, COLLECTION, request)
    return StartJobResponse(
        job=job_response(lifecycle.derive_view(started.job, started.job.started_at)),
        preview=started.preview,
    )
