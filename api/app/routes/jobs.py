# api/app/routes/jobs.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import get_current_player, get_session
from api.app.schemas.jobs import CancelResponse, CollectResponse, CurrentJobResponse, job_response
from jobs import lifecycle
from jobs.errors import NoActiveJob
from jobs.timing import utcnow
from models.player import Player

router = APIRouter(tags=["jobs"])


@router.get("/jobs/current", response_model=CurrentJobResponse)
async def get_current_job(
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    view = await lifecycle.get_status(db, player)
    if view is None:
        return CurrentJobResponse(job=None)
    return CurrentJobResponse(job=job_response(view))


@router.post("/jobs/current/collect", response_model=CollectResponse)
async def collect_current_job(
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    now = utcnow()
    view = await lifecycle.get_status(db, player, now)
    if view is None:
        raise NoActiveJob("No active job")
    # Keep pause/resume bookkeeping even when the collect is refused
    await db.commit()

    job, rewards = await lifecycle.collect(db, player, now)
    return CollectResponse(job_id=job.id, kind=job.kind, rewards=rewards)


@router.post("/jobs/current/cancel", response_model=CancelResponse)
async def cancel_current_job(
    player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_session),
):
    job, refunded = await lifecycle.cancel(db, player)
    return CancelResponse(job_id=job.id, kind=job.kind, refunded=refunded)
