# api/app/schemas/jobs.py
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class GatherBody(BaseModel):
    tool_id: uuid.UUID | None = None


class CollectionBody(BaseModel):
    duration_minutes: int


class JobResponse(BaseModel):
    id: uuid.UUID
    kind: str
    # active | paused | ready
    status: str
    target: dict
    started_at: datetime
    finish_at: datetime
    duration_seconds: int
    remaining_seconds: int
    is_paused: bool
    is_ready: bool
    paused_at: datetime | None = None
    trace_id: uuid.UUID


class StartJobResponse(BaseModel):
    job: JobResponse
    consumed: dict[str, int] = {}
    preview: dict = {}


class CurrentJobResponse(BaseModel):
    job: JobResponse | None = None


class CollectResponse(BaseModel):
    job_id: uuid.UUID
    kind: str
    rewards: dict


class CancelResponse(BaseModel):
    job_id: uuid.UUID
    kind: str
    refunded: dict[str, int] = {}


def job_response(view) -> JobResponse:
    """Render a lifecycle JobView."""
    job = view.job
    return JobResponse(
        id=job.id,
        kind=job.kind,
        status=view.status,
        target=job.target or {},
        started_at=job.started_at,
        finish_at=job.finish_at,
        duration_seconds=job.duration_seconds,
        remaining_seconds=view.remaining_seconds,
        is_paused=view.is_paused,
        is_ready=view.is_ready,
        paused_at=job.paused_at,
        trace_id=job.trace_id,
    )
