# services/observability.py
"""
Structured event logging to the events table.
"""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from models.event import Event
from models.job import Job

logger = logging.getLogger(__name__)


async def log_event(
    db: AsyncSession,
    event_type: str,
    level: str = "info",
    source: str | None = None,
    message: str | None = None,
    metadata: dict | None = None,
) -> Event:
    """Persist a structured event log entry."""
    event = Event(
        event_type=event_type,
        level=level,
        source=source,
        message=message,
        metadata_=metadata,
    )
    db.add(event)
    await db.flush()
    logger.log(
        getattr(logging, level.upper(), logging.INFO),
        "[%s] %s %s",
        event_type,
        message or "",
        metadata or {},
    )
    return event


async def log_job_event(
    db: AsyncSession,
    event_type: str,
    job: Job,
    level: str = "info",
    message: str | None = None,
    **extra,
) -> Event:
    """Event tagged with the job's identity and trace id."""
    metadata = {
        "job_id": str(job.id),
        "owner_id": str(job.owner_id),
        "kind": job.kind,
        "trace_id": str(job.trace_id),
        **extra,
    }
    return await log_event(db, event_type, level, source="jobs", message=message, metadata=metadata)
