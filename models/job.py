# models/job.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType, TimestampMixin, UTCDateTime, UUIDPrimaryKey

# kinds
GATHERING = "gathering"
BUILDING = "building"
CRAFTING = "crafting"
COLLECTION = "collection"
JOB_KINDS = (GATHERING, BUILDING, CRAFTING, COLLECTION)

# stored statuses; "ready" is derived on read and never stored
ACTIVE = "active"
PAUSED = "paused"
COLLECTED = "collected"
CANCELLED = "cancelled"
TERMINAL_STATUSES = (COLLECTED, CANCELLED)


class Job(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "jobs"

    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id"), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)

    # active | paused | collected | cancelled
    status: Mapped[str] = mapped_column(String(32), default=ACTIVE)
    target: Mapped[dict] = mapped_column(JSONType, default=dict)

    started_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    finish_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)

    # Pause snapshot, authoritative only while status == paused
    paused_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    remaining_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    outcome: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    consumed_inputs: Mapped[dict] = mapped_column(JSONType, default=dict)
    result: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    trace_id: Mapped[uuid.UUID] = mapped_column(Uuid, default=uuid.uuid4, nullable=False)


class ActiveJob(Base):
    """One row per owner holding a non-terminal job; the primary key is the mutex."""

    __tablename__ = "active_jobs"

    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id"), primary_key=True)
    job_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
