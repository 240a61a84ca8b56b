# jobs/lifecycle.py
from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from jobs.errors import (
    ActiveJobExists,
    AlreadyCollected,
    JobConflict,
    NoActiveJob,
    NotReady,
    ValidationFailed,
)
from jobs.handlers import HANDLERS, JobHandler
from jobs.timing import finish_time, resume_finish_at, seconds_until, utcnow
from models.job import ACTIVE, CANCELLED, COLLECTED, JOB_KINDS, PAUSED, TERMINAL_STATUSES, ActiveJob, Job
from models.player import Player
from services import ledger
from services.observability import log_job_event
from services.presence import is_at_home
from services.rewards import Rng

logger = logging.getLogger(__name__)

# Derived on read, never stored
READY = "ready"

PAUSABLE_KINDS = frozenset(kind for kind, handler in HANDLERS.items() if handler.pausable)


@dataclass
class JobView:
    job: Job
    status: str
    remaining_seconds: int

    @property
    def is_paused(self) -> bool:
        return self.status == PAUSED

    @property
    def is_ready(self) -> bool:
        return self.status == READY


@dataclass
class StartedJob:
    job: Job
    preview: dict[str, Any] = field(default_factory=dict)


def _handler(kind: str) -> JobHandler:
    if kind not in JOB_KINDS:
        raise ValidationFailed(f"Unknown job kind: {kind}", kind=kind)
    return HANDLERS[kind]


def _rng(rng: Rng | None) -> Rng:
    return rng if rng is not None else random.SystemRandom()


# ─────────────────────────────────────────────
# Mutex
# ─────────────────────────────────────────────

async def get_active_job(db: AsyncSession, owner_id: uuid.UUID) -> Job | None:
    """The owner's non-terminal job, if any."""
    pointer = (
        await db.execute(select(ActiveJob).where(ActiveJob.owner_id == owner_id))
    ).scalar_one_or_none()
    if pointer is None:
        return None

    job = (
        await db.execute(
            select(Job)
            .where(Job.id == pointer.job_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()

    if job is None or job.status in TERMINAL_STATUSES:
        logger.warning("Releasing stale job slot for owner %s (job %s)", owner_id, pointer.job_id)
        await db.delete(pointer)
        await db.flush()
        return None
    return job


async def ensure_no_active_job(db: AsyncSession, owner_id: uuid.UUID) -> None:
    current = await get_active_job(db, owner_id)
    if current is not None:
        raise ActiveJobExists(
            f"You already have an active {current.kind} job",
            hasActiveJob=True,
            kind=current.kind,
            job_id=str(current.id),
        )


async def claim_owner_slot(
    db: AsyncSession,
    owner_id: uuid.UUID,
    job_id: uuid.UUID,
    kind: str,
    now: datetime,
) -> None:
    """
    Insert the owner's slot row. Of two concurrent starts only one insert
    survives the primary key; the loser gets JobConflict.
    """
    db.add(ActiveJob(owner_id=owner_id, job_id=job_id, kind=kind, claimed_at=now))
    try:
        await db.flush()
    except IntegrityError as exc:
        logger.warning("Owner %s lost a start race for a %s job", owner_id, kind)
        raise JobConflict(
            "Another job was started at the same time",
            hasActiveJob=True,
            kind=kind,
        ) from exc


async def _release_owner_slot(db: AsyncSession, job: Job) -> None:
    pointer = (
        await db.execute(
            select(ActiveJob).where(ActiveJob.owner_id == job.owner_id, ActiveJob.job_id == job.id)
        )
    ).scalar_one_or_none()
    if pointer is not None:
        await db.delete(pointer)
        await db.flush()


async def _guarded_update(
    db: AsyncSession,
    job: Job,
    expected: tuple[str, ...],
    *conditions,
    **values,
) -> bool:
    """
    Compare-and-set on the job row. Returns True when this caller made the change.
    """
    stmt = (
        update(Job)
        .where(Job.id == job.id, Job.status.in_(expected), *conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount != 1:
        return False
    await db.refresh(job)
    return True


# ─────────────────────────────────────────────
# Start
# ─────────────────────────────────────────────

async def start_job(
    db: AsyncSession,
    player: Player,
    kind: str,
    request: Any,
    now: datetime | None = None,
    rng: Rng | None = None,
) -> StartedJob:
    """
    Start a job for the player.

    Checks run in order: one job per owner, placement, gates, resources.
    Nothing is debited unless every check passed and the owner slot was won.
    """
    handler = _handler(kind)
    handler.validate(request)
    now = now or utcnow()

    await ensure_no_active_job(db, player.id)

    plan = await handler.prepare(db, player, request, now, _rng(rng))
    if plan.requirements:
        await ledger.ensure_sufficient(db, player.id, plan.requirements)

    job_id = uuid.uuid4()
    # Slot, debits and job row land together or not at all
    async with db.begin_nested():
        await claim_owner_slot(db, player.id, job_id, kind, now)

        consumed = await ledger.debit(db, player.id, plan.requirements)

        job = Job(
            id=job_id,
            owner_id=player.id,
            kind=kind,
            status=ACTIVE,
            target=plan.target,
            started_at=now,
            finish_at=finish_time(now, plan.duration_seconds),
            duration_seconds=plan.duration_seconds,
            outcome=plan.outcome,
            consumed_inputs=consumed,
            trace_id=uuid.uuid4(),
        )
        db.add(job)
        await db.flush()

    logger.info(
        "Player %s started %s job %s (%ds) trace=%s",
        player.id,
        kind,
        job.id,
        plan.duration_seconds,
        job.trace_id,
    )
    await log_job_event(
        db,
        "job_started",
        job,
        duration_seconds=plan.duration_seconds,
        consumed=consumed,
    )
    return StartedJob(job=job, preview=plan.preview)


# ─────────────────────────────────────────────
# Status
# ─────────────────────────────────────────────

def derive_view(job: Job, now: datetime) -> JobView:
    if job.status == PAUSED:
        return JobView(job=job, status=PAUSED, remaining_seconds=job.remaining_seconds or 0)
    remaining = seconds_until(job.finish_at, now)
    return JobView(job=job, status=READY if remaining == 0 else ACTIVE, remaining_seconds=remaining)


async def reconcile(db: AsyncSession, player: Player, job: Job, now: datetime) -> JobView:
    """
    Apply pause/resume for home-bound jobs, then derive the visible status.

    A paused job keeps its remaining seconds frozen; resuming pushes the
    finish time out by exactly that amount. A job that has already finished
    is never paused.
    """
    if job.kind in PAUSABLE_KINDS and job.status in (ACTIVE, PAUSED):
        at_home = is_at_home(player)

        if job.status == ACTIVE and not at_home:
            remaining = seconds_until(job.finish_at, now)
            if remaining > 0 and await _guarded_update(
                db, job, (ACTIVE,), status=PAUSED, paused_at=now, remaining_seconds=remaining
            ):
                logger.info("Paused %s job %s with %ds left", job.kind, job.id, remaining)
                await log_job_event(db, "job_paused", job, remaining_seconds=remaining)

        elif job.status == PAUSED and at_home:
            remaining = job.remaining_seconds or 0
            if await _guarded_update(
                db,
                job,
                (PAUSED,),
                status=ACTIVE,
                finish_at=resume_finish_at(now, remaining),
                paused_at=None,
                remaining_seconds=None,
            ):
                logger.info("Resumed %s job %s with %ds left", job.kind, job.id, remaining)
                await log_job_event(db, "job_resumed", job, remaining_seconds=remaining)

    return derive_view(job, now)


async def get_status(db: AsyncSession, player: Player, now: datetime | None = None) -> JobView | None:
    now = now or utcnow()
    job = await get_active_job(db, player.id)
    if job is None:
        return None
    return await reconcile(db, player, job, now)


# ─────────────────────────────────────────────
# Collect / cancel
# ─────────────────────────────────────────────

async def collect_job(
    db: AsyncSession,
    player: Player,
    job: Job,
    now: datetime | None = None,
    rng: Rng | None = None,
) -> dict[str, Any]:
    """
    Finish a ready job and grant its rewards exactly once.

    The active -> collected transition is conditional on the row still being
    active and due; only the caller that flips it grants anything.
    """
    now = now or utcnow()
    if job.owner_id != player.id:
        raise NoActiveJob("No active job", job_id=str(job.id))
    if job.status in TERMINAL_STATUSES:
        raise AlreadyCollected("Job was already finished", job_id=str(job.id), status=job.status)

    view = await reconcile(db, player, job, now)
    if view.is_paused:
        raise NotReady(
            "Job is paused until you return home",
            remaining_seconds=view.remaining_seconds,
            paused=True,
        )
    if not view.is_ready:
        raise NotReady(
            "Job is not finished yet",
            remaining_seconds=view.remaining_seconds,
            paused=False,
        )

    won = await _guarded_update(
        db, job, (ACTIVE,), Job.finish_at <= now, status=COLLECTED, finished_at=now
    )
    if not won:
        logger.warning("Collect race lost for job %s trace=%s", job.id, job.trace_id)
        raise AlreadyCollected("Job was already collected", job_id=str(job.id))

    await _release_owner_slot(db, job)

    reward = await _handler(job.kind).grant(db, player, job, now, _rng(rng))
    job.result = reward
    await db.flush()

    logger.info("Player %s collected %s job %s trace=%s", player.id, job.kind, job.id, job.trace_id)
    await log_job_event(db, "job_collected", job)
    return reward


async def collect(
    db: AsyncSession,
    player: Player,
    now: datetime | None = None,
    rng: Rng | None = None,
) -> tuple[Job, dict[str, Any]]:
    job = await get_active_job(db, player.id)
    if job is None:
        raise NoActiveJob("No active job")
    reward = await collect_job(db, player, job, now, rng)
    return job, reward


async def cancel(db: AsyncSession, player: Player, now: datetime | None = None) -> tuple[Job, dict[str, int]]:
    """
    Abandon the current job. Building inputs come back at the configured
    percentage; everything else is forfeit.
    """
    now = now or utcnow()
    job = await get_active_job(db, player.id)
    if job is None:
        raise NoActiveJob("No active job")

    if not await _guarded_update(db, job, (ACTIVE, PAUSED), status=CANCELLED, finished_at=now):
        raise AlreadyCollected("Job was already finished", job_id=str(job.id))

    await _release_owner_slot(db, job)

    refunded: dict[str, int] = {}
    percent = _handler(job.kind).refund_percent()
    if percent > 0:
        for item_id, quantity in (job.consumed_inputs or {}).items():
            amount = quantity * percent // 100
            if amount > 0:
                await ledger.credit(db, player.id, uuid.UUID(item_id), amount)
                refunded[item_id] = amount

    job.result = {"cancelled": True, "refunded": refunded}
    await db.flush()

    logger.info("Player %s cancelled %s job %s trace=%s", player.id, job.kind, job.id, job.trace_id)
    await log_job_event(db, "job_cancelled", job, refunded=refunded)
    return job, refunded
