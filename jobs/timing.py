# jobs/timing.py
"""
Pure time arithmetic for jobs. Nothing here touches the database.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

MAX_TIME_REDUCTION_PERCENT = 50
TIME_REDUCTION_PER_LEVEL = 2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_duration(
    base_seconds: int,
    speed_bonus: float = 1.0,
    reduction_percent: int = 0,
    minimum: int = 0,
) -> int:
    """
    Resolve a job duration once, at start.

    `speed_bonus` divides the base time (tools), `reduction_percent` shaves a
    share off it (profession level). Result is floored, never below `minimum`.
    """
    if speed_bonus <= 0:
        speed_bonus = 1.0
    reduction_percent = max(0, min(100, reduction_percent))
    seconds = base_seconds * (100 - reduction_percent) / 100 / speed_bonus
    return max(minimum, math.floor(seconds))


def crafting_time_reduction(profession_level: int, required_level: int) -> int:
    """Percent of craft time saved for each profession level above the recipe's requirement."""
    surplus = max(0, profession_level - required_level)
    return min(MAX_TIME_REDUCTION_PERCENT, surplus * TIME_REDUCTION_PER_LEVEL)


def finish_time(started_at: datetime, duration_seconds: int) -> datetime:
    return started_at + timedelta(seconds=duration_seconds)


def seconds_until(finish_at: datetime, now: datetime) -> int:
    """Whole seconds left, rounded up so a snapshot never shortens a job."""
    remaining = (finish_at - now).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining)


def resume_finish_at(now: datetime, remaining_seconds: int) -> datetime:
    return now + timedelta(seconds=max(0, remaining_seconds))
