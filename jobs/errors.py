# jobs/errors.py
"""
Error taxonomy for the job engine.

Every error is raised before any partial write is committed, so callers may
retry any of them without risking a double effect.
"""
from __future__ import annotations

from typing import Any


class JobError(Exception):
    code = "job_error"
    status_code = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message, **self.details}


# ── validation ──

class ValidationFailed(JobError):
    code = "validation_failed"
    status_code = 422


# ── precondition ──

class PreconditionFailed(JobError):
    code = "precondition_failed"


class ActiveJobExists(PreconditionFailed):
    code = "active_job_exists"
    status_code = 409


class TooFar(PreconditionFailed):
    code = "too_far"


class NotAtHome(PreconditionFailed):
    code = "not_at_home"


class NodeDepleted(PreconditionFailed):
    code = "node_depleted"


class ToolRequired(PreconditionFailed):
    code = "tool_required"


class ToolBroken(PreconditionFailed):
    code = "tool_broken"


class LevelTooLow(PreconditionFailed):
    code = "level_too_low"


class ProfessionLevelTooLow(PreconditionFailed):
    code = "profession_level_too_low"


class InsufficientResources(PreconditionFailed):
    code = "insufficient_resources"


class AlreadyBuilt(PreconditionFailed):
    code = "already_built"


class NotBuilt(PreconditionFailed):
    code = "not_built"


class MaxLevelReached(PreconditionFailed):
    code = "max_level_reached"


# ── conflict ──

class JobConflict(JobError):
    code = "conflict"
    status_code = 409


class AlreadyCollected(JobConflict):
    code = "already_collected"


# ── timing ──

class NotReady(JobError):
    code = "not_ready"


# ── not found ──

class NotFound(JobError):
    code = "not_found"
    status_code = 404


class NoActiveJob(NotFound):
    code = "no_active_job"


class PlayerNotFound(NotFound):
    code = "player_not_found"


class NodeNotFound(NotFound):
    code = "node_not_found"


class BuildingNotFound(NotFound):
    code = "building_not_found"


class RecipeNotFound(NotFound):
    code = "recipe_not_found"
