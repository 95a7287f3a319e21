"""Core data models for resumable tasks.

Defines task state helpers, backoff calculation, and the job records
used by scheduling backends.

Design: Dependency-Free Models
These types have no dependencies on executor or storage modules to
prevent circular imports and enable clean layering.
"""

from pyresumable.models.backoff import DEFAULT_BASE_UNIT, Backoff, compute_resume_at, utc_now
from pyresumable.models.scheduled_job import JobHandle, ScheduledJob
from pyresumable.models.state import (
    ATTEMPT_KEY,
    InvalidArgumentError,
    State,
    StateFilter,
    attempt_of,
    identity_filter,
    merge_state,
    validate_attempt,
    with_attempt,
)
from pyresumable.models.status import TaskStatus

__all__ = [
    "ATTEMPT_KEY",
    "State",
    "StateFilter",
    "InvalidArgumentError",
    "attempt_of",
    "identity_filter",
    "merge_state",
    "validate_attempt",
    "with_attempt",
    "Backoff",
    "DEFAULT_BASE_UNIT",
    "compute_resume_at",
    "utc_now",
    "TaskStatus",
    "JobHandle",
    "ScheduledJob",
]
