"""Status enumeration for scheduled task attempts.

Defines lifecycle states of a single scheduled job record in the
in-memory backend.
"""

from enum import Enum


class TaskStatus(Enum):
    """Status of one scheduled task attempt.

    Lifecycle:
        PENDING → RUNNING → COMPLETE | SUSPENDED | FAILED

    A suspended attempt does not come back to PENDING. Suspension schedules
    a brand new job record (attempt + 1) and this record stays SUSPENDED.
    """

    PENDING = "PENDING"
    """Job is queued, waiting for its resume time and a worker."""

    RUNNING = "RUNNING"
    """Job has been claimed by a worker and the task body is executing."""

    SUSPENDED = "SUSPENDED"
    """Attempt ended with a suspend; superseded by the next scheduled job."""

    COMPLETE = "COMPLETE"
    """Task body returned normally."""

    FAILED = "FAILED"
    """Task body raised an error, or the job could not be executed."""

    @property
    def is_terminal(self) -> bool:
        """Check if this status ends the record's lifecycle."""
        return self in (TaskStatus.COMPLETE, TaskStatus.FAILED, TaskStatus.SUSPENDED)

    def __str__(self) -> str:
        return self.value
