"""Scheduled job record and the handle returned to callers.

Represents one attempt of a resumable task waiting in (or processed by)
a job store.
"""

from dataclasses import dataclass, field
from datetime import datetime

from pyresumable.models.backoff import utc_now
from pyresumable.models.status import TaskStatus


@dataclass(frozen=True)
class JobHandle:
    """Reference to a scheduled attempt.

    Returned by Scheduler.schedule() so callers can track the attempt
    without knowing how the backend stores it.
    """

    job_id: str
    task_type: str
    resume_at: datetime

    def __repr__(self) -> str:
        return (
            f"JobHandle(job_id={self.job_id!r}, task_type={self.task_type!r}, "
            f"resume_at={self.resume_at.isoformat()})"
        )


@dataclass
class ScheduledJob:
    """One attempt of a resumable task in the job store.

    Design: Value Object
        Snapshot of queue state with everything a worker needs to re-invoke
        the task: which task type, with which state, not before when.
    """

    job_id: str
    """Unique identifier for this attempt (uuid7 string)."""

    task_type: str
    """Stable task type identifier, used to look up the registered task."""

    state_data: bytes
    """Serialized task state (pickle format)."""

    resume_at: datetime
    """Earliest time a worker may run this attempt."""

    attempt: int = 0
    """Attempt counter carried in the state."""

    status: TaskStatus = TaskStatus.PENDING
    """Current job status."""

    created_at: datetime = field(default_factory=utc_now)
    """When this job was scheduled."""

    updated_at: datetime = field(default_factory=utc_now)
    """When this job last changed status."""

    locked_by: str | None = None
    """Worker that claimed the job, None while unclaimed."""

    error_message: str | None = None
    """Error text of a FAILED attempt, or the suspend reason of a SUSPENDED one."""

    version: str | None = None
    """Deployment version that scheduled the job, see StoreScheduler.with_version()."""

    def handle(self) -> JobHandle:
        """Public handle for this job."""
        return JobHandle(job_id=self.job_id, task_type=self.task_type, resume_at=self.resume_at)

    def is_due(self, now: datetime) -> bool:
        """Check if the job is pending and its resume time has passed."""
        return self.status == TaskStatus.PENDING and self.resume_at <= now

    def __repr__(self) -> str:
        return (
            f"ScheduledJob(job_id={self.job_id!r}, task_type={self.task_type!r}, "
            f"attempt={self.attempt}, status={self.status}, "
            f"resume_at={self.resume_at.isoformat()})"
        )
