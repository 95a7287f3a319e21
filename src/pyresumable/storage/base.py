"""
JobStore - Abstract interface for job storage backends.

Design Pattern: Adapter Pattern
JobStore defines the target interface that job storage adapters implement.
StoreScheduler and Worker depend on this abstraction, not on a concrete
backend.

Interface is focused: enqueue, look up, claim and finish jobs. Durability,
distribution and cross-process locking belong to concrete backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from pyresumable.models import ScheduledJob, TaskStatus


class StorageError(Exception):
    """
    Storage operation failed.

    Raised for unknown job ids and invalid status transitions.
    """

    pass


class JobStore(ABC):
    """
    Abstract storage interface for scheduled task attempts.

    Each method has one clear purpose; job ids are the only key.
    """

    @abstractmethod
    def enqueue(self, job: ScheduledJob) -> str:
        """
        Store a new PENDING job.

        Returns:
            The job id

        Raises:
            StorageError: If a job with the same id already exists
        """

    @abstractmethod
    def get(self, job_id: str) -> ScheduledJob:
        """
        Look up a job by id.

        Raises:
            StorageError: If the job does not exist
        """

    @abstractmethod
    def due(self, now: datetime) -> list[ScheduledJob]:
        """
        PENDING jobs whose resume time is at or before ``now``.

        Returns:
            Jobs ordered by resume time, oldest first
        """

    @abstractmethod
    def claim(self, job_id: str, worker_id: str) -> ScheduledJob:
        """
        Atomically move a PENDING job to RUNNING.

        Raises:
            StorageError: If the job does not exist or is not PENDING
        """

    @abstractmethod
    def complete(
        self, job_id: str, status: TaskStatus, error_message: str | None = None
    ) -> ScheduledJob:
        """
        Finish a RUNNING job with a terminal status.

        Raises:
            StorageError: If the job does not exist, is not RUNNING,
                          or status is not terminal
        """

    @abstractmethod
    def jobs(self) -> list[ScheduledJob]:
        """All jobs in scheduling order."""

    def pending(self) -> list[ScheduledJob]:
        """Jobs still waiting to run, ordered by resume time."""
        return sorted(
            (job for job in self.jobs() if job.status == TaskStatus.PENDING),
            key=lambda job: job.resume_at,
        )

    @abstractmethod
    def reset(self) -> None:
        """Remove every job."""
