"""In-memory job store for pyresumable.

Design Pattern: Adapter Pattern
InMemoryJobStore adapts a dictionary to the JobStore interface.

Process-local and non-durable: use it in tests, examples and single-process
tools. Instance is immediately usable after __init__.
"""

from __future__ import annotations

import threading
from datetime import datetime

from pyresumable.models import ScheduledJob, TaskStatus, utc_now
from pyresumable.storage.base import JobStore, StorageError


class InMemoryJobStore(JobStore):
    """In-memory job storage.

    All access goes through one lock, so claim() is atomic across threads
    and two workers never run the same job.

    Usage:
        store = InMemoryJobStore()
        scheduler = StoreScheduler(store, "FetchPages")
        scheduler.schedule(resume_at, {"attempt": 0})
    """

    def __init__(self):
        # Storage: {job_id: ScheduledJob}, insertion ordered
        self._jobs: dict[str, ScheduledJob] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"InMemoryJobStore(jobs={len(self._jobs)})"

    def __len__(self) -> int:
        return len(self._jobs)

    def enqueue(self, job: ScheduledJob) -> str:
        with self._lock:
            if job.job_id in self._jobs:
                raise StorageError(f"job {job.job_id} already exists")
            if job.status != TaskStatus.PENDING:
                raise StorageError(f"job {job.job_id} must be PENDING to enqueue, got {job.status}")
            if job.resume_at.utcoffset() is None:
                raise StorageError(f"job {job.job_id} has a naive resume_at {job.resume_at}")
            self._jobs[job.job_id] = job
            return job.job_id

    def get(self, job_id: str) -> ScheduledJob:
        with self._lock:
            return self._get_locked(job_id)

    def due(self, now: datetime) -> list[ScheduledJob]:
        with self._lock:
            ready = [job for job in self._jobs.values() if job.is_due(now)]
        return sorted(ready, key=lambda job: job.resume_at)

    def claim(self, job_id: str, worker_id: str) -> ScheduledJob:
        with self._lock:
            job = self._get_locked(job_id)
            if job.status != TaskStatus.PENDING:
                raise StorageError(f"job {job_id} cannot be claimed from status {job.status}")
            job.status = TaskStatus.RUNNING
            job.locked_by = worker_id
            job.updated_at = utc_now()
            return job

    def complete(
        self, job_id: str, status: TaskStatus, error_message: str | None = None
    ) -> ScheduledJob:
        if not status.is_terminal:
            raise StorageError(f"cannot complete job {job_id} with non-terminal status {status}")

        with self._lock:
            job = self._get_locked(job_id)
            if job.status != TaskStatus.RUNNING:
                raise StorageError(f"job {job_id} is not RUNNING (status {job.status})")
            job.status = status
            job.error_message = error_message
            job.locked_by = None
            job.updated_at = utc_now()
            return job

    def jobs(self) -> list[ScheduledJob]:
        with self._lock:
            return list(self._jobs.values())

    def reset(self) -> None:
        with self._lock:
            self._jobs.clear()

    def _get_locked(self, job_id: str) -> ScheduledJob:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise StorageError(f"job {job_id} not found") from None
