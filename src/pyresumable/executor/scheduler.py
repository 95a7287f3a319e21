"""
Scheduler - the boundary between a suspended task and its backend.

Design Principle: Single Responsibility (SOLID)
A Scheduler has ONE job: accept (resume_at, state) and arrange for the same
task to be invoked again with that state. It does NOT execute tasks (that's
the Worker's job) and it does NOT retry itself (retrying is the backend's
concern).

The ResumableExecutor calls schedule() exactly once per suspend and
surfaces whatever it raises.

StoreScheduler is the reference implementation writing ScheduledJobs to a
JobStore. Other backends (a Celery beat entry, a database row, a cloud task)
implement the same one-method interface.
"""

import logging
import os
import pickle
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from uuid_extensions import uuid7

from pyresumable.models import ATTEMPT_KEY, JobHandle, ScheduledJob, State, attempt_of
from pyresumable.storage.base import JobStore

logger = logging.getLogger(__name__)

__all__ = ["Scheduler", "SchedulerError", "StoreScheduler"]


class SchedulerError(Exception):
    """
    Scheduling the next attempt failed.

    Wraps the underlying error (serialization rejected, backend unavailable)
    with scheduling context. The original error is chained as __cause__.
    """

    pass


class Scheduler(ABC):
    """
    Capability to re-invoke a task later with a given state.

    Re-entry contract: at or after ``resume_at`` the backend must call the
    same task entry point with ``state`` as its full input.
    """

    @abstractmethod
    def schedule(self, resume_at: datetime, state: State) -> Any:
        """
        Arrange a future attempt.

        Args:
            resume_at: Earliest time the attempt may run
            state: Complete state of the next attempt

        Returns:
            Backend-specific handle (JobHandle for StoreScheduler)

        Raises:
            SchedulerError: If the request cannot be honoured
        """


class StoreScheduler(Scheduler):
    """
    Scheduler writing attempts of one task type to a JobStore.

    Design Pattern: Façade Pattern
    Hides job ids, serialization and versioning behind schedule().

    **Versioning**:
    - `.with_version("v1.0")` - Set deployment version
    - `.unversioned()` - Explicitly opt out
    - `.from_env()` - Read from DEPLOY_VERSION env var

    Usage:
        store = InMemoryJobStore()
        scheduler = StoreScheduler(store, FetchPages.type_id()).from_env()

        handle = scheduler.schedule(resume_at, {"page": 2, "attempt": 1})
        print(f"Scheduled job: {handle.job_id}")
    """

    def __init__(self, store: JobStore, task_type: str, version: str | None = None):
        """
        Initialize scheduler bound to one task type.

        Args:
            store: Job store receiving scheduled attempts
            task_type: Stable type id of the task to re-invoke
            version: Deployment version recorded on each job
        """
        self._store = store
        self._task_type = task_type
        self._version = version

    def schedule(self, resume_at: datetime, state: State) -> JobHandle:
        """
        Serialize state and enqueue the next attempt.

        Raises:
            SchedulerError: If resume_at is naive, state is malformed,
                            state cannot be pickled, or the store rejects the job
        """
        # Stored resume times are compared against an aware clock
        if not isinstance(resume_at, datetime) or resume_at.utcoffset() is None:
            raise SchedulerError(
                f"resume_at for task {self._task_type} must be a timezone-aware datetime, "
                f"got {resume_at!r}"
            )
        if not isinstance(state, Mapping):
            raise SchedulerError(f"state must be a mapping, got {type(state).__name__}")

        try:
            attempt = attempt_of(state)
        except ValueError as e:
            raise SchedulerError(f"Invalid {ATTEMPT_KEY} for task {self._task_type}: {e}") from e

        # Serialize as a plain dict so read-only mapping views never leak into the store
        try:
            state_data = pickle.dumps(dict(state))
        except Exception as e:
            raise SchedulerError(f"Failed to serialize state for task {self._task_type}: {e}") from e

        job = ScheduledJob(
            job_id=str(uuid7()),
            task_type=self._task_type,
            state_data=state_data,
            resume_at=resume_at,
            attempt=attempt,
            version=self._version,
        )

        try:
            self._store.enqueue(job)
        except Exception as e:
            raise SchedulerError(f"Failed to enqueue task {self._task_type}: {e}") from e

        logger.debug(
            f"Scheduled task {self._task_type}: job_id={job.job_id}, "
            f"attempt={attempt}, resume_at={resume_at.isoformat()}"
        )
        return job.handle()

    def with_version(self, version: str) -> "StoreScheduler":
        """Return a new scheduler recording ``version`` on every job."""
        return StoreScheduler(self._store, self._task_type, version=version)

    def unversioned(self) -> "StoreScheduler":
        """Return a new scheduler recording no version."""
        return StoreScheduler(self._store, self._task_type, version=None)

    def from_env(self) -> "StoreScheduler":
        """
        Configure version from the DEPLOY_VERSION environment variable.

        Unset means unversioned.
        """
        return StoreScheduler(self._store, self._task_type, version=os.getenv("DEPLOY_VERSION"))

    def version(self) -> str | None:
        """Configured deployment version, None if unversioned."""
        return self._version

    @property
    def task_type(self) -> str:
        return self._task_type

    @property
    def store(self) -> JobStore:
        return self._store

    def __repr__(self) -> str:
        return f"StoreScheduler(task_type={self._task_type!r}, version={self._version!r})"
