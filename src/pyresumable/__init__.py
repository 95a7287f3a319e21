"""
pyresumable: Resumable units of work for Python

A task can stop itself mid-run, hand a snapshot of its progress to a
scheduler, and be invoked again later (at an explicit time or after
exponential backoff) starting from its entry point with that snapshot.

Design Pattern: Façade Pattern
This module re-exports the public API so most code needs only
``import pyresumable``.

Example:
    ```python
    from pyresumable import InMemoryJobStore, ResumableTask, SuspendSignal, Worker

    class FetchPages(ResumableTask):
        def perform(self, state, attempt):
            page = state.get("page", 1)
            while page is not None:
                response = client.get(page)
                if response.status == 429:
                    raise SuspendSignal("rate limited", state_update={"page": page})
                page = response.next_page

    store = InMemoryJobStore()
    worker = Worker(store, "worker-1").register(FetchPages)
    worker.submit(FetchPages, {"page": 1})
    worker.run_due()
    ```
"""

# Models
from pyresumable.models import (
    ATTEMPT_KEY,
    DEFAULT_BASE_UNIT,
    Backoff,
    InvalidArgumentError,
    JobHandle,
    ScheduledJob,
    State,
    StateFilter,
    TaskStatus,
    attempt_of,
    compute_resume_at,
    identity_filter,
    merge_state,
    utc_now,
)

# Storage (Adapter pattern)
from pyresumable.storage import InMemoryJobStore, JobStore, StorageError

# Execution
from pyresumable.executor import (
    Completed,
    Failed,
    ProcessedJob,
    ResumableExecutor,
    RunOutcome,
    Scheduler,
    SchedulerError,
    StateFilterError,
    StoreScheduler,
    Suspended,
    SuspendSignal,
    Worker,
    WorkerError,
    is_completed,
    is_failed,
    is_suspended,
    run_resumable,
    suspend,
    suspend_on,
)

# Tasks
from pyresumable.task import ResumableTask, get_task_type_id

# Version
__version__ = "0.1.0"

__all__ = [
    # State
    "ATTEMPT_KEY",
    "State",
    "StateFilter",
    "InvalidArgumentError",
    "attempt_of",
    "identity_filter",
    "merge_state",
    # Backoff
    "Backoff",
    "DEFAULT_BASE_UNIT",
    "compute_resume_at",
    "utc_now",
    # Jobs
    "TaskStatus",
    "JobHandle",
    "ScheduledJob",
    # Storage
    "JobStore",
    "InMemoryJobStore",
    "StorageError",
    # Execution
    "ResumableExecutor",
    "StateFilterError",
    "run_resumable",
    "SuspendSignal",
    "suspend",
    "suspend_on",
    "Completed",
    "Suspended",
    "Failed",
    "RunOutcome",
    "is_completed",
    "is_suspended",
    "is_failed",
    # Scheduling
    "Scheduler",
    "SchedulerError",
    "StoreScheduler",
    # Worker
    "Worker",
    "WorkerError",
    "ProcessedJob",
    # Tasks
    "ResumableTask",
    "get_task_type_id",
    # Metadata
    "__version__",
]
