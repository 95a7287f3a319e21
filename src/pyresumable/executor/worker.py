"""Worker that re-invokes scheduled task attempts.

The worker is the re-entry side of the protocol: it picks up jobs whose
resume time has passed, restores their state, and calls the registered
task's entry point with that state as its full input. Each suspend inside
that attempt schedules the next job through a StoreScheduler bound to the
same task type.

Synchronous and poll-driven: call run_due() (or drain()) from your own
loop, cron entry or test.
"""

import logging
import pickle
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from pyresumable.executor.outcome import Completed, Failed, RunOutcome, Suspended
from pyresumable.executor.scheduler import StoreScheduler
from pyresumable.models import (
    ATTEMPT_KEY,
    Backoff,
    JobHandle,
    State,
    TaskStatus,
    utc_now,
    with_attempt,
)
from pyresumable.storage.base import JobStore, StorageError
from pyresumable.task import ResumableTask, get_task_type_id

logger = logging.getLogger(__name__)

__all__ = ["Worker", "WorkerError", "ProcessedJob"]


class WorkerError(Exception):
    """
    A scheduled job could not be executed.

    Raised (or returned inside Failed) for unregistered task types and
    undecodable state.
    """

    pass


@dataclass(frozen=True)
class ProcessedJob:
    """Result of running one scheduled job."""

    job_id: str
    task_type: str
    attempt: int
    outcome: RunOutcome


class Worker:
    """Worker that runs due jobs from a JobStore.

    Usage:
        store = InMemoryJobStore()
        worker = Worker(store, "worker-1").register(FetchPages)

        worker.submit(FetchPages, {"page": 1})
        for processed in worker.run_due():
            print(processed.outcome)
    """

    def __init__(
        self,
        store: JobStore,
        worker_id: str,
        *,
        clock: Callable[[], datetime] = utc_now,
        backoff: Backoff | None = None,
        version: str | None = None,
    ):
        """Initialize worker with a job store.

        Args:
            store: Job store to poll and to schedule resumed attempts into
            worker_id: Identifier recorded on claimed jobs
            clock: Source of "now" for due checks and default backoff
            backoff: Backoff for signals without resume_at (default: one
                     minute base reading ``clock``)
            version: Deployment version recorded on jobs this worker schedules
        """
        self._store = store
        self._worker_id = worker_id
        self._clock = clock
        self._backoff = backoff if backoff is not None else Backoff(clock=clock)
        self._version = version
        self._factories: dict[str, Callable[[], ResumableTask]] = {}

    def register(
        self,
        task_class: type[ResumableTask],
        factory: Callable[[], ResumableTask] | None = None,
    ) -> "Worker":
        """Register a task type.

        Args:
            task_class: ResumableTask subclass; its type_id() routes jobs here
            factory: Builds a task instance per job (default: task_class())

        Returns:
            self, for chaining
        """
        type_name = get_task_type_id(task_class)
        self._factories[type_name] = factory if factory is not None else task_class
        logger.debug(f"Registered task type: {type_name}")
        return self

    def is_registered(self, task_type: str) -> bool:
        return task_type in self._factories

    def scheduler_for(self, task_type: str) -> StoreScheduler:
        """StoreScheduler writing attempts of ``task_type`` into this worker's store."""
        return StoreScheduler(self._store, task_type, version=self._version)

    def submit(
        self,
        task_class: type[ResumableTask],
        state: State | None = None,
        resume_at: datetime | None = None,
    ) -> JobHandle:
        """Schedule the first attempt of a task.

        The state's attempt counter is kept when present, otherwise set to 0.

        Args:
            task_class: Registered task class
            state: Initial state (default empty)
            resume_at: When to run (default: now)
        """
        state = dict(state or {})
        initial = with_attempt(state, state.get(ATTEMPT_KEY, 0))
        when = resume_at if resume_at is not None else self._clock()
        return self.scheduler_for(get_task_type_id(task_class)).schedule(when, initial)

    def run_due(self) -> list[ProcessedJob]:
        """Run every job whose resume time has passed.

        Jobs scheduled while this call runs are left for the next call, even
        if already due.

        Returns:
            One ProcessedJob per job this worker claimed
        """
        processed = []
        for job in self._store.due(self._clock()):
            try:
                self._store.claim(job.job_id, self._worker_id)
            except StorageError as e:
                logger.debug(f"Worker {self._worker_id} skipped job {job.job_id}: {e}")
                continue
            processed.append(self._run_job(job.job_id))
        return processed

    def drain(self, max_rounds: int = 100) -> list[ProcessedJob]:
        """Call run_due() until a round finds nothing due.

        Args:
            max_rounds: Upper bound on rounds, guards against tasks that
                        keep suspending with an already-passed resume time
        """
        processed: list[ProcessedJob] = []
        for _ in range(max_rounds):
            batch = self.run_due()
            if not batch:
                break
            processed.extend(batch)
        return processed

    def _run_job(self, job_id: str) -> ProcessedJob:
        job = self._store.get(job_id)
        logger.info(
            f"Worker {self._worker_id} running job: job_id={job.job_id}, "
            f"task_type={job.task_type}, attempt={job.attempt}"
        )

        try:
            outcome = self._execute(job.task_type, job.state_data)
        except Exception as e:
            # Invalid state, state filter or scheduler failures: the attempt cannot continue
            logger.error(f"Worker {self._worker_id} job {job.job_id} errored: {e}")
            self._store.complete(job.job_id, TaskStatus.FAILED, str(e))
            return ProcessedJob(job.job_id, job.task_type, job.attempt, Failed(error=e))

        if isinstance(outcome, Completed):
            logger.info(f"Worker {self._worker_id} completed job: job_id={job.job_id}")
            self._store.complete(job.job_id, TaskStatus.COMPLETE)
        elif isinstance(outcome, Suspended):
            logger.info(f"Worker {self._worker_id} suspended job: job_id={job.job_id}, {outcome}")
            self._store.complete(job.job_id, TaskStatus.SUSPENDED, outcome.reason)
        else:
            logger.warning(f"Worker {self._worker_id} job failed: job_id={job.job_id}, {outcome}")
            self._store.complete(job.job_id, TaskStatus.FAILED, str(outcome.error))

        return ProcessedJob(job.job_id, job.task_type, job.attempt, outcome)

    def _execute(self, task_type: str, state_data: bytes) -> RunOutcome:
        factory = self._factories.get(task_type)
        if factory is None:
            raise WorkerError(f"No task registered for type {task_type!r}")

        try:
            state = pickle.loads(state_data)
        except Exception as e:
            raise WorkerError(f"Failed to deserialize state for task {task_type}: {e}") from e

        task = factory()
        return task.execute(state, self.scheduler_for(task_type), backoff=self._backoff)

    @property
    def worker_id(self) -> str:
        return self._worker_id

    @property
    def store(self) -> JobStore:
        return self._store

    def __repr__(self) -> str:
        return f"Worker(worker_id={self._worker_id!r}, tasks={sorted(self._factories)})"
