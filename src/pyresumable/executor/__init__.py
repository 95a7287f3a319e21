"""
Executor module - Runtime engine for resumable tasks.

This module contains the execution components:
- outcome: SuspendSignal and the RunOutcome state machine (Completed/Suspended/Failed)
- signal: helpers raising SuspendSignal from task code
- instance: ResumableExecutor, one attempt with suspend handling
- scheduler: Scheduler boundary and the JobStore-backed StoreScheduler
- worker: re-invokes due attempts with their scheduled state
"""

from pyresumable.executor.instance import ResumableExecutor, StateFilterError, run_resumable
from pyresumable.executor.outcome import (
    Completed,
    Failed,
    RunOutcome,
    Suspended,
    SuspendSignal,
    is_completed,
    is_failed,
    is_suspended,
)
from pyresumable.executor.scheduler import Scheduler, SchedulerError, StoreScheduler
from pyresumable.executor.signal import suspend, suspend_on
from pyresumable.executor.worker import ProcessedJob, Worker, WorkerError

__all__ = [
    # Executor
    "ResumableExecutor",
    "StateFilterError",
    "run_resumable",
    # RunOutcome state machine
    "SuspendSignal",
    "Completed",
    "Suspended",
    "Failed",
    "RunOutcome",
    "is_completed",
    "is_suspended",
    "is_failed",
    # Signal helpers
    "suspend",
    "suspend_on",
    # Scheduling
    "Scheduler",
    "SchedulerError",
    "StoreScheduler",
    # Worker
    "Worker",
    "WorkerError",
    "ProcessedJob",
]
