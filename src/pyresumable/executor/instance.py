"""
ResumableExecutor - run one attempt of a resumable task.

The executor wraps a task body, runs it on the calling thread and turns the
way it ends into a RunOutcome:

- returns normally  → Completed(result), nothing scheduled
- raises SuspendSignal → merge state, pick resume time, filter state,
  increment attempt, call Scheduler.schedule() once → Suspended(...)
- raises anything else → Failed(error), nothing scheduled

Suspend means "abort this attempt and schedule a wholly new one". There is
no coroutine-style resume inside the body: the next attempt re-enters the
task from the top with the scheduled state.

Design: Single type that holds configuration AND provides execution.
The executor keeps no per-run state, so one instance can run any number of
attempts, including concurrently from different threads.
"""

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any, TypeVar

from pyresumable.executor.outcome import (
    Completed,
    Failed,
    RunOutcome,
    Suspended,
    SuspendSignal,
)
from pyresumable.executor.scheduler import Scheduler
from pyresumable.models import (
    ATTEMPT_KEY,
    Backoff,
    State,
    StateFilter,
    attempt_of,
    identity_filter,
    merge_state,
)

logger = logging.getLogger(__name__)

__all__ = ["ResumableExecutor", "StateFilterError", "run_resumable"]

R = TypeVar("R")


class StateFilterError(RuntimeError):
    """
    State filter misbehaved.

    Raised when a filter raises SuspendSignal or returns something that is
    not a mapping. Both are programming errors in the task, reported before
    anything is scheduled.
    """

    pass


class ResumableExecutor:
    """
    Execute task bodies with suspend/resume handling.

    Usage:
        scheduler = StoreScheduler(store, "FetchPages")
        executor = ResumableExecutor(scheduler, state_filter=drop_token)

        def body(attempt: int) -> None:
            for page in pages_from(state["page"]):
                if rate_limited():
                    raise SuspendSignal("rate limited", state_update={"page": page})

        outcome = executor.run(state, body)
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        state_filter: StateFilter = identity_filter,
        backoff: Backoff | None = None,
    ):
        """
        Initialize executor.

        Args:
            scheduler: Receives the next attempt on every suspend
            state_filter: Narrows state before it is scheduled (default identity)
            backoff: Resume time calculator used when a signal has no resume_at
        """
        self.scheduler = scheduler
        self.state_filter = state_filter
        self.backoff = backoff if backoff is not None else Backoff()

    def run(self, initial_state: State, task_body: Callable[[int], R]) -> RunOutcome:
        """
        Run one attempt of a task.

        Args:
            initial_state: State of this attempt; ``attempt`` defaults to 0
            task_body: Called with the attempt counter

        Returns:
            Completed, Suspended or Failed

        Raises:
            InvalidArgumentError: If initial_state or its attempt is malformed
                                  (before task_body is called)
            StateFilterError: If the state filter misbehaves
            SchedulerError: Or whatever else Scheduler.schedule() raises

        Example:
            ```python
            outcome = executor.run({"page": 1}, lambda attempt: crawl(attempt))
            if is_suspended(outcome):
                print(f"next attempt {outcome.attempt} at {outcome.resume_at}")
            ```
        """
        attempt = attempt_of(initial_state)

        try:
            result = task_body(attempt)
        except SuspendSignal as signal:
            return self._suspend(initial_state, attempt, signal)
        except Exception as e:
            # Task errors are returned as-is; reporting them is the caller's call
            logger.debug(f"Task failed on attempt {attempt}: {type(e).__name__}")
            return Failed(error=e)

        logger.debug(f"Task completed on attempt {attempt}")
        return Completed(result=result)

    def _suspend(self, initial_state: State, attempt: int, signal: SuspendSignal) -> Suspended:
        merged = merge_state(initial_state, signal.state_update)

        if signal.resume_at is not None:
            resume_at = signal.resume_at
        else:
            resume_at = self.backoff.compute(attempt)

        next_state = merge_state(self._apply_filter(merged), {ATTEMPT_KEY: attempt + 1})

        logger.info(
            f"Task suspended on attempt {attempt}: reason={signal.message!r}, "
            f"resume_at={resume_at.isoformat()}"
        )

        # Scheduling errors are not retried here. The scheduler gets its own copy.
        handle = self.scheduler.schedule(resume_at, dict(next_state))

        return Suspended(
            resume_at=resume_at,
            state=MappingProxyType(next_state),
            reason=signal.message,
            handle=handle,
        )

    def _apply_filter(self, merged: dict[str, Any]) -> State:
        # The filter gets its own copy so in-place edits stay private
        try:
            filtered = self.state_filter(dict(merged))
        except SuspendSignal as e:
            raise StateFilterError(
                f"state filter {self._filter_name()} raised SuspendSignal: {e.message}"
            ) from e

        if not isinstance(filtered, Mapping):
            raise StateFilterError(
                f"state filter {self._filter_name()} must return a mapping, "
                f"got {type(filtered).__name__}"
            )
        return filtered

    def _filter_name(self) -> str:
        return getattr(self.state_filter, "__qualname__", repr(self.state_filter))

    def __repr__(self) -> str:
        return (
            f"ResumableExecutor(scheduler={self.scheduler!r}, "
            f"state_filter={self._filter_name()}, backoff={self.backoff!r})"
        )


# =============================================================================
# Helper Functions
# =============================================================================


def run_resumable(
    initial_state: State,
    task_body: Callable[[int], R],
    scheduler: Scheduler,
    *,
    state_filter: StateFilter = identity_filter,
    backoff: Backoff | None = None,
) -> RunOutcome:
    """
    Convenience function for one-off execution.

    Example:
        ```python
        outcome = run_resumable(state, body, scheduler)
        ```
    """
    executor = ResumableExecutor(scheduler, state_filter=state_filter, backoff=backoff)
    return executor.run(initial_state, task_body)
