"""
ResumableTask - class-based resumable tasks.

Subclass ResumableTask, implement perform(), and optionally override pause()
to control which parts of the state survive a suspend.

Example:
    ```python
    class FetchPages(ResumableTask):
        def perform(self, state, attempt):
            page = state.get("page", 1)
            while page is not None:
                response = client.get(page)
                if response.status == 429:
                    raise SuspendSignal("rate limited", state_update={"page": page})
                page = response.next_page

        def pause(self, state):
            # Never persist credentials
            return {k: v for k, v in state.items() if k != "token"}

    outcome = FetchPages().execute({"page": 1, "token": t}, scheduler)
    ```
"""

from abc import ABC, abstractmethod
from typing import Any

from pyresumable.executor.instance import ResumableExecutor
from pyresumable.executor.outcome import RunOutcome
from pyresumable.executor.scheduler import Scheduler
from pyresumable.models import Backoff, State

__all__ = ["ResumableTask", "get_task_type_id"]


class ResumableTask(ABC):
    """
    Base class for tasks that can suspend and resume.

    The backend re-enters a task through perform() with the state it was
    scheduled with, so perform() must read everything it needs from state.
    """

    @classmethod
    def type_id(cls) -> str:
        """
        Stable type identifier used to route scheduled jobs back to this task.

        Defaults to the class name. Override to keep the id stable across
        renames.
        """
        return cls.__name__

    @abstractmethod
    def perform(self, state: State, attempt: int) -> Any:
        """
        Task body.

        Args:
            state: Full state of this attempt
            attempt: Attempt counter (0 on the first run)

        Raises:
            SuspendSignal: To stop now and resume later
        """

    def pause(self, state: State) -> State:
        """
        Filter state before it is scheduled. Default: unchanged.

        Called once per suspend, after the signal's state_update has been
        merged and before the attempt counter is incremented. Whatever this
        returns must be serializable by the scheduler's backend.
        """
        return state

    def execute(
        self, state: State, scheduler: Scheduler, *, backoff: Backoff | None = None
    ) -> RunOutcome:
        """Run one attempt of this task with pause() as the state filter."""
        executor = ResumableExecutor(scheduler, state_filter=self.pause, backoff=backoff)
        return executor.run(state, lambda attempt: self.perform(state, attempt))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type_id={self.type_id()!r})"


def get_task_type_id(task: ResumableTask | type[ResumableTask]) -> str:
    """Type id of a task instance or class."""
    if isinstance(task, type):
        return task.type_id()
    return task.__class__.type_id()
