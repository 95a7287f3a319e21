"""
Suspend signal and task run outcomes.

This module defines the RunOutcome state machine for one attempt of a
resumable task, and SuspendSignal, the control-flow signal a task body
raises to ask for suspension.

From Dave Cheney's principle: "If your function can suspend, you must tell the caller."
RunOutcome makes suspension explicit: callers match on the outcome instead
of catching the signal themselves.

Example:
    ```python
    outcome = executor.run(state, lambda attempt: fetch_pages(state))

    match outcome:
        case Completed(result):
            print(f"Task completed: {result}")
        case Suspended(resume_at=resume_at, reason=reason):
            print(f"Task suspended until {resume_at}: {reason}")
        case Failed(error):
            print(f"Task failed: {error}")
    ```
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Generic, NoReturn, TypeVar

from pyresumable.models import ATTEMPT_KEY, InvalidArgumentError, State

__all__ = [
    "SuspendSignal",
    "Completed",
    "Suspended",
    "Failed",
    "RunOutcome",
    "is_completed",
    "is_suspended",
    "is_failed",
]

R = TypeVar("R")


# =============================================================================
# Task Control Signals (Not Errors)
# =============================================================================


class _TaskControl(BaseException):
    """
    Base class for task control signals.

    Like Python's StopIteration and GeneratorExit, these are control flow
    mechanisms, not errors. They inherit from BaseException (not Exception)
    so that ``except Exception:`` blocks inside task bodies never swallow them.
    """

    pass


class SuspendSignal(_TaskControl):  # noqa: N818
    """
    Signal that the current attempt should stop and resume later (not an error).

    Raised by task bodies. The ResumableExecutor catches it, merges
    ``state_update`` into the task state, and schedules a new attempt either
    at ``resume_at`` or, when that is None, after exponential backoff.

    Attributes:
        message: Human-readable reason, required and non-empty
        state_update: Keys to merge into the task state (read-only copy)
        resume_at: Explicit resume time, None to use backoff

    Example:
        ```python
        if response.status == 429:
            raise SuspendSignal("rate limited", state_update={"page": page})

        raise SuspendSignal("quota reset", resume_at=quota.reset_at)
        ```
    """

    def __init__(
        self,
        message: str,
        *,
        state_update: State | None = None,
        resume_at: datetime | None = None,
    ):
        if not isinstance(message, str) or not message:
            raise InvalidArgumentError("SuspendSignal requires a non-empty message")
        if state_update is None:
            state_update = {}
        if not isinstance(state_update, Mapping):
            raise InvalidArgumentError(
                f"state_update must be a mapping, got {type(state_update).__name__}"
            )
        if resume_at is not None and not isinstance(resume_at, datetime):
            raise InvalidArgumentError(
                f"resume_at must be a datetime or None, got {type(resume_at).__name__}"
            )

        super().__init__(message)
        self.message = message
        self.state_update: Mapping[str, Any] = MappingProxyType(dict(state_update))
        self.resume_at = resume_at

    def __repr__(self) -> str:
        return (
            f"SuspendSignal(message={self.message!r}, "
            f"state_update={dict(self.state_update)!r}, resume_at={self.resume_at!r})"
        )


# =============================================================================
# Run Outcomes
# =============================================================================


@dataclass(frozen=True)
class Completed(Generic[R]):
    """
    Task body returned normally.

    Attributes:
        result: The task body's return value
    """

    result: R

    def __str__(self) -> str:
        return f"Completed(result={self.result!r})"


@dataclass(frozen=True)
class Suspended:
    """
    Task body suspended and the next attempt has been handed to the scheduler.

    Suspended is transient: once the scheduler has accepted the next
    attempt, this attempt is over.

    Attributes:
        resume_at: When the next attempt is due
        state: Read-only view of the state handed to the scheduler
               (filtered, attempt incremented)
        reason: Message of the suspend signal
        handle: Whatever the scheduler returned for the next attempt
    """

    resume_at: datetime
    state: Mapping[str, Any]
    reason: str = ""
    handle: Any = field(default=None, compare=False)

    @property
    def attempt(self) -> int:
        """Attempt counter of the next attempt."""
        return self.state[ATTEMPT_KEY]

    def __str__(self) -> str:
        return (
            f"Suspended(resume_at={self.resume_at.isoformat()}, "
            f"attempt={self.attempt}, reason={self.reason!r})"
        )


@dataclass(frozen=True)
class Failed:
    """
    Task body raised an error other than the suspend signal.

    The error is the exact object the task raised, never wrapped.

    Attributes:
        error: The raised exception
    """

    error: Exception

    def reraise(self) -> NoReturn:
        """
        Raise the original error again.

        Example:
            ```python
            outcome = executor.run(state, body)
            if is_failed(outcome):
                outcome.reraise()
            ```
        """
        raise self.error

    def __str__(self) -> str:
        return f"Failed(error={type(self.error).__name__}: {self.error})"


# RunOutcome is the tagged union of the three ways an attempt can end.
#
#     match outcome:
#         case Completed(result): ...
#         case Suspended(resume_at, state): ...
#         case Failed(error): ...
#
RunOutcome = Completed[R] | Suspended | Failed


# =============================================================================
# TYPE GUARDS FOR RUN OUTCOME
# =============================================================================


def is_completed(outcome: RunOutcome) -> bool:
    """Check if outcome is Completed."""
    return isinstance(outcome, Completed)


def is_suspended(outcome: RunOutcome) -> bool:
    """Check if outcome is Suspended."""
    return isinstance(outcome, Suspended)


def is_failed(outcome: RunOutcome) -> bool:
    """Check if outcome is Failed."""
    return isinstance(outcome, Failed)
