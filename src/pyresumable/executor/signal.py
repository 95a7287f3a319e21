"""Helpers for raising suspend signals from task code.

Provides:
- suspend(): raise a SuspendSignal in one call
- suspend_on(): turn selected exceptions into a SuspendSignal

Typical use is a client library that reports throttling with its own
exception type, carrying the time the quota resets.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import NoReturn

from pyresumable.executor.outcome import SuspendSignal
from pyresumable.models import State

__all__ = ["suspend", "suspend_on"]

ResumeAt = datetime | Callable[[BaseException], datetime | None] | None


def suspend(
    message: str, *, state_update: State | None = None, resume_at: datetime | None = None
) -> NoReturn:
    """Stop the current attempt and ask to be resumed later.

    Args:
        message: Reason, recorded on the Suspended outcome
        state_update: Keys to merge into the task state
        resume_at: Explicit resume time, None to use backoff

    Raises:
        SuspendSignal: Always
    """
    raise SuspendSignal(message, state_update=state_update, resume_at=resume_at)


@contextmanager
def suspend_on(
    *exc_types: type[Exception],
    state_update: State | None = None,
    resume_at: ResumeAt = None,
) -> Iterator[None]:
    """Convert the listed exceptions raised in the block into a SuspendSignal.

    The signal message is the exception text (or its class name when the
    text is empty) and the original exception is chained as ``__cause__``.
    Exceptions not listed propagate unchanged.

    Args:
        exc_types: Exception classes that mean "try again later"
        state_update: Keys to merge into the task state
        resume_at: Explicit resume time, or a callable deriving it from the
                   caught exception (returning None falls back to backoff)

    Example:
        ```python
        def perform(self, state, attempt):
            with suspend_on(RateLimited, resume_at=lambda e: e.retry_at):
                fetch_all(state)
        ```
    """
    if not exc_types:
        raise TypeError("suspend_on() requires at least one exception type")

    try:
        yield
    except exc_types as e:
        when = resume_at(e) if callable(resume_at) else resume_at
        raise SuspendSignal(
            str(e) or type(e).__name__, state_update=state_update, resume_at=when
        ) from e
