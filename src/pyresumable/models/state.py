"""
Task state - the resumable progress snapshot handed between attempts.

State is a plain mapping of symbolic keys to values. The only key the
runtime interprets is ``attempt``: a non-negative counter that starts at 0
and grows by exactly one every time a task suspends.

From Dave Cheney: "Make the zero value useful"
A state without ``attempt`` is a first attempt.

Design: Value semantics
Every helper here returns a fresh ``dict``. The caller's mapping is never
modified, so a state value lives for exactly one attempt and is superseded
(not updated) by the next one.
"""

from collections.abc import Callable, Mapping
from typing import Any

__all__ = [
    "ATTEMPT_KEY",
    "State",
    "StateFilter",
    "InvalidArgumentError",
    "validate_attempt",
    "attempt_of",
    "merge_state",
    "with_attempt",
    "identity_filter",
]

ATTEMPT_KEY = "attempt"

# State is any mapping; the runtime always produces plain dicts.
State = Mapping[str, Any]

# Task-supplied hook narrowing state before it is handed to a scheduler.
StateFilter = Callable[[State], State]


class InvalidArgumentError(ValueError):
    """
    Argument rejected before any side effect happened.

    Raised for negative or non-integer attempt counters, non-positive
    backoff units, malformed state mappings and malformed suspend signals.
    """

    pass


def validate_attempt(attempt: Any) -> int:
    """
    Check that ``attempt`` is a non-negative integer and return it.

    ``bool`` is rejected even though it subclasses ``int``: ``True`` as an
    attempt count is always a bug.

    Raises:
        InvalidArgumentError: If attempt is not a non-negative int
    """
    if isinstance(attempt, bool) or not isinstance(attempt, int):
        raise InvalidArgumentError(
            f"attempt must be a non-negative int, got {type(attempt).__name__}: {attempt!r}"
        )
    if attempt < 0:
        raise InvalidArgumentError(f"attempt must be non-negative, got {attempt}")
    return attempt


def attempt_of(state: State) -> int:
    """
    Read the attempt counter from a state mapping (default 0).

    Args:
        state: Task state

    Returns:
        The validated attempt counter

    Raises:
        InvalidArgumentError: If state is not a mapping or holds a bad attempt

    Example:
        ```python
        attempt_of({})                  # 0
        attempt_of({"attempt": 3})      # 3
        attempt_of({"attempt": -1})     # InvalidArgumentError
        ```
    """
    if not isinstance(state, Mapping):
        raise InvalidArgumentError(f"state must be a mapping, got {type(state).__name__}")
    return validate_attempt(state.get(ATTEMPT_KEY, 0))


def merge_state(state: State, update: State) -> dict[str, Any]:
    """
    Shallow, right-biased merge: keys in ``update`` win.

    Nested mappings are replaced, not merged.

    Example:
        ```python
        merge_state({"a": 1, "b": 1}, {"b": 2})  # {"a": 1, "b": 2}
        ```
    """
    merged = dict(state)
    merged.update(update)
    return merged


def with_attempt(state: State, attempt: int) -> dict[str, Any]:
    """Return a copy of ``state`` whose attempt counter is ``attempt``."""
    return merge_state(state, {ATTEMPT_KEY: validate_attempt(attempt)})


def identity_filter(state: State) -> State:
    """Default state filter: hand the state over unchanged."""
    return state
