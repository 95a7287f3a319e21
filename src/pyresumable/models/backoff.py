"""
Exponential backoff for suspended tasks.

Design Pattern: Strategy Pattern
Backoff encapsulates "when should this attempt run again", so the executor
does not care whether the delay is exponential, capped or injected by a test.

Each resume delay is calculated as:
    min(2**attempt * base_unit, max_delay)

attempt=0 → 1 × base, attempt=1 → 2 × base, attempt=3 → 8 × base.

Design Rationale:
- Immutable: Backoff holds configuration only. The attempt counter and the
  current time are inputs of every call, never fields.
- Injectable clock: ``clock`` defaults to ``utc_now`` and can be replaced
  with a frozen clock in tests.
- Saturating: Python ints never wrap, but ``timedelta`` and ``datetime``
  overflow. Delays saturate at ``timedelta.max`` and resume times at
  ``datetime.max`` instead of raising.
"""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta

from pyresumable.models.state import InvalidArgumentError, validate_attempt

logger = logging.getLogger(__name__)

__all__ = [
    "Backoff",
    "DEFAULT_BASE_UNIT",
    "compute_resume_at",
    "utc_now",
]

DEFAULT_BASE_UNIT = timedelta(minutes=1)

# 2**128 microseconds is far beyond timedelta.max for any positive base,
# so larger exponents saturate without computing the power.
_MAX_EXPONENT = 128


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def _validate_base_unit(base_unit: timedelta) -> timedelta:
    if not isinstance(base_unit, timedelta):
        raise InvalidArgumentError(
            f"base_unit must be a timedelta, got {type(base_unit).__name__}"
        )
    if base_unit <= timedelta(0):
        raise InvalidArgumentError(f"base_unit must be positive, got {base_unit}")
    return base_unit


def _seconds_from_env(name: str) -> timedelta | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        seconds = float(raw)
        if not math.isfinite(seconds):
            raise ValueError("not a finite number")
        return timedelta(seconds=seconds)
    except (ValueError, OverflowError) as e:
        raise InvalidArgumentError(f"{name} must be a number of seconds, got {raw!r}") from e


@dataclass(frozen=True)
class Backoff:
    """
    Exponential backoff calculator.

    Examples:
        # Default: one minute base, no cap, system clock
        backoff = Backoff()
        backoff.compute(0)   # now + 1 min
        backoff.compute(3)   # now + 8 min

        # Custom base and cap
        backoff = Backoff(base_unit=timedelta(seconds=5), max_delay=timedelta(hours=1))

        # Deterministic clock for tests
        backoff = Backoff(clock=lambda: datetime(2024, 1, 1, tzinfo=UTC))
    """

    base_unit: timedelta = DEFAULT_BASE_UNIT
    """Delay of the first resume (attempt 0). Must be positive."""

    max_delay: timedelta | None = None
    """Upper bound of any delay, None for no cap other than timedelta.max."""

    clock: Callable[[], datetime] = field(default=utc_now, compare=False)
    """Source of "now". Replace in tests."""

    def __post_init__(self):
        _validate_base_unit(self.base_unit)
        if self.max_delay is not None and self.max_delay < timedelta(0):
            raise InvalidArgumentError(f"max_delay must not be negative, got {self.max_delay}")

    def delay(self, attempt: int, base_unit: timedelta | None = None) -> timedelta:
        """
        Delay before the next attempt: ``2**attempt * base_unit``, saturated.

        Args:
            attempt: Attempt counter before increment (0 for the first suspend)
            base_unit: Optional per-call override of the configured base

        Returns:
            Non-negative delay, monotonically non-decreasing in attempt

        Raises:
            InvalidArgumentError: If attempt is negative or base_unit is not positive
        """
        validate_attempt(attempt)
        base = self.base_unit if base_unit is None else _validate_base_unit(base_unit)

        if attempt > _MAX_EXPONENT:
            delay = timedelta.max
        else:
            try:
                delay = base * (2**attempt)
            except OverflowError:
                delay = timedelta.max

        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def compute(self, attempt: int, base_unit: timedelta | None = None) -> datetime:
        """
        Point in time at which the next attempt should run.

        Example:
            ```python
            resume_at = Backoff().compute(attempt=2)  # now + 4 minutes
            ```
        """
        delay = self.delay(attempt, base_unit)
        now = self.clock()
        try:
            resume_at = now + delay
        except OverflowError:
            resume_at = datetime.max.replace(tzinfo=now.tzinfo)

        logger.debug(f"Backoff for attempt {attempt}: delay={delay}, resume_at={resume_at}")
        return resume_at

    def compute_timestamp(self, attempt: int, base_unit: timedelta | None = None) -> int:
        """
        Resume time as integer seconds since the Unix epoch.

        For backends that schedule by epoch seconds. Naive clock readings are
        interpreted as local time, as ``datetime.timestamp`` does.
        """
        return int(self.compute(attempt, base_unit).timestamp())

    def with_base_unit(self, base_unit: timedelta) -> Backoff:
        """Return a copy using ``base_unit``."""
        return replace(self, base_unit=base_unit)

    def with_max_delay(self, max_delay: timedelta | None) -> Backoff:
        """Return a copy capped at ``max_delay`` (None removes the cap)."""
        return replace(self, max_delay=max_delay)

    def with_clock(self, clock: Callable[[], datetime]) -> Backoff:
        """Return a copy reading the current time from ``clock``."""
        return replace(self, clock=clock)

    @classmethod
    def from_env(cls, clock: Callable[[], datetime] = utc_now) -> Backoff:
        """
        Configure backoff from environment variables.

        - RESUMABLE_BACKOFF_BASE_SECONDS: base unit (default 60)
        - RESUMABLE_BACKOFF_MAX_SECONDS: delay cap (default: uncapped)

        Example:
            # $ export RESUMABLE_BACKOFF_BASE_SECONDS=5
            # $ export RESUMABLE_BACKOFF_MAX_SECONDS=3600
            backoff = Backoff.from_env()

        Raises:
            InvalidArgumentError: If a variable is not a valid number
        """
        base_unit = _seconds_from_env("RESUMABLE_BACKOFF_BASE_SECONDS")
        if base_unit is None:
            base_unit = DEFAULT_BASE_UNIT
        max_delay = _seconds_from_env("RESUMABLE_BACKOFF_MAX_SECONDS")
        return cls(base_unit=base_unit, max_delay=max_delay, clock=clock)

    def __repr__(self) -> str:
        """Readable representation for debugging."""
        return f"Backoff(base_unit={self.base_unit!r}, max_delay={self.max_delay!r})"


def compute_resume_at(
    attempt: int,
    base_unit: timedelta = DEFAULT_BASE_UNIT,
    now: datetime | None = None,
) -> datetime:
    """
    One-off backoff computation.

    Args:
        attempt: Attempt counter before increment
        base_unit: Delay of attempt 0 (default one minute)
        now: Reference time (default: current UTC time)

    Returns:
        ``now + 2**attempt * base_unit``, saturated
    """
    clock = utc_now if now is None else (lambda: now)
    return Backoff(base_unit=base_unit, clock=clock).compute(attempt)
