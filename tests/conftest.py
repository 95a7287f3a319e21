"""
Pytest configuration and fixtures for pyresumable tests.

Provides reusable fixtures for clocks, schedulers, job stores and sample
tasks.
"""

from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import strategies as st

from pyresumable import (
    Backoff,
    InMemoryJobStore,
    JobHandle,
    ResumableTask,
    Scheduler,
    SchedulerError,
    SuspendSignal,
    Worker,
)

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class FrozenClock:
    """Clock returning a fixed time until advanced."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class RecordingScheduler(Scheduler):
    """Scheduler that records every call instead of enqueueing."""

    def __init__(self, error: Exception | None = None):
        self.calls: list[tuple[datetime, dict]] = []
        self.error = error

    def schedule(self, resume_at, state):
        self.calls.append((resume_at, dict(state)))
        if self.error is not None:
            raise self.error
        return JobHandle(job_id=f"job-{len(self.calls)}", task_type="test", resume_at=resume_at)


class CountingBackoff(Backoff):
    """Backoff that records the attempts it was asked about."""

    def __init__(self, clock):
        super().__init__(clock=clock)
        object.__setattr__(self, "attempts", [])

    def compute(self, attempt, base_unit=None):
        self.attempts.append(attempt)
        return super().compute(attempt, base_unit)


@pytest.fixture
def clock() -> FrozenClock:
    """Frozen clock at 2024-01-01 12:00 UTC."""
    return FrozenClock()


@pytest.fixture
def backoff(clock) -> CountingBackoff:
    """One minute backoff reading the frozen clock."""
    return CountingBackoff(clock)


@pytest.fixture
def scheduler() -> RecordingScheduler:
    """Scheduler recording calls."""
    return RecordingScheduler()


@pytest.fixture
def failing_scheduler() -> RecordingScheduler:
    """Scheduler that rejects every request."""
    return RecordingScheduler(error=SchedulerError("backend unavailable"))


@pytest.fixture
def store() -> InMemoryJobStore:
    """Empty in-memory job store."""
    return InMemoryJobStore()


# Sample tasks for reuse across tests


class RateLimitedCrawler(ResumableTask):
    """Suspends on the pages listed in ``limited_pages`` until they pass."""

    def perform(self, state, attempt):
        page = state.get("page", 1)
        limited = set(state.get("limited_pages", []))
        seen = list(state.get("seen", []))
        while page <= state.get("last_page", 3):
            if page in limited:
                limited.discard(page)
                raise SuspendSignal(
                    "rate limited",
                    state_update={"page": page, "limited_pages": sorted(limited), "seen": seen},
                )
            seen.append(page)
            page += 1
        return seen

    def pause(self, state):
        return {k: v for k, v in state.items() if k != "token"}


class AlwaysFails(ResumableTask):
    def perform(self, state, attempt):
        raise ValueError("boom")


@pytest.fixture
def worker(store, clock) -> Worker:
    """Worker on the in-memory store with both sample tasks registered."""
    return Worker(store, "worker-1", clock=clock).register(RateLimitedCrawler).register(AlwaysFails)


# Hypothesis strategies for property-based testing

state_keys = st.text(min_size=1, max_size=10).filter(lambda k: k != "attempt")
state_values = st.one_of(st.integers(), st.text(max_size=10), st.booleans(), st.none())
states = st.dictionaries(state_keys, state_values, max_size=8)
