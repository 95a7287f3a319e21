"""Tests for class-based resumable tasks."""

from datetime import timedelta

import pytest

from conftest import T0, AlwaysFails, RateLimitedCrawler
from pyresumable import (
    ResumableTask,
    SuspendSignal,
    get_task_type_id,
    is_completed,
    is_failed,
    is_suspended,
)


class Renamed(ResumableTask):
    @classmethod
    def type_id(cls) -> str:
        return "crawler.v2"

    def perform(self, state, attempt):
        return attempt


def test_type_id_defaults_to_class_name():
    assert RateLimitedCrawler.type_id() == "RateLimitedCrawler"
    assert get_task_type_id(RateLimitedCrawler) == "RateLimitedCrawler"
    assert get_task_type_id(RateLimitedCrawler()) == "RateLimitedCrawler"


def test_type_id_override():
    assert get_task_type_id(Renamed) == "crawler.v2"
    assert repr(Renamed()) == "Renamed(type_id='crawler.v2')"


def test_perform_is_abstract():
    class Incomplete(ResumableTask):
        pass

    with pytest.raises(TypeError):
        Incomplete()


def test_execute_completes(scheduler):
    outcome = RateLimitedCrawler().execute({"page": 1, "last_page": 3}, scheduler)

    assert is_completed(outcome)
    assert outcome.result == [1, 2, 3]
    assert scheduler.calls == []


def test_execute_suspends_and_pause_filters_state(scheduler, backoff):
    state = {"page": 1, "last_page": 3, "limited_pages": [2], "token": "secret"}

    outcome = RateLimitedCrawler().execute(state, scheduler, backoff=backoff)

    assert is_suspended(outcome)
    resume_at, scheduled = scheduler.calls[0]
    assert resume_at == T0 + timedelta(minutes=1)
    assert scheduled == {
        "page": 2,
        "last_page": 3,
        "limited_pages": [],
        "seen": [1],
        "attempt": 1,
    }


def test_resumed_attempt_continues_from_state(scheduler, backoff):
    crawler = RateLimitedCrawler()
    first = crawler.execute(
        {"page": 1, "last_page": 4, "limited_pages": [3]}, scheduler, backoff=backoff
    )

    second = crawler.execute(first.state, scheduler, backoff=backoff)

    assert is_completed(second)
    assert second.result == [1, 2, 3, 4]


def test_execute_failure(scheduler):
    outcome = AlwaysFails().execute({}, scheduler)

    assert is_failed(outcome)
    assert isinstance(outcome.error, ValueError)
    assert scheduler.calls == []


def test_default_pause_is_identity(scheduler):
    class Pauses(ResumableTask):
        def perform(self, state, attempt):
            raise SuspendSignal("again", state_update={"token": "kept"})

    outcome = Pauses().execute({"attempt": 0}, scheduler)

    assert outcome.state == {"token": "kept", "attempt": 1}
