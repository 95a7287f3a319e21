"""Tests for InMemoryJobStore and StoreScheduler."""

import pickle
import threading
from datetime import timedelta

import pytest

from conftest import T0
from pyresumable import (
    InMemoryJobStore,
    JobHandle,
    ScheduledJob,
    SchedulerError,
    StorageError,
    StoreScheduler,
    TaskStatus,
)


def make_job(job_id, resume_at=T0, **kwargs):
    return ScheduledJob(
        job_id=job_id,
        task_type="Crawler",
        state_data=pickle.dumps({"attempt": 0}),
        resume_at=resume_at,
        **kwargs,
    )


# =============================================================================
# InMemoryJobStore
# =============================================================================


def test_enqueue_and_get(store):
    job = make_job("a")

    assert store.enqueue(job) == "a"
    assert store.get("a") is job
    assert len(store) == 1


def test_enqueue_duplicate_rejected(store):
    store.enqueue(make_job("a"))

    with pytest.raises(StorageError, match="already exists"):
        store.enqueue(make_job("a"))


def test_enqueue_requires_pending(store):
    with pytest.raises(StorageError, match="PENDING"):
        store.enqueue(make_job("a", status=TaskStatus.RUNNING))


def test_enqueue_rejects_naive_resume_time(store):
    with pytest.raises(StorageError, match="naive"):
        store.enqueue(make_job("a", resume_at=T0.replace(tzinfo=None)))

    assert len(store) == 0


def test_get_unknown_job(store):
    with pytest.raises(StorageError, match="not found"):
        store.get("missing")


def test_due_orders_by_resume_time_and_skips_future(store):
    store.enqueue(make_job("later", resume_at=T0 + timedelta(minutes=5)))
    store.enqueue(make_job("second", resume_at=T0 - timedelta(minutes=1)))
    store.enqueue(make_job("first", resume_at=T0 - timedelta(minutes=2)))
    store.enqueue(make_job("now", resume_at=T0))

    assert [job.job_id for job in store.due(T0)] == ["first", "second", "now"]


def test_claim_and_complete(store):
    store.enqueue(make_job("a"))

    claimed = store.claim("a", "worker-1")
    assert claimed.status == TaskStatus.RUNNING
    assert claimed.locked_by == "worker-1"
    assert store.due(T0) == []

    done = store.complete("a", TaskStatus.SUSPENDED, "rate limited")
    assert done.status == TaskStatus.SUSPENDED
    assert done.error_message == "rate limited"
    assert done.locked_by is None


def test_claim_twice_rejected(store):
    store.enqueue(make_job("a"))
    store.claim("a", "worker-1")

    with pytest.raises(StorageError, match="cannot be claimed"):
        store.claim("a", "worker-2")


def test_concurrent_claims_have_one_winner(store):
    store.enqueue(make_job("a"))
    winners = []
    barrier = threading.Barrier(8)

    def try_claim(worker_id):
        barrier.wait()
        try:
            store.claim("a", worker_id)
            winners.append(worker_id)
        except StorageError:
            pass

    threads = [threading.Thread(target=try_claim, args=(f"w{i}",)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(winners) == 1


def test_complete_requires_running_and_terminal_status(store):
    store.enqueue(make_job("a"))

    with pytest.raises(StorageError, match="not RUNNING"):
        store.complete("a", TaskStatus.COMPLETE)

    store.claim("a", "worker-1")
    with pytest.raises(StorageError, match="non-terminal"):
        store.complete("a", TaskStatus.PENDING)


def test_pending_and_reset(store):
    store.enqueue(make_job("b", resume_at=T0 + timedelta(minutes=1)))
    store.enqueue(make_job("a"))
    store.enqueue(make_job("c"))
    store.claim("c", "worker-1")

    assert [job.job_id for job in store.pending()] == ["a", "b"]

    store.reset()
    assert store.jobs() == []


def test_task_status_terminal():
    assert not TaskStatus.PENDING.is_terminal
    assert not TaskStatus.RUNNING.is_terminal
    assert TaskStatus.COMPLETE.is_terminal
    assert TaskStatus.SUSPENDED.is_terminal
    assert TaskStatus.FAILED.is_terminal
    assert str(TaskStatus.FAILED) == "FAILED"


# =============================================================================
# StoreScheduler
# =============================================================================


def test_schedule_enqueues_pickled_state(store):
    scheduler = StoreScheduler(store, "Crawler")

    handle = scheduler.schedule(T0, {"page": 2, "attempt": 1})

    assert isinstance(handle, JobHandle)
    assert handle.task_type == "Crawler"
    assert handle.resume_at == T0
    job = store.get(handle.job_id)
    assert job.attempt == 1
    assert job.status == TaskStatus.PENDING
    assert job.version is None
    assert pickle.loads(job.state_data) == {"page": 2, "attempt": 1}


def test_job_ids_are_unique(store):
    scheduler = StoreScheduler(store, "Crawler")

    ids = {scheduler.schedule(T0, {"attempt": 0}).job_id for _ in range(50)}

    assert len(ids) == 50


def test_unpicklable_state_raises_scheduler_error(store):
    scheduler = StoreScheduler(store, "Crawler")

    with pytest.raises(SchedulerError, match="serialize") as info:
        scheduler.schedule(T0, {"callback": lambda: None, "attempt": 1})

    assert info.value.__cause__ is not None
    assert store.jobs() == []


def test_invalid_attempt_raises_scheduler_error(store):
    with pytest.raises(SchedulerError, match="attempt"):
        StoreScheduler(store, "Crawler").schedule(T0, {"attempt": -3})


def test_non_mapping_state_raises_scheduler_error(store):
    with pytest.raises(SchedulerError, match="mapping"):
        StoreScheduler(store, "Crawler").schedule(T0, [1, 2])


@pytest.mark.parametrize("resume_at", [T0.replace(tzinfo=None), "2024-01-01T12:00:00Z", None])
def test_naive_or_non_datetime_resume_at_raises_scheduler_error(store, resume_at):
    with pytest.raises(SchedulerError, match="timezone-aware"):
        StoreScheduler(store, "Crawler").schedule(resume_at, {"attempt": 0})

    assert store.jobs() == []


def test_store_rejection_raises_scheduler_error():
    class BrokenStore(InMemoryJobStore):
        def enqueue(self, job):
            raise StorageError("disk full")

    with pytest.raises(SchedulerError, match="disk full"):
        StoreScheduler(BrokenStore(), "Crawler").schedule(T0, {"attempt": 0})


def test_versioning_builders(store, monkeypatch):
    scheduler = StoreScheduler(store, "Crawler")

    assert scheduler.with_version("v1.2").version() == "v1.2"
    assert scheduler.with_version("v1.2").unversioned().version() is None

    monkeypatch.setenv("DEPLOY_VERSION", "2024-01-15")
    from_env = scheduler.from_env()
    handle = from_env.schedule(T0, {"attempt": 0})
    assert store.get(handle.job_id).version == "2024-01-15"

    monkeypatch.delenv("DEPLOY_VERSION")
    assert scheduler.from_env().version() is None
