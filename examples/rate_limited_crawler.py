"""
Rate-limited crawler - demonstrates suspend and resume with backoff

This example demonstrates:
- A task suspending itself when an API answers "429 Too Many Requests"
- State carrying the current page across attempts
- pause() keeping credentials out of the scheduled state
- suspend_on() turning a client exception into a suspend with an explicit
  resume time
- A Worker re-invoking due attempts against a simulated clock

Run with:
    PYTHONPATH=src python3 examples/rate_limited_crawler.py
"""

import logging
from datetime import timedelta

from pyresumable import (
    Backoff,
    InMemoryJobStore,
    ResumableTask,
    SuspendSignal,
    TaskStatus,
    Worker,
    suspend_on,
    utc_now,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


# =============================================================================
# DOMAIN LOGIC
# =============================================================================


class SimulatedClock:
    def __init__(self):
        self.now = utc_now()

    def __call__(self):
        return self.now


class QuotaExceeded(Exception):
    def __init__(self, retry_at):
        super().__init__(f"daily quota exceeded, resets at {retry_at.isoformat()}")
        self.retry_at = retry_at


class FlakyApi:
    """Answers 429 on the first request for some pages, quota error once."""

    def __init__(self, clock, throttled_pages, quota_page):
        self.clock = clock
        self.throttled = set(throttled_pages)
        self.quota_page = quota_page

    def fetch(self, page: int) -> int:
        if page == self.quota_page:
            self.quota_page = None
            raise QuotaExceeded(self.clock() + timedelta(hours=1))
        if page in self.throttled:
            self.throttled.discard(page)
            return 429
        return 200


# =============================================================================
# TASK
# =============================================================================


class CrawlCatalog(ResumableTask):
    def __init__(self, api: FlakyApi):
        self.api = api

    def perform(self, state, attempt):
        page = state.get("page", 1)
        fetched = list(state.get("fetched", []))

        while page <= state["last_page"]:
            with suspend_on(QuotaExceeded, resume_at=lambda e: e.retry_at,
                            state_update={"page": page, "fetched": fetched}):
                status = self.api.fetch(page)
            if status == 429:
                raise SuspendSignal(
                    f"rate limited on page {page}",
                    state_update={"page": page, "fetched": fetched},
                )
            fetched.append(page)
            page += 1

        return fetched

    def pause(self, state):
        return {k: v for k, v in state.items() if k != "api_token"}


# =============================================================================
# MAIN
# =============================================================================


def main():
    clock = SimulatedClock()
    api = FlakyApi(clock, throttled_pages=[3, 7], quota_page=5)

    store = InMemoryJobStore()
    worker = Worker(
        store,
        "worker-1",
        clock=clock,
        backoff=Backoff(base_unit=timedelta(seconds=30), clock=clock),
    ).register(CrawlCatalog, lambda: CrawlCatalog(api))

    worker.submit(CrawlCatalog, {"last_page": 8, "api_token": "s3cr3t"})

    while store.pending():
        next_job = store.pending()[0]
        clock.now = max(clock.now, next_job.resume_at)
        for processed in worker.run_due():
            print(f"attempt {processed.attempt}: {processed.outcome}")

    for job in store.jobs():
        print(f"{job.job_id} attempt={job.attempt} status={job.status}")

    assert store.jobs()[-1].status == TaskStatus.COMPLETE
    print("Crawl complete!")


if __name__ == "__main__":
    main()
