"""Interval scheduler for automation jobs."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from .automation import AutomationJobs, JobOutcome


class AutomationScheduler:
    """Runs every job once per tick, concurrently, until stopped.

    A failing job produces a failed JobOutcome; it never stops the other
    jobs in the tick or later ticks.
    """

    def __init__(
        self,
        jobs: AutomationJobs,
        interval_seconds: float = 300.0,
        cleanup_every_ticks: int = 10,
        logger: Any = None,
    ) -> None:
        self._jobs = jobs
        self._interval = interval_seconds
        self._cleanup_every = max(1, cleanup_every_ticks)
        self._logger = logger
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, include_cleanup: bool | None = None) -> list[JobOutcome]:
        """Run one tick and return every job's outcome."""
        self._ticks += 1
        if include_cleanup is None:
            include_cleanup = self._ticks % self._cleanup_every == 0
        table = self._jobs.job_table(include_cleanup=include_cleanup)

        with ThreadPoolExecutor(max_workers=len(table), thread_name_prefix="sponsorcast-job") as pool:
            futures = {name: pool.submit(fn) for name, fn in table.items()}
        outcomes: list[JobOutcome] = []
        for name, future in futures.items():
            exc = future.exception()
            outcomes.append(self._failed(name, exc) if exc is not None else future.result())

        if self._logger:
            self._logger.info(
                "tick_done",
                extra={
                    "tick": self._ticks,
                    "jobs": {o.job: {"success": o.success, "processed": o.processed} for o in outcomes},
                },
            )
        return outcomes

    def run_named(self, names: list[str]) -> list[JobOutcome]:
        """Run the named jobs one after another, outside the tick count."""
        table = self._jobs.job_table(include_cleanup=True)
        outcomes: list[JobOutcome] = []
        for name in names:
            try:
                outcomes.append(table[name]())
            except Exception as exc:
                outcomes.append(self._failed(name, exc))
        return outcomes

    def _failed(self, name: str, exc: BaseException) -> JobOutcome:
        if self._logger:
            self._logger.error("job_failed", exc_info=exc, extra={"job": name, "tick": self._ticks})
        return JobOutcome(job=name, success=False, error=str(exc) or type(exc).__name__)

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            if self._stop.wait(self._interval):
                break

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="sponsorcast-scheduler", daemon=True)
        self._thread.start()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stopped or *timeout* elapses; True if stopped."""
        return self._stop.wait(timeout)

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to exit and wait for the current tick to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
