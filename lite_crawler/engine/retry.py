"""Delayed re-attempts for failed fetches, backed by APScheduler."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, List

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from .fetcher import FetchOutcome
from .task_queue import Task


class RetryScheduler:
    """Decide between another attempt and terminal failure.

    A task with ``retries_left > 0`` loses one retry and is handed to
    ``on_ready`` after ``delay`` seconds; the caller releases the slot of the
    failed attempt right away, so waiting retries hold no capacity. A task
    with no retries left goes to ``on_exhausted(error, url)``.

    ``shutdown`` returns the tasks whose delay had not elapsed yet. Each one
    keeps the error of its last attempt in ``Task.last_error``.
    """

    def __init__(
        self,
        delay: float,
        on_ready: Callable[[Task], None],
        on_exhausted: Callable[[BaseException, str], None],
        scheduler: BackgroundScheduler | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.delay = delay
        self.on_ready = on_ready
        self.on_exhausted = on_exhausted
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = logger or structlog.get_logger("lite_crawler.retry")
        self._lock = Lock()
        self._waiting: Dict[int, Task] = {}
        self._firing = 0
        self._started = False
        self._closed = False

    @property
    def pending(self) -> int:
        """Retries scheduled but not yet handed to ``on_ready``."""
        with self._lock:
            return len(self._waiting) + self._firing

    def start(self) -> None:
        with self._lock:
            if self._started or self._closed:
                return
            self.scheduler.start()
            self._started = True
        self.logger.debug("retry_scheduler_started")

    def shutdown(self) -> List[Task]:
        """Stop the timer and return the retries that never came due."""

        with self._lock:
            if self._closed:
                return []
            self._closed = True
            started = self._started
            abandoned = list(self._waiting.values())
            self._waiting.clear()
        if started:
            # lets a retry that is already firing reach on_ready first
            self.scheduler.shutdown(wait=True)
        if abandoned:
            self.logger.warning("pending_retries_abandoned", count=len(abandoned))
        return abandoned

    def handle_failure(self, task: Task, outcome: FetchOutcome) -> bool:
        """Return True when another attempt was scheduled."""

        error = outcome.error
        if error is None:
            raise ValueError("handle_failure() needs a failed outcome")
        task.last_error = error
        with self._lock:
            can_retry = task.retries_left > 0 and not self._closed
            if can_retry:
                task.retries_left -= 1
                self._waiting[id(task)] = task
        if not can_retry:
            self.logger.info(
                "retries_exhausted", url=task.url, attempts=task.attempts, error=str(error)
            )
            self.on_exhausted(error, task.url)
            return False

        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.delay)
        self.scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=run_date),
            args=[task],
            misfire_grace_time=None,
        )
        self.logger.info(
            "retry_scheduled",
            url=task.url,
            retries_left=task.retries_left,
            delay=self.delay,
            error=str(error),
        )
        return True

    def _fire(self, task: Task) -> None:
        with self._lock:
            if self._waiting.pop(id(task), None) is None:
                return
            self._firing += 1
        # stays counted as pending until on_ready has queued it
        try:
            self.on_ready(task)
        finally:
            with self._lock:
                self._firing -= 1


__all__ = ["RetryScheduler"]
