"""Crawler lifecycle: pending queue → admission gate → governor → fetch pipeline."""

from __future__ import annotations

import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from threading import Condition, Lock, Thread
from typing import Any, Callable, Deque, Iterable

import structlog

from .config import CrawlerConfig
from .engine import (
    ConcurrencyGovernor,
    FetchPipeline,
    HttpxTransport,
    RetryScheduler,
    Task,
    TaskQueue,
    Transport,
)
from .engine.hooks import (
    AdmissionGate,
    DrainedHook,
    ErrorHook,
    SuccessHook,
    admit_all,
    log_error,
    log_success,
    noop_drained,
)
from .errors import AdmissionSkip, CrawlerError, ValidationError
from .infra import ProxyPool, UserAgentPool


@dataclass(slots=True)
class CrawlStats:
    """Running counters for one crawler instance."""

    added: int = 0
    duplicates: int = 0
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    retried: int = 0
    skipped: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "added": self.added,
            "duplicates": self.duplicates,
            "dispatched": self.dispatched,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "retried": self.retried,
            "skipped": self.skipped,
        }


def _check_retries(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"retries must be a non-negative integer, got {value!r}")
    return value


class Crawler:
    """Concurrent fetch orchestrator.

    Producers call :meth:`add_task` at any time. After :meth:`start`, one pump
    thread dequeues pending URLs in FIFO order, asks the admission gate,
    takes a slot from the :class:`ConcurrencyGovernor` and runs the attempt on
    a worker thread. Completions, new tasks and due retries wake the pump
    through a condition variable. When the queue is empty the drained hook
    fires, at most once per ``idle_interval`` while nothing new arrives.

    Typical use::

        crawler = Crawler(concurrency=4, retries=2)
        crawler.on_success(lambda body, url: print(url, len(body)))
        crawler.add_task("https://example.com").start()
        crawler.wait_until_idle()
        crawler.close()
    """

    def __init__(
        self,
        concurrency: int = 1,
        *,
        retries: int = 0,
        retry_delay: float = 1.0,
        idle_interval: float = 1.0,
        proxies: str | Iterable[str] | None = None,
        proxy_file: Path | None = None,
        user_agents: Iterable[str] | None = None,
        transport: Transport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
            raise ValidationError(f"concurrency must be a positive integer, got {concurrency!r}")
        if retry_delay < 0:
            raise ValidationError("retry_delay must be >= 0")
        if idle_interval <= 0:
            raise ValidationError("idle_interval must be > 0")
        self.logger = logger or structlog.get_logger("lite_crawler").bind(component="crawler")
        self.idle_interval = idle_interval
        self._retries = _check_retries(retries)

        self._condition = Condition()
        self._signals = 0
        self._active = False
        self._closed = False
        self._pump_thread: Thread | None = None
        self._staged: Task | None = None
        self._last_drained: float | None = None

        self._queue = TaskQueue()
        self._ready: Deque[Task] = deque()
        self._governor = ConcurrencyGovernor(concurrency, on_release=self._wake)
        self._executor = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="crawler")

        self._owns_transport = transport is None
        self.transport: Transport = transport or HttpxTransport()
        self.proxy_pool = ProxyPool(proxies, file_path=proxy_file)
        self.pipeline = FetchPipeline(
            self.transport,
            proxy_pool=self.proxy_pool,
            ua_pool=UserAgentPool(user_agents),
            logger=self.logger.bind(component="fetcher"),
        )
        self._retry = RetryScheduler(
            retry_delay,
            on_ready=self._retry_ready,
            on_exhausted=self._report_failure,
            logger=self.logger.bind(component="retry"),
        )

        self._success_hook: SuccessHook = log_success
        self._error_hook: ErrorHook = log_error
        self._drained_hook: DrainedHook = noop_drained
        self._admission_gate: AdmissionGate = admit_all

        self._stats = CrawlStats()
        self._stats_lock = Lock()
        self._skips: list[AdmissionSkip] = []

    @classmethod
    def from_config(
        cls,
        config: CrawlerConfig,
        transport: Transport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> "Crawler":
        owns_transport = transport is None
        if transport is None:
            transport = HttpxTransport(
                timeout=config.request_timeout,
                follow_redirects=config.follow_redirects,
                headers=config.headers,
            )
        crawler = cls(
            config.concurrency,
            retries=config.retries,
            retry_delay=config.retry_delay,
            idle_interval=config.idle_interval,
            proxies=config.proxies,
            proxy_file=config.proxy_file,
            user_agents=UserAgentPool.from_source(config.user_agents).agents,
            transport=transport,
            logger=logger,
        )
        crawler._owns_transport = owns_transport
        return crawler

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------
    def add_task(self, url: str) -> "Crawler":
        if self._queue.enqueue(url):
            self._bump("added")
            self.logger.debug("task_added", url=url, pending=self._queue.size())
            self._wake()
        else:
            self._bump("duplicates")
            self.logger.debug("task_duplicate", url=url)
        return self

    def add_tasks(self, urls: Iterable[str]) -> "Crawler":
        for url in urls:
            self.add_task(url)
        return self

    def get_task_count(self) -> int:
        """Pending tasks only; in-flight and waiting retries are not counted."""
        return self._queue.size()

    # ------------------------------------------------------------------
    # Runtime settings and hooks
    # ------------------------------------------------------------------
    def set_proxy(self, proxies: str | Iterable[str] | None) -> "Crawler":
        self.proxy_pool.refresh(proxies)
        self.logger.info("proxies_updated", count=len(self.proxy_pool))
        return self

    def set_retries(self, retries: int) -> "Crawler":
        self._retries = _check_retries(retries)
        return self

    def on_success(self, handler: SuccessHook) -> "Crawler":
        self._success_hook = handler
        return self

    def on_error(self, handler: ErrorHook) -> "Crawler":
        self._error_hook = handler
        return self

    def on_drained(self, handler: DrainedHook) -> "Crawler":
        self._drained_hook = handler
        return self

    def before_request(self, gate: AdmissionGate) -> "Crawler":
        self._admission_gate = gate
        return self

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def concurrency(self) -> int:
        return self._governor.limit

    @property
    def retries(self) -> int:
        return self._retries

    @property
    def in_flight(self) -> int:
        return self._governor.in_flight

    @property
    def peak_in_flight(self) -> int:
        return self._governor.peak

    @property
    def pending_retries(self) -> int:
        return self._retry.pending

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def stats(self) -> CrawlStats:
        with self._stats_lock:
            return replace(self._stats)

    @property
    def skipped_tasks(self) -> list[AdmissionSkip]:
        """Gate rejections so far; a gate error is chained as ``__cause__``."""
        with self._stats_lock:
            return list(self._skips)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> "Crawler":
        self._retry.start()
        with self._condition:
            if self._closed:
                raise CrawlerError("crawler is closed")
            was_active = self._active
            self._active = True
            if self._pump_thread is None:
                self._pump_thread = Thread(target=self._pump, name="crawler-pump", daemon=True)
                self._pump_thread.start()
            self._signal_locked()
        if not was_active:
            self.logger.info(
                "crawler_started", concurrency=self.concurrency, pending=self._queue.size()
            )
        return self

    def stop(self) -> "Crawler":
        """Halt new dispatch. Fetches already issued, and their retries, still run."""

        with self._condition:
            was_active = self._active
            self._active = False
            self._signal_locked()
        if was_active:
            self.logger.info(
                "crawler_stopped", in_flight=self.in_flight, pending=self._queue.size()
            )
        return self

    def close(self) -> None:
        """Stop dispatching, let in-flight attempts finish, release resources.

        Retries that have not run yet end as failures: the error hook gets
        the error of their last attempt.
        """

        self.stop()
        with self._condition:
            if self._closed:
                return
            self._closed = True
            self._signal_locked()
        if self._pump_thread is not None:
            self._pump_thread.join()
        self._executor.shutdown(wait=True)
        unfinished = self._retry.shutdown()
        with self._condition:
            unfinished.extend(self._ready)
            self._ready.clear()
            self._signal_locked()
        for task in unfinished:
            self._bump("failed")
            self._report_failure(task.last_error, task.url)
        if self._owns_transport:
            self.transport.close()
        self.logger.info("crawler_closed", **self.stats.as_dict())

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until nothing is pending, in flight or waiting to be retried.

        Returns False if ``timeout`` elapsed first. Pending tasks never drain
        while the crawler is stopped, so callers waiting without a timeout
        must have called :meth:`start`.
        """

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while not self._is_idle_locked():
                if deadline is None:
                    self._condition.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._condition.wait(remaining)
            return True

    def __enter__(self) -> "Crawler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Pump
    # ------------------------------------------------------------------
    def _pump(self) -> None:
        while True:
            with self._condition:
                while not self._active and not self._closed and not self._ready:
                    self._condition.wait()
                if self._closed:
                    return
                seen = self._signals
                active = self._active
                picked = self._take_locked()
            if picked is not None:
                self._dispatch(*picked)
                continue

            drained = active and self._queue.size() == 0 and not self._ready
            timeout: float | None = None
            if drained:
                now = time.monotonic()
                if self._last_drained is None or now - self._last_drained >= self.idle_interval:
                    self._last_drained = now
                    self.logger.debug("queue_drained", in_flight=self.in_flight)
                    self._call_hook("on_drained", self._drained_hook)
                timeout = max(0.0, self.idle_interval - (time.monotonic() - self._last_drained))
            with self._condition:
                if self._signals == seen and not self._closed:
                    self._condition.wait(timeout)

    def _take_locked(self) -> tuple[Task, bool] | None:
        if not self._governor.has_capacity():
            return None
        if self._ready:
            task = self._ready.popleft()
            self._staged = task
            return task, True
        if not self._active:
            return None
        url = self._queue.dequeue()
        if url is None:
            return None
        task = Task(url=url, retries_left=self._retries)
        self._staged = task
        self._last_drained = None
        return task, False

    def _dispatch(self, task: Task, is_retry: bool) -> None:
        try:
            if not is_retry:
                skip = self._admit(task.url)
                if skip is not None:
                    with self._stats_lock:
                        self._stats.skipped += 1
                        self._skips.append(skip)
                    reason = "gate_error" if skip.__cause__ is not None else "admission_gate"
                    self.logger.info("task_skipped", url=task.url, reason=reason)
                    return
                with self._condition:
                    stopped = not self._active or self._closed
                if stopped:
                    # gate answered after stop(); the task waits for the next start()
                    requeued = self._queue.push_front(task.url)
                    self.logger.info("task_requeued", url=task.url, requeued=requeued)
                    return
            if not self._governor.try_acquire():
                with self._condition:
                    self._ready.appendleft(task)
                return
            task.attempts += 1
            self._bump("dispatched")
            self.logger.debug(
                "task_dispatched",
                url=task.url,
                attempt=task.attempts,
                retries_left=task.retries_left,
                in_flight=self.in_flight,
            )
            self._executor.submit(self._run_attempt, task)
        finally:
            with self._condition:
                self._staged = None
                self._signal_locked()

    def _admit(self, url: str) -> AdmissionSkip | None:
        try:
            if self._admission_gate(url):
                return None
            return AdmissionSkip(url)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("admission_gate_error", url=url, error=str(exc))
            skip = AdmissionSkip(url)
            skip.__cause__ = exc
            return skip

    def _run_attempt(self, task: Task) -> None:
        try:
            outcome = self.pipeline.fetch(task.url)
            if outcome.ok:
                self._bump("succeeded")
                self._call_hook("on_success", self._success_hook, outcome.body or "", task.url)
            elif self._retry.handle_failure(task, outcome):
                self._bump("retried")
            else:
                self._bump("failed")
        except Exception as exc:  # noqa: BLE001
            self.logger.error("attempt_crashed", url=task.url, error=str(exc))
        finally:
            self._governor.release()

    # ------------------------------------------------------------------
    # Callbacks and helpers
    # ------------------------------------------------------------------
    def _retry_ready(self, task: Task) -> None:
        with self._condition:
            self._ready.append(task)
            self._signal_locked()

    def _report_failure(self, error: BaseException, url: str) -> None:
        self._call_hook("on_error", self._error_hook, error, url)

    def _call_hook(self, name: str, hook: Callable[..., Any], *args: Any) -> None:
        try:
            hook(*args)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("hook_error", hook=name, error=str(exc))

    def _is_idle_locked(self) -> bool:
        return (
            self._queue.size() == 0
            and not self._ready
            and self._staged is None
            and self._governor.in_flight == 0
            and self._retry.pending == 0
        )

    def _wake(self) -> None:
        with self._condition:
            self._signal_locked()

    def _signal_locked(self) -> None:
        self._signals += 1
        self._condition.notify_all()

    def _bump(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + 1)


__all__ = ["Crawler", "CrawlStats"]
