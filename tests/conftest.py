"""Shared fixtures: scripted transports and crawler builders."""

from __future__ import annotations

import time
from collections import Counter
from types import SimpleNamespace
from threading import Event, Lock
from typing import Any, Callable, Iterable, Mapping

import pytest

from lite_crawler import Crawler
from lite_crawler.engine import TransportResponse
from lite_crawler.errors import TransportError

Behaviour = Any  # (status, text) | Exception | callable(url, attempt) -> either


class FakeTransport:
    """Scripted transport recording every call and the peak concurrency it saw."""

    def __init__(
        self,
        responses: Mapping[str, Behaviour] | None = None,
        default: Behaviour = (200, "<html>ok</html>"),
        delay: float = 0.0,
    ) -> None:
        self.responses = dict(responses or {})
        self.default = default
        self.delay = delay
        self.calls: list[tuple[str, str | None, dict[str, str]]] = []
        self.attempts: Counter[str] = Counter()
        self.active = 0
        self.max_active = 0
        self.closed = False
        self._lock = Lock()

    @property
    def urls(self) -> list[str]:
        with self._lock:
            return [url for url, _, _ in self.calls]

    def fetch(self, url, proxy=None, headers=None) -> TransportResponse:
        with self._lock:
            self.calls.append((url, proxy, dict(headers or {})))
            self.attempts[url] += 1
            attempt = self.attempts[url]
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            behaviour = self.responses.get(url, self.default)
            if callable(behaviour):
                behaviour = behaviour(url, attempt)
            if isinstance(behaviour, Exception):
                raise behaviour
            status, text = behaviour
            return TransportResponse(status_code=status, text=text)
        finally:
            with self._lock:
                self.active -= 1

    def close(self) -> None:
        self.closed = True


class BlockingTransport(FakeTransport):
    """Holds every fetch until ``release`` is set; ``entered`` fires on the first call."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.entered = Event()
        self.release = Event()

    def fetch(self, url, proxy=None, headers=None) -> TransportResponse:
        self.entered.set()
        if not self.release.wait(timeout=5):
            raise TransportError("blocking transport was never released", url=url)
        return super().fetch(url, proxy=proxy, headers=headers)


class Recorder:
    """Thread-safe sink for hook invocations."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.successes: list[tuple[str, str]] = []
        self.errors: list[tuple[BaseException, str]] = []
        self.drained = 0
        self.success_event = Event()

    def on_success(self, body: str, url: str) -> None:
        with self._lock:
            self.successes.append((url, body))
        self.success_event.set()

    def on_error(self, error: BaseException, url: str) -> None:
        with self._lock:
            self.errors.append((error, url))

    def on_drained(self) -> None:
        with self._lock:
            self.drained += 1

    @property
    def success_urls(self) -> list[str]:
        with self._lock:
            return [url for url, _ in self.successes]

    @property
    def error_urls(self) -> list[str]:
        with self._lock:
            return [url for _, url in self.errors]


def always(status: int, text: str = "") -> Callable[[str, int], tuple[int, str]]:
    return lambda _url, _attempt: (status, text)


def fail_then_succeed(failures: int, status: int = 503) -> Callable[[str, int], tuple[int, str]]:
    def _behaviour(_url: str, attempt: int) -> tuple[int, str]:
        if attempt <= failures:
            return status, "unavailable"
        return 200, "recovered"

    return _behaviour


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def transports() -> SimpleNamespace:
    """Transport classes and scripted behaviours for tests that build their own."""
    return SimpleNamespace(
        Fake=FakeTransport,
        Blocking=BlockingTransport,
        always=always,
        fail_then_succeed=fail_then_succeed,
    )


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_crawler() -> Iterable[Callable[..., Crawler]]:
    """Build crawlers with fast timings and close them at teardown."""

    created: list[Crawler] = []

    def _builder(transport: Any = None, recorder: Recorder | None = None, **overrides: Any) -> Crawler:
        options: dict[str, Any] = {"retry_delay": 0.0, "idle_interval": 0.05}
        options.update(overrides)
        crawler = Crawler(transport=transport or FakeTransport(), **options)
        if recorder is not None:
            crawler.on_success(recorder.on_success)
            crawler.on_error(recorder.on_error)
            crawler.on_drained(recorder.on_drained)
        created.append(crawler)
        return crawler

    yield _builder
    for crawler in created:
        crawler.close()
