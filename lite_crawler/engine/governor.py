"""In-flight accounting against the concurrency limit."""

from __future__ import annotations

from threading import Lock
from typing import Callable


class ConcurrencyGovernor:
    """Admit a dispatch only while ``in_flight < limit``.

    ``try_acquire`` performs the check and the increment under one lock, so
    the limit holds even when several threads compete for a slot. Each
    ``release`` calls ``on_release`` after the counter drops, which is how the
    pump learns that capacity came back.
    """

    def __init__(self, limit: int, on_release: Callable[[], None] | None = None) -> None:
        if limit < 1:
            raise ValueError("concurrency limit must be a positive integer")
        self._limit = limit
        self._in_flight = 0
        self._peak = 0
        self._lock = Lock()
        self._on_release = on_release

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def peak(self) -> int:
        """Highest in-flight count ever observed."""
        with self._lock:
            return self._peak

    def has_capacity(self) -> bool:
        with self._lock:
            return self._in_flight < self._limit

    def try_acquire(self) -> bool:
        with self._lock:
            if self._in_flight >= self._limit:
                return False
            self._in_flight += 1
            self._peak = max(self._peak, self._in_flight)
            return True

    def release(self) -> None:
        with self._lock:
            if self._in_flight <= 0:
                raise RuntimeError("release() called without an acquired slot")
            self._in_flight -= 1
        if self._on_release is not None:
            self._on_release()


__all__ = ["ConcurrencyGovernor"]
