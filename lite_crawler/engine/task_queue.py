"""FIFO queue of pending URLs with exact-match deduplication."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Deque, Iterable, Optional, Set

from ..errors import FetchError


@dataclass(slots=True)
class Task:
    """A dequeued URL together with the attempts it still has left."""

    url: str
    retries_left: int = 0
    attempts: int = 0
    last_error: FetchError | None = None


class TaskQueue:
    """Ordered, duplicate-free collection of pending URLs.

    Dedup covers pending entries only. Once a URL is dequeued it may be
    enqueued again, even while its first fetch is still in flight. A set
    index sits next to the deque so the duplicate check is O(1) rather than
    a scan of the whole queue.
    """

    def __init__(self, urls: Iterable[str] | None = None) -> None:
        self._lock = Lock()
        self._order: Deque[str] = deque()
        self._index: Set[str] = set()
        for url in urls or ():
            self.enqueue(url)

    def enqueue(self, url: str) -> bool:
        with self._lock:
            if url in self._index:
                return False
            self._order.append(url)
            self._index.add(url)
            return True

    def dequeue(self) -> Optional[str]:
        with self._lock:
            if not self._order:
                return None
            url = self._order.popleft()
            self._index.discard(url)
            return url

    def size(self) -> int:
        with self._lock:
            return len(self._order)

    def push_front(self, url: str) -> bool:
        """Put a dequeued URL back at the head; False if it is pending again already."""
        with self._lock:
            if url in self._index:
                return False
            self._order.appendleft(url)
            self._index.add(url)
            return True

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._index


__all__ = ["Task", "TaskQueue"]
