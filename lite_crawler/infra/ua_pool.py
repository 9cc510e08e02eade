"""User-Agent rotation for outgoing requests."""

from __future__ import annotations

import random
from pathlib import Path
from threading import Lock
from typing import Iterable, Optional


class UserAgentPool:
    """Hand out a random User-Agent header per attempt.

    The engine ships no built-in list; callers supply one through
    ``CrawlerConfig.user_agents`` or a newline separated file.
    """

    def __init__(self, user_agents: Iterable[str] | None = None) -> None:
        self._lock = Lock()
        self._agents: list[str] = [ua.strip() for ua in user_agents or () if ua.strip()]

    @classmethod
    def from_source(cls, source: Iterable[str] | Path | None) -> "UserAgentPool":
        if isinstance(source, Path):
            if not source.exists():
                return cls()
            return cls(source.read_text(encoding="utf-8").splitlines())
        return cls(source)

    @property
    def empty(self) -> bool:
        return not self._agents

    @property
    def agents(self) -> list[str]:
        with self._lock:
            return list(self._agents)

    def pick(self) -> Optional[str]:
        with self._lock:
            if not self._agents:
                return None
            return random.choice(self._agents)

    def headers(self) -> dict[str, str]:
        agent = self.pick()
        return {"User-Agent": agent} if agent else {}


__all__ = ["UserAgentPool"]
