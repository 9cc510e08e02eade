"""Outbound proxy selection."""

from __future__ import annotations

import random
from pathlib import Path
from threading import Lock
from typing import Iterable, List, Optional


class ProxyPool:
    """Pick a proxy per attempt: none when empty, fixed when single, uniform random otherwise."""

    def __init__(
        self, proxies: str | Iterable[str] | None = None, file_path: Path | None = None
    ) -> None:
        self._lock = Lock()
        self._proxies: List[str] = []
        if proxies:
            self._proxies.extend(self._clean(proxies))
        if file_path and file_path.exists():
            lines = file_path.read_text(encoding="utf-8").splitlines()
            self._proxies.extend(self._clean(lines))

    @staticmethod
    def _clean(proxies: str | Iterable[str]) -> List[str]:
        if isinstance(proxies, str):
            proxies = [proxies]
        return [p.strip() for p in proxies if p and p.strip()]

    @property
    def empty(self) -> bool:
        return not self._proxies

    @property
    def proxies(self) -> list[str]:
        with self._lock:
            return list(self._proxies)

    def get_proxy(self) -> Optional[str]:
        with self._lock:
            if not self._proxies:
                return None
            if len(self._proxies) == 1:
                return self._proxies[0]
            return random.choice(self._proxies)

    def refresh(self, proxies: str | Iterable[str] | None) -> None:
        cleaned = self._clean(proxies) if proxies else []
        with self._lock:
            self._proxies = cleaned

    def __len__(self) -> int:
        return len(self._proxies)


__all__ = ["ProxyPool"]
