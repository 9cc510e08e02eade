from __future__ import annotations

import random
from pathlib import Path

from lite_crawler.infra import ProxyPool, UserAgentPool


def test_proxy_pool_empty_means_direct() -> None:
    pool = ProxyPool()
    assert pool.empty
    assert pool.get_proxy() is None
    assert len(pool) == 0


def test_proxy_pool_single_entry_is_always_used() -> None:
    pool = ProxyPool("http://proxy:3128")
    assert [pool.get_proxy() for _ in range(5)] == ["http://proxy:3128"] * 5


def test_proxy_pool_random_choice(monkeypatch) -> None:
    picks = iter([1, 0, 1])
    monkeypatch.setattr(random, "choice", lambda seq: seq[next(picks)])
    pool = ProxyPool(["http://p1:1", " http://p2:2 ", ""])
    assert pool.proxies == ["http://p1:1", "http://p2:2"]
    assert [pool.get_proxy() for _ in range(3)] == ["http://p2:2", "http://p1:1", "http://p2:2"]


def test_proxy_pool_refresh() -> None:
    pool = ProxyPool(["http://p1:1", "http://p2:2"])
    pool.refresh("http://p3:3")
    assert pool.proxies == ["http://p3:3"]
    pool.refresh(["http://p4:4", " "])
    assert pool.proxies == ["http://p4:4"]
    pool.refresh(None)
    assert pool.empty


def test_proxy_pool_reads_file(tmp_path: Path) -> None:
    proxy_file = tmp_path / "proxies.txt"
    proxy_file.write_text("http://p1:1\n\nhttp://p2:2\n", encoding="utf-8")
    pool = ProxyPool(file_path=proxy_file)
    assert pool.proxies == ["http://p1:1", "http://p2:2"]
    assert ProxyPool(file_path=tmp_path / "missing.txt").empty


def test_user_agent_pool_headers(monkeypatch) -> None:
    monkeypatch.setattr(random, "choice", lambda seq: seq[0])
    pool = UserAgentPool(["UA1", "  ", "UA2"])
    assert pool.agents == ["UA1", "UA2"]
    assert pool.pick() == "UA1"
    assert pool.headers() == {"User-Agent": "UA1"}


def test_user_agent_pool_empty_sends_no_header() -> None:
    pool = UserAgentPool()
    assert pool.empty
    assert pool.pick() is None
    assert pool.headers() == {}


def test_user_agent_pool_from_file(tmp_path: Path) -> None:
    ua_file = tmp_path / "agents.txt"
    ua_file.write_text("Mozilla/5.0 A\nMozilla/5.0 B\n", encoding="utf-8")
    assert UserAgentPool.from_source(ua_file).agents == ["Mozilla/5.0 A", "Mozilla/5.0 B"]
    assert UserAgentPool.from_source(tmp_path / "nope.txt").empty
    assert UserAgentPool.from_source(None).empty
    assert UserAgentPool.from_source(["X"]).agents == ["X"]
