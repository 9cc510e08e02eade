"""Single-attempt HTTP fetching: proxy pick, transport call, classification."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Dict, Mapping, Protocol

import httpx
import structlog

from ..errors import FetchError, HTTPStatusError, TransportError
from ..infra import ProxyPool, UserAgentPool


@dataclass(slots=True)
class TransportResponse:
    """What a transport hands back: status code and decoded body."""

    status_code: int
    text: str


class Transport(Protocol):
    """Capability performing the actual network GET.

    Implementations raise ``TransportError`` for network level failures and
    return a ``TransportResponse`` for every HTTP answer, whatever its status.
    """

    def fetch(
        self,
        url: str,
        proxy: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        ...

    def close(self) -> None:
        ...


class HttpxTransport:
    """Default transport on ``httpx.Client``; one client per distinct proxy."""

    def __init__(
        self,
        timeout: float = 15.0,
        follow_redirects: bool = False,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self.headers = dict(headers or {})
        self._clients: Dict[str | None, httpx.Client] = {}
        self._lock = Lock()

    def _client_for(self, proxy: str | None) -> httpx.Client:
        with self._lock:
            client = self._clients.get(proxy)
            if client is None:
                client = self._build_client(proxy)
                self._clients[proxy] = client
            return client

    def _build_client(self, proxy: str | None) -> httpx.Client:
        return httpx.Client(
            proxy=proxy,
            timeout=self.timeout,
            follow_redirects=self.follow_redirects,
            headers=self.headers or None,
        )

    def fetch(
        self,
        url: str,
        proxy: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        try:
            client = self._client_for(proxy)
            response = client.get(url, headers=dict(headers) if headers else None)
            return TransportResponse(status_code=response.status_code, text=response.text)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}", url=url) from exc

    def close(self) -> None:
        with self._lock:
            for client in self._clients.values():
                client.close()
            self._clients.clear()


@dataclass(slots=True)
class FetchOutcome:
    """Result of exactly one attempt."""

    url: str
    body: str | None = None
    status_code: int | None = None
    error: FetchError | None = None
    proxy: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FetchPipeline:
    """Run one attempt for a URL and classify it. Never retries, never raises."""

    def __init__(
        self,
        transport: Transport,
        proxy_pool: ProxyPool | None = None,
        ua_pool: UserAgentPool | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.transport = transport
        self.proxy_pool = proxy_pool or ProxyPool()
        self.ua_pool = ua_pool or UserAgentPool()
        self.logger = logger or structlog.get_logger("lite_crawler.fetcher")

    def fetch(self, url: str) -> FetchOutcome:
        proxy = self.proxy_pool.get_proxy()
        headers = self.ua_pool.headers()
        try:
            response = self.transport.fetch(url, proxy=proxy, headers=headers or None)
        except TransportError as exc:
            self.logger.warning("transport_error", url=url, proxy=proxy, error=str(exc))
            return FetchOutcome(url=url, error=exc, proxy=proxy)
        except Exception as exc:  # noqa: BLE001
            error = TransportError(f"{type(exc).__name__}: {exc}", url=url)
            error.__cause__ = exc
            self.logger.warning("transport_error", url=url, proxy=proxy, error=str(error))
            return FetchOutcome(url=url, error=error, proxy=proxy)

        if self.is_success(response.status_code):
            self.logger.debug("page_received", url=url, status=response.status_code, proxy=proxy)
            return FetchOutcome(
                url=url, body=response.text, status_code=response.status_code, proxy=proxy
            )
        self.logger.warning("unexpected_status", url=url, status=response.status_code, proxy=proxy)
        return FetchOutcome(
            url=url,
            status_code=response.status_code,
            error=HTTPStatusError(response.status_code, url=url),
            proxy=proxy,
        )

    @staticmethod
    def is_success(status_code: int) -> bool:
        return 200 <= status_code <= 299


__all__ = [
    "FetchOutcome",
    "FetchPipeline",
    "HttpxTransport",
    "Transport",
    "TransportResponse",
]
