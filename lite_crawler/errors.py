"""Exception taxonomy shared by the engine, the config layer and the CLI."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for every error raised by lite-crawler."""


class FetchError(CrawlerError):
    """A single fetch attempt did not produce a usable body."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class TransportError(FetchError):
    """Network level failure: DNS, TLS, connect, read or timeout.

    The underlying library exception is chained as ``__cause__``.
    """


class HTTPStatusError(FetchError):
    """The server answered with a status outside 200-299."""

    def __init__(self, status_code: int, url: str | None = None) -> None:
        super().__init__(f"Request Failed. Status Code: {status_code}", url=url)
        self.status_code = status_code


class AdmissionSkip(CrawlerError):
    """Marker for a task rejected by the admission gate. Never raised by the engine."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Admission gate rejected {url}")
        self.url = url


class ValidationError(CrawlerError, ValueError):
    """Malformed user input (settings, URLs, configuration files)."""


__all__ = [
    "AdmissionSkip",
    "CrawlerError",
    "FetchError",
    "HTTPStatusError",
    "TransportError",
    "ValidationError",
]
