"""Hook signatures, their defaults, and fan-out adapters."""

from __future__ import annotations

from typing import Callable, Iterable

import structlog

SuccessHook = Callable[[str, str], None]
ErrorHook = Callable[[BaseException, str], None]
DrainedHook = Callable[[], None]
AdmissionGate = Callable[[str], bool]

_logger = structlog.get_logger("lite_crawler.hooks")


def log_success(body: str, url: str) -> None:
    _logger.info("page_fetched", url=url, size=len(body))


def log_error(error: BaseException, url: str) -> None:
    _logger.error("fetch_failed", url=url, error=str(error), error_type=type(error).__name__)


def noop_drained() -> None:
    return None


def admit_all(url: str) -> bool:  # noqa: ARG001
    return True


class FanOutSuccess:
    """Forward every success to several handlers, in registration order."""

    def __init__(self, handlers: Iterable[SuccessHook]) -> None:
        self.handlers = list(handlers)

    def __call__(self, body: str, url: str) -> None:
        for handler in self.handlers:
            handler(body, url)


class FanOutError:
    """Forward every terminal failure to several handlers."""

    def __init__(self, handlers: Iterable[ErrorHook]) -> None:
        self.handlers = list(handlers)

    def __call__(self, error: BaseException, url: str) -> None:
        for handler in self.handlers:
            handler(error, url)


class FanOutDrained:
    def __init__(self, handlers: Iterable[DrainedHook]) -> None:
        self.handlers = list(handlers)

    def __call__(self) -> None:
        for handler in self.handlers:
            handler()


class AllOf:
    """Admission gate passing only when every wrapped gate passes (short-circuits)."""

    def __init__(self, gates: Iterable[AdmissionGate]) -> None:
        self.gates = list(gates)

    def __call__(self, url: str) -> bool:
        return all(gate(url) for gate in self.gates)


__all__ = [
    "AdmissionGate",
    "AllOf",
    "DrainedHook",
    "ErrorHook",
    "FanOutDrained",
    "FanOutError",
    "FanOutSuccess",
    "SuccessHook",
    "admit_all",
    "log_error",
    "log_success",
    "noop_drained",
]
