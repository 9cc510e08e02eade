"""Engine components: queue, governor, fetch pipeline, retries and hooks."""

from .fetcher import FetchOutcome, FetchPipeline, HttpxTransport, Transport, TransportResponse
from .governor import ConcurrencyGovernor
from .hooks import AllOf, FanOutDrained, FanOutError, FanOutSuccess
from .retry import RetryScheduler
from .task_queue import Task, TaskQueue

__all__ = [
    "AllOf",
    "ConcurrencyGovernor",
    "FanOutDrained",
    "FanOutError",
    "FanOutSuccess",
    "FetchOutcome",
    "FetchPipeline",
    "HttpxTransport",
    "RetryScheduler",
    "Task",
    "TaskQueue",
    "Transport",
    "TransportResponse",
]
