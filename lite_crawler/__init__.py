"""lite-crawler: a small concurrent crawling engine with retries and proxy rotation."""

from .config import CrawlerConfig, load_config
from .crawler import Crawler, CrawlStats
from .errors import (
    AdmissionSkip,
    CrawlerError,
    FetchError,
    HTTPStatusError,
    TransportError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "AdmissionSkip",
    "CrawlStats",
    "Crawler",
    "CrawlerConfig",
    "CrawlerError",
    "FetchError",
    "HTTPStatusError",
    "TransportError",
    "ValidationError",
    "load_config",
]
