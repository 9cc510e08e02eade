"""Configuration package exports."""

from .loader import ConfigLocator, load_config, save_config
from .models import CrawlerConfig

__all__ = ["ConfigLocator", "CrawlerConfig", "load_config", "save_config"]
