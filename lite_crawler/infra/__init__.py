"""Infra layer utilities (proxy and UA pools)."""

from .proxy_pool import ProxyPool
from .ua_pool import UserAgentPool

__all__ = ["ProxyPool", "UserAgentPool"]
