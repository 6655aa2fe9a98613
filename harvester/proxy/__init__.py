"""Proxy package — rotation, quota windows, and failure blocking."""

from harvester.proxy.pool import ProxyPool
from harvester.proxy.types import BLOCK_THRESHOLD, Proxy, ProxyAuth, ProxyStatus, ProxyUsage

__all__ = [
    "BLOCK_THRESHOLD",
    "Proxy",
    "ProxyAuth",
    "ProxyPool",
    "ProxyStatus",
    "ProxyUsage",
]
