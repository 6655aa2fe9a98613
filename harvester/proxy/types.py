"""Proxy data models for the proxy pool."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Consecutive failures after which a proxy is taken out of rotation.
BLOCK_THRESHOLD = 3


class ProxyAuth(BaseModel):
    """Basic-auth credentials for a proxy."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: str = ""


class Proxy(BaseModel):
    """Immutable configuration of a single egress proxy.

    Accepts the camelCase keys used in the ``PROXY_LIST`` JSON document
    (``maxRequestsPerMinute``, ``maxRequestsPerDay``) as well as the
    snake_case field names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    host: str = Field(..., min_length=1)
    port: int = Field(..., ge=1, le=65535)
    auth: ProxyAuth | None = None
    max_requests_per_minute: int = Field(default=100, ge=1, alias="maxRequestsPerMinute")
    max_requests_per_day: int = Field(default=5000, ge=1, alias="maxRequestsPerDay")

    @property
    def label(self) -> str:
        """``host:port``, safe to log, never includes credentials."""
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        """Proxy URL in the form ``http://[user:pass@]host:port``."""
        if self.auth and self.auth.username:
            return f"http://{self.auth.username}:{self.auth.password}@{self.host}:{self.port}"
        return f"http://{self.host}:{self.port}"


class ProxyStatus(str, Enum):
    """Externally reported state of a proxy."""

    AVAILABLE = "available"
    LIMITED = "limited"
    BLOCKED = "blocked"


@dataclass
class ProxyUsage:
    """Rolling usage counters and health state for one proxy.

    Owned and mutated exclusively by ``ProxyPool``. Timestamps come from the
    pool's clock (monotonic seconds by default).
    """

    proxy: Proxy
    minute_window_start: float
    day_window_start: float
    requests_this_minute: int = 0
    requests_today: int = 0
    consecutive_failures: int = 0
    is_blocked: bool = False
    blocked_at: float | None = None
    last_used_at: float | None = None

    def is_eligible(self) -> bool:
        """True when the proxy is neither blocked nor at either quota."""
        return (
            not self.is_blocked
            and self.requests_this_minute < self.proxy.max_requests_per_minute
            and self.requests_today < self.proxy.max_requests_per_day
        )

    @property
    def status(self) -> ProxyStatus:
        if self.is_blocked:
            return ProxyStatus.BLOCKED
        if not self.is_eligible():
            return ProxyStatus.LIMITED
        return ProxyStatus.AVAILABLE
