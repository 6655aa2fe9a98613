"""Pydantic Settings for the harvester service.

All environment variables use the HARVESTER_ prefix.
Example: HARVESTER_PROXY_ENABLED=true,
HARVESTER_PROXY_LIST='[{"host": "10.0.0.1", "port": 8080}]'
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from harvester.proxy.types import Proxy


class HarvesterSettings(BaseSettings):
    """Harvester service configuration validated from environment variables."""

    # Service
    service_key: str  # X-Service-Key for the admin API
    log_level: str = "INFO"
    graceful_shutdown_seconds: int = Field(default=30, ge=0)

    # Proxy pool
    proxy_enabled: bool = False
    proxy_list: list[Proxy] = []  # JSON list in the environment
    proxy_retry_attempts: int = Field(default=3, ge=1)
    proxy_timeout_ms: int = Field(default=10000, ge=100)
    proxy_check_url: str = "https://api.ipify.org?format=json"
    proxy_check_on_startup: bool = True
    proxy_maintenance_interval_seconds: int = Field(default=60, ge=1)
    proxy_block_duration_seconds: int = Field(default=1800, ge=1)

    # Scraper
    scraper_max_retries: int = Field(default=3, ge=1)
    scraper_timeout_ms: int = Field(default=10000, ge=100)
    scraper_request_delay_ms: int = Field(default=2000, ge=0)
    sources_path: str = str(Path(__file__).with_name("sources.yaml"))

    # Geocoding
    geocoding_provider_url: str = "https://nominatim.openstreetmap.org/search"
    geocoding_requests_per_second: float = Field(default=1.0, gt=0)
    geocoding_requests_per_day: int = Field(default=2500, ge=1)
    geocoding_max_retries: int = Field(default=3, ge=1)
    geocoding_retry_delay_ms: int = Field(default=2000, ge=0)
    geocoding_timeout_ms: int = Field(default=5000, ge=100)
    geocoding_use_proxy: bool = False
    geocoding_cache_ttl_days: int = Field(default=30, ge=1)

    # Persisted counter / cache store
    redis_url: str = "redis://localhost:6379/0"

    # Scheduler
    scheduler_enabled: bool = True
    scheduler_initial_delay_seconds: int = Field(default=300, ge=0)
    scheduler_interval_seconds: int = Field(default=86400, ge=1)
    source_delay_min_seconds: float = Field(default=5.0, ge=0)
    source_delay_max_seconds: float = Field(default=15.0, ge=0)

    model_config = {"env_prefix": "HARVESTER_"}
