"""Shared test fixtures for the harvester test suite."""

from __future__ import annotations

import os

import pytest

from harvester.config.settings import HarvesterSettings
from harvester.proxy.types import Proxy
from tests.fakes import FakeClock, MemoryStore, RecordingSleep


# ---------------------------------------------------------------------------
# Ensure required env vars are set for HarvesterSettings in tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set minimal env vars so HarvesterSettings can be instantiated in tests."""
    if "HARVESTER_SERVICE_KEY" not in os.environ:
        monkeypatch.setenv("HARVESTER_SERVICE_KEY", "test-key")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> HarvesterSettings:
    """Test settings with safe defaults: no scheduler, no startup probe."""
    return HarvesterSettings(
        service_key="test-key",
        scheduler_enabled=False,
        proxy_check_on_startup=False,
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def proxies() -> list[Proxy]:
    return [
        Proxy(host="10.0.0.1", port=8080),
        Proxy(host="10.0.0.2", port=8080),
        Proxy(host="10.0.0.3", port=8080),
    ]
