"""Unit tests for the proxy pool."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from harvester.proxy.pool import DAY_SECONDS, MINUTE_SECONDS, ProxyPool
from harvester.proxy.types import BLOCK_THRESHOLD, Proxy, ProxyAuth, ProxyStatus
from tests.fakes import FakeClock


def _usage(pool: ProxyPool, index: int):
    return pool._usage[index]


class TestProxy:
    """Test Proxy value object."""

    def test_defaults(self):
        proxy = Proxy(host="10.0.0.1", port=8080)
        assert proxy.max_requests_per_minute == 100
        assert proxy.max_requests_per_day == 5000
        assert proxy.auth is None

    def test_url_without_auth(self):
        assert Proxy(host="10.0.0.1", port=8080).url == "http://10.0.0.1:8080"

    def test_url_with_auth(self):
        proxy = Proxy(host="10.0.0.1", port=8080, auth=ProxyAuth(username="u", password="p"))
        assert proxy.url == "http://u:p@10.0.0.1:8080"
        assert proxy.label == "10.0.0.1:8080"

    def test_camel_case_aliases(self):
        proxy = Proxy.model_validate(
            {"host": "h", "port": 1, "maxRequestsPerMinute": 5, "maxRequestsPerDay": 50}
        )
        assert proxy.max_requests_per_minute == 5
        assert proxy.max_requests_per_day == 50


class TestNext:
    """Test ProxyPool.next() selection."""

    def test_round_robin(self, proxies):
        pool = ProxyPool(proxies)
        hosts = [pool.next().host for _ in range(4)]
        assert hosts == ["10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.1"]

    def test_selection_increments_counters(self, proxies):
        pool = ProxyPool(proxies)
        pool.next()
        usage = _usage(pool, 0)
        assert usage.requests_this_minute == 1
        assert usage.requests_today == 1
        assert usage.last_used_at is not None

    def test_skips_blocked(self, proxies):
        pool = ProxyPool(proxies)
        for _ in range(BLOCK_THRESHOLD):
            pool.report_failure(proxies[1])
        hosts = {pool.next().host for _ in range(4)}
        assert "10.0.0.2" not in hosts

    def test_skips_proxy_at_minute_quota(self):
        limited = Proxy(host="a", port=1, max_requests_per_minute=1)
        other = Proxy(host="b", port=2)
        pool = ProxyPool([limited, other])
        assert pool.next().host == "a"
        assert [pool.next().host for _ in range(3)] == ["b", "b", "b"]

    def test_skips_proxy_at_day_quota(self):
        pool = ProxyPool([Proxy(host="a", port=1, max_requests_per_day=2)])
        assert pool.next() is not None
        assert pool.next() is not None
        assert pool.next() is None

    def test_all_blocked_returns_none(self, proxies):
        pool = ProxyPool(proxies)
        for proxy in proxies:
            for _ in range(BLOCK_THRESHOLD):
                pool.report_failure(proxy)
        assert pool.next() is None

    def test_empty_pool_returns_none(self):
        assert ProxyPool([]).next() is None

    def test_disabled_pool_returns_none(self, proxies):
        pool = ProxyPool(proxies, enabled=False)
        assert pool.next() is None
        assert _usage(pool, 0).requests_today == 0


class TestReporting:
    """Test failure/success reporting and blocking."""

    def test_three_failures_block(self, proxies):
        pool = ProxyPool(proxies)
        for _ in range(BLOCK_THRESHOLD):
            pool.report_failure(proxies[0])
        usage = _usage(pool, 0)
        assert usage.is_blocked is True
        assert usage.blocked_at is not None
        assert usage.consecutive_failures == BLOCK_THRESHOLD

    def test_two_failures_do_not_block(self, proxies):
        pool = ProxyPool(proxies)
        pool.report_failure(proxies[0])
        pool.report_failure(proxies[0])
        assert _usage(pool, 0).is_blocked is False

    def test_success_resets_failures(self, proxies):
        pool = ProxyPool(proxies)
        pool.report_failure(proxies[0])
        pool.report_failure(proxies[0])
        pool.report_success(proxies[0])
        pool.report_failure(proxies[0])
        usage = _usage(pool, 0)
        assert usage.consecutive_failures == 1
        assert usage.is_blocked is False

    def test_success_clears_block(self, proxies):
        pool = ProxyPool(proxies)
        for _ in range(BLOCK_THRESHOLD):
            pool.report_failure(proxies[0])
        pool.report_success(proxies[0])
        assert _usage(pool, 0).is_blocked is False

    def test_unknown_proxy_ignored(self, proxies):
        pool = ProxyPool(proxies)
        pool.report_failure(Proxy(host="elsewhere", port=1))
        assert all(u.consecutive_failures == 0 for u in pool._usage)

    def test_disabled_pool_ignores_reports(self, proxies):
        pool = ProxyPool(proxies, enabled=False)
        for _ in range(BLOCK_THRESHOLD):
            pool.report_failure(proxies[0])
        assert _usage(pool, 0).consecutive_failures == 0


class TestMaintenance:
    """Test window resets and unblocking."""

    def test_minute_window_resets_once(self):
        clock = FakeClock()
        pool = ProxyPool([Proxy(host="a", port=1)], clock=clock)
        pool.next()

        clock.advance(MINUTE_SECONDS - 1)
        pool.run_maintenance()
        assert _usage(pool, 0).requests_this_minute == 1

        clock.advance(1)
        pool.run_maintenance()
        assert _usage(pool, 0).requests_this_minute == 0
        assert _usage(pool, 0).requests_today == 1

        pool.next()
        pool.run_maintenance()
        assert _usage(pool, 0).requests_this_minute == 1

    def test_day_window_resets(self):
        clock = FakeClock()
        pool = ProxyPool([Proxy(host="a", port=1)], clock=clock)
        pool.next()
        clock.advance(DAY_SECONDS)
        pool.run_maintenance()
        assert _usage(pool, 0).requests_today == 0

    def test_block_expires_after_duration(self):
        clock = FakeClock()
        proxy = Proxy(host="a", port=1)
        pool = ProxyPool([proxy], block_duration_seconds=1800, clock=clock)
        for _ in range(BLOCK_THRESHOLD):
            pool.report_failure(proxy)

        clock.advance(1799)
        pool.run_maintenance()
        assert pool.next() is None

        clock.advance(1)
        pool.run_maintenance()
        usage = _usage(pool, 0)
        assert usage.is_blocked is False
        assert usage.consecutive_failures == 0
        assert pool.next() == proxy


class TestStats:
    """Test ProxyPool.get_stats()."""

    def test_reports_status(self):
        limited = Proxy(host="b", port=2, max_requests_per_minute=1)
        pool = ProxyPool([Proxy(host="a", port=1), limited, Proxy(host="c", port=3)])
        pool.next()
        pool.next()
        for _ in range(BLOCK_THRESHOLD):
            pool.report_failure(Proxy(host="c", port=3))

        stats = pool.get_stats()
        assert [s["status"] for s in stats] == [
            ProxyStatus.AVAILABLE.value,
            ProxyStatus.LIMITED.value,
            ProxyStatus.BLOCKED.value,
        ]
        assert stats[0]["requests_this_minute"] == 1
        assert stats[0]["requests_today"] == 1


    def test_disabled_pool_reports_nothing(self, proxies):
        assert ProxyPool(proxies, enabled=False).get_stats() == []


class TestProbes:
    """Test proxy liveness checks."""

    @pytest.mark.asyncio
    async def test_check_proxy_success(self, proxies):
        pool = ProxyPool(proxies)
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=httpx.Response(200, json={"ip": "1.2.3.4"}),
        ):
            assert await pool.check_proxy(proxies[0]) is True

    @pytest.mark.asyncio
    async def test_check_proxy_connect_error(self, proxies):
        pool = ProxyPool(proxies)
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("refused"),
        ):
            assert await pool.check_proxy(proxies[0]) is False

    @pytest.mark.asyncio
    async def test_probe_all_blocks_dead_proxies(self, proxies):
        pool = ProxyPool(proxies)
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            side_effect=[
                httpx.Response(200),
                httpx.ConnectError("refused"),
                httpx.Response(200),
            ],
        ):
            dead = await pool.probe_all()

        assert dead == 1
        usage = _usage(pool, 1)
        assert usage.is_blocked is True
        assert usage.consecutive_failures >= BLOCK_THRESHOLD

    @pytest.mark.asyncio
    async def test_test_proxies_reports_each(self, proxies):
        pool = ProxyPool(proxies)
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            side_effect=[httpx.Response(200), httpx.Response(500), httpx.Response(200)],
        ):
            results = await pool.test_proxies(pause_seconds=0)

        assert [r["working"] for r in results] == [True, False, True]
        assert [r["host"] for r in results] == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]
        assert all(r["response_time_ms"] >= 0 for r in results)

    @pytest.mark.asyncio
    async def test_test_proxies_skipped_when_disabled(self, proxies):
        pool = ProxyPool(proxies, enabled=False)
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as get:
            assert await pool.test_proxies(pause_seconds=0) == []
        get.assert_not_awaited()
