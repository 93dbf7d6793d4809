"""Unit tests for shared framework components and the service shell."""

import asyncio
import json

import pytest

from app.main import AccountPaymentsService
from shared.framework.health import HealthCheck, HealthChecker
from shared.framework.metrics import MetricsCollector
from tests.fixtures.sample_events import payment


class TestMetricsCollector:
    """Test MetricsCollector."""

    def test_instances_do_not_share_registry(self):
        first = MetricsCollector("account-payments")
        second = MetricsCollector("account-payments")

        first.record_cycle("success", 0.1, 3)

        assert first.get_sample("account_payments_events_processed_total", {"status": "success"}) == 3
        assert second.get_sample("account_payments_events_processed_total", {"status": "success"}) is None

    def test_exposition(self):
        metrics = MetricsCollector("account-payments")
        metrics.set_cache_size(4)
        metrics.record_evictions(0)
        metrics.update_service_info(version="1.0.0", environment="local")

        body = metrics.get_metrics().decode()

        assert "account_payments_cached_buckets 4.0" in body
        assert metrics.get_sample("account_payments_info", {"version": "1.0.0", "environment": "local"}) == 1
        assert metrics.get_sample("account_payments_evicted_buckets_total") == 0
        assert metrics.get_content_type().startswith("text/plain")


class TestHealthChecker:
    """Test HealthChecker."""

    @pytest.mark.asyncio
    async def test_critical_failure_makes_unhealthy(self, config):
        checker = HealthChecker(config)
        checker.add_check(HealthCheck(name="store", check_func=lambda: False))

        result = await checker.check_health()

        assert result["status"] == "unhealthy"
        assert result["critical_failures"] == 1
        assert result["checks"]["config"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_non_critical_failure_degrades(self, config):
        async def broken():
            raise ConnectionError("down")

        checker = HealthChecker(config)
        checker.add_check(HealthCheck(name="cache", check_func=broken, critical=False))

        result = await checker.check_health()
        readiness = await checker.check_readiness()

        assert result["status"] == "degraded"
        assert result["checks"]["cache"]["error"] == "down"
        assert readiness["ready"] is True

    @pytest.mark.asyncio
    async def test_timeout(self, config):
        async def slow():
            await asyncio.sleep(1)
            return True

        checker = HealthChecker(config)
        checker.add_check(HealthCheck(name="slow", check_func=slow, timeout=0.01))

        result = await checker.check_health()

        assert result["checks"]["slow"]["error"] == "timeout"
        checker.remove_check("slow")
        assert (await checker.check_health())["healthy"]


class TestAccountPaymentsService:
    """Test the service shell."""

    @pytest.mark.asyncio
    async def test_health_follows_worker(self, config, store):
        service = AccountPaymentsService(config, store=store)

        before = await service.health_checker.check_health()
        assert before["checks"]["cycle_worker"]["status"] == "unhealthy"

        await service._startup_hook()
        try:
            after = await service.health_checker.check_health()
            assert after["healthy"]
            assert set(after["checks"]) == {"config", "clickhouse", "cycle_worker"}
            assert service.consumer is None
        finally:
            await service._shutdown_hook()

        assert not service.aggregation.worker.alive

    @pytest.mark.asyncio
    async def test_store_outage_is_unhealthy(self, config, store):
        store.healthy = False
        service = AccountPaymentsService(config, store=store)

        response = await service._health_handler(None)

        assert response.status == 503
        assert json.loads(response.text)["checks"]["clickhouse"]["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_metrics_endpoint(self, config, store):
        service = AccountPaymentsService(config, store=store)
        service.aggregation.enqueue(payment())
        await service.aggregation.run_cycle()

        response = await service._metrics_handler(None)

        assert b'account_payments_cycles_total{status="success"} 1.0' in response.body
