"""Pytest configuration and fixtures."""

import pytest
import pytest_asyncio

from app.aggregation import AccountPaymentsAggregation
from app.config import AccountPaymentsConfig
from shared.framework.metrics import MetricsCollector
from tests.fixtures.mock_services import StubAggregateStore
from tests.fixtures.sample_events import DAY


@pytest.fixture
def config(monkeypatch):
    """Service configuration with short timeouts."""
    monkeypatch.setenv("DATA_PROC_ENV", "local")
    monkeypatch.setenv("DATA_PROC_ACCOUNT_PAYMENTS_STORE_TIMEOUT", "2")
    monkeypatch.setenv("DATA_PROC_ACCOUNT_PAYMENTS_POLL_DELAY", "0.01")
    return AccountPaymentsConfig()


@pytest.fixture
def store():
    return StubAggregateStore()


@pytest.fixture
def metrics():
    return MetricsCollector("account-payments")


@pytest.fixture
def now():
    """Fixed clock reading: noon on the sample day."""
    return DAY.replace(hour=12)


@pytest_asyncio.fixture
async def aggregation(config, store, metrics, now):
    """Aggregation over the in-memory store; worker tasks are not started."""
    aggregation = AccountPaymentsAggregation(config, store, metrics=metrics, clock=lambda: now)
    yield aggregation
    await aggregation.stop()
