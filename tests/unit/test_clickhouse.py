"""Unit tests for the ClickHouse client and the aggregate store."""

import json
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.output.store import AccountPaymentsStore
from shared.schemas.models import AggregateEntry
from shared.storage.clickhouse import ClickHouseClient, ClickHouseConfig
from shared.utils.errors import RateLookupError, StoreReadError, StoreWriteError
from tests.fixtures.mock_services import RecordingClickHouseClient


DAY = datetime(2024, 3, 15, tzinfo=timezone.utc)


def store_config(**overrides):
    values = dict(
        aggregate_table="agg_account_payments",
        exchanges_table="exchanges",
        ensure_schema=False,
        database=SimpleNamespace(
            clickhouse_url="http://clickhouse:8123",
            clickhouse_database="data_processing",
            clickhouse_user=None,
            clickhouse_password=None,
            clickhouse_timeout=5,
            clickhouse_max_connections=2,
        ),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def make_store(inner, **overrides):
    client = ClickHouseClient(url="http://clickhouse:8123", client=inner)
    return AccountPaymentsStore(store_config(**overrides), client=client)


class TestClickHouseClient:
    """Test ClickHouseClient."""

    def test_config_from_host(self):
        client = ClickHouseClient("clickhouse", port=9000, database="ledger", user="reader")

        assert client.config.url == "http://clickhouse:9000"
        assert client.config.database == "ledger"
        assert client.config.username == "reader"

    def test_config_object(self):
        config = ClickHouseConfig(url="https://ch.internal:8443", max_connections=3)

        assert ClickHouseClient(config).config is config

    def test_request_params_bind_values(self):
        client = ClickHouseClient(url="http://clickhouse:8123", database="ledger")

        params = client._request_params(
            params={"end": datetime(2024, 3, 15, 12, tzinfo=timezone.utc), "limit": 50},
        )

        assert params == {
            "database": "ledger",
            "param_end": "2024-03-15 12:00:00",
            "param_limit": "50",
        }

    def test_request_params_keep_fractional_seconds(self):
        client = ClickHouseClient(url="http://clickhouse:8123")

        params = client._request_params(
            params={"end": datetime(2024, 3, 15, 12, 0, 0, 500000, tzinfo=timezone.utc)},
        )

        assert params["param_end"] == "2024-03-15 12:00:00.500000"

    def test_dicts_to_jsonl(self):
        client = ClickHouseClient(url="http://clickhouse:8123")

        text = client._dicts_to_jsonl([
            {"date": DAY, "total": Decimal("1.50"), "peers": {"b", "a"}},
            {"date": DAY, "total": Decimal(0), "peers": set()},
        ])
        lines = [json.loads(line) for line in text.split("\n")]

        assert lines[0] == {"date": "2024-03-15 00:00:00", "total": "1.50", "peers": ["a", "b"]}
        assert lines[1]["peers"] == []

    @pytest.mark.asyncio
    async def test_injected_client(self):
        inner = RecordingClickHouseClient(responses=[[{"ok": 1}]])
        client = ClickHouseClient(url="http://clickhouse:8123", client=inner)

        await client.connect()
        assert await client.health_check() is True
        await client.insert("t", [{"a": 1}])
        await client.close()

        assert inner.calls[1] == ("INSERT INTO t FORMAT JSONEachRow", [{"a": 1}])
        assert inner.closed

    @pytest.mark.asyncio
    async def test_health_check_failure(self):
        inner = RecordingClickHouseClient()
        inner.error = ConnectionError("down")
        client = ClickHouseClient(url="http://clickhouse:8123", client=inner)

        assert await client.health_check() is False

    @pytest.mark.asyncio
    async def test_execute_parses_decimals_exactly(self):
        client = ClickHouseClient(url="http://clickhouse:8123")
        client._post = AsyncMock(return_value='{"data":[{"total_value":12345678901.123456789012}]}')

        rows = await client.execute("SELECT total_value FROM agg_account_payments")

        assert rows == [{"total_value": Decimal("12345678901.123456789012")}]
        assert client._post.await_args.args[0].endswith("FORMAT JSON")


class TestAccountPaymentsStore:
    """Test AccountPaymentsStore."""

    @pytest.mark.asyncio
    async def test_load_aggregate(self):
        inner = RecordingClickHouseClient(responses=[[{
            "payments_sent": "3",
            "payments_received": 0,
            "total_value_sent": "12.500000000000",
            "total_value_received": "0",
            "total_value": "12.5",
            "high_value_sent": "10",
            "high_value_received": "0",
            "sending_counterparties": [],
            "receiving_counterparties": ["rBob"],
        }]])
        store = make_store(inner)

        entry = await store.load_aggregate(DAY, "rAlice")

        query, params = inner.calls[0]
        assert "FROM agg_account_payments FINAL" in query
        assert params == {"row_key": "20240315000000|rAlice"}
        assert entry.payments_sent == 3
        assert entry.total_value_sent == Decimal("12.5")
        assert entry.receiving_counterparties == {"rBob"}

    @pytest.mark.asyncio
    async def test_load_aggregate_keeps_full_precision(self):
        client = ClickHouseClient(url="http://clickhouse:8123")
        client._post = AsyncMock(return_value=(
            '{"data":[{"payments_sent":1,'
            '"total_value":12345678901.123456789012,'
            '"total_value_sent":12345678901.123456789012}]}'
        ))
        store = AccountPaymentsStore(store_config(), client=client)

        entry = await store.load_aggregate(DAY, "rAlice")

        assert entry.total_value == Decimal("12345678901.123456789012")
        assert entry.total_value_sent == Decimal("12345678901.123456789012")

    @pytest.mark.asyncio
    async def test_load_aggregate_missing(self):
        store = make_store(RecordingClickHouseClient(responses=[[]]))

        assert await store.load_aggregate(DAY, "rAlice") is None

    @pytest.mark.asyncio
    async def test_load_aggregate_failure(self):
        inner = RecordingClickHouseClient()
        inner.error = ConnectionError("refused")
        store = make_store(inner)

        with pytest.raises(StoreReadError) as exc_info:
            await store.load_aggregate(DAY, "rAlice")

        assert exc_info.value.details["row_key"] == "20240315000000|rAlice"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_query_trade_history(self):
        inner = RecordingClickHouseClient(responses=[[
            {"base_amount": "100", "counter_amount": "50", "executed_time": "2024-03-15 09:00:00"},
            {"base_amount": "100", "counter_amount": "150", "executed_time": "2024-03-14 09:00:00"},
        ]])
        store = make_store(inner)
        end = datetime(2024, 3, 15, 10, tzinfo=timezone.utc)

        summary = await store.query_trade_history("XRP", "USD", "rGateway", end, limit=50)

        query, params = inner.calls[0]
        assert "FROM exchanges" in query
        assert "ORDER BY executed_time DESC" in query
        assert params["counter_issuer"] == "rGateway"
        assert "executed_time < {end:DateTime64(6, 'UTC')}" in query
        assert params["end"] == end
        assert params["start"] == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert params["limit"] == 50
        assert summary.count == 2
        assert summary.vwap == Decimal(1)

    @pytest.mark.asyncio
    async def test_query_trade_history_failure(self):
        inner = RecordingClickHouseClient()
        inner.error = TimeoutError("slow")
        store = make_store(inner)

        with pytest.raises(RateLookupError) as exc_info:
            await store.query_trade_history("XRP", "USD", "rGateway", DAY)

        assert exc_info.value.details["issuer"] == "rGateway"

    @pytest.mark.asyncio
    async def test_put_batch(self):
        inner = RecordingClickHouseClient()
        store = make_store(inner)
        entry = AggregateEntry()
        entry.record_sent(Decimal("0.1"), "rBob")

        written = await store.put_batch("agg_account_payments", {"20240315000000|rAlice": entry})

        assert written == 1
        query, records = inner.calls[0]
        assert query == "INSERT INTO agg_account_payments FORMAT JSONEachRow"
        record = records[0]
        assert record["row_key"] == "20240315000000|rAlice"
        assert record["account"] == "rAlice"
        assert record["date"] == DAY
        assert record["total_value_sent"] == "0.100000000000"
        assert record["receiving_counterparties"] == ["rBob"]
        assert "updated_at" in record

    @pytest.mark.asyncio
    async def test_put_batch_empty(self):
        inner = RecordingClickHouseClient()
        store = make_store(inner)

        assert await store.put_batch("agg_account_payments", {}) == 0
        assert inner.calls == []

    @pytest.mark.asyncio
    async def test_put_batch_failure(self):
        inner = RecordingClickHouseClient()
        inner.error = ConnectionError("reset")
        store = make_store(inner)

        with pytest.raises(StoreWriteError) as exc_info:
            await store.put_batch("agg_account_payments", {"20240315000000|rAlice": AggregateEntry()})

        assert exc_info.value.details["row_count"] == 1

    @pytest.mark.asyncio
    async def test_start_creates_schema(self):
        inner = RecordingClickHouseClient()
        store = make_store(inner, ensure_schema=True)

        await store.start()

        queries = [query for query, _ in inner.calls]
        assert queries[0].startswith("CREATE TABLE IF NOT EXISTS agg_account_payments")
        assert "ReplacingMergeTree(updated_at) ORDER BY row_key" in queries[0]
        assert queries[1].startswith("CREATE TABLE IF NOT EXISTS exchanges")
