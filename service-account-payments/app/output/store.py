"""ClickHouse-backed store for daily account aggregates and trade history."""

from datetime import datetime
from decimal import Context, Decimal
from typing import Dict, Optional

import structlog

from shared.schemas.models import AggregateEntry, TradeSummary
from shared.storage.clickhouse import ClickHouseClient
from shared.utils.errors import RateLookupError, StoreReadError, StoreWriteError
from shared.utils.timeutil import EPOCH, build_row_key, parse_row_key, now_utc


logger = structlog.get_logger(__name__)

STORE_SCALE = Decimal("1e-12")
STORE_CONTEXT = Context(prec=38)

AGGREGATE_COLUMNS = """
    row_key String,
    date DateTime('UTC'),
    account String,
    payments_sent UInt64,
    payments_received UInt64,
    total_value_sent Decimal(38, 12),
    total_value_received Decimal(38, 12),
    total_value Decimal(38, 12),
    high_value_sent Decimal(38, 12),
    high_value_received Decimal(38, 12),
    sending_counterparties Array(String),
    receiving_counterparties Array(String),
    updated_at DateTime64(3, 'UTC')
"""

EXCHANGE_COLUMNS = """
    executed_time DateTime('UTC'),
    base_currency String,
    base_issuer String,
    counter_currency String,
    counter_issuer String,
    base_amount Decimal(38, 12),
    counter_amount Decimal(38, 12),
    tx_hash String
"""

AGGREGATE_FIELDS = (
    "payments_sent",
    "payments_received",
    "total_value_sent",
    "total_value_received",
    "total_value",
    "high_value_sent",
    "high_value_received",
    "sending_counterparties",
    "receiving_counterparties",
)


def _store_decimal(value: Decimal) -> str:
    return str(value.quantize(STORE_SCALE, context=STORE_CONTEXT))


class AccountPaymentsStore:
    """
    Keyed access to persisted aggregates and historical trades.

    Aggregates live in a ReplacingMergeTree keyed by row key, so a
    re-written row supersedes the previous version and reads use FINAL.
    """

    def __init__(self, config, client: Optional[ClickHouseClient] = None):
        self.config = config
        self.aggregate_table = config.aggregate_table
        self.exchanges_table = config.exchanges_table
        self.client = client or ClickHouseClient(
            url=config.database.clickhouse_url,
            database=config.database.clickhouse_database,
            user=config.database.clickhouse_user,
            password=config.database.clickhouse_password,
            timeout=config.database.clickhouse_timeout,
            max_connections=config.database.clickhouse_max_connections,
        )

    async def start(self) -> None:
        await self.client.connect()
        if getattr(self.config, "ensure_schema", False):
            await self.ensure_schema()
        logger.info("Account payments store started", table=self.aggregate_table)

    async def stop(self) -> None:
        await self.client.close()
        logger.info("Account payments store stopped")

    async def ensure_schema(self) -> None:
        """Create the aggregate and exchange tables if missing."""
        await self.client.create_table(
            self.aggregate_table,
            AGGREGATE_COLUMNS,
            engine="ReplacingMergeTree(updated_at) ORDER BY row_key",
        )
        await self.client.create_table(
            self.exchanges_table,
            EXCHANGE_COLUMNS,
            engine=(
                "MergeTree() ORDER BY "
                "(base_currency, counter_currency, counter_issuer, executed_time)"
            ),
        )

    async def health_check(self) -> bool:
        return await self.client.health_check()

    async def load_aggregate(self, day: datetime, account: str) -> Optional[AggregateEntry]:
        """Load the stored bucket for (day, account); ``None`` when absent."""
        row_key = build_row_key(day, account)
        query = (
            f"SELECT {', '.join(AGGREGATE_FIELDS)} FROM {self.aggregate_table} FINAL "
            "WHERE row_key = {row_key:String} LIMIT 1"
        )
        try:
            rows = await self.client.query(query, {"row_key": row_key})
        except Exception as e:
            raise StoreReadError(
                f"Failed to load aggregate {row_key}: {e}",
                table=self.aggregate_table,
                details={"row_key": row_key},
            ) from e

        if not rows:
            return None
        return AggregateEntry.from_dict(rows[0])

    async def query_trade_history(
        self,
        base_currency: str,
        counter_currency: str,
        counter_issuer: str,
        end_time: datetime,
        limit: int = 50,
        descending: bool = True,
        start_time: datetime = EPOCH,
    ) -> TradeSummary:
        """
        Reduce the trades of a pair within [start_time, end_time).

        Only the ``limit`` trades closest to ``end_time`` (descending) or
        to ``start_time`` (ascending) take part in the reduction.
        """
        order = "DESC" if descending else "ASC"
        query = (
            f"SELECT base_amount, counter_amount, executed_time FROM {self.exchanges_table} "
            "WHERE base_currency = {base_currency:String} AND base_issuer = '' "
            "AND counter_currency = {counter_currency:String} "
            "AND counter_issuer = {counter_issuer:String} "
            "AND executed_time >= {start:DateTime64(6, 'UTC')} "
            "AND executed_time < {end:DateTime64(6, 'UTC')} "
            f"ORDER BY executed_time {order} "
            "LIMIT {limit:UInt32}"
        )
        params = {
            "base_currency": base_currency,
            "counter_currency": counter_currency,
            "counter_issuer": counter_issuer,
            "start": start_time,
            "end": end_time,
            "limit": limit,
        }
        try:
            rows = await self.client.query(query, params)
        except Exception as e:
            raise RateLookupError(
                f"Trade history lookup failed: {e}",
                currency=counter_currency,
                issuer=counter_issuer,
            ) from e

        return TradeSummary.reduce(rows)

    async def put_batch(self, table: str, rows: Dict[str, AggregateEntry]) -> int:
        """Write every row in one insert; returns the number of rows sent."""
        if not rows:
            return 0

        # DateTime64(3) version column; later writes of a row key win
        updated_at = now_utc().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        records = []
        for row_key, entry in rows.items():
            day, account = parse_row_key(row_key)
            record = entry.to_dict()
            for name in ("total_value_sent", "total_value_received", "total_value",
                         "high_value_sent", "high_value_received"):
                record[name] = _store_decimal(getattr(entry, name))
            record.update(row_key=row_key, date=day, account=account, updated_at=updated_at)
            records.append(record)

        try:
            await self.client.insert(table, records)
        except Exception as e:
            raise StoreWriteError(
                f"Failed to write {len(records)} rows to {table}: {e}",
                table=table,
                row_count=len(records),
            ) from e

        return len(records)
