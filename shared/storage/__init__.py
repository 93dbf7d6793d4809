"""
Storage abstractions for the aggregation services.

Provides an async client for ClickHouse, which holds both the
trade history used for rate lookups and the persisted daily aggregates.
"""

from .clickhouse import ClickHouseClient, ClickHouseConfig

__all__ = [
    "ClickHouseClient",
    "ClickHouseConfig",
]
