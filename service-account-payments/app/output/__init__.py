"""
Output for account payment aggregation.

Includes the ClickHouse store adapter and the batch writer for
touched daily buckets.
"""

from .store import AccountPaymentsStore
from .writer import AccountPaymentsWriter, WriteResult

__all__ = [
    "AccountPaymentsStore",
    "AccountPaymentsWriter",
    "WriteResult",
]
