"""Writer for daily account aggregates."""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import structlog

from shared.schemas.models import BucketKey
from shared.utils.timeouts import call_with_timeout

from ..cache.buckets import BucketCache


logger = structlog.get_logger(__name__)


@dataclass
class WriteResult:
    """Outcome of one persist call."""
    rows_written: int = 0
    row_keys: List[str] = field(default_factory=list)


class AccountPaymentsWriter:
    """Flushes touched buckets to the aggregate table in one batch."""

    def __init__(self, store, table: str = "agg_account_payments", timeout: Optional[float] = None):
        self.store = store
        self.table = table
        self.timeout = timeout

    async def persist(self, cache: BucketCache, touched: Iterable[BucketKey]) -> WriteResult:
        """
        Write the current value of every touched bucket.

        One row per distinct key; the whole set goes out as a single
        ``put_batch`` call. Store failures propagate as ``StoreWriteError``.
        """
        rows = {}
        for key in touched:
            rows[key.row_key] = cache[key]

        if not rows:
            return WriteResult()

        written = await call_with_timeout(
            self.store.put_batch(self.table, rows),
            self.timeout,
            "put_batch",
        )

        logger.debug("Wrote account payment rows", table=self.table, rows=written)
        return WriteResult(rows_written=written, row_keys=list(rows))
