"""In-memory cache of daily account aggregates with lazy load-on-miss."""

import asyncio
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import structlog

from shared.schemas.events import PaymentEvent
from shared.schemas.models import AggregateEntry, BucketKey
from shared.utils.timeouts import call_with_timeout


logger = structlog.get_logger(__name__)


class BucketCache:
    """
    Mapping of (UTC day, account) to the running aggregate.

    A bucket enters the cache the first time a batch references it, either
    loaded verbatim from the store or zero-initialized when the store has no
    row. It stays until :meth:`evict_before` drops its day.
    """

    def __init__(self, store, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout
        self._buckets: Dict[BucketKey, AggregateEntry] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: BucketKey) -> bool:
        return key in self._buckets

    def __getitem__(self, key: BucketKey) -> AggregateEntry:
        return self._buckets[key]

    def get(self, key: BucketKey) -> Optional[AggregateEntry]:
        return self._buckets.get(key)

    def keys(self) -> List[BucketKey]:
        return list(self._buckets)

    def days(self) -> List[datetime]:
        return sorted({key.day for key in self._buckets})

    @staticmethod
    def referenced_keys(batch: Iterable[PaymentEvent]) -> List[BucketKey]:
        """Distinct keys a batch touches: both participants of every payment."""
        seen: Dict[BucketKey, None] = {}
        for event in batch:
            seen.setdefault(BucketKey(event.time, event.source), None)
            seen.setdefault(BucketKey(event.time, event.destination), None)
            seen.setdefault(BucketKey.for_event(event), None)
        return list(seen)

    async def load(self, batch: Iterable[PaymentEvent]) -> List[BucketKey]:
        """
        Ensure every bucket referenced by ``batch`` is cached.

        Missing keys are loaded concurrently. Nothing is installed unless
        every load succeeds; the first failure propagates.
        Returns the keys that were newly cached.
        """
        missing = [key for key in self.referenced_keys(batch) if key not in self._buckets]
        if not missing:
            return []

        entries = await asyncio.gather(*(self._load_one(key) for key in missing))

        for key, entry in zip(missing, entries):
            self._buckets[key] = entry

        logger.debug("Loaded buckets", count=len(missing))
        return missing

    async def _load_one(self, key: BucketKey) -> AggregateEntry:
        entry = await call_with_timeout(
            self.store.load_aggregate(key.day, key.account),
            self.timeout,
            "load_aggregate",
        )
        return entry if entry is not None else AggregateEntry()

    def evict_before(self, cutoff: datetime) -> List[BucketKey]:
        """Drop every bucket whose day is strictly older than ``cutoff``."""
        stale = [key for key in self._buckets if key.day < cutoff]
        for key in stale:
            del self._buckets[key]
        return stale
