"""
Account payments aggregation.

Wires the ingestion queue, bucket cache, rate normalizer, adjuster and
writer into the pipeline run by the cycle worker, with the reaper
keeping the cache bounded to recent days.
"""

from datetime import datetime
from typing import Callable, List, Optional, Sequence

import structlog

from shared.schemas.events import NormalizedPayment, PaymentEvent
from shared.schemas.models import BucketKey
from shared.utils.timeutil import now_utc

from .cache.buckets import BucketCache
from .calculators.adjuster import BucketAdjuster
from .calculators.rates import RateNormalizer
from .consumers.queue import PaymentQueue
from .output.writer import AccountPaymentsWriter, WriteResult
from .schedulers.cycle import CycleResult, CycleWorker
from .schedulers.reaper import CacheReaper


logger = structlog.get_logger(__name__)


class AccountPaymentsAggregation:
    """Daily per-account payment statistics, maintained incrementally."""

    def __init__(self, config, store, metrics=None, clock: Callable[[], datetime] = now_utc):
        self.config = config
        self.store = store
        self.metrics = metrics
        timeout = config.store_timeout_seconds

        self.queue = PaymentQueue()
        self.cache = BucketCache(store, timeout=timeout)
        self.normalizer = RateNormalizer(
            store,
            canonical_currency=config.canonical_currency,
            trade_history_limit=config.trade_history_limit,
            timeout=timeout,
        )
        self.adjuster = BucketAdjuster(self.cache)
        self.writer = AccountPaymentsWriter(store, table=config.aggregate_table, timeout=timeout)

        self.worker = CycleWorker(
            self.queue,
            self,
            poll_delay=config.poll_delay_seconds,
            metrics=metrics,
        )
        self.reaper = CacheReaper(
            self.worker,
            interval=config.reap_interval_seconds,
            retention_offset=config.retention_offset,
            clock=clock,
        )

    def enqueue(self, event: PaymentEvent) -> None:
        """Queue a payment for the next cycle. Never blocks."""
        self.queue.enqueue(event)
        if self.metrics:
            self.metrics.set_pending_events(len(self.queue))

    async def start(self) -> None:
        await self.worker.start()
        await self.reaper.start()

    async def stop(self) -> None:
        await self.reaper.stop()
        await self.worker.stop()

    async def run_cycle(self) -> Optional[CycleResult]:
        return await self.worker.run_cycle()

    def reap(self, now: Optional[datetime] = None) -> List[BucketKey]:
        """
        Request an eviction for ``now`` and apply it if no cycle is active.

        While a cycle is in flight the request stays queued for the worker.
        """
        self.reaper.request(now)
        return self.worker.apply_reap_requests()

    # Pipeline stages, called by the worker in order

    async def load_buckets(self, batch: Sequence[PaymentEvent]) -> List[BucketKey]:
        loaded = await self.cache.load(batch)
        if self.metrics:
            self.metrics.set_cache_size(len(self.cache))
        return loaded

    async def normalize(self, batch: Sequence[PaymentEvent]) -> List[NormalizedPayment]:
        payments = await self.normalizer.normalize_batch(batch)
        if self.metrics:
            for payment in payments:
                self.metrics.record_rate_status(payment.status.value)
        return payments

    def adjust(self, payments: Sequence[NormalizedPayment]) -> List[BucketKey]:
        return self.adjuster.adjust(payments)

    async def persist(self, touched: Sequence[BucketKey]) -> WriteResult:
        return await self.writer.persist(self.cache, touched)

    def evict_before(self, cutoff: datetime) -> List[BucketKey]:
        evicted = self.cache.evict_before(cutoff)
        logger.info(
            "Reaped account payment buckets",
            cutoff=cutoff.isoformat(),
            evicted=len(evicted),
            remaining_days=len(self.cache.days()),
        )
        if self.metrics:
            self.metrics.record_evictions(len(evicted))
            self.metrics.set_cache_size(len(self.cache))
        return evicted
