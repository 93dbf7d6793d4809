"""Periodic eviction of stale days from the bucket cache."""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from shared.utils.timeutil import now_utc, retention_cutoff

from .cycle import CycleWorker


logger = structlog.get_logger(__name__)


class CacheReaper:
    """
    Timer that asks the cycle worker to drop buckets outside retention.

    Every ``interval`` seconds it computes the cutoff (start of the current
    UTC day minus ``retention_offset``) and posts it to the worker. The
    store is never touched.
    """

    def __init__(
        self,
        worker: CycleWorker,
        interval: float = 3600,
        retention_offset: timedelta = timedelta(hours=12),
        clock: Callable[[], datetime] = now_utc,
    ):
        self.worker = worker
        self.interval = interval
        self.retention_offset = retention_offset
        self.clock = clock
        self.task: Optional[asyncio.Task] = None
        self.is_running = False

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        return retention_cutoff(now or self.clock(), self.retention_offset)

    def request(self, now: Optional[datetime] = None) -> datetime:
        """Post one eviction request and return its cutoff."""
        cutoff = self.cutoff(now)
        self.worker.request_reap(cutoff)
        logger.debug("Requested cache reap", cutoff=cutoff.isoformat())
        return cutoff

    async def start(self) -> None:
        if self.is_running:
            return
        self.is_running = True
        self.task = asyncio.create_task(self._run_loop())
        logger.info("Cache reaper started", interval=self.interval)

    async def stop(self) -> None:
        self.is_running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("Cache reaper stopped")

    async def _run_loop(self) -> None:
        while self.is_running:
            await asyncio.sleep(self.interval)
            self.request()
