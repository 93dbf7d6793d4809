"""Single-flight worker driving the aggregation cycle."""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import structlog

from shared.schemas.models import BucketKey
from shared.utils.errors import DataProcessingError

from ..consumers.queue import PaymentQueue


logger = structlog.get_logger(__name__)


CYCLE_SUCCEEDED = "success"
CYCLE_FAILED = "failed"


@dataclass
class CycleResult:
    """Outcome of one load/normalize/adjust/persist cycle."""
    batch_size: int
    touched: List[BucketKey] = field(default_factory=list)
    status: str = CYCLE_SUCCEEDED
    error: Optional[Exception] = None
    rows_written: int = 0
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == CYCLE_SUCCEEDED


class CycleWorker:
    """
    Owns the bucket cache and runs at most one cycle at a time.

    Each cycle drains the whole queue into a private batch and pushes it
    through ``pipeline.load_buckets``, ``normalize``, ``adjust`` and
    ``persist``. A failing stage ends the cycle: the error is logged once,
    the batch is dropped and whatever the cache already absorbed stays.

    Eviction requests arrive on an ``asyncio.Queue`` and are applied only
    between cycles, so a reap never interleaves with a batch in flight.
    """

    def __init__(self, queue: PaymentQueue, pipeline, poll_delay: float = 0.2, metrics=None):
        self.queue = queue
        self.pipeline = pipeline
        self.poll_delay = poll_delay
        self.metrics = metrics

        self.reap_requests: "asyncio.Queue[datetime]" = asyncio.Queue()
        self.task: Optional[asyncio.Task] = None
        self.is_running = False
        self.last_result: Optional[CycleResult] = None
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def alive(self) -> bool:
        return self.task is not None and not self.task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self.is_running = True
        self.task = asyncio.create_task(self._run_loop())
        logger.info("Cycle worker started", poll_delay=self.poll_delay)

    async def stop(self) -> None:
        self.is_running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("Cycle worker stopped", pending=len(self.queue))

    def request_reap(self, cutoff: datetime) -> None:
        """Ask the worker to evict buckets older than ``cutoff``."""
        self.reap_requests.put_nowait(cutoff)

    def apply_reap_requests(self) -> List[BucketKey]:
        """Apply queued evictions; a no-op while a cycle is active."""
        if self._busy:
            return []

        evicted: List[BucketKey] = []
        while not self.reap_requests.empty():
            cutoff = self.reap_requests.get_nowait()
            evicted.extend(self.pipeline.evict_before(cutoff))
        return evicted

    async def _run_loop(self) -> None:
        while self.is_running:
            try:
                self.apply_reap_requests()
                if self.queue:
                    await self.run_cycle()
                    continue
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Cycle worker error", error=str(e), exc_info=True)

            await asyncio.sleep(self.poll_delay)

    async def run_cycle(self) -> Optional[CycleResult]:
        """
        Run one cycle over the current queue snapshot.

        Returns ``None`` when the queue is empty or a cycle is already
        in flight.
        """
        if self._busy or not self.queue:
            return None

        self._busy = True
        batch = self.queue.drain()
        result = CycleResult(batch_size=len(batch))
        started = time.perf_counter()
        stage = "load"

        try:
            await self.pipeline.load_buckets(batch)
            stage = "normalize"
            payments = await self.pipeline.normalize(batch)
            stage = "adjust"
            result.touched = self.pipeline.adjust(payments)
            stage = "persist"
            written = await self.pipeline.persist(result.touched)
            result.rows_written = written.rows_written
        except Exception as e:
            self._fail(result, e, stage)
        else:
            logger.debug(
                "Updated account payments",
                events=result.batch_size,
                buckets=len(result.touched),
                rows=result.rows_written,
            )
        finally:
            result.duration = time.perf_counter() - started
            self._busy = False

        self._record(result)
        self.last_result = result
        return result

    def _fail(self, result: CycleResult, error: Exception, stage: str) -> None:
        result.status = CYCLE_FAILED
        result.error = error
        error_code = getattr(error, "error_code", type(error).__name__)
        logger.error(
            "Account payments cycle failed",
            stage=stage,
            error=str(error),
            error_code=error_code,
            events=result.batch_size,
            exc_info=not isinstance(error, DataProcessingError),
        )
        if self.metrics:
            self.metrics.record_error(error_code, stage)

    def _record(self, result: CycleResult) -> None:
        if not self.metrics:
            return
        self.metrics.record_cycle(result.status, result.duration, result.batch_size)
        self.metrics.set_pending_events(len(self.queue))
