"""Main entry point for the account payments service."""

import asyncio
import logging
from typing import Optional

from shared.framework.health import HealthCheck
from shared.framework.service import AsyncService
from shared.utils.logging import setup_logging

from . import __version__
from .aggregation import AccountPaymentsAggregation
from .config import AccountPaymentsConfig
from .consumers.payments_consumer import PaymentEventConsumer
from .output.store import AccountPaymentsStore


logger = logging.getLogger(__name__)


class AccountPaymentsService(AsyncService):
    """Aggregates ledger payments into daily per-account statistics."""

    def __init__(self, config: Optional[AccountPaymentsConfig] = None, store: Optional[AccountPaymentsStore] = None):
        config = config or AccountPaymentsConfig()
        super().__init__(config)
        self.config = config
        self.store = store or AccountPaymentsStore(config)
        self.aggregation = AccountPaymentsAggregation(config, self.store, metrics=self.metrics)
        self.consumer: Optional[PaymentEventConsumer] = None

        self.health_checker.add_check(
            HealthCheck(
                name="clickhouse",
                check_func=self.store.health_check,
                timeout=config.store_timeout_seconds,
                description="Aggregate store connectivity",
            )
        )
        self.health_checker.add_check(
            HealthCheck(
                name="cycle_worker",
                check_func=lambda: self.aggregation.worker.alive,
                description="Aggregation worker task is running",
            )
        )

    async def _startup_hook(self) -> None:
        """Start the account payments service."""
        observability = self.config.observability
        setup_logging(
            self.config.service_name,
            log_level=observability.log_level,
            format_type=observability.log_format,
            log_file=observability.log_file,
        )
        logger.info("Starting account payments service")

        self.metrics.update_service_info(
            version=__version__,
            environment=self.config.environment,
            canonical_currency=self.config.canonical_currency,
        )

        await self.store.start()
        await self.aggregation.start()

        if self.config.kafka_enabled:
            self.consumer = PaymentEventConsumer(self.config, self.aggregation)
            await self.consumer.start()

        logger.info(f"Account payments service started on port {observability.health_port}")

    async def _shutdown_hook(self) -> None:
        """Stop the account payments service."""
        logger.info("Stopping account payments service")

        if self.consumer:
            await self.consumer.stop()
        await self.aggregation.stop()
        await self.store.stop()

        logger.info("Account payments service stopped")


async def main():
    """Main entry point."""
    service = AccountPaymentsService()
    await service.run()


if __name__ == "__main__":
    asyncio.run(main())
