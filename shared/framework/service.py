"""
Base AsyncService class for the aggregation services.

Provides lifecycle management, HTTP health/metrics endpoints
and graceful shutdown on SIGTERM/SIGINT.
"""

import asyncio
import signal
from abc import ABC, abstractmethod
from typing import Optional

from aiohttp import web
import structlog

from .config import ServiceConfig
from .health import HealthChecker
from .metrics import MetricsCollector


class AsyncService(ABC):
    """
    Base class for async services.

    Provides common functionality:
    - HTTP health and metrics endpoints
    - Health checks
    - Metrics collection
    - Graceful shutdown
    """

    def __init__(self, config: ServiceConfig):
        self.config = config
        self.logger = structlog.get_logger(self.config.service_name).bind(service=self.config.service_name)

        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

        self.health_checker = HealthChecker(self.config)
        self.metrics = MetricsCollector(self.config.service_name)

        self.shutdown_event = asyncio.Event()
        self._stopped = False

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(signum, self._on_signal, signum)
            except (NotImplementedError, RuntimeError):
                # Not supported outside the main thread or on some platforms
                self.logger.debug("Signal handler not installed", signal=signum)

    def _on_signal(self, signum: int) -> None:
        self.logger.info("Received shutdown signal", signal=signum)
        self.shutdown_event.set()

    async def startup(self) -> None:
        """Initialize service components."""
        self.logger.info("Starting service")

        self.app = web.Application()
        self._setup_routes()

        await self._startup_hook()

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(
            self.runner,
            host="0.0.0.0",
            port=self.config.observability.health_port
        )
        await self.site.start()

        self.logger.info("Service started", port=self.config.observability.health_port)

    async def shutdown(self) -> None:
        """Gracefully shutdown service."""
        if self._stopped:
            return
        self._stopped = True

        self.logger.info("Shutting down service")

        # Stop accepting new requests
        if self.site:
            await self.site.stop()

        await self._shutdown_hook()

        if self.runner:
            await self.runner.cleanup()

        self.shutdown_event.set()
        self.logger.info("Service shutdown complete")

    def _setup_routes(self) -> None:
        """Setup HTTP routes."""
        self.app.router.add_get("/health", self._health_handler)
        self.app.router.add_get("/health/ready", self._readiness_handler)
        self.app.router.add_get("/health/live", self._liveness_handler)
        self.app.router.add_get("/metrics", self._metrics_handler)

    async def _health_handler(self, request: web.Request) -> web.Response:
        health_status = await self.health_checker.check_health()
        self.metrics.set_health_status(health_status["healthy"])
        status_code = 200 if health_status["healthy"] else 503

        return web.json_response(health_status, status=status_code)

    async def _readiness_handler(self, request: web.Request) -> web.Response:
        ready_status = await self.health_checker.check_readiness()
        status_code = 200 if ready_status["ready"] else 503

        return web.json_response(ready_status, status=status_code)

    async def _liveness_handler(self, request: web.Request) -> web.Response:
        return web.json_response({"alive": True})

    async def _metrics_handler(self, request: web.Request) -> web.Response:
        return web.Response(
            body=self.metrics.get_metrics(),
            headers={"Content-Type": self.metrics.get_content_type()},
        )

    @abstractmethod
    async def _startup_hook(self) -> None:
        """Service-specific startup logic. Override in subclasses."""

    @abstractmethod
    async def _shutdown_hook(self) -> None:
        """Service-specific shutdown logic. Override in subclasses."""

    async def run(self) -> None:
        """Run the service until a shutdown signal arrives."""
        self._setup_signal_handlers()
        try:
            await self.startup()
            await self.shutdown_event.wait()
        except Exception as e:
            self.logger.error("Service error", error=str(e), exc_info=True)
            raise
        finally:
            await self.shutdown()
