"""
Health check system for the aggregation services.

Provides service health status, readiness and per-dependency checks.
"""

import asyncio
import inspect
from typing import Dict, Any, List, Optional, Callable
from dataclasses import dataclass
from enum import Enum
import time

import structlog


class HealthStatus(Enum):
    """Health status enumeration."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class HealthCheck:
    """Individual health check definition."""
    name: str
    check_func: Callable[[], Any]
    timeout: float = 5.0
    critical: bool = True
    description: Optional[str] = None


class HealthChecker:
    """
    Health checker for the aggregation services.

    Manages multiple health checks and provides
    aggregated health status.
    """

    def __init__(self, config):
        self.config = config
        self.logger = structlog.get_logger("health-checker")
        self.checks: List[HealthCheck] = []
        self.last_check_time: Optional[float] = None
        self.last_status: Optional[HealthStatus] = None

        self.add_check(
            HealthCheck(
                name="config",
                check_func=self._check_config,
                description="Service configuration validation"
            )
        )

    def add_check(self, check: HealthCheck) -> None:
        """Add a health check."""
        self.checks.append(check)
        self.logger.debug("Added health check", name=check.name)

    def remove_check(self, name: str) -> None:
        """Remove a health check by name."""
        self.checks = [check for check in self.checks if check.name != name]
        self.logger.debug("Removed health check", name=name)

    async def check_health(self) -> Dict[str, Any]:
        """Perform all health checks and return aggregated status."""
        results = {}
        overall_status = HealthStatus.HEALTHY
        critical_failures = 0

        for check in self.checks:
            started = time.monotonic()
            error: Optional[str] = None
            try:
                healthy = bool(await asyncio.wait_for(self._run_check(check), timeout=check.timeout))
            except asyncio.TimeoutError:
                self.logger.warning("Health check timeout", name=check.name, timeout=check.timeout)
                healthy, error = False, "timeout"
            except Exception as e:
                self.logger.error("Health check error", name=check.name, error=str(e), exc_info=True)
                healthy, error = False, str(e)

            results[check.name] = {
                "status": "healthy" if healthy else "unhealthy",
                "description": check.description,
                "critical": check.critical,
                "duration_ms": (time.monotonic() - started) * 1000,
            }
            if error:
                results[check.name]["error"] = error

            if not healthy and check.critical:
                critical_failures += 1
                overall_status = HealthStatus.UNHEALTHY
            elif not healthy and overall_status == HealthStatus.HEALTHY:
                overall_status = HealthStatus.DEGRADED

        self.last_check_time = time.time()
        self.last_status = overall_status

        return {
            "healthy": overall_status == HealthStatus.HEALTHY,
            "status": overall_status.value,
            "checks": results,
            "critical_failures": critical_failures,
            "total_checks": len(self.checks),
            "timestamp": self.last_check_time,
        }

    async def check_readiness(self) -> Dict[str, Any]:
        """Check if service is ready to accept traffic."""
        health_result = await self.check_health()

        # Service is ready if no critical failures
        ready = health_result["critical_failures"] == 0

        return {
            "ready": ready,
            "status": "ready" if ready else "not_ready",
            "health": health_result,
            "timestamp": time.time(),
        }

    async def _run_check(self, check: HealthCheck) -> Any:
        result = check.check_func()
        if inspect.isawaitable(result):
            result = await result
        return result

    def _check_config(self) -> bool:
        return bool(self.config.service_name) and self.config.environment in ["local", "dev", "staging", "prod"]
