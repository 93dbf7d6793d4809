"""
Core framework components for async services.

Provides base classes and abstractions for building
observable services with Kafka ingestion.
"""

from .service import AsyncService
from .consumer import KafkaConsumer, ConsumerConfig
from .config import ServiceConfig
from .health import HealthChecker, HealthCheck
from .metrics import MetricsCollector

__all__ = [
    "AsyncService",
    "KafkaConsumer",
    "ConsumerConfig",
    "ServiceConfig",
    "HealthChecker",
    "HealthCheck",
    "MetricsCollector",
]
