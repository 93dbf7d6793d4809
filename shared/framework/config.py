"""
Configuration management for the aggregation services.

Provides typed configuration classes with environment variable
injection and validation.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Dict, Any


@dataclass
class KafkaConfig:
    """Kafka configuration."""
    bootstrap_servers: str = field(default_factory=lambda: os.getenv("DATA_PROC_KAFKA_BOOTSTRAP", "localhost:9092"))
    consumer_group: str = field(default_factory=lambda: os.getenv("DATA_PROC_CONSUMER_GROUP", "default-group"))
    auto_offset_reset: str = field(default_factory=lambda: os.getenv("DATA_PROC_KAFKA_AUTO_OFFSET_RESET", "latest"))
    enable_auto_commit: bool = field(default_factory=lambda: os.getenv("DATA_PROC_KAFKA_AUTO_COMMIT", "true").lower() == "true")
    max_poll_records: int = field(default_factory=lambda: int(os.getenv("DATA_PROC_KAFKA_MAX_POLL_RECORDS", "500")))
    session_timeout_ms: int = field(default_factory=lambda: int(os.getenv("DATA_PROC_KAFKA_SESSION_TIMEOUT_MS", "30000")))


@dataclass
class DatabaseConfig:
    """Store connection configuration."""
    clickhouse_url: str = field(default_factory=lambda: os.getenv("DATA_PROC_CLICKHOUSE_URL", "http://localhost:8123"))
    clickhouse_database: str = field(default_factory=lambda: os.getenv("DATA_PROC_CLICKHOUSE_DATABASE", "data_processing"))
    clickhouse_user: Optional[str] = field(default_factory=lambda: os.getenv("DATA_PROC_CLICKHOUSE_USER"))
    clickhouse_password: Optional[str] = field(default_factory=lambda: os.getenv("DATA_PROC_CLICKHOUSE_PASSWORD"))
    clickhouse_timeout: int = field(default_factory=lambda: int(os.getenv("DATA_PROC_CLICKHOUSE_TIMEOUT", "30")))
    clickhouse_max_connections: int = field(default_factory=lambda: int(os.getenv("DATA_PROC_CLICKHOUSE_MAX_CONN", "10")))


@dataclass
class ObservabilityConfig:
    """Observability configuration."""
    log_level: str = field(default_factory=lambda: os.getenv("DATA_PROC_LOG_LEVEL", "info"))
    log_format: str = field(default_factory=lambda: os.getenv("DATA_PROC_LOG_FORMAT", "json"))
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("DATA_PROC_LOG_FILE") or None)
    health_port: int = field(default_factory=lambda: int(os.getenv("DATA_PROC_HEALTH_PORT", "8080")))


@dataclass
class ServiceConfig:
    """Base service configuration."""
    service_name: str
    environment: str = field(default_factory=lambda: os.getenv("DATA_PROC_ENV", "local"))

    # Sub-configurations
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.service_name:
            raise ValueError("service_name is required")

        if self.environment not in ["local", "dev", "staging", "prod"]:
            raise ValueError(f"Invalid environment: {self.environment}")

        if self.observability.log_format not in ["json", "console"]:
            raise ValueError(f"Invalid log format: {self.observability.log_format}")

    @classmethod
    def from_env(cls, service_name: str) -> "ServiceConfig":
        """Create configuration from environment variables."""
        return cls(service_name=service_name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary (secrets omitted)."""
        return {
            "service_name": self.service_name,
            "environment": self.environment,
            "kafka": {
                "bootstrap_servers": self.kafka.bootstrap_servers,
                "consumer_group": self.kafka.consumer_group,
                "auto_offset_reset": self.kafka.auto_offset_reset,
                "enable_auto_commit": self.kafka.enable_auto_commit,
                "max_poll_records": self.kafka.max_poll_records,
                "session_timeout_ms": self.kafka.session_timeout_ms,
            },
            "database": {
                "clickhouse_url": self.database.clickhouse_url,
                "clickhouse_database": self.database.clickhouse_database,
                "clickhouse_user": self.database.clickhouse_user,
                "clickhouse_timeout": self.database.clickhouse_timeout,
            },
            "observability": {
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
                "log_file": self.observability.log_file,
                "health_port": self.observability.health_port,
            },
        }
