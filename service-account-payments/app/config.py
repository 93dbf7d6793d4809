"""Configuration for the account payments aggregation service."""

import os
from datetime import timedelta
from shared.framework.config import ServiceConfig
from shared.utils.errors import ConfigurationError


class AccountPaymentsConfig(ServiceConfig):
    """Configuration for the account payments aggregation service."""

    def __init__(self) -> None:
        super().__init__(service_name="account-payments")

        self.kafka_group_id = os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_GROUP_ID", f"account-payments-{self.environment}")
        self.payments_topic = os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_TOPIC", "ledger.payments.v1")
        self.kafka_enabled = os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_KAFKA_ENABLED", "false").lower() == "true"

        self.canonical_currency = os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_CANONICAL_CURRENCY", "XRP")
        self.aggregate_table = os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_TABLE", "agg_account_payments")
        self.exchanges_table = os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_EXCHANGES_TABLE", "exchanges")
        self.ensure_schema = os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_ENSURE_SCHEMA", "false").lower() == "true"

        # Cadence and retention
        self.poll_delay_seconds = float(os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_POLL_DELAY", "0.2"))
        self.reap_interval_seconds = float(os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_REAP_INTERVAL", "3600"))
        self.retention_offset_seconds = float(os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_RETENTION_OFFSET", str(12 * 3600)))

        self.trade_history_limit = int(os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_TRADE_LIMIT", "50"))
        self.store_timeout_seconds = float(os.getenv("DATA_PROC_ACCOUNT_PAYMENTS_STORE_TIMEOUT", "30"))

        self.validate()

    @property
    def retention_offset(self) -> timedelta:
        return timedelta(seconds=self.retention_offset_seconds)

    def validate(self) -> None:
        """Reject non-positive cadence and limit values."""
        for key in (
            "poll_delay_seconds",
            "reap_interval_seconds",
            "store_timeout_seconds",
            "trade_history_limit",
        ):
            value = getattr(self, key)
            if value <= 0:
                raise ConfigurationError(f"{key} must be positive", config_key=key, config_value=value)

        if self.retention_offset_seconds < 0:
            raise ConfigurationError(
                "retention_offset_seconds must not be negative",
                config_key="retention_offset_seconds",
                config_value=self.retention_offset_seconds,
            )

        if not self.canonical_currency:
            raise ConfigurationError("canonical_currency is required", config_key="canonical_currency")
