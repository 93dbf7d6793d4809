"""
Consumers for the account payments service.

Contains the in-process ingestion queue and the Kafka consumer that
decodes ledger payment messages into it.
"""

from .queue import PaymentQueue
from .payments_consumer import PaymentEventConsumer

__all__ = [
    "PaymentQueue",
    "PaymentEventConsumer",
]
