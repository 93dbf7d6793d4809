"""
Account Payments Service package.

Maintains, per UTC day and per account, running payment statistics
(counts, canonical-currency totals, high-value marks and counterparty
sets) from a stream of ledger payment events.

Subpackages:
- consumers: Ingestion queue and Kafka payment consumer
- cache: In-memory daily bucket cache
- calculators: Rate normalization and bucket adjustment
- output: ClickHouse store adapter and batch writer
- schedulers: Single-flight cycle worker and cache reaper

The main service entrypoint is `app.main.AccountPaymentsService`.
"""

__version__ = "1.0.0"

__all__ = [
    "__doc__",
    "__version__",
]
