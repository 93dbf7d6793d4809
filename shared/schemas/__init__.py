"""
Schema definitions for payment events and aggregate models.

Provides type-safe schemas for:
- Payment event contracts
- Daily account aggregates and their keys
- Reduced trade history
"""

from .events import PaymentEvent, NormalizedPayment, RateStatus
from .models import AggregateEntry, BucketKey, TradeSummary

__all__ = [
    "PaymentEvent",
    "NormalizedPayment",
    "RateStatus",
    "AggregateEntry",
    "BucketKey",
    "TradeSummary",
]
