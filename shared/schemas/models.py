"""
Data models for the payments aggregation pipeline.

Defines the per-day, per-account aggregate bucket, its typed cache key
and the reduced trade history used for rate normalization.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Set
from datetime import datetime
from decimal import Decimal

from shared.utils.timeutil import start_of_day, build_row_key, to_utc


ZERO = Decimal(0)


@dataclass(frozen=True, order=True)
class BucketKey:
    """Identity of an aggregate bucket: UTC day and account."""
    day: datetime
    account: str

    def __post_init__(self):
        object.__setattr__(self, "day", start_of_day(self.day))

    @classmethod
    def for_event(cls, event) -> "BucketKey":
        """Bucket updated by a payment event (its perspective account)."""
        return cls(day=event.time, account=event.account)

    @property
    def row_key(self) -> str:
        return build_row_key(self.day, self.account)


def _decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class AggregateEntry:
    """Running daily statistics of one account."""
    payments_sent: int = 0
    payments_received: int = 0
    total_value_sent: Decimal = ZERO
    total_value_received: Decimal = ZERO
    total_value: Decimal = ZERO
    high_value_sent: Decimal = ZERO
    high_value_received: Decimal = ZERO
    sending_counterparties: Set[str] = field(default_factory=set)
    receiving_counterparties: Set[str] = field(default_factory=set)

    def record_sent(self, value: Decimal, counterparty: str) -> None:
        """Apply an outgoing payment."""
        self.payments_sent += 1
        self.total_value_sent += value
        self.total_value += value
        self.receiving_counterparties.add(counterparty)
        if value > self.high_value_sent:
            self.high_value_sent = value

    def record_received(self, value: Decimal, counterparty: str) -> None:
        """Apply an incoming payment."""
        self.payments_received += 1
        self.total_value_received += value
        self.total_value += value
        self.sending_counterparties.add(counterparty)
        if value > self.high_value_received:
            self.high_value_received = value

    def is_empty(self) -> bool:
        return self.payments_sent == 0 and self.payments_received == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "payments_sent": self.payments_sent,
            "payments_received": self.payments_received,
            "total_value_sent": str(self.total_value_sent),
            "total_value_received": str(self.total_value_received),
            "total_value": str(self.total_value),
            "high_value_sent": str(self.high_value_sent),
            "high_value_received": str(self.high_value_received),
            "sending_counterparties": sorted(self.sending_counterparties),
            "receiving_counterparties": sorted(self.receiving_counterparties),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AggregateEntry":
        """Create from dictionary; absent fields default to zero."""
        return cls(
            payments_sent=int(data.get("payments_sent") or 0),
            payments_received=int(data.get("payments_received") or 0),
            total_value_sent=_decimal(data.get("total_value_sent")),
            total_value_received=_decimal(data.get("total_value_received")),
            total_value=_decimal(data.get("total_value")),
            high_value_sent=_decimal(data.get("high_value_sent")),
            high_value_received=_decimal(data.get("high_value_received")),
            sending_counterparties=set(data.get("sending_counterparties") or ()),
            receiving_counterparties=set(data.get("receiving_counterparties") or ()),
        )


@dataclass
class TradeSummary:
    """Trade history reduced to volumes and a volume-weighted price."""
    base_volume: Decimal = ZERO
    counter_volume: Decimal = ZERO
    count: int = 0
    last_trade_time: Optional[datetime] = None

    @property
    def vwap(self) -> Optional[Decimal]:
        """Counter units per base unit; ``None`` without trades."""
        if self.count == 0:
            return None
        if self.base_volume == ZERO:
            return ZERO
        return self.counter_volume / self.base_volume

    @classmethod
    def reduce(cls, trades) -> "TradeSummary":
        """Reduce trade rows (``base_amount``, ``counter_amount``, ``executed_time``)."""
        summary = cls()
        for trade in trades:
            summary.base_volume += _decimal(trade.get("base_amount"))
            summary.counter_volume += _decimal(trade.get("counter_amount"))
            summary.count += 1
            executed = trade.get("executed_time")
            if executed is not None:
                executed = to_utc(executed)
                if summary.last_trade_time is None or executed > summary.last_trade_time:
                    summary.last_trade_time = executed
        return summary
