"""
Event schema definitions for the payments aggregation pipeline.

Defines the payment events fed into the aggregator and the
normalized form they take once a canonical value is known.
"""

from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
import json

from shared.utils.errors import ValidationError
from shared.utils.timeutil import to_utc, start_of_day


class RateStatus(Enum):
    """How a payment's canonical value was obtained."""
    CANONICAL = "canonical"
    CONVERTED = "converted"
    MISSING_ISSUER = "missing_issuer"
    NO_HISTORY = "no_history"
    ZERO_RATE = "zero_rate"


REQUIRED_PAYMENT_FIELDS = ("source", "destination", "currency", "delivered_amount", "time", "account")


def _parse_amount(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError("Amount must be numeric", field="delivered_amount", value=value)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("Amount must be numeric", field="delivered_amount", value=value) from e
    if not amount.is_finite():
        raise ValidationError("Amount must be finite", field="delivered_amount", value=value)
    return amount


@dataclass
class PaymentEvent:
    """
    A ledger payment seen from one participant.

    The same payment is enqueued once per participant; ``account`` names
    the participant whose daily bucket this event updates.
    """
    source: str
    destination: str
    currency: str
    delivered_amount: Decimal
    time: datetime
    account: str
    issuer: Optional[str] = None
    tx_hash: Optional[str] = None

    def __post_init__(self):
        self.delivered_amount = _parse_amount(self.delivered_amount)
        self.time = to_utc(self.time)

    @property
    def day(self) -> datetime:
        """UTC calendar day of the payment."""
        return start_of_day(self.time)

    @property
    def is_sender_view(self) -> bool:
        return self.account == self.source

    @property
    def counterparty(self) -> str:
        """The other participant, from this event's perspective."""
        return self.destination if self.is_sender_view else self.source

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source": self.source,
            "destination": self.destination,
            "currency": self.currency,
            "issuer": self.issuer,
            "delivered_amount": str(self.delivered_amount),
            "time": self.time.isoformat(),
            "account": self.account,
            "tx_hash": self.tx_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentEvent":
        """Create from dictionary, validating required fields."""
        for name in REQUIRED_PAYMENT_FIELDS:
            if data.get(name) in (None, ""):
                raise ValidationError(f"Missing required field: {name}", field=name)

        try:
            time = to_utc(data["time"])
        except (TypeError, ValueError, OverflowError) as e:
            raise ValidationError("Invalid payment time", field="time", value=data["time"]) from e

        return cls(
            source=data["source"],
            destination=data["destination"],
            currency=data["currency"],
            issuer=data.get("issuer") or None,
            delivered_amount=_parse_amount(data["delivered_amount"]),
            time=time,
            account=data["account"],
            tx_hash=data.get("tx_hash"),
        )

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> "PaymentEvent":
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))


@dataclass
class NormalizedPayment:
    """A payment event annotated with its value in canonical units."""
    event: PaymentEvent
    normalized: Decimal
    status: RateStatus
    vwap: Optional[Decimal] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
