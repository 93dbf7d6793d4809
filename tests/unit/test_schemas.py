"""Unit tests for payment schemas and aggregate models."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from shared.schemas.events import NormalizedPayment, PaymentEvent, RateStatus
from shared.schemas.models import AggregateEntry, BucketKey, TradeSummary
from shared.utils.errors import ValidationError
from tests.fixtures.sample_events import ALICE, BOB, DAY, payment


class TestPaymentEvent:
    """Test PaymentEvent."""

    def test_coerces_amount_and_time(self):
        event = PaymentEvent(
            source=ALICE,
            destination=BOB,
            currency="XRP",
            delivered_amount="1.5",
            time="2024-03-15T23:59:59Z",
            account=ALICE,
        )

        assert event.delivered_amount == Decimal("1.5")
        assert event.time == datetime(2024, 3, 15, 23, 59, 59, tzinfo=timezone.utc)
        assert event.day == DAY

    def test_perspective(self):
        sender = payment(account=ALICE)
        receiver = payment(account=BOB)

        assert sender.is_sender_view
        assert sender.counterparty == BOB
        assert not receiver.is_sender_view
        assert receiver.counterparty == ALICE

    def test_from_dict(self):
        event = PaymentEvent.from_dict({
            "source": ALICE,
            "destination": BOB,
            "currency": "USD",
            "issuer": "rGateway",
            "delivered_amount": 7,
            "time": 1710496800,
            "account": BOB,
        })

        assert event.issuer == "rGateway"
        assert event.delivered_amount == Decimal(7)
        assert event.time == datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)

    def test_from_dict_empty_issuer_is_none(self):
        data = payment(currency="USD").to_dict()
        data["issuer"] = ""

        assert PaymentEvent.from_dict(data).issuer is None

    @pytest.mark.parametrize("field", ["source", "destination", "currency", "delivered_amount", "time", "account"])
    def test_from_dict_missing_field(self, field):
        data = payment().to_dict()
        del data[field]

        with pytest.raises(ValidationError) as exc_info:
            PaymentEvent.from_dict(data)
        assert exc_info.value.field == field

    @pytest.mark.parametrize("amount", ["abc", "NaN", True])
    def test_from_dict_bad_amount(self, amount):
        data = payment().to_dict()
        data["delivered_amount"] = amount

        with pytest.raises(ValidationError):
            PaymentEvent.from_dict(data)

    def test_from_dict_bad_time(self):
        data = payment().to_dict()
        data["time"] = "yesterday"

        with pytest.raises(ValidationError) as exc_info:
            PaymentEvent.from_dict(data)
        assert exc_info.value.error_code == "VALIDATION_ERROR"

    def test_from_dict_out_of_range_time(self):
        data = payment().to_dict()
        data["time"] = 1710500000000

        with pytest.raises(ValidationError) as exc_info:
            PaymentEvent.from_dict(data)
        assert exc_info.value.field == "time"

    def test_json_round_trip(self):
        event = payment(currency="USD", issuer="rGateway", tx_hash="H1")

        assert PaymentEvent.from_json(event.to_json()) == event


class TestBucketKey:
    """Test BucketKey."""

    def test_day_truncated_to_utc_midnight(self):
        key = BucketKey(datetime(2024, 3, 15, 17, 30, tzinfo=timezone.utc), ALICE)

        assert key.day == DAY
        assert key == BucketKey(DAY, ALICE)
        assert key.row_key == f"20240315000000|{ALICE}"

    def test_for_event_uses_perspective_account(self):
        event = payment(account=BOB)

        assert BucketKey.for_event(event) == BucketKey(DAY, BOB)


class TestAggregateEntry:
    """Test AggregateEntry."""

    def test_record_sent(self):
        entry = AggregateEntry()
        entry.record_sent(Decimal(100), BOB)

        assert entry.payments_sent == 1
        assert entry.total_value_sent == Decimal(100)
        assert entry.total_value == Decimal(100)
        assert entry.high_value_sent == Decimal(100)
        assert entry.receiving_counterparties == {BOB}
        assert entry.payments_received == 0

    def test_record_received(self):
        entry = AggregateEntry()
        entry.record_received(Decimal(40), ALICE)
        entry.record_received(Decimal(60), ALICE)

        assert entry.payments_received == 2
        assert entry.total_value_received == Decimal(100)
        assert entry.high_value_received == Decimal(60)
        assert entry.sending_counterparties == {ALICE}

    def test_high_value_is_running_maximum(self):
        entry = AggregateEntry()
        for value in (5, 9, 3):
            entry.record_sent(Decimal(value), BOB)

        assert entry.high_value_sent == Decimal(9)

    def test_dict_round_trip(self):
        entry = AggregateEntry()
        entry.record_sent(Decimal("1.25"), "rZed")
        entry.record_sent(Decimal("2"), BOB)

        data = entry.to_dict()

        assert data["receiving_counterparties"] == [BOB, "rZed"]
        assert data["total_value_sent"] == "3.25"
        assert AggregateEntry.from_dict(data) == entry

    def test_from_dict_defaults(self):
        entry = AggregateEntry.from_dict({"payments_sent": "2"})

        assert entry.payments_sent == 2
        assert entry.total_value == Decimal(0)
        assert entry.sending_counterparties == set()
        assert not entry.is_empty()
        assert AggregateEntry().is_empty()


class TestTradeSummary:
    """Test TradeSummary."""

    def test_vwap(self):
        summary = TradeSummary.reduce([
            {"base_amount": "10", "counter_amount": "20", "executed_time": "2024-03-14T00:00:00Z"},
            {"base_amount": 30, "counter_amount": 60, "executed_time": "2024-03-13T00:00:00Z"},
        ])

        assert summary.count == 2
        assert summary.vwap == Decimal(2)
        assert summary.last_trade_time == datetime(2024, 3, 14, tzinfo=timezone.utc)

    def test_vwap_without_trades(self):
        assert TradeSummary.reduce([]).vwap is None

    def test_vwap_with_zero_base_volume(self):
        summary = TradeSummary.reduce([{"base_amount": "0", "counter_amount": "5"}])

        assert summary.vwap == Decimal(0)


def test_normalized_payment_defaults():
    normalized = NormalizedPayment(payment(), Decimal(100), RateStatus.CANONICAL)

    assert normalized.vwap is None
    assert normalized.metadata == {}
