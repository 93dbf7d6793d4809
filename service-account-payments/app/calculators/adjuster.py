"""Accumulation of normalized payments onto daily buckets."""

from typing import Dict, Iterable, List

from shared.schemas.events import NormalizedPayment
from shared.schemas.models import BucketKey
from shared.utils.errors import ProcessingError, create_error_context

from ..cache.buckets import BucketCache


class BucketAdjuster:
    """Applies each payment to the bucket of its perspective account."""

    def __init__(self, cache: BucketCache):
        self.cache = cache

    def adjust(self, payments: Iterable[NormalizedPayment]) -> List[BucketKey]:
        """
        Apply payments in order and return the touched keys.

        Keys come back deduplicated, in the order they were first touched.
        Every referenced bucket must already be cached.
        """
        touched: Dict[BucketKey, None] = {}

        for payment in payments:
            event = payment.event
            key = BucketKey.for_event(event)
            bucket = self.cache.get(key)
            if bucket is None:
                raise ProcessingError(
                    f"Bucket {key.row_key} was not loaded before adjustment",
                    stage="adjust",
                    context=create_error_context("account-payments", "adjust", account=key.account),
                )

            if event.is_sender_view:
                bucket.record_sent(payment.normalized, event.destination)
            else:
                bucket.record_received(payment.normalized, event.source)

            touched.setdefault(key, None)

        return list(touched)
