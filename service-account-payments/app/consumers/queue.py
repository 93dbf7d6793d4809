"""Ingestion queue for payment events awaiting aggregation."""

from collections import deque
from typing import Deque, List

from shared.schemas.events import PaymentEvent


class PaymentQueue:
    """
    Unbounded, append-only buffer of payment events.

    ``enqueue`` never blocks and never rejects; a stalled pipeline lets the
    backlog grow without limit. ``drain`` hands the whole backlog to one
    cycle and leaves the queue empty for events that arrive meanwhile.
    """

    def __init__(self):
        self._pending: Deque[PaymentEvent] = deque()

    def enqueue(self, event: PaymentEvent) -> None:
        self._pending.append(event)

    def drain(self) -> List[PaymentEvent]:
        """Take every queued event, in insertion order."""
        # Appends racing with the drain stay queued for the next cycle
        return [self._pending.popleft() for _ in range(len(self._pending))]

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)
