"""Normalization of delivered amounts into the canonical currency."""

import asyncio
from decimal import Decimal
from typing import List, Optional, Sequence

import structlog

from shared.schemas.events import NormalizedPayment, PaymentEvent, RateStatus
from shared.utils.logging import add_account
from shared.utils.timeouts import call_with_timeout


logger = structlog.get_logger(__name__)

ZERO = Decimal(0)


class RateNormalizer:
    """
    Values each payment in canonical units.

    Non-canonical amounts are divided by the VWAP of the most recent trades
    of the (canonical, currency+issuer) pair that executed before the
    payment. Data anomalies value the payment at zero rather than failing
    it; a failing lookup propagates.
    """

    def __init__(
        self,
        store,
        canonical_currency: str = "XRP",
        trade_history_limit: int = 50,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.canonical_currency = canonical_currency
        self.trade_history_limit = trade_history_limit
        self.timeout = timeout

    async def normalize_batch(self, batch: Sequence[PaymentEvent]) -> List[NormalizedPayment]:
        """Normalize every event concurrently; results keep batch order."""
        return list(await asyncio.gather(*(self.normalize(event) for event in batch)))

    async def normalize(self, event: PaymentEvent) -> NormalizedPayment:
        if event.currency == self.canonical_currency:
            return NormalizedPayment(event, event.delivered_amount, RateStatus.CANONICAL)

        log = add_account(logger, event.account)

        if not event.issuer:
            log.warning(
                "Payment currency has no issuer",
                currency=event.currency,
                tx_hash=event.tx_hash,
            )
            return NormalizedPayment(event, ZERO, RateStatus.MISSING_ISSUER)

        summary = await call_with_timeout(
            self.store.query_trade_history(
                base_currency=self.canonical_currency,
                counter_currency=event.currency,
                counter_issuer=event.issuer,
                end_time=event.time,
                limit=self.trade_history_limit,
                descending=True,
            ),
            self.timeout,
            "query_trade_history",
        )

        vwap = summary.vwap
        if vwap is None:
            log.debug("No trade history", currency=event.currency, issuer=event.issuer)
            return NormalizedPayment(event, ZERO, RateStatus.NO_HISTORY)

        if vwap <= ZERO:
            log.warning(
                "Non-positive VWAP, valuing payment at zero",
                currency=event.currency,
                issuer=event.issuer,
                vwap=str(vwap),
                trades=summary.count,
            )
            return NormalizedPayment(event, ZERO, RateStatus.ZERO_RATE, vwap=vwap)

        return NormalizedPayment(
            event,
            event.delivered_amount / vwap,
            RateStatus.CONVERTED,
            vwap=vwap,
            metadata={"trades": summary.count},
        )
