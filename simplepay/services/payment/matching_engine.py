"""
Payment matching engine.

Decides whether a payment request has been paid by looking at the
wallet's incoming transfers for the request's payment id. The node is the
source of truth: nothing is cached between evaluations.

This module handles:
- Transfer lookup by payment id
- Exact amount matching in atomic units
- Confirmation counting against the requested threshold
- Polling until a request is paid
"""

import asyncio
from collections.abc import Iterable, Sequence

from loguru import logger

from simplepay.config.constants import PAYMENT_POLL_INTERVAL
from simplepay.models.payment import (
    AmountMismatch,
    IncomingTransferRecord,
    MatchedConfirmed,
    MatchedUnconfirmed,
    NoMatch,
    PaymentRequest,
    PaymentResponse,
    PaymentVerdict,
)
from simplepay.services.wallet.readiness import ReadinessState
from simplepay.services.wallet.wallet_handle import TransferQuery, WalletHandle
from simplepay.utils.exceptions import NotReadyError, must_log
from simplepay.utils.security import mask_payment_id, mask_tx_hash
from simplepay.utils.units import atomic_units_to_xmr, format_xmr


def classify_transfers(
    request: PaymentRequest,
    transfers: Iterable[IncomingTransferRecord],
) -> PaymentVerdict:
    """
    Classify the transfers seen for a request.

    Transfers flagged double-spend-seen or failed are ignored. Of the
    rest, the most recently observed one (the last) decides the verdict.

    Args:
        request: Payment request being evaluated
        transfers: Incoming transfers carrying the request's payment id,
            oldest first

    Returns:
        Verdict for the request
    """
    usable = [t for t in transfers if t.is_usable]
    if not usable:
        return NoMatch()

    latest = usable[-1]
    if latest.amount_atomic != request.amount_atomic:
        return AmountMismatch(received_atomic=latest.amount_atomic)

    confirmations = latest.tx.confirmations
    if confirmations >= request.requested_confirmations:
        return MatchedConfirmed(tx=latest.tx, confirmations=confirmations)
    return MatchedUnconfirmed(tx=latest.tx, confirmations=confirmations)


class PaymentMatchingEngine:
    """Evaluates payment requests against the wallet's incoming transfers."""

    def __init__(self, wallet: WalletHandle, readiness: ReadinessState) -> None:
        self.wallet = wallet
        self.readiness = readiness

    async def evaluate(self, request: PaymentRequest) -> PaymentResponse:
        """
        Evaluate one payment request.

        Transient wallet or node failures are logged and reported as
        "not detected" so callers simply poll again.

        Args:
            request: Payment request to check

        Returns:
            PaymentResponse for the current chain view

        Raises:
            NotReadyError: If the wallet has never completed a sync
        """
        if not self.readiness.ever_ready:
            raise NotReadyError("Wallet has never been synchronized; cannot check payments")

        pid = mask_payment_id(request.payment_id)
        try:
            transfers = await self.wallet.get_incoming_transfers(
                TransferQuery(payment_id=request.payment_id)
            )
        except Exception as e:
            if not must_log(e):
                raise
            logger.warning(f"[Payment] Transfer lookup failed for {pid}: {e}")
            return PaymentResponse(requested_payment=request, verdict=NoMatch())

        verdict = classify_transfers(request, transfers)

        if isinstance(verdict, MatchedConfirmed):
            logger.success(
                f"[Payment] {pid} paid: {format_xmr(request.request_amount)} XMR, "
                f"tx {mask_tx_hash(verdict.tx.tx_hash)}, {verdict.confirmations} confirmations"
            )
        elif isinstance(verdict, MatchedUnconfirmed):
            logger.info(
                f"[Payment] {pid} confirming: "
                f"{verdict.confirmations}/{request.requested_confirmations}"
            )
        elif isinstance(verdict, AmountMismatch):
            logger.warning(
                f"[Payment] {pid} amount mismatch: "
                f"{format_xmr(atomic_units_to_xmr(verdict.received_atomic))} != "
                f"{format_xmr(request.request_amount)}"
            )
        else:
            logger.debug(f"[Payment] {pid} not detected")

        return PaymentResponse(requested_payment=request, verdict=verdict)

    async def evaluate_many(self, requests: Sequence[PaymentRequest]) -> list[PaymentResponse]:
        """Evaluate several requests concurrently, results in input order."""
        return list(await asyncio.gather(*(self.evaluate(r) for r in requests)))

    async def wait_for_payment(
        self,
        request: PaymentRequest,
        poll_interval: float = PAYMENT_POLL_INTERVAL,
        timeout: float | None = None,
    ) -> PaymentResponse:
        """
        Poll until the request is complete or timeout expires.

        Returns:
            Last PaymentResponse; payment_complete is False on timeout
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        while True:
            response = await self.evaluate(request)
            if response.payment_complete:
                return response
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.info(
                        f"[Payment] Gave up waiting for {mask_payment_id(request.payment_id)}"
                    )
                    return response
                await asyncio.sleep(min(poll_interval, remaining))
            else:
                await asyncio.sleep(poll_interval)
