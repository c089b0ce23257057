"""
Payment models.

Payment requests, the node's incoming transfer records, and the verdict
returned for each evaluation. All models are immutable snapshots.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any, TypeAlias

from simplepay.utils.units import atomic_units_to_xmr, format_xmr


class PaymentStatus(StrEnum):
    """Payment status values reported to callers."""

    UNKNOWN = "not detected"
    CONFIRMING = "confirming"
    SUCCESSFUL = "successful"
    FAILED = "failed"


@dataclass(frozen=True)
class TransactionRecord:
    """
    Snapshot of the transaction carrying an incoming transfer.

    Confirmations grow monotonically until finality; block_height is None
    while the transaction sits in the pool.
    """

    tx_hash: str
    confirmations: int
    block_height: int | None = None
    timestamp: int | None = None
    fee_atomic: int = 0
    size: int | None = None
    version: int | None = None
    in_pool: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "confirmations": self.confirmations,
            "block_height": self.block_height,
            "timestamp": self.timestamp,
            "fee": format_xmr(atomic_units_to_xmr(self.fee_atomic)),
            "size": self.size,
            "version": self.version,
            "in_pool": self.in_pool,
        }


@dataclass(frozen=True)
class IncomingTransferRecord:
    """Incoming transfer as reported by the wallet. Read only."""

    amount_atomic: int
    tx: TransactionRecord
    payment_id: str | None = None
    is_double_spend_seen: bool = False
    is_failed: bool = False

    @property
    def amount(self) -> Decimal:
        """Amount in XMR."""
        return atomic_units_to_xmr(self.amount_atomic)

    @property
    def is_usable(self) -> bool:
        """Transfers flagged double-spend-seen or failed never count as payment."""
        return not (self.is_double_spend_seen or self.is_failed)


@dataclass(frozen=True)
class PaymentRequest:
    """
    Payment request issued to a payer.

    The payment id is unique per request and embedded in the integrated
    address, so transfers for different requests to the same wallet can be
    told apart.
    """

    payment_id: str
    integrated_address: str
    amount_atomic: int
    requested_confirmations: int
    label: str | None = None
    payment_uri: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def request_amount(self) -> Decimal:
        """Requested amount in XMR."""
        return atomic_units_to_xmr(self.amount_atomic)

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "integrated_address": self.integrated_address,
            "request_amount": format_xmr(self.request_amount),
            "label": self.label,
            "requested_confirmations": self.requested_confirmations,
            "payment_uri": self.payment_uri,
            "created_at": self.created_at.isoformat(),
        }


# Verdicts: exactly one of these describes an evaluation outcome.


@dataclass(frozen=True)
class NoMatch:
    """No usable transfer carries the request's payment id."""


@dataclass(frozen=True)
class AmountMismatch:
    """
    The latest matching transfer has a different amount.

    Partial and overpayments are not matches; no transaction data is kept.
    """

    received_atomic: int


@dataclass(frozen=True)
class MatchedUnconfirmed:
    """Exact amount received, fewer confirmations than requested."""

    tx: TransactionRecord
    confirmations: int


@dataclass(frozen=True)
class MatchedConfirmed:
    """Exact amount received with enough confirmations."""

    tx: TransactionRecord
    confirmations: int


PaymentVerdict: TypeAlias = NoMatch | AmountMismatch | MatchedUnconfirmed | MatchedConfirmed


@dataclass(frozen=True)
class PaymentResponse:
    """
    Result of evaluating a payment request.

    Created per evaluation and never persisted; callers re-poll for updates.
    Status, completion flag and transaction data are all derived from the
    verdict, so payment_complete is True exactly when the status is
    successful.
    """

    requested_payment: PaymentRequest
    verdict: PaymentVerdict = field(default_factory=NoMatch)

    @property
    def payment_status(self) -> PaymentStatus:
        if isinstance(self.verdict, MatchedConfirmed):
            return PaymentStatus.SUCCESSFUL
        if isinstance(self.verdict, MatchedUnconfirmed):
            return PaymentStatus.CONFIRMING
        return PaymentStatus.UNKNOWN

    @property
    def payment_complete(self) -> bool:
        return isinstance(self.verdict, MatchedConfirmed)

    @property
    def tx_data(self) -> TransactionRecord | None:
        if isinstance(self.verdict, (MatchedConfirmed, MatchedUnconfirmed)):
            return self.verdict.tx
        return None

    @property
    def confirmations(self) -> int | None:
        if isinstance(self.verdict, (MatchedConfirmed, MatchedUnconfirmed)):
            return self.verdict.confirmations
        return None

    def to_dict(self) -> dict[str, Any]:
        tx = self.tx_data
        return {
            "requested_payment": self.requested_payment.to_dict(),
            "tx_data": tx.to_dict() if tx else None,
            "confirmations": self.confirmations,
            "payment_status": self.payment_status.value,
            "payment_complete": self.payment_complete,
        }
