"""
Data models.

Payment requests and verdicts, connection and sync state, and event types.
"""

from simplepay.models.connection import ConnectionState, NodeConnectionDescriptor
from simplepay.models.events import (
    BalanceChangedEvent,
    ConnectionChangedEvent,
    NewBlockEvent,
    OutputReceivedEvent,
    ReadinessChangedEvent,
    SyncProgressEvent,
)
from simplepay.models.payment import (
    AmountMismatch,
    IncomingTransferRecord,
    MatchedConfirmed,
    MatchedUnconfirmed,
    NoMatch,
    PaymentRequest,
    PaymentResponse,
    PaymentStatus,
    PaymentVerdict,
    TransactionRecord,
)
from simplepay.models.sync import SyncState


__all__ = [
    "AmountMismatch",
    "BalanceChangedEvent",
    "ConnectionChangedEvent",
    "ConnectionState",
    "IncomingTransferRecord",
    "MatchedConfirmed",
    "MatchedUnconfirmed",
    "NewBlockEvent",
    "NoMatch",
    "NodeConnectionDescriptor",
    "OutputReceivedEvent",
    "PaymentRequest",
    "PaymentResponse",
    "PaymentStatus",
    "PaymentVerdict",
    "ReadinessChangedEvent",
    "SyncProgressEvent",
    "SyncState",
    "TransactionRecord",
]
