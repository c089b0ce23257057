"""
Event models.

One event type per category. Wallet events carry the sync generation that
produced them so handlers can drop events from an earlier connection.
"""

from dataclasses import dataclass

from simplepay.models.payment import IncomingTransferRecord


@dataclass(frozen=True)
class ConnectionChangedEvent:
    """Outcome of one node health check."""

    connected: bool
    endpoint: str | None
    changed: bool  # True when the check flipped the connected flag


@dataclass(frozen=True)
class SyncProgressEvent:
    generation: int
    height: int
    start_height: int
    end_height: int
    percent_done: float


@dataclass(frozen=True)
class NewBlockEvent:
    generation: int
    height: int


@dataclass(frozen=True)
class BalanceChangedEvent:
    generation: int
    balance_atomic: int
    unlocked_balance_atomic: int


@dataclass(frozen=True)
class OutputReceivedEvent:
    generation: int
    transfer: IncomingTransferRecord


@dataclass(frozen=True)
class ReadinessChangedEvent:
    ready: bool
    reason: str
