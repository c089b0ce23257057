"""
Wallet collaborator interface.

SimplePay only ever needs a view-only wallet: it derives integrated
addresses, follows the chain and lists incoming transfers.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from simplepay.models.payment import IncomingTransferRecord


@dataclass(frozen=True)
class TransferQuery:
    """Filter for incoming transfers."""

    payment_id: str | None = None
    min_height: int | None = None
    include_pool: bool = True


@dataclass(frozen=True)
class IntegratedAddress:
    integrated_address: str
    payment_id: str
    standard_address: str | None = None


class WalletHandle(Protocol):
    """Operations SimplePay uses on a wallet."""

    async def get_primary_address(self) -> str: ...

    async def create_integrated_address(self) -> IntegratedAddress: ...

    async def get_incoming_transfers(self, query: TransferQuery) -> list[IncomingTransferRecord]:
        """Incoming transfers, oldest first; the last element is the most recent."""
        ...

    async def set_daemon_connection(self, connection: Any) -> None: ...

    async def get_daemon_height(self) -> int: ...

    async def get_height(self) -> int:
        """Height the wallet has scanned up to."""
        ...

    async def set_sync_height(self, height: int) -> None: ...

    async def start_syncing(self, interval_ms: int) -> None: ...

    async def stop_syncing(self) -> None: ...

    async def get_balance(self) -> tuple[int, int]:
        """(balance, unlocked_balance) in atomic units."""
        ...

    async def close(self) -> None: ...
