"""
Event handlers.

One handler type per event category. Wallet event handlers drop events
from an earlier sync generation, so a late event from a previous
connection never changes current state.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from loguru import logger

from simplepay.models.events import (
    BalanceChangedEvent,
    ConnectionChangedEvent,
    NewBlockEvent,
    OutputReceivedEvent,
    SyncProgressEvent,
)
from simplepay.services.wallet.sync_coordinator import SyncCoordinator
from simplepay.utils.security import mask_payment_id, mask_tx_hash
from simplepay.utils.units import atomic_units_to_xmr, format_xmr


E = TypeVar("E")


class ConnectionChangeHandler:
    """
    Hands connection transitions to the sync coordinator.

    Connected starts (or resumes) syncing; disconnected stops it and
    revokes readiness. Transitions are serialized.
    """

    def __init__(self, coordinator: SyncCoordinator) -> None:
        self.coordinator = coordinator
        self._lock = asyncio.Lock()

    async def __call__(self, event: ConnectionChangedEvent, connection: Any) -> None:
        async with self._lock:
            if event.connected:
                action = "starting sync" if event.changed else "restarting interrupted sync"
                logger.info(f"[Sync] Node {event.endpoint} connected, {action}")
                await self.coordinator.begin_sync(connection)
            else:
                logger.info(f"[Sync] Node {event.endpoint} disconnected, stopping sync")
                await self.coordinator.stop_sync("connection lost")

    def needs_resume(self) -> bool:
        """True while the node is up but the last sync was interrupted."""
        return self.coordinator.needs_restart


class WalletEventHandler(Generic[E]):
    """Base for handlers of generation-stamped wallet events."""

    def __init__(
        self,
        coordinator: SyncCoordinator,
        callback: Callable[[E], Awaitable[None]] | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.callback = callback

    async def __call__(self, event: E) -> None:
        if not self.coordinator.is_current(event.generation):
            logger.debug(f"Dropping stale event {event!r}")
            return
        await self.handle(event)
        if self.callback is not None:
            await self.callback(event)

    async def handle(self, event: E) -> None:
        pass


class SyncProgressHandler(WalletEventHandler[SyncProgressEvent]):
    """Tracks the latest sync progress."""

    def __init__(
        self,
        coordinator: SyncCoordinator,
        callback: Callable[[SyncProgressEvent], Awaitable[None]] | None = None,
    ) -> None:
        super().__init__(coordinator, callback)
        self.last_event: SyncProgressEvent | None = None

    async def handle(self, event: SyncProgressEvent) -> None:
        self.last_event = event
        logger.info(
            f"[Sync] Progress {event.percent_done:.1f}% "
            f"(height {event.height}, target {event.end_height})"
        )


class NewBlockHandler(WalletEventHandler[NewBlockEvent]):
    def __init__(
        self,
        coordinator: SyncCoordinator,
        callback: Callable[[NewBlockEvent], Awaitable[None]] | None = None,
    ) -> None:
        super().__init__(coordinator, callback)
        self.height: int | None = None

    async def handle(self, event: NewBlockEvent) -> None:
        self.height = event.height
        logger.debug(f"[Sync] New block {event.height}")


class BalanceHandler(WalletEventHandler[BalanceChangedEvent]):
    """Keeps the last reported wallet balance."""

    def __init__(
        self,
        coordinator: SyncCoordinator,
        callback: Callable[[BalanceChangedEvent], Awaitable[None]] | None = None,
    ) -> None:
        super().__init__(coordinator, callback)
        self.balance_atomic: int | None = None
        self.unlocked_balance_atomic: int | None = None

    async def handle(self, event: BalanceChangedEvent) -> None:
        self.balance_atomic = event.balance_atomic
        self.unlocked_balance_atomic = event.unlocked_balance_atomic
        logger.info(
            f"[Wallet] Balance {format_xmr(atomic_units_to_xmr(event.balance_atomic))} XMR "
            f"(unlocked {format_xmr(atomic_units_to_xmr(event.unlocked_balance_atomic))})"
        )


class OutputHandler(WalletEventHandler[OutputReceivedEvent]):
    """Logs newly seen incoming outputs."""

    def __init__(
        self,
        coordinator: SyncCoordinator,
        callback: Callable[[OutputReceivedEvent], Awaitable[None]] | None = None,
    ) -> None:
        super().__init__(coordinator, callback)
        self.received = 0

    async def handle(self, event: OutputReceivedEvent) -> None:
        self.received += 1
        transfer = event.transfer
        logger.info(
            f"[Wallet] Incoming {format_xmr(transfer.amount)} XMR "
            f"payment id {mask_payment_id(transfer.payment_id)} "
            f"tx {mask_tx_hash(transfer.tx.tx_hash)} "
            f"({transfer.tx.confirmations} confirmations)"
        )
