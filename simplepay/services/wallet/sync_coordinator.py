"""
Sync coordinator.

Resolves a safe starting height, drives wallet synchronization against the
connected node and owns the readiness gate. Every sync cycle gets a new
generation number; events stamped with an older generation are stale.

Flow:
    begin_sync(connection)
        -> restore height = remote height - 1 (first sync or fresh=True)
        -> scan loop: SyncProgressEvent until 100%, then readiness
        -> live follow: NewBlockEvent, BalanceChangedEvent, OutputReceivedEvent
    stop_sync()
        -> scan loop cancelled, readiness revoked, scan height kept
"""

import asyncio
import contextlib
from collections import deque
from dataclasses import replace
from typing import Any

from loguru import logger

from simplepay.config.constants import (
    DEFAULT_SYNC_INTERVAL_MS,
    RESTORE_HEIGHT_OFFSET,
    SEEN_OUTPUTS_LIMIT,
)
from simplepay.models.events import (
    BalanceChangedEvent,
    NewBlockEvent,
    OutputReceivedEvent,
    SyncProgressEvent,
)
from simplepay.models.payment import IncomingTransferRecord
from simplepay.models.sync import SyncState
from simplepay.services.event_channel import EventChannel
from simplepay.services.wallet.readiness import ReadinessState
from simplepay.services.wallet.wallet_handle import TransferQuery, WalletHandle
from simplepay.utils.exceptions import MUST_LOG, SyncInterruptedError


def compute_percent(height: int, start_height: int, end_height: int) -> float:
    """
    Sync progress of a cycle in percent, clamped to [0, 100].

    A cycle whose start is already at the tip is complete.
    """
    if end_height <= start_height:
        return 100.0
    percent = (height - start_height) / (end_height - start_height) * 100
    return max(0.0, min(100.0, percent))


class SyncCoordinator:
    """Drives wallet synchronization and exposes readiness."""

    def __init__(
        self,
        wallet: WalletHandle,
        readiness: ReadinessState | None = None,
        sync_interval_ms: int = DEFAULT_SYNC_INTERVAL_MS,
        poll_interval: float | None = None,
    ) -> None:
        """
        Initialize coordinator.

        Args:
            wallet: Wallet to synchronize
            readiness: Readiness gate written by this coordinator
            sync_interval_ms: Wallet refresh period
            poll_interval: Seconds between scan steps, defaults to the
                wallet refresh period
        """
        self.wallet = wallet
        self.readiness = readiness or ReadinessState()
        self._sync_interval_ms = sync_interval_ms
        self._poll_interval = (
            poll_interval if poll_interval is not None else sync_interval_ms / 1000
        )

        self._state = SyncState()
        self._generation = 0
        self._task: asyncio.Task | None = None
        self._wallet_syncing = False
        self._interrupted = False
        self._lock = asyncio.Lock()
        self._last_percent: float | None = None
        self._last_balance: tuple[int, int] | None = None
        self._seen_outputs: set[tuple[str, str | None, int]] = set()
        self._seen_order: deque[tuple[str, str | None, int]] = deque()

        self.progress: EventChannel[SyncProgressEvent] = EventChannel("sync_progress")
        self.new_blocks: EventChannel[NewBlockEvent] = EventChannel("new_block")
        self.balances: EventChannel[BalanceChangedEvent] = EventChannel("balance")
        self.outputs: EventChannel[OutputReceivedEvent] = EventChannel("output_received")

        self.logger = logger.bind(service="sync")

    @property
    def state(self) -> SyncState:
        """Snapshot of the sync state."""
        return replace(self._state)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_syncing(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_ready(self) -> bool:
        return self.readiness.is_ready

    @property
    def needs_restart(self) -> bool:
        """True after the scan loop was interrupted and no sync has started since."""
        return self._interrupted and not self.is_syncing

    def is_current(self, generation: int) -> bool:
        """True if an event with this generation belongs to the running cycle."""
        return generation == self._generation

    async def begin_sync(self, connection: Any, fresh: bool = False) -> None:
        """
        Start synchronizing against connection.

        The first sync, or a fresh one, resolves the restore height one
        block below the remote tip. Later syncs resume from the retained
        scan height.

        Args:
            connection: Connected node connection
            fresh: Discard the retained scan height

        Raises:
            NodeConnectionError: If the remote height cannot be read
        """
        async with self._lock:
            await self._halt("restarting sync")
            self._generation += 1

            await self.wallet.set_daemon_connection(connection)
            remote_height = await connection.get_height()

            state = self._state
            if fresh or state.scan_height is None:
                state.restore_height = max(0, remote_height - RESTORE_HEIGHT_OFFSET)
                state.scan_height = state.restore_height
                self._reset_observations()
                self.logger.info(
                    f"[Sync] Restore height {state.restore_height} "
                    f"(remote height {remote_height})"
                )
            else:
                self.logger.info(
                    f"[Sync] Resuming from height {state.scan_height} "
                    f"(remote height {remote_height})"
                )

            state.start_height = state.scan_height
            state.end_height = max(remote_height, state.scan_height)
            state.percent_done = 0.0
            state.cycle_complete = False
            state.ready = False
            self._last_percent = None

            await self.wallet.set_sync_height(state.scan_height)
            await self.wallet.start_syncing(self._sync_interval_ms)
            self._wallet_syncing = True

            self._interrupted = False
            generation = self._generation
            self._task = asyncio.create_task(
                self._scan_loop(generation, connection),
                name=f"sync-scan-{generation}",
            )

    async def stop_sync(self, reason: str = "sync stopped") -> None:
        """Stop synchronizing and revoke readiness. Keeps the scan height. Idempotent."""
        async with self._lock:
            await self._halt(reason)
            self._interrupted = False
            self._generation += 1

    async def _halt(self, reason: str) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._wallet_syncing:
            self._wallet_syncing = False
            try:
                await self.wallet.stop_syncing()
            except MUST_LOG as e:
                self.logger.warning(f"[Sync] stop_syncing failed: {e}")
        self._state.ready = False
        self.readiness.revoke(reason)

    def _reset_observations(self) -> None:
        self._last_balance = None
        self._seen_outputs.clear()
        self._seen_order.clear()

    async def _scan_loop(self, generation: int, connection: Any) -> None:
        try:
            while True:
                await self._scan_step(generation, connection)
                await asyncio.sleep(self._poll_interval)
        except SyncInterruptedError as e:
            self._interrupted = True
            self._state.ready = False
            self.readiness.revoke("sync interrupted")
            self.logger.error(
                f"[Sync] Interrupted at height {self._state.scan_height}: {e}"
            )

    async def _scan_step(self, generation: int, connection: Any) -> None:
        try:
            height = await self.wallet.get_height()
            if self._state.cycle_complete:
                await self._follow_tip(generation, height)
            else:
                remote_height = await connection.get_height()
                await self._advance_cycle(generation, height, remote_height)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise SyncInterruptedError(f"{type(e).__name__}: {e}") from e

    async def _advance_cycle(self, generation: int, height: int, remote_height: int) -> None:
        state = self._state
        state.end_height = max(state.end_height or 0, remote_height)
        state.scan_height = max(state.scan_height or 0, min(height, state.end_height))

        percent = compute_percent(state.scan_height, state.start_height or 0, state.end_height)
        if self._last_percent is None or percent > self._last_percent:
            self._last_percent = percent
            state.percent_done = percent
            self.progress.publish(
                SyncProgressEvent(
                    generation=generation,
                    height=state.scan_height,
                    start_height=state.start_height or 0,
                    end_height=state.end_height,
                    percent_done=percent,
                )
            )
            self.logger.debug(
                f"[Sync] {percent:.1f}% ({state.scan_height}/{state.end_height})"
            )

        if percent >= 100:
            state.cycle_complete = True
            state.has_completed_sync = True
            state.ready = True
            self.readiness.set_ready(f"synced to height {state.scan_height}")
            await self._observe_wallet(generation)

    async def _follow_tip(self, generation: int, height: int) -> None:
        state = self._state
        if height > (state.scan_height or 0):
            state.scan_height = height
            state.end_height = max(state.end_height or 0, height)
            self.new_blocks.publish(NewBlockEvent(generation=generation, height=height))
        await self._observe_wallet(generation)

    async def _observe_wallet(self, generation: int) -> None:
        balance = await self.wallet.get_balance()
        if balance != self._last_balance:
            self._last_balance = balance
            self.balances.publish(
                BalanceChangedEvent(
                    generation=generation,
                    balance_atomic=balance[0],
                    unlocked_balance_atomic=balance[1],
                )
            )

        transfers = await self.wallet.get_incoming_transfers(
            TransferQuery(min_height=self._state.restore_height)
        )
        for transfer in transfers:
            if self._mark_seen(transfer):
                self.outputs.publish(OutputReceivedEvent(generation=generation, transfer=transfer))

    def _mark_seen(self, transfer: IncomingTransferRecord) -> bool:
        """Remember transfer; returns False if it was already reported."""
        key = (transfer.tx.tx_hash, transfer.payment_id, transfer.amount_atomic)
        if key in self._seen_outputs:
            return False
        if len(self._seen_order) >= SEEN_OUTPUTS_LIMIT:
            self._seen_outputs.discard(self._seen_order.popleft())
        self._seen_outputs.add(key)
        self._seen_order.append(key)
        return True
