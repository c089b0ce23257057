"""
Readiness gate.

Ready means the wallet view is fully synchronized with the connected node.
Only the sync coordinator writes it; everything else reads or waits.
"""

import asyncio

from loguru import logger

from simplepay.models.events import ReadinessChangedEvent
from simplepay.services.event_channel import EventChannel


class ReadinessState:
    """Readiness flag with change notifications and async waiting."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._ever_ready = False
        self.changes: EventChannel[ReadinessChangedEvent] = EventChannel("readiness")

    @property
    def is_ready(self) -> bool:
        return self._event.is_set()

    @property
    def ever_ready(self) -> bool:
        """True once any sync has completed, even if readiness was revoked since."""
        return self._ever_ready

    def set_ready(self, reason: str) -> None:
        if self._event.is_set():
            return
        self._event.set()
        self._ever_ready = True
        logger.success(f"[Sync] Wallet ready ({reason})")
        self.changes.publish(ReadinessChangedEvent(ready=True, reason=reason))

    def revoke(self, reason: str) -> None:
        if not self._event.is_set():
            return
        self._event.clear()
        logger.warning(f"[Sync] Wallet not ready ({reason})")
        self.changes.publish(ReadinessChangedEvent(ready=False, reason=reason))

    async def wait_until_ready(self, timeout: float | None = None) -> bool:
        """
        Wait for readiness.

        Args:
            timeout: Seconds to wait, None waits forever

        Returns:
            True if ready, False on timeout
        """
        try:
            async with asyncio.timeout(timeout):
                await self._event.wait()
        except TimeoutError:
            return False
        return True
