"""
Connection resilience manager.

Keeps one remote node connection under periodic health checks and reports
every outcome on a typed event channel. Transitions between connected and
disconnected are handed to registered transition handlers, which run to
completion before the next check starts.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from simplepay.config.constants import HEALTH_CHECK_INTERVAL, HEALTH_CHECK_TIMEOUT
from simplepay.models.connection import ConnectionState, NodeConnectionDescriptor
from simplepay.models.events import ConnectionChangedEvent
from simplepay.services.event_channel import EventChannel
from simplepay.services.node.rpc_connection import NodeRpcConnection
from simplepay.utils.exceptions import ConfigurationError


ConnectionFactory = Callable[[NodeConnectionDescriptor], Any]
TransitionHandler = Callable[[ConnectionChangedEvent, Any], Awaitable[None]]
PendingCheck = Callable[[], bool]


class ConnectionResilienceManager:
    """
    Monitors a single node connection and retries until stopped.

    Health-check failures and timeouts only ever mark the connection as
    down; the loop keeps checking until stop() is called.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory = NodeRpcConnection,
        timeout: float = HEALTH_CHECK_TIMEOUT,
        check_interval: float = HEALTH_CHECK_INTERVAL,
    ) -> None:
        """
        Initialize manager.

        Args:
            connection_factory: Builds a connection from a descriptor
            timeout: Upper bound for one health check, in seconds
            check_interval: Delay between health checks, in seconds
        """
        self._connection_factory = connection_factory
        self._timeout = timeout
        self._check_interval = check_interval

        self._connection: Any | None = None
        self._state = ConnectionState()
        self._task: asyncio.Task | None = None
        self._check_lock = asyncio.Lock()
        self._transition_handlers: list[tuple[TransitionHandler, PendingCheck | None]] = []

        self.changes: EventChannel[ConnectionChangedEvent] = EventChannel("connection")

    @property
    def state(self) -> ConnectionState:
        """Snapshot of the connection state."""
        return replace(self._state)

    @property
    def connected(self) -> bool:
        return self._state.connected

    @property
    def connection(self) -> Any | None:
        return self._connection

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_timeout(self, timeout: float) -> None:
        self._timeout = timeout

    def add_transition_handler(
        self,
        handler: TransitionHandler,
        pending: PendingCheck | None = None,
    ) -> None:
        """
        Register a coroutine called on every connected/disconnected flip.

        Handlers receive the event and the current connection and are
        awaited in registration order.

        Args:
            handler: Transition coroutine
            pending: Returns True while the handler's connected transition
                has not taken effect. While it does, every healthy check
                calls the handler again with an unchanged connected event.
        """
        self._transition_handlers.append((handler, pending))

    async def set_endpoint(self, descriptor: NodeConnectionDescriptor | None) -> None:
        """
        Replace the active endpoint.

        The previous connection is released before the new one is
        installed. If it was connected, handlers see a disconnect first.

        Args:
            descriptor: New endpoint, or None to leave the manager without one
        """
        async with self._check_lock:
            previous = self._connection
            was_connected = self._state.connected

            if previous is not None:
                if was_connected:
                    await self._apply_result(False)
                await previous.close()
                logger.info(f"[Connection] Released {self._state.endpoint}")

            self._connection = (
                self._connection_factory(descriptor) if descriptor is not None else None
            )
            self._state = ConnectionState(endpoint=descriptor.uri if descriptor else None)

        if descriptor is not None:
            logger.info(f"[Connection] Endpoint set to {descriptor.uri}")

    async def check_connection(self) -> bool:
        """
        Run one health check now.

        Returns:
            Connected flag after the check
        """
        async with self._check_lock:
            if self._connection is None:
                return False

            try:
                async with asyncio.timeout(self._timeout):
                    ok = await self._connection.check_connection()
            except TimeoutError:
                logger.warning(
                    f"[Connection] Health check timed out after {self._timeout}s "
                    f"({self._state.endpoint})"
                )
                ok = False
            except Exception as e:
                logger.warning(f"[Connection] Health check failed: {type(e).__name__}: {e}")
                ok = False

            return await self._apply_result(bool(ok))

    async def _apply_result(self, ok: bool) -> bool:
        state = self._state
        changed = ok != state.connected

        state.connected = ok
        state.last_checked_at = datetime.now(UTC)
        state.consecutive_failures = 0 if ok else state.consecutive_failures + 1

        event = ConnectionChangedEvent(connected=ok, endpoint=state.endpoint, changed=changed)

        if changed:
            if ok:
                logger.info(f"[Connection] Connected to {state.endpoint}")
            else:
                logger.warning(f"[Connection] Lost connection to {state.endpoint}")

            for handler, _ in self._transition_handlers:
                try:
                    await handler(event, self._connection)
                except Exception as e:
                    logger.exception(f"[Connection] Transition handler failed: {e}")
                    if ok:
                        # Retry the transition on the next check
                        state.connected = False
                        event = ConnectionChangedEvent(
                            connected=False, endpoint=state.endpoint, changed=False
                        )
                        break
        elif ok:
            await self._retry_pending(event)

        self.changes.publish(event)
        return state.connected

    async def _retry_pending(self, event: ConnectionChangedEvent) -> None:
        for handler, pending in self._transition_handlers:
            if pending is None or not pending():
                continue
            logger.info(f"[Connection] Retrying connected transition for {event.endpoint}")
            try:
                await handler(event, self._connection)
            except Exception as e:
                logger.exception(f"[Connection] Transition handler retry failed: {e}")

    async def _run(self) -> None:
        logger.info(
            f"[Connection] Health checks every {self._check_interval}s "
            f"(timeout {self._timeout}s)"
        )
        while True:
            await self.check_connection()
            await asyncio.sleep(self._check_interval)

    async def start(self) -> None:
        """
        Start periodic health checks. Idempotent.

        Raises:
            ConfigurationError: If no endpoint has been set
        """
        if self._connection is None:
            raise ConfigurationError("Cannot start connection checks without an endpoint")
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="connection-health")

    async def stop(self) -> None:
        """Stop health checks and wait for the loop to exit. Idempotent."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("[Connection] Health checks stopped")

    async def clear(self) -> None:
        """Stop checks and release the connection."""
        await self.stop()
        await self.set_endpoint(None)
