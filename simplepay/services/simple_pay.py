"""
SimplePay facade.

Wires the wallet, connection resilience manager, sync coordinator, request
factory and matching engine together.

Usage:
    async with SimplePay(settings) as pay:
        await pay.wait_until_ready()
        request = await pay.create_payment_request(Decimal("1.5"), label="Order 42")
        response = await pay.check_for_payment(request)
"""

from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any

from loguru import logger

from simplepay.config.settings import SimplePaySettings, get_settings, load_settings
from simplepay.models.connection import NodeConnectionDescriptor
from simplepay.models.events import (
    ConnectionChangedEvent,
    OutputReceivedEvent,
    ReadinessChangedEvent,
)
from simplepay.models.payment import PaymentRequest, PaymentResponse
from simplepay.services.event_channel import EventDispatcher
from simplepay.services.handlers import (
    BalanceHandler,
    ConnectionChangeHandler,
    NewBlockHandler,
    OutputHandler,
    SyncProgressHandler,
)
from simplepay.services.node.connection_manager import ConnectionResilienceManager
from simplepay.services.node.rpc_connection import NodeRpcConnection
from simplepay.services.payment.matching_engine import PaymentMatchingEngine
from simplepay.services.payment.request_factory import PaymentRequestFactory
from simplepay.services.wallet.readiness import ReadinessState
from simplepay.services.wallet.sync_coordinator import SyncCoordinator
from simplepay.services.wallet.wallet_rpc import create_wallet
from simplepay.utils.exceptions import NotReadyError
from simplepay.utils.units import atomic_units_to_xmr


WalletFactory = Callable[[SimplePaySettings], Awaitable[Any]]


class SimplePay:
    """
    Payment request tracker for a view-only Monero wallet.

    Nothing runs until init_wallet() (or entering the async context).
    """

    def __init__(
        self,
        settings: SimplePaySettings | None = None,
        wallet_factory: WalletFactory = create_wallet,
        connection_factory: Callable[[NodeConnectionDescriptor], Any] = NodeRpcConnection,
        poll_interval: float | None = None,
        on_output: Callable[[OutputReceivedEvent], Awaitable[None]] | None = None,
        on_connection: Callable[[ConnectionChangedEvent], Awaitable[None]] | None = None,
        on_readiness: Callable[[ReadinessChangedEvent], Awaitable[None]] | None = None,
    ) -> None:
        """
        Initialize facade.

        Args:
            settings: Settings, loaded from environment when None
            wallet_factory: Coroutine building the wallet from settings
            connection_factory: Builds a node connection from a descriptor
            poll_interval: Seconds between sync scan steps, defaults to the
                wallet sync interval
            on_output: Called for every newly seen incoming output
            on_connection: Called with the outcome of every node health check
            on_readiness: Called whenever the wallet becomes ready or loses readiness
        """
        self.settings = settings or get_settings()
        self._wallet_factory = wallet_factory
        self._connection_factory = connection_factory
        self._poll_interval = poll_interval
        self._on_output = on_output
        self._on_connection = on_connection
        self._on_readiness = on_readiness

        self.wallet: Any | None = None
        self.readiness = ReadinessState()
        self.coordinator: SyncCoordinator | None = None
        self.connection_manager: ConnectionResilienceManager | None = None
        self.request_factory: PaymentRequestFactory | None = None
        self.matching_engine: PaymentMatchingEngine | None = None
        self._dispatcher: EventDispatcher | None = None
        self._balance_handler: BalanceHandler | None = None
        self._issued_ids: set[str] = set()

    @property
    def is_initialized(self) -> bool:
        return self.wallet is not None

    def get_config(self) -> SimplePaySettings:
        return self.settings

    async def init_wallet(self) -> None:
        """
        Open the wallet, connect to the node and start syncing. Idempotent.

        Raises:
            ConfigurationError: If the wallet does not match the settings
            NodeConnectionError: If wallet RPC is unreachable
        """
        if self.is_initialized:
            return

        settings = self.settings
        logger.info(f"[SimplePay] Initializing: {settings.summary()}")

        wallet = await self._wallet_factory(settings)

        self.readiness = ReadinessState()
        coordinator = SyncCoordinator(
            wallet,
            self.readiness,
            sync_interval_ms=settings.sync_interval_ms,
            poll_interval=self._poll_interval,
        )
        self.request_factory = PaymentRequestFactory(
            wallet,
            self.readiness,
            default_confirmations=settings.default_confirmations,
            uri_scheme=settings.payment_uri_scheme,
            issued_ids=self._issued_ids,
        )
        self.matching_engine = PaymentMatchingEngine(wallet, self.readiness)

        dispatcher = EventDispatcher()
        self._balance_handler = BalanceHandler(coordinator)
        dispatcher.attach(coordinator.progress, SyncProgressHandler(coordinator))
        dispatcher.attach(coordinator.new_blocks, NewBlockHandler(coordinator))
        dispatcher.attach(coordinator.balances, self._balance_handler)
        dispatcher.attach(coordinator.outputs, OutputHandler(coordinator, self._on_output))

        manager = ConnectionResilienceManager(
            self._connection_factory,
            timeout=settings.health_check_timeout,
            check_interval=settings.health_check_interval,
        )
        connection_handler = ConnectionChangeHandler(coordinator)
        manager.add_transition_handler(connection_handler, pending=connection_handler.needs_resume)
        if self._on_connection is not None:
            dispatcher.attach(manager.changes, self._on_connection)
        if self._on_readiness is not None:
            dispatcher.attach(self.readiness.changes, self._on_readiness)

        self.wallet = wallet
        self.coordinator = coordinator
        self.connection_manager = manager
        self._dispatcher = dispatcher

        await manager.set_endpoint(
            NodeConnectionDescriptor(
                uri=settings.monerod_uri,
                username=settings.monerod_username,
                password=settings.monerod_password,
            )
        )
        await manager.check_connection()
        await manager.start()
        logger.success("[SimplePay] Wallet initialized")

    async def wait_until_ready(self, timeout: float | None = None) -> bool:
        return await self.readiness.wait_until_ready(timeout)

    async def create_payment_request(
        self,
        amount: Decimal | int | float | str,
        label: str | None = None,
        requested_confirmations: int | None = None,
    ) -> PaymentRequest:
        """
        Create a payment request.

        Raises:
            NotReadyError: If the wallet is not initialized or not synchronized
            InvalidAmountError: If amount is invalid
        """
        if self.request_factory is None:
            raise NotReadyError("Wallet is not initialized")
        request = await self.request_factory.create_payment_request(
            amount, label=label, requested_confirmations=requested_confirmations
        )
        self._issued_ids.add(request.payment_id)
        return request

    async def check_for_payment(self, request: PaymentRequest) -> PaymentResponse:
        """
        Check whether request has been paid.

        Raises:
            NotReadyError: If the wallet has never been synchronized
        """
        if self.matching_engine is None:
            raise NotReadyError("Wallet is not initialized")
        return await self.matching_engine.evaluate(request)

    async def wait_for_payment(
        self,
        request: PaymentRequest,
        poll_interval: float | None = None,
        timeout: float | None = None,
    ) -> PaymentResponse:
        if self.matching_engine is None:
            raise NotReadyError("Wallet is not initialized")
        if poll_interval is None:
            return await self.matching_engine.wait_for_payment(request, timeout=timeout)
        return await self.matching_engine.wait_for_payment(request, poll_interval, timeout)

    @property
    def is_ready(self) -> bool:
        return self.readiness.is_ready

    @property
    def connection_status(self) -> bool:
        return self.connection_manager is not None and self.connection_manager.connected

    @property
    def balance(self) -> Decimal | None:
        """Last reported wallet balance in XMR, None before the first report."""
        if self._balance_handler is None or self._balance_handler.balance_atomic is None:
            return None
        return atomic_units_to_xmr(self._balance_handler.balance_atomic)

    @property
    def unlocked_balance(self) -> Decimal | None:
        if self._balance_handler is None or self._balance_handler.unlocked_balance_atomic is None:
            return None
        return atomic_units_to_xmr(self._balance_handler.unlocked_balance_atomic)

    async def update_config(self, settings: SimplePaySettings | None = None) -> None:
        """
        Swap configuration at runtime.

        Closes the wallet and initializes again with the new settings.
        Issued payment ids are kept.

        Args:
            settings: New settings, reloaded from environment when None
        """
        was_initialized = self.is_initialized
        await self.close()
        self.settings = settings or load_settings()
        logger.info("[SimplePay] Configuration updated")
        if was_initialized:
            await self.init_wallet()

    async def close(self) -> None:
        """Stop checks and syncing, release the node connection and wallet. Idempotent."""
        if not self.is_initialized:
            return

        if self.connection_manager is not None:
            await self.connection_manager.clear()
        if self.coordinator is not None:
            await self.coordinator.stop_sync("closing")
        if self._dispatcher is not None:
            await self._dispatcher.close()
        await self.wallet.close()

        self.wallet = None
        self.coordinator = None
        self.connection_manager = None
        self.request_factory = None
        self.matching_engine = None
        self._dispatcher = None
        self._balance_handler = None
        logger.info("[SimplePay] Closed")

    async def __aenter__(self) -> "SimplePay":
        await self.init_wallet()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
