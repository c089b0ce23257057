"""End-to-end tests for the SimplePay facade with in-memory wallet and node."""

import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio

from simplepay.models.payment import PaymentStatus
from simplepay.services.simple_pay import SimplePay
from simplepay.utils.exceptions import NodeConnectionError, NotReadyError
from tests.fakes import FakeConnection, FakeWallet, make_transfer, wait_for


class Harness:
    """Builds SimplePay with fakes and keeps handles on them."""

    def __init__(self, settings, node_height: int = 3_000_000) -> None:
        self.settings = settings
        self.node_height = node_height
        self.wallets: list[FakeWallet] = []
        self.connections: list[FakeConnection] = []
        self.outputs = []

    async def wallet_factory(self, settings):
        wallet = FakeWallet()
        self.wallets.append(wallet)
        return wallet

    def connection_factory(self, descriptor):
        connection = FakeConnection(descriptor, height=self.node_height)
        self.connections.append(connection)
        return connection

    async def on_output(self, event):
        self.outputs.append(event)

    def build(self) -> SimplePay:
        return SimplePay(
            self.settings,
            wallet_factory=self.wallet_factory,
            connection_factory=self.connection_factory,
            poll_interval=0.001,
            on_output=self.on_output,
        )

    @property
    def wallet(self) -> FakeWallet:
        return self.wallets[-1]

    @property
    def connection(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def harness(settings):
    return Harness(settings)


@pytest_asyncio.fixture
async def pay(harness):
    simple_pay = harness.build()
    await simple_pay.init_wallet()
    yield simple_pay
    await simple_pay.close()


async def sync_to_tip(harness: Harness, pay: SimplePay) -> None:
    harness.wallet.height = harness.connection.height
    await wait_for(lambda: pay.is_ready)


class TestPaymentFlow:
    @pytest.mark.asyncio
    async def test_request_confirming_then_successful(self, harness, pay):
        await sync_to_tip(harness, pay)

        request = await pay.create_payment_request(Decimal("1.5"), requested_confirmations=2)
        assert (await pay.check_for_payment(request)).payment_status == PaymentStatus.UNKNOWN

        harness.wallet.transfers = [make_transfer(request.payment_id, "1.5", 1, tx_hash="aa" * 32)]
        confirming = await pay.check_for_payment(request)
        assert confirming.payment_status == PaymentStatus.CONFIRMING
        assert confirming.payment_complete is False

        harness.wallet.transfers = [make_transfer(request.payment_id, "1.5", 2, tx_hash="aa" * 32)]
        done = await pay.check_for_payment(request)
        assert done.payment_status == PaymentStatus.SUCCESSFUL
        assert done.payment_complete is True
        assert done.tx_data.tx_hash == "aa" * 32

    @pytest.mark.asyncio
    async def test_wrong_amount_never_completes(self, harness, pay):
        await sync_to_tip(harness, pay)
        request = await pay.create_payment_request("1.5", requested_confirmations=2)

        harness.wallet.transfers = [make_transfer(request.payment_id, "1.4", 10)]
        response = await pay.check_for_payment(request)

        assert response.payment_status == PaymentStatus.UNKNOWN
        assert response.tx_data is None

    @pytest.mark.asyncio
    async def test_default_confirmations_from_settings(self, harness, pay):
        await sync_to_tip(harness, pay)

        request = await pay.create_payment_request("1")

        assert request.requested_confirmations == harness.settings.default_confirmations

    @pytest.mark.asyncio
    async def test_restore_height_below_tip(self, harness, pay):
        await wait_for(lambda: harness.wallet.sync_height is not None)

        assert harness.wallet.sync_height == harness.connection.height - 1
        assert pay.connection_status is True

    @pytest.mark.asyncio
    async def test_balance_and_outputs_reported(self, harness, pay):
        harness.wallet.balance = (2_000_000_000_000, 1_000_000_000_000)
        harness.wallet.transfers = [make_transfer("a1b2c3d4e5f60718", "2", 3)]
        await sync_to_tip(harness, pay)

        await wait_for(lambda: pay.balance is not None and harness.outputs)

        assert pay.balance == Decimal("2")
        assert pay.unlocked_balance == Decimal("1")
        assert harness.outputs[0].transfer.payment_id == "a1b2c3d4e5f60718"


class TestReadiness:
    @pytest.mark.asyncio
    async def test_requests_refused_before_sync(self, harness, pay):
        with pytest.raises(NotReadyError):
            await pay.create_payment_request("1")

    @pytest.mark.asyncio
    async def test_disconnect_at_63_percent(self, settings):
        harness = Harness(settings, node_height=1101)
        pay = harness.build()
        await pay.init_wallet()
        try:
            harness.connection.height = 1200
            harness.wallet.height = 1163
            await wait_for(lambda: pay.coordinator.state.percent_done >= 63.0)
            assert pay.is_ready is False

            harness.connection.healthy = False
            await wait_for(lambda: not pay.connection_status)
            assert pay.is_ready is False
            assert pay.coordinator.is_syncing is False
            with pytest.raises(NotReadyError):
                await pay.create_payment_request("1")

            harness.connection.healthy = True
            await wait_for(lambda: pay.coordinator.is_syncing)
            assert harness.wallet.sync_height == 1163
            assert pay.is_ready is False

            harness.wallet.height = 1200
            await wait_for(lambda: pay.is_ready)
            request = await pay.create_payment_request("1")
            assert request.payment_id
        finally:
            await pay.close()

    @pytest.mark.asyncio
    async def test_readiness_recovers_after_transient_wallet_error(self, harness, pay):
        await sync_to_tip(harness, pay)

        harness.wallet.height_error = NodeConnectionError("transient")
        await wait_for(lambda: not pay.is_ready)
        assert pay.connection_status is True

        harness.wallet.height_error = None
        await wait_for(lambda: pay.is_ready)

        assert pay.coordinator.is_syncing is True
        request = await pay.create_payment_request("1")
        assert request.payment_id

    @pytest.mark.asyncio
    async def test_wait_until_ready(self, harness, pay):
        assert await pay.wait_until_ready(timeout=0.02) is False

        harness.wallet.height = harness.connection.height
        assert await pay.wait_until_ready(timeout=2) is True


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_not_initialized(self, harness):
        pay = harness.build()

        assert pay.is_ready is False
        assert pay.connection_status is False
        assert pay.balance is None
        with pytest.raises(NotReadyError):
            await pay.create_payment_request("1")

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, harness):
        async with harness.build() as pay:
            assert pay.is_initialized

        assert harness.wallet.closed is True
        assert harness.connection.closed is True
        assert pay.is_initialized is False

    @pytest.mark.asyncio
    async def test_update_config_reinitializes(self, harness, pay):
        await sync_to_tip(harness, pay)
        first = await pay.create_payment_request("1")
        old_wallet = harness.wallet

        new_settings = harness.settings.model_copy(update={"default_confirmations": 3})
        await pay.update_config(new_settings)

        assert old_wallet.closed is True
        assert len(harness.wallets) == 2
        assert pay.get_config().default_confirmations == 3
        assert pay.is_ready is False

        harness.wallet.payment_ids = [first.payment_id, "00000000000000ee"]
        await sync_to_tip(harness, pay)
        second = await pay.create_payment_request("1")
        assert second.payment_id == "00000000000000ee"
        assert second.requested_confirmations == 3

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, harness, pay):
        await pay.close()
        await pay.close()

        assert harness.wallet.closed is True

    @pytest.mark.asyncio
    async def test_close_returns_promptly(self, harness, pay):
        await sync_to_tip(harness, pay)

        async with asyncio.timeout(2):
            await pay.close()

        assert pay.is_initialized is False

    @pytest.mark.asyncio
    async def test_connection_and_readiness_callbacks(self, harness):
        connection_events = []
        readiness_events = []

        async def on_connection(event):
            connection_events.append(event)

        async def on_readiness(event):
            readiness_events.append(event)

        pay = SimplePay(
            harness.settings,
            wallet_factory=harness.wallet_factory,
            connection_factory=harness.connection_factory,
            poll_interval=0.001,
            on_connection=on_connection,
            on_readiness=on_readiness,
        )
        await pay.init_wallet()
        try:
            await sync_to_tip(harness, pay)
            await wait_for(lambda: readiness_events and len(connection_events) >= 2)

            assert connection_events[0].connected is True
            assert connection_events[0].changed is True
            assert readiness_events[0].ready is True
        finally:
            await pay.close()
