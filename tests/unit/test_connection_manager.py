"""Unit tests for the connection resilience manager."""

import asyncio

import pytest
import pytest_asyncio

from simplepay.models.connection import NodeConnectionDescriptor
from simplepay.services.node.connection_manager import ConnectionResilienceManager
from simplepay.utils.exceptions import ConfigurationError, NodeConnectionError
from tests.fakes import FakeConnection, wait_for


class Recorder:
    """Transition handler recording (connected, connection) pairs."""

    def __init__(self, fail_on_connect: int = 0) -> None:
        self.calls: list[tuple[bool, object]] = []
        self.fail_on_connect = fail_on_connect

    async def __call__(self, event, connection) -> None:
        self.calls.append((event.connected, connection))
        if event.connected and self.fail_on_connect:
            self.fail_on_connect -= 1
            raise NodeConnectionError("sync start failed")


@pytest.fixture
def connections():
    return []


@pytest_asyncio.fixture
async def manager(connections):
    def factory(descriptor):
        conn = FakeConnection(descriptor)
        connections.append(conn)
        return conn

    mgr = ConnectionResilienceManager(factory, timeout=0.05, check_interval=0.005)
    yield mgr
    await mgr.clear()


class TestHealthChecks:
    @pytest.mark.asyncio
    async def test_check_without_endpoint(self, manager):
        assert await manager.check_connection() is False

    @pytest.mark.asyncio
    async def test_connect_transition_calls_handler(self, manager, descriptor, connections):
        recorder = Recorder()
        manager.add_transition_handler(recorder)
        await manager.set_endpoint(descriptor)

        assert await manager.check_connection() is True
        assert await manager.check_connection() is True

        assert recorder.calls == [(True, connections[0])]
        assert manager.state.endpoint == descriptor.uri

    @pytest.mark.asyncio
    async def test_every_check_publishes_event(self, manager, descriptor):
        queue = manager.changes.subscribe()
        await manager.set_endpoint(descriptor)

        await manager.check_connection()
        await manager.check_connection()

        first, second = queue.get_nowait(), queue.get_nowait()
        assert (first.connected, first.changed) == (True, True)
        assert (second.connected, second.changed) == (True, False)
        assert first.endpoint == descriptor.uri

    @pytest.mark.asyncio
    async def test_disconnect_transition(self, manager, descriptor, connections):
        recorder = Recorder()
        manager.add_transition_handler(recorder)
        await manager.set_endpoint(descriptor)
        await manager.check_connection()

        connections[0].healthy = False
        assert await manager.check_connection() is False

        assert [c[0] for c in recorder.calls] == [True, False]
        assert manager.state.consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_timeout_counts_as_disconnected(self, manager, descriptor, connections):
        await manager.set_endpoint(descriptor)
        connections[0].check_delay = 1.0

        assert await manager.check_connection() is False
        assert manager.connected is False

    @pytest.mark.asyncio
    async def test_check_error_is_not_fatal(self, manager, descriptor, connections):
        await manager.set_endpoint(descriptor)
        connections[0].check_error = NodeConnectionError("refused")

        assert await manager.check_connection() is False

        connections[0].check_error = None
        assert await manager.check_connection() is True

    @pytest.mark.asyncio
    async def test_failed_connect_handler_retried(self, manager, descriptor):
        recorder = Recorder(fail_on_connect=1)
        manager.add_transition_handler(recorder)
        await manager.set_endpoint(descriptor)

        assert await manager.check_connection() is False
        assert await manager.check_connection() is True

        assert [c[0] for c in recorder.calls] == [True, True]

    @pytest.mark.asyncio
    async def test_pending_handler_called_again_while_connected(self, manager, descriptor, connections):
        recorder = Recorder()
        pending = [False]
        manager.add_transition_handler(recorder, pending=lambda: pending[0])
        await manager.set_endpoint(descriptor)

        await manager.check_connection()
        await manager.check_connection()
        assert recorder.calls == [(True, connections[0])]

        pending[0] = True
        await manager.check_connection()
        pending[0] = False
        await manager.check_connection()

        assert recorder.calls == [(True, connections[0]), (True, connections[0])]

    @pytest.mark.asyncio
    async def test_pending_handler_not_called_while_disconnected(self, manager, descriptor, connections):
        recorder = Recorder()
        manager.add_transition_handler(recorder, pending=lambda: True)
        await manager.set_endpoint(descriptor)
        connections[0].healthy = False

        await manager.check_connection()
        await manager.check_connection()

        assert recorder.calls == []


class TestEndpoint:
    @pytest.mark.asyncio
    async def test_replacing_endpoint_releases_previous(self, manager, descriptor, connections):
        recorder = Recorder()
        manager.add_transition_handler(recorder)
        await manager.set_endpoint(descriptor)
        await manager.check_connection()

        await manager.set_endpoint(NodeConnectionDescriptor(uri="http://other.test:18081"))

        assert connections[0].closed is True
        assert manager.connection is connections[1]
        assert manager.connected is False
        assert recorder.calls[-1] == (False, connections[0])

    @pytest.mark.asyncio
    async def test_clear_releases_connection(self, manager, descriptor, connections):
        await manager.set_endpoint(descriptor)
        await manager.start()

        await manager.clear()

        assert connections[0].closed is True
        assert manager.connection is None
        assert manager.is_running is False


class TestLoop:
    @pytest.mark.asyncio
    async def test_start_requires_endpoint(self, manager):
        with pytest.raises(ConfigurationError):
            await manager.start()

    @pytest.mark.asyncio
    async def test_loop_recovers_after_outage(self, manager, descriptor, connections):
        recorder = Recorder()
        manager.add_transition_handler(recorder)
        await manager.set_endpoint(descriptor)
        connections[0].healthy = False

        await manager.start()
        await wait_for(lambda: connections[0].checks >= 3)
        assert manager.connected is False

        connections[0].healthy = True
        await wait_for(lambda: manager.connected)
        assert recorder.calls == [(True, connections[0])]

    @pytest.mark.asyncio
    async def test_start_and_stop_idempotent(self, manager, descriptor):
        await manager.set_endpoint(descriptor)

        await manager.start()
        await manager.start()
        assert manager.is_running

        await manager.stop()
        await manager.stop()
        assert manager.is_running is False

    @pytest.mark.asyncio
    async def test_no_checks_after_stop(self, manager, descriptor, connections):
        await manager.set_endpoint(descriptor)
        await manager.start()
        await wait_for(lambda: connections[0].checks >= 1)

        await manager.stop()
        checks = connections[0].checks
        await asyncio.sleep(0.03)

        assert connections[0].checks == checks

    @pytest.mark.asyncio
    async def test_stop_returns_while_checks_complete_instantly(self, descriptor, connections):
        def factory(descriptor):
            conn = FakeConnection(descriptor)
            connections.append(conn)
            return conn

        manager = ConnectionResilienceManager(factory, timeout=0.5, check_interval=0)
        await manager.set_endpoint(descriptor)
        await manager.start()
        await wait_for(lambda: connections[0].checks >= 20)

        async with asyncio.timeout(2):
            await manager.stop()
        checks = connections[0].checks
        await asyncio.sleep(0.02)

        assert manager.is_running is False
        assert connections[0].checks == checks
        await manager.clear()
