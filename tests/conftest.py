"""Pytest configuration and shared fixtures for all tests."""

import sys
from pathlib import Path

# Добавить корень проекта в PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from unittest.mock import AsyncMock

import pytest

from simplepay.config.settings import SimplePaySettings
from simplepay.models.connection import NodeConnectionDescriptor
from simplepay.models.payment import PaymentRequest
from simplepay.services.wallet.readiness import ReadinessState
from simplepay.services.wallet.wallet_handle import IntegratedAddress
from simplepay.utils.units import xmr_to_atomic_units
from tests.fakes import (
    NODE_URI,
    PRIMARY_ADDRESS,
    VIEW_KEY,
    FakeConnection,
    FakeWallet,
    make_integrated_address,
)


@pytest.fixture
def settings():
    """Valid settings without reading .env."""
    return SimplePaySettings(
        _env_file=None,
        primary_address=PRIMARY_ADDRESS,
        secret_view_key=VIEW_KEY,
        monerod_uri=NODE_URI,
        default_confirmations=10,
        health_check_interval=0.01,
        health_check_timeout=0.5,
        sync_interval_ms=100,
    )


@pytest.fixture
def fake_wallet():
    return FakeWallet()


@pytest.fixture
def descriptor():
    return NodeConnectionDescriptor(uri=NODE_URI)


@pytest.fixture
def fake_connection(descriptor):
    return FakeConnection(descriptor)


@pytest.fixture
def ready_state():
    """Readiness gate that has completed a sync."""
    readiness = ReadinessState()
    readiness.set_ready("test")
    return readiness


@pytest.fixture
def sample_request():
    """1.5 XMR request needing 2 confirmations."""
    payment_id = "a1b2c3d4e5f60718"
    return PaymentRequest(
        payment_id=payment_id,
        integrated_address=make_integrated_address(payment_id),
        amount_atomic=xmr_to_atomic_units("1.5"),
        requested_confirmations=2,
    )


@pytest.fixture
def mock_wallet():
    """AsyncMock wallet for call assertions."""
    wallet = AsyncMock()
    wallet.get_incoming_transfers = AsyncMock(return_value=[])
    wallet.create_integrated_address = AsyncMock(
        return_value=IntegratedAddress(
            integrated_address=make_integrated_address("00000000000000ff"),
            payment_id="00000000000000ff",
        )
    )
    return wallet
