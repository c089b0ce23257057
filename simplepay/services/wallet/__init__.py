"""View-only wallet access, synchronization and readiness."""

from simplepay.services.wallet.readiness import ReadinessState
from simplepay.services.wallet.sync_coordinator import SyncCoordinator
from simplepay.services.wallet.wallet_handle import IntegratedAddress, TransferQuery, WalletHandle
from simplepay.services.wallet.wallet_rpc import WalletRpcHandle, create_wallet


__all__ = [
    "IntegratedAddress",
    "ReadinessState",
    "SyncCoordinator",
    "TransferQuery",
    "WalletHandle",
    "WalletRpcHandle",
    "create_wallet",
]
