"""
View-only wallet over monero-wallet-rpc.

Implements the WalletHandle protocol on top of the wallet RPC JSON-RPC
interface. The wallet never holds a spend key.
"""

import asyncio
import contextlib
from typing import Any

from loguru import logger

from simplepay.config.constants import WALLET_REFRESH_TIMEOUT, WALLET_RPC_TIMEOUT
from simplepay.config.settings import SimplePaySettings
from simplepay.models.payment import IncomingTransferRecord, TransactionRecord
from simplepay.services.rpc_client import JsonRpcClient
from simplepay.services.wallet.wallet_handle import IntegratedAddress, TransferQuery
from simplepay.utils.exceptions import (
    ConfigurationError,
    NodeConnectionError,
    WalletRpcError,
)
from simplepay.utils.security import mask_address


def _parse_transfer(entry: dict[str, Any], failed: bool = False) -> IncomingTransferRecord:
    in_pool = entry.get("type") == "pool"
    tx = TransactionRecord(
        tx_hash=entry["txid"],
        confirmations=int(entry.get("confirmations", 0)),
        block_height=None if in_pool else entry.get("height"),
        timestamp=entry.get("timestamp"),
        fee_atomic=int(entry.get("fee", 0)),
        in_pool=in_pool,
    )
    payment_id = entry.get("payment_id")
    return IncomingTransferRecord(
        amount_atomic=int(entry["amount"]),
        tx=tx,
        payment_id=payment_id.lower() if payment_id else None,
        is_double_spend_seen=bool(entry.get("double_spend_seen", False)),
        is_failed=failed,
    )


class WalletRpcHandle:
    """
    WalletHandle backed by monero-wallet-rpc.

    Sync height and daemon connection are cached locally: the wallet RPC
    has no way to query the daemon height, so that call goes through the
    node connection handed over with set_daemon_connection().
    """

    def __init__(
        self,
        uri: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = WALLET_RPC_TIMEOUT,
    ) -> None:
        self._client = JsonRpcClient(uri, username=username, password=password, timeout=timeout)
        self._daemon: Any | None = None
        self._sync_height: int | None = None
        self._refresh_task: asyncio.Task | None = None
        self._primary_address: str | None = None

    @property
    def rpc(self) -> JsonRpcClient:
        return self._client

    async def get_primary_address(self) -> str:
        if self._primary_address is None:
            result = await self._client.call("get_address", {"account_index": 0})
            self._primary_address = result["address"]
        return self._primary_address

    async def create_integrated_address(self) -> IntegratedAddress:
        """Integrated address with a fresh random payment id."""
        result = await self._client.call("make_integrated_address", {})
        return IntegratedAddress(
            integrated_address=result["integrated_address"],
            payment_id=result["payment_id"].lower(),
            standard_address=self._primary_address,
        )

    async def get_incoming_transfers(self, query: TransferQuery) -> list[IncomingTransferRecord]:
        """
        List incoming transfers.

        Confirmed transfers come first sorted by height, then pool and
        failed ones, so the last element is the most recent observation.
        The payment id filter is applied client side.
        """
        params: dict[str, Any] = {
            "in": True,
            "pool": query.include_pool,
            "failed": True,
            "account_index": 0,
        }
        if query.min_height is not None:
            params["filter_by_height"] = True
            params["min_height"] = query.min_height

        result = await self._client.call("get_transfers", params)

        confirmed = sorted(
            (_parse_transfer(e) for e in result.get("in", [])),
            key=lambda t: t.tx.block_height or 0,
        )
        pending = [_parse_transfer(e) for e in result.get("pool", [])]
        failed = [_parse_transfer(e, failed=True) for e in result.get("failed", [])]
        transfers = confirmed + pending + failed

        if query.payment_id is not None:
            wanted = query.payment_id.lower()
            transfers = [t for t in transfers if t.payment_id == wanted]
        return transfers

    async def set_daemon_connection(self, connection: Any) -> None:
        """Point the wallet at the node behind connection (None detaches)."""
        self._daemon = connection
        if connection is None:
            return
        descriptor = connection.descriptor
        params: dict[str, Any] = {"address": descriptor.uri, "trusted": False}
        if descriptor.has_credentials:
            params["username"] = descriptor.username
            params["password"] = descriptor.password
        await self._client.call("set_daemon", params)
        logger.info(f"[Wallet] Daemon set to {descriptor.uri}")

    async def get_daemon_height(self) -> int:
        if self._daemon is None:
            raise NodeConnectionError("Wallet has no daemon connection")
        return await self._daemon.get_height()

    async def get_height(self) -> int:
        result = await self._client.call("get_height")
        return int(result["height"])

    async def set_sync_height(self, height: int) -> None:
        self._sync_height = height

    async def _refresh(self, period: int) -> None:
        params = {"start_height": self._sync_height} if self._sync_height is not None else {}
        try:
            result = await self._client.call("refresh", params, timeout=WALLET_REFRESH_TIMEOUT)
            logger.debug(f"[Wallet] Refresh done, blocks fetched: {result.get('blocks_fetched')}")
        except (NodeConnectionError, WalletRpcError) as e:
            # The scan loop notices a stalled wallet
            logger.warning(f"[Wallet] Refresh failed: {e}")

        try:
            await self._client.call("auto_refresh", {"enable": True, "period": period})
        except (NodeConnectionError, WalletRpcError) as e:
            logger.warning(f"[Wallet] Enabling auto refresh failed: {e}")

    async def start_syncing(self, interval_ms: int) -> None:
        """
        Refresh from the sync height, then keep refreshing every interval.

        The initial refresh runs in the background so callers can follow
        progress through get_height(). Auto refresh is enabled after it
        finishes.
        """
        period = max(1, interval_ms // 1000)
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(
                self._refresh(period), name="wallet-refresh"
            )

    async def stop_syncing(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._client.call("auto_refresh", {"enable": False})

    async def get_balance(self) -> tuple[int, int]:
        result = await self._client.call("get_balance", {"account_index": 0})
        return int(result["balance"]), int(result["unlocked_balance"])

    async def open(self, filename: str, password: str) -> None:
        await self._client.call("open_wallet", {"filename": filename, "password": password})

    async def generate_from_keys(
        self,
        filename: str,
        address: str,
        view_key: str,
        password: str,
        restore_height: int = 0,
    ) -> None:
        """Create a view-only wallet file from address and secret view key."""
        await self._client.call(
            "generate_from_keys",
            {
                "filename": filename,
                "address": address,
                "viewkey": view_key,
                "password": password,
                "restore_height": restore_height,
                "autosave_current": True,
            },
            timeout=WALLET_REFRESH_TIMEOUT,
        )

    async def close(self) -> None:
        """Stop syncing, store and close the wallet file, release HTTP session."""
        try:
            with contextlib.suppress(NodeConnectionError, WalletRpcError):
                await self.stop_syncing()
            await self._client.call("close_wallet", {"autosave_current": True})
        except (NodeConnectionError, WalletRpcError) as e:
            logger.warning(f"[Wallet] close_wallet failed: {e}")
        finally:
            self._daemon = None
            await self._client.close()


async def create_wallet(settings: SimplePaySettings) -> WalletRpcHandle:
    """
    Open the view-only wallet, creating it from keys on first use.

    Args:
        settings: Application settings

    Returns:
        Ready WalletRpcHandle

    Raises:
        ConfigurationError: If the opened wallet belongs to another address
        NodeConnectionError: If wallet RPC is unreachable
    """
    wallet = WalletRpcHandle(
        settings.wallet_rpc_uri,
        username=settings.wallet_rpc_username,
        password=settings.wallet_rpc_password,
    )

    try:
        await wallet.open(settings.wallet_filename, settings.wallet_password)
        logger.info(f"[Wallet] Opened {settings.wallet_filename}")
    except WalletRpcError as e:
        logger.info(f"[Wallet] Cannot open {settings.wallet_filename} ({e.message}), restoring from keys")
        await wallet.generate_from_keys(
            filename=settings.wallet_filename,
            address=settings.primary_address,
            view_key=settings.secret_view_key,
            password=settings.wallet_password,
        )
        logger.success(f"[Wallet] Created view-only wallet {settings.wallet_filename}")

    address = await wallet.get_primary_address()
    if address != settings.primary_address:
        await wallet.close()
        raise ConfigurationError(
            f"Wallet {settings.wallet_filename} belongs to {mask_address(address)}, "
            f"expected {mask_address(settings.primary_address)}"
        )
    return wallet
