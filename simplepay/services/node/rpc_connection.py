"""
Remote node connection.

Wraps one monerod endpoint: health checks via get_info and the current
chain height via /get_height.
"""

from loguru import logger

from simplepay.config.constants import NODE_RPC_TIMEOUT
from simplepay.models.connection import NodeConnectionDescriptor
from simplepay.services.rpc_client import JsonRpcClient
from simplepay.utils.exceptions import NodeConnectionError, WalletRpcError


class NodeRpcConnection:
    """Connection to a single monerod endpoint."""

    def __init__(
        self,
        descriptor: NodeConnectionDescriptor,
        timeout: float = NODE_RPC_TIMEOUT,
    ) -> None:
        self.descriptor = descriptor
        self._client = JsonRpcClient(
            descriptor.uri,
            username=descriptor.username,
            password=descriptor.password,
            timeout=timeout,
        )
        self._connected = False

    @property
    def uri(self) -> str:
        return self.descriptor.uri

    def is_connected(self) -> bool:
        """Result of the most recent health check."""
        return self._connected

    async def check_connection(self) -> bool:
        """
        Probe the node with get_info.

        A node reporting itself offline counts as disconnected.

        Returns:
            True if the node answered and is online
        """
        try:
            info = await self._client.call("get_info")
            self._connected = info.get("status") == "OK" and not info.get("offline", False)
        except (NodeConnectionError, WalletRpcError) as e:
            logger.debug(f"[Node] Health check failed for {self.uri}: {e}")
            self._connected = False
        return self._connected

    async def get_height(self) -> int:
        """
        Current chain height reported by the node.

        Raises:
            NodeConnectionError: If the node cannot be reached or answers badly
        """
        data = await self._client.call_other("get_height")
        if data.get("status") != "OK" or "height" not in data:
            raise NodeConnectionError(f"Unexpected get_height response from {self.uri}: {data}")
        return int(data["height"])

    async def close(self) -> None:
        """Release HTTP resources."""
        self._connected = False
        await self._client.close()

    def __repr__(self) -> str:
        return f"NodeRpcConnection(uri={self.uri!r}, connected={self._connected})"
