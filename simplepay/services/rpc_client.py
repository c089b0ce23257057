"""
JSON-RPC client over aiohttp.

Shared by the monerod connection and the wallet RPC handle. Transport
failures become NodeConnectionError; JSON-RPC error objects become
WalletRpcError.
"""

from typing import Any

import aiohttp
from loguru import logger

from simplepay.utils.exceptions import NodeConnectionError, WalletRpcError


class JsonRpcClient:
    """Minimal Monero-style JSON-RPC client (POST <uri>/json_rpc)."""

    def __init__(
        self,
        uri: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30,
    ) -> None:
        """
        Initialize client.

        Args:
            uri: Base endpoint, e.g. http://127.0.0.1:18081
            username: Optional RPC login
            password: Optional RPC password
            timeout: Default request timeout in seconds
        """
        self.uri = uri.rstrip("/")
        self._auth = (
            aiohttp.BasicAuth(username, password)
            if username and password
            else None
        )
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(auth=self._auth)
        return self._session

    async def _post(self, path: str, payload: dict[str, Any], timeout: float | None) -> dict[str, Any]:
        url = f"{self.uri}/{path}"
        try:
            session = await self._get_session()
            async with session.post(
                url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=timeout or self._timeout),
                headers={"Content-Type": "application/json"},
            ) as response:
                if response.status != 200:
                    raise NodeConnectionError(f"HTTP {response.status} from {url}")
                return await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            raise NodeConnectionError(f"Request to {url} failed: {type(e).__name__}: {e}") from e

    async def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Make JSON-RPC call.

        Args:
            method: RPC method name
            params: RPC parameters
            timeout: Override default timeout in seconds

        Returns:
            The "result" object

        Raises:
            NodeConnectionError: On transport failure
            WalletRpcError: If the endpoint returns an error object
        """
        payload = {
            "jsonrpc": "2.0",
            "id": "0",
            "method": method,
            "params": params or {},
        }
        data = await self._post("json_rpc", payload, timeout)

        if "error" in data:
            err = data["error"] or {}
            logger.debug(f"RPC error on {method}: {err}")
            raise WalletRpcError(method, err.get("code"), err.get("message", str(err)))

        result = data.get("result")
        if result is None:
            raise WalletRpcError(method, None, "Empty result")
        return result

    async def call_other(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Call a non-JSON-RPC endpoint such as monerod's /get_height."""
        return await self._post(path, params or {}, None)

    async def close(self) -> None:
        """Close the HTTP session. Safe to call multiple times."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
