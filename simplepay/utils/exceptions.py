"""
Exception handling utilities.

Defines the SimplePay exception hierarchy and categorizes exceptions
by handling strategy.
"""

import aiohttp


class SimplePayError(Exception):
    """Base class for all SimplePay errors."""
    pass


class ConfigurationError(SimplePayError):
    """Raised when settings are missing or malformed."""
    pass


class NotReadyError(SimplePayError):
    """
    Raised when an operation needs a synchronized wallet view.

    Recoverable: retry once readiness becomes true.
    """
    pass


class NodeConnectionError(SimplePayError):
    """Raised on transport failures talking to monerod or wallet RPC."""
    pass


class WalletRpcError(SimplePayError):
    """Raised when a JSON-RPC endpoint answers with an error object."""

    def __init__(self, method: str, code: int | None, message: str) -> None:
        self.method = method
        self.code = code
        self.message = message
        super().__init__(f"RPC '{method}' failed (code={code}): {message}")


class SyncInterruptedError(SimplePayError):
    """Raised inside the scan loop when a sync step fails mid-flight."""
    pass


class InvalidAmountError(SimplePayError, ValueError):
    """Raised for non-positive or sub-atomic payment amounts."""
    pass


class PaymentIdCollisionError(SimplePayError):
    """Raised when the wallet keeps returning already issued payment ids."""
    pass


# Exception categories based on handling strategy

# Must log but can continue - transient node/network failures
MUST_LOG = (
    NodeConnectionError,  # Connection manager retries
    WalletRpcError,       # Reported as "not detected", caller re-polls
    aiohttp.ClientError,
    TimeoutError,
)

# Must raise - programmer misuse or invalid input
MUST_RAISE = (
    NotReadyError,
    ConfigurationError,
    ValueError,
    TypeError,
)


def must_log(exc: Exception) -> bool:
    """
    Check if exception is transient and must only be logged.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be logged and absorbed
    """
    return isinstance(exc, MUST_LOG)


def must_raise(exc: Exception) -> bool:
    """
    Check if exception must be raised to the caller.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be raised
    """
    return isinstance(exc, MUST_RAISE)
