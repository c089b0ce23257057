"""
Application constants.

Centralized constants for SimplePay.
"""

# ========================================================================
# MONERO UNITS
# ========================================================================

XMR_DECIMALS = 12
ATOMIC_UNITS_PER_XMR = 10**XMR_DECIMALS  # piconero per XMR

PAYMENT_URI_SCHEME = "monero"

# Standard and integrated address lengths (base58)
STANDARD_ADDRESS_LENGTH = 95
INTEGRATED_ADDRESS_LENGTH = 106

# Address prefixes by network (first base58 character)
MAINNET_ADDRESS_PREFIXES = ("4",)
STAGENET_ADDRESS_PREFIXES = ("5",)

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

# ========================================================================
# PAYMENT POLICY
# ========================================================================

DEFAULT_CONFIRMATIONS = 10
PAYMENT_ID_MAX_ATTEMPTS = 5  # Fresh integrated address attempts before giving up
PAYMENT_POLL_INTERVAL = 10.0  # Seconds between evaluations in wait_for_payment

# ========================================================================
# CONNECTION & SYNC
# ========================================================================

HEALTH_CHECK_TIMEOUT = 40.0  # Seconds per monerod health check
HEALTH_CHECK_INTERVAL = 15.0  # Seconds between health checks
NODE_RPC_TIMEOUT = 30  # monerod HTTP timeout
WALLET_RPC_TIMEOUT = 30  # monero-wallet-rpc HTTP timeout
WALLET_REFRESH_TIMEOUT = 120  # Initial refresh from restore height

DEFAULT_SYNC_INTERVAL_MS = 5000  # Wallet auto-refresh period

# Restore one block below the daemon tip: the height query and sync start
# race on the node and the tip block can otherwise be skipped.
RESTORE_HEIGHT_OFFSET = 1

SEEN_OUTPUTS_LIMIT = 10_000  # Output notifications remembered for dedup
