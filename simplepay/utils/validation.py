"""Monero address and key format validation."""

import re

from simplepay.config.constants import (
    BASE58_ALPHABET,
    INTEGRATED_ADDRESS_LENGTH,
    MAINNET_ADDRESS_PREFIXES,
    STAGENET_ADDRESS_PREFIXES,
    STANDARD_ADDRESS_LENGTH,
)

_BASE58_CHARS = frozenset(BASE58_ALPHABET)
_HEX_64 = re.compile(r"^[0-9a-fA-F]{64}$")
_PAYMENT_ID = re.compile(r"^[0-9a-fA-F]{16}$")


def _is_base58(value: str) -> bool:
    return bool(value) and all(c in _BASE58_CHARS for c in value)


def validate_monero_address(
    address: str,
    network: str | None = None,
    integrated: bool = False,
) -> bool:
    """
    Validate Monero address format (length, base58 charset, network prefix).

    Checksums are not verified; the wallet RPC rejects bad checksums.

    Args:
        address: Address string
        network: "mainnet" or "stagenet" to also check the prefix
        integrated: Expect an integrated address instead of a standard one

    Returns:
        True if address format is valid
    """
    if not address:
        return False

    expected_length = INTEGRATED_ADDRESS_LENGTH if integrated else STANDARD_ADDRESS_LENGTH
    if len(address) != expected_length or not _is_base58(address):
        return False

    if network == "mainnet":
        return address.startswith(MAINNET_ADDRESS_PREFIXES)
    if network == "stagenet":
        return address.startswith(STAGENET_ADDRESS_PREFIXES)
    return True


def validate_view_key(key: str) -> bool:
    """Secret view key: 32 bytes hex encoded."""
    return bool(key) and bool(_HEX_64.match(key))


def validate_payment_id(payment_id: str) -> bool:
    """Short (integrated address) payment id: 8 bytes hex encoded."""
    return bool(payment_id) and bool(_PAYMENT_ID.match(payment_id))
