"""
Security utilities for masking sensitive data in logs.

Provides functions to safely mask sensitive information like:
- Wallet and integrated addresses
- Payment ids
- Transaction hashes
- View keys and passwords
"""


def mask_address(address: str | None) -> str:
    """
    Mask wallet address for logging: 4AdUnd...mdnS

    Args:
        address: Wallet address to mask

    Returns:
        Masked address showing first 6 and last 4 characters

    Examples:
        >>> mask_address("44AFFq5kSiGBoZ4NMDwYtN18obc8AemS33DBLWs3H7otXft3XjrpDtQGv7SqSsaBYBb98uNbr2VBBEt7f2wfn3RVGQBEP3A")
        '44AFFq...EP3A'
        >>> mask_address(None)
        '***'
        >>> mask_address("short")
        '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_payment_id(payment_id: str | None) -> str:
    """
    Mask payment id for logging, keeping the first and last 4 characters.

    Examples:
        >>> mask_payment_id("a1b2c3d4e5f60718")
        'a1b2...0718'
    """
    if not payment_id or len(payment_id) < 12:
        return "***"
    return f"{payment_id[:4]}...{payment_id[-4:]}"


def mask_tx_hash(tx_hash: str | None) -> str:
    """
    Mask transaction hash for logging.

    Args:
        tx_hash: Transaction hash to mask

    Returns:
        Masked hash showing first 10 and last 6 characters
    """
    if not tx_hash or len(tx_hash) < 16:
        return "***"
    return f"{tx_hash[:10]}...{tx_hash[-6:]}"


def mask_sensitive(value: str | None, show_chars: int = 4) -> str:
    """
    Mask sensitive string (view keys, passwords).

    Args:
        value: Sensitive value to mask
        show_chars: Number of leading characters to keep

    Returns:
        Masked string
    """
    if not value:
        return "***"
    if len(value) <= show_chars:
        return "*" * len(value)
    return f"{value[:show_chars]}{'*' * 8}"
