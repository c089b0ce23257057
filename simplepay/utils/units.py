"""
Amount conversion between XMR display units and atomic units.

Uses Decimal arithmetic throughout to avoid float precision issues.
"""

from decimal import Decimal, InvalidOperation

from simplepay.config.constants import ATOMIC_UNITS_PER_XMR
from simplepay.utils.exceptions import InvalidAmountError


def to_decimal(amount: Decimal | int | float | str) -> Decimal:
    """
    Convert user supplied amount to Decimal.

    Floats go through str() so 1.1 becomes Decimal("1.1"), not the
    binary approximation.

    Raises:
        InvalidAmountError: If amount is not a finite number
    """
    if isinstance(amount, bool):
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    try:
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmountError(f"Invalid amount: {amount!r}") from e
    if not value.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    return value


def xmr_to_atomic_units(amount: Decimal | int | float | str) -> int:
    """
    Convert XMR amount to atomic units (piconero).

    Args:
        amount: Amount in XMR

    Returns:
        Amount in atomic units

    Raises:
        InvalidAmountError: If amount has more than 12 decimal places
    """
    value = to_decimal(amount) * ATOMIC_UNITS_PER_XMR
    if value != value.to_integral_value():
        raise InvalidAmountError(
            f"Amount {amount} has more precision than one atomic unit"
        )
    return int(value)


def atomic_units_to_xmr(atomic_units: int) -> Decimal:
    """Convert atomic units to XMR."""
    return Decimal(int(atomic_units)) / Decimal(ATOMIC_UNITS_PER_XMR)


def format_xmr(amount: Decimal) -> str:
    """
    Format XMR amount without exponent or trailing zeros.

    Examples:
        >>> format_xmr(Decimal("1.500000000000"))
        '1.5'
        >>> format_xmr(Decimal("10"))
        '10'
    """
    return format(amount.normalize(), "f")
