"""Payment URI rendering (monero:<address>?tx_amount=...)."""

from decimal import Decimal
from urllib.parse import quote

from simplepay.config.constants import PAYMENT_URI_SCHEME
from simplepay.utils.units import format_xmr


def create_payment_uri(
    address: str,
    amount: Decimal,
    label: str | None = None,
    scheme: str = PAYMENT_URI_SCHEME,
) -> str:
    """
    Build a wallet-scannable payment URI.

    Args:
        address: Integrated address to pay
        amount: Amount in XMR
        label: Optional recipient name, percent-encoded
        scheme: URI scheme

    Returns:
        URI such as monero:4...?tx_amount=1.5&recipient_name=Coffee%20shop
    """
    uri = f"{scheme}:{address}?tx_amount={format_xmr(amount)}"
    if label:
        uri += f"&recipient_name={quote(label, safe='')}"
    return uri
