"""
SimplePay: Monero payment request tracking with a view-only wallet.
"""

from simplepay.services.simple_pay import SimplePay


__version__ = "0.1.0"

__all__ = ["SimplePay", "__version__"]
