"""Payment requests and payment matching."""

from simplepay.services.payment.matching_engine import PaymentMatchingEngine, classify_transfers
from simplepay.services.payment.payment_uri import create_payment_uri
from simplepay.services.payment.request_factory import PaymentRequestFactory


__all__ = [
    "PaymentMatchingEngine",
    "PaymentRequestFactory",
    "classify_transfers",
    "create_payment_uri",
]
