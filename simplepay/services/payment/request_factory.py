"""
Payment request factory.

Mints payment requests with a fresh integrated address each. Payment ids
are never handed out twice by the same factory.
"""

from collections.abc import Iterable
from decimal import Decimal

from loguru import logger

from simplepay.config.constants import (
    DEFAULT_CONFIRMATIONS,
    PAYMENT_ID_MAX_ATTEMPTS,
    PAYMENT_URI_SCHEME,
)
from simplepay.models.payment import PaymentRequest
from simplepay.services.payment.payment_uri import create_payment_uri
from simplepay.services.wallet.readiness import ReadinessState
from simplepay.services.wallet.wallet_handle import WalletHandle
from simplepay.utils.exceptions import (
    InvalidAmountError,
    NotReadyError,
    PaymentIdCollisionError,
)
from simplepay.utils.security import mask_address, mask_payment_id
from simplepay.utils.units import atomic_units_to_xmr, format_xmr, xmr_to_atomic_units


class PaymentRequestFactory:
    """Creates payment requests against a synchronized wallet."""

    def __init__(
        self,
        wallet: WalletHandle,
        readiness: ReadinessState,
        default_confirmations: int = DEFAULT_CONFIRMATIONS,
        uri_scheme: str = PAYMENT_URI_SCHEME,
        issued_ids: Iterable[str] = (),
        max_attempts: int = PAYMENT_ID_MAX_ATTEMPTS,
    ) -> None:
        """
        Initialize factory.

        Args:
            wallet: Wallet deriving integrated addresses
            readiness: Readiness gate; requests are refused while not ready
            default_confirmations: Used when a request names no confirmations
            uri_scheme: Payment URI scheme
            issued_ids: Payment ids already handed out (e.g. loaded from storage)
            max_attempts: Fresh addresses to try before giving up on a collision
        """
        self.wallet = wallet
        self.readiness = readiness
        self.default_confirmations = default_confirmations
        self.uri_scheme = uri_scheme
        self.max_attempts = max_attempts
        self._issued: set[str] = {pid.lower() for pid in issued_ids}

    @property
    def issued_count(self) -> int:
        return len(self._issued)

    def was_issued(self, payment_id: str) -> bool:
        return payment_id.lower() in self._issued

    async def create_payment_request(
        self,
        amount: Decimal | int | float | str,
        label: str | None = None,
        requested_confirmations: int | None = None,
    ) -> PaymentRequest:
        """
        Create a payment request.

        Args:
            amount: Amount in XMR
            label: Optional recipient name shown by the payer's wallet
            requested_confirmations: Confirmations needed for success,
                default_confirmations when None

        Returns:
            New PaymentRequest with a never issued payment id

        Raises:
            NotReadyError: If the wallet is not synchronized
            InvalidAmountError: If amount is not positive or finer than
                one atomic unit
            ValueError: If requested_confirmations is negative
            PaymentIdCollisionError: If the wallet keeps returning issued ids
        """
        if not self.readiness.is_ready:
            raise NotReadyError("Wallet is not synchronized; cannot create payment request")

        amount_atomic = xmr_to_atomic_units(amount)
        if amount_atomic <= 0:
            raise InvalidAmountError(f"Payment amount must be positive, got {amount}")

        if requested_confirmations is None:
            requested_confirmations = self.default_confirmations
        elif requested_confirmations < 0:
            raise ValueError(
                f"requested_confirmations must be >= 0, got {requested_confirmations}"
            )

        for attempt in range(1, self.max_attempts + 1):
            integrated = await self.wallet.create_integrated_address()
            payment_id = integrated.payment_id.lower()
            if payment_id not in self._issued:
                break
            logger.warning(
                f"[Payment] Payment id {mask_payment_id(payment_id)} already issued "
                f"(attempt {attempt}/{self.max_attempts})"
            )
        else:
            raise PaymentIdCollisionError(
                f"No unused payment id after {self.max_attempts} attempts"
            )

        self._issued.add(payment_id)

        request_amount = atomic_units_to_xmr(amount_atomic)
        request = PaymentRequest(
            payment_id=payment_id,
            integrated_address=integrated.integrated_address,
            amount_atomic=amount_atomic,
            requested_confirmations=requested_confirmations,
            label=label,
            payment_uri=create_payment_uri(
                integrated.integrated_address, request_amount, label, scheme=self.uri_scheme
            ),
        )

        logger.info(
            f"[Payment] Created request {mask_payment_id(payment_id)}: "
            f"{format_xmr(request_amount)} XMR to {mask_address(request.integrated_address)}, "
            f"{requested_confirmations} confirmations"
        )
        return request
