import logging
from typing import Optional

from digipay.core.exceptions.PaymentException import IllegalPaymentStateException
from digipay.core.payments.dto.response.paymentresponse import PaymentResponse
from digipay.core.payments.model.transactionphase import TransactionPhase
from digipay.core.receipts.dto.response.receiptresponse import ReceiptDetails

logger = logging.getLogger(__name__)


class TransactionState:
    """
    Owns the transaction context: at most one payment and one receipt.

    NONE -> ACTIVE (INITIATED/PENDING) -> TERMINAL. Terminal statuses are
    absorbing; only reset() leaves them, and only reset() or clear() get
    back to NONE. Every transition checks the current phase and raises
    IllegalPaymentStateException when the caller got the order wrong.
    """

    def __init__(self):
        self._payment: Optional[PaymentResponse] = None
        self._receipt: Optional[ReceiptDetails] = None

    @property
    def payment(self) -> Optional[PaymentResponse]:
        return self._payment

    @property
    def receipt(self) -> Optional[ReceiptDetails]:
        return self._receipt

    @property
    def phase(self) -> TransactionPhase:
        if self._payment is None:
            return TransactionPhase.NONE
        if self._payment.status.is_terminal:
            return TransactionPhase.TERMINAL
        return TransactionPhase.ACTIVE

    def require_payment(self, action: str) -> PaymentResponse:
        if self._payment is None:
            raise IllegalPaymentStateException(f"Cannot {action}: no payment in progress")
        return self._payment

    def require_cancellable(self) -> PaymentResponse:
        payment = self.require_payment("cancel the payment")
        if payment.status.is_terminal:
            raise IllegalPaymentStateException(
                f"Cannot cancel payment {payment.transaction_id}: already {payment.status.value}"
            )
        return payment

    def begin(self, response: PaymentResponse) -> PaymentResponse:
        if self._payment is not None:
            raise IllegalPaymentStateException(
                f"Payment {self._payment.transaction_id} is still open; start a new payment first"
            )
        self._payment = response
        logger.info(f"[TXN_BEGIN] {response.transaction_id} -> {response.status.value}")
        return response

    def apply(self, response: PaymentResponse) -> PaymentResponse:
        current = self.require_payment("update the payment status")
        if current.status.is_terminal and response.status != current.status:
            logger.warning(
                f"[TXN_TERMINAL_KEPT] {current.transaction_id} stays {current.status.value}, "
                f"ignoring {response.status.value}"
            )
            response = response.model_copy(update={"status": current.status})
        if response.status != current.status:
            logger.info(f"[TXN_STATUS] {current.transaction_id}: {current.status.value} -> {response.status.value}")
        self._payment = response
        return response

    def attach_receipt(self, receipt: ReceiptDetails) -> ReceiptDetails:
        payment = self.require_payment("attach a receipt")
        if not payment.status.is_success:
            raise IllegalPaymentStateException(
                f"Payment {payment.transaction_id} is {payment.status.value}; receipts need a successful payment"
            )
        self._receipt = receipt
        return receipt

    def clear(self):
        self._payment = None
        self._receipt = None

    def reset(self):
        if self.phase == TransactionPhase.ACTIVE:
            raise IllegalPaymentStateException(
                f"Payment {self._payment.transaction_id} is still {self._payment.status.value}; cancel it first"
            )
        self.clear()
