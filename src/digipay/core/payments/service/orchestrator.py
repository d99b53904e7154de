import logging
from contextlib import contextmanager
from typing import Any, Callable, Optional

from pydantic import ValidationError

from digipay.config import settings
from digipay.core.exceptions.PaymentException import (
    IllegalPaymentStateException,
    OperationInProgressException,
    PaymentGatewayException,
    PaymentValidationException,
)
from digipay.core.payments.dto.request.paymentrequest import PaymentRequest
from digipay.core.payments.dto.response.paymentresponse import PaymentResponse
from digipay.core.payments.model.paymentsession import PaymentFormFields
from digipay.core.payments.model.paymentstatus import PaymentStatus
from digipay.core.payments.model.transactionphase import TransactionPhase
from digipay.core.payments.service.request_builder import INVALID_REQUEST, build_request
from digipay.core.payments.service.status_refresher import StatusRefresher, merge_status
from digipay.core.payments.service.transaction_state import TransactionState
from digipay.core.receipts.dto.response.receiptresponse import ReceiptDetails
from digipay.core.receipts.service.receipt_downloader import (
    DirectoryReceiptSaver,
    ReceiptDownloader,
    ReceiptSaver,
    ReceiptTarget,
    TemporaryBlobHandle,
)
from digipay.core.receipts.service.receipt_service import ReceiptService

logger = logging.getLogger(__name__)


class PaymentOrchestrator:
    """
    Drives one collector's digital payment: initiate, refresh, cancel,
    receipt, download, new payment.

    Validation and gateway failures are turned into `last_error` for the
    collector to read. Receipt failures are only logged. Calls made in the
    wrong state raise IllegalPaymentStateException, and so does starting an
    operation while another one is still awaiting the gateway.
    """

    def __init__(
        self,
        gateway,
        form: Optional[PaymentFormFields] = None,
        saver: Optional[ReceiptSaver] = None,
        handle_factory: Callable[[bytes], TemporaryBlobHandle] = TemporaryBlobHandle,
        show_cancelled_status: Optional[bool] = None,
        cancel_reason: Optional[str] = None,
    ):
        self.gateway = gateway
        self.show_cancelled_status = (
            settings.SHOW_CANCELLED_STATUS if show_cancelled_status is None else show_cancelled_status
        )
        self.cancel_reason = cancel_reason or settings.DEFAULT_CANCEL_REASON

        self._form = form or PaymentFormFields()
        self._state = TransactionState()
        self._refresher = StatusRefresher(gateway)
        self._receipts = ReceiptService(gateway)
        self._downloader = ReceiptDownloader(
            gateway,
            saver=saver or DirectoryReceiptSaver(settings.RECEIPT_DOWNLOAD_DIR),
            handle_factory=handle_factory,
        )
        self._last_error: Optional[str] = None
        self._busy: Optional[str] = None

    # ---- read-only views ----

    @property
    def payment(self) -> Optional[PaymentResponse]:
        return self._state.payment

    @property
    def receipt(self) -> Optional[ReceiptDetails]:
        return self._state.receipt

    @property
    def phase(self) -> TransactionPhase:
        return self._state.phase

    @property
    def form(self) -> PaymentFormFields:
        return self._form

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def busy_operation(self) -> Optional[str]:
        return self._busy

    @property
    def can_refresh(self) -> bool:
        return self._busy is None and self.phase == TransactionPhase.ACTIVE

    @property
    def can_cancel(self) -> bool:
        return self._busy is None and self.phase == TransactionPhase.ACTIVE

    @property
    def can_generate_receipt(self) -> bool:
        return self._busy is None and self._is_successful() and self.receipt is None

    @property
    def can_download(self) -> bool:
        return self._busy is None and self._is_successful()

    @property
    def can_start_new_payment(self) -> bool:
        return self._busy is None and self.phase != TransactionPhase.ACTIVE

    # ---- form ----

    def update_form(self, **changes: Any) -> PaymentFormFields:
        self._ensure_idle()
        try:
            self._form = PaymentFormFields.model_validate({**self._form.model_dump(), **changes})
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "form"
            logger.info(f"[PAYMENT_FORM_INVALID] {field}: {error['msg']}")
            raise PaymentValidationException(INVALID_REQUEST, f"Invalid {field}: {error['msg']}")
        return self._form

    def build_request(self) -> PaymentRequest:
        return build_request(self._form)

    def dismiss_error(self):
        self._last_error = None

    # ---- operations ----

    async def initiate(self, fields: Optional[PaymentFormFields] = None) -> Optional[PaymentResponse]:
        with self._operation("initiate"):
            if self.phase != TransactionPhase.NONE:
                raise IllegalPaymentStateException(
                    f"Payment {self.payment.transaction_id} is still open; start a new payment first"
                )
            if fields is not None:
                self._form = fields
            self._last_error = None

            try:
                request = self.build_request()
            except PaymentValidationException as e:
                logger.info(f"[PAYMENT_INITIATE_REJECTED] {e.code}")
                self._last_error = e.message
                return None

            try:
                response = await self.gateway.initiate_payment(request)
            except PaymentGatewayException as e:
                logger.error(f"[PAYMENT_INITIATE_FAILED] {e.message}")
                self._last_error = e.message
                return None

            self._state.begin(response)
            await self._generate_receipt_on_success(previous_status=None)
            return self.payment

    async def refresh_status(self) -> PaymentResponse:
        with self._operation("refresh"):
            previous = self._state.require_payment("refresh the payment status")
            try:
                merged = await self._refresher.refresh(previous)
            except PaymentGatewayException as e:
                logger.error(f"[PAYMENT_REFRESH_FAILED] {previous.transaction_id}: {e.message}")
                self._last_error = e.message
                return previous

            self._state.apply(merged)
            await self._generate_receipt_on_success(previous_status=previous.status)
            return self.payment

    async def cancel(self, reason: Optional[str] = None) -> Optional[PaymentResponse]:
        """
        Cancel at the gateway.

        With show_cancelled_status, a terminal status confirmed by the
        gateway is kept on screen; otherwise the transaction is cleared.
        """
        with self._operation("cancel"):
            payment = self._state.require_cancellable()
            try:
                confirmed = await self.gateway.cancel_payment(
                    payment.service_type, payment.transaction_id, reason or self.cancel_reason
                )
            except PaymentGatewayException as e:
                logger.error(f"[PAYMENT_CANCEL_FAILED] {payment.transaction_id}: {e.message}")
                self._last_error = e.message
                return payment

            self._last_error = None
            logger.info(f"[PAYMENT_CANCELLED] {payment.transaction_id}")
            if (
                self.show_cancelled_status
                and confirmed is not None
                and confirmed.transaction_id == payment.transaction_id
                and confirmed.status.is_terminal
            ):
                return self._state.apply(merge_status(payment, confirmed))

            self._state.clear()
            return None

    async def generate_receipt_manually(self) -> Optional[ReceiptDetails]:
        with self._operation("generate_receipt"):
            payment = self._state.require_payment("generate a receipt")
            if not payment.status.is_success:
                raise IllegalPaymentStateException(
                    f"Payment {payment.transaction_id} is {payment.status.value}; receipts need a successful payment"
                )
            return await self._generate_receipt(payment.transaction_id)

    async def download(self, saver: Optional[ReceiptSaver] = None) -> Any:
        """Download the receipt of a successful payment; returns whatever the saver returns, or None on failure."""
        with self._operation("download"):
            payment, receipt = self.payment, self.receipt
            if payment is None:
                logger.info("[RECEIPT_DOWNLOAD_SKIPPED] no transaction")
                return None
            if not payment.status.is_success:
                raise IllegalPaymentStateException(
                    f"Payment {payment.transaction_id} is {payment.status.value}; receipts need a successful payment"
                )

            target = ReceiptTarget.for_payment(payment, receipt)
            try:
                return await self._downloader.download(target, saver=saver)
            except PaymentGatewayException as e:
                logger.error(f"[RECEIPT_DOWNLOAD_FAILED] {payment.transaction_id}: {e.message}")
                self._last_error = e.message
            except OSError as e:
                logger.error(f"[RECEIPT_SAVE_FAILED] {target.filename}: {e}")
                self._last_error = "Failed to save receipt"
            return None

    def new_payment(self) -> PaymentFormFields:
        self._ensure_idle()
        payment = self.payment
        self._state.reset()
        if payment is not None:
            self._receipts.forget(payment.transaction_id)
        self._form = self._form.reset_for_new_payment()
        self._last_error = None
        return self._form

    # ---- internals ----

    def _is_successful(self) -> bool:
        return self.payment is not None and self.payment.status.is_success

    async def _generate_receipt_on_success(self, previous_status: Optional[PaymentStatus]):
        if not self._is_successful():
            return
        if previous_status is not None and previous_status.is_success and self.receipt is not None:
            return
        await self._generate_receipt(self.payment.transaction_id)

    async def _generate_receipt(self, transaction_id: str) -> Optional[ReceiptDetails]:
        receipt = await self._receipts.generate(transaction_id)
        if receipt is not None:
            self._state.attach_receipt(receipt)
        return receipt

    def _ensure_idle(self):
        if self._busy is not None:
            raise OperationInProgressException(self._busy)

    @contextmanager
    def _operation(self, name: str):
        self._ensure_idle()
        self._busy = name
        try:
            yield
        finally:
            self._busy = None
