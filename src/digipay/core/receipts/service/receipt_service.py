import logging
from typing import Dict, Optional

from digipay.core.exceptions.PaymentException import PaymentGatewayException, ReceiptGenerationException
from digipay.core.receipts.dto.response.receiptresponse import ReceiptDetails

logger = logging.getLogger(__name__)


class ReceiptService:
    """
    Generates and fetches receipts for successful payments.

    A receipt is a convenience for the collector, not part of the payment:
    every failure here is logged and swallowed, and generate() returns None.
    Calling generate() again for the same transaction is safe. Once the
    backend has handed out a receipt id, later calls only re-fetch the
    details instead of asking for another receipt. A duplicate answer with
    nothing known locally falls back to the transaction lookup for the id.
    """

    def __init__(self, gateway):
        self.gateway = gateway
        self._receipts: Dict[str, ReceiptDetails] = {}

    async def generate(self, transaction_id: str) -> Optional[ReceiptDetails]:
        try:
            return await self._generate(transaction_id)
        except ReceiptGenerationException as e:
            logger.warning(f"[RECEIPT_GENERATE_FAILED] {e}")
            return None

    def known_receipt(self, transaction_id: str) -> Optional[ReceiptDetails]:
        return self._receipts.get(transaction_id)

    def forget(self, transaction_id: str):
        self._receipts.pop(transaction_id, None)

    async def _generate(self, transaction_id: str) -> Optional[ReceiptDetails]:
        known = self._receipts.get(transaction_id)
        if known is not None and known.id is not None:
            logger.info(f"[RECEIPT_REFRESH] {transaction_id} already has receipt {known.id}")
            return await self._fetch_details(transaction_id, known)

        try:
            generated = await self.gateway.generate_receipt(transaction_id)
        except PaymentGatewayException as e:
            if e.is_duplicate:
                logger.info(f"[RECEIPT_ALREADY_EXISTS] {transaction_id}: {e.message}")
                return known or await self._recover(transaction_id)
            raise ReceiptGenerationException(transaction_id, e.message) from e

        logger.info(f"[RECEIPT_GENERATED] {transaction_id} -> receipt {generated.id}")
        self._receipts[transaction_id] = generated
        if generated.id is None:
            return generated
        return await self._fetch_details(transaction_id, generated)

    async def _recover(self, transaction_id: str) -> Optional[ReceiptDetails]:
        """Find the receipt id of an already generated receipt through the transaction lookup."""
        try:
            payment = await self.gateway.get_transaction(transaction_id)
        except PaymentGatewayException as e:
            raise ReceiptGenerationException(transaction_id, e.message) from e
        if payment.repayment_id is None:
            logger.info(f"[RECEIPT_ID_UNKNOWN] {transaction_id}: transaction carries no repayment id")
            return None
        logger.info(f"[RECEIPT_RECOVERED] {transaction_id} -> receipt {payment.repayment_id}")
        return await self._fetch_details(transaction_id, ReceiptDetails(id=payment.repayment_id))

    async def _fetch_details(self, transaction_id: str, receipt: ReceiptDetails) -> ReceiptDetails:
        try:
            details = await self.gateway.fetch_receipt_details(receipt.id)
        except PaymentGatewayException as e:
            raise ReceiptGenerationException(transaction_id, e.message) from e
        if details.id is None:
            details = details.model_copy(update={"id": receipt.id})
        self._receipts[transaction_id] = details
        return details
