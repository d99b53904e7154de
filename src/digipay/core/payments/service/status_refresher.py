import logging

from digipay.core.exceptions.PaymentException import PaymentGatewayException
from digipay.core.payments.dto.response.paymentresponse import PaymentResponse
from digipay.core.payments.model.servicetype import ServiceType

logger = logging.getLogger(__name__)

# The status endpoint often leaves these out once the payment is underway
DISPLAY_FIELDS = ("qr_code_base64", "qr_code_url", "payment_link")


def merge_status(previous: PaymentResponse, fresh: PaymentResponse) -> PaymentResponse:
    """Take the fresh response, falling back to the previous QR code and link when fresh ones are empty."""
    return fresh.model_copy(
        update={field: getattr(fresh, field) or getattr(previous, field) for field in DISPLAY_FIELDS}
    )


class StatusRefresher:
    def __init__(self, gateway):
        self.gateway = gateway

    async def query(self, transaction_id: str, service_type: ServiceType) -> PaymentResponse:
        return await self.gateway.query_payment_status(service_type, transaction_id)

    async def refresh(self, previous: PaymentResponse) -> PaymentResponse:
        """Query the gateway and merge; raises PaymentGatewayException without touching previous."""
        fresh = await self.query(previous.transaction_id, previous.service_type)
        if fresh.transaction_id != previous.transaction_id:
            logger.error(
                f"[STATUS_MISMATCH] asked for {previous.transaction_id}, gateway answered {fresh.transaction_id}"
            )
            raise PaymentGatewayException("Payment gateway returned a different transaction")
        return merge_status(previous, fresh)
