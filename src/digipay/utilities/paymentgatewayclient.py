import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from digipay.config import settings
from digipay.core.exceptions.PaymentException import PaymentGatewayException
from digipay.core.payments.dto.request.paymentrequest import (
    PaymentCancelRequest,
    PaymentRequest,
    PaymentStatusRequest,
)
from digipay.core.payments.dto.response.paymentresponse import PaymentResponse
from digipay.core.payments.model.servicetype import ServiceType
from digipay.core.receipts.dto.response.receiptresponse import ReceiptDetails

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def is_success_envelope(envelope: Dict[str, Any]) -> bool:
    """The backend answers with either {success, data} or {status, payload}."""
    if isinstance(envelope.get("success"), bool):
        return envelope["success"]
    if isinstance(envelope.get("status"), str):
        return envelope["status"].lower() == "success"
    return False


def envelope_payload(envelope: Dict[str, Any]) -> Any:
    if "data" in envelope:
        return envelope["data"]
    return envelope.get("payload")


class PaymentGatewayClient:
    """Async client for the collections backend's digital payment and receipt endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        repayments_path: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.GATEWAY_BASE_URL).rstrip("/")
        self.api_token = api_token if api_token is not None else settings.GATEWAY_API_TOKEN
        self.timeout = timeout or settings.GATEWAY_TIMEOUT_SECONDS
        self.repayments_path = "/" + (repayments_path or settings.REPAYMENTS_PATH).strip("/")

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    # ---- digital payments ----

    async def initiate_payment(self, request: PaymentRequest) -> PaymentResponse:
        logger.info(f"[GATEWAY_INITIATE] {request.service_type.value} amount={request.amount}")
        payload = await self._call(
            "POST", "/payments/initiate", "Failed to initiate payment", json=request.to_payload()
        )
        return self._parse(PaymentResponse, payload)

    async def query_payment_status(self, service_type: ServiceType, transaction_id: str) -> PaymentResponse:
        body = PaymentStatusRequest(service_type=service_type, transaction_id=transaction_id)
        payload = await self._call(
            "POST", "/payments/status", "Failed to check payment status",
            json=body.model_dump(by_alias=True, mode="json"),
        )
        return self._parse(PaymentResponse, payload)

    async def cancel_payment(
        self, service_type: ServiceType, transaction_id: str, reason: Optional[str] = None
    ) -> Optional[PaymentResponse]:
        """
        Cancel at the gateway.

        Returns the gateway's view of the transaction when it sends a complete
        one, None when the body is empty or partial.
        """
        body = PaymentCancelRequest(service_type=service_type, transaction_id=transaction_id, reason=reason)
        payload = await self._call(
            "POST", "/payments/cancel", "Failed to cancel payment",
            json=body.model_dump(by_alias=True, exclude_none=True, mode="json"),
            require_payload=False,
        )
        if not payload:
            return None
        try:
            return PaymentResponse.model_validate(payload)
        except ValidationError as e:
            # Envelope already reported success; only the body is unusable
            logger.warning(f"[GATEWAY_CANCEL_PARTIAL] {transaction_id}: {e.error_count()} invalid field(s), ignoring body")
            return None

    async def get_transaction(self, transaction_id: str) -> PaymentResponse:
        payload = await self._call(
            "GET", f"/payments/transaction/{transaction_id}", "Failed to fetch transaction"
        )
        return self._parse(PaymentResponse, payload)

    async def get_transactions_by_case(self, case_id: int) -> List[PaymentResponse]:
        payload = await self._call("GET", f"/payments/case/{case_id}", "Failed to fetch transactions")
        if not isinstance(payload, list):
            raise PaymentGatewayException("Unexpected response from payment gateway")
        return [self._parse(PaymentResponse, item) for item in payload]

    # ---- receipts ----

    async def generate_receipt(self, transaction_id: str) -> ReceiptDetails:
        payload = await self._call(
            "POST", f"/payments/{transaction_id}/generate-receipt", "Failed to generate receipt"
        )
        return self._parse(ReceiptDetails, payload)

    async def fetch_receipt_details(self, receipt_id: int) -> ReceiptDetails:
        payload = await self._call(
            "GET", f"/{receipt_id}/receipt/details", "Failed to fetch receipt details"
        )
        return self._parse(ReceiptDetails, payload)

    async def download_receipt_blob(
        self, receipt_id: Optional[int] = None, transaction_id: Optional[str] = None
    ) -> bytes:
        """
        Fetch the receipt PDF.

        Args:
            receipt_id: repayment receipt id, preferred when known
            transaction_id: digital payment transaction, used otherwise

        Returns:
            Raw file bytes
        """
        if receipt_id is not None:
            path = f"/{receipt_id}/receipt"
        elif transaction_id:
            path = f"/payments/{transaction_id}/receipt/download"
        else:
            raise ValueError("Either receipt_id or transaction_id is required")

        response = await self._send("GET", path, "Failed to download receipt", accept="application/pdf")
        logger.info(f"[GATEWAY_RECEIPT_DOWNLOAD] {path} ({len(response.content)} bytes)")
        return response.content

    # ---- plumbing ----

    async def _send(
        self, method: str, path: str, fallback: str, json: Optional[dict] = None, accept: Optional[str] = None
    ) -> httpx.Response:
        url = f"{self.repayments_path}{path}"
        headers = {"Accept": accept} if accept else None
        try:
            response = await self._client.request(method, url, json=json, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"[GATEWAY_TIMEOUT] {method} {url}")
            raise PaymentGatewayException(f"{fallback}: gateway timeout")
        except httpx.RequestError as e:
            logger.error(f"[GATEWAY_NETWORK_ERROR] {method} {url}: {e}")
            raise PaymentGatewayException(f"{fallback}: network error")

        logger.debug(f"[GATEWAY_RESPONSE] {method} {url} -> {response.status_code}")
        if response.is_error:
            message = self._error_message(response) or fallback
            logger.error(f"[GATEWAY_HTTP_ERROR] {method} {url} -> {response.status_code}: {message}")
            raise PaymentGatewayException(message, status_code=response.status_code)
        return response

    async def _call(
        self, method: str, path: str, fallback: str, json: Optional[dict] = None, require_payload: bool = True
    ) -> Any:
        response = await self._send(method, path, fallback, json=json)
        try:
            envelope = response.json()
        except ValueError:
            logger.error(f"[GATEWAY_BAD_BODY] {method} {path}: {response.text[:200]}")
            raise PaymentGatewayException(fallback, status_code=response.status_code)

        if not isinstance(envelope, dict):
            raise PaymentGatewayException(fallback, status_code=response.status_code)

        payload = envelope_payload(envelope)
        if not is_success_envelope(envelope) or (require_payload and payload is None):
            raise PaymentGatewayException(envelope.get("message") or fallback, status_code=response.status_code)
        return payload

    @staticmethod
    def _parse(model: Type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.error(f"[GATEWAY_BAD_PAYLOAD] {model.__name__}: {e}")
            raise PaymentGatewayException("Unexpected response from payment gateway")

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("message") or body.get("error")
        return None
