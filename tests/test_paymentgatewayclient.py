import json
from decimal import Decimal

import httpx
import pytest

from digipay.core.exceptions.PaymentException import PaymentGatewayException
from digipay.core.payments.dto.request.paymentrequest import CollectCallRequest, DynamicQrPaymentRequest
from digipay.core.payments.model.paymentsession import PaymentFormFields
from digipay.core.payments.model.paymentstatus import PaymentStatus
from digipay.core.payments.model.servicetype import InstrumentType, ServiceType
from digipay.core.payments.model.transactionphase import TransactionPhase
from digipay.core.payments.service.orchestrator import PaymentOrchestrator
from digipay.utilities.paymentgatewayclient import (
    PaymentGatewayClient,
    envelope_payload,
    is_success_envelope,
)

BASE_URL = "http://gateway.test/api/v1"

PAYMENT = {
    "serviceType": "DYNAMIC_QR",
    "transactionId": "TXN1",
    "amount": 500.0,
    "status": "INITIATED",
    "qrCodeBase64": "Q1",
    "unknownField": "ignored",
}


class Recorder:
    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


def make_client(handler, **kwargs):
    recorder = Recorder(handler)
    client = PaymentGatewayClient(
        base_url=BASE_URL,
        api_token=kwargs.pop("api_token", "secret"),
        timeout=5,
        repayments_path="/collections/repayments",
        transport=httpx.MockTransport(recorder),
    )
    return client, recorder


@pytest.mark.parametrize("envelope,expected", [
    ({"success": True, "data": {}}, True),
    ({"success": False, "data": {}}, False),
    ({"status": "SUCCESS", "payload": {}}, True),
    ({"status": "error", "payload": {}}, False),
    ({"data": {}}, False),
])
def test_success_envelope(envelope, expected):
    assert is_success_envelope(envelope) is expected


def test_envelope_payload_prefers_data():
    assert envelope_payload({"data": 1, "payload": 2}) == 1
    assert envelope_payload({"payload": 2}) == 2
    assert envelope_payload({}) is None


async def test_initiate_sends_camel_case_payload():
    client, recorder = make_client(lambda r: httpx.Response(200, json={"success": True, "data": PAYMENT}))
    request = DynamicQrPaymentRequest(amount=Decimal("500"), case_id=42, customer_name="Asha")

    payment = await client.initiate_payment(request)

    sent = recorder.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == f"{BASE_URL}/collections/repayments/payments/initiate"
    assert sent.headers["Authorization"] == "Bearer secret"
    assert json.loads(sent.content) == {
        "amount": 500.0,
        "caseId": 42,
        "customerName": "Asha",
        "serviceType": "DYNAMIC_QR",
    }
    assert payment.transaction_id == "TXN1"
    assert payment.status == PaymentStatus.INITIATED
    assert payment.qr_code_base64 == "Q1"
    await client.aclose()


async def test_collect_request_payload_carries_instrument():
    client, recorder = make_client(lambda r: httpx.Response(200, json={"success": True, "data": PAYMENT}))
    request = CollectCallRequest(
        amount=Decimal("10"), instrument_type=InstrumentType.VPA, instrument_reference="asha@upi"
    )

    await client.initiate_payment(request)

    body = json.loads(recorder.requests[0].content)
    assert body["instrumentType"] == "VPA"
    assert body["instrumentReference"] == "asha@upi"


async def test_status_accepts_status_payload_envelope():
    fresh = {**PAYMENT, "status": "SUCCESS"}
    client, recorder = make_client(lambda r: httpx.Response(200, json={"status": "success", "payload": fresh}))

    payment = await client.query_payment_status(ServiceType.DYNAMIC_QR, "TXN1")

    assert json.loads(recorder.requests[0].content) == {"serviceType": "DYNAMIC_QR", "transactionId": "TXN1"}
    assert payment.status == PaymentStatus.SUCCESS


async def test_no_token_no_authorization_header():
    client, recorder = make_client(lambda r: httpx.Response(200, json={"success": True, "data": PAYMENT}), api_token="")

    await client.get_transaction("TXN1")

    assert "Authorization" not in recorder.requests[0].headers
    assert recorder.requests[0].url.path.endswith("/payments/transaction/TXN1")


async def test_http_error_uses_body_message():
    client, _ = make_client(lambda r: httpx.Response(400, json={"message": "Amount exceeds limit"}))

    with pytest.raises(PaymentGatewayException) as exc_info:
        await client.get_transaction("TXN1")

    assert exc_info.value.message == "Amount exceeds limit"
    assert exc_info.value.status_code == 400


async def test_http_error_falls_back_to_operation_message():
    client, _ = make_client(lambda r: httpx.Response(500, text="<html>oops</html>"))

    with pytest.raises(PaymentGatewayException) as exc_info:
        await client.query_payment_status(ServiceType.DYNAMIC_QR, "TXN1")

    assert exc_info.value.message == "Failed to check payment status"


async def test_unsuccessful_envelope_raises():
    client, _ = make_client(lambda r: httpx.Response(200, json={"success": False, "message": "Declined"}))

    with pytest.raises(PaymentGatewayException, match="Declined"):
        await client.get_transaction("TXN1")


async def test_malformed_payload_raises():
    client, _ = make_client(lambda r: httpx.Response(200, json={"success": True, "data": {"status": "BOGUS"}}))

    with pytest.raises(PaymentGatewayException, match="Unexpected response"):
        await client.get_transaction("TXN1")


async def test_timeout_maps_to_gateway_exception():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    client, _ = make_client(handler)

    with pytest.raises(PaymentGatewayException, match="gateway timeout"):
        await client.get_transaction("TXN1")


async def test_network_error_maps_to_gateway_exception():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client, _ = make_client(handler)

    with pytest.raises(PaymentGatewayException, match="network error"):
        await client.get_transaction("TXN1")


async def test_cancel_without_payload_returns_none():
    client, recorder = make_client(lambda r: httpx.Response(200, json={"success": True}))

    result = await client.cancel_payment(ServiceType.PAYMENT_LINK, "TXN1", "Customer request")

    assert result is None
    assert json.loads(recorder.requests[0].content)["reason"] == "Customer request"


async def test_cancel_with_payload_returns_payment():
    cancelled = {**PAYMENT, "status": "CANCELLED"}
    client, _ = make_client(lambda r: httpx.Response(200, json={"success": True, "data": cancelled}))

    result = await client.cancel_payment(ServiceType.DYNAMIC_QR, "TXN1")

    assert result.status == PaymentStatus.CANCELLED


async def test_transactions_by_case():
    client, recorder = make_client(lambda r: httpx.Response(200, json={"success": True, "data": [PAYMENT, PAYMENT]}))

    payments = await client.get_transactions_by_case(42)

    assert len(payments) == 2
    assert recorder.requests[0].url.path.endswith("/payments/case/42")


async def test_duplicate_receipt_is_flagged():
    client, _ = make_client(lambda r: httpx.Response(409, json={"error": "Receipt already generated"}))

    with pytest.raises(PaymentGatewayException) as exc_info:
        await client.generate_receipt("TXN1")

    assert exc_info.value.is_duplicate
    assert exc_info.value.message == "Receipt already generated"


async def test_receipt_details_field_names():
    details = {"id": 77, "repaymentNumber": "RCPT-77", "paymentAmount": 500, "approvalStatus": "APPROVED"}
    client, recorder = make_client(lambda r: httpx.Response(200, json={"success": True, "data": details}))

    receipt = await client.fetch_receipt_details(77)

    assert recorder.requests[0].url.path.endswith("/collections/repayments/77/receipt/details")
    assert receipt.repayment_number == "RCPT-77"
    assert receipt.amount == Decimal("500")
    assert receipt.status == "APPROVED"


@pytest.mark.parametrize("kwargs,path", [
    ({"receipt_id": 77}, "/collections/repayments/77/receipt"),
    ({"transaction_id": "TXN1"}, "/collections/repayments/payments/TXN1/receipt/download"),
])
async def test_download_blob_paths(kwargs, path):
    client, recorder = make_client(lambda r: httpx.Response(200, content=b"%PDF-1.4"))

    blob = await client.download_receipt_blob(**kwargs)

    assert blob == b"%PDF-1.4"
    assert recorder.requests[0].url.path == f"/api/v1{path}"
    assert recorder.requests[0].headers["Accept"] == "application/pdf"


async def test_download_blob_needs_an_id():
    client, _ = make_client(lambda r: httpx.Response(200))

    with pytest.raises(ValueError):
        await client.download_receipt_blob()


async def test_cancel_with_partial_payload_returns_none():
    partial = {"transactionId": "TXN1", "status": "CANCELLED"}
    client, _ = make_client(lambda r: httpx.Response(200, json={"success": True, "data": partial}))

    result = await client.cancel_payment(ServiceType.DYNAMIC_QR, "TXN1")

    assert result is None


async def test_partial_cancel_payload_still_clears_the_transaction():
    def handler(request):
        if request.url.path.endswith("/payments/initiate"):
            return httpx.Response(200, json={"success": True, "data": PAYMENT})
        return httpx.Response(200, json={"success": True, "data": {"transactionId": "TXN1", "status": "CANCELLED"}})

    client, recorder = make_client(handler)
    orchestrator = PaymentOrchestrator(client, show_cancelled_status=True)
    await orchestrator.initiate(PaymentFormFields(amount="500"))

    result = await orchestrator.cancel()

    assert result is None
    assert orchestrator.phase == TransactionPhase.NONE
    assert orchestrator.last_error is None
    assert recorder.requests[-1].url.path.endswith("/payments/cancel")
