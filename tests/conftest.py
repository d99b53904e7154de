from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import pytest

from digipay.core.payments.dto.response.paymentresponse import PaymentResponse
from digipay.core.payments.model.paymentstatus import PaymentStatus
from digipay.core.payments.model.servicetype import ServiceType
from digipay.core.payments.service.orchestrator import PaymentOrchestrator
from digipay.core.receipts.dto.response.receiptresponse import ReceiptDetails
from digipay.core.receipts.service.receipt_downloader import DirectoryReceiptSaver, TemporaryBlobHandle


def make_payment(**overrides) -> PaymentResponse:
    fields = {
        "service_type": ServiceType.DYNAMIC_QR,
        "transaction_id": "TXN1",
        "amount": Decimal("500"),
        "status": PaymentStatus.INITIATED,
    }
    fields.update(overrides)
    return PaymentResponse(**fields)


class FakeGateway:
    """In-memory stand-in for PaymentGatewayClient that records every call."""

    def __init__(self):
        self.calls: List[Tuple[str, Any]] = []
        self.errors: Dict[str, Exception] = {}
        self.initiate_response = make_payment(qr_code_base64="Q1")
        self.status_responses: List[PaymentResponse] = []
        self.cancel_response: Optional[PaymentResponse] = None
        self.generated_receipt = ReceiptDetails(id=77)
        self.receipt_details = ReceiptDetails(id=77, repayment_number="RCPT-77", amount=Decimal("500"))
        self.blob = b"%PDF-1.4 receipt"

    def called(self, name: str) -> List[Any]:
        return [args for call, args in self.calls if call == name]

    def _record(self, name: str, args: Any):
        self.calls.append((name, args))
        if name in self.errors:
            raise self.errors[name]

    async def initiate_payment(self, request):
        self._record("initiate_payment", request)
        return self.initiate_response

    async def query_payment_status(self, service_type, transaction_id):
        self._record("query_payment_status", (service_type, transaction_id))
        return self.status_responses.pop(0)

    async def cancel_payment(self, service_type, transaction_id, reason=None):
        self._record("cancel_payment", (service_type, transaction_id, reason))
        return self.cancel_response

    async def generate_receipt(self, transaction_id):
        self._record("generate_receipt", transaction_id)
        return self.generated_receipt

    async def fetch_receipt_details(self, receipt_id):
        self._record("fetch_receipt_details", receipt_id)
        return self.receipt_details

    async def download_receipt_blob(self, receipt_id=None, transaction_id=None):
        self._record("download_receipt_blob", {"receipt_id": receipt_id, "transaction_id": transaction_id})
        return self.blob

    async def get_transaction(self, transaction_id):
        self._record("get_transaction", transaction_id)
        return self.initiate_response

    async def get_transactions_by_case(self, case_id):
        self._record("get_transactions_by_case", case_id)
        return [self.initiate_response]


class CountingHandle(TemporaryBlobHandle):
    def __init__(self, data: bytes):
        super().__init__(data)
        self.release_calls = 0

    def release(self):
        self.release_calls += 1
        super().release()


class CountingHandleFactory:
    def __init__(self):
        self.handles: List[CountingHandle] = []

    def __call__(self, data: bytes) -> CountingHandle:
        handle = CountingHandle(data)
        self.handles.append(handle)
        return handle


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def handle_factory() -> CountingHandleFactory:
    return CountingHandleFactory()


@pytest.fixture
def orchestrator(gateway, handle_factory, tmp_path) -> PaymentOrchestrator:
    return PaymentOrchestrator(
        gateway,
        saver=DirectoryReceiptSaver(str(tmp_path)),
        handle_factory=handle_factory,
        show_cancelled_status=True,
    )
