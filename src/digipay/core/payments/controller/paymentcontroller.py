from typing import List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response
from loguru import logger

from digipay.core.payments.dto.request.sessionrequest import (
    CancelPaymentRequest,
    PaymentFormUpdate,
    SessionCreateRequest,
)
from digipay.core.payments.dto.response.paymentresponse import PaymentResponse
from digipay.core.payments.dto.response.paymentsessionresponse import PaymentSessionResponse
from digipay.core.payments.model.paymentsession import PaymentFormFields
from digipay.core.payments.service.session_store import PaymentSessionStore
from digipay.core.receipts.service.receipt_downloader import TemporaryBlobHandle
from digipay.utilities.paymentgatewayclient import PaymentGatewayClient


def get_session_store(request: Request) -> PaymentSessionStore:
    return request.app.state.session_store


def get_gateway_client(request: Request) -> PaymentGatewayClient:
    return request.app.state.gateway_client


def capture_receipt(handle: TemporaryBlobHandle, filename: str) -> Tuple[str, bytes]:
    return filename, handle.read_bytes()


payment_routes = APIRouter()


def _view(store: PaymentSessionStore, session_id: str) -> PaymentSessionResponse:
    return PaymentSessionResponse.from_orchestrator(session_id, store.get(session_id))


@payment_routes.post("/sessions", response_model=PaymentSessionResponse, status_code=201)
async def create_session(
    body: SessionCreateRequest = SessionCreateRequest(),
    store: PaymentSessionStore = Depends(get_session_store),
):
    """Open a payment session, optionally prefilled from a workflow link."""
    form = PaymentFormFields.from_deep_link(body.case_id, body.loan_account_number, body.customer_name)
    session_id = store.create(form)
    return _view(store, session_id)


@payment_routes.get("/sessions/{session_id}", response_model=PaymentSessionResponse)
async def get_session(
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    return _view(store, session_id)


@payment_routes.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    store.remove(session_id)
    return Response(status_code=204)


@payment_routes.patch("/sessions/{session_id}/form", response_model=PaymentSessionResponse)
async def update_form(
    body: PaymentFormUpdate,
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    store.get(session_id).update_form(**body.changes())
    return _view(store, session_id)


@payment_routes.post("/sessions/{session_id}/preview")
async def preview_request(
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    """Validate the form and show the request that initiate would send."""
    return store.get(session_id).build_request().to_payload()


@payment_routes.post("/sessions/{session_id}/initiate", response_model=PaymentSessionResponse)
async def initiate_payment(
    body: PaymentFormUpdate = PaymentFormUpdate(),
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    orchestrator = store.get(session_id)
    changes = body.changes()
    if changes:
        orchestrator.update_form(**changes)
    await orchestrator.initiate()
    return _view(store, session_id)


@payment_routes.post("/sessions/{session_id}/refresh", response_model=PaymentSessionResponse)
async def refresh_status(
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    await store.get(session_id).refresh_status()
    return _view(store, session_id)


@payment_routes.post("/sessions/{session_id}/cancel", response_model=PaymentSessionResponse)
async def cancel_payment(
    body: CancelPaymentRequest = CancelPaymentRequest(),
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    await store.get(session_id).cancel(body.reason)
    return _view(store, session_id)


@payment_routes.post("/sessions/{session_id}/receipt", response_model=PaymentSessionResponse)
async def generate_receipt(
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    await store.get(session_id).generate_receipt_manually()
    return _view(store, session_id)


@payment_routes.get("/sessions/{session_id}/receipt/download")
async def download_receipt(
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    orchestrator = store.get(session_id)
    result = await orchestrator.download(saver=capture_receipt)
    if result is None:
        if orchestrator.last_error:
            raise HTTPException(status_code=502, detail=orchestrator.last_error)
        raise HTTPException(status_code=404, detail="No receipt available for this session")

    filename, content = result
    logger.info(f"[RECEIPT_DOWNLOAD] session={session_id} file={filename} ({len(content)} bytes)")
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@payment_routes.post("/sessions/{session_id}/new-payment", response_model=PaymentSessionResponse)
async def new_payment(
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    store.get(session_id).new_payment()
    return _view(store, session_id)


@payment_routes.post("/sessions/{session_id}/dismiss-error", response_model=PaymentSessionResponse)
async def dismiss_error(
    session_id: str = Path(..., description="Payment session ID"),
    store: PaymentSessionStore = Depends(get_session_store),
):
    store.get(session_id).dismiss_error()
    return _view(store, session_id)


@payment_routes.get("/transactions/{transaction_id}", response_model=PaymentResponse)
async def get_transaction(
    transaction_id: str = Path(..., description="Gateway transaction ID"),
    gateway: PaymentGatewayClient = Depends(get_gateway_client),
):
    return await gateway.get_transaction(transaction_id)


@payment_routes.get("/cases/{case_id}/transactions", response_model=List[PaymentResponse])
async def get_transactions_by_case(
    case_id: int = Path(..., description="Collections case ID"),
    gateway: PaymentGatewayClient = Depends(get_gateway_client),
):
    return await gateway.get_transactions_by_case(case_id)
