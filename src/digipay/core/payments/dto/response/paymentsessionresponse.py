from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from digipay.core.payments.dto.response.paymentresponse import PaymentResponse
from digipay.core.payments.model.paymentsession import PaymentFormFields
from digipay.core.payments.model.transactionphase import TransactionPhase
from digipay.core.payments.service.orchestrator import PaymentOrchestrator
from digipay.core.receipts.dto.response.receiptresponse import ReceiptDetails


class PaymentSessionResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    phase: TransactionPhase
    payment: Optional[PaymentResponse] = None
    receipt: Optional[ReceiptDetails] = None
    error: Optional[str] = None
    form: PaymentFormFields
    busy_operation: Optional[str] = None
    status_label: Optional[str] = None
    service_type_label: Optional[str] = None
    can_refresh: bool = False
    can_cancel: bool = False
    can_generate_receipt: bool = False
    can_download: bool = False
    can_start_new_payment: bool = False

    @classmethod
    def from_orchestrator(cls, session_id: str, orchestrator: PaymentOrchestrator) -> "PaymentSessionResponse":
        payment = orchestrator.payment
        return cls(
            session_id=session_id,
            phase=orchestrator.phase,
            payment=payment,
            receipt=orchestrator.receipt,
            error=orchestrator.last_error,
            form=orchestrator.form,
            busy_operation=orchestrator.busy_operation,
            status_label=payment.status.label if payment else None,
            service_type_label=payment.service_type.label if payment else orchestrator.form.service_type.label,
            can_refresh=orchestrator.can_refresh,
            can_cancel=orchestrator.can_cancel,
            can_generate_receipt=orchestrator.can_generate_receipt,
            can_download=orchestrator.can_download,
            can_start_new_payment=orchestrator.can_start_new_payment,
        )
