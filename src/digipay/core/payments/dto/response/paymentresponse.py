from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

from digipay.core.payments.model.paymentstatus import PaymentStatus
from digipay.core.payments.model.servicetype import ServiceType


class PaymentResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    service_type: ServiceType
    transaction_id: str
    merchant_order_id: Optional[str] = None
    provider_reference_id: Optional[str] = None
    amount: Decimal
    status: PaymentStatus
    message: Optional[str] = None

    # Display fields, kept across refreshes that omit them
    payment_link: Optional[str] = None
    qr_code_base64: Optional[str] = None
    qr_code_url: Optional[str] = None

    refund_amount: Optional[Decimal] = None
    case_id: Optional[int] = None
    loan_account_number: Optional[str] = None
    # Repayment (receipt) id once the backend has booked one for this transaction
    repayment_id: Optional[int] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    gateway_response: Optional[Dict[str, Any]] = None

    @field_serializer("amount", "refund_amount", when_used="json-unless-none")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)
