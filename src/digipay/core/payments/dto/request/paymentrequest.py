from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer
from pydantic.alias_generators import to_camel

from digipay.core.payments.model.servicetype import InstrumentType, ServiceType


class PaymentRequestBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    amount: Decimal = Field(..., gt=0)
    mobile_number: Optional[str] = None
    message: Optional[str] = None
    case_id: Optional[int] = None
    loan_account_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)

    def to_payload(self) -> dict:
        """Gateway JSON body: camelCase keys, unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class DynamicQrPaymentRequest(PaymentRequestBase):
    service_type: Literal[ServiceType.DYNAMIC_QR] = ServiceType.DYNAMIC_QR


class PaymentLinkRequest(PaymentRequestBase):
    service_type: Literal[ServiceType.PAYMENT_LINK] = ServiceType.PAYMENT_LINK
    mobile_number: str = Field(..., min_length=1)


class CollectCallRequest(PaymentRequestBase):
    service_type: Literal[ServiceType.COLLECT_CALL] = ServiceType.COLLECT_CALL
    instrument_type: InstrumentType
    instrument_reference: str = Field(..., min_length=1)


PaymentRequest = Annotated[
    Union[DynamicQrPaymentRequest, PaymentLinkRequest, CollectCallRequest],
    Field(discriminator="service_type"),
]


class PaymentStatusRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    service_type: ServiceType
    transaction_id: str


class PaymentCancelRequest(PaymentStatusRequest):
    reason: Optional[str] = None
