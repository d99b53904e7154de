from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from digipay.core.payments.model.servicetype import InstrumentType, ServiceType


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class SessionCreateRequest(_CamelModel):
    """Case context carried over from a workflow deep link."""
    case_id: Optional[int] = None
    loan_account_number: Optional[str] = None
    customer_name: Optional[str] = None


class PaymentFormUpdate(_CamelModel):
    service_type: Optional[ServiceType] = None
    amount: Optional[str] = None
    mobile_number: Optional[str] = None
    instrument_type: Optional[InstrumentType] = None
    instrument_reference: Optional[str] = None
    message: Optional[str] = None
    case_id: Optional[str] = None
    loan_account_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class CancelPaymentRequest(_CamelModel):
    reason: Optional[str] = Field(None, max_length=500, description="Reason for cancellation")
