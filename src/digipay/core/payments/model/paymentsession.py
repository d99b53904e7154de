from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from digipay.core.payments.model.servicetype import InstrumentType, ServiceType

# Cleared by "new payment"; the remaining fields are customer/case context
TRANSACTION_FIELDS = ("amount", "mobile_number", "instrument_reference", "message")


class PaymentFormFields(BaseModel):
    """Raw fields as the collector typed them, before validation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    service_type: ServiceType = ServiceType.DYNAMIC_QR
    amount: str = ""
    mobile_number: str = ""
    instrument_type: Optional[InstrumentType] = InstrumentType.VPA
    instrument_reference: str = ""
    message: str = ""
    case_id: str = ""
    loan_account_number: str = ""
    customer_name: str = ""
    customer_email: str = ""

    @field_validator(
        "amount", "mobile_number", "instrument_reference", "message",
        "case_id", "loan_account_number", "customer_name", "customer_email",
        mode="before",
    )
    @classmethod
    def coerce_to_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @classmethod
    def from_deep_link(
        cls,
        case_id: Optional[Any] = None,
        loan_account_number: Optional[str] = None,
        customer_name: Optional[str] = None,
    ) -> "PaymentFormFields":
        """Prefill from a workflow link (caseId, loanAccountNumber, customerName)."""
        return cls(
            case_id=case_id or "",
            loan_account_number=loan_account_number or "",
            customer_name=customer_name or "",
        )

    def reset_for_new_payment(self) -> "PaymentFormFields":
        return self.model_copy(update={name: "" for name in TRANSACTION_FIELDS})
