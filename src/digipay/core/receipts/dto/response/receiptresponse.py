from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_serializer, model_validator
from pydantic.alias_generators import to_camel


class ReceiptDetails(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[int] = None
    repayment_number: Optional[str] = None
    amount: Optional[Decimal] = None
    payment_mode: Optional[str] = None
    payment_date: Optional[datetime] = None
    customer_name: Optional[str] = None
    loan_account_number: Optional[str] = None
    case_id: Optional[int] = None
    case_number: Optional[str] = None
    status: Optional[str] = None
    transaction_reference: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def normalise_repayment_fields(cls, data: Any) -> Any:
        # The repayments backend reports paymentAmount/approvalStatus when it has them
        if isinstance(data, dict):
            data = dict(data)
            if data.get("paymentAmount") is not None:
                data["amount"] = data["paymentAmount"]
            if data.get("approvalStatus") is not None:
                data["status"] = data["approvalStatus"]
        return data

    @field_serializer("amount", when_used="json-unless-none")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)
