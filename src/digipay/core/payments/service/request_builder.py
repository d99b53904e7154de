import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Type

from pydantic import ValidationError

from digipay.core.exceptions.PaymentException import PaymentValidationException
from digipay.core.payments.dto.request.paymentrequest import (
    CollectCallRequest,
    DynamicQrPaymentRequest,
    PaymentLinkRequest,
    PaymentRequest,
    PaymentRequestBase,
)
from digipay.core.payments.model.paymentsession import PaymentFormFields
from digipay.core.payments.model.servicetype import InstrumentType, ServiceType
from digipay.utilities.phone_utils import normalize_mobile_number

logger = logging.getLogger(__name__)

INVALID_AMOUNT = "invalid amount"
MOBILE_REQUIRED = "mobile required"
INSTRUMENT_REQUIRED = "instrument required"
INVALID_REQUEST = "invalid request"

REQUEST_MODELS: Dict[ServiceType, Type[PaymentRequestBase]] = {
    ServiceType.DYNAMIC_QR: DynamicQrPaymentRequest,
    ServiceType.PAYMENT_LINK: PaymentLinkRequest,
    ServiceType.COLLECT_CALL: CollectCallRequest,
}


def build_request(fields: PaymentFormFields) -> PaymentRequest:
    """
    Turn the collector's form into a gateway request for its service type.

    Pure and synchronous. Instrument fields only travel with collect
    requests; every other service type drops them.

    Raises:
        PaymentValidationException: amount, mobile number or instrument missing
    """
    service_type = fields.service_type

    amount = _parse_amount(fields.amount)
    if amount is None:
        raise PaymentValidationException(INVALID_AMOUNT, "Please enter a valid amount")

    mobile_number = normalize_mobile_number(fields.mobile_number.strip())
    if service_type == ServiceType.PAYMENT_LINK and not mobile_number:
        raise PaymentValidationException(MOBILE_REQUIRED, "Mobile number is required for Payment Link")

    payload = {
        "amount": amount,
        "mobile_number": mobile_number or None,
        "message": fields.message.strip() or None,
        "case_id": _parse_case_id(fields.case_id),
        "loan_account_number": fields.loan_account_number.strip() or None,
        "customer_name": fields.customer_name.strip() or None,
        "customer_email": fields.customer_email.strip() or None,
    }

    if service_type == ServiceType.COLLECT_CALL:
        instrument_reference = fields.instrument_reference.strip()
        if not fields.instrument_type or not instrument_reference:
            raise PaymentValidationException(
                INSTRUMENT_REQUIRED,
                "Instrument type and reference are required for Collect Request",
            )
        if fields.instrument_type == InstrumentType.MOBILE:
            instrument_reference = normalize_mobile_number(instrument_reference)
        payload["instrument_type"] = fields.instrument_type
        payload["instrument_reference"] = instrument_reference

    try:
        return REQUEST_MODELS[service_type](**payload)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "request"
        logger.info(f"[PAYMENT_REQUEST_INVALID] {field}: {error['msg']}")
        raise PaymentValidationException(INVALID_REQUEST, f"Invalid {field}: {error['msg']}")


def _parse_amount(raw: str) -> Optional[Decimal]:
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def _parse_case_id(raw: str) -> Optional[int]:
    raw = str(raw).strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[PAYMENT_REQUEST_CASE_ID] Ignoring non-numeric case id: {raw}")
        return None
