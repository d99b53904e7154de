from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_502_BAD_GATEWAY,
)

from digipay.core.exceptions.PaymentException import (
    IllegalPaymentStateException,
    OperationInProgressException,
    PaymentGatewayException,
    PaymentSessionNotFoundException,
    PaymentValidationException,
)


async def illegal_state_exception_handler(request: Request, exc: IllegalPaymentStateException) -> JSONResponse:
    content = {"detail": exc.message}
    if isinstance(exc, OperationInProgressException):
        content["operation"] = exc.operation
    return JSONResponse(status_code=HTTP_409_CONFLICT, content=content)


async def session_not_found_exception_handler(request: Request, exc: PaymentSessionNotFoundException) -> JSONResponse:
    return JSONResponse(status_code=HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def payment_validation_exception_handler(request: Request, exc: PaymentValidationException) -> JSONResponse:
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={"detail": {"code": exc.code, "message": exc.message}},
    )


async def gateway_exception_handler(request: Request, exc: PaymentGatewayException) -> JSONResponse:
    return JSONResponse(status_code=HTTP_502_BAD_GATEWAY, content={"detail": exc.message})


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Custom validation exception handler with better error messages"""
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_type = error.get("type", "validation_error")

        if error_type == "missing":
            message = f"Field '{field}' is required"
        elif error_type == "string_type":
            message = f"Expected string value for field '{field}', got {error.get('input', 'invalid type')}"
        elif error_type == "enum":
            message = f"Unsupported value for field '{field}': {error.get('input')}"

        errors.append({
            "field": field,
            "message": message,
            "type": error_type
        })

    return JSONResponse(
        status_code=HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": {
                "message": "Validation failed",
                "errors": errors
            }
        }
    )
