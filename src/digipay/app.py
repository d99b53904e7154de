import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from digipay import __version__, exceptions
from digipay.config import settings
from digipay.core.exceptions.PaymentException import (
    IllegalPaymentStateException,
    PaymentGatewayException,
    PaymentSessionNotFoundException,
    PaymentValidationException,
)
from digipay.core.payments.controller.paymentcontroller import payment_routes
from digipay.core.payments.model.paymentsession import PaymentFormFields
from digipay.core.payments.service.orchestrator import PaymentOrchestrator
from digipay.core.payments.service.session_store import PaymentSessionStore
from digipay.routes import base_routes
from digipay.utilities.paymentgatewayclient import PaymentGatewayClient

logging.basicConfig(level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown"""
    # Startup
    logger.info(f"[APP_STARTUP] {settings.SERVICE_NAME} starting, gateway={settings.GATEWAY_BASE_URL}")
    gateway_client = PaymentGatewayClient()

    def orchestrator_factory(form: PaymentFormFields) -> PaymentOrchestrator:
        return PaymentOrchestrator(gateway_client, form=form)

    app.state.gateway_client = gateway_client
    app.state.session_store = PaymentSessionStore(orchestrator_factory)
    yield
    # Shutdown
    logger.info("[APP_SHUTDOWN] Application shutting down...")
    try:
        await gateway_client.aclose()
    except Exception as e:
        logger.error(f"[APP_SHUTDOWN_ERROR] Error closing gateway client: {str(e)}")


app = FastAPI(
    title=settings.SERVICE_NAME,
    version=__version__,
    description="""**Digital Payment Collection API** Collect repayments on a case.

    Endpoints:
    - Payment sessions (dynamic QR, payment link, UPI collect request)
    - Status refresh and cancellation
    - Receipt generation and download
    """,
    license_info={
        "name": "MIT",
    },
    lifespan=lifespan
)

# -----------------------------------------------------------
# Middleware (CORS)
# -----------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception Handlers

app.add_exception_handler(RequestValidationError, exceptions.validation_exception_handler)
app.add_exception_handler(IllegalPaymentStateException, exceptions.illegal_state_exception_handler)
app.add_exception_handler(PaymentSessionNotFoundException, exceptions.session_not_found_exception_handler)
app.add_exception_handler(PaymentValidationException, exceptions.payment_validation_exception_handler)
app.add_exception_handler(PaymentGatewayException, exceptions.gateway_exception_handler)

# Routes Registration

app.include_router(base_routes, prefix="/api/v1", tags=["Base Routes"])
app.include_router(payment_routes, prefix="/api/v1/digital-payments", tags=["Digital Payment Routes"])
