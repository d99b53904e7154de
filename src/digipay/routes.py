from fastapi import APIRouter

from digipay import __version__
from digipay.config import settings

base_routes = APIRouter()


@base_routes.get("/")
async def home():
    return {
        "message": f"Welcome to {settings.SERVICE_NAME}!",
        "description": "Collect repayments via dynamic QR code, payment link or UPI collect request.",
        "default endpoints": [
            "Payment sessions",
            "Status refresh and cancellation",
            "Receipts",
        ],
        "version": __version__,
    }


@base_routes.get("/health")
async def health():
    return {"status": "ok"}
