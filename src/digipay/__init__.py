"""Digital payment collection: QR, payment link and UPI collect requests."""

__version__ = "1.0.0"
