from typing import Optional


class PaymentValidationException(Exception):
    """Raised before any network call when the payment form is incomplete."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class PaymentGatewayException(Exception):
    def __init__(self, message: str = "Payment gateway error", status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_duplicate(self) -> bool:
        return self.status_code == 409


class ReceiptGenerationException(Exception):
    def __init__(self, transaction_id: str, message: str = "Receipt generation failed"):
        super().__init__(f"{message} for transaction {transaction_id}")
        self.transaction_id = transaction_id
        self.message = message


class IllegalPaymentStateException(Exception):
    def __init__(self, message: str = "Operation not allowed in the current payment state"):
        super().__init__(message)
        self.message = message


class OperationInProgressException(IllegalPaymentStateException):
    def __init__(self, operation: str):
        super().__init__(f"Another operation is still in progress: {operation}")
        self.operation = operation


class PaymentSessionNotFoundException(Exception):
    def __init__(self, session_id: str):
        super().__init__(f"Payment session not found: {session_id}")
        self.session_id = session_id
