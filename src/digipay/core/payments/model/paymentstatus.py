from enum import Enum


class PaymentStatus(str, Enum):
    # Non-terminal
    INITIATED = "INITIATED"
    PENDING = "PENDING"

    # Terminal
    SUCCESS = "SUCCESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_success(self) -> bool:
        return self in SUCCESS_STATUSES

    @property
    def label(self) -> str:
        return PAYMENT_STATUS_LABELS[self]


TERMINAL_STATUSES = frozenset({
    PaymentStatus.SUCCESS,
    PaymentStatus.COMPLETED,
    PaymentStatus.FAILED,
    PaymentStatus.CANCELLED,
    PaymentStatus.EXPIRED,
    PaymentStatus.REFUNDED,
})

# A receipt can only exist for these
SUCCESS_STATUSES = frozenset({PaymentStatus.SUCCESS, PaymentStatus.COMPLETED})

PAYMENT_STATUS_LABELS = {
    PaymentStatus.INITIATED: "Initiated",
    PaymentStatus.PENDING: "Pending",
    PaymentStatus.SUCCESS: "Success",
    PaymentStatus.COMPLETED: "Completed",
    PaymentStatus.FAILED: "Failed",
    PaymentStatus.CANCELLED: "Cancelled",
    PaymentStatus.EXPIRED: "Expired",
    PaymentStatus.REFUNDED: "Refunded",
}
