from enum import Enum


class ServiceType(str, Enum):
    DYNAMIC_QR = "DYNAMIC_QR"
    PAYMENT_LINK = "PAYMENT_LINK"
    COLLECT_CALL = "COLLECT_CALL"

    @property
    def label(self) -> str:
        return SERVICE_TYPE_LABELS[self]


class InstrumentType(str, Enum):
    """Target of a UPI collect request; only used with COLLECT_CALL."""
    VPA = "VPA"
    MOBILE = "MOBILE"


SERVICE_TYPE_LABELS = {
    ServiceType.DYNAMIC_QR: "Dynamic QR",
    ServiceType.PAYMENT_LINK: "Payment Link",
    ServiceType.COLLECT_CALL: "Collect Request",
}
