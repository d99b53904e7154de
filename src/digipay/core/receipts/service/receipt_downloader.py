import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from digipay.core.payments.dto.response.paymentresponse import PaymentResponse
from digipay.core.receipts.dto.response.receiptresponse import ReceiptDetails

logger = logging.getLogger(__name__)


class TemporaryBlobHandle:
    """Downloaded bytes parked in a temp file until release()."""

    def __init__(self, data: bytes, suffix: str = ".pdf"):
        fd, self.path = tempfile.mkstemp(prefix="receipt_", suffix=suffix)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        self.size = len(data)
        self.released = False

    def read_bytes(self) -> bytes:
        if self.released:
            raise ValueError(f"Blob handle {self.path} has been released")
        return Path(self.path).read_bytes()

    def release(self):
        if self.released:
            return
        self.released = True
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass


ReceiptSaver = Callable[[TemporaryBlobHandle, str], Any]


class DirectoryReceiptSaver:
    def __init__(self, directory: str):
        self.directory = directory

    def __call__(self, handle: TemporaryBlobHandle, filename: str) -> str:
        os.makedirs(self.directory, exist_ok=True)
        destination = os.path.join(self.directory, filename)
        shutil.copyfile(handle.path, destination)
        logger.info(f"[RECEIPT_SAVED] {destination} ({handle.size} bytes)")
        return destination


@dataclass(frozen=True)
class ReceiptTarget:
    receipt_id: Optional[int] = None
    transaction_id: Optional[str] = None
    repayment_number: Optional[str] = None

    @classmethod
    def for_payment(cls, payment: Optional[PaymentResponse], receipt: Optional[ReceiptDetails]) -> "ReceiptTarget":
        return cls(
            receipt_id=receipt.id if receipt else None,
            transaction_id=payment.transaction_id if payment else None,
            repayment_number=receipt.repayment_number if receipt else None,
        )

    @property
    def filename(self) -> str:
        stem = self.repayment_number or self.transaction_id or str(self.receipt_id)
        return f"receipt_{re.sub(r'[^A-Za-z0-9._-]', '_', stem)}.pdf"


class ReceiptDownloader:
    def __init__(
        self,
        gateway,
        saver: ReceiptSaver,
        handle_factory: Callable[[bytes], TemporaryBlobHandle] = TemporaryBlobHandle,
    ):
        self.gateway = gateway
        self.saver = saver
        self.handle_factory = handle_factory

    async def download(self, target: ReceiptTarget, saver: Optional[ReceiptSaver] = None) -> Any:
        """
        Fetch the receipt file and hand it to the saver.

        Prefers the receipt id, falls back to the transaction's direct
        receipt endpoint. The local handle is released whether or not the
        save succeeds. Gateway and save errors propagate to the caller.
        """
        if target.receipt_id is not None:
            blob = await self.gateway.download_receipt_blob(receipt_id=target.receipt_id)
        else:
            blob = await self.gateway.download_receipt_blob(transaction_id=target.transaction_id)

        handle = self.handle_factory(blob)
        try:
            return (saver or self.saver)(handle, target.filename)
        finally:
            handle.release()
