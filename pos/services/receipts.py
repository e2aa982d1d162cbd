"""
Receipt sinks.

A receipt is produced after a sale commits. Sinks report success or failure
in a ``ReceiptResult``; the checkout flow never lets a receipt failure undo a
completed sale.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from html import escape
from pathlib import Path
from typing import List, Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from pydantic import BaseModel

from pos.core.config import Settings
from pos.models.sale import SaleRecord

logger = logging.getLogger(__name__)

RECEIPT_WIDTH = 40


class StoreIdentity(BaseModel):
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    tax_id: Optional[str] = None


class Receipt(BaseModel):
    store: StoreIdentity
    sale: SaleRecord
    tax_percentage: float = 0.0


class ReceiptResult(BaseModel):
    success: bool
    message: str


def _row(left: str, right: str, width: int = RECEIPT_WIDTH) -> str:
    space = max(1, width - len(left) - len(right))
    return f"{left}{' ' * space}{right}"


def _quantity_label(item) -> str:
    return f"{item.quantity}g" if item.sold_by_weight else f"x{item.quantity}"


def render_receipt_text(receipt: Receipt) -> str:
    """Fixed-width receipt, the same layout the thermal printer prints."""
    sale, store = receipt.sale, receipt.store
    rule = "-" * RECEIPT_WIDTH
    lines: List[str] = [store.name.center(RECEIPT_WIDTH).rstrip()]
    for extra in (store.address, store.phone):
        if extra:
            lines.append(extra.center(RECEIPT_WIDTH).rstrip())
    if store.tax_id:
        lines.append(f"GST: {store.tax_id}".center(RECEIPT_WIDTH).rstrip())
    lines.append(rule)

    title = "RETURN" if sale.is_return else "Order"
    lines.append(f"{title} #: {sale.order_number}")
    lines.append(f"Date: {sale.timestamp:%d/%m/%Y %I:%M %p}")
    lines.append(rule)

    for item in sale.items:
        lines.append(_row(f"{item.title} {_quantity_label(item)}", f"{item.total:.2f}"))
        if item.notes:
            lines.append(f"  - {item.notes}")
    lines.append(rule)

    lines.append(_row("Subtotal", f"{sale.subtotal:.2f}"))
    if sale.discount:
        label = f"Discount ({sale.coupon_code})" if sale.coupon_code else "Discount"
        lines.append(_row(label, f"-{sale.discount:.2f}"))
    if sale.tax:
        lines.append(_row(f"Tax ({receipt.tax_percentage:g}%)", f"{sale.tax:.2f}"))
    lines.append(_row("TOTAL", f"{sale.currency} {sale.total:.2f}"))
    lines.append(_row("Paid by", sale.payment_method.value))
    if sale.payment_split:
        lines.append(_row("  Cash", f"{sale.payment_split.cash:.2f}"))
        lines.append(_row("  Online", f"{sale.payment_split.online:.2f}"))
    lines.append(rule)
    lines.append("Thank you for shopping with us!".center(RECEIPT_WIDTH).rstrip())
    return "\n".join(lines) + "\n"


class ReceiptSink(ABC):
    @abstractmethod
    async def deliver(self, receipt: Receipt) -> ReceiptResult:
        ...


class NullReceiptSink(ReceiptSink):
    async def deliver(self, receipt):
        return ReceiptResult(success=True, message="Receipt printing disabled")


class FileReceiptSink(ReceiptSink):
    """Writes ``<order_number>.txt`` into a directory (picked up by the print spooler)."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _write(self, receipt: Receipt) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{receipt.sale.order_number}.txt"
        path.write_text(render_receipt_text(receipt), encoding="utf-8")
        return path

    async def deliver(self, receipt):
        try:
            path = await asyncio.to_thread(self._write, receipt)
        except OSError as exc:
            logger.error("Receipt for %s could not be written: %s", receipt.sale.order_number, exc)
            return ReceiptResult(success=False, message=f"Failed to generate receipt: {exc}")
        return ReceiptResult(success=True, message=f"Receipt saved to {path}")


class EmailReceiptSink(ReceiptSink):
    def __init__(self, conf: ConnectionConfig, recipient: str):
        self.conf = conf
        self.recipient = recipient

    async def deliver(self, receipt):
        html = f"""
        <html>
            <body style="font-family: 'Courier New', monospace; color: #333;">
                <pre style="max-width: 320px; margin: auto;">{escape(render_receipt_text(receipt))}</pre>
            </body>
        </html>
        """
        message = MessageSchema(
            subject=f"Receipt {receipt.sale.order_number} - {receipt.store.name}",
            recipients=[self.recipient],
            body=html,
            subtype=MessageType.html
        )
        try:
            await FastMail(self.conf).send_message(message)
        except Exception as exc:
            logger.error("Receipt email for %s failed: %s", receipt.sale.order_number, exc)
            return ReceiptResult(success=False, message=f"Failed to email receipt: {exc}")
        return ReceiptResult(success=True, message=f"Receipt emailed to {self.recipient}")


def store_identity(config: Settings) -> StoreIdentity:
    return StoreIdentity(
        name=config.STORE_NAME,
        address=config.STORE_ADDRESS,
        phone=config.STORE_PHONE,
        tax_id=config.STORE_TAX_ID,
    )


def build_receipt_sink(config: Settings) -> ReceiptSink:
    if config.RECEIPT_SINK == "file":
        return FileReceiptSink(config.RECEIPT_DIR)
    if config.RECEIPT_SINK == "email":
        if not config.RECEIPT_EMAIL_TO:
            raise ValueError("RECEIPT_EMAIL_TO must be set when RECEIPT_SINK=email")
        conf = ConnectionConfig(
            MAIL_USERNAME=config.MAIL_USERNAME,
            MAIL_PASSWORD=config.MAIL_PASSWORD,
            MAIL_FROM=config.MAIL_FROM,
            MAIL_PORT=config.MAIL_PORT,
            MAIL_SERVER=config.MAIL_SERVER,
            MAIL_STARTTLS=True,
            MAIL_SSL_TLS=False,
            USE_CREDENTIALS=True,
            VALIDATE_CERTS=True
        )
        return EmailReceiptSink(conf, config.RECEIPT_EMAIL_TO)
    return NullReceiptSink()
