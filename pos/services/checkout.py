"""
Checkout orchestration.

    quote  -> price the cart, evaluate the coupon, compute tax and total
    settle -> validate payment, gate on stock, record the sale, then apply
              the post-commit steps (stock decrement, coupon usage, receipt)

Once the sale record is written it stands: later failures are collected in
``CheckoutResult.post_commit_errors`` for the operator to reconcile.
"""
import logging
from datetime import date
from typing import List, Optional, Sequence

from pydantic import BaseModel

from pos.core.errors import InvalidCartError, OversoldError, PaymentValidationError
from pos.models.product import PricedLineItem
from pos.models.sale import PaymentMethod, PaymentSplit, SaleRecord
from pos.services.coupons import CouponEvaluation, CouponService
from pos.services.inventory import InventoryAdjuster
from pos.services.pricing import cart_subtotal
from pos.services.receipts import NullReceiptSink, Receipt, ReceiptResult, ReceiptSink, StoreIdentity
from pos.services.sales import SaleRecorder
from pos.services.settlement import (
    GatewayConfirmation,
    SettlementConfig,
    compute_totals,
    validate_cash_tendered,
    validate_gateway_confirmation,
    validate_split,
)
from pos.services.stock import StockValidator

logger = logging.getLogger(__name__)


class Bill(BaseModel):
    subtotal: float
    discount: float = 0.0
    coupon: Optional[CouponEvaluation] = None
    taxable: float
    tax_percentage: float
    tax: float
    total: float
    currency: str


class PaymentDetails(BaseModel):
    method: PaymentMethod = PaymentMethod.CASH
    cash_tendered: Optional[float] = None  # Cash: omitted means exact amount
    split: Optional[PaymentSplit] = None
    gateway: Optional[GatewayConfirmation] = None


class CheckoutResult(BaseModel):
    sale: SaleRecord
    bill: Bill
    change_due: float = 0.0
    post_commit_errors: List[str] = []
    receipt: Optional[ReceiptResult] = None

    @property
    def message(self) -> str:
        text = f"Order #{self.sale.order_number} completed. Charged {self.bill.currency} {self.bill.total:.2f}"
        if self.bill.discount:
            text += f", saved {self.bill.discount:.2f}"
        return text


def _ensure_cart(items: Sequence[PricedLineItem]) -> None:
    if not items:
        raise InvalidCartError("Cart is empty")


class CheckoutService:
    def __init__(
        self,
        config: SettlementConfig,
        coupons: CouponService,
        stock: StockValidator,
        recorder: SaleRecorder,
        adjuster: InventoryAdjuster,
        receipt_sink: Optional[ReceiptSink] = None,
        store_identity: Optional[StoreIdentity] = None,
    ):
        self.config = config
        self.coupons = coupons
        self.stock = stock
        self.recorder = recorder
        self.adjuster = adjuster
        self.receipt_sink = receipt_sink or NullReceiptSink()
        self.store_identity = store_identity or StoreIdentity(name="Store")

    async def quote(
        self,
        items: Sequence[PricedLineItem],
        coupon_code: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Bill:
        """
        Price the cart as it stands now. Call again after every cart change;
        a discount computed for an earlier cart is never reused.
        """
        _ensure_cart(items)
        subtotal = cart_subtotal(items)

        evaluation = None
        discount = 0.0
        if coupon_code:
            evaluation = await self.coupons.validate(coupon_code, items, subtotal, today)
            if evaluation.valid:
                discount = evaluation.discount

        totals = compute_totals(subtotal, discount, self.config.tax_percentage)
        return Bill(
            subtotal=totals.subtotal,
            discount=totals.discount,
            coupon=evaluation,
            taxable=totals.taxable,
            tax_percentage=self.config.tax_percentage,
            tax=totals.tax,
            total=totals.total,
            currency=self.config.currency,
        )

    def _check_payment(self, payment: PaymentDetails, total: float) -> float:
        """Reject bad tender before anything is written. Returns change due."""
        if payment.method == PaymentMethod.CASH:
            if payment.cash_tendered is None:
                return 0.0
            return validate_cash_tendered(payment.cash_tendered, total)

        if payment.method == PaymentMethod.SPLIT:
            if payment.split is None:
                raise PaymentValidationError("Split payment requires cash and online amounts")
            validate_split(payment.split.cash, payment.split.online, total, self.config.split_tolerance)
            return 0.0

        if payment.gateway is not None:
            validate_gateway_confirmation(payment.gateway, total, self.config)
        return 0.0

    async def settle(
        self,
        items: Sequence[PricedLineItem],
        payment: PaymentDetails,
        coupon_code: Optional[str] = None,
        order_number: Optional[str] = None,
        today: Optional[date] = None,
    ) -> CheckoutResult:
        # 1. Bill + payment validation (no writes yet)
        bill = await self.quote(items, coupon_code, today)
        change_due = self._check_payment(payment, bill.total)

        # 2. Stock gate, re-read right before commit
        await self.stock.ensure_available(items)

        # 3. The sale itself. Failure here aborts with nothing else touched.
        coupon = bill.coupon if bill.coupon and bill.coupon.valid else None
        sale = await self.recorder.record_sale(
            items,
            bill.total,
            bill.currency,
            order_number=order_number,
            discount=bill.discount,
            payment_method=payment.method,
            payment_split=payment.split if payment.method == PaymentMethod.SPLIT else None,
            coupon_code=coupon.code if coupon else None,
            payment_reference=payment.gateway.reference if payment.gateway else None,
        )

        # 4. Post-commit steps: report failures, never roll back the sale
        errors = []
        for item in items:
            try:
                await self.adjuster.decrement(item.product_id, item.quantity)
            except OversoldError as exc:
                errors.append(exc.message)
            except Exception as exc:
                errors.append(f"Stock not updated for {item.title}: {exc}")

        if coupon:
            try:
                await self.coupons.increment_usage(coupon.coupon_id)
            except Exception as exc:
                errors.append(f"Usage count not updated for coupon {coupon.code}: {exc}")

        receipt = await self.deliver_receipt(sale)
        if not receipt.success:
            errors.append(receipt.message)

        for error in errors:
            logger.error("Order %s needs follow-up: %s", sale.order_number, error)

        return CheckoutResult(
            sale=sale,
            bill=bill,
            change_due=change_due,
            post_commit_errors=errors,
            receipt=receipt,
        )

    async def confirm_gateway_payment(
        self,
        items: Sequence[PricedLineItem],
        confirmation: GatewayConfirmation,
        coupon_code: Optional[str] = None,
        order_number: Optional[str] = None,
    ) -> CheckoutResult:
        """Gateway success callback: same settlement path as a cash confirmation."""
        logger.info("Gateway confirmed %.2f %s (ref %s)", confirmation.amount, confirmation.currency, confirmation.reference)
        payment = PaymentDetails(method=PaymentMethod.ONLINE, gateway=confirmation)
        return await self.settle(items, payment, coupon_code, order_number)

    async def deliver_receipt(self, sale: SaleRecord) -> ReceiptResult:
        receipt = Receipt(store=self.store_identity, sale=sale, tax_percentage=self.config.tax_percentage)
        try:
            return await self.receipt_sink.deliver(receipt)
        except Exception as exc:
            return ReceiptResult(success=False, message=f"Receipt failed: {exc}")
