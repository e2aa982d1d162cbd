from fastapi import Depends, Request

from pos.core.config import settings
from pos.services.cash import CashLedger
from pos.services.checkout import CheckoutService
from pos.services.coupons import CouponService
from pos.services.inventory import InventoryAdjuster
from pos.services.receipts import ReceiptSink, build_receipt_sink, store_identity
from pos.services.returns import ReturnProcessor
from pos.services.sales import SaleRecorder
from pos.services.stock import StockValidator


# 1. RECEIPT SINK (built in the app lifespan)
def get_receipt_sink(request: Request) -> ReceiptSink:
    sink = getattr(request.app.state, "receipt_sink", None)
    return sink or build_receipt_sink(settings)


# 2. SERVICES
def get_coupon_service() -> CouponService:
    return CouponService()


def get_sale_recorder() -> SaleRecorder:
    return SaleRecorder()


def get_inventory_adjuster() -> InventoryAdjuster:
    return InventoryAdjuster()


def get_cash_ledger() -> CashLedger:
    return CashLedger()


def get_return_processor(
    recorder: SaleRecorder = Depends(get_sale_recorder),
    adjuster: InventoryAdjuster = Depends(get_inventory_adjuster),
) -> ReturnProcessor:
    return ReturnProcessor(recorder, adjuster)


def get_checkout_service(
    coupons: CouponService = Depends(get_coupon_service),
    recorder: SaleRecorder = Depends(get_sale_recorder),
    adjuster: InventoryAdjuster = Depends(get_inventory_adjuster),
    receipt_sink: ReceiptSink = Depends(get_receipt_sink),
) -> CheckoutService:
    return CheckoutService(
        config=settings.settlement_config(),
        coupons=coupons,
        stock=StockValidator(),
        recorder=recorder,
        adjuster=adjuster,
        receipt_sink=receipt_sink,
        store_identity=store_identity(settings),
    )
