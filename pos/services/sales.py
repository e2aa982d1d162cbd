import logging
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from pos.core.errors import PersistenceError
from pos.models.product import PricedLineItem
from pos.models.sale import PaymentMethod, PaymentSplit, SaleItem, SaleRecord
from pos.services.pricing import cart_subtotal, line_price

logger = logging.getLogger(__name__)


def generate_order_number(now: datetime) -> str:
    """Time-derived order number: YYMMDDHHMMSS."""
    return now.strftime("%y%m%d%H%M%S")


def snapshot_items(items: Sequence[PricedLineItem]) -> List[SaleItem]:
    return [
        SaleItem(
            product_id=item.product_id,
            title=item.title,
            price=item.unit_price,
            sold_by_weight=item.sold_by_weight,
            quantity=item.quantity,
            total=line_price(item),
            notes=item.notes or "",
        )
        for item in items
    ]


class SalesSummary(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    sales_count: int = 0
    returns_count: int = 0
    gross_sales: float = 0.0
    refunds: float = 0.0
    net_sales: float = 0.0
    tax_collected: float = 0.0
    discounts_given: float = 0.0
    by_payment_method: Dict[str, float] = {}


class SaleRecorder:
    """Append-only access to the ``sales`` ledger."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    async def _unique_order_number(self, base: str) -> str:
        candidate, attempt = base, 1
        while await SaleRecord.find_one(SaleRecord.order_number == candidate):
            attempt += 1
            candidate = f"{base}-{attempt}"
        return candidate

    async def append(self, record: SaleRecord) -> SaleRecord:
        """Persist ``record`` with a unique order number. Never overwrites."""
        try:
            order_number = await self._unique_order_number(record.order_number)
            record.order_number = order_number
            await record.insert()
        except Exception as exc:
            logger.error("Failed to record sale %s: %s", record.order_number, exc)
            raise PersistenceError("Failed to record sale. No stock was changed; please retry.") from exc

        logger.info("Sale recorded: %s total %.2f %s", record.order_number, record.total, record.currency)
        return record

    async def record_sale(
        self,
        items: Sequence[PricedLineItem],
        total: float,
        currency: str,
        order_number: Optional[str] = None,
        discount: float = 0.0,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        payment_split: Optional[PaymentSplit] = None,
        coupon_code: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> SaleRecord:
        now = self.clock()
        subtotal = cart_subtotal(items)
        taxable = max(0.0, subtotal - discount)
        # Derived from the caller's total so the stored breakdown always adds up to it
        tax = total - taxable

        record = SaleRecord(
            order_number=order_number or generate_order_number(now),
            items=snapshot_items(items),
            subtotal=subtotal,
            discount=discount,
            coupon_code=coupon_code,
            tax=tax,
            total=total,
            currency=currency,
            payment_method=payment_method,
            payment_split=payment_split,
            payment_reference=payment_reference,
            timestamp=now,
            date=now.date().isoformat(),
        )
        return await self.append(record)

    # ---------------------------------------------------------
    # READ SIDE (lookups & reports)
    # ---------------------------------------------------------

    async def find_by_order_number(self, order_number: str) -> Optional[SaleRecord]:
        return await SaleRecord.find_one(SaleRecord.order_number == order_number)

    async def returns_for(self, order_number: str) -> List[SaleRecord]:
        return await SaleRecord.find({
            "original_order_id": order_number,
            "is_return": True
        }).to_list()

    async def list_sales(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[SaleRecord]:
        query = {}
        if start_date or end_date:
            query["date"] = {}
            if start_date:
                query["date"]["$gte"] = start_date
            if end_date:
                query["date"]["$lte"] = end_date
        return await SaleRecord.find(query).sort(-SaleRecord.timestamp).to_list()

    async def summarize(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> SalesSummary:
        summary = SalesSummary(start_date=start_date, end_date=end_date)
        by_method = defaultdict(float)

        for sale in await self.list_sales(start_date, end_date):
            if sale.is_return:
                summary.returns_count += 1
                summary.refunds += -sale.total
            else:
                summary.sales_count += 1
                summary.gross_sales += sale.total
            summary.tax_collected += sale.tax
            summary.discounts_given += sale.discount
            by_method[sale.payment_method.value] += sale.total

        summary.net_sales = summary.gross_sales - summary.refunds
        summary.by_payment_method = dict(by_method)
        return summary
