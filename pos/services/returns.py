import logging
from collections import OrderedDict
from typing import Dict, Optional, Sequence

from pydantic import BaseModel, Field

from pos.core.errors import PartialReturnError, ReturnError
from pos.models.product import PricedLineItem
from pos.models.sale import PaymentMethod, SaleItem, SaleRecord
from pos.services.inventory import InventoryAdjuster
from pos.services.pricing import line_price
from pos.services.sales import SaleRecorder

logger = logging.getLogger(__name__)

RETURN_PREFIX = "RET-"


class ReturnLine(BaseModel):
    product_id: str
    quantity: int = Field(..., gt=0)


def _purchased(sale: SaleRecord) -> Dict[str, SaleItem]:
    """Original lines keyed by product, quantities merged when a product appears twice."""
    merged: Dict[str, SaleItem] = OrderedDict()
    for item in sale.items:
        if item.product_id in merged:
            first = merged[item.product_id]
            merged[item.product_id] = first.model_copy(update={"quantity": first.quantity + item.quantity})
        else:
            merged[item.product_id] = item
    return merged


class ReturnProcessor:
    """Reverses (part of) a completed sale: negative sale record + stock restore."""

    def __init__(self, recorder: SaleRecorder, adjuster: InventoryAdjuster):
        self.recorder = recorder
        self.adjuster = adjuster

    async def process_return(
        self,
        original_order_number: str,
        lines: Sequence[ReturnLine],
        refund_amount: Optional[float] = None,
    ) -> SaleRecord:
        # 1. Find the original order
        original = await self.recorder.find_by_order_number(original_order_number)
        if original is None:
            raise ReturnError(f"Original order {original_order_number} not found")
        if original.is_return:
            raise ReturnError(f"Order {original_order_number} is itself a return")
        if not lines:
            raise ReturnError("Select at least one item to return")

        # 2. Check quantities against what was bought and already returned
        purchased = _purchased(original)
        already_returned: Dict[str, int] = {}
        for previous in await self.recorder.returns_for(original.order_number):
            for item in previous.items:
                already_returned[item.product_id] = already_returned.get(item.product_id, 0) + item.quantity

        requested: Dict[str, int] = OrderedDict()
        for line in lines:
            requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

        returned_items = []
        for product_id, quantity in requested.items():
            sold = purchased.get(product_id)
            if sold is None:
                raise ReturnError(f"Product {product_id} is not part of order {original.order_number}")
            remaining = sold.quantity - already_returned.get(product_id, 0)
            if quantity > remaining:
                raise ReturnError(
                    f"Cannot return {quantity} of '{sold.title}': only {remaining} left on order {original.order_number}"
                )
            snapshot = PricedLineItem(
                product_id=product_id,
                title=sold.title,
                unit_price=sold.price,
                sold_by_weight=sold.sold_by_weight,
                quantity=quantity,
            )
            returned_items.append(SaleItem(
                product_id=product_id,
                title=sold.title,
                price=sold.price,
                sold_by_weight=sold.sold_by_weight,
                quantity=quantity,
                total=-line_price(snapshot),
                notes="Returned",
            ))

        if refund_amount is None:
            refund_amount = -sum(item.total for item in returned_items)
        if refund_amount < 0:
            raise ReturnError("Refund amount cannot be negative")

        # 3. Negative sale record
        now = self.recorder.clock()
        record = await self.recorder.append(SaleRecord(
            order_number=f"{RETURN_PREFIX}{original.order_number}",
            original_order_id=original.order_number,
            is_return=True,
            items=returned_items,
            subtotal=-refund_amount,
            discount=0.0,
            tax=0.0,
            total=-refund_amount,
            currency=original.currency,
            payment_method=PaymentMethod.CASH,
            timestamp=now,
            date=now.date().isoformat(),
        ))

        # 4. Put the goods back on the shelf. Coupon usage is left as is.
        failures = []
        for item in returned_items:
            try:
                await self.adjuster.increment(item.product_id, item.quantity)
            except Exception as exc:
                logger.error("Return %s: stock restore failed for %s: %s", record.order_number, item.title, exc)
                failures.append(f"{item.title} ({exc})")

        if failures:
            raise PartialReturnError(record, failures)

        logger.info("Return %s processed, refund %.2f", record.order_number, refund_amount)
        return record
