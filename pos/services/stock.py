import logging
from collections import OrderedDict
from typing import Dict, List, Sequence, Tuple

from pos.core.errors import InsufficientStockError, StockCheckError
from pos.models.product import PricedLineItem, Product

logger = logging.getLogger(__name__)


def requested_quantities(items: Sequence[PricedLineItem]) -> Dict[str, Tuple[str, int]]:
    """Total quantity per product (first line's title), in cart order. A product may span several lines."""
    totals: Dict[str, Tuple[str, int]] = OrderedDict()
    for item in items:
        title, quantity = totals.get(item.product_id, (item.title, 0))
        totals[item.product_id] = (title, quantity + item.quantity)
    return totals


class StockValidator:
    """
    Re-reads persisted stock for every product in the cart right before a sale
    is committed. Stock may have moved since the item was added to the cart
    (another terminal, an admin edit), so cart-time checks are not enough.
    """

    async def validate(self, items: Sequence[PricedLineItem]) -> List[str]:
        # Weight-sold goods are not stock-gated
        counted = [item for item in items if not item.sold_by_weight]

        shortfalls = []
        for product_id, (title, quantity) in requested_quantities(counted).items():
            try:
                product = await Product.get(product_id)
            except Exception as exc:
                logger.error("Stock check failed reading %s: %s", product_id, exc)
                raise StockCheckError("Failed to validate stock levels. Please try again.") from exc

            if product is None:
                shortfalls.append(f"{title} (Product not found)")
                continue

            if quantity > product.stock:
                shortfalls.append(f"{title} (Available: {max(product.stock, 0)})")

        return shortfalls

    async def ensure_available(self, items: Sequence[PricedLineItem]) -> None:
        shortfalls = await self.validate(items)
        if shortfalls:
            logger.info("Checkout blocked, insufficient stock: %s", ", ".join(shortfalls))
            raise InsufficientStockError(shortfalls)
