import logging
from datetime import datetime
from typing import List, Optional

from beanie import UpdateResponse
from beanie.operators import Inc

from pos.core.errors import InsufficientStockError, OversoldError, ProductNotFoundError
from pos.models.inventory import StockAdjustment
from pos.models.product import Product

logger = logging.getLogger(__name__)


class InventoryAdjuster:
    """
    Stock movements against the catalog.

    The counter moves through an atomic ``$inc``; the ``in_stock`` flag is
    derived from the result and written afterwards.
    """

    async def _inc(self, product_id: str, delta: int, *conditions) -> Optional[Product]:
        return await Product.find_one(Product.id == product_id, *conditions).update(
            Inc({Product.stock: delta}),
            response_type=UpdateResponse.NEW_DOCUMENT
        )

    async def _mark(self, product: Product) -> int:
        await product.update({"$set": {
            "in_stock": product.stock > 0,
            "updated_at": datetime.utcnow()
        }})
        return product.stock

    async def decrement(self, product_id: str, quantity: int) -> int:
        """
        Take sold goods off the shelf. Stock never stays negative: an oversell
        (stock moved after the checkout's stock check) is clamped to 0 and
        raised as ``OversoldError`` once the clamp is stored.
        """
        product = await self._inc(product_id, -quantity)
        if product is None:
            raise ProductNotFoundError(product_id)

        shortfall = -product.stock if product.stock < 0 else 0
        if shortfall:
            logger.warning("Stock for %s went to %s; clamping to 0", product.title, product.stock)
            product = await self._inc(product_id, shortfall) or product

        new_stock = await self._mark(product)
        if shortfall:
            raise OversoldError(product.title, shortfall)

        logger.info("Stock for %s reduced by %s, now %s", product.title, quantity, new_stock)
        return new_stock

    async def increment(self, product_id: str, quantity: int) -> int:
        product = await self._inc(product_id, quantity)
        if product is None:
            raise ProductNotFoundError(product_id)

        new_stock = await self._mark(product)
        logger.info("Stock for %s restored by %s, now %s", product.title, quantity, new_stock)
        return new_stock

    async def adjust(self, product_id: str, delta: int, reason: str, note: Optional[str] = None) -> StockAdjustment:
        """
        Manual restock (positive delta) or write-off (negative delta).
        A write-off larger than the stock on hand is rejected, not clamped.
        """
        if delta < 0:
            # Only applied while enough stock is left
            product = await self._inc(product_id, delta, Product.stock >= -delta)
            if product is None:
                current = await Product.get(product_id)
                if current is None:
                    raise ProductNotFoundError(product_id)
                raise InsufficientStockError(
                    [f"{current.title} (Available: {current.stock}, Requested: {-delta})"]
                )
        else:
            product = await self._inc(product_id, delta)
            if product is None:
                raise ProductNotFoundError(product_id)

        new_stock = await self._mark(product)

        log = StockAdjustment(
            product_id=product_id,
            product_title=product.title,
            quantity=delta,
            new_stock=new_stock,
            reason=reason,
            note=note
        )
        await log.insert()

        logger.info("Stock for %s adjusted by %s (%s), now %s", product.title, delta, reason, new_stock)
        return log

    async def history(self, product_id: str) -> List[StockAdjustment]:
        return await StockAdjustment.find(
            StockAdjustment.product_id == product_id
        ).sort(-StockAdjustment.date).to_list()
