from beanie import Document, Indexed
from pydantic import Field
from typing import Annotated, Optional
from uuid import uuid4
from datetime import datetime


class StockAdjustment(Document):
    """
    Manual stock movement (restock, damage, count correction).
    Sales and returns move stock too but are audited through the sales ledger.
    """
    id: str = Field(default_factory=lambda: uuid4().hex)

    product_id: Annotated[str, Indexed()]
    product_title: str = "Unknown Product"  # Name snapshot

    quantity: int  # Positive restock, negative write-off
    new_stock: int
    reason: str
    note: Optional[str] = None

    date: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "stock_adjustments"
