from beanie import Document, Indexed
from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, List, Optional
from uuid import uuid4
from datetime import datetime
from enum import Enum


class PaymentMethod(str, Enum):
    CASH = "Cash"
    ONLINE = "Online"
    SPLIT = "Split"


class PaymentSplit(BaseModel):
    cash: float = Field(..., ge=0)
    online: float = Field(..., ge=0)


class SaleItem(BaseModel):
    """Snapshot of one sold line - embedded in SaleRecord"""
    model_config = ConfigDict(frozen=True)

    product_id: str
    title: str
    price: float     # Unit price at time of sale
    sold_by_weight: bool = False
    quantity: int    # Units, or grams for weight-sold items
    total: float     # Line price (negative on returns)
    notes: str = ""


class SaleRecord(Document):
    """
    Entry in the ``sales`` ledger. Written once, never updated.
    Returns are separate records with negated money fields.
    """
    id: str = Field(default_factory=lambda: uuid4().hex)
    order_number: Annotated[str, Indexed()]  # YYMMDDHHMMSS, or RET-<original> for returns

    items: List[SaleItem]

    # Financial Details
    subtotal: float
    discount: float = 0.0
    coupon_code: Optional[str] = None
    tax: float = 0.0
    total: float
    currency: str

    # Payment
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_split: Optional[PaymentSplit] = None
    payment_reference: Optional[str] = None  # Gateway transaction id

    timestamp: datetime
    date: Annotated[str, Indexed()]  # YYYY-MM-DD, used for range queries

    is_return: bool = False
    original_order_id: Optional[str] = None

    class Settings:
        name = "sales"
