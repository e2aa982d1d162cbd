from beanie import Document, Indexed
from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, List, Optional
from uuid import uuid4
from datetime import datetime


class Product(Document):
    """Catalog entry as stored in the ``products`` collection."""
    id: str = Field(default_factory=lambda: uuid4().hex)

    # --- Identification ---
    title: Annotated[str, Indexed()]
    description: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    image: Optional[str] = None

    # --- Financials ---
    price: float = Field(..., ge=0)  # Per unit, or per kilogram when sold by weight
    sold_by_weight: bool = False

    # --- Stock (grams when sold by weight) ---
    # Not bounded here: an oversold decrement is read back negative before it is clamped
    stock: int = 0
    min_stock: Optional[int] = None  # Reorder threshold, informational only
    in_stock: bool = False

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "products"

    @property
    def is_low_stock(self) -> bool:
        return self.min_stock is not None and self.stock <= self.min_stock


class PricedLineItem(BaseModel):
    """
    One cart line. Captures the product's title and price when it was added to
    the cart; later catalog edits do not reach it.
    """
    model_config = ConfigDict(frozen=True)

    product_id: str
    title: str
    unit_price: float = Field(..., ge=0)
    sold_by_weight: bool = False
    quantity: int = Field(..., gt=0)  # Units, or grams when sold by weight
    notes: Optional[str] = None

    @classmethod
    def from_product(cls, product: Product, quantity: int, notes: Optional[str] = None) -> "PricedLineItem":
        return cls(
            product_id=product.id,
            title=product.title,
            unit_price=product.price,
            sold_by_weight=product.sold_by_weight,
            quantity=quantity,
            notes=notes,
        )
