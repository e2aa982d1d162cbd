from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class ProductBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    category: str = ""
    tags: List[str] = []
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    sold_by_weight: bool = False
    stock: int = Field(default=0, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    # Stock is not editable here; use /products/{id}/adjust-stock
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    image: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    sold_by_weight: Optional[bool] = None
    min_stock: Optional[int] = Field(default=None, ge=0)


class StockAdjustmentSchema(BaseModel):
    quantity: int = Field(..., description="Positive to restock, negative to write off")
    reason: Literal["restock", "damaged", "expired", "theft", "count_correction", "other"]
    note: Optional[str] = None
