from beanie import Document, Indexed
from pydantic import Field, field_validator
from typing import Annotated, List, Optional
from uuid import uuid4
from datetime import date, datetime
from enum import Enum


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


class Coupon(Document):
    id: str = Field(default_factory=lambda: uuid4().hex)
    code: Annotated[str, Indexed(unique=True)]
    type: DiscountType
    value: float = Field(..., ge=0)  # Percentage points or currency amount

    min_purchase: Optional[float] = None
    max_discount: Optional[float] = None  # Cap, meaningful for percentage coupons
    applicable_product_ids: List[str] = Field(default_factory=list)  # Empty = whole cart
    expiry_date: Optional[date] = None  # Valid through the end of this day

    is_active: bool = True
    usage_count: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "coupons"

    @field_validator("code")
    @classmethod
    def _uppercase_code(cls, value: str) -> str:
        return normalize_code(value)
