from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date

from pos.models.coupon import DiscountType
from pos.models.product import PricedLineItem


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=1)
    type: DiscountType
    value: float = Field(..., gt=0)
    min_purchase: Optional[float] = Field(default=None, ge=0)
    max_discount: Optional[float] = Field(default=None, ge=0)
    applicable_product_ids: List[str] = []
    expiry_date: Optional[date] = None
    is_active: bool = True


class CouponUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1)
    type: Optional[DiscountType] = None
    value: Optional[float] = Field(default=None, gt=0)
    min_purchase: Optional[float] = Field(default=None, ge=0)
    max_discount: Optional[float] = Field(default=None, ge=0)
    applicable_product_ids: Optional[List[str]] = None
    expiry_date: Optional[date] = None
    is_active: Optional[bool] = None


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, description="Coupon code as typed by the cashier")
    items: List[PricedLineItem] = Field(..., min_length=1)
