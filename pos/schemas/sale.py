from pydantic import BaseModel, Field
from typing import List, Optional

from pos.models.cash import CashDirection
from pos.services.returns import ReturnLine


class ReturnRequest(BaseModel):
    """Return some or all items of a completed order"""
    order_number: str = Field(..., min_length=1)
    items: List[ReturnLine] = Field(..., min_length=1)
    refund_amount: Optional[float] = Field(default=None, ge=0, description="Defaults to the items' sale value")


class CashMovementCreate(BaseModel):
    type: CashDirection
    amount: float = Field(..., gt=0, description="Must be greater than 0")
    reason: str = Field(..., min_length=1)
