from pydantic import BaseModel, Field
from typing import List, Optional

from pos.models.product import PricedLineItem
from pos.models.sale import SaleRecord
from pos.services.checkout import Bill, PaymentDetails
from pos.services.receipts import ReceiptResult
from pos.services.settlement import GatewayConfirmation


# ==========================================
# REQUEST SCHEMAS
# ==========================================

class QuoteRequest(BaseModel):
    items: List[PricedLineItem] = Field(..., min_length=1, description="Must have at least 1 item")
    coupon_code: Optional[str] = None


class CheckoutRequest(QuoteRequest):
    payment: PaymentDetails
    order_number: Optional[str] = None


class GatewayCallbackRequest(QuoteRequest):
    confirmation: GatewayConfirmation
    order_number: Optional[str] = None


# ==========================================
# RESPONSE SCHEMAS
# ==========================================

class CheckoutResponse(BaseModel):
    message: str
    sale: SaleRecord
    bill: Bill
    change_due: float
    post_commit_errors: List[str]
    receipt: Optional[ReceiptResult] = None
