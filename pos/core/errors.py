"""
Exception taxonomy for the pricing & settlement engine.

Routers translate these into HTTPException responses; every error carries a
message the operator can act on.
"""
from typing import List, Optional


class POSError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------
# VALIDATION (rejected before any write)
# ---------------------------------------------------------

class InvalidCartError(POSError):
    pass


class PaymentValidationError(POSError):
    pass


# ---------------------------------------------------------
# STOCK (blocks settlement)
# ---------------------------------------------------------

class InsufficientStockError(POSError):
    def __init__(self, shortfalls: List[str]):
        super().__init__(f"Insufficient stock: {', '.join(shortfalls)}")
        self.shortfalls = shortfalls


class StockCheckError(POSError):
    """Stock levels could not be read; checkout must not proceed."""


class OversoldError(POSError):
    """A decrement took stock below zero; stock was clamped to 0."""

    def __init__(self, title: str, shortfall: int):
        super().__init__(f"Oversold {title} by {shortfall}; stock set to 0")
        self.title = title
        self.shortfall = shortfall


# ---------------------------------------------------------
# COUPONS / CATALOG
# ---------------------------------------------------------

class CouponError(POSError):
    pass


class DuplicateCouponError(CouponError):
    def __init__(self, code: str):
        super().__init__(f"Coupon code '{code}' already exists")
        self.code = code


class CouponNotFoundError(CouponError):
    def __init__(self, coupon_id: str):
        super().__init__(f"Coupon {coupon_id} not found")
        self.coupon_id = coupon_id


class ProductNotFoundError(POSError):
    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


# ---------------------------------------------------------
# PERSISTENCE
# ---------------------------------------------------------

class PersistenceError(POSError):
    """The database rejected or could not complete a write. Safe to retry."""


# ---------------------------------------------------------
# RETURNS
# ---------------------------------------------------------

class ReturnError(POSError):
    pass


class PartialReturnError(ReturnError):
    """The refund record exists but some stock increments failed."""

    def __init__(self, record, failures: List[str], message: Optional[str] = None):
        super().__init__(
            message or f"Return {record.order_number} recorded but stock not restored for: {', '.join(failures)}"
        )
        self.record = record
        self.failures = failures
