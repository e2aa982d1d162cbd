"""
Settlement totals and payment checks.

Everything here is pure: billing configuration is passed in as a
``SettlementConfig`` rather than read from the process settings.
"""
from dataclasses import dataclass

from pydantic import BaseModel, Field

from pos.core.errors import PaymentValidationError

DEFAULT_SPLIT_TOLERANCE = 0.5


@dataclass(frozen=True)
class SettlementConfig:
    currency: str
    tax_percentage: float = 0.0
    split_tolerance: float = DEFAULT_SPLIT_TOLERANCE


class SettlementTotals(BaseModel):
    subtotal: float
    discount: float
    taxable: float
    tax: float
    total: float


class GatewayConfirmation(BaseModel):
    """Success callback from the online payment gateway."""
    amount: float = Field(..., gt=0)
    currency: str
    reference: str = Field(..., min_length=1)


def compute_totals(subtotal: float, discount: float, tax_percentage: float) -> SettlementTotals:
    # Discount is applied before tax and never drives the taxable base negative
    taxable = max(0.0, subtotal - discount)
    tax = taxable * tax_percentage / 100
    return SettlementTotals(
        subtotal=subtotal,
        discount=discount,
        taxable=taxable,
        tax=tax,
        total=taxable + tax,
    )


def validate_cash_tendered(tendered: float, total: float) -> float:
    """Returns the change due."""
    if tendered < total:
        raise PaymentValidationError(
            f"Amount given ({tendered:.2f}) is less than total ({total:.2f})"
        )
    return tendered - total


def validate_split(cash: float, online: float, total: float, tolerance: float = DEFAULT_SPLIT_TOLERANCE) -> None:
    if cash < 0 or online < 0:
        raise PaymentValidationError("Split payment amounts cannot be negative")
    paid = cash + online
    if abs(paid - total) > tolerance:
        raise PaymentValidationError(
            f"Split payment mismatch: cash {cash:.2f} + online {online:.2f} = {paid:.2f}, "
            f"but total is {total:.2f}"
        )


def validate_gateway_confirmation(confirmation: GatewayConfirmation, total: float, config: SettlementConfig) -> None:
    if confirmation.currency.upper() != config.currency.upper():
        raise PaymentValidationError(
            f"Payment currency {confirmation.currency} does not match store currency {config.currency}"
        )
    if abs(confirmation.amount - total) > config.split_tolerance:
        raise PaymentValidationError(
            f"Confirmed payment {confirmation.amount:.2f} does not match order total {total:.2f}"
        )
