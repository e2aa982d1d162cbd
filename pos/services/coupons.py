import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from beanie import UpdateResponse
from beanie.operators import Inc
from pydantic import BaseModel, ValidationError

from pos.core.errors import CouponError, CouponNotFoundError, DuplicateCouponError
from pos.models.coupon import Coupon, DiscountType, normalize_code
from pos.models.product import PricedLineItem
from pos.services.pricing import line_price

logger = logging.getLogger(__name__)

# usage_count only moves through increment_usage
PROTECTED_FIELDS = {"id", "usage_count", "created_at"}
# Null clears these; for every other field null means "leave as is"
NULLABLE_FIELDS = {"min_purchase", "max_discount", "expiry_date"}


class CouponEvaluation(BaseModel):
    valid: bool
    discount: float = 0.0
    reason: Optional[str] = None
    coupon_id: Optional[str] = None
    code: Optional[str] = None


def _reject(reason: str, coupon: Optional[Coupon] = None) -> CouponEvaluation:
    return CouponEvaluation(
        valid=False,
        reason=reason,
        coupon_id=coupon.id if coupon else None,
        code=coupon.code if coupon else None,
    )


def evaluate_coupon(
    code: str,
    coupons: Iterable[Coupon],
    items: Sequence[PricedLineItem],
    subtotal: float,
    today: Optional[date] = None,
) -> CouponEvaluation:
    """
    Work out the discount ``code`` earns on a cart.

    Checks run in order and stop at the first failure: lookup of an active
    coupon, expiry, minimum purchase, product applicability. The discount is
    then capped by ``max_discount`` and finally by the subtotal. Nothing is
    mutated; usage is counted separately once the sale is committed.
    """
    normalized = normalize_code(code or "")
    if not normalized:
        return _reject("Coupon code is required")

    coupon = next((c for c in coupons if c.code == normalized and c.is_active), None)
    if coupon is None:
        return _reject("Invalid or inactive coupon")

    today = today or date.today()
    if coupon.expiry_date and coupon.expiry_date < today:
        return _reject("Coupon expired", coupon)

    if coupon.min_purchase and subtotal < coupon.min_purchase:
        return _reject(f"Minimum purchase of {coupon.min_purchase:g} required", coupon)

    if coupon.applicable_product_ids:
        eligible = set(coupon.applicable_product_ids)
        base = sum(line_price(item) for item in items if item.product_id in eligible)
        if base == 0:
            return _reject("Coupon not applicable to items in cart", coupon)
    else:
        base = subtotal

    if coupon.type == DiscountType.PERCENTAGE:
        discount = base * coupon.value / 100
    else:
        discount = min(coupon.value, base)

    # A zero cap is treated as "no cap"
    if coupon.max_discount:
        discount = min(discount, coupon.max_discount)

    discount = min(discount, subtotal)
    return CouponEvaluation(
        valid=True,
        discount=discount,
        reason="Coupon applied!",
        coupon_id=coupon.id,
        code=coupon.code,
    )


def _invalid(exc: ValidationError) -> CouponError:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return CouponError(f"Invalid coupon: {problems}")


class CouponService:
    """Coupon catalog administration and store-backed validation."""

    async def list(self) -> List[Coupon]:
        return await Coupon.find_all().sort(-Coupon.created_at).to_list()

    async def get(self, coupon_id: str) -> Optional[Coupon]:
        return await Coupon.get(coupon_id)

    async def find_by_code(self, code: str) -> List[Coupon]:
        return await Coupon.find(Coupon.code == normalize_code(code)).to_list()

    async def create(self, data: Dict[str, Any]) -> Coupon:
        code = normalize_code(data.get("code"))
        if not code:
            raise CouponError("Coupon code is required")
        if await self.find_by_code(code):
            raise DuplicateCouponError(code)

        fields = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        try:
            coupon = Coupon(**{**fields, "code": code})
        except ValidationError as exc:
            raise _invalid(exc) from exc

        await coupon.insert()
        logger.info("Coupon %s created (%s %s)", coupon.code, coupon.type.value, coupon.value)
        return coupon

    async def update(self, coupon_id: str, changes: Dict[str, Any]) -> Coupon:
        coupon = await self.get(coupon_id)
        if coupon is None:
            raise CouponNotFoundError(coupon_id)

        changes = {
            k: v for k, v in changes.items()
            if k not in PROTECTED_FIELDS and (v is not None or k in NULLABLE_FIELDS)
        }
        if "code" in changes:
            changes["code"] = normalize_code(changes["code"])
            if not changes["code"]:
                raise CouponError("Coupon code is required")
            if changes["code"] != coupon.code and await self.find_by_code(changes["code"]):
                raise DuplicateCouponError(changes["code"])
        if not changes:
            return coupon

        try:
            merged = Coupon.model_validate({**coupon.model_dump(), **changes})
        except ValidationError as exc:
            raise _invalid(exc) from exc

        # $set only the edited fields so concurrent usage increments survive
        await coupon.update({"$set": {k: getattr(merged, k) for k in changes}})
        return coupon

    async def delete(self, coupon_id: str) -> bool:
        coupon = await self.get(coupon_id)
        if coupon is None:
            return False
        await coupon.delete()
        return True

    async def validate(
        self,
        code: str,
        items: Sequence[PricedLineItem],
        subtotal: float,
        today: Optional[date] = None,
    ) -> CouponEvaluation:
        candidates = await self.find_by_code(code) if normalize_code(code) else []
        evaluation = evaluate_coupon(code, candidates, items, subtotal, today)
        if not evaluation.valid:
            logger.info("Coupon %r rejected: %s", code, evaluation.reason)
        return evaluation

    async def increment_usage(self, coupon_id: str) -> int:
        coupon = await Coupon.find_one(Coupon.id == coupon_id).update(
            Inc({Coupon.usage_count: 1}),
            response_type=UpdateResponse.NEW_DOCUMENT
        )
        if coupon is None:
            raise CouponNotFoundError(coupon_id)
        return coupon.usage_count
