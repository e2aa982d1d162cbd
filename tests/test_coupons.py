from datetime import date

import pytest

from pos.core.errors import CouponError, CouponNotFoundError, DuplicateCouponError
from pos.models.coupon import Coupon, DiscountType
from pos.services.coupons import CouponService, evaluate_coupon
from pos.services.pricing import cart_subtotal

pytestmark = pytest.mark.anyio

TODAY = date(2024, 3, 5)


@pytest.fixture
def make_coupon(db):
    def _make(**overrides) -> Coupon:
        data = {"id": "c1", "code": "SAVE", "type": DiscountType.PERCENTAGE, "value": 10}
        data.update(overrides)
        return Coupon(**data)
    return _make


# ---------------------------------------------------------
# Pure evaluator
# ---------------------------------------------------------

async def test_fixed_coupon_with_minimum_met(make_coupon, line):
    cart = [line(price=100, quantity=2)]
    coupon = make_coupon(type=DiscountType.FIXED, value=50, min_purchase=100)

    result = evaluate_coupon("save", [coupon], cart, 200, TODAY)

    assert result.valid
    assert result.discount == 50
    assert result.coupon_id == "c1"
    assert result.reason == "Coupon applied!"


async def test_minimum_purchase_not_met_mentions_minimum(make_coupon, line):
    cart = [line(price=50, quantity=1)]
    coupon = make_coupon(type=DiscountType.FIXED, value=20, min_purchase=100)

    result = evaluate_coupon("SAVE", [coupon], cart, 50, TODAY)

    assert not result.valid
    assert result.discount == 0
    assert "100" in result.reason


async def test_code_is_trimmed_and_case_insensitive(make_coupon, line):
    cart = [line(price=100, quantity=1)]
    result = evaluate_coupon("  save ", [make_coupon()], cart, 100, TODAY)
    assert result.valid
    assert result.discount == pytest.approx(10)


@pytest.mark.parametrize("code", ["", "   "])
async def test_blank_code_is_rejected(make_coupon, line, code):
    result = evaluate_coupon(code, [make_coupon()], [line()], 100, TODAY)
    assert not result.valid
    assert result.reason == "Coupon code is required"


async def test_unknown_or_inactive_coupon(make_coupon, line):
    cart = [line()]
    assert evaluate_coupon("NOPE", [make_coupon()], cart, 100, TODAY).reason == "Invalid or inactive coupon"
    inactive = make_coupon(is_active=False)
    assert evaluate_coupon("SAVE", [inactive], cart, 100, TODAY).reason == "Invalid or inactive coupon"


async def test_coupon_valid_through_expiry_day(make_coupon, line):
    cart = [line()]
    coupon = make_coupon(expiry_date=TODAY)
    assert evaluate_coupon("SAVE", [coupon], cart, 100, TODAY).valid

    result = evaluate_coupon("SAVE", [coupon], cart, 100, date(2024, 3, 6))
    assert not result.valid
    assert result.reason == "Coupon expired"


async def test_percentage_discount_capped_by_max_discount(make_coupon, line):
    cart = [line(price=1000, quantity=1)]
    coupon = make_coupon(value=50, max_discount=100)

    result = evaluate_coupon("SAVE", [coupon], cart, 1000, TODAY)

    assert result.discount == 100


async def test_fixed_discount_never_exceeds_applicable_base(make_coupon, line):
    cart = [line("p1", price=30, quantity=1), line("p2", price=500, quantity=1)]
    coupon = make_coupon(type=DiscountType.FIXED, value=100, applicable_product_ids=["p1"])

    result = evaluate_coupon("SAVE", [coupon], cart, cart_subtotal(cart), TODAY)

    assert result.valid
    assert result.discount == 30


async def test_discount_never_exceeds_subtotal(make_coupon, line):
    cart = [line(price=40, quantity=1)]
    coupon = make_coupon(type=DiscountType.FIXED, value=100)

    result = evaluate_coupon("SAVE", [coupon], cart, 40, TODAY)

    assert result.discount == 40


async def test_percentage_applies_only_to_listed_products(make_coupon, line):
    cart = [
        line("rice", price=120, quantity=500, sold_by_weight=True),  # 60
        line("tea", price=20, quantity=2),  # 40
    ]
    coupon = make_coupon(value=10, applicable_product_ids=["rice"])

    result = evaluate_coupon("SAVE", [coupon], cart, cart_subtotal(cart), TODAY)

    assert result.discount == pytest.approx(6)


async def test_product_restricted_coupon_without_matching_items(make_coupon, line):
    coupon = make_coupon(applicable_product_ids=["other"])
    result = evaluate_coupon("SAVE", [coupon], [line("p1")], 100, TODAY)
    assert not result.valid
    assert result.reason == "Coupon not applicable to items in cart"


async def test_evaluation_is_repeatable_and_does_not_touch_usage(make_coupon, line):
    cart = [line(price=100, quantity=3)]
    coupon = make_coupon(value=15, max_discount=40, usage_count=7)

    first = evaluate_coupon("SAVE", [coupon], cart, 300, TODAY)
    second = evaluate_coupon("SAVE", [coupon], cart, 300, TODAY)

    assert first == second
    assert coupon.usage_count == 7


# ---------------------------------------------------------
# Store-backed service
# ---------------------------------------------------------

async def test_create_normalizes_code_and_rejects_duplicates(add_coupon):
    coupon = await add_coupon(code=" summer10 ", type=DiscountType.PERCENTAGE, value=10)
    assert coupon.code == "SUMMER10"
    assert coupon.usage_count == 0

    with pytest.raises(DuplicateCouponError):
        await add_coupon(code="Summer10", type=DiscountType.FIXED, value=5)


async def test_update_rejects_code_taken_by_another_coupon(add_coupon):
    await add_coupon(code="ONE", type=DiscountType.FIXED, value=5)
    two = await add_coupon(code="TWO", type=DiscountType.FIXED, value=5)
    service = CouponService()

    with pytest.raises(DuplicateCouponError):
        await service.update(two.id, {"code": "one"})

    updated = await service.update(two.id, {"value": 8, "is_active": False})
    assert updated.value == 8
    assert not (await service.get(two.id)).is_active


async def test_update_unknown_coupon(db):
    with pytest.raises(CouponNotFoundError):
        await CouponService().update("missing", {"value": 1})


async def test_validate_reads_coupon_from_store(add_coupon, line):
    await add_coupon(code="FLAT50", type=DiscountType.FIXED, value=50, min_purchase=100)
    service = CouponService()
    cart = [line(price=100, quantity=2)]

    result = await service.validate("flat50", cart, 200)
    assert result.valid and result.discount == 50

    result = await service.validate("flat50", [line(price=50)], 50)
    assert not result.valid


async def test_increment_usage(add_coupon, usage_of):
    coupon = await add_coupon(code="ONCE", type=DiscountType.FIXED, value=5)
    service = CouponService()

    assert await service.increment_usage(coupon.id) == 1
    assert await service.increment_usage(coupon.id) == 2
    assert await usage_of(coupon.id) == 2

    with pytest.raises(CouponError):
        await service.increment_usage("missing")


async def test_update_ignores_nulls_for_required_fields(add_coupon):
    coupon = await add_coupon(code="TEN", type=DiscountType.PERCENTAGE, value=10, min_purchase=200)
    service = CouponService()

    updated = await service.update(coupon.id, {"code": None, "is_active": None, "type": None})

    assert (updated.code, updated.is_active, updated.type) == ("TEN", True, DiscountType.PERCENTAGE)
    assert (await service.update(coupon.id, {"min_purchase": None})).min_purchase is None
    assert (await service.get(coupon.id)).min_purchase is None


async def test_update_with_invalid_value_is_a_coupon_error(add_coupon):
    coupon = await add_coupon(code="TEN", type=DiscountType.PERCENTAGE, value=10)

    with pytest.raises(CouponError) as excinfo:
        await CouponService().update(coupon.id, {"value": -5})

    assert excinfo.value.message.startswith("Invalid coupon: value")
    assert (await CouponService().get(coupon.id)).value == 10


async def test_update_keeps_usage_counted_meanwhile(add_coupon, usage_of):
    coupon = await add_coupon(code="TEN", type=DiscountType.PERCENTAGE, value=10)
    service = CouponService()

    await service.increment_usage(coupon.id)
    await service.update(coupon.id, {"value": 12})

    assert await usage_of(coupon.id) == 1
