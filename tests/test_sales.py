from datetime import datetime

import pytest

from pos.core.errors import PersistenceError
from pos.models.sale import PaymentMethod, PaymentSplit, SaleRecord
from pos.services.sales import SaleRecorder, generate_order_number


def test_order_number_is_zero_padded_timestamp():
    assert generate_order_number(datetime(2024, 3, 5, 4, 7, 9)) == "240305040709"
    assert generate_order_number(datetime(2031, 12, 31, 23, 59, 58)) == "311231235958"


@pytest.mark.anyio
async def test_record_sale_snapshots_items_and_derives_tax(recorder, line):
    cart = [
        line("p1", "Pen", 10, quantity=3, notes="blue"),
        line("rice", "Rice", 120, quantity=500, sold_by_weight=True),
    ]
    # subtotal 90, discount 10, caller total with 18% tax rounded by hand
    sale = await recorder.record_sale(cart, 94.40, "INR", discount=10, coupon_code="TEN")

    assert sale.id is not None
    assert sale.order_number == "240305140709"
    assert sale.date == "2024-03-05"
    assert sale.subtotal == pytest.approx(90)
    assert sale.tax == pytest.approx(94.40 - 80)
    assert sale.subtotal - sale.discount + sale.tax == pytest.approx(sale.total)
    assert sale.coupon_code == "TEN"
    assert [item.total for item in sale.items] == [pytest.approx(30), pytest.approx(60)]
    assert sale.items[0].notes == "blue"
    assert sale.items[1].sold_by_weight is True

    stored = await SaleRecord.get_motor_collection().find_one({"_id": sale.id})
    assert stored["order_number"] == sale.order_number
    assert stored["payment_method"] == "Cash"
    assert stored["timestamp"] == datetime(2024, 3, 5, 14, 7, 9)


@pytest.mark.anyio
async def test_same_second_orders_get_distinct_numbers(recorder, line):
    first = await recorder.record_sale([line()], 100, "INR")
    second = await recorder.record_sale([line()], 100, "INR")
    third = await recorder.record_sale([line()], 100, "INR")

    assert first.order_number == "240305140709"
    assert second.order_number == "240305140709-2"
    assert third.order_number == "240305140709-3"


@pytest.mark.anyio
async def test_split_payment_is_stored(recorder, line):
    sale = await recorder.record_sale(
        [line()], 100, "INR",
        payment_method=PaymentMethod.SPLIT,
        payment_split=PaymentSplit(cash=40, online=60),
    )
    found = await recorder.find_by_order_number(sale.order_number)
    assert found.payment_split == PaymentSplit(cash=40, online=60)


@pytest.mark.anyio
async def test_store_failure_raises_retryable_error(recorder, line, outage):
    outage(SaleRecord, "insert")
    with pytest.raises(PersistenceError):
        await recorder.record_sale([line()], 100, "INR")
    assert await SaleRecord.find_all().count() == 0


@pytest.mark.anyio
async def test_list_and_summarize_by_date(db, line):
    days = iter([
        datetime(2024, 3, 1, 10, 0, 0),
        datetime(2024, 3, 2, 11, 0, 0),
        datetime(2024, 3, 2, 12, 0, 0),
        datetime(2024, 3, 4, 9, 0, 0),
    ])
    recorder = SaleRecorder(clock=lambda: next(days))
    await recorder.record_sale([line(price=100)], 100, "INR")
    await recorder.record_sale([line(price=200)], 236, "INR", payment_method=PaymentMethod.ONLINE)
    await recorder.record_sale([line(price=50)], 50, "INR", discount=0)
    await recorder.record_sale([line(price=10)], 10, "INR")

    sales = await recorder.list_sales("2024-03-02", "2024-03-03")
    assert [s.total for s in sales] == [50, 236]

    summary = await recorder.summarize("2024-03-02", "2024-03-03")
    assert summary.sales_count == 2
    assert summary.gross_sales == pytest.approx(286)
    assert summary.tax_collected == pytest.approx(36)
    assert summary.by_payment_method == {"Online": 236, "Cash": 50}
