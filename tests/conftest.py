"""
Shared fixtures: an in-memory MongoDB (mongomock-motor) with Beanie
initialized, a small catalog, and the engine services wired against it.
"""
from datetime import datetime
from uuid import uuid4

import pytest
from beanie import init_beanie
from mongomock_motor import AsyncMongoMockClient

from pos.core.database import DOCUMENT_MODELS
from pos.models.coupon import Coupon
from pos.models.product import PricedLineItem, Product
from pos.services.checkout import CheckoutService
from pos.services.coupons import CouponService
from pos.services.inventory import InventoryAdjuster
from pos.services.receipts import ReceiptSink, ReceiptResult, StoreIdentity
from pos.services.returns import ReturnProcessor
from pos.services.sales import SaleRecorder
from pos.services.settlement import SettlementConfig
from pos.services.stock import StockValidator

FIXED_NOW = datetime(2024, 3, 5, 14, 7, 9)


async def init_mock_db(config=None) -> AsyncMongoMockClient:
    """Same signature as ``init_db``; every call gets an empty database."""
    client = AsyncMongoMockClient()
    await init_beanie(
        database=client.get_database(f"pos_test_{uuid4().hex}"),
        document_models=DOCUMENT_MODELS
    )
    return client


class RecordingSink(ReceiptSink):
    def __init__(self, success: bool = True):
        self.success = success
        self.receipts = []

    async def deliver(self, receipt):
        self.receipts.append(receipt)
        if not self.success:
            return ReceiptResult(success=False, message="Printer offline")
        return ReceiptResult(success=True, message="Printed")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db(anyio_backend):
    return await init_mock_db()


@pytest.fixture
def mock_init_db():
    return init_mock_db


@pytest.fixture
def outage(monkeypatch):
    """Make ``target.name`` raise like a dropped database connection."""
    def _break(target, name: str):
        async def _unavailable(*args, **kwargs):
            raise ConnectionError(f"{name} unavailable")
        monkeypatch.setattr(target, name, _unavailable)
    return _break


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def add_product(db):
    async def _add(product_id: str, title: str, price: float, stock: int = 10, **extra) -> Product:
        product = Product(id=product_id, title=title, price=price, stock=stock, in_stock=stock > 0, **extra)
        await product.insert()
        return product
    return _add


@pytest.fixture
def add_coupon(db):
    async def _add(**data) -> Coupon:
        return await CouponService().create(data)
    return _add


@pytest.fixture
def line():
    def _line(product_id: str = "p1", title: str = "Widget", price: float = 100.0,
              quantity: int = 1, sold_by_weight: bool = False, notes=None) -> PricedLineItem:
        return PricedLineItem(
            product_id=product_id,
            title=title,
            unit_price=price,
            sold_by_weight=sold_by_weight,
            quantity=quantity,
            notes=notes,
        )
    return _line


@pytest.fixture
def recorder(db, clock):
    return SaleRecorder(clock=clock)


@pytest.fixture
def adjuster(db):
    return InventoryAdjuster()


@pytest.fixture
def returns(recorder, adjuster):
    return ReturnProcessor(recorder, adjuster)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def checkout(db, recorder, adjuster, sink):
    return CheckoutService(
        config=SettlementConfig(currency="INR", tax_percentage=18.0),
        coupons=CouponService(),
        stock=StockValidator(),
        recorder=recorder,
        adjuster=adjuster,
        receipt_sink=sink,
        store_identity=StoreIdentity(name="Corner Shop", tax_id="29ABCDE1234F1Z5"),
    )


@pytest.fixture
def stock_of(db):
    async def _stock(product_id):
        return (await Product.get(product_id)).stock
    return _stock


@pytest.fixture
def usage_of(db):
    async def _usage(coupon_id):
        return (await Coupon.get(coupon_id)).usage_count
    return _usage
