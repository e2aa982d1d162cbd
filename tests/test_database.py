from datetime import datetime

import pytest

from pos.core.config import Settings
from pos.core.database import DOCUMENT_MODELS, init_db
from pos.models.cash import CashDirection, CashTransaction
from pos.models.product import Product
from pos.models.sale import SaleRecord
from pos.services.cash import CashLedger

pytestmark = pytest.mark.anyio


async def test_collection_names(db):
    assert {model.get_motor_collection().name for model in DOCUMENT_MODELS} == {
        "products", "stock_adjustments", "coupons", "sales", "cash_logs"
    }


async def test_documents_are_stored_under_their_own_id(db, add_product):
    await add_product("p1", "Tea", 20)

    raw = await Product.get_motor_collection().find_one({"_id": "p1"})
    assert raw["title"] == "Tea"
    assert (await Product.get("p1")).title == "Tea"


async def test_timestamps_are_stored_as_dates(db, add_product, recorder, line):
    await add_product("p1", "Tea", 20)
    sale = await recorder.record_sale([line("p1", "Tea", 20)], total=20, currency="INR")
    await CashLedger().record(CashDirection.IN, 100, "Float")

    raw_sale = await SaleRecord.get_motor_collection().find_one({"_id": sale.id})
    raw_cash = await CashTransaction.get_motor_collection().find_one({})
    raw_product = await Product.get_motor_collection().find_one({"_id": "p1"})

    assert isinstance(raw_sale["timestamp"], datetime)
    assert isinstance(raw_cash["timestamp"], datetime)
    assert isinstance(raw_product["created_at"], datetime)
    assert raw_sale["date"] == "2024-03-05"


async def test_init_db_uses_configured_database(monkeypatch):
    seen = {}

    async def fake_init_beanie(database, document_models):
        seen["database"] = database.name
        seen["models"] = document_models

    monkeypatch.setattr("pos.core.database.init_beanie", fake_init_beanie)
    client = await init_db(Settings(MONGODB_URL="mongodb://localhost:27017", DATABASE_NAME="till_db"))

    assert seen == {"database": "till_db", "models": DOCUMENT_MODELS}
    client.close()
