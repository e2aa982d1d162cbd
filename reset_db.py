import asyncio
import sys

from pos.core.config import settings
from pos.core.database import init_db
from pos.models.cash import CashTransaction
from pos.models.coupon import Coupon
from pos.models.inventory import StockAdjustment
from pos.models.product import Product
from pos.models.sale import SaleRecord


async def reset_collections(include_ledgers: bool):
    print("🧹 connecting to database...")
    client = await init_db(settings)

    targets = [Product, Coupon]
    # Sales, cash and stock logs are append-only audit data; only wiped on request
    if include_ledgers:
        targets += [SaleRecord, CashTransaction, StockAdjustment]

    for model in targets:
        print(f"🔥 Deleting ALL {model.Settings.name}...")
        await model.delete_all()

    client.close()
    print("✅ Database is clean! You can now run 'python seed.py'.")


if __name__ == "__main__":
    asyncio.run(reset_collections(include_ledgers="--all" in sys.argv))
