import asyncio
from datetime import date, timedelta

from pos.core.config import settings
from pos.core.database import init_db
from pos.core.errors import DuplicateCouponError
from pos.models.coupon import DiscountType
from pos.models.product import Product
from pos.services.coupons import CouponService

SAMPLE_PRODUCTS = [
    {"title": "Masala Chai", "price": 20, "category": "Beverages", "stock": 200, "min_stock": 20},
    {"title": "Veg Sandwich", "price": 60, "category": "Snacks", "stock": 40, "min_stock": 5},
    {"title": "Basmati Rice (per kg)", "price": 120, "category": "Grocery", "stock": 25000,
     "min_stock": 2000, "sold_by_weight": True},
    {"title": "Cashews (per kg)", "price": 900, "category": "Grocery", "stock": 5000,
     "min_stock": 500, "sold_by_weight": True},
]

SAMPLE_COUPONS = [
    {"code": "WELCOME10", "type": DiscountType.PERCENTAGE, "value": 10, "max_discount": 100},
    {"code": "FLAT50", "type": DiscountType.FIXED, "value": 50, "min_purchase": 300,
     "expiry_date": date.today() + timedelta(days=30)},
]


async def seed_data():
    print(f"🌱 Connecting to DB: {settings.DATABASE_NAME}...")
    client = await init_db(settings)

    # 1. Catalog
    for data in SAMPLE_PRODUCTS:
        existing = await Product.find_one(Product.title == data["title"])
        if existing:
            print(f"⚠️  '{data['title']}' already exists, skipping")
            continue
        product = Product(in_stock=data["stock"] > 0, **data)
        await product.insert()
        print(f"✅ Product: {product.title}")

    # 2. Coupons
    coupons = CouponService()
    for data in SAMPLE_COUPONS:
        try:
            coupon = await coupons.create(data)
            print(f"✅ Coupon: {coupon.code}")
        except DuplicateCouponError:
            print(f"⚠️  Coupon '{data['code']}' already exists, skipping")

    client.close()
    print("\n👉 Done. Start the API with: uvicorn pos.main:app --reload")


if __name__ == "__main__":
    asyncio.run(seed_data())
