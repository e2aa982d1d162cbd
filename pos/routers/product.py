import re

from fastapi import APIRouter, HTTPException, Depends, status
from typing import List, Optional
from datetime import datetime

from pos.core.errors import InsufficientStockError, ProductNotFoundError
from pos.dependencies.services import get_inventory_adjuster
from pos.models.inventory import StockAdjustment
from pos.models.product import Product
from pos.schemas.product import ProductCreate, ProductUpdate, StockAdjustmentSchema
from pos.services.inventory import InventoryAdjuster

router = APIRouter()


async def _load(product_id: str) -> Product:
    product = await Product.get(product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return product


# ==========================================
# CATALOG ADMIN
# ==========================================

@router.post("/", response_model=Product, response_model_by_alias=False, status_code=status.HTTP_201_CREATED)
async def create_product(product_data: ProductCreate):
    product = Product(
        in_stock=product_data.stock > 0,
        **product_data.model_dump()
    )
    await product.insert()
    return product


@router.put("/{product_id}", response_model=Product, response_model_by_alias=False)
async def update_product(product_id: str, update_data: ProductUpdate):
    product = await _load(product_id)

    data_dict = update_data.model_dump(exclude_unset=True, exclude_none=True)
    data_dict["updated_at"] = datetime.utcnow()

    await product.update({"$set": data_dict})
    return product


@router.delete("/{product_id}")
async def delete_product(product_id: str):
    product = await _load(product_id)
    await product.delete()
    return {"message": "Product deleted successfully"}


@router.post("/{product_id}/adjust-stock", response_model=StockAdjustment, response_model_by_alias=False)
async def adjust_stock(
    product_id: str,
    data: StockAdjustmentSchema,
    adjuster: InventoryAdjuster = Depends(get_inventory_adjuster)
):
    """Restock (positive quantity) or write off (negative quantity)."""
    if data.quantity == 0:
        raise HTTPException(400, "Quantity must not be zero")
    try:
        return await adjuster.adjust(product_id, data.quantity, data.reason, data.note)
    except ProductNotFoundError as e:
        raise HTTPException(404, e.message)
    except InsufficientStockError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, e.message)


@router.get("/{product_id}/adjustments", response_model=List[StockAdjustment], response_model_by_alias=False)
async def adjustment_history(
    product_id: str,
    adjuster: InventoryAdjuster = Depends(get_inventory_adjuster)
):
    await _load(product_id)
    return await adjuster.history(product_id)


# ==========================================
# LOOKUPS (Cashiers)
# ==========================================

@router.get("/", response_model=List[Product], response_model_by_alias=False)
async def get_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock: bool = False
):
    query = Product.find_all()

    if category:
        query = query.find(Product.category == category)

    if search:
        pattern = re.escape(search)
        query = query.find({
            "$or": [
                {"title": {"$regex": pattern, "$options": "i"}},
                {"tags": {"$regex": pattern, "$options": "i"}}
            ]
        })

    products = await query.sort(+Product.title).to_list()
    if low_stock:
        products = [p for p in products if p.is_low_stock]
    return products


@router.get("/{product_id}", response_model=Product, response_model_by_alias=False)
async def get_product(product_id: str):
    return await _load(product_id)
