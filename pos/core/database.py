import logging
from typing import Any, AsyncIterator, Dict, Type

from beanie import Document, init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from pos.core.config import Settings
from pos.models.cash import CashTransaction
from pos.models.coupon import Coupon
from pos.models.inventory import StockAdjustment
from pos.models.product import Product
from pos.models.sale import SaleRecord

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [Product, StockAdjustment, Coupon, SaleRecord, CashTransaction]


async def init_db(config: Settings) -> AsyncIOMotorClient:
    """Connect to MongoDB and initialize Beanie"""
    client = AsyncIOMotorClient(config.MONGODB_URL)

    # Also builds the indexes declared on the documents
    await init_beanie(
        database=client[config.DATABASE_NAME],
        document_models=DOCUMENT_MODELS
    )

    logger.info("Beanie initialized with database '%s'", config.DATABASE_NAME)
    return client


async def watch_changes(model: Type[Document]) -> AsyncIterator[Dict[str, Any]]:
    """
    Live change feed for one collection, as ``{"operation", "id", "document"}``
    events. Change streams need a replica set (Atlas clusters always are one).
    """
    collection = model.get_motor_collection()
    async with collection.watch(full_document="updateLookup") as stream:
        async for change in stream:
            full_document = change.get("fullDocument")
            yield {
                "operation": change["operationType"],
                "id": change["documentKey"]["_id"],
                "document": model.model_validate(full_document).model_dump(mode="json") if full_document else None,
            }
