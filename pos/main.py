import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from pos.core.config import settings
from pos.core.database import init_db, watch_changes
from pos.core.logs import configure_logging
from pos.models.coupon import Coupon
from pos.models.product import Product
from pos.routers import cash, checkout, coupon, product, sale
from pos.services.receipts import build_receipt_sink

logger = logging.getLogger(__name__)

LIVE_FEEDS = {"products": Product, "coupons": Coupon}


# ---------------------------------------------------------
# 1. LIFESPAN MANAGER
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- STARTUP ---
    configure_logging(settings.LOG_LEVEL)
    logger.info("Initialization started")
    app.state.mongo_client = await init_db(settings)
    app.state.receipt_sink = build_receipt_sink(settings)
    logger.info("Database connected successfully")

    yield

    # --- SHUTDOWN ---
    logger.info("System shutting down")
    app.state.mongo_client.close()


# ---------------------------------------------------------
# 2. APP INITIALIZATION
# ---------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan,
    description="Point-of-sale API: catalog, checkout, coupons, returns and cash drawer"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(product.router, prefix="/products", tags=["Product Catalog"])
app.include_router(coupon.router, prefix="/coupons", tags=["Coupons"])
app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(sale.router, prefix="/sales", tags=["Sales & Returns"])
app.include_router(cash.router, prefix="/cash", tags=["Cash Drawer"])


# ---------------------------------------------------------
# 3. BASIC ROUTES (Health Checks)
# ---------------------------------------------------------
@app.get("/", tags=["System"])
async def root():
    return {
        "system": settings.APP_NAME,
        "status": "Online",
        "documentation": "/docs"
    }


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok", "database": settings.DATABASE_NAME}


# ---------------------------------------------------------
# 4. LIVE CATALOG FEED (read model for terminal UIs)
# ---------------------------------------------------------
@app.websocket("/live/{collection}")
async def live_feed(websocket: WebSocket, collection: str):
    model = LIVE_FEEDS.get(collection)
    if model is None:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    try:
        async for event in watch_changes(model):
            await websocket.send_json(event)
    except WebSocketDisconnect:
        logger.debug("Live %s subscriber disconnected", collection)
