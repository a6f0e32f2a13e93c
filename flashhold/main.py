"""
Flash Hold API
FastAPI application entry point

- Hold expiry scheduler started in the lifespan (HOLD_EXPIRY_ENABLED)
- Rate limiting with SlowAPI
- Domain error handlers + error sanitization middleware
- Health endpoint with DB ping, reaper heartbeat and hold statistics
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from flashhold import __version__
from flashhold.api.routes import holds, orders, payments, products
from flashhold.core.config import settings
from flashhold.core.database import AsyncSessionLocal
from flashhold.core.error_handler import ErrorSanitizationMiddleware, register_exception_handlers
from flashhold.core.product_cache import product_cache
from flashhold.core.rate_limit import limiter, rate_limit_exceeded_handler
from flashhold.jobs.hold_expiry_scheduler import hold_expiry_scheduler
from flashhold.services.hold_expiry import get_hold_stats
from flashhold.services.stock_ledger import stock_ledger

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start and stop the hold expiry scheduler."""
    if settings.HOLD_EXPIRY_ENABLED:
        await hold_expiry_scheduler.start()
        logger.info("Hold expiry scheduler ENABLED")
    else:
        logger.info("Hold expiry scheduler DISABLED via config")

    yield

    await hold_expiry_scheduler.stop()


app = FastAPI(
    lifespan=lifespan,
    title=f"{settings.APP_NAME} API",
    description="Time-bounded stock holds, checkout and payment settlement.",
    version=__version__,
    openapi_tags=[
        {"name": "Health", "description": "Health check and monitoring endpoints"},
        {"name": "Products", "description": "Product stock view"},
        {"name": "Holds", "description": "Time-bounded stock reservations"},
        {"name": "Orders", "description": "Checkout of holds into orders"},
        {"name": "Payments", "description": "Payment provider notifications"},
    ],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Domain errors -> status codes
register_exception_handlers(app)

# Error sanitization (catches unhandled exceptions)
app.add_middleware(ErrorSanitizationMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(products.router, prefix="/api/products", tags=["Products"])
app.include_router(holds.router, prefix="/api/holds", tags=["Holds"])
app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])


@app.get("/", tags=["Health"])
async def root():
    return {"message": f"{settings.APP_NAME} API", "status": "operational", "version": __version__}


@app.get("/health", tags=["Health"])
async def health():
    """
    Health check with DB ping, reaper heartbeat, hold statistics and cache stats.
    """
    db_status = "ok"
    hold_stats = None
    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
            hold_stats = await get_hold_stats(db)
    except Exception as e:
        logger.error(f"Health check database ping failed: {e}")
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "database": db_status,
        "hold_expiry": hold_expiry_scheduler.get_status(),
        "holds": hold_stats,
        "product_cache": product_cache.get_stats(),
        "stock_floor_hits": stock_ledger.floor_hits,
    }
