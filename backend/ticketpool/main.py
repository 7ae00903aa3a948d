"""
Ticket Pool API - Main Application Entry Point

An event-ticket marketplace backend demonstrating:
- Race-free ticket allocation with row-level locks (SELECT ... FOR UPDATE)
- All-or-nothing vendor batch releases
- Structured logging with request correlation and a best-effort audit sink
- Live availability counts, Redis caching only for enriched listings
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ticketpool.api.middleware import RequestLoggingMiddleware
from ticketpool.api.router import api_router
from ticketpool.core.config import get_settings
from ticketpool.core.error_handlers import register_exception_handlers
from ticketpool.core.logging import get_logger, setup_logging
from ticketpool.core.metrics import metrics_endpoint
from ticketpool.db.session import dispose_engine, get_db
from ticketpool.services.cache_service import close_redis, get_cache_stats, get_redis

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Serving listings without cache")

    yield

    await close_redis()
    await dispose_engine()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event ticket pool with concurrency-safe allocation",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint for Docker and load balancers."""
    try:
        await db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        get_logger(__name__).error("health_db_check_failed", error=str(e))
        database = "disconnected"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "cache": await get_cache_stats(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
