import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

import bookswap.models  # noqa: F401  registers all tables on Base.metadata
from bookswap.api.v1.router import router as v1_router
from bookswap.config import settings
from bookswap.core.change_feed import ChangeFeed
from bookswap.core.exception_handlers import (
    app_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    store_unavailable_handler,
    validation_exception_handler,
)
from bookswap.core.exceptions import AppException
from bookswap.database import check_db_connection

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Database tables are managed by Alembic migrations
    # Run: alembic upgrade head
    if await check_db_connection():
        logger.info("Database connection successful")
    else:
        logger.warning("Database connection failed - ensure database is running")
    yield
    logger.info(
        f"Shutting down with {app.state.change_feed.subscriber_count} realtime subscriptions open"
    )


app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan,
)

# Committed row changes are published here for the realtime endpoints
app.state.change_feed = ChangeFeed()

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(OperationalError, store_unavailable_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Parse CORS origins from settings
cors_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    database_ok = await check_db_connection()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unavailable",
    }
