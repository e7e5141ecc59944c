"""FastAPI application factory for the key-value storage service."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from ascent.config import get_settings
from ascent.database import close_db, init_db
from ascent.health.router import router as health_router
from ascent.middleware import setup_middleware
from ascent.redis_client import close_redis, init_redis
from ascent.storage.router import router as storage_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url, create_tables=settings.database_url.startswith("sqlite"))
    await init_redis(settings.redis_url)
    logger.info("storage_service_started", environment=settings.environment)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Ascent Storage API",
        description="Key-value persistence for the Ascent study tracker",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(storage_router)
    app.include_router(storage_router, prefix="/api")

    return app
