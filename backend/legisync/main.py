"""
LegiSync - FastAPI Application Entry Point

Keeps a relational bill store synchronized with Congress.gov and
generates structured bill analyses on demand.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from legisync import __version__
from legisync.api.endpoints import bills, health, imports, sync_status
from legisync.core.config import get_settings
from legisync.db.base import Base
from legisync.db.session import async_engine

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def init_database():
    """Initialize database tables."""
    # Import all models to ensure they're registered with Base
    from legisync import models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs startup and shutdown logic.
    """
    logger.info("🚀 Starting LegiSync...")
    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"Congress.gov API: {settings.congress_api_url}")

    await init_database()
    logger.info("✅ Database tables initialized")
    logger.info("✅ Startup complete! Ready to accept requests.")

    yield

    logger.info("👋 Shutting down LegiSync...")
    from legisync.services.factory import get_congress_client, get_dispatcher

    await get_dispatcher().drain()
    await get_congress_client().close()
    await async_engine.dispose()
    logger.info("✅ Shutdown complete")


app = FastAPI(
    title="LegiSync",
    description="Legislative record ingestion and enrichment pipeline",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(sync_status.router, prefix="/api/v1", tags=["Monitoring"])
app.include_router(imports.router, prefix="/api/v1", tags=["Imports"])
app.include_router(bills.router, prefix="/api/v1", tags=["Bills"])


@app.get("/", tags=["Health"])
async def root():
    return {
        "status": "healthy",
        "service": "LegiSync",
        "version": __version__,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "legisync.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
    )
