"""
AutoQuotes Catalog Sync - Main Application
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .dependencies import init_dependencies, close_dependencies
from .routes import pipeline_router, products_router, settings_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting AutoQuotes Catalog Sync...")
    await init_dependencies()
    logger.info("Application ready")
    yield
    logger.info("Shutting down...")
    await close_dependencies()


# Create app
app = FastAPI(
    title="AutoQuotes Catalog Sync",
    description="Stage the AutoQuotes catalog, price it, and publish it to Shopify",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
app.include_router(pipeline_router)
app.include_router(products_router)
app.include_router(settings_router)


@app.get("/")
async def root():
    return {"status": "AutoQuotes to Shopify sync service is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "catalog_sync.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
