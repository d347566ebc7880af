"""
FastAPI dependency injection.
Builds the database, clients and pipeline once at startup.
"""

from typing import Optional

from .config import settings
from .db import SQLiteDatabase
from .overrides import (
    DriveImageOverrideResolver,
    SheetsVariantOverrideResolver,
    build_token_provider,
    DRIVE_READONLY_SCOPE,
    SHEETS_READONLY_SCOPE,
)
from .pricing import PricingEngine, SQLiteRuleRepository
from .processor import Pipeline
from .shopify import ShopifyClient
from .supplier import AQClient


# Global instances (initialized on startup)
_db: Optional[SQLiteDatabase] = None
_pipeline: Optional[Pipeline] = None


def build_pipeline(db: SQLiteDatabase) -> Pipeline:
    """Wire clients and resolvers from settings around an open database."""
    drive_tokens = build_token_provider(
        settings.google_application_credentials, [DRIVE_READONLY_SCOPE]
    )
    sheets_tokens = build_token_provider(
        settings.google_application_credentials, [SHEETS_READONLY_SCOPE]
    )

    return Pipeline(
        db=db,
        supplier=AQClient(settings.aq_api_key, base_url=settings.aq_api_url),
        shopify=ShopifyClient(
            settings.shopify_shop_name,
            settings.shopify_access_token,
            api_version=settings.shopify_api_version,
        ),
        pricing=PricingEngine(SQLiteRuleRepository(db)),
        image_resolver=DriveImageOverrideResolver(settings.google_drive_folder_id, drive_tokens),
        variant_resolver=SheetsVariantOverrideResolver(
            settings.google_sheet_id,
            sheets_tokens,
            cache_ttl=settings.variant_cache_ttl_seconds,
        ),
        sync_delay_seconds=settings.sync_delay_seconds,
    )


async def close_pipeline(pipeline: Pipeline) -> None:
    await pipeline.supplier.close()
    await pipeline.shopify.close()


async def init_dependencies():
    """Initialize global dependencies. Called on app startup."""
    global _db, _pipeline

    _db = SQLiteDatabase(settings.database_path)
    await _db.initialize()

    _pipeline = build_pipeline(_db)
    await _pipeline.pricing.ensure_loaded()


async def close_dependencies():
    """Close global dependencies. Called on app shutdown."""
    global _db, _pipeline
    if _pipeline:
        await close_pipeline(_pipeline)
        _pipeline = None
    if _db:
        await _db.close()
        _db = None


def get_db() -> SQLiteDatabase:
    """Get the database instance."""
    if _db is None:
        raise RuntimeError("Database not initialized")
    return _db


def get_pipeline() -> Pipeline:
    """Get the pipeline instance."""
    if _pipeline is None:
        raise RuntimeError("Pipeline not initialized")
    return _pipeline
