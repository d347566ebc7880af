"""
Pipeline trigger API routes.
"""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from ..dependencies import get_pipeline
from ..processor import PipelineBusyError, ProductNotFoundError, SyncError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class TriggerResponse(BaseModel):
    status: str


class SyncProductRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[str] = Field(None, alias="productId")


class SyncProductResponse(BaseModel):
    status: str
    message: str
    shopify_id: Optional[str] = None


def _start(operation: str, message: str) -> TriggerResponse:
    pipeline = get_pipeline()
    try:
        pipeline.start(operation)
    except PipelineBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TriggerResponse(status=message)


@router.post("/products/ingest", response_model=TriggerResponse)
async def trigger_ingest():
    """Pull enabled manufacturers' catalogs into staging (background)."""
    return _start("ingest", "Ingest started")


@router.post("/products/sync", response_model=TriggerResponse)
async def trigger_sync():
    """Push staged products to Shopify (background)."""
    return _start("sync", "Sync to Shopify started")


@router.post("/products/pricing/apply", response_model=TriggerResponse)
async def trigger_reapply():
    """Recompute prices with the current rules (background)."""
    return _start("reapply", "Pricing update started")


@router.post("/sync", response_model=TriggerResponse)
async def trigger_full_sync():
    """Ingest then sync, for legacy callers (background)."""
    return _start("sync_all", "Full sync cycle started")


@router.post("/sync/product", response_model=SyncProductResponse)
async def sync_single_product(body: SyncProductRequest):
    """Fetch, ingest and sync one product by id or model number, synchronously."""
    if not body.product_id:
        raise HTTPException(status_code=400, detail="productId is required")

    pipeline = get_pipeline()
    try:
        product = await pipeline.sync_specific_product(body.product_id)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SyncError as e:
        logger.error(f"Single sync failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return SyncProductResponse(
        status="success",
        message=f"Synced product {body.product_id}",
        shopify_id=product.shopify_id,
    )


@router.get("/sync/status")
async def get_sync_status():
    """Running operation and the last result of each operation."""
    return get_pipeline().status()
