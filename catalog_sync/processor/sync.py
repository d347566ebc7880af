"""
Sync stage: staged products -> Shopify.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..db import (
    SQLiteDatabase, Product, ProductStatus, StatusEvent,
    transition, can_transition, utcnow
)
from ..overrides import SheetsVariantOverrideResolver
from ..shopify import (
    ShopifyClient, ShopifyImageRejectedError, build_product_payload, make_handle
)
from .results import StageResult

logger = logging.getLogger(__name__)

SYNCABLE_STATUSES = (ProductStatus.STAGED, ProductStatus.SYNCED)


async def push_product(shopify: ShopifyClient, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Update the product with the payload's handle, or create it."""
    existing = await shopify.find_by_handle(payload["handle"])
    if existing:
        return await shopify.update(existing["id"], payload)
    return await shopify.create(payload)


async def sync_product(
    db: SQLiteDatabase,
    shopify: ShopifyClient,
    variant_resolver: SheetsVariantOverrideResolver,
    product: Product,
) -> Product:
    """
    Push one product and record the outcome on its row.

    Raises:
        Exception: Whatever the push raised; the row is already marked as error
    """
    if not can_transition(product.status, StatusEvent.SYNC_SUCCEEDED):
        raise ValueError(
            f"Product {product.model_number} is {product.status.value} and cannot be synced"
        )

    overrides = await variant_resolver.get_variants(product.model_number)
    payload = build_product_payload(product, overrides)

    try:
        try:
            pushed = await push_product(shopify, payload)
        except ShopifyImageRejectedError as e:
            logger.warning(f"Images rejected for {product.model_number}, retrying without images: {e}")
            pushed = await push_product(shopify, {**payload, "images": []})
    except Exception as e:
        await db.update_product(
            product.supplier_product_id,
            status=transition(product.status, StatusEvent.SYNC_FAILED),
            sync_error=f"{type(e).__name__}: {e}",
        )
        raise

    shopify_id = pushed.get("id")
    return await db.update_product(
        product.supplier_product_id,
        status=transition(product.status, StatusEvent.SYNC_SUCCEEDED),
        shopify_id=str(shopify_id) if shopify_id is not None else product.shopify_id,
        shopify_handle=pushed.get("handle") or make_handle(product.mfr_name, product.model_number),
        last_synced=utcnow(),
        sync_error=None,
    )


async def sync_to_shopify(
    db: SQLiteDatabase,
    shopify: ShopifyClient,
    variant_resolver: SheetsVariantOverrideResolver,
    specific_id: Optional[str] = None,
    delay_seconds: float = 0.0,
) -> StageResult:
    """
    Push staged and synced products (or the one named by specific_id).

    Never raises: each product's outcome is recorded and the loop continues.
    """
    result = StageResult(stage="sync")

    if specific_id:
        product = await db.get_product(specific_id)
        products = [product] if product else []
        if not products:
            result.record_failure(specific_id, "Product not found")
    else:
        products = await db.list_products(statuses=SYNCABLE_STATUSES)

    logger.info(f"Syncing {len(products)} products to Shopify")

    for index, product in enumerate(products):
        try:
            await sync_product(db, shopify, variant_resolver, product)
            result.record_success(product.supplier_product_id, "synced")
            logger.info(f"Synced {product.model_number}")
        except Exception as e:
            logger.error(f"Sync failed for {product.model_number}: {e}")
            result.record_failure(product.supplier_product_id, f"{type(e).__name__}: {e}")

        if delay_seconds and index < len(products) - 1:
            await asyncio.sleep(delay_seconds)

    result.finish()
    logger.info(f"Sync completed: {result.summary()}")
    return result
