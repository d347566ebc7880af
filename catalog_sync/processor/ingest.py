"""
Ingest stage: supplier catalog -> pricing -> image overrides -> staging store.
"""

import logging
from typing import Optional

from ..db import (
    SQLiteDatabase, Product, ProductImage, StatusEvent, transition, utcnow
)
from ..overrides import DriveImageOverrideResolver
from ..pricing import PricingEngine, PricingContext
from ..supplier import AQClient, SupplierProduct, SupplierClientError
from .results import StageResult
from .staging import get_enabled_manufacturers

logger = logging.getLogger(__name__)


async def ingest_product(
    db: SQLiteDatabase,
    pricing: PricingEngine,
    image_resolver: DriveImageOverrideResolver,
    supplier_product: SupplierProduct,
    mfr_id: Optional[str] = None,
) -> Product:
    """
    Price one supplier product and upsert it into the staging store.

    Fields owned by later stages (storefront id and handle, manual variants,
    last sync time) are carried over from the stored row.

    Args:
        mfr_id: Enabled manufacturer id the product was listed under. Stored
            in place of the record's own id so disabling that manufacturer
            finds the product. Without it the stored row's id is kept.
    """
    sp = supplier_product
    if not sp.model_number:
        raise ValueError(f"Product {sp.product_id} has no model number")

    await pricing.ensure_loaded()
    price = pricing.calculate_price(PricingContext(
        list_price=sp.list_price,
        net_price=sp.net_price,
        manufacturer=sp.mfr_name,
        model_number=sp.model_number,
    ))

    images = [ProductImage(src=url) for url in sp.picture_urls if url]
    override = await image_resolver.find_image_override(sp.model_number)
    if override:
        images = [ProductImage(attachment=override.base64, filename=override.filename)]

    existing = await db.get_product(sp.product_id)
    status = transition(existing.status if existing else None, StatusEvent.INGESTED)

    if not mfr_id:
        mfr_id = existing.mfr_id if existing and existing.mfr_id else sp.mfr_id

    product = Product(
        supplier_product_id=sp.product_id,
        mfr_id=mfr_id,
        mfr_name=sp.mfr_name,
        model_number=sp.model_number,
        title=sp.title,
        description_html=sp.description_html,
        spec_sheet_url=sp.spec_sheet_url,
        list_price=sp.list_price,
        net_price=sp.net_price,
        net_cost=price.net_cost,
        final_price=price.final_price,
        images=images,
        category_values=sp.category_values,
        tags=sp.tags,
        product_type=sp.product_type,
        status=status,
        sync_error=None,
        last_ingested=utcnow(),
    )
    if existing:
        product = product.model_copy(update={
            "variants": existing.variants,
            "shopify_id": existing.shopify_id,
            "shopify_handle": existing.shopify_handle,
            "last_synced": existing.last_synced,
            "created_at": existing.created_at,
        })

    return await db.upsert_product(product)


async def ingest(
    db: SQLiteDatabase,
    supplier: AQClient,
    pricing: PricingEngine,
    image_resolver: DriveImageOverrideResolver,
) -> StageResult:
    """
    Pull every enabled manufacturer's catalog into the staging store.

    Never raises: failures are recorded per manufacturer or per product.
    """
    result = StageResult(stage="ingest")
    await pricing.ensure_loaded()

    manufacturer_ids = await get_enabled_manufacturers(db)
    if not manufacturer_ids:
        logger.info("No enabled manufacturers to ingest")
        return result.finish()

    logger.info(f"Starting ingest for {len(manufacturer_ids)} manufacturers")

    for mfr_id in manufacturer_ids:
        try:
            products = await supplier.list_products(mfr_id)
        except SupplierClientError as e:
            logger.error(f"Failed to list products for manufacturer {mfr_id}: {e}")
            result.record_failure(f"manufacturer:{mfr_id}", str(e))
            continue

        logger.info(f"Manufacturer {mfr_id}: {len(products)} products")

        for sp in products:
            if not sp.model_number:
                result.record_skip(sp.product_id, "missing model number")
                continue
            try:
                await ingest_product(db, pricing, image_resolver, sp, mfr_id=mfr_id)
                result.record_success(sp.product_id, "upserted")
            except Exception as e:
                logger.exception(f"Failed to ingest {sp.model_number} ({sp.product_id})")
                result.record_failure(sp.product_id, f"{type(e).__name__}: {e}")

    result.finish()
    logger.info(f"Ingest completed: {result.summary()}")
    return result
