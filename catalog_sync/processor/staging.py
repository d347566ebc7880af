"""
Operations on the staging store outside the ingest/sync stages:
enabled manufacturers and manual overrides entered by an operator.
"""

import base64
import logging
from typing import Any, Dict, Iterable, List, Optional

from ..db import (
    SQLiteDatabase, Product, ProductImage, ProductVariant, ProductStatus,
    StatusEvent, transition, can_transition, generate_uuid
)

logger = logging.getLogger(__name__)

ENABLED_MANUFACTURERS_KEY = "enabled_manufacturers"
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10MB


class StagingError(Exception):
    """Invalid manual change to a staged product."""
    pass


async def get_enabled_manufacturers(db: SQLiteDatabase) -> List[str]:
    return list(await db.get_setting(ENABLED_MANUFACTURERS_KEY, default=[]))


async def set_enabled_manufacturers(db: SQLiteDatabase, manufacturer_ids: Iterable[str]) -> int:
    """
    Replace the enabled manufacturer set.

    Products of manufacturers dropped from the set are archived.

    Returns:
        Number of products archived
    """
    new_ids: List[str] = []
    for mfr_id in manufacturer_ids:
        mfr_id = str(mfr_id).strip()
        if mfr_id and mfr_id not in new_ids:
            new_ids.append(mfr_id)

    previous = await get_enabled_manufacturers(db)
    removed = [m for m in previous if m not in new_ids]

    await db.set_setting(ENABLED_MANUFACTURERS_KEY, new_ids)

    archived = 0
    if removed:
        for product in await db.list_products(mfr_ids=removed):
            status = transition(product.status, StatusEvent.MANUFACTURER_DISABLED)
            if status != product.status:
                await db.update_product(product.supplier_product_id, status=status)
                archived += 1
        logger.info(f"Disabled {len(removed)} manufacturers, archived {archived} products")

    return archived


async def _require_product(db: SQLiteDatabase, product_id: str) -> Product:
    product = await db.get_product(product_id)
    if product is None:
        raise StagingError(f"Product not found: {product_id}")
    return product


def _mark_edited(product: Product) -> ProductStatus:
    """Edits move a product back to staged; archived products stay archived."""
    if can_transition(product.status, StatusEvent.OVERRIDE_EDITED):
        return transition(product.status, StatusEvent.OVERRIDE_EDITED)
    return product.status


def normalize_variants(product: Product, raw_variants: List[Dict[str, Any]]) -> List[ProductVariant]:
    """Fill ids and defaults for variants entered by an operator."""
    variants = []
    for raw in raw_variants:
        if not isinstance(raw, dict):
            raise StagingError("Each variant must be an object")

        try:
            price = float(raw.get("price") or 0)
        except (TypeError, ValueError):
            price = 0.0
        try:
            inventory = int(raw.get("inventory") or 0)
        except (TypeError, ValueError):
            inventory = 0

        value1 = raw.get("value1") or "Default"
        title = raw.get("title") or f"{raw.get('value1') or ''} {raw.get('value2') or ''}".strip() or "Default"

        variants.append(ProductVariant(
            id=raw.get("id") or generate_uuid(),
            title=title,
            price=price or product.final_price,
            sku=raw.get("sku") or product.model_number,
            inventory=inventory,
            option1=raw.get("option1") or "Option 1",
            value1=value1,
            option2=raw.get("option2"),
            value2=raw.get("value2"),
            option3=raw.get("option3"),
            value3=raw.get("value3"),
        ))
    return variants


async def replace_variants(
    db: SQLiteDatabase, product_id: str, raw_variants: List[Dict[str, Any]]
) -> Product:
    """Replace all stored variants of a product."""
    product = await _require_product(db, product_id)
    variants = normalize_variants(product, raw_variants)
    logger.info(f"Replacing variants for {product.model_number}: {len(variants)} variants")
    return await db.update_product(
        product_id, variants=variants, status=_mark_edited(product)
    )


async def attach_image(
    db: SQLiteDatabase,
    product_id: str,
    content: bytes,
    mime_type: str,
    filename: Optional[str] = None,
) -> Product:
    """Replace the product's first image with an uploaded file."""
    if mime_type not in ALLOWED_IMAGE_TYPES:
        raise StagingError("Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed.")
    if not content:
        raise StagingError("No image file provided")
    if len(content) > MAX_IMAGE_BYTES:
        raise StagingError("Image exceeds the 10MB limit")

    product = await _require_product(db, product_id)
    image = ProductImage(
        attachment=base64.b64encode(content).decode("ascii"), filename=filename
    )

    images = list(product.images)
    if images:
        images[0] = image
    else:
        images = [image]

    logger.info(f"Uploaded image for product: {product.title}")
    return await db.update_product(product_id, images=images, status=_mark_edited(product))


async def remove_image(db: SQLiteDatabase, product_id: str, index: int) -> Product:
    product = await _require_product(db, product_id)
    if index < 0 or index >= len(product.images):
        raise StagingError(f"No image at position {index}")

    images = [img for i, img in enumerate(product.images) if i != index]
    return await db.update_product(product_id, images=images, status=_mark_edited(product))
