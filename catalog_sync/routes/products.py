"""
Staged product routes: listing and manual overrides.
"""

import math
from typing import Any, Dict, List

from fastapi import APIRouter, File, HTTPException, UploadFile
from pydantic import BaseModel

from ..db import Product
from ..dependencies import get_db
from ..processor import StagingError, attach_image, remove_image, replace_variants

router = APIRouter(prefix="/api/products")

PAGE_SIZE = 50


class ProductPage(BaseModel):
    products: List[Product]
    total: int
    page: int
    pages: int


class VariantsRequest(BaseModel):
    variants: List[Dict[str, Any]]


async def _get_or_404(product_id: str) -> Product:
    product = await get_db().get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("", response_model=ProductPage)
async def list_products(page: int = 1):
    """Staged products, 50 per page, ordered by manufacturer and model."""
    db = get_db()
    page = max(page, 1)

    products = await db.list_products(limit=PAGE_SIZE, offset=(page - 1) * PAGE_SIZE)
    total = await db.count_products()

    return ProductPage(
        products=products, total=total, page=page, pages=math.ceil(total / PAGE_SIZE)
    )


@router.get("/{product_id}/variants")
async def get_variants(product_id: str):
    product = await _get_or_404(product_id)
    return {"variants": product.variants}


@router.post("/{product_id}/variants")
async def save_variants(product_id: str, body: VariantsRequest):
    """Replace all variants of a product."""
    await _get_or_404(product_id)
    try:
        product = await replace_variants(get_db(), product_id, body.variants)
    except StagingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "Variants saved", "variants": product.variants}


@router.post("/{product_id}/image")
async def upload_image(product_id: str, image: UploadFile = File(...)):
    """Replace the product's primary image (jpeg/png/gif/webp, max 10MB)."""
    await _get_or_404(product_id)
    content = await image.read()
    try:
        product = await attach_image(
            get_db(), product_id, content, image.content_type or "", filename=image.filename
        )
    except StagingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "Image uploaded", "images": len(product.images)}


@router.delete("/{product_id}/images/{index}")
async def delete_image(product_id: str, index: int):
    await _get_or_404(product_id)
    try:
        product = await remove_image(get_db(), product_id, index)
    except StagingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "Image removed", "images": len(product.images)}
