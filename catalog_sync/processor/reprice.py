"""
Recompute prices of staged products after a rule change.
"""

import logging

from ..db import SQLiteDatabase, ProductStatus, StatusEvent, transition
from ..pricing import PricingEngine, PricingContext
from .results import StageResult

logger = logging.getLogger(__name__)


async def reapply_pricing_rules(db: SQLiteDatabase, pricing: PricingEngine) -> StageResult:
    """Reload rules and reprice every staged or synced product, moving it back to staged."""
    result = StageResult(stage="reapply")
    await pricing.reload()

    products = await db.list_products(statuses=(ProductStatus.STAGED, ProductStatus.SYNCED))
    logger.info(f"Reapplying pricing to {len(products)} products")

    for product in products:
        try:
            price = pricing.calculate_price(PricingContext(
                list_price=product.list_price,
                net_price=product.net_price,
                manufacturer=product.mfr_name,
                model_number=product.model_number,
            ))
            await db.update_product(
                product.supplier_product_id,
                net_cost=price.net_cost,
                final_price=price.final_price,
                status=transition(product.status, StatusEvent.PRICING_REAPPLIED),
            )
            result.record_success(product.supplier_product_id, "repriced")
        except Exception as e:
            logger.exception(f"Failed to reprice {product.model_number}")
            result.record_failure(product.supplier_product_id, f"{type(e).__name__}: {e}")

    result.finish()
    logger.info(f"Reapply completed: {result.summary()}")
    return result
