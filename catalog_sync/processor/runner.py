"""
Pipeline orchestrator: runs the stages and guards bulk runs against overlap.
"""

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from ..db import SQLiteDatabase, Product, PricingRule
from ..overrides import DriveImageOverrideResolver, SheetsVariantOverrideResolver
from ..pricing import PricingEngine
from ..shopify import ShopifyClient
from ..supplier import AQClient, Manufacturer, SupplierClientError
from . import staging
from .ingest import ingest, ingest_product
from .reprice import reapply_pricing_rules
from .results import StageResult
from .sync import sync_to_shopify, sync_product

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


class PipelineError(Exception):
    """Error raised by a pipeline operation."""
    pass


class PipelineBusyError(PipelineError):
    """A bulk operation is already running."""

    def __init__(self, running: str):
        super().__init__(f"Operation '{running}' is already running")
        self.running = running


class ProductNotFoundError(PipelineError):
    """No supplier product matches the requested id or model number."""
    pass


class SyncError(PipelineError):
    """The single-product fast path failed."""
    pass


def is_uuid(value: str) -> bool:
    return bool(UUID_PATTERN.match(value or ""))


class Pipeline:
    """
    Owns the clients and runs ingest, sync and repricing.

    Bulk operations share one busy flag, so at most one of them runs at a
    time; a second trigger raises PipelineBusyError instead of waiting.
    The single-product fast path bypasses the flag.
    """

    OPERATIONS = ("ingest", "sync", "reapply", "sync_all")

    def __init__(
        self,
        db: SQLiteDatabase,
        supplier: AQClient,
        shopify: ShopifyClient,
        pricing: PricingEngine,
        image_resolver: DriveImageOverrideResolver,
        variant_resolver: SheetsVariantOverrideResolver,
        sync_delay_seconds: float = 0.0,
    ):
        self.db = db
        self.supplier = supplier
        self.shopify = shopify
        self.pricing = pricing
        self.image_resolver = image_resolver
        self.variant_resolver = variant_resolver
        self.sync_delay_seconds = sync_delay_seconds

        self._running: Optional[str] = None
        self._tasks: Set[asyncio.Task] = set()
        self.last_results: Dict[str, StageResult] = {}

    # ===== Busy guard =====

    @property
    def running(self) -> Optional[str]:
        return self._running

    def _reserve(self, operation: str) -> None:
        if self._running is not None:
            raise PipelineBusyError(self._running)
        self._running = operation

    def _release(self) -> None:
        self._running = None

    async def _guarded(self, operation: str, func: Callable[[], Awaitable[StageResult]]) -> StageResult:
        self._reserve(operation)
        try:
            return await self._run(operation, func)
        finally:
            self._release()

    async def _run(self, operation: str, func: Callable[[], Awaitable[StageResult]]) -> StageResult:
        result = await func()
        self.last_results[operation] = result
        return result

    # ===== Stages =====

    async def _ingest(self) -> StageResult:
        return await ingest(self.db, self.supplier, self.pricing, self.image_resolver)

    async def _sync(self, specific_id: Optional[str] = None) -> StageResult:
        return await sync_to_shopify(
            self.db, self.shopify, self.variant_resolver,
            specific_id=specific_id, delay_seconds=self.sync_delay_seconds,
        )

    async def _reapply(self) -> StageResult:
        return await reapply_pricing_rules(self.db, self.pricing)

    async def _sync_all(self) -> StageResult:
        await self._run("ingest", self._ingest)
        return await self._run("sync", self._sync)

    async def ingest(self) -> StageResult:
        return await self._guarded("ingest", self._ingest)

    async def sync_to_shopify(self, specific_id: Optional[str] = None) -> StageResult:
        """Push products to Shopify. A specific product is synced without the busy guard."""
        if specific_id:
            return await self._sync(specific_id)
        return await self._guarded("sync", self._sync)

    async def reapply_pricing_rules(self) -> StageResult:
        return await self._guarded("reapply", self._reapply)

    async def sync_all(self) -> StageResult:
        """Ingest then sync, returning the sync result."""
        return await self._guarded("sync_all", self._sync_all)

    # ===== Fast path =====

    async def _resolve_product_id(self, model_or_id: str) -> str:
        if is_uuid(model_or_id):
            return model_or_id

        wanted = model_or_id.strip().lower()
        for mfr_id in await staging.get_enabled_manufacturers(self.db):
            try:
                products = await self.supplier.list_products(mfr_id)
            except SupplierClientError as e:
                logger.warning(f"Could not search manufacturer {mfr_id}: {e}")
                continue
            for sp in products:
                if sp.model_number and sp.model_number.strip().lower() == wanted:
                    logger.info(f"Resolved model {model_or_id} to {sp.product_id}")
                    return sp.product_id

        raise ProductNotFoundError(f"No product found for model number '{model_or_id}'")

    async def sync_specific_product(self, model_or_id: str) -> Product:
        """
        Fetch, ingest and sync one product immediately.

        Args:
            model_or_id: Supplier product id (UUID) or model number

        Returns:
            The synced product

        Raises:
            ProductNotFoundError: If nothing matches
            SyncError: If ingest or sync fails
        """
        if not model_or_id or not model_or_id.strip():
            raise ProductNotFoundError("A product id or model number is required")

        product_id = await self._resolve_product_id(model_or_id.strip())

        try:
            detail = await self.supplier.get_product_detail(product_id)
        except SupplierClientError as e:
            raise SyncError(f"Failed to fetch product {product_id}: {e}") from e
        if detail is None:
            raise ProductNotFoundError(f"Product not found: {product_id}")

        try:
            product = await ingest_product(self.db, self.pricing, self.image_resolver, detail)
        except Exception as e:
            raise SyncError(f"Failed to ingest {product_id}: {e}") from e

        try:
            return await sync_product(self.db, self.shopify, self.variant_resolver, product)
        except Exception as e:
            raise SyncError(f"Failed to sync {product.model_number}: {type(e).__name__}: {e}") from e

    # ===== Background triggers =====

    def start(self, operation: str) -> asyncio.Task:
        """
        Schedule a bulk operation and return immediately.

        Raises:
            ValueError: If the operation is unknown
            PipelineBusyError: If a bulk operation is already running
        """
        funcs = {
            "ingest": self._ingest,
            "sync": self._sync,
            "reapply": self._reapply,
            "sync_all": self._sync_all,
        }
        if operation not in funcs:
            raise ValueError(f"Unknown operation: {operation}")

        # Reserve before scheduling so a second trigger in the same tick is rejected
        self._reserve(operation)
        task = asyncio.create_task(self._background(operation, funcs[operation]))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _background(self, operation: str, func: Callable[[], Awaitable[StageResult]]) -> None:
        try:
            result = await self._run(operation, func)
            logger.info(f"Background {operation} finished: {result.summary()}")
        except Exception:
            logger.exception(f"Background {operation} failed")
        finally:
            self._release()

    def status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "last_results": {name: r.to_dict() for name, r in self.last_results.items()},
        }

    # ===== Settings =====

    async def get_rules(self) -> List[PricingRule]:
        return await self.pricing.get_rules()

    async def set_rule(self, manufacturer: str, rule: PricingRule) -> PricingRule:
        return await self.pricing.set_rule(manufacturer, rule)

    async def get_enabled_manufacturers(self) -> List[str]:
        return await staging.get_enabled_manufacturers(self.db)

    async def set_enabled_manufacturers(self, manufacturer_ids: List[str]) -> int:
        return await staging.set_enabled_manufacturers(self.db, manufacturer_ids)

    async def list_manufacturers(self) -> List[Manufacturer]:
        return await self.supplier.list_manufacturers()

    async def wait_idle(self) -> None:
        """Wait for scheduled background operations to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
