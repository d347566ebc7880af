"""
Processor package: ingest, sync and repricing stages plus the orchestrator.
"""

from .results import ItemResult, StageResult
from .staging import (
    StagingError,
    get_enabled_manufacturers,
    set_enabled_manufacturers,
    replace_variants,
    attach_image,
    remove_image,
)
from .ingest import ingest, ingest_product
from .sync import sync_to_shopify, sync_product, push_product, SYNCABLE_STATUSES
from .reprice import reapply_pricing_rules
from .runner import (
    Pipeline,
    PipelineError,
    PipelineBusyError,
    ProductNotFoundError,
    SyncError,
    is_uuid,
)

__all__ = [
    "ItemResult",
    "StageResult",
    "StagingError",
    "get_enabled_manufacturers",
    "set_enabled_manufacturers",
    "replace_variants",
    "attach_image",
    "remove_image",
    "ingest",
    "ingest_product",
    "sync_to_shopify",
    "sync_product",
    "push_product",
    "SYNCABLE_STATUSES",
    "reapply_pricing_rules",
    "Pipeline",
    "PipelineError",
    "PipelineBusyError",
    "ProductNotFoundError",
    "SyncError",
    "is_uuid",
]
