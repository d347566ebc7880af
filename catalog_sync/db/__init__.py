"""
Database package - SQLite only.
"""

from .models import (
    Product, ProductImage, ProductVariant, CategoryValue, ProductStatus,
    StatusEvent, InvalidTransitionError, PricingMode, PricingRule,
    DEFAULT_RULE_KEY, transition, can_transition, generate_uuid, utcnow
)
from .sqlite import SQLiteDatabase

__all__ = [
    "SQLiteDatabase",
    "Product",
    "ProductImage",
    "ProductVariant",
    "CategoryValue",
    "ProductStatus",
    "StatusEvent",
    "InvalidTransitionError",
    "PricingMode",
    "PricingRule",
    "DEFAULT_RULE_KEY",
    "transition",
    "can_transition",
    "generate_uuid",
    "utcnow",
]
