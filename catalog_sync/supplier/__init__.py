"""
AutoQuotes supplier module.
"""

from catalog_sync.supplier.adapters import (
    Manufacturer,
    SupplierProduct,
    normalize_manufacturers,
    normalize_product,
    normalize_products,
    unwrap_envelope,
)
from catalog_sync.supplier.client import (
    AQClient,
    SupplierClientError,
    SupplierAuthError,
    SupplierRateLimitError,
)

__all__ = [
    "AQClient",
    "SupplierClientError",
    "SupplierAuthError",
    "SupplierRateLimitError",
    "Manufacturer",
    "SupplierProduct",
    "normalize_manufacturers",
    "normalize_product",
    "normalize_products",
    "unwrap_envelope",
]
