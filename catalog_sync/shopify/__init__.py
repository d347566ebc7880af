"""
Shopify API module.
"""

from catalog_sync.shopify.client import (
    ShopifyClient,
    ShopifyClientError,
    ShopifyAuthError,
    ShopifyRateLimitError,
    ShopifyImageRejectedError,
    normalize_shop_domain,
)
from catalog_sync.shopify.payloads import (
    DEFAULT_VARIANT_TITLE,
    build_description_html,
    build_product_payload,
    build_variants,
    make_handle,
)

__all__ = [
    "ShopifyClient",
    "ShopifyClientError",
    "ShopifyAuthError",
    "ShopifyRateLimitError",
    "ShopifyImageRejectedError",
    "normalize_shop_domain",
    "DEFAULT_VARIANT_TITLE",
    "build_description_html",
    "build_product_payload",
    "build_variants",
    "make_handle",
]
