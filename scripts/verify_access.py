#!/usr/bin/env python3
"""
Check the configured credentials: Shopify shop + product access, and the
AutoQuotes subscription key. Exits 1 if any check fails.
"""

import asyncio
import logging
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from catalog_sync.config import settings
from catalog_sync.shopify import ShopifyClient, ShopifyClientError
from catalog_sync.supplier import AQClient, SupplierClientError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


async def check_shopify() -> bool:
    async with ShopifyClient(
        settings.shopify_shop_name,
        settings.shopify_access_token,
        api_version=settings.shopify_api_version,
    ) as client:
        try:
            shop = (await client.request("GET", "/shop.json")).get("shop", {})
            logger.info(f"Shopify connection OK: {shop.get('name')} (id {shop.get('id')})")

            products = await client.request("GET", "/products.json", params={"limit": 1})
            logger.info(f"Shopify product access OK ({len(products.get('products', []))} returned)")
        except ShopifyClientError as e:
            logger.error(f"Shopify check failed: {e}")
            return False
    return True


async def check_supplier() -> bool:
    async with AQClient(settings.aq_api_key, base_url=settings.aq_api_url) as client:
        try:
            manufacturers = await client.list_manufacturers()
        except SupplierClientError as e:
            logger.error(f"AutoQuotes check failed: {e}")
            return False
    logger.info(f"AutoQuotes access OK: {len(manufacturers)} manufacturers")
    return True


async def main():
    results = [await check_shopify(), await check_supplier()]
    if not all(results):
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
