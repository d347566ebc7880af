#!/usr/bin/env python3
"""
Cron job script to run the catalog pipeline without the web server.
Add to crontab: 0 1 * * * cd /path/to/app && /path/to/venv/bin/python scripts/run_sync.py all

Usage:
    python scripts/run_sync.py {ingest,sync,reapply,all}
    python scripts/run_sync.py product <model number or product id>
"""

import argparse
import asyncio
import logging
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from catalog_sync.config import settings
from catalog_sync.db import SQLiteDatabase
from catalog_sync.dependencies import build_pipeline, close_pipeline
from catalog_sync.processor import PipelineError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the AutoQuotes catalog pipeline")
    parser.add_argument(
        "command", choices=["ingest", "sync", "reapply", "all", "product"],
        help="Stage to run"
    )
    parser.add_argument("id", nargs="?", help="Model number or product id (for 'product')")
    args = parser.parse_args(argv)
    if args.command == "product" and not args.id:
        parser.error("'product' requires a model number or product id")
    return args


async def main(argv=None):
    args = parse_args(argv)
    logger.info(f"Starting '{args.command}'...")

    db = SQLiteDatabase(settings.database_path)
    await db.initialize()
    pipeline = build_pipeline(db)

    try:
        if args.command == "product":
            try:
                product = await pipeline.sync_specific_product(args.id)
            except PipelineError as e:
                logger.error(f"Product sync failed: {e}")
                sys.exit(1)
            logger.info(f"Synced {product.model_number} (Shopify id {product.shopify_id})")
            return

        operations = {
            "ingest": pipeline.ingest,
            "sync": pipeline.sync_to_shopify,
            "reapply": pipeline.reapply_pricing_rules,
            "all": pipeline.sync_all,
        }
        result = await operations[args.command]()

        logger.info(result.summary())
        failed = dict(result.errors)
        if args.command == "all" and "ingest" in pipeline.last_results:
            failed.update(pipeline.last_results["ingest"].errors)

        if failed:
            for key, error in failed.items():
                logger.error(f"  {key}: {error}")
            sys.exit(1)

    finally:
        await close_pipeline(pipeline)
        await db.close()


if __name__ == "__main__":
    asyncio.run(main())
