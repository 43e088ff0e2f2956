#!/usr/bin/env python3
"""
Cache Warm-up Script
====================

Fetch the ban data sheet once and write the on-disk cache file, so the
service starts with data even if the source is unreachable at boot.

Usage:
    python scripts/warm_cache.py
    python scripts/warm_cache.py --url https://example.test/sheet.csv
    python scripts/warm_cache.py --cache-file /var/lib/banwatch/data_cache.json

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="warm-cache")
logger = get_logger(__name__)


async def main(args: argparse.Namespace) -> int:
    """Fetch, parse and persist the dataset."""
    from services.ban_data.errors import CacheEmptyError
    from services.ban_data.service import build_data_service
    from shared.config import settings

    feed_overrides: dict[str, object] = {}
    if args.url:
        feed_overrides["source_url"] = args.url
    if args.cache_file:
        feed_overrides["cache_file"] = str(args.cache_file)

    feed = settings.ban_data.model_copy(update=feed_overrides)
    if feed.cache_path is None:
        logger.error("cache_file_not_configured")
        return 2

    service = build_data_service(settings.model_copy(update={"ban_data": feed}))

    # Ignore whatever is on disk so the source is always hit
    service.cache.ttl = timedelta(0)

    try:
        result = await service.get_data()
    except CacheEmptyError as e:
        logger.error("warm_cache_failed", url=feed.source_url, error=str(e))
        return 1
    finally:
        await service.close()

    if result.stale:
        logger.error("warm_cache_failed", url=feed.source_url, error=result.error)
        return 1

    logger.info(
        "warm_cache_completed",
        url=feed.source_url,
        cache_file=str(feed.cache_path),
        records=len(result.dataset),
        columns=list(result.dataset.column_names),
    )
    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Fetch the ban data sheet and write the cache file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--url",
        help="Source URL (defaults to BAN_DATA_SOURCE_URL)",
    )
    parser.add_argument(
        "--cache-file",
        type=Path,
        help="Cache file path (defaults to BAN_DATA_CACHE_FILE)",
    )

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)
