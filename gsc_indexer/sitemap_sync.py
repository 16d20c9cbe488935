"""
Sitemap Sync Pipeline

Fetches the sitemap, merges newly listed URLs into the stored URL list and
records the time of the run.
"""

import sys
import json
import asyncio
import logging
import argparse
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from gsc_indexer.batching import create_batches
from gsc_indexer.config import settings, configure_logging
from gsc_indexer.sitemap_fetcher import FetchStatus, SitemapFetcher
from gsc_indexer.url_store import (
    merge_urls,
    read_last_run,
    read_url_list,
    write_last_run,
    write_url_list,
)


logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Summary of one sitemap sync run"""

    status: FetchStatus
    since: datetime
    urls: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    batch_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "since": self.since.isoformat(),
            "total_urls": len(self.urls),
            "added": len(self.added),
            "batch_count": self.batch_count,
            "error": self.error,
        }


async def sync_sitemap(
    fetcher: SitemapFetcher,
    urls_file: str,
    last_run_file: str,
    batch_size: int = 100,
    lookback_hours: int = 24,
    now: Optional[datetime] = None,
) -> SyncResult:
    """
    Merge the sitemap's URLs into the stored list

    The URL file is only rewritten when new URLs were found. The last-run
    marker is only advanced when the sitemap was fetched and parsed, so a
    failed run keeps the previous lookback window.
    """
    now = now or datetime.now(timezone.utc)

    existing = read_url_list(urls_file, missing_ok=True)
    since = read_last_run(last_run_file, now=now, lookback=timedelta(hours=lookback_hours))
    logger.info(
        f"🔄 Syncing sitemap {fetcher.sitemap_url} "
        f"({len(existing)} stored URLs, last run {since.isoformat()})"
    )

    sitemap = await fetcher.fetch_urls()
    if not sitemap.ok:
        return SyncResult(
            status=sitemap.status, since=since, urls=existing, error=sitemap.error
        )

    merge = merge_urls(existing, sitemap.urls)
    if merge.added:
        write_url_list(urls_file, merge.merged)
        logger.info(
            f"Added {merge.added_count} new URLs (Total: {len(merge.merged)})"
        )
    else:
        logger.info(f"No new URLs in sitemap (Total: {len(merge.merged)})")

    write_last_run(last_run_file, now)

    batches = create_batches(merge.merged, batch_size)
    logger.info(f"📦 Stored list splits into {len(batches)} batches of up to {batch_size} URLs")

    return SyncResult(
        status=FetchStatus.OK,
        since=since,
        urls=merge.merged,
        added=merge.added,
        batch_count=len(batches),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Append new sitemap URLs to the stored URL list"
    )
    parser.add_argument("--sitemap-url", default=settings.SITEMAP_URL)
    parser.add_argument("--path-filter", default=settings.URL_PATH_FILTER)
    parser.add_argument("--urls-file", default=settings.URLS_FILE)
    parser.add_argument("--last-run-file", default=settings.LAST_RUN_FILE)
    parser.add_argument("--timeout", type=float, default=settings.SITEMAP_TIMEOUT)
    parser.add_argument("--batch-size", type=int, default=settings.BATCH_SIZE)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("sitemap_sync")

    fetcher = SitemapFetcher(
        sitemap_url=args.sitemap_url,
        path_filter=args.path_filter,
        timeout=args.timeout,
    )

    try:
        result = asyncio.run(
            sync_sitemap(
                fetcher,
                urls_file=args.urls_file,
                last_run_file=args.last_run_file,
                batch_size=args.batch_size,
                lookback_hours=settings.LOOKBACK_HOURS,
            )
        )
    except Exception as e:
        logger.error(f"🛑 Critical error: {e}", exc_info=True)
        return 1

    logger.info(f"📊 Sync summary: {json.dumps(result.to_dict())}")

    if result.status != FetchStatus.OK:
        logger.error(f"❌ Sitemap sync failed ({result.status.value}): {result.error}")
        return 1

    logger.info("✅ Sitemap sync completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
