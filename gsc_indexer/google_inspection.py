"""
Search Console URL Inspection Module

Checks the indexing status of every stored URL through the URL Inspection
API and writes the results to a CSV report. Requests run concurrently, one
worker thread per URL; a failed request turns into an "Error" row instead of
stopping the report.
"""

import csv
import sys
import asyncio
import logging
import argparse
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, asdict
from typing import Callable, List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build

from gsc_indexer.config import settings, configure_logging, INSPECTION_SCOPES
from gsc_indexer.errors import EmptyUrlListError
from gsc_indexer.google_indexing import describe_error
from gsc_indexer.url_store import load_urls_or_fail


logger = logging.getLogger(__name__)

Inspector = Callable[[str], Optional[dict]]

REPORT_FIELDS = ["url", "verdict", "coverageState", "lastCrawlTime", "googleCanonical"]

NOT_AVAILABLE = "N/A"
NO_DATA = "No Data"
ERROR = "Error"


@dataclass
class StatusResult:
    """One row of the indexing status report"""

    url: str
    verdict: str
    coverageState: str
    lastCrawlTime: str
    googleCanonical: str

    @classmethod
    def from_index_status(cls, url: str, index_status: Optional[dict]) -> "StatusResult":
        if not index_status:
            return cls.sentinel(url, NO_DATA)

        return cls(
            url=url,
            verdict=index_status.get("verdict") or NOT_AVAILABLE,
            coverageState=index_status.get("coverageState") or NOT_AVAILABLE,
            lastCrawlTime=index_status.get("lastCrawlTime") or NOT_AVAILABLE,
            googleCanonical=index_status.get("googleCanonical") or NOT_AVAILABLE,
        )

    @classmethod
    def sentinel(cls, url: str, value: str) -> "StatusResult":
        return cls(
            url=url,
            verdict=value,
            coverageState=value,
            lastCrawlTime=value,
            googleCanonical=value,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class SearchConsoleInspector:
    """
    URL Inspection API client, safe to call from many threads

    googleapiclient service objects share an httplib2 connection that is not
    thread-safe, so every worker thread builds its own.
    """

    def __init__(self, key_file: str, site_url: str):
        """
        Args:
            key_file: Path of the service account JSON key
            site_url: Search Console property the URLs belong to
        """
        self.key_file = key_file
        self.site_url = site_url
        self._credentials = None
        self._local = threading.local()
        self._lock = threading.Lock()

    def _get_service(self):
        service = getattr(self._local, "service", None)
        if service is None:
            with self._lock:
                if self._credentials is None:
                    self._credentials = (
                        service_account.Credentials.from_service_account_file(
                            self.key_file, scopes=INSPECTION_SCOPES
                        )
                    )
            service = build(
                "searchconsole",
                "v1",
                credentials=self._credentials,
                cache_discovery=False,
            )
            self._local.service = service
        return service

    def inspect(self, url: str) -> Optional[dict]:
        """Return ``inspectionResult.indexStatusResult`` for ``url``, or None."""
        response = (
            self._get_service()
            .urlInspection()
            .index()
            .inspect(body={"inspectionUrl": url, "siteUrl": self.site_url})
            .execute()
        )
        return (response.get("inspectionResult") or {}).get("indexStatusResult")


def check_indexing_status(url: str, inspect: Inspector) -> StatusResult:
    try:
        index_status = inspect(url)
    except Exception as e:
        detail, _ = describe_error(e)
        logger.error(f"❌ Error checking {url}: {detail}")
        return StatusResult.sentinel(url, ERROR)

    return StatusResult.from_index_status(url, index_status)


async def inspect_urls(urls: List[str], inspect: Inspector) -> List[StatusResult]:
    """
    Inspect every URL concurrently

    One thread per URL, no cap. Result order follows ``urls``, but callers
    should not rely on requests having completed in that order.
    """
    if not urls:
        return []

    loop = asyncio.get_running_loop()
    with ThreadPoolExecutor(max_workers=len(urls)) as pool:
        tasks = [
            loop.run_in_executor(pool, check_indexing_status, url, inspect)
            for url in urls
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

    rows = []
    for url, result in zip(urls, results):
        if isinstance(result, BaseException):
            logger.error(f"❌ Inspection task for {url} failed: {result}")
            rows.append(StatusResult.sentinel(url, ERROR))
        else:
            rows.append(result)
    return rows


def write_report(path: str, results: List[StatusResult]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_FIELDS)
        writer.writeheader()
        for result in results:
            writer.writerow(result.to_dict())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Write a CSV report of the indexing status of stored URLs"
    )
    parser.add_argument("--urls-file", default=settings.URLS_FILE)
    parser.add_argument("--key-file", default=settings.KEY_FILE)
    parser.add_argument("--site-url", default=settings.SITE_URL)
    parser.add_argument("--report-file", default=settings.REPORT_FILE)
    return parser


def main(argv: Optional[List[str]] = None, inspect: Optional[Inspector] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("inspection")
    logger.info("🚀 Starting URL verification...")

    try:
        urls = load_urls_or_fail(args.urls_file)
    except EmptyUrlListError as e:
        logger.error(f"❌ {e}")
        return 1

    logger.info(f"📄 Found {len(urls)} URLs in the file.")

    if inspect is None:
        inspect = SearchConsoleInspector(args.key_file, args.site_url).inspect

    try:
        results = asyncio.run(inspect_urls(urls, inspect))
        write_report(args.report_file, results)
    except Exception as e:
        logger.error(f"❌ Critical error: {e}", exc_info=True)
        return 1

    errors = sum(1 for r in results if r.verdict == ERROR)
    logger.info(
        f"✅ URL verification completed! Report saved as: {args.report_file} "
        f"({errors} errors)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
