"""
Google Indexing API Submission Module

Submits the stored URL list to Google's Indexing API in batches, pacing
requests with fixed delays and appending every outcome to the success or
error log. A failed submission stops the whole run unless the failure
policy says to continue.
"""

import sys
import json
import time
import logging
import argparse
from typing import Callable, List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import partial

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from gsc_indexer.batching import create_batches
from gsc_indexer.config import settings, configure_logging, INDEXING_SCOPES
from gsc_indexer.errors import EmptyUrlListError
from gsc_indexer.url_store import append_log_entry, load_urls_or_fail


# Configure module logger
logger = logging.getLogger(__name__)


class IndexingAction(Enum):
    """Supported Google Indexing API actions"""

    URL_UPDATED = "URL_UPDATED"
    URL_DELETED = "URL_DELETED"


class FailurePolicy(Enum):
    """What a submission run does after a failed URL"""

    FAIL_FAST = "fail_fast"
    CONTINUE = "continue"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SubmissionOutcome:
    """Result of a single URL submission"""

    url: str
    success: bool
    error: Optional[str] = None
    http_status: Optional[int] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "success": self.success,
            "error": self.error,
            "http_status": self.http_status,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class SubmissionSummary:
    """Aggregated results from a submission run"""

    total_urls: int = 0
    total_batches: int = 0
    successful: int = 0
    failed: int = 0
    aborted: bool = False
    outcomes: List[SubmissionOutcome] = field(default_factory=list)
    start_time: datetime = field(default_factory=_utcnow)
    end_time: Optional[datetime] = None

    def add_outcome(self, outcome: SubmissionOutcome):
        """Add a URL outcome and update counters"""
        self.outcomes.append(outcome)

        if outcome.success:
            self.successful += 1
        else:
            self.failed += 1

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def ok(self) -> bool:
        return not self.aborted and self.failed == 0

    def finalize(self):
        """Mark run as complete"""
        self.end_time = _utcnow()

    def to_dict(self) -> dict:
        return {
            "total_urls": self.total_urls,
            "total_batches": self.total_batches,
            "successful": self.successful,
            "failed": self.failed,
            "aborted": self.aborted,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def describe_error(exception: Exception) -> tuple[str, Optional[int]]:
    """Return a log-friendly error detail and the HTTP status, if any."""
    if isinstance(exception, HttpError):
        content = exception.content
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        detail = " ".join(str(content).split()) or str(exception)
        return detail, exception.resp.status
    return str(exception) or type(exception).__name__, None


class GoogleIndexingClient:
    """
    Thin wrapper over the Indexing API ``urlNotifications.publish`` call
    """

    def __init__(self, key_file: str):
        """
        Args:
            key_file: Path of the service account JSON key
        """
        self.key_file = key_file
        self.service = None

    def _authenticate(self):
        credentials = service_account.Credentials.from_service_account_file(
            self.key_file, scopes=INDEXING_SCOPES
        )
        self.service = build("indexing", "v3", credentials=credentials)
        logger.info("✅ Successfully authenticated with Google Indexing API")

    def publish(self, url: str, action: IndexingAction = IndexingAction.URL_UPDATED) -> dict:
        """Notify Google about ``url``. Raises HttpError on API failures."""
        if not self.service:
            self._authenticate()

        return (
            self.service.urlNotifications()  # type: ignore[union-attr]
            .publish(body={"url": url, "type": action.value})
            .execute()
        )


class RateLimitedSubmitter:
    """
    Sequential batch submitter with fixed delays between requests
    """

    BATCH_SIZE = 100
    ITEM_DELAY = 1.0  # Seconds after each submission
    BATCH_DELAY = 5.0  # Seconds between batches

    def __init__(
        self,
        submit: Callable[[str], object],
        success_log: str,
        error_log: str,
        batch_size: int = BATCH_SIZE,
        item_delay: float = ITEM_DELAY,
        batch_delay: float = BATCH_DELAY,
        policy: FailurePolicy = FailurePolicy.FAIL_FAST,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            submit: Submits one URL, raising on failure
            success_log: Path of the append-only success log
            error_log: Path of the append-only error log
            batch_size: URLs per batch
            item_delay: Pause after each submission, in seconds
            batch_delay: Pause between batches, in seconds
            policy: Stop at the first failure or keep going
            sleep: Blocking sleep function
            clock: Source of outcome timestamps
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        self.submit = submit
        self.success_log = success_log
        self.error_log = error_log
        self.batch_size = batch_size
        self.item_delay = item_delay
        self.batch_delay = batch_delay
        self.policy = policy
        self.sleep = sleep
        self.clock = clock

    def _submit_one(self, url: str) -> SubmissionOutcome:
        try:
            self.submit(url)
        except Exception as e:
            detail, http_status = describe_error(e)
            outcome = SubmissionOutcome(
                url=url,
                success=False,
                error=detail,
                http_status=http_status,
                timestamp=self.clock(),
            )
            logger.error(f"❌ Error submitting {url}: {detail}")
            append_log_entry(self.error_log, url, detail, outcome.timestamp)
            return outcome

        outcome = SubmissionOutcome(url=url, success=True, timestamp=self.clock())
        logger.info(f"✅ Submitted: {url}")
        append_log_entry(self.success_log, url, "Success", outcome.timestamp)
        return outcome

    def run(self, urls: List[str]) -> SubmissionSummary:
        """
        Submit every URL, batch by batch

        Returns:
            SubmissionSummary; ``aborted`` is set when a failure stopped the run
        """
        batches = create_batches(urls, self.batch_size)
        summary = SubmissionSummary(total_urls=len(urls), total_batches=len(batches))

        for batch_number, batch in enumerate(batches, start=1):
            logger.info(
                f"📤 Processing batch {batch_number}/{len(batches)} ({len(batch)} URLs)"
            )

            for url in batch:
                outcome = self._submit_one(url)
                summary.add_outcome(outcome)

                if not outcome.success and self.policy == FailurePolicy.FAIL_FAST:
                    summary.aborted = True
                    summary.finalize()
                    logger.error(
                        f"🛑 Aborting run after failure on {url} "
                        f"({len(urls) - summary.attempted} URLs not submitted)"
                    )
                    return summary

                self.sleep(self.item_delay)

            if batch_number < len(batches):
                logger.info("✅ Batch completed. Waiting before next batch...")
                self.sleep(self.batch_delay)

        summary.finalize()
        logger.info(
            f"🎉 Run completed: {summary.successful} successful, {summary.failed} failed"
        )
        return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Submit the stored URL list to the Google Indexing API"
    )
    parser.add_argument("--urls-file", default=settings.URLS_FILE)
    parser.add_argument("--key-file", default=settings.KEY_FILE)
    parser.add_argument("--success-log", default=settings.SUCCESS_LOG_FILE)
    parser.add_argument("--error-log", default=settings.ERROR_LOG_FILE)
    parser.add_argument("--batch-size", type=int, default=settings.BATCH_SIZE)
    parser.add_argument("--item-delay", type=float, default=settings.ITEM_DELAY)
    parser.add_argument("--batch-delay", type=float, default=settings.BATCH_DELAY)
    parser.add_argument(
        "--policy",
        choices=[p.value for p in FailurePolicy],
        default=settings.FAILURE_POLICY,
    )
    parser.add_argument(
        "--action",
        choices=[a.value for a in IndexingAction],
        default=IndexingAction.URL_UPDATED.value,
    )
    return parser


def main(
    argv: Optional[List[str]] = None,
    submit: Optional[Callable[[str], object]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Run the submission pipeline

    Returns:
        Process exit code: 0 when every URL was submitted, 1 otherwise
    """
    args = build_parser().parse_args(argv)
    configure_logging("submission")
    logger.info("🚀 Starting URL submission")

    try:
        urls = load_urls_or_fail(args.urls_file)
    except EmptyUrlListError as e:
        logger.error(f"❌ {e}. Exiting...")
        return 1

    if submit is None:
        submit = partial(
            GoogleIndexingClient(args.key_file).publish,
            action=IndexingAction(args.action),
        )

    try:
        submitter = RateLimitedSubmitter(
            submit=submit,
            success_log=args.success_log,
            error_log=args.error_log,
            batch_size=args.batch_size,
            item_delay=args.item_delay,
            batch_delay=args.batch_delay,
            policy=FailurePolicy(args.policy),
            sleep=sleep,
        )
        summary = submitter.run(urls)
    except Exception as e:
        logger.error(f"❌ Critical error: {e}", exc_info=True)
        return 1

    logger.info(f"📊 Run summary: {json.dumps(summary.to_dict())}")

    if not summary.ok:
        return 1

    logger.info("✅ Indexing job completed!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
