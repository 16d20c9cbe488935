"""
URL list storage

Plain-text persistence shared by the three pipelines: the stored URL list,
the last-run marker and the append-only success/error event logs.
"""

import os
import shutil
import logging
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from gsc_indexer.errors import EmptyUrlListError


logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = timedelta(hours=24)


@dataclass
class MergeResult:
    """Outcome of merging a fetched URL list into the stored one"""

    merged: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.added)


def read_url_list(path: str, missing_ok: bool = False) -> List[str]:
    """
    Read the stored URL list

    Lines are trimmed; blank lines and anything that is not an absolute
    http(s) URL are dropped.

    Args:
        path: Path of the newline-delimited URL file
        missing_ok: Return an empty list instead of raising when the file is absent

    Returns:
        URLs in file order
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except FileNotFoundError:
        if missing_ok:
            return []
        raise

    urls = []
    for line in content.splitlines():
        url = line.strip()
        if not url:
            continue
        if not url.startswith(("http://", "https://")):
            logger.warning(f"⚠️ Skipping non-URL line in {path}: {url!r}")
            continue
        urls.append(url)
    return urls


def load_urls_or_fail(path: str) -> List[str]:
    """Read the URL list, raising EmptyUrlListError if it is missing or empty."""
    try:
        urls = read_url_list(path)
    except FileNotFoundError:
        raise EmptyUrlListError(f"URL list file not found: {path}")

    if not urls:
        raise EmptyUrlListError(f"No URLs found in {path}")
    return urls


def write_url_list(path: str, urls: Iterable[str]) -> None:
    """Replace the URL list file in one rename so readers never see a partial file."""
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".urls-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write("\n".join(urls))
        # mkstemp creates the file 0600; keep the permissions of the list it replaces
        if os.path.exists(path):
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except Exception:
        os.unlink(tmp_path)
        raise


def merge_urls(existing: List[str], fetched: List[str]) -> MergeResult:
    """
    Merge fetched URLs into the existing list

    Existing URLs keep their order and come first; fetched URLs not seen yet
    follow in fetched order. Equality is exact string match, so
    "https://a/x" and "https://a/x/" are different URLs.
    """
    seen = set()
    merged = []
    for url in existing:
        if url not in seen:
            seen.add(url)
            merged.append(url)

    added = []
    for url in fetched:
        if url not in seen:
            seen.add(url)
            merged.append(url)
            added.append(url)

    return MergeResult(merged=merged, added=added)


def read_last_run(
    path: str,
    now: Optional[datetime] = None,
    lookback: timedelta = DEFAULT_LOOKBACK,
) -> datetime:
    """
    Read the last-run marker

    Falls back to ``now - lookback`` when the file is absent or does not hold
    a valid ISO-8601 timestamp.
    """
    now = now or datetime.now(timezone.utc)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read().strip()
    except FileNotFoundError:
        logger.info(f"⏳ No previous run found, using {lookback} default")
        return now - lookback

    try:
        # fromisoformat() rejects a trailing "Z" before Python 3.11
        last_run = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"⚠️ Invalid date in {path}, using default")
        return now - lookback

    if last_run.tzinfo is None:
        last_run = last_run.replace(tzinfo=timezone.utc)
    return last_run


def write_last_run(path: str, when: Optional[datetime] = None) -> None:
    when = when or datetime.now(timezone.utc)
    with open(path, "w", encoding="utf-8") as f:
        f.write(when.isoformat())


def format_log_entry(url: str, detail: str, when: datetime) -> str:
    return f"[{when.isoformat()}] {url} - {detail}\n"


def append_log_entry(
    path: str, url: str, detail: str, when: Optional[datetime] = None
) -> None:
    """Append one ``[timestamp] url - detail`` line to an event log."""
    when = when or datetime.now(timezone.utc)
    with open(path, "a", encoding="utf-8") as f:
        f.write(format_log_entry(url, detail, when))
