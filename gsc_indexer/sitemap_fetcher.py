"""
Sitemap Fetcher Module

Fetches a single XML sitemap over HTTP and extracts the <loc> entries that
match a path filter. Failures never raise: they come back as a SitemapResult
whose status says whether the fetch or the parse went wrong, so callers can
tell "nothing matched" apart from "could not read the sitemap".
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import aiohttp
from aiohttp import ClientTimeout

from gsc_indexer.config import USER_AGENT


logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[bytes]]

# Tag names accepted in either casing convention, mixed freely
_ROOT_TAGS = {"urlset", "UrlSet"}
_ENTRY_TAGS = {"url", "Url"}
_LOC_TAGS = {"loc", "Loc"}


class FetchStatus(Enum):
    """Outcome of a sitemap fetch"""

    OK = "ok"
    FETCH_FAILED = "fetch_failed"
    PARSE_FAILED = "parse_failed"


@dataclass
class SitemapResult:
    """URLs extracted from a sitemap, plus how the fetch went"""

    status: FetchStatus
    urls: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == FetchStatus.OK


class SitemapParseError(ValueError):
    pass


def _local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tag names."""
    return tag.rsplit("}", 1)[-1]


def parse_sitemap(content: bytes | str, path_filter: str) -> List[str]:
    """
    Extract filtered URLs from sitemap XML

    Args:
        content: Raw sitemap document
        path_filter: Substring a URL must contain to be kept

    Returns:
        Trimmed <loc> values containing ``path_filter``, in document order

    Raises:
        SitemapParseError: Malformed XML or an unknown root element
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise SitemapParseError(f"Invalid XML: {e}") from e

    root_name = _local_name(root.tag)
    if root_name not in _ROOT_TAGS:
        raise SitemapParseError(f"Unexpected root element <{root_name}>")

    urls = []
    for entry in root:
        if _local_name(entry.tag) not in _ENTRY_TAGS:
            continue
        for child in entry:
            if _local_name(child.tag) in _LOC_TAGS and child.text:
                url = child.text.strip()
                if path_filter in url:
                    urls.append(url)
                break

    return urls


async def http_fetch(url: str, timeout: float = 10.0) -> bytes:
    """GET ``url`` and return the body, raising on non-2xx responses."""
    async with aiohttp.ClientSession() as session:
        async with session.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=ClientTimeout(total=timeout),
        ) as response:
            response.raise_for_status()
            return await response.read()


class SitemapFetcher:
    """
    Fetches and filters a remote sitemap
    """

    def __init__(
        self,
        sitemap_url: str,
        path_filter: str,
        timeout: float = 10.0,
        fetch: Optional[Fetcher] = None,
    ):
        """
        Args:
            sitemap_url: Absolute URL of the sitemap document
            path_filter: Substring kept URLs must contain
            timeout: Total request timeout in seconds
            fetch: Coroutine returning the document body; defaults to aiohttp GET
        """
        self.sitemap_url = sitemap_url
        self.path_filter = path_filter
        self.timeout = timeout
        self._fetch = fetch or (lambda url: http_fetch(url, timeout=self.timeout))

    async def fetch_urls(self) -> SitemapResult:
        try:
            content = await self._fetch(self.sitemap_url)
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(f"❌ Sitemap fetch failed: {error}")
            return SitemapResult(status=FetchStatus.FETCH_FAILED, error=error)

        try:
            urls = parse_sitemap(content, self.path_filter)
        except SitemapParseError as e:
            logger.error(f"❌ Sitemap parse failed: {e}")
            return SitemapResult(status=FetchStatus.PARSE_FAILED, error=str(e))

        logger.info(
            f"📥 Fetched {len(urls)} URLs matching {self.path_filter!r} from sitemap"
        )
        return SitemapResult(status=FetchStatus.OK, urls=urls)
