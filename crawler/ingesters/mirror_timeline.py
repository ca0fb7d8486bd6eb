"""
Recent-post acquisition for one handle across an ordered list of mirror endpoints.
"""
from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from crawler.errors import AllEndpointsExhausted, EndpointUnreachable, NoParseableContent
from crawler.extractors.timeline import TimelineExtractor
from crawler.infra.http import HttpFetcher, PageLoader
from crawler.schemas.models import EndpointFailure, FetchOutcome, RawPage, normalize_handle

logger = logging.getLogger(__name__)

DEFAULT_MIRRORS = (
    "https://nitter.net",
    "https://nitter.privacydev.net",
    "https://nitter.1d4.us",
    "https://nitter.kavin.rocks",
)
SAMPLE_CHARS = 500


class EmptyPagePolicy(str, Enum):
    FALLBACK = "fallback"
    ACCEPT_STALE = "accept_stale"


class MirrorTimelineFetcher:
    """
    Tries each mirror in priority order until one yields at least one post.

    Every per-endpoint problem (network error, bad status, timeout, page without
    parseable posts) is a soft failure: it is logged, recorded and the next
    mirror is tried. Only exhaustion of the whole list is raised.
    """

    def __init__(
        self,
        mirrors: Sequence[str] = DEFAULT_MIRRORS,
        loader: Optional[PageLoader] = None,
        extractor: Optional[TimelineExtractor] = None,
        empty_page_policy: EmptyPagePolicy = EmptyPagePolicy.FALLBACK,
    ) -> None:
        if not mirrors:
            raise ValueError("at least one mirror endpoint is required")
        self.mirrors = tuple(m.rstrip("/") for m in mirrors)
        self.loader = loader or HttpFetcher()
        self.extractor = extractor or TimelineExtractor()
        self.empty_page_policy = empty_page_policy

    def page_url(self, endpoint: str, handle: str) -> str:
        return f"{endpoint}/{handle}"

    def fetch_recent_posts(self, handle: str, cutoff: Optional[datetime] = None) -> FetchOutcome:
        """
        Return the posts of the first mirror that yields any.

        Raises:
            AllEndpointsExhausted: every mirror soft-failed; carries one reason per mirror, in order.
        """
        handle = normalize_handle(handle)
        attempts: List[EndpointFailure] = []
        for endpoint in self.mirrors:
            url = self.page_url(endpoint, handle)
            logger.info("Attempting @%s via %s", handle, url)
            try:
                page = self.loader.load(endpoint, url)
                scan = self.extractor.scan(page.body, handle, cutoff=cutoff)
                if not scan.posts:
                    if (
                        self.empty_page_policy is EmptyPagePolicy.ACCEPT_STALE
                        and scan.units
                        and scan.stale
                    ):
                        logger.info("No recent posts from @%s via %s (%d stale)", handle, endpoint, scan.stale)
                        return FetchOutcome(handle=handle, posts=[], endpoint=endpoint, page=page, attempts=attempts)
                    if scan.stale:
                        raise NoParseableContent(url, reason=f"{scan.stale} post(s) older than cutoff")
                    raise NoParseableContent(url, sample=(page.body or "")[:SAMPLE_CHARS])
            except EndpointUnreachable as exc:
                logger.warning("Failed to fetch %s: %s", url, exc.reason)
                attempts.append(EndpointFailure(endpoint, url, exc.kind, exc.reason))
                continue
            except NoParseableContent as exc:
                if scan.stale:
                    logger.info("No recent posts from @%s via %s: %s", handle, endpoint, exc.reason)
                else:
                    logger.warning("No posts found for @%s via %s - markup may have changed", handle, endpoint)
                    logger.info("Sample HTML from %s: %s", url, exc.sample)
                attempts.append(EndpointFailure(endpoint, url, exc.kind, exc.reason))
                continue

            logger.info("Scraped %d posts from @%s via %s", len(scan.posts), handle, endpoint)
            return FetchOutcome(handle=handle, posts=scan.posts, endpoint=endpoint, page=page, attempts=attempts)

        logger.error("Failed to scrape @%s from all %d mirrors", handle, len(self.mirrors))
        raise AllEndpointsExhausted(handle, attempts)

    def fetch_recent_page(self, handle: str, cutoff: Optional[datetime] = None) -> RawPage:
        """Raw page of the first mirror that yielded posts."""
        return self.fetch_recent_posts(handle, cutoff=cutoff).page
