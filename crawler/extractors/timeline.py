"""
Timeline extraction for Nitter-style mirror pages.

Turns one fetched page into an ordered, bounded list of PostRecord objects.
Pure transform: no I/O, no state kept between calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup
from pydantic import ValidationError

from crawler.schemas.models import UNDATED_SENTINEL, PostRecord

logger = logging.getLogger(__name__)

MAX_POSTS_PER_FETCH = 10

# Primary selector first; later entries are only consulted when earlier ones yield nothing.
UNIT_SELECTORS: Tuple[str, ...] = (".timeline-item", "article")
CONTENT_SELECTORS: Tuple[str, ...] = (".tweet-content", ".tweet-text, .status-content")
TIMESTAMP_SELECTORS: Tuple[Tuple[str, str], ...] = (
    (".tweet-date a[title]", "title"),
    (".tweet-date[title]", "title"),
    ("time[datetime]", "datetime"),
)

_NITTER_DATE_FORMATS = (
    "%b %d, %Y · %I:%M %p %Z",
    "%b %d, %Y · %I:%M %p",
    "%d/%m/%Y, %H:%M:%S",
)


class RecencyPolicy(str, Enum):
    NONE = "none"
    LAST_24H = "last24h"
    SINCE_TODAY = "sinceToday"

    def cutoff(self, now: datetime) -> Optional[datetime]:
        """Resolve the policy against ``now`` (UTC) into an absolute cutoff."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        now = now.astimezone(timezone.utc)
        if self is RecencyPolicy.LAST_24H:
            return now - timedelta(hours=24)
        if self is RecencyPolicy.SINCE_TODAY:
            return now.replace(hour=0, minute=0, second=0, microsecond=0)
        return None


class UndatedPolicy(str, Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


@dataclass
class TimelineScan:
    units: int = 0
    stale: int = 0
    posts: List[PostRecord] = field(default_factory=list)


def parse_post_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """Parse a mirror timestamp (Nitter title format or ISO-8601) into aware UTC."""
    if not raw:
        return None
    text = " ".join(raw.split())
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        dt = None
    if dt is None:
        for fmt in _NITTER_DATE_FORMATS:
            try:
                dt = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if dt is None:
        return None
    if not dt.tzinfo:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class TimelineExtractor:
    def __init__(
        self,
        max_posts: int = MAX_POSTS_PER_FETCH,
        undated_policy: UndatedPolicy = UndatedPolicy.INCLUDE,
    ) -> None:
        self.max_posts = max_posts
        self.undated_policy = undated_policy

    def extract(
        self,
        body: Union[str, bytes, None],
        handle: str,
        cutoff: Optional[datetime] = None,
    ) -> List[PostRecord]:
        return self.scan(body, handle, cutoff=cutoff).posts

    def scan(
        self,
        body: Union[str, bytes, None],
        handle: str,
        cutoff: Optional[datetime] = None,
    ) -> TimelineScan:
        """Like :meth:`extract`, but also reports how many units were seen and dropped as stale."""
        scan = TimelineScan()
        if not body:
            return scan
        try:
            soup = BeautifulSoup(body, "lxml")
        except Exception as exc:
            logger.debug("Unparseable page for @%s: %s", handle, exc)
            return scan

        units = _select_first(soup, UNIT_SELECTORS)
        scan.units = len(units)
        for unit in units:
            if len(scan.posts) >= self.max_posts:
                break
            content = _unit_content(unit)
            if not content:
                continue
            posted_at = parse_post_timestamp(_unit_timestamp(unit))
            if cutoff is not None:
                if posted_at is None and self.undated_policy is UndatedPolicy.EXCLUDE:
                    continue
                if posted_at is not None and posted_at < cutoff:
                    scan.stale += 1
                    continue
            try:
                record = PostRecord(
                    content=content,
                    timestamp=posted_at.isoformat() if posted_at else UNDATED_SENTINEL,
                    handle=handle,
                )
            except ValidationError:
                continue
            scan.posts.append(record)
        return scan


def _select_first(node, selectors: Sequence[str]) -> list:
    for selector in selectors:
        found = node.select(selector)
        if found:
            return found
    return []


def _unit_content(unit) -> str:
    for selector in CONTENT_SELECTORS:
        node = unit.select_one(selector)
        if node is None:
            continue
        text = node.get_text().strip()
        if text:
            return text
    return ""


def _unit_timestamp(unit) -> Optional[str]:
    for selector, attr in TIMESTAMP_SELECTORS:
        node = unit.select_one(selector)
        if node is not None and node.get(attr):
            return node[attr]
    return None
