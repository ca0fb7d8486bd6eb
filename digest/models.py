"""
Core data structures for the daily digest layer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator

from crawler.schemas.models import PostRecord

DATE_FORMAT = "%Y-%m-%d"


class DigestResult(BaseModel):
    summary: str
    hacks: List[str] = []
    airdrops: List[str] = []
    market_sentiment: str


class DailyDigest(DigestResult):
    date: str
    posts: List[PostRecord] = []
    failures: Dict[str, str] = {}
    created_at: datetime

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        datetime.strptime(value, DATE_FORMAT)
        return value


class TrackedHandle(BaseModel):
    id: str
    handle: str
    added_at: datetime


class Trigger(str, Enum):
    DAILY = "daily"
    MANUAL = "manual"


class RunStatus(str, Enum):
    NOTHING_CONFIGURED = "nothing_configured"
    NO_POSTS = "no_posts"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunReport:
    status: RunStatus
    trigger: Trigger
    message: str
    date: Optional[str] = None
    posts_count: int = 0
    handles_count: int = 0
    failures: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is not RunStatus.FAILED
