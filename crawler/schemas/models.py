"""
Models for acquisition outputs.
Post records are pydantic (validated at the edge); per-run bookkeeping is plain dataclasses.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator

from crawler.errors import InvalidHandle

MAX_HANDLE_LENGTH = 15
UNDATED_SENTINEL = "Recent"

_HANDLE_RE = re.compile(r"^[A-Za-z0-9_]+$")


def normalize_handle(raw: str) -> str:
    """Strip whitespace and one leading '@', lowercase, and validate."""
    handle = (raw or "").strip()
    if handle.startswith("@"):
        handle = handle[1:]
    handle = handle.lower()
    if not handle:
        raise InvalidHandle("handle must not be empty")
    if len(handle) > MAX_HANDLE_LENGTH:
        raise InvalidHandle(f"handle '{handle}' is longer than {MAX_HANDLE_LENGTH} characters")
    if not _HANDLE_RE.match(handle):
        raise InvalidHandle(f"handle '{handle}' contains invalid characters")
    return handle


class PostRecord(BaseModel):
    content: str
    timestamp: str = UNDATED_SENTINEL
    handle: str

    @field_validator("content", mode="before")
    @classmethod
    def _trim_content(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("content must not be blank")
        return value


@dataclass
class RawPage:
    endpoint: str
    url: str
    body: str
    status_code: Optional[int] = None


@dataclass
class EndpointFailure:
    endpoint: str
    url: str
    kind: str
    reason: str


@dataclass
class FetchOutcome:
    handle: str
    posts: List[PostRecord]
    endpoint: str
    page: Optional[RawPage] = None
    attempts: List[EndpointFailure] = field(default_factory=list)


@dataclass
class HandleFailure:
    handle: str
    kind: str
    reason: str
    attempts: List[EndpointFailure] = field(default_factory=list)


@dataclass
class BatchResult:
    """Accumulator owned by the batch runner for a single run."""

    handles: List[str] = field(default_factory=list)
    posts: List[PostRecord] = field(default_factory=list)
    failures: Dict[str, HandleFailure] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    cancelled: bool = False

    @property
    def failed(self) -> bool:
        return not self.posts and bool(self.failures)

    def failure_reasons(self) -> Dict[str, str]:
        return {handle: f"{failure.kind}: {failure.reason}" for handle, failure in self.failures.items()}
