"""
Failure taxonomy for the acquisition layer.

Endpoint-level errors are absorbed by the mirror fallback, handle-level errors
by the batch runner; only ``BatchFailed`` is meant to reach the caller.
"""
from __future__ import annotations

from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from crawler.schemas.models import BatchResult, EndpointFailure, HandleFailure


class AcquisitionError(Exception):
    """Base class for everything the acquisition layer raises."""


class InvalidHandle(AcquisitionError, ValueError):
    pass


class DuplicateHandle(AcquisitionError, ValueError):
    pass


class EndpointUnreachable(AcquisitionError):
    """Network error, timeout or non-success status from one mirror."""

    kind = "EndpointUnreachable"

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{url}: {reason}")


class NoParseableContent(AcquisitionError):
    """The mirror answered but the page yielded no post records."""

    kind = "NoParseableContent"

    def __init__(self, url: str, sample: str = "", reason: str = "no parseable timeline items") -> None:
        self.url = url
        self.sample = sample
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class AllEndpointsExhausted(AcquisitionError):
    kind = "AllEndpointsExhausted"

    def __init__(self, handle: str, attempts: List["EndpointFailure"]) -> None:
        self.handle = handle
        self.attempts = list(attempts)
        reasons = "; ".join(f"{a.endpoint} -> {a.reason}" for a in self.attempts)
        super().__init__(f"@{handle}: all {len(self.attempts)} endpoints failed ({reasons})")


class BatchFailed(AcquisitionError):
    """Raised when a batch produced no posts and at least one handle errored."""

    def __init__(self, result: "BatchResult") -> None:
        self.result = result
        super().__init__(
            f"batch failed: 0 posts, {len(result.failures)} handle(s) errored "
            f"({', '.join(result.failures)})"
        )

    @property
    def failures(self) -> Dict[str, "HandleFailure"]:
        return self.result.failures
