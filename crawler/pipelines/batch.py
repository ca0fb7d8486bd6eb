"""
Batch orchestration: drive the mirror fetcher across every configured handle.
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from crawler.errors import AllEndpointsExhausted, BatchFailed, InvalidHandle
from crawler.extractors.timeline import RecencyPolicy
from crawler.ingesters.mirror_timeline import MirrorTimelineFetcher
from crawler.pipelines.dedupe import dedupe_handles
from crawler.schemas.models import BatchResult, HandleFailure, normalize_handle

logger = logging.getLogger(__name__)

DEFAULT_HANDLE_DELAY = 1.0
DEFAULT_BUDGET_SECONDS = 300.0


def clamp_delay(value: float) -> float:
    """Keep the inter-handle pause within 1-2s; 0 disables it (tests only)."""
    if value <= 0:
        return 0.0
    return max(1.0, min(2.0, value))


class BatchRunner:
    """
    Runs one handle at a time with a fixed pause in between.

    Sequential by design: mirrors block clients that hit them in parallel.
    ``current`` exposes the accumulating result so a caller that abandons the
    run (``cancel()`` or the wall-clock budget) can still use what was collected.
    """

    def __init__(
        self,
        fetcher: MirrorTimelineFetcher,
        *,
        delay_seconds: float = DEFAULT_HANDLE_DELAY,
        budget_seconds: Optional[float] = DEFAULT_BUDGET_SECONDS,
        recency: RecencyPolicy = RecencyPolicy.NONE,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fetcher = fetcher
        self.delay_seconds = clamp_delay(delay_seconds)
        self.budget_seconds = budget_seconds
        self.recency = recency
        self.clock = clock
        self.timer = timer
        self.current: Optional[BatchResult] = None
        self._cancel = threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    def run_batch(self, handles: Sequence[str]) -> BatchResult:
        """
        Fetch recent posts for every handle, in order.

        Returns:
            BatchResult with posts in handle order and per-handle failures.

        Raises:
            BatchFailed: no posts at all and at least one handle errored.
        """
        self._cancel.clear()
        started = self.clock()
        cutoff = self.recency.cutoff(started)
        queue = dedupe_handles(handles)
        result = BatchResult(handles=[], started_at=started)
        self.current = result
        deadline = self.timer() + self.budget_seconds if self.budget_seconds else None

        logger.info("Scraping %d handles (recency=%s)", len(queue), self.recency.value)
        for index, raw in enumerate(queue):
            if index and self.delay_seconds:
                self._cancel.wait(self.delay_seconds)
            if self._cancel.is_set() or (deadline is not None and self.timer() >= deadline):
                result.cancelled = True
                result.skipped.extend(queue[index:])
                logger.warning("Batch stopped early; %d handle(s) not attempted", len(queue) - index)
                break
            self._run_one(raw, cutoff, result)

        result.finished_at = self.clock()
        logger.info(
            "Batch finished: %d posts, %d failed handle(s), %d skipped",
            len(result.posts), len(result.failures), len(result.skipped),
        )
        if result.failed:
            raise BatchFailed(result)
        return result

    def _run_one(self, raw: str, cutoff, result: BatchResult) -> None:
        try:
            handle = normalize_handle(raw)
        except InvalidHandle as exc:
            logger.warning("Skipping invalid handle %r: %s", raw, exc)
            result.failures[raw] = HandleFailure(handle=raw, kind="InvalidHandle", reason=str(exc))
            return
        result.handles.append(handle)
        try:
            outcome = self.fetcher.fetch_recent_posts(handle, cutoff=cutoff)
        except AllEndpointsExhausted as exc:
            result.failures[handle] = HandleFailure(
                handle=handle, kind=exc.kind, reason=str(exc), attempts=exc.attempts,
            )
            return
        result.posts.extend(outcome.posts)
