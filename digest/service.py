"""
High-level orchestration: handles -> batch -> digest -> store.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from crawler.errors import BatchFailed
from crawler.pipelines.batch import BatchRunner
from digest.models import DATE_FORMAT, DailyDigest, RunReport, RunStatus, Trigger
from digest.store import DigestStore
from digest.summarizer import DigestGenerator

logger = logging.getLogger(__name__)


class DigestService:
    """
    Both invocation paths (scheduled daily run, on-demand run) go through :meth:`run`.

    Collaborators are passed in and owned by the caller.
    """

    def __init__(
        self,
        store: DigestStore,
        runner: BatchRunner,
        generator: DigestGenerator,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.runner = runner
        self.generator = generator
        self.clock = clock

    def run(self, trigger: Trigger = Trigger.DAILY) -> RunReport:
        """
        Raises:
            DigestGenerationFailed: the text-generation call failed (not retried).
        """
        trigger = Trigger(trigger)
        handles = [tracked.handle for tracked in self.store.list_handles()]
        if not handles:
            logger.info("No handles configured")
            return RunReport(
                status=RunStatus.NOTHING_CONFIGURED,
                trigger=trigger,
                message="No handles configured. Add some handles first.",
            )

        logger.info("Starting %s scrape of %d handles", trigger.value, len(handles))
        try:
            batch = self.runner.run_batch(handles)
        except BatchFailed as exc:
            logger.error("Batch failed: %s", exc)
            return RunReport(
                status=RunStatus.FAILED,
                trigger=trigger,
                message="Could not fetch posts for any handle.",
                handles_count=len(handles),
                failures=exc.result.failure_reasons(),
                skipped=list(exc.result.skipped),
            )

        today = self.clock().astimezone(timezone.utc).strftime(DATE_FORMAT)
        report = RunReport(
            status=RunStatus.COMPLETED,
            trigger=trigger,
            message="",
            date=today,
            posts_count=len(batch.posts),
            handles_count=len(handles),
            failures=batch.failure_reasons(),
            skipped=list(batch.skipped),
        )

        if not batch.posts:
            report.status = RunStatus.NO_POSTS
            report.message = "No recent posts found."
            if batch.cancelled:
                report.message = f"No posts collected before the run stopped; {len(batch.skipped)} handle(s) not attempted."
                return report
            if trigger is Trigger.MANUAL:
                return report

        result = self.generator.generate(batch.posts)
        self.store.save_digest(
            DailyDigest(
                date=today,
                posts=batch.posts,
                failures=report.failures,
                created_at=self.clock(),
                **result.model_dump(),
            )
        )
        if report.status is RunStatus.COMPLETED:
            report.message = f"Scraped and summarized {len(batch.posts)} posts."
        return report

    def get_digest(self, day: str) -> Optional[DailyDigest]:
        return self.store.get_digest(day)

    def recent_digests(self, limit: int = 7):
        return self.store.get_recent(limit)
