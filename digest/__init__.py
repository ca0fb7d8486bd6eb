"""
Public API for the daily digest pipeline.
"""
from __future__ import annotations

from typing import Any, Optional

from crawler.extractors.timeline import TimelineExtractor
from crawler.infra.http import build_page_loader
from crawler.ingesters.mirror_timeline import MirrorTimelineFetcher
from crawler.pipelines.batch import BatchRunner
from digest.service import DigestService
from digest.settings import DigestSettings, load_settings
from digest.store import DigestStore
from digest.summarizer import DigestGenerator


def build_fetcher(settings: DigestSettings) -> MirrorTimelineFetcher:
    return MirrorTimelineFetcher(
        mirrors=settings.mirrors,
        loader=build_page_loader(settings.page_loader, timeout=settings.request_timeout),
        extractor=TimelineExtractor(undated_policy=settings.undated),
        empty_page_policy=settings.empty_page,
    )


def build_runner(settings: DigestSettings) -> BatchRunner:
    return BatchRunner(
        build_fetcher(settings),
        delay_seconds=settings.handle_delay,
        budget_seconds=settings.batch_budget or None,
        recency=settings.recency,
    )


def build_store(settings: DigestSettings) -> DigestStore:
    return DigestStore(str(settings.db_path), retention_days=settings.retention_days)


def build_service(settings: Optional[DigestSettings] = None, *, llm_client: Any = None) -> DigestService:
    """Wire every collaborator from settings; the caller owns the returned service."""
    settings = settings or load_settings()
    generator = DigestGenerator(
        llm_client,
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
    )
    return DigestService(build_store(settings), build_runner(settings), generator)
