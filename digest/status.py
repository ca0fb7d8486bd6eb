"""
Status helpers for the digest pipeline, shaped for CLI/JSON consumption.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from digest.settings import DigestSettings
from digest.store import DigestStore
from utils.security import is_configured_key


def build_status(store: DigestStore, settings: DigestSettings) -> Dict[str, Any]:
    dates = store.stored_dates()
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "acquisition": {
            "mirrors": list(settings.mirrors),
            "page_loader": settings.page_loader,
            "request_timeout": settings.request_timeout,
            "handle_delay": settings.handle_delay,
            "batch_budget": settings.batch_budget,
            "recency": settings.recency.value,
            "undated": settings.undated.value,
            "empty_page": settings.empty_page.value,
        },
        "handles": [tracked.handle for tracked in store.list_handles()],
        "store": {
            "db_path": str(settings.db_path),
            "retention_days": settings.retention_days,
            "digest_count": len(dates),
            "latest": dates[0] if dates else None,
            "dates": dates,
        },
        "llm": {
            "model": settings.openai_model,
            "configured": is_configured_key(settings.openai_api_key),
        },
    }
