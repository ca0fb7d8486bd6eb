"""
Centralised settings for the digest pipeline (env-first, code-light).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Type, TypeVar

from crawler.extractors.timeline import RecencyPolicy, UndatedPolicy
from crawler.ingesters.mirror_timeline import DEFAULT_MIRRORS, EmptyPagePolicy
from crawler.pipelines.batch import DEFAULT_HANDLE_DELAY, clamp_delay
from digest.config_loader import load_sources_config
from utils.security import is_configured_key

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


@dataclass
class DigestSettings:
    db_path: Path
    mirrors: Tuple[str, ...]
    page_loader: str
    request_timeout: float
    handle_delay: float
    batch_budget: float
    recency: RecencyPolicy
    undated: UndatedPolicy
    empty_page: EmptyPagePolicy
    retention_days: int
    openai_api_key: Optional[str]
    openai_base_url: Optional[str]
    openai_model: str


def _int_from_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(raw)
        return value if value > 0 else default
    except Exception:
        logger.warning("Invalid int value for %s=%s; using default %s", key, raw, default)
        return default


def _float_from_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = float(raw)
        return value if value >= 0 else default
    except ValueError:
        logger.warning("Invalid float value for %s=%s; using default %s", key, raw, default)
        return default


def _delay_from_env(key: str, default: float) -> float:
    """Inter-handle pause is always 1-2s for deployments; 0 is only reachable through BatchRunner directly."""
    value = _float_from_env(key, default)
    if value <= 0:
        logger.warning("%s=%s would disable the pause between handles; using %s", key, value, default)
        value = default
    return clamp_delay(value)


def _enum_from_env(key: str, enum_cls: Type[E], default: E) -> E:
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        return enum_cls(raw.strip())
    except ValueError:
        logger.warning("Unknown %s value '%s'; using %s", key, raw, default.value)
        return default


def _api_key_from_env(key: str) -> Optional[str]:
    raw = os.getenv(key)
    if raw and not is_configured_key(raw):
        logger.warning("%s looks like a placeholder; treating it as unset", key)
        return None
    return raw.strip() if raw else None


def _parse_mirrors(config: dict) -> Tuple[str, ...]:
    mirrors: List[str] = []
    for entry in config.get("mirrors") or []:
        if isinstance(entry, str) and entry.strip().startswith(("http://", "https://")):
            mirrors.append(entry.strip().rstrip("/"))
        else:
            logger.warning("Ignoring malformed mirror entry %r", entry)
    return tuple(mirrors) or DEFAULT_MIRRORS


def load_settings() -> DigestSettings:
    sources_path = os.getenv("DIGEST_SOURCES_PATH")
    config = load_sources_config(Path(sources_path) if sources_path else None)
    loader = (os.getenv("DIGEST_PAGE_LOADER") or "http").strip().lower()
    return DigestSettings(
        db_path=Path(os.getenv("DIGEST_DB_PATH") or "data/digest.db"),
        mirrors=_parse_mirrors(config),
        page_loader=loader if loader in {"http", "browser"} else "http",
        request_timeout=_float_from_env("DIGEST_REQUEST_TIMEOUT", 20.0),
        handle_delay=_delay_from_env("DIGEST_HANDLE_DELAY", DEFAULT_HANDLE_DELAY),
        batch_budget=_float_from_env("DIGEST_BATCH_BUDGET", 300.0),
        recency=_enum_from_env("DIGEST_RECENCY", RecencyPolicy, RecencyPolicy.NONE),
        undated=_enum_from_env("DIGEST_UNDATED", UndatedPolicy, UndatedPolicy.INCLUDE),
        empty_page=_enum_from_env("DIGEST_EMPTY_PAGE", EmptyPagePolicy, EmptyPagePolicy.FALLBACK),
        retention_days=_int_from_env("DIGEST_RETENTION_DAYS", 30),
        openai_api_key=_api_key_from_env("OPENAI_API_KEY"),
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        openai_model=os.getenv("OPENAI_MODEL") or "gpt-3.5-turbo",
    )
