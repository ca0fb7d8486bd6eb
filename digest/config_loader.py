"""
Load the deployment's `digest_sources.yaml` (mirror list) with `${ENV}` expansion.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SOURCES_PATH = Path("config") / "digest_sources.yaml"


def load_sources_config(path: Optional[Path] = None) -> Dict[str, Any]:
    config_path = path or DEFAULT_SOURCES_PATH
    if not config_path.exists():
        logger.debug("%s not found; using built-in mirrors", config_path)
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        logger.error("Could not parse %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.error("%s must contain a mapping at the top level", config_path)
        return {}
    return _expand_env(data)


def _expand_env(data: Dict[str, Any]) -> Dict[str, Any]:
    def replace(value: Any) -> Any:
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            env_key = value[2:-1]
            return os.getenv(env_key, "")
        if isinstance(value, dict):
            return {k: replace(v) for k, v in value.items()}
        if isinstance(value, list):
            return [replace(item) for item in value]
        return value

    return replace(data)  # type: ignore[return-value]
