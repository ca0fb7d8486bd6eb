"""
Deduplication helpers for acquisition inputs and outputs.
"""
from __future__ import annotations

from typing import Iterable, List, TypeVar

from crawler.errors import InvalidHandle
from crawler.schemas.models import normalize_handle

T = TypeVar("T")


def dedupe_by_key(items: Iterable[T], key_fn) -> List[T]:
    seen = set()
    result: List[T] = []
    for item in items:
        key = key_fn(item)
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def dedupe_handles(handles: Iterable[str]) -> List[str]:
    """Drop entries that normalize to an earlier handle, keeping first-seen order.

    Invalid entries are keyed on their raw text so they never shadow a valid handle.
    """

    def key(raw: str) -> str:
        try:
            return normalize_handle(raw)
        except InvalidHandle:
            return f"invalid:{raw}"

    return dedupe_by_key(handles, key_fn=key)
