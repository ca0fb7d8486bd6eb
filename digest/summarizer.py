"""
Digest generation through an OpenAI-compatible chat-completions endpoint.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Sequence

from crawler.schemas.models import PostRecord
from digest.models import DigestResult
from utils.security import redact_secrets

logger = logging.getLogger(__name__)

NO_DATA_RESULT = DigestResult(
    summary="No posts found for today.",
    hacks=[],
    airdrops=[],
    market_sentiment="No data available",
)

SYSTEM_PROMPT = (
    "You are a crypto market analyst who summarizes Twitter activity. "
    "Always respond with valid JSON only."
)

PROMPT_TEMPLATE = """You are analyzing crypto Twitter posts from today. Below are tweets from various accounts:

{posts}

Please provide a comprehensive analysis in the following JSON format:
{{
  "summary": "A concise 2-3 paragraph summary of the main themes and highlights",
  "hacks": ["List any security incidents, exploits, or hacks mentioned (empty array if none)"],
  "airdrops": ["List any airdrop announcements or opportunities mentioned (empty array if none)"],
  "marketSentiment": "Overall market sentiment (bullish/bearish/neutral) with brief explanation"
}}

Focus on:
1. Security incidents and hacks
2. Airdrop opportunities
3. Market sentiment and trends
4. Major announcements or events

Return ONLY valid JSON, no additional text."""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class DigestGenerationFailed(RuntimeError):
    pass


def build_prompt(posts: Sequence[PostRecord]) -> str:
    lines = [f"[{i}] @{post.handle}: {post.content}" for i, post in enumerate(posts, start=1)]
    return PROMPT_TEMPLATE.format(posts="\n\n".join(lines))


def parse_digest(content: str) -> DigestResult:
    """Parse the model reply, tolerating a markdown fence and sanitising each field."""
    text = _FENCE_RE.sub("", content.strip())
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("digest reply is not a JSON object")
    return DigestResult(
        summary=_text_or(payload.get("summary"), "No summary generated"),
        hacks=_string_list(payload.get("hacks")),
        airdrops=_string_list(payload.get("airdrops")),
        market_sentiment=_text_or(payload.get("marketSentiment"), "Unknown"),
    )


def _text_or(value: Any, default: str) -> str:
    return value.strip() if isinstance(value, str) and value.strip() else default


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


class DigestGenerator:
    """
    Condenses a batch of posts into a DigestResult.

    The client is injected (anything exposing ``chat.completions.create``); when
    omitted, an ``openai.OpenAI`` client is built lazily on first use.
    """

    def __init__(
        self,
        client: Any = None,
        *,
        model: str = "gpt-3.5-turbo",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 60.0,
    ) -> None:
        self._client = client
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def generate(self, posts: Sequence[PostRecord]) -> DigestResult:
        if not posts:
            return NO_DATA_RESULT.model_copy(deep=True)

        try:
            response = self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(posts)},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            content = response.choices[0].message.content if response.choices else None
            if not content:
                raise DigestGenerationFailed("empty response from the model")
            result = parse_digest(content)
        except DigestGenerationFailed:
            raise
        except Exception as exc:
            logger.error("Error generating digest: %s", redact_secrets(str(exc)))
            raise DigestGenerationFailed(f"failed to generate digest: {redact_secrets(str(exc))}") from exc

        logger.info("Generated digest from %d posts (%d hacks, %d airdrops)",
                    len(posts), len(result.hacks), len(result.airdrops))
        return result
