"""
HTTP page loading for mirror endpoints (browser-like headers, bounded timeout, no retries).
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

import requests

from crawler.errors import EndpointUnreachable
from crawler.schemas.models import RawPage
from utils.security import redact_secrets

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MIN_TIMEOUT = 10
MAX_TIMEOUT = 30


def browser_headers(user_agent: str = DEFAULT_USER_AGENT) -> Dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }


def clamp_timeout(value: float) -> float:
    return max(MIN_TIMEOUT, min(MAX_TIMEOUT, value))


class PageLoader(Protocol):
    name: str

    def load(self, endpoint: str, url: str) -> RawPage:
        ...


class HttpFetcher:
    """
    Thin wrapper over requests.Session. One attempt per call: the mirror list is the retry mechanism.
    """

    name = "http"

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, timeout: float = 20) -> None:
        self.session = requests.Session()
        self.session.headers.update(browser_headers(user_agent))
        self.timeout = clamp_timeout(timeout)

    def load(self, endpoint: str, url: str) -> RawPage:
        """
        GET ``url`` and return its body.

        Raises:
            EndpointUnreachable: on a network error, a timeout or any non-2xx status.
        """
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.Timeout as exc:
            raise EndpointUnreachable(url, f"timeout after {self.timeout:g}s") from exc
        except requests.RequestException as exc:
            raise EndpointUnreachable(url, redact_secrets(f"{type(exc).__name__}: {exc}")) from exc
        if not 200 <= response.status_code < 300:
            raise EndpointUnreachable(url, f"HTTP {response.status_code}", status_code=response.status_code)
        return RawPage(endpoint=endpoint, url=url, body=response.text, status_code=response.status_code)

    def close(self) -> None:
        self.session.close()


def build_page_loader(kind: str, *, timeout: float, user_agent: Optional[str] = None) -> PageLoader:
    ua = user_agent or DEFAULT_USER_AGENT
    if kind == "browser":
        from crawler.infra.browser import BrowserPageLoader

        return BrowserPageLoader(user_agent=ua, timeout=timeout)
    if kind != "http":
        logger.warning("Unknown page loader '%s', falling back to http", kind)
    return HttpFetcher(user_agent=ua, timeout=timeout)
