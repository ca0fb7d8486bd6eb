"""
Headless-browser page loading for mirrors that reject plain HTTP clients.
"""
from __future__ import annotations

import logging

from crawler.errors import EndpointUnreachable
from crawler.infra.http import DEFAULT_USER_AGENT, clamp_timeout
from crawler.schemas.models import RawPage

logger = logging.getLogger(__name__)

try:
    from playwright.sync_api import Error as PlaywrightError
    from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
    from playwright.sync_api import sync_playwright

    PLAYWRIGHT_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    PLAYWRIGHT_AVAILABLE = False
    sync_playwright = None  # type: ignore
    PlaywrightError = PlaywrightTimeoutError = None  # type: ignore

TIMELINE_WAIT_MS = 10000


class BrowserPageLoader:
    name = "browser"

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, timeout: float = 30, headless: bool = True) -> None:
        if not PLAYWRIGHT_AVAILABLE:
            raise RuntimeError("playwright is not installed; install the 'browser' extra or use the http loader")
        self.user_agent = user_agent
        self.timeout_ms = int(clamp_timeout(timeout) * 1000)
        self.headless = headless

    def load(self, endpoint: str, url: str) -> RawPage:
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=self.headless)
                try:
                    page = browser.new_page(user_agent=self.user_agent)
                    response = page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
                    status = response.status if response else None
                    if status is not None and not 200 <= status < 300:
                        raise EndpointUnreachable(url, f"HTTP {status}", status_code=status)
                    try:
                        page.wait_for_selector(".timeline-item", timeout=TIMELINE_WAIT_MS)
                    except PlaywrightTimeoutError:
                        logger.info("Timeline items not rendered at %s", url)
                    body = page.content()
                finally:
                    browser.close()
        except PlaywrightTimeoutError as exc:
            raise EndpointUnreachable(url, f"navigation timeout after {self.timeout_ms}ms") from exc
        except PlaywrightError as exc:
            raise EndpointUnreachable(url, f"browser error: {exc}") from exc
        return RawPage(endpoint=endpoint, url=url, body=body, status_code=status)
