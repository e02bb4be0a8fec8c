"""Browser page abstraction and the Playwright-backed session."""

import logging
import time
from typing import Any, Optional, Protocol

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0"


class BrowserPage(Protocol):
    """Capability primitives the extractor and monitor need from a page."""

    def navigate(self, url: str, timeout_ms: int) -> None: ...

    def query_selector(self, selector: str) -> bool: ...

    def click(self, selector: str, timeout_ms: Optional[int] = None) -> None: ...

    def evaluate(self, script: str) -> Any: ...

    def wait(self, ms: int) -> None: ...

    def content(self) -> str: ...


class PlaywrightPage:
    """Adapts a Playwright sync ``Page`` to :class:`BrowserPage`."""

    def __init__(self, page: Page):
        self._page = page

    def navigate(self, url: str, timeout_ms: int) -> None:
        self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

    def query_selector(self, selector: str) -> bool:
        return self._page.query_selector(selector) is not None

    def click(self, selector: str, timeout_ms: Optional[int] = None) -> None:
        if timeout_ms is not None:
            self._page.wait_for_selector(selector, timeout=timeout_ms)
        self._page.click(selector)

    def evaluate(self, script: str) -> Any:
        return self._page.evaluate(script)

    def wait(self, ms: int) -> None:
        self._page.wait_for_timeout(ms)

    def content(self) -> str:
        return self._page.content()


class PlaywrightSession:
    """One headless Chromium page shared by every playlist of a run.

    Use as a context manager; the browser is closed on exit regardless of
    per-playlist failures.
    """

    def __init__(
        self,
        logger: logging.Logger,
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport_width: int = 1280,
        viewport_height: int = 720
    ):
        """Initialize browser session.

        Args:
            logger: Logger instance
            headless: Run Chromium without a window
            user_agent: User agent sent with every request
            viewport_width: Viewport width in pixels
            viewport_height: Viewport height in pixels
        """
        self.logger = logger
        self.headless = headless
        self.user_agent = user_agent
        self.viewport = {'width': viewport_width, 'height': viewport_height}

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    def open(self) -> PlaywrightPage:
        """Launch the browser and return its single page."""
        self.logger.debug("Launching Chromium")
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(
            headless=self.headless,
            args=[
                "--no-sandbox",
                "--disable-blink-features=AutomationControlled",
                "--disable-dev-shm-usage",
            ],
        )
        self._context = self._browser.new_context(
            user_agent=self.user_agent,
            viewport=self.viewport,
            ignore_https_errors=True,
        )
        return PlaywrightPage(self._context.new_page())

    def close(self) -> None:
        """Close the browser, logging (not raising) shutdown failures."""
        try:
            if self._context:
                self._context.close()
            if self._browser:
                self._browser.close()
        except Exception as e:
            self.logger.error(f"Browser close error: {e}")
        finally:
            if self._playwright:
                self._playwright.stop()
            self._context = None
            self._browser = None
            self._playwright = None

    def __enter__(self) -> PlaywrightPage:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def navigate_with_retries(
    page: BrowserPage,
    url: str,
    logger: logging.Logger,
    timeout_ms: int = 30000,
    attempts: int = 1,
    retry_delay: float = 20.0
) -> None:
    """Navigate to a URL, retrying a failed navigation.

    Args:
        page: Page to navigate
        url: Target URL
        logger: Logger instance
        timeout_ms: Per-attempt navigation deadline
        attempts: Total number of attempts (>= 1)
        retry_delay: Seconds to wait between attempts

    Raises:
        Exception: The last navigation error once attempts are exhausted
    """
    for attempt in range(1, attempts + 1):
        try:
            page.navigate(url, timeout_ms)
            return
        except Exception as e:
            logger.warning(f"Navigation attempt {attempt}/{attempts} failed for {url}: {e}")
            if attempt == attempts:
                raise
            if retry_delay > 0:
                time.sleep(retry_delay)
